# app/services/notification_service.py
from kombu.exceptions import KombuError

from app.celery_worker import celery_app
from app.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Customer notifications about order events.
    Delivery runs in a Celery task; a failure here never undoes a status
    change that is already committed.
    """

    def send_order_event(self, contact: str, event_kind: str, payload: dict) -> bool:
        try:
            send_order_event_task.delay(contact, event_kind, payload)
        except (KombuError, OSError) as e:
            logger.error(f"Could not enqueue {event_kind} for {contact}: {e}")
            return False
        logger.info(f"Queued {event_kind} for {contact}")
        return True


@celery_app.task(
    name="app.services.notification_service.send_order_event_task",
    autoretry_for=(ConnectionError, TimeoutError),
    retry_backoff=True,
    max_retries=5,
)
def send_order_event_task(contact: str, event_kind: str, payload: dict):
    """
    Delivery is only logged here, the mail/SMS gateway plugs in at this point.
    """
    logger.info(f"[NOTIFICATION] {contact}: {event_kind} {payload}")
    return {"contact": contact, "event": event_kind, "status": "sent"}
