# app/services/payment_client.py
import requests
from requests import RequestException

from app.utils.retry import http_retry
from app.utils.settings import PAYMENT_SERVICE_URL, PAYMENT_TIMEOUT_SECONDS
from app.utils.logging import get_logger

logger = get_logger(__name__)


class PaymentClient:
    """
    Client of the payment gateway.
    Reversal is idempotent on the gateway side: reversing an already
    reversed charge answers 409 and counts as success.
    """

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or PAYMENT_SERVICE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else PAYMENT_TIMEOUT_SECONDS

    @http_retry()
    def _post_reversal(self, order_id: int) -> requests.Response:
        url = f"{self.base_url}/charges/{order_id}/reversal"
        logger.info(f"PaymentClient POST {url}")
        return requests.post(url, json={"order_id": order_id}, timeout=self.timeout)

    def reverse_charge(self, order_id: int) -> bool:
        try:
            resp = self._post_reversal(order_id)
        except RequestException as e:
            # timeout included, the caller must treat it as a failed reversal
            logger.warning(f"Charge reversal for order {order_id} failed: {e}")
            return False

        if resp.status_code == 409:
            logger.info(f"Charge for order {order_id} already reversed")
            return True
        if 200 <= resp.status_code < 300:
            return True

        logger.warning(
            f"Charge reversal for order {order_id} rejected with HTTP {resp.status_code}"
        )
        return False
