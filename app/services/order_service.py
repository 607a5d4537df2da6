# app/services/order_service.py
from decimal import Decimal
from typing import Dict, Any

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.data.models.order import OrderModel, OrderItemModel, OrderStatusEventModel
from app.domain.errors import (
    AlreadyTerminalError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    RefundFailedError,
    StorageError,
)
from app.domain.order_status import (
    FORWARD_EVENTS,
    OrderStatus,
    PaymentStatus,
    StatusAxis,
    is_terminal,
    successor,
)
from app.domain.owner import UserOwner
from app.repos.cart_repo import CartRepo
from app.repos.order_repo import OrderRepo
from app.repos.product_repo import ProductRepo
from app.repos.user_repo import UserRepo
from app.services.lock_service import LockService
from app.services.notification_service import NotificationService
from app.services.payment_client import PaymentClient
from app.utils.settings import ORDER_LOCK_TTL_SECONDS
from app.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Order domain: checkout and the order lifecycle.

    Fulfillment status and payment status are separate axes, every change
    of either one is written to order_status_events with the axis that
    caused it.
    """

    def __init__(
        self,
        db: Session,
        payment_client: PaymentClient,
        notification_service: NotificationService,
        lock_service: LockService,
    ):
        self.repo = OrderRepo(db)
        self.carts = CartRepo(db)
        self.products = ProductRepo(db)
        self.users = UserRepo(db)
        self.payment_client = payment_client
        self.notification_service = notification_service
        self.lock_service = lock_service

    #query
    def get_order(self, order_id: int, user_id: int | None = None) -> Dict[str, Any]:
        order = self._load(order_id)
        if user_id is not None and order.user_id != user_id:
            raise PermissionError("No access to this order")
        return self._to_dict(order)

    #commands
    def checkout(self, user_id: int, address_id: int) -> Dict[str, Any]:
        """
        Create a PENDING/UNPAID order from the user's cart.

        1. line prices come from the product selling price right now
        2. the shipping address is copied into the order
        3. the cart lines are removed in the same transaction
        """
        user = self.users.get_user(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")

        address = self.users.get_address(address_id)
        if not address:
            raise NotFoundError(f"Address {address_id} not found")
        if address.user_id != user_id:
            raise PermissionError("Address belongs to another user")

        cart = self.carts.get_cart_by_owner(UserOwner(user_id), for_update=True)
        items = self.carts.get_cart_items(cart.id) if cart else []
        if not items:
            raise ValueError("Cart is empty")

        products = self.products.get_products(i.product_id for i in items)
        unavailable = [i.product_id for i in items if not products[i.product_id].is_active]
        if unavailable:
            raise ValueError(f"Products no longer available: {unavailable}")

        order_items = [
            OrderItemModel(
                product_id=i.product_id,
                name=products[i.product_id].name,
                unit_price=products[i.product_id].price,
                quantity=i.quantity,
            )
            for i in items
        ]
        total = sum((oi.unit_price * oi.quantity for oi in order_items), Decimal("0.00"))

        try:
            order = self.repo.create_order(
                OrderModel(
                    user_id=user_id,
                    contact_email=user.email,
                    shipping_address=address.snapshot(),
                    status=OrderStatus.PENDING.value,
                    payment_status=PaymentStatus.UNPAID.value,
                    total=total,
                    version=1,
                    items=order_items,
                )
            )
            for i in items:
                self.carts.delete_cart_item(i)

            rowcount = self.carts.update_cart_version(
                cart_id=cart.id,
                old_version=cart.version,
                new_data={"version": cart.version + 1},
            )
            if rowcount == 0:
                self.repo.rollback()
                raise ConflictError("Cart was modified during checkout")
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Checkout for user {user_id} failed: {e}", exc_info=True)
            raise StorageError("Could not create order") from e

        logger.info(f"Order {order.id} created for user {user_id}, total {total}")
        return self._to_dict(order)

    def advance(self, order_id: int, next_status: OrderStatus | str) -> Dict[str, Any]:
        """
        Move the order one step along PENDING -> CONFIRMED -> PROCESSING
        -> SHIPPED -> DELIVERED. Any other target raises
        InvalidTransitionError and leaves the order untouched.
        """
        try:
            target = OrderStatus(next_status)
        except ValueError:
            raise InvalidTransitionError(f"Unknown status {next_status!r}")

        order = self._load(order_id, for_update=True)
        current = OrderStatus(order.status)

        if successor(current) != target:
            self.repo.rollback()
            raise InvalidTransitionError(
                f"Order {order_id} cannot go from {current.value} to {target.value}"
            )

        self._write_status(
            order,
            {"status": target.value},
            axis=StatusAxis.FULFILLMENT,
            from_value=current.value,
            to_value=target.value,
        )
        logger.info(f"Order {order_id}: {current.value} -> {target.value}")

        event_kind = FORWARD_EVENTS.get(target)
        if event_kind:
            self._notify(order, event_kind, {"order_id": order.id, "status": target.value})

        return self._to_dict(order)

    def record_payment(self, order_id: int) -> Dict[str, Any]:
        order = self._load(order_id, for_update=True)

        if is_terminal(OrderStatus(order.status)):
            self.repo.rollback()
            raise AlreadyTerminalError(f"Order {order_id} is {order.status}")
        if order.payment_status == PaymentStatus.PAID.value:
            self.repo.rollback()
            logger.info(f"Order {order_id} already paid")
            return self._to_dict(order)

        self._write_status(
            order,
            {"payment_status": PaymentStatus.PAID.value},
            axis=StatusAxis.PAYMENT,
            from_value=PaymentStatus.UNPAID.value,
            to_value=PaymentStatus.PAID.value,
        )
        logger.info(f"Order {order_id} marked as paid")
        return self._to_dict(order)

    def report_issue(self, order_id: int, reason_code: str) -> Dict[str, Any]:
        """
        Admin reports a problem with an order.

        PAID orders are refunded (charge reversed, then REFUNDED), UNPAID
        orders are cancelled. The customer gets exactly one notification
        after the new status is committed.

        Raises AlreadyTerminalError for CANCELLED/REFUNDED orders,
        RefundFailedError when the reversal fails (status unchanged, no
        notification), ConflictError when the same order is already being
        handled.
        """
        lock_key = f"order:{order_id}:issue"
        token = self.lock_service.new_token()

        try:
            locked = self.lock_service.acquire(lock_key, token, ORDER_LOCK_TTL_SECONDS)
        except RedisError as e:
            raise StorageError("Lock store unavailable") from e
        if not locked:
            logger.warning(f"Issue for order {order_id} is already being handled")
            raise ConflictError(f"Order {order_id} is already being handled")

        try:
            return self._report_issue(order_id, reason_code)
        finally:
            try:
                self.lock_service.release(lock_key, token)
            except RedisError as e:
                logger.warning(f"Failed to release {lock_key}: {e}")

    def _report_issue(self, order_id: int, reason_code: str) -> Dict[str, Any]:
        # payment status read from the row, not from anything cached
        order = self._load(order_id, for_update=True)
        current = OrderStatus(order.status)

        if is_terminal(current):
            self.repo.rollback()
            raise AlreadyTerminalError(f"Order {order_id} is already {current.value}")

        if order.payment_status == PaymentStatus.PAID.value:
            logger.info(f"Order {order_id} is paid, reversing charge ({reason_code})")
            if not self.payment_client.reverse_charge(order.id):
                self.repo.rollback()
                raise RefundFailedError(f"Charge reversal for order {order_id} failed")
            target, axis = OrderStatus.REFUNDED, StatusAxis.PAYMENT
        else:
            logger.info(f"Order {order_id} is unpaid, cancelling ({reason_code})")
            target, axis = OrderStatus.CANCELLED, StatusAxis.FULFILLMENT

        self._write_status(
            order,
            {"status": target.value},
            axis=axis,
            from_value=current.value,
            to_value=target.value,
            reason_code=reason_code,
        )
        logger.info(f"Order {order_id}: {current.value} -> {target.value}")

        self._notify(
            order,
            "order_issue_reported",
            {"order_id": order.id, "reason_code": reason_code, "status": target.value},
        )
        return self._to_dict(order)

    def _load(self, order_id: int, for_update: bool = False) -> OrderModel:
        try:
            order = self.repo.get_order(order_id, for_update=for_update)
        except SQLAlchemyError as e:
            self.repo.rollback()
            raise StorageError("Could not load order") from e
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def _write_status(
        self,
        order: OrderModel,
        new_data: dict,
        axis: StatusAxis,
        from_value: str,
        to_value: str,
        reason_code: str | None = None,
    ) -> None:
        try:
            rowcount = self.repo.update_order_status(order.id, order.version, new_data)
            if rowcount == 0:
                self.repo.rollback()
                raise ConflictError(f"Order {order.id} was modified by another request")

            self.repo.add_event(
                OrderStatusEventModel(
                    order_id=order.id,
                    axis=axis.value,
                    from_value=from_value,
                    to_value=to_value,
                    reason_code=reason_code,
                )
            )
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Status update of order {order.id} failed: {e}", exc_info=True)
            raise StorageError("Could not update order status") from e

    def _notify(self, order: OrderModel, event_kind: str, payload: dict) -> None:
        # status is committed already, a failed send is only logged
        if not self.notification_service.send_order_event(order.contact_email, event_kind, payload):
            logger.warning(f"Notification {event_kind} for order {order.id} not queued")

    def _to_dict(self, order: OrderModel) -> Dict[str, Any]:
        return {
            "id": order.id,
            "user_id": order.user_id,
            "status": order.status,
            "payment_status": order.payment_status,
            "shipping_address": order.shipping_address,
            "items": [
                {
                    "product_id": i.product_id,
                    "name": i.name,
                    "unit_price": i.unit_price,
                    "quantity": i.quantity,
                }
                for i in order.items
            ],
            "total": order.total,
            "created_at": order.created_at,
        }
