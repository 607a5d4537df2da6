# app/domain/order_status.py
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class PaymentStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"


class StatusAxis(str, Enum):
    FULFILLMENT = "FULFILLMENT"
    PAYMENT = "PAYMENT"


FORWARD_CHAIN = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)

TERMINAL = frozenset({OrderStatus.CANCELLED, OrderStatus.REFUNDED})

# event sent to the customer when the order enters the status
FORWARD_EVENTS = {
    OrderStatus.CONFIRMED: "order_confirmed",
    OrderStatus.PROCESSING: "order_processing",
    OrderStatus.SHIPPED: "order_shipped",
    OrderStatus.DELIVERED: "order_delivered",
}


def successor(status: OrderStatus) -> OrderStatus | None:
    """Next status on the forward path, None for DELIVERED and terminal states."""
    if status not in FORWARD_CHAIN:
        return None
    idx = FORWARD_CHAIN.index(status)
    if idx + 1 >= len(FORWARD_CHAIN):
        return None
    return FORWARD_CHAIN[idx + 1]


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL
