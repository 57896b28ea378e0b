# storefront/domain/order_status.py
from enum import Enum
from typing import Dict, FrozenSet

from storefront.errors import InvalidStatusTransitionError


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


# refunded nie jest tutaj - tylko przez refund
TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

CANCELLABLE: FrozenSet[OrderStatus] = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})

REFUNDABLE_PAYMENT: FrozenSet[PaymentStatus] = frozenset(
    {PaymentStatus.COMPLETED, PaymentStatus.PARTIALLY_REFUNDED}
)

STATUS_DISPLAY: Dict[OrderStatus, str] = {status: status.value.capitalize() for status in OrderStatus}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS[current]


def check_transition(current: str, target: str) -> OrderStatus:
    """Validate an admin status change and return the target status."""
    current_status = OrderStatus(current)
    target_status = OrderStatus(target)

    if target_status == OrderStatus.REFUNDED:
        raise InvalidStatusTransitionError(
            current, target, "refunds are issued through the refund endpoint"
        )
    if not can_transition(current_status, target_status):
        raise InvalidStatusTransitionError(current, target)
    return target_status


def is_cancellable(status: str) -> bool:
    return OrderStatus(status) in CANCELLABLE
