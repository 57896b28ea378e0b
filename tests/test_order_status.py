"""Tests for the order status state machine."""

import pytest

from storefront.domain.order_status import (
    OrderStatus,
    can_transition,
    check_transition,
    is_cancellable,
)
from storefront.errors import InvalidStatusTransitionError


@pytest.mark.parametrize(
    "current, target",
    [
        ("pending", "confirmed"),
        ("pending", "cancelled"),
        ("confirmed", "processing"),
        ("confirmed", "cancelled"),
        ("processing", "shipped"),
        ("shipped", "delivered"),
    ],
)
def test_allowed_transitions(current, target):
    assert check_transition(current, target) == OrderStatus(target)


@pytest.mark.parametrize(
    "current, target",
    [
        ("pending", "shipped"),
        ("processing", "cancelled"),
        ("shipped", "cancelled"),
        ("delivered", "pending"),
        ("cancelled", "confirmed"),
        ("pending", "pending"),
    ],
)
def test_rejected_transitions(current, target):
    with pytest.raises(InvalidStatusTransitionError) as exc:
        check_transition(current, target)

    assert exc.value.message == f"Cannot change order status from {current} to {target}"


def test_refunded_only_through_refund():
    assert not can_transition(OrderStatus.DELIVERED, OrderStatus.REFUNDED)
    with pytest.raises(InvalidStatusTransitionError) as exc:
        check_transition("delivered", "refunded")

    assert "refund endpoint" in exc.value.message


@pytest.mark.parametrize("status", ["pending", "confirmed"])
def test_cancellable(status):
    assert is_cancellable(status)


@pytest.mark.parametrize("status", ["processing", "shipped", "delivered", "cancelled", "refunded"])
def test_not_cancellable(status):
    assert not is_cancellable(status)
