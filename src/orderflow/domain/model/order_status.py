"""Order status state machine.

Seven states with an explicit table of allowed targets. Every status change
in the system is validated here, once, before any side effect runs.

DELIVERED, CANCELLED and RETURNED are *terminal* from the carrier's point of
view: webhooks never move an order out of them. Operators can still reopen a
cancelled or returned order, or correct a delivered one, through the targets
listed below.
"""

from __future__ import annotations

from enum import Enum

from orderflow.domain.exceptions import InvalidStateError


class OrderStatus(Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPING = "SHIPPING"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"

    @staticmethod
    def parse(raw: str) -> OrderStatus:
        try:
            return OrderStatus(raw.strip().upper())
        except ValueError:
            valid = ", ".join(s.value for s in OrderStatus)
            raise InvalidStateError(f"Unknown order status {raw!r} (expected one of {valid})")


INITIAL_STATUS = OrderStatus.PENDING

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.RETURNED}
)

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPING,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.CONFIRMED: frozenset({
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPING,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.PROCESSING: frozenset({
        OrderStatus.SHIPPING,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
        OrderStatus.RETURNED,
    }),
    OrderStatus.SHIPPING: frozenset({
        OrderStatus.PROCESSING,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
        OrderStatus.RETURNED,
    }),
    OrderStatus.DELIVERED: frozenset({
        OrderStatus.RETURNED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.CANCELLED: frozenset({
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.DELIVERED,
    }),
    OrderStatus.RETURNED: frozenset({
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.DELIVERED,
    }),
}

STATUS_DESCRIPTIONS: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Order has been placed",
    OrderStatus.CONFIRMED: "Order has been confirmed",
    OrderStatus.PROCESSING: "Order is being processed",
    OrderStatus.SHIPPING: "Order is on its way",
    OrderStatus.DELIVERED: "Order has been delivered",
    OrderStatus.CANCELLED: "Order has been cancelled",
    OrderStatus.RETURNED: "Order has been returned",
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Same-status updates are always accepted as no-ops."""
    return current == target or target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: OrderStatus, target: OrderStatus) -> None:
    if not can_transition(current, target):
        raise InvalidStateError(
            f"Cannot change order status from {current.value} to {target.value}",
            current_status=current,
        )


def describe(status: OrderStatus) -> str:
    return STATUS_DESCRIPTIONS.get(status, "Order status updated")
