"""Unit tests for the order status table."""

import pytest

from orderflow.domain.exceptions import InvalidStateError
from orderflow.domain.model.order_status import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    OrderStatus,
    can_transition,
    describe,
    ensure_transition,
)


class TestTransitionTable:

    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(OrderStatus)

    @pytest.mark.parametrize("status", list(OrderStatus))
    def test_same_status_always_allowed(self, status):
        assert can_transition(status, status)

    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.PENDING, OrderStatus.CONFIRMED),
            (OrderStatus.PROCESSING, OrderStatus.RETURNED),
            (OrderStatus.SHIPPING, OrderStatus.PROCESSING),
            (OrderStatus.DELIVERED, OrderStatus.RETURNED),
            (OrderStatus.CANCELLED, OrderStatus.PENDING),
            (OrderStatus.RETURNED, OrderStatus.DELIVERED),
        ],
    )
    def test_allowed(self, current, target):
        ensure_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.PENDING, OrderStatus.RETURNED),
            (OrderStatus.CONFIRMED, OrderStatus.PENDING),
            (OrderStatus.DELIVERED, OrderStatus.SHIPPING),
            (OrderStatus.CANCELLED, OrderStatus.SHIPPING),
            (OrderStatus.RETURNED, OrderStatus.CANCELLED),
        ],
    )
    def test_refused(self, current, target):
        with pytest.raises(InvalidStateError, match="Cannot change order status"):
            ensure_transition(current, target)

    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {
            OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.RETURNED
        }


class TestParse:

    def test_case_insensitive(self):
        assert OrderStatus.parse(" shipping ") == OrderStatus.SHIPPING

    def test_unknown_status(self):
        with pytest.raises(InvalidStateError, match="Unknown order status"):
            OrderStatus.parse("LOST")


def test_every_status_has_a_description():
    for status in OrderStatus:
        assert describe(status)
