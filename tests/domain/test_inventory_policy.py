"""The inventory policy over every (previous, new) status pair."""

import pytest

from orderflow.domain.model.order_status import ALLOWED_TRANSITIONS
from orderflow.domain.model.order_status import OrderStatus as S
from orderflow.domain.service.inventory_policy import (
    ACTIVE_STATUSES,
    InventoryAction,
    classify_inventory_action,
)


@pytest.mark.parametrize(
    "previous,new,expected",
    [
        (S.CANCELLED, S.PENDING, InventoryAction.DECREMENT),
        (S.CANCELLED, S.CONFIRMED, InventoryAction.DECREMENT),
        (S.RETURNED, S.PROCESSING, InventoryAction.DECREMENT),
        (S.DELIVERED, S.SHIPPING, InventoryAction.DECREMENT),
        (S.PENDING, S.CANCELLED, InventoryAction.RESTORE),
        (S.SHIPPING, S.RETURNED, InventoryAction.RESTORE),
        (S.DELIVERED, S.RETURNED, InventoryAction.RESTORE),
        (S.DELIVERED, S.CANCELLED, InventoryAction.RESTORE),
        (S.CANCELLED, S.DELIVERED, InventoryAction.NONE),
        (S.RETURNED, S.DELIVERED, InventoryAction.NONE),
        (S.CANCELLED, S.RETURNED, InventoryAction.NONE),
        (S.SHIPPING, S.DELIVERED, InventoryAction.NONE),
    ],
)
def test_classification(previous, new, expected):
    assert classify_inventory_action(previous, new) == expected


@pytest.mark.parametrize("previous", sorted(ACTIVE_STATUSES, key=lambda s: s.value))
@pytest.mark.parametrize("new", sorted(ACTIVE_STATUSES, key=lambda s: s.value))
def test_moves_between_active_statuses_do_nothing(previous, new):
    assert classify_inventory_action(previous, new) == InventoryAction.NONE


def test_reachable_decrements_only_reopen_released_orders():
    reachable = {
        (previous, new)
        for previous, targets in ALLOWED_TRANSITIONS.items()
        for new in targets
        if classify_inventory_action(previous, new) == InventoryAction.DECREMENT
    }
    assert reachable == {
        (released, new)
        for released in (S.CANCELLED, S.RETURNED)
        for new in (S.PENDING, S.CONFIRMED, S.PROCESSING)
    }
