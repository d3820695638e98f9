"""Inventory reconciliation policy.

A pure function over ``(previous status, new status)`` telling the caller
what to do with stock for that transition. It does not know how the
transition was triggered (admin edit, customer cancel, carrier webhook).

    active    = {PENDING, CONFIRMED, PROCESSING, SHIPPING}   stock is held
    released  = {CANCELLED, RETURNED}                        stock given back

    previous        new         action
    --------------  ----------  --------
    not active      active      DECREMENT
    active          released    RESTORE
    released        DELIVERED   NONE      (already reconciled)
    DELIVERED       released    RESTORE
    anything else               NONE

The transition table narrows the DECREMENT row: DELIVERED never returns to
an active status, and CANCELLED/RETURNED reopen only to PENDING, CONFIRMED
or PROCESSING. The classifier still answers for every pair.
"""

from __future__ import annotations

from enum import Enum

from orderflow.domain.model.order_status import OrderStatus


class InventoryAction(Enum):
    DECREMENT = "DECREMENT"
    RESTORE = "RESTORE"
    NONE = "NONE"


ACTIVE_STATUSES: frozenset[OrderStatus] = frozenset({
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPING,
})

RELEASED_STATUSES: frozenset[OrderStatus] = frozenset({
    OrderStatus.CANCELLED,
    OrderStatus.RETURNED,
})


def classify_inventory_action(previous: OrderStatus, new: OrderStatus) -> InventoryAction:
    if previous not in ACTIVE_STATUSES and new in ACTIVE_STATUSES:
        return InventoryAction.DECREMENT
    if previous in ACTIVE_STATUSES and new in RELEASED_STATUSES:
        return InventoryAction.RESTORE
    if previous == OrderStatus.DELIVERED and new in RELEASED_STATUSES:
        return InventoryAction.RESTORE
    return InventoryAction.NONE
