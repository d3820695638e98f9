"""Application service: Update Order / Update Order Status use cases.

Every status change in the system funnels through
``UpdateOrderStatusHandler.apply``:

1. validate the move against the transition table (nothing has happened yet)
2. classify it with the inventory policy and adjust stock
3. persist the order with its new status
4. append a tracking entry
5. once DELIVERED, bump each product's sold counter (after commit, best-effort)
"""

from __future__ import annotations

import logging
from datetime import datetime

from orderflow.application.dto import OrderDTO, OrderPatch, to_order_dto
from orderflow.application.side_effects import SideEffect, SideEffectRunner, record_failures
from orderflow.application.tracking_log import TrackingLog
from orderflow.domain.exceptions import EntityNotFoundError, InvalidStateError, ValidationError
from orderflow.domain.model.order import Order, PaymentStatus
from orderflow.domain.model.order_status import OrderStatus, describe, ensure_transition
from orderflow.domain.repository.order_repository import OrderRepository
from orderflow.domain.repository.product_repository import ProductRepository
from orderflow.domain.service.inventory_ledger import InventoryLedger
from orderflow.domain.service.inventory_policy import (
    RELEASED_STATUSES,
    InventoryAction,
    classify_inventory_action,
)

logger = logging.getLogger(__name__)

INVENTORY_FAILURES_KEY = "inventory_failures"


class UpdateOrderStatusHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        tracking_log: TrackingLog,
        ledger: InventoryLedger,
        runner: SideEffectRunner,
    ) -> None:
        self._order_repo = order_repo
        self._product_repo = product_repo
        self._tracking_log = tracking_log
        self._ledger = ledger
        self._runner = runner

    def handle(
        self,
        order_id: int,
        status: OrderStatus | str,
        updated_by: str | None = None,
        description: str | None = None,
    ) -> OrderDTO:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order #{order_id} not found")
        target = status if isinstance(status, OrderStatus) else OrderStatus.parse(status)
        self.apply(order, target, updated_by=updated_by, description=description)
        return to_order_dto(order)

    def apply(
        self,
        order: Order,
        target: OrderStatus,
        *,
        updated_by: str | None = None,
        description: str | None = None,
        timestamp: datetime | None = None,
        location: str | None = None,
    ) -> bool:
        """Move a loaded order to *target*. Returns False for a same-status no-op."""
        ensure_transition(order.status, target)
        if order.status == target:
            return False

        previous = order.status
        action = classify_inventory_action(previous, target)
        if action != InventoryAction.NONE:
            report = self._ledger.apply(action, order)
            for failure in report.failures:
                order.append_record(
                    INVENTORY_FAILURES_KEY,
                    {
                        "action": action.value,
                        "product_id": failure.product_id,
                        "error": failure.error,
                    },
                )

        order.transition_to(target)
        self._order_repo.save(order)
        self._tracking_log.record(
            order,
            target,
            description or describe(target),
            timestamp=timestamp,
            location=location,
            updated_by=updated_by,
        )
        logger.info(
            "Order %s status %s -> %s (inventory: %s)",
            order.order_number, previous.value, target.value, action.value.lower(),
        )

        if target == OrderStatus.DELIVERED:
            self._count_sales(order)
        return True

    def _count_sales(self, order: Order) -> None:
        effects = [
            SideEffect(
                f"sold_count:{item.product_id}",
                lambda product_id=item.product_id, qty=item.quantity.value: (
                    self._record_sale(product_id, qty)
                ),
            )
            for item in order.items
        ]
        report = self._runner.run(effects)
        if report.failures:
            record_failures(order, report.failures)
            self._order_repo.save(order)

    def _record_sale(self, product_id: str, quantity: int) -> None:
        product = self._product_repo.get_by_id(product_id)
        if product is None:
            raise EntityNotFoundError(f"Product not found: '{product_id}'")
        product.record_sale(quantity)
        self._product_repo.save(product)


class UpdateOrderHandler:
    """General field patch. A status in the patch goes through the status handler."""

    def __init__(self, order_repo: OrderRepository, status_handler: UpdateOrderStatusHandler) -> None:
        self._order_repo = order_repo
        self._status_handler = status_handler

    def handle(self, order_id: int, patch: OrderPatch) -> OrderDTO:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order #{order_id} not found")

        target: OrderStatus | None = None
        if patch.status is not None:
            target = OrderStatus.parse(patch.status)
            ensure_transition(order.status, target)

        if (
            patch.branch_id is not None
            and patch.branch_id != order.branch_id
            and order.status not in RELEASED_STATUSES
        ):
            # Stock was taken at the current branch and is given back there.
            raise InvalidStateError(
                f"Cannot move order {order.order_number} to branch {patch.branch_id} "
                f"while it is {order.status.value}",
                current_status=order.status,
            )

        if patch.notes is not None:
            order.notes = patch.notes
        if patch.branch_id is not None:
            order.branch_id = patch.branch_id
        if patch.payment_status is not None:
            try:
                order.payment_status = PaymentStatus(patch.payment_status.upper())
            except ValueError as exc:
                raise ValidationError(f"Unknown payment status {patch.payment_status!r}") from exc
        if patch.payment_id is not None:
            order.payment_id = patch.payment_id
        for key, value in patch.metadata.items():
            order.record(key, value)
        order.touch()
        self._order_repo.save(order)

        if target is not None:
            self._status_handler.apply(
                order, target, updated_by=patch.updated_by, description=patch.description
            )
        return to_order_dto(order)
