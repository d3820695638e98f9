"""Domain service: Inventory Ledger.

Applies an order's line items to the per-product stock ledgers. Each
item is handled on its own: a missing product, a missing stock record or
a bad id is logged and reported back, and the loop moves on to the next
item. Stock adjustment is best-effort relative to the order mutation
that triggered it, so nothing here raises to the caller.

All three stock levels of a product live in the product document, so a
single ``save()`` per item persists the leaf and both rollups together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from orderflow.domain.exceptions import DomainException, EntityNotFoundError
from orderflow.domain.model.inventory import StockAdjustment
from orderflow.domain.model.order import Order, OrderLineItem
from orderflow.domain.repository.product_repository import ProductRepository
from orderflow.domain.service.inventory_policy import InventoryAction
from orderflow.domain.service.stock_locator import resolve_stock_locator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemFailure:
    product_id: str
    error: str


@dataclass
class InventoryReport:
    action: InventoryAction
    adjustments: list[StockAdjustment] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class InventoryLedger:

    def __init__(self, product_repo: ProductRepository, default_branch_id: str) -> None:
        self._product_repo = product_repo
        self._default_branch_id = default_branch_id

    def apply(self, action: InventoryAction, order: Order) -> InventoryReport:
        if action == InventoryAction.DECREMENT:
            return self.decrement_for_order(order)
        if action == InventoryAction.RESTORE:
            return self.restore_for_order(order)
        return InventoryReport(action)

    def decrement_for_order(self, order: Order) -> InventoryReport:
        """Take every item's quantity out of stock, clamping at zero."""
        return self._run(InventoryAction.DECREMENT, order)

    def restore_for_order(self, order: Order) -> InventoryReport:
        """Give every item's quantity back to stock."""
        return self._run(InventoryAction.RESTORE, order)

    # --- Internal -------------------------------------------------------------

    def _run(self, action: InventoryAction, order: Order) -> InventoryReport:
        report = InventoryReport(action)
        for item in order.items:
            try:
                report.adjustments.append(self._adjust_item(action, order, item))
            except (DomainException, KeyError, TypeError, ValueError) as exc:
                logger.exception(
                    "Inventory %s failed for order %s, product %s",
                    action.value.lower(), order.order_number, item.product_id,
                )
                report.failures.append(ItemFailure(item.product_id, str(exc)))
        return report

    def _adjust_item(
        self, action: InventoryAction, order: Order, item: OrderLineItem
    ) -> StockAdjustment:
        product = self._product_repo.get_by_id(item.product_id)
        if product is None:
            raise EntityNotFoundError(f"Product not found: '{item.product_id}'")

        locator = resolve_stock_locator(item, order.branch_id, self._default_branch_id)
        qty = item.quantity.value
        if action == InventoryAction.DECREMENT:
            adjustment = product.stock.decrement(
                locator, qty, has_declared_variants=product.has_declared_variants
            )
        else:
            adjustment = product.stock.restore(
                locator, qty, has_declared_variants=product.has_declared_variants
            )
        self._product_repo.save(product)

        if action == InventoryAction.DECREMENT and adjustment.before < qty:
            logger.warning(
                "Oversold %s at %s: wanted %d, had %d; clamped to 0",
                product.id, locator, qty, adjustment.before,
            )
        logger.info(
            "Stock %s for %s at %s: %d -> %d (%s level)",
            action.value.lower(), product.id, locator,
            adjustment.before, adjustment.after, adjustment.level.value.lower(),
        )
        return adjustment
