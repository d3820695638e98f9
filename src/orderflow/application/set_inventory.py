"""Application service: Set Inventory use case."""

from __future__ import annotations

import logging

from orderflow.domain.exceptions import EntityNotFoundError
from orderflow.domain.model.inventory import StockAdjustment
from orderflow.domain.model.value_objects import StockLocator
from orderflow.domain.repository.product_repository import ProductRepository

logger = logging.getLogger(__name__)


class SetInventoryHandler:

    def __init__(self, product_repo: ProductRepository) -> None:
        self._product_repo = product_repo

    def handle(
        self,
        product_id: str,
        branch_id: str,
        quantity: int,
        variant_id: str | None = None,
        combination_id: str | None = None,
    ) -> StockAdjustment:
        """Set one stock leaf to an absolute quantity and roll the totals up."""
        product = self._product_repo.get_by_id(product_id)
        if product is None:
            raise EntityNotFoundError(f"Product not found: '{product_id}'")

        locator = StockLocator(branch_id, variant_id, combination_id)
        adjustment = product.stock.set_quantity(
            locator, quantity, has_declared_variants=product.has_declared_variants
        )
        self._product_repo.save(product)
        logger.info(
            "Stock for %s at %s set: %d -> %d", product_id, locator,
            adjustment.before, adjustment.after,
        )
        return adjustment
