"""Application service: Show Inventory use case (query)."""

from __future__ import annotations

from orderflow.application.dto import InventoryLineDTO
from orderflow.domain.exceptions import EntityNotFoundError
from orderflow.domain.model.inventory import StockLevel
from orderflow.domain.repository.product_repository import ProductRepository


class ShowInventoryHandler:

    def __init__(self, product_repo: ProductRepository) -> None:
        self._product_repo = product_repo

    def handle(self, product_id: str) -> list[InventoryLineDTO]:
        product = self._product_repo.get_by_id(product_id)
        if product is None:
            raise EntityNotFoundError(f"Product not found: '{product_id}'")

        stock = product.stock
        lines: list[InventoryLineDTO] = []
        for branch in stock.branches:
            lines.append(
                InventoryLineDTO(StockLevel.BRANCH.value, branch.branch_id, branch.quantity)
            )
            for variant in stock.variants:
                if variant.branch_id != branch.branch_id:
                    continue
                lines.append(
                    InventoryLineDTO(
                        StockLevel.VARIANT.value, variant.branch_id, variant.quantity,
                        variant_id=variant.variant_id,
                    )
                )
                lines.extend(
                    InventoryLineDTO(
                        StockLevel.COMBINATION.value, combo.branch_id, combo.quantity,
                        variant_id=combo.variant_id, combination_id=combo.combination_id,
                    )
                    for combo in stock.combinations
                    if combo.branch_id == branch.branch_id
                    and combo.variant_id == variant.variant_id
                )
        return lines
