"""JSON-file-backed implementations of ProductRepository and BranchRepository.

The stock ledger is stored inside each product document (``inventory``,
``variant_inventory``, ``combination_inventory``), so one write persists
all three levels.
"""

from __future__ import annotations

from pathlib import Path

from orderflow.domain.model.inventory import (
    BranchStock,
    CombinationStock,
    StockLedger,
    VariantStock,
)
from orderflow.domain.model.product import Branch, Product, ProductVariant
from orderflow.domain.repository.product_repository import BranchRepository, ProductRepository
from orderflow.infrastructure.persistence.json_file import (
    JsonFile,
    money_from_raw,
    money_to_raw,
)


class JsonProductRepository(ProductRepository):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    # --- ProductRepository interface ------------------------------------------

    def get_by_id(self, product_id: str) -> Product | None:
        raw = self._file.find(lambda r: r["id"] == product_id)
        return self._to_domain(raw) if raw else None

    def save(self, product: Product) -> None:
        self._file.upsert(self._to_raw(product), lambda r: r["id"] == product.id)

    # --- Serialization helpers ------------------------------------------------

    @staticmethod
    def _to_raw(product: Product) -> dict:
        return {
            "id": product.id,
            "name": product.name,
            "sku": product.sku,
            "price": money_to_raw(product.price),
            "weight": product.weight,
            "sold_count": product.sold_count,
            "variants": [
                {
                    "variant_id": v.variant_id,
                    "sku": v.sku,
                    "options": v.options,
                    "price": money_to_raw(v.price) if v.price else None,
                }
                for v in product.variants
            ],
            "inventory": [
                {
                    "branch_id": b.branch_id,
                    "quantity": b.quantity,
                    "low_stock_threshold": b.low_stock_threshold,
                }
                for b in product.stock.branches
            ],
            "variant_inventory": [
                {"branch_id": v.branch_id, "variant_id": v.variant_id, "quantity": v.quantity}
                for v in product.stock.variants
            ],
            "combination_inventory": [
                {
                    "branch_id": c.branch_id,
                    "variant_id": c.variant_id,
                    "combination_id": c.combination_id,
                    "quantity": c.quantity,
                }
                for c in product.stock.combinations
            ],
        }

    @staticmethod
    def _to_domain(raw: dict) -> Product:
        return Product(
            id=raw["id"],
            name=raw["name"],
            price=money_from_raw(raw["price"]),
            sku=raw.get("sku", ""),
            weight=raw.get("weight"),
            sold_count=raw.get("sold_count", 0),
            variants=[
                ProductVariant(
                    variant_id=v["variant_id"],
                    sku=v.get("sku", ""),
                    options=v.get("options") or {},
                    price=money_from_raw(v["price"]) if v.get("price") else None,
                )
                for v in raw.get("variants", [])
            ],
            stock=StockLedger(
                branches=[
                    BranchStock(
                        b["branch_id"], b.get("quantity", 0), b.get("low_stock_threshold", 5)
                    )
                    for b in raw.get("inventory", [])
                ],
                variants=[
                    VariantStock(v["branch_id"], v["variant_id"], v.get("quantity", 0))
                    for v in raw.get("variant_inventory", [])
                ],
                combinations=[
                    CombinationStock(
                        c["branch_id"], c["variant_id"], c["combination_id"], c.get("quantity", 0)
                    )
                    for c in raw.get("combination_inventory", [])
                ],
            ),
        )


class JsonBranchRepository(BranchRepository):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    def get_by_id(self, branch_id: str) -> Branch | None:
        raw = self._file.find(lambda r: r["id"] == branch_id)
        if raw is None:
            return None
        return Branch(
            id=raw["id"],
            name=raw["name"],
            address=raw["address"],
            phone=raw["phone"],
            ward_code=raw.get("ward_code", ""),
            district_code=raw.get("district_code", ""),
            province_code=raw.get("province_code", ""),
        )
