"""Catalog aggregates touched by the order pipeline.

Products live independently of orders. The pipeline only reads their
weight, mutates their stock ledger and bumps their sold counter; the rest of
the catalog (descriptions, images, SEO) belongs to another service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from orderflow.domain.exceptions import ValidationError
from orderflow.domain.model.inventory import StockLedger
from orderflow.domain.model.value_objects import Money


@dataclass
class ProductVariant:
    variant_id: str
    sku: str
    options: dict[str, Any] = field(default_factory=dict)
    price: Money | None = None


@dataclass
class Product:
    """A product in the catalog, with its per-branch stock.

    This is an aggregate root: the stock ledger is only ever persisted
    together with the product, so all three stock levels change atomically.
    """

    id: str
    name: str
    price: Money
    sku: str = ""
    weight: int | None = None  # grams
    variants: list[ProductVariant] = field(default_factory=list)
    stock: StockLedger = field(default_factory=StockLedger)
    sold_count: int = 0

    @property
    def has_declared_variants(self) -> bool:
        return bool(self.variants)

    def record_sale(self, quantity: int) -> None:
        """Count *quantity* units as sold (called once an order is delivered)."""
        if quantity <= 0:
            raise ValidationError("Sold quantity must be positive")
        self.sold_count += quantity


@dataclass(frozen=True)
class Branch:
    """A fulfillment location; its address codes are the carrier sender."""

    id: str
    name: str
    address: str
    phone: str
    ward_code: str = ""
    district_code: str = ""
    province_code: str = ""
