"""Ports for the external collaborators the order pipeline calls out to.

The application layer depends only on these abstractions. Adapters live in
``orderflow.infrastructure.adapters``; tests use the fakes in
``tests/fakes.py``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any


# --- Carrier payloads ---------------------------------------------------------

@dataclass(frozen=True)
class ShipmentParty:
    name: str
    address: str
    phone: str
    ward_code: str = ""
    district_code: str = ""
    province_code: str = ""


@dataclass(frozen=True)
class ShipmentItem:
    name: str
    quantity: int
    price: Decimal
    weight: int  # grams per unit


@dataclass(frozen=True)
class ShipmentRequest:
    """Everything the carrier needs to open a shipment for one order."""

    order_number: str
    sender: ShipmentParty
    receiver: ShipmentParty
    items: list[ShipmentItem]
    product_price: Decimal
    money_collection: Decimal   # amount the courier collects on delivery
    money_total: Decimal
    is_cod: bool
    service_code: str = "LCOD"
    note: str = ""
    voucher_amount: Decimal = Decimal("0")

    @property
    def description(self) -> str:
        return ", ".join(f"{i.name} x{i.quantity}" for i in self.items)

    @property
    def total_quantity(self) -> int:
        return sum(i.quantity for i in self.items)

    @property
    def total_weight(self) -> int:
        return sum(i.weight * i.quantity for i in self.items)


@dataclass(frozen=True)
class ShipmentReceipt:
    tracking_code: str
    money_collection: Decimal | None = None
    fee: Decimal | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CarrierActionResult:
    success: bool
    message: str = ""
    raw: dict[str, Any] = field(default_factory=dict)


# --- Ports --------------------------------------------------------------------

class CarrierClient(ABC):

    name: str = "carrier"

    @abstractmethod
    def create_shipment(self, request: ShipmentRequest) -> ShipmentReceipt:
        """Open a shipment; raises CarrierError when the carrier refuses."""

    @abstractmethod
    def get_shipment_info(self, tracking_code: str) -> dict[str, Any]:
        """Return the carrier's current view of a shipment."""

    @abstractmethod
    def request_cancellation(self, tracking_code: str, reason: str) -> CarrierActionResult:
        """Ask the carrier to cancel a shipment."""

    @abstractmethod
    def request_return(self, tracking_code: str, reason: str) -> CarrierActionResult:
        """Ask the carrier to pick a delivered parcel back up."""

    @abstractmethod
    def resend_webhook(self, tracking_code: str, reason: str | None = None) -> CarrierActionResult:
        """Ask the carrier to deliver the latest status webhook again."""


class CartService(ABC):

    @abstractmethod
    def clear_cart(self, user_id: str) -> None:
        """Empty the user's cart."""


class VoucherService(ABC):

    @abstractmethod
    def mark_used(self, voucher_id: str, user_id: str, order_id: int) -> None:
        """Record that *user_id* consumed the voucher on *order_id*."""
