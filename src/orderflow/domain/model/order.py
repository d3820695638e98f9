"""Order aggregate — the core of the domain.

The Order is an aggregate root that owns its line items, money breakdown and
audit metadata. Status changes go through ``transition_to`` which enforces
the state machine in ``order_status``.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from orderflow.domain.exceptions import ValidationError
from orderflow.domain.model.order_status import (
    INITIAL_STATUS,
    OrderStatus,
    ensure_transition,
)
from orderflow.domain.model.value_objects import Money, Quantity


class PaymentMethod(Enum):
    COD = "COD"
    BANK_TRANSFER = "BANK_TRANSFER"
    CREDIT_CARD = "CREDIT_CARD"
    WALLET = "WALLET"


class PaymentStatus(Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


@dataclass
class OrderLineItem:
    """Captures the price snapshot of a product at order-creation time.

    ``options`` is the free-form payload the storefront sent (selected
    variant values, branch overrides from older clients, ...). Stock
    lookups never read it directly; see ``resolve_stock_locator``.
    """

    product_id: str
    name: str
    quantity: Quantity
    unit_price: Money  # locked at order-creation time
    variant_id: str | None = None
    image: str | None = None
    options: dict[str, Any] = field(default_factory=dict)
    weight: int | None = None  # grams; overrides the catalog weight

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value


@dataclass(frozen=True)
class ShippingAddress:
    full_name: str
    phone: str
    address_line1: str
    ward: str
    district: str
    province: str
    address_line2: str | None = None
    ward_code: str | None = None
    district_code: str | None = None
    province_code: str | None = None
    email: str | None = None
    postal_code: str | None = None
    country: str = "Vietnam"

    @property
    def street(self) -> str:
        if self.address_line2:
            return f"{self.address_line1}, {self.address_line2}"
        return self.address_line1


@dataclass(frozen=True)
class OrderVoucher:
    discount_amount: Money
    voucher_id: str | None = None
    code: str | None = None


ORDER_NUMBER_PREFIX = "YM"


def generate_order_number(now: datetime | None = None, rng: random.Random | None = None) -> str:
    """``YM`` + yymmdd + 4 random digits, e.g. ``YM2410170042``."""
    now = now or datetime.now(timezone.utc)
    rng = rng or random.Random()
    return f"{ORDER_NUMBER_PREFIX}{now:%y%m%d}{rng.randrange(10000):04d}"


@dataclass
class Order:
    """Aggregate root for customer orders.

    Use the ``Order.create()`` factory for new orders; it enforces the
    pricing rules. The ``__init__`` is intentionally simple so the
    repository can reconstitute persisted orders without re-validating.
    """

    id: int | None
    order_number: str
    user_id: str
    items: list[OrderLineItem]
    subtotal: Money
    total_price: Money
    final_price: Money
    shipping_address: ShippingAddress
    tax: Money = field(default_factory=Money.zero)
    shipping_fee: Money = field(default_factory=Money.zero)
    voucher: OrderVoucher | None = None
    branch_id: str | None = None
    payment_method: PaymentMethod = PaymentMethod.COD
    payment_status: PaymentStatus = PaymentStatus.PENDING
    status: OrderStatus = INITIAL_STATUS
    tracking_code: str | None = None
    payment_id: str | None = None
    shipping_service_code: str | None = None
    notes: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        order_number: str,
        user_id: str,
        items: list[OrderLineItem],
        shipping_address: ShippingAddress,
        subtotal: Money,
        total_price: Money,
        *,
        tax: Money | None = None,
        shipping_fee: Money | None = None,
        voucher: OrderVoucher | None = None,
        final_price: Money | None = None,
        branch_id: str | None = None,
        payment_method: PaymentMethod = PaymentMethod.COD,
        shipping_service_code: str | None = None,
        notes: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Order:
        """Create a new order in the initial status, enforcing pricing rules."""
        if not user_id:
            raise ValidationError("Order owner is required")

        if not items:
            raise ValidationError("Order must contain at least one item")

        discount = voucher.discount_amount if voucher else Money.zero()
        if discount > total_price:
            raise ValidationError(
                f"Voucher discount {discount} exceeds order total {total_price}"
            )
        expected_final = total_price - discount
        if final_price is not None and final_price != expected_final:
            raise ValidationError(
                f"Final price {final_price} does not match total minus discount "
                f"({expected_final})"
            )

        return Order(
            id=None,
            order_number=order_number,
            user_id=user_id,
            items=list(items),
            subtotal=subtotal,
            total_price=total_price,
            final_price=expected_final,
            shipping_address=shipping_address,
            tax=tax or Money.zero(),
            shipping_fee=shipping_fee or Money.zero(),
            voucher=voucher,
            branch_id=branch_id,
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING,
            status=INITIAL_STATUS,
            shipping_service_code=shipping_service_code,
            notes=notes,
            metadata=dict(metadata or {}),
        )

    # --- State transitions ----------------------------------------------------

    def transition_to(self, target: OrderStatus) -> bool:
        """Move to *target*; returns False when already there.

        Raises InvalidStateError when the state machine forbids the move.
        """
        ensure_transition(self.status, target)
        if target == self.status:
            return False
        self.status = target
        self.touch()
        return True

    # --- Metadata (audit trail for cross-system side effects) -----------------

    def record(self, key: str, value: Any) -> None:
        self.metadata[key] = value
        self.touch()

    def append_record(self, key: str, value: Any) -> None:
        self.metadata.setdefault(key, []).append(value)
        self.touch()

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)

    # --- Computed properties --------------------------------------------------

    @property
    def is_cod(self) -> bool:
        return self.payment_method == PaymentMethod.COD

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity.value for item in self.items)
