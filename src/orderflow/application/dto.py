"""Data Transfer Objects — plain containers that cross layer boundaries.

Inputs (commands, inbound callbacks) are parsed from the JSON payloads the
storefront, the carrier and the payment gateways send. Both ``snake_case``
and the storefront's ``camelCase`` keys are accepted. Outputs are flat,
display-ready views of the domain objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from orderflow.domain.exceptions import ValidationError
from orderflow.domain.model.order import Order, ShippingAddress
from orderflow.domain.model.tracking import OrderTracking


def _get(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _decimal(value: Any, label: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid amount for {label}: {value!r}") from exc


def _optional_str(value: Any) -> str | None:
    return str(value) if value not in (None, "") else None


# --- Order creation -----------------------------------------------------------

@dataclass(frozen=True)
class OrderItemSpec:
    """Input: one line of the checkout payload."""

    product_id: str
    quantity: int
    unit_price: Decimal
    name: str = ""
    variant_id: str | None = None
    image: str | None = None
    options: dict[str, Any] = field(default_factory=dict)
    weight: int | None = None

    @staticmethod
    def from_payload(data: dict[str, Any]) -> OrderItemSpec:
        product_id = _get(data, "product_id", "productId")
        if not product_id:
            raise ValidationError("Order item is missing a product id")
        quantity = _get(data, "quantity")
        if not isinstance(quantity, int) or isinstance(quantity, bool):
            raise ValidationError(f"Order item quantity must be an integer, got {quantity!r}")
        weight = _get(data, "weight")
        return OrderItemSpec(
            product_id=str(product_id),
            quantity=quantity,
            unit_price=_decimal(_get(data, "unit_price", "price", default=0), "item price"),
            name=str(_get(data, "name", default="")),
            variant_id=_optional_str(_get(data, "variant_id", "variantId")),
            image=_optional_str(_get(data, "image")),
            options=dict(_get(data, "options", default={}) or {}),
            weight=int(weight) if weight is not None else None,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "name": self.name,
            "variant_id": self.variant_id,
            "image": self.image,
            "options": self.options,
            "weight": self.weight,
        }


_ADDRESS_FIELDS = {
    "full_name": ("full_name", "fullName"),
    "phone": ("phone",),
    "address_line1": ("address_line1", "addressLine1"),
    "address_line2": ("address_line2", "addressLine2"),
    "ward": ("ward",),
    "ward_code": ("ward_code", "wardCode"),
    "district": ("district",),
    "district_code": ("district_code", "districtCode"),
    "province": ("province",),
    "province_code": ("province_code", "provinceCode"),
    "email": ("email",),
    "postal_code": ("postal_code", "postalCode"),
    "country": ("country",),
}
_REQUIRED_ADDRESS_FIELDS = ("full_name", "phone", "address_line1", "ward", "district", "province")


def address_from_payload(data: dict[str, Any]) -> ShippingAddress:
    values = {name: _get(data, *keys) for name, keys in _ADDRESS_FIELDS.items()}
    missing = [name for name in _REQUIRED_ADDRESS_FIELDS if not values[name]]
    if missing:
        raise ValidationError(f"Shipping address is missing: {', '.join(missing)}")
    if values["country"] is None:
        del values["country"]
    return ShippingAddress(**{k: (str(v) if v is not None else None) for k, v in values.items()})


def address_to_payload(address: ShippingAddress) -> dict[str, Any]:
    return {name: getattr(address, name) for name in _ADDRESS_FIELDS}


@dataclass(frozen=True)
class CreateOrderCommand:
    """Input: a checkout, as sent by the storefront or held in a draft."""

    items: list[OrderItemSpec]
    shipping_address: ShippingAddress
    subtotal: Decimal
    total_price: Decimal
    tax: Decimal = Decimal("0")
    shipping_fee: Decimal = Decimal("0")
    final_price: Decimal | None = None
    voucher_id: str | None = None
    voucher_code: str | None = None
    discount_amount: Decimal = Decimal("0")
    branch_id: str | None = None
    payment_method: str = "COD"
    order_number: str | None = None
    shipping_service_code: str | None = None
    notes: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_payload(data: dict[str, Any]) -> CreateOrderCommand:
        if not isinstance(data, dict):
            raise ValidationError("Order payload must be a JSON object")
        raw_items = _get(data, "items", default=[])
        if not isinstance(raw_items, list):
            raise ValidationError("Order items must be a list")
        items = [OrderItemSpec.from_payload(i) for i in raw_items]

        address = _get(data, "shipping_address", "shippingAddress")
        if not isinstance(address, dict):
            raise ValidationError("Order payload is missing a shipping address")

        tax = _decimal(_get(data, "tax", default=0), "tax")
        shipping_fee = _decimal(_get(data, "shipping_fee", "shippingFee", default=0), "shipping fee")
        raw_subtotal = _get(data, "subtotal")
        subtotal = (
            _decimal(raw_subtotal, "subtotal")
            if raw_subtotal is not None
            else sum((i.unit_price * i.quantity for i in items), Decimal("0"))
        )
        raw_total = _get(data, "total_price", "totalPrice")
        total = (
            _decimal(raw_total, "total price")
            if raw_total is not None
            else subtotal + tax + shipping_fee
        )
        raw_final = _get(data, "final_price", "finalPrice")

        voucher = _get(data, "voucher", default={}) or {}
        discount = _get(voucher, "discount_amount", "discountAmount", default=0)

        return CreateOrderCommand(
            items=items,
            shipping_address=address_from_payload(address),
            subtotal=subtotal,
            total_price=total,
            tax=tax,
            shipping_fee=shipping_fee,
            final_price=_decimal(raw_final, "final price") if raw_final is not None else None,
            voucher_id=_optional_str(_get(voucher, "voucher_id", "voucherId")),
            voucher_code=_optional_str(_get(voucher, "code")),
            discount_amount=_decimal(discount, "voucher discount"),
            branch_id=_optional_str(_get(data, "branch_id", "branchId")),
            payment_method=str(_get(data, "payment_method", "paymentMethod", default="COD")),
            order_number=_optional_str(_get(data, "order_number", "orderNumber")),
            shipping_service_code=_optional_str(
                _get(data, "shipping_service_code", "shippingServiceCode")
            ),
            notes=_optional_str(_get(data, "notes")),
            metadata=dict(_get(data, "metadata", default={}) or {}),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "items": [i.to_payload() for i in self.items],
            "shipping_address": address_to_payload(self.shipping_address),
            "subtotal": str(self.subtotal),
            "total_price": str(self.total_price),
            "tax": str(self.tax),
            "shipping_fee": str(self.shipping_fee),
            "payment_method": self.payment_method,
            "metadata": self.metadata,
        }
        if self.final_price is not None:
            payload["final_price"] = str(self.final_price)
        if self.voucher_id or self.voucher_code or self.discount_amount:
            payload["voucher"] = {
                "voucher_id": self.voucher_id,
                "code": self.voucher_code,
                "discount_amount": str(self.discount_amount),
            }
        for key in ("branch_id", "order_number", "shipping_service_code", "notes"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


# --- Order update -------------------------------------------------------------

@dataclass(frozen=True)
class OrderPatch:
    """Input: fields an operator (or the pipeline itself) changes on an order.

    ``None`` means "leave as is". ``description`` overrides the default
    tracking text when the status changes.
    """

    status: str | None = None
    updated_by: str | None = None
    description: str | None = None
    notes: str | None = None
    branch_id: str | None = None
    payment_status: str | None = None
    payment_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


# --- Inbound callbacks --------------------------------------------------------

CARRIER_TIME_FORMAT = "%d/%m/%Y %H:%M:%S"


@dataclass(frozen=True)
class CarrierWebhookEvent:
    """Input: the ``DATA`` object of a carrier status webhook."""

    tracking_code: str
    status_code: int
    status_date: str = ""
    status_name: str = ""
    note: str = ""
    location: str | None = None
    money_collection: Decimal | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_payload(data: dict[str, Any]) -> CarrierWebhookEvent:
        if not isinstance(data, dict):
            raise ValidationError("Carrier webhook DATA must be an object")
        tracking_code = _get(data, "ORDER_NUMBER")
        if not tracking_code:
            raise ValidationError("Carrier webhook is missing ORDER_NUMBER")
        raw_status = _get(data, "ORDER_STATUS")
        try:
            status_code = int(str(raw_status).strip())
        except ValueError as exc:
            raise ValidationError(f"Invalid carrier status code: {raw_status!r}") from exc
        money = _get(data, "MONEY_COLLECTION")
        return CarrierWebhookEvent(
            tracking_code=str(tracking_code),
            status_code=status_code,
            status_date=str(_get(data, "ORDER_STATUSDATE", default="")),
            status_name=str(_get(data, "STATUS_NAME", default="")),
            note=str(_get(data, "NOTE", default="")),
            location=_optional_str(_get(data, "LOCALION_CURRENTLY")),
            money_collection=_decimal(money, "MONEY_COLLECTION") if money is not None else None,
            raw=dict(data),
        )

    def parsed_timestamp(self, utc_offset_hours: float) -> datetime | None:
        """``dd/mm/yyyy HH:MM:SS`` in carrier local time, as aware UTC."""
        try:
            local = datetime.strptime(self.status_date.strip(), CARRIER_TIME_FORMAT)
        except ValueError:
            return None
        tz = timezone(timedelta(hours=utc_offset_hours))
        return local.replace(tzinfo=tz).astimezone(timezone.utc)


@dataclass(frozen=True)
class GatewayCallback:
    """Input: a payment gateway's success/failure notification.

    Accepts the wallet gateway's IPN shape (``requestId``, ``resultCode``,
    ``transId``, ``extraData``) as well as plain ``snake_case`` keys.
    """

    gateway: str
    request_id: str
    result_code: int
    amount: Decimal
    transaction_id: str | None = None
    token: str | None = None
    message: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.result_code == 0

    @staticmethod
    def from_payload(data: dict[str, Any], gateway: str | None = None) -> GatewayCallback:
        if not isinstance(data, dict):
            raise ValidationError("Gateway callback must be a JSON object")
        request_id = _get(data, "request_id", "requestId")
        if not request_id:
            raise ValidationError("Gateway callback is missing a request id")
        raw_code = _get(data, "result_code", "resultCode", default=0)
        try:
            result_code = int(raw_code)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid gateway result code: {raw_code!r}") from exc
        return GatewayCallback(
            gateway=str(gateway or _get(data, "gateway", default="wallet")),
            request_id=str(request_id),
            result_code=result_code,
            amount=_decimal(_get(data, "amount", default=0), "amount"),
            transaction_id=_optional_str(_get(data, "transaction_id", "transId")),
            token=_optional_str(_get(data, "token", "extraData")),
            message=_optional_str(_get(data, "message")),
            raw=dict(data),
        )


# --- Outputs ------------------------------------------------------------------

@dataclass(frozen=True)
class OrderLineItemDTO:
    product_id: str
    name: str
    quantity: int
    unit_price: str
    line_total: str
    variant_id: str | None = None


@dataclass(frozen=True)
class TrackingEntryDTO:
    status: str
    description: str
    timestamp: str
    location: str | None = None
    updated_by: str | None = None


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as displayed to the user."""

    id: int
    order_number: str
    user_id: str
    status: str
    payment_method: str
    payment_status: str
    items: list[OrderLineItemDTO]
    total: str
    discount: str
    final_price: str
    branch_id: str | None
    tracking_code: str | None
    created_at: str
    history: list[TrackingEntryDTO] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


def to_order_dto(order: Order, tracking: OrderTracking | None = None) -> OrderDTO:
    discount = order.voucher.discount_amount if order.voucher else None
    return OrderDTO(
        id=order.id,  # type: ignore[arg-type]
        order_number=order.order_number,
        user_id=order.user_id,
        status=order.status.value,
        payment_method=order.payment_method.value,
        payment_status=order.payment_status.value,
        items=[
            OrderLineItemDTO(
                product_id=item.product_id,
                name=item.name,
                quantity=item.quantity.value,
                unit_price=str(item.unit_price),
                line_total=str(item.line_total),
                variant_id=item.variant_id,
            )
            for item in order.items
        ],
        total=str(order.total_price),
        discount=str(discount) if discount is not None else "0 VND",
        final_price=str(order.final_price),
        branch_id=order.branch_id,
        tracking_code=order.tracking_code,
        created_at=order.created_at.strftime("%Y-%m-%d %H:%M UTC"),
        history=[
            TrackingEntryDTO(
                status=e.status.value,
                description=e.description,
                timestamp=e.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC"),
                location=e.location,
                updated_by=e.updated_by,
            )
            for e in (tracking.history if tracking else [])
        ],
        metadata=dict(order.metadata),
    )


@dataclass(frozen=True)
class WebhookResult:
    outcome: str  # unknown_tracking_code | duplicate | recorded | status_updated
    order_id: int | None = None
    status: str | None = None


@dataclass(frozen=True)
class PromotionResult:
    # created | confirmed | already_processed | draft_missing | order_missing
    # | payment_missing | payment_failed | create_failed
    outcome: str
    order_id: int | None = None


@dataclass(frozen=True)
class ShipmentResult:
    order_id: int
    tracking_code: str
    status: str
    cod_mismatch: bool = False


@dataclass(frozen=True)
class CheckoutResult:
    request_id: str
    payment_id: int
    token: str
    is_new_order: bool


@dataclass(frozen=True)
class InventoryLineDTO:
    level: str
    branch_id: str
    quantity: int
    variant_id: str | None = None
    combination_id: str | None = None
