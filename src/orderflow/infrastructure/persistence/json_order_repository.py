"""JSON-file-backed implementations of OrderRepository and TrackingRepository."""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path

from orderflow.domain.model.order import (
    Order,
    OrderLineItem,
    OrderVoucher,
    PaymentMethod,
    PaymentStatus,
    ShippingAddress,
)
from orderflow.domain.model.order_status import OrderStatus
from orderflow.domain.model.tracking import CarrierInfo, OrderTracking, TrackingEntry
from orderflow.domain.model.value_objects import Quantity
from orderflow.domain.repository.order_repository import OrderRepository
from orderflow.domain.repository.tracking_repository import TrackingRepository
from orderflow.infrastructure.persistence.json_file import (
    JsonFile,
    dt_from_raw,
    dt_to_raw,
    money_from_raw,
    money_to_raw,
)


class JsonOrderRepository(OrderRepository):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    # --- OrderRepository interface --------------------------------------------

    def next_id(self) -> int:
        return self._file.next_id()

    def get_by_id(self, order_id: int) -> Order | None:
        raw = self._file.find(lambda r: r["id"] == order_id)
        return self._to_domain(raw) if raw else None

    def get_by_order_number(self, order_number: str) -> Order | None:
        raw = self._file.find(lambda r: r["order_number"] == order_number)
        return self._to_domain(raw) if raw else None

    def get_by_tracking_code(self, tracking_code: str) -> Order | None:
        raw = self._file.find(lambda r: r.get("tracking_code") == tracking_code)
        return self._to_domain(raw) if raw else None

    def save(self, order: Order) -> None:
        if order.id is None:
            order.id = self.next_id()
        self._file.upsert(self._to_raw(order), lambda r: r["id"] == order.id)

    def delete(self, order_id: int) -> None:
        self._file.remove(lambda r: r["id"] == order_id)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(order: Order) -> dict:
        return {
            "id": order.id,
            "order_number": order.order_number,
            "user_id": order.user_id,
            "status": order.status.value,
            "payment_method": order.payment_method.value,
            "payment_status": order.payment_status.value,
            "items": [
                {
                    "product_id": item.product_id,
                    "name": item.name,
                    "quantity": item.quantity.value,
                    "unit_price": money_to_raw(item.unit_price),
                    "variant_id": item.variant_id,
                    "image": item.image,
                    "options": item.options,
                    "weight": item.weight,
                }
                for item in order.items
            ],
            "subtotal": money_to_raw(order.subtotal),
            "tax": money_to_raw(order.tax),
            "shipping_fee": money_to_raw(order.shipping_fee),
            "total_price": money_to_raw(order.total_price),
            "final_price": money_to_raw(order.final_price),
            "voucher": (
                {
                    "voucher_id": order.voucher.voucher_id,
                    "code": order.voucher.code,
                    "discount_amount": money_to_raw(order.voucher.discount_amount),
                }
                if order.voucher
                else None
            ),
            "shipping_address": asdict(order.shipping_address),
            "branch_id": order.branch_id,
            "tracking_code": order.tracking_code,
            "payment_id": order.payment_id,
            "shipping_service_code": order.shipping_service_code,
            "notes": order.notes,
            "metadata": order.metadata,
            "created_at": dt_to_raw(order.created_at),
            "updated_at": dt_to_raw(order.updated_at),
        }

    @staticmethod
    def _to_domain(raw: dict) -> Order:
        items = [
            OrderLineItem(
                product_id=i["product_id"],
                name=i.get("name", ""),
                quantity=Quantity(i["quantity"]),
                unit_price=money_from_raw(i["unit_price"]),
                variant_id=i.get("variant_id"),
                image=i.get("image"),
                options=i.get("options") or {},
                weight=i.get("weight"),
            )
            for i in raw["items"]
        ]
        voucher = raw.get("voucher")
        return Order(
            id=raw["id"],
            order_number=raw["order_number"],
            user_id=raw["user_id"],
            items=items,
            subtotal=money_from_raw(raw["subtotal"]),
            total_price=money_from_raw(raw["total_price"]),
            final_price=money_from_raw(raw["final_price"]),
            shipping_address=ShippingAddress(**raw["shipping_address"]),
            tax=money_from_raw(raw["tax"]),
            shipping_fee=money_from_raw(raw["shipping_fee"]),
            voucher=(
                OrderVoucher(
                    discount_amount=money_from_raw(voucher["discount_amount"]),
                    voucher_id=voucher.get("voucher_id"),
                    code=voucher.get("code"),
                )
                if voucher
                else None
            ),
            branch_id=raw.get("branch_id"),
            payment_method=PaymentMethod(raw["payment_method"]),
            payment_status=PaymentStatus(raw["payment_status"]),
            status=OrderStatus(raw["status"]),
            tracking_code=raw.get("tracking_code"),
            payment_id=raw.get("payment_id"),
            shipping_service_code=raw.get("shipping_service_code"),
            notes=raw.get("notes"),
            metadata=raw.get("metadata") or {},
            created_at=dt_from_raw(raw["created_at"]),
            updated_at=dt_from_raw(raw["updated_at"]),
        )


class JsonTrackingRepository(TrackingRepository):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    def get_by_order_id(self, order_id: int) -> OrderTracking | None:
        raw = self._file.find(lambda r: r["order_id"] == order_id)
        return self._to_domain(raw) if raw else None

    def save(self, tracking: OrderTracking) -> None:
        self._file.upsert(self._to_raw(tracking), lambda r: r["order_id"] == tracking.order_id)

    def delete_by_order_id(self, order_id: int) -> None:
        self._file.remove(lambda r: r["order_id"] == order_id)

    @staticmethod
    def _to_raw(tracking: OrderTracking) -> dict:
        return {
            "order_id": tracking.order_id,
            "status": tracking.status.value,
            "history": [
                {
                    "status": e.status.value,
                    "description": e.description,
                    "timestamp": dt_to_raw(e.timestamp),
                    "location": e.location,
                    "updated_by": e.updated_by,
                }
                for e in tracking.history
            ],
            "carrier": asdict(tracking.carrier) if tracking.carrier else None,
            "details": tracking.details,
            "updated_at": dt_to_raw(tracking.updated_at),
        }

    @staticmethod
    def _to_domain(raw: dict) -> OrderTracking:
        carrier = raw.get("carrier")
        return OrderTracking(
            order_id=raw["order_id"],
            status=OrderStatus(raw["status"]),
            history=[
                TrackingEntry(
                    status=OrderStatus(e["status"]),
                    description=e["description"],
                    timestamp=dt_from_raw(e["timestamp"]),
                    location=e.get("location"),
                    updated_by=e.get("updated_by"),
                )
                for e in raw.get("history", [])
            ],
            carrier=CarrierInfo(**carrier) if carrier else None,
            details=raw.get("details") or {},
            updated_at=dt_from_raw(raw["updated_at"]),
        )
