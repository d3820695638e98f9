"""JSON-file-backed payments and checkout drafts."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from orderflow.domain.model.order import PaymentMethod, PaymentStatus
from orderflow.domain.model.payment import Payment, PendingOrder
from orderflow.domain.repository.payment_repository import (
    PaymentRepository,
    PendingOrderRepository,
)
from orderflow.infrastructure.persistence.json_file import (
    JsonFile,
    dt_from_raw,
    dt_to_raw,
    money_from_raw,
    money_to_raw,
)


class JsonPaymentRepository(PaymentRepository):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    def next_id(self) -> int:
        return self._file.next_id()

    def get_by_request_id(self, request_id: str) -> Payment | None:
        raw = self._file.find(lambda r: r["request_id"] == request_id)
        if raw is None:
            return None
        return Payment(
            id=raw["id"],
            request_id=raw["request_id"],
            amount=money_from_raw(raw["amount"]),
            method=PaymentMethod(raw["method"]),
            status=PaymentStatus(raw["status"]),
            user_id=raw.get("user_id"),
            order_id=raw.get("order_id"),
            gateway_order_id=raw.get("gateway_order_id"),
            transaction_id=raw.get("transaction_id"),
            details=raw.get("details") or {},
            created_at=dt_from_raw(raw["created_at"]),
            updated_at=dt_from_raw(raw["updated_at"]),
        )

    def save(self, payment: Payment) -> None:
        if payment.id is None:
            payment.id = self.next_id()
        raw = {
            "id": payment.id,
            "request_id": payment.request_id,
            "amount": money_to_raw(payment.amount),
            "method": payment.method.value,
            "status": payment.status.value,
            "user_id": payment.user_id,
            "order_id": payment.order_id,
            "gateway_order_id": payment.gateway_order_id,
            "transaction_id": payment.transaction_id,
            "details": payment.details,
            "created_at": dt_to_raw(payment.created_at),
            "updated_at": dt_to_raw(payment.updated_at),
        }
        self._file.upsert(raw, lambda r: r["id"] == payment.id)


class JsonPendingOrderRepository(PendingOrderRepository):
    """Expired drafts stay on disk until purged but are never returned."""

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    def get_by_request_id(self, request_id: str, now: datetime | None = None) -> PendingOrder | None:
        raw = self._file.find(lambda r: r["request_id"] == request_id)
        if raw is None:
            return None
        pending = self._to_domain(raw)
        return None if pending.is_expired(now) else pending

    def save(self, pending: PendingOrder) -> None:
        self._file.upsert(
            self._to_raw(pending), lambda r: r["request_id"] == pending.request_id
        )

    def delete(self, request_id: str) -> bool:
        return self._file.remove(lambda r: r["request_id"] == request_id) > 0

    def purge_expired(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        return self._file.remove(lambda r: dt_from_raw(r["expires_at"]) <= now)

    @staticmethod
    def _to_raw(pending: PendingOrder) -> dict:
        return {
            "request_id": pending.request_id,
            "user_id": pending.user_id,
            "payload": pending.payload,
            "gateway_order_id": pending.gateway_order_id,
            "created_at": dt_to_raw(pending.created_at),
            "expires_at": dt_to_raw(pending.expires_at),
        }

    @staticmethod
    def _to_domain(raw: dict) -> PendingOrder:
        return PendingOrder(
            request_id=raw["request_id"],
            user_id=raw["user_id"],
            payload=raw["payload"],
            expires_at=dt_from_raw(raw["expires_at"]),
            gateway_order_id=raw.get("gateway_order_id"),
            created_at=dt_from_raw(raw["created_at"]),
        )
