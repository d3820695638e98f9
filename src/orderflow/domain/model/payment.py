"""Payments, gateway tokens and pending (pre-payment) orders."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from orderflow.domain.exceptions import ValidationError
from orderflow.domain.model.order import PaymentMethod, PaymentStatus
from orderflow.domain.model.value_objects import Money


@dataclass
class Payment:
    """One payment attempt. May outlive an abandoned pending order."""

    id: int | None
    request_id: str
    amount: Money
    method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    user_id: str | None = None
    order_id: int | None = None
    gateway_order_id: str | None = None
    transaction_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def mark(self, status: PaymentStatus, snapshot: dict[str, Any] | None = None) -> None:
        self.status = status
        if snapshot:
            self.details = {**self.details, **snapshot}
        self.updated_at = datetime.now(timezone.utc)

    def attach_order(self, order_id: int) -> None:
        self.order_id = order_id
        self.updated_at = datetime.now(timezone.utc)


@dataclass(frozen=True)
class PaymentToken:
    """Opaque application data the gateway echoes back in its callback.

    Encoded as base64(JSON) with the keys ``orderId``, ``orderNumber`` and
    ``isNewOrder``.
    """

    order_id: str = ""
    order_number: str = ""
    is_new_order: bool = False

    def encode(self) -> str:
        raw = json.dumps(
            {
                "orderId": self.order_id,
                "orderNumber": self.order_number,
                "isNewOrder": self.is_new_order,
            }
        )
        return base64.b64encode(raw.encode("utf-8")).decode("ascii")

    @staticmethod
    def decode(token: str) -> PaymentToken:
        try:
            data = json.loads(base64.b64decode(token, validate=True).decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
            raise ValidationError(f"Malformed payment token: {exc}") from exc
        if not isinstance(data, dict):
            raise ValidationError("Malformed payment token: expected an object")
        return PaymentToken(
            order_id=str(data.get("orderId") or ""),
            order_number=str(data.get("orderNumber") or ""),
            is_new_order=bool(data.get("isNewOrder")),
        )


@dataclass
class PendingOrder:
    """A checkout deferred to an external payment page.

    ``payload`` is the order-creation payload exactly as the storefront sent
    it; it becomes a real order only when the gateway confirms the funds.
    """

    request_id: str
    user_id: str
    payload: dict[str, Any]
    expires_at: datetime
    gateway_order_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @staticmethod
    def open(
        request_id: str,
        user_id: str,
        payload: dict[str, Any],
        ttl: timedelta,
        gateway_order_id: str | None = None,
        now: datetime | None = None,
    ) -> PendingOrder:
        if not request_id:
            raise ValidationError("Pending order requires a payment request id")
        now = now or datetime.now(timezone.utc)
        return PendingOrder(
            request_id=request_id,
            user_id=user_id,
            payload=dict(payload),
            expires_at=now + ttl,
            gateway_order_id=gateway_order_id,
            created_at=now,
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(timezone.utc)) >= self.expires_at
