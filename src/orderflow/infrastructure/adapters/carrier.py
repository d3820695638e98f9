"""Carrier adapter used when no carrier integration is configured."""

from __future__ import annotations

from typing import Any

from orderflow.application.ports import (
    CarrierActionResult,
    CarrierClient,
    ShipmentReceipt,
    ShipmentRequest,
)
from orderflow.domain.exceptions import CarrierError


class OfflineCarrierClient(CarrierClient):
    """Refuses every call, so shipments stay pending for manual handling."""

    def __init__(self, name: str = "ViettelPost") -> None:
        self.name = name

    def create_shipment(self, request: ShipmentRequest) -> ShipmentReceipt:
        raise CarrierError(f"{self.name} is not configured; cannot ship {request.order_number}")

    def get_shipment_info(self, tracking_code: str) -> dict[str, Any]:
        raise CarrierError(f"{self.name} is not configured; cannot look up {tracking_code}")

    def request_cancellation(self, tracking_code: str, reason: str) -> CarrierActionResult:
        raise CarrierError(f"{self.name} is not configured; cannot cancel {tracking_code}")

    def request_return(self, tracking_code: str, reason: str) -> CarrierActionResult:
        raise CarrierError(f"{self.name} is not configured; cannot return {tracking_code}")

    def resend_webhook(self, tracking_code: str, reason: str | None = None) -> CarrierActionResult:
        raise CarrierError(f"{self.name} is not configured; cannot resend {tracking_code}")
