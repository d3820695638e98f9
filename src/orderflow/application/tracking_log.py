"""Load-or-create access to an order's tracking document."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from orderflow.domain.model.order import Order
from orderflow.domain.model.order_status import OrderStatus
from orderflow.domain.model.tracking import CarrierInfo, OrderTracking, TrackingEntry
from orderflow.domain.repository.tracking_repository import TrackingRepository


class TrackingLog:

    def __init__(self, tracking_repo: TrackingRepository) -> None:
        self._tracking_repo = tracking_repo

    def load_or_create(self, order: Order) -> OrderTracking:
        tracking = self._tracking_repo.get_by_order_id(order.id)  # type: ignore[arg-type]
        if tracking is None:
            tracking = OrderTracking(order_id=order.id, status=order.status)  # type: ignore[arg-type]
        return tracking

    def save(self, tracking: OrderTracking) -> None:
        self._tracking_repo.save(tracking)

    def record(
        self,
        order: Order,
        status: OrderStatus,
        description: str,
        *,
        timestamp: datetime | None = None,
        location: str | None = None,
        updated_by: str | None = None,
        mirror_status: bool = True,
    ) -> OrderTracking:
        tracking = self.load_or_create(order)
        tracking.append(
            TrackingEntry(
                status=status,
                description=description,
                timestamp=timestamp or datetime.now(timezone.utc),
                location=location,
                updated_by=updated_by,
            ),
            mirror_status=mirror_status,
        )
        self._tracking_repo.save(tracking)
        return tracking

    def attach_carrier(self, order: Order, carrier: CarrierInfo, details: dict[str, Any]) -> None:
        tracking = self.load_or_create(order)
        tracking.carrier = carrier
        tracking.details = dict(details)
        self._tracking_repo.save(tracking)
