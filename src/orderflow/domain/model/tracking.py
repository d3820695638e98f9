"""OrderTracking: append-only status history, one document per order.

History is kept newest-first. Entries are only ever appended; the same
carrier event delivered twice is recognised by ``has_entry``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from orderflow.domain.model.order_status import OrderStatus


@dataclass(frozen=True)
class TrackingEntry:
    status: OrderStatus
    description: str
    timestamp: datetime
    location: str | None = None
    updated_by: str | None = None


@dataclass(frozen=True)
class CarrierInfo:
    name: str
    tracking_number: str
    tracking_url: str | None = None


@dataclass
class OrderTracking:

    order_id: int
    status: OrderStatus
    history: list[TrackingEntry] = field(default_factory=list)
    carrier: CarrierInfo | None = None
    details: dict = field(default_factory=dict)
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def append(self, entry: TrackingEntry, *, mirror_status: bool = True) -> None:
        """Add *entry* and keep the history sorted newest-first.

        ``mirror_status=False`` records history without moving the current
        status mirror (carrier events after the order became final).
        """
        self.history.append(entry)
        self.history.sort(key=lambda e: e.timestamp, reverse=True)
        if mirror_status:
            self.status = entry.status
        self.updated_at = datetime.now(timezone.utc)

    def has_entry(self, status: OrderStatus, timestamp: datetime, description: str) -> bool:
        return any(
            e.status == status and e.timestamp == timestamp and e.description == description
            for e in self.history
        )

    @property
    def latest(self) -> TrackingEntry | None:
        return self.history[0] if self.history else None
