"""Abstract repository for OrderTracking documents (one per order)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from orderflow.domain.model.tracking import OrderTracking


class TrackingRepository(ABC):

    @abstractmethod
    def get_by_order_id(self, order_id: int) -> OrderTracking | None:
        """Return the tracking log for an order, or None."""

    @abstractmethod
    def save(self, tracking: OrderTracking) -> None:
        """Persist a new or updated tracking log."""

    @abstractmethod
    def delete_by_order_id(self, order_id: int) -> None:
        """Remove the tracking log of an order, if any."""
