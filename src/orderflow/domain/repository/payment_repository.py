"""Abstract repositories for payments and pending (pre-payment) orders."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from orderflow.domain.model.payment import Payment, PendingOrder


class PaymentRepository(ABC):

    @abstractmethod
    def next_id(self) -> int:
        """Generate the next unique payment ID."""

    @abstractmethod
    def get_by_request_id(self, request_id: str) -> Payment | None:
        """Return the payment created for a gateway request id, or None."""

    @abstractmethod
    def save(self, payment: Payment) -> None:
        """Persist a new or updated payment."""


class PendingOrderRepository(ABC):

    @abstractmethod
    def get_by_request_id(self, request_id: str, now: datetime | None = None) -> PendingOrder | None:
        """Return the draft for *request_id* unless it is missing or expired."""

    @abstractmethod
    def save(self, pending: PendingOrder) -> None:
        """Persist a draft, replacing any draft with the same request id."""

    @abstractmethod
    def delete(self, request_id: str) -> bool:
        """Delete a draft; returns False when there was nothing to delete."""

    @abstractmethod
    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete every expired draft and return how many were removed."""
