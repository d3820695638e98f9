"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the boundary layers (CLI, HTTP adapters) can catch them uniformly and map
them to user-facing errors:

- ValidationError      -> 400
- InvalidStateError    -> 400, names the current order status
- EntityNotFoundError  -> 404
- CarrierError         -> failure reported by the shipping carrier
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class InvalidStateError(DomainException):
    """The requested action is illegal for the order's current status."""

    def __init__(self, message: str, current_status: object | None = None) -> None:
        super().__init__(message)
        self.current_status = current_status


class CarrierError(DomainException):
    """The carrier rejected a request or could not be reached."""
