"""Abstract repositories for the catalog aggregates the pipeline touches.

Defined in the domain layer so the domain never depends on
infrastructure. Concrete implementations (JSON, SQL, in-memory)
live in the infrastructure layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from orderflow.domain.model.product import Branch, Product


class ProductRepository(ABC):

    @abstractmethod
    def get_by_id(self, product_id: str) -> Product | None:
        """Return a product by its ID, or None if not found."""

    @abstractmethod
    def save(self, product: Product) -> None:
        """Persist a product together with its whole stock ledger."""


class BranchRepository(ABC):

    @abstractmethod
    def get_by_id(self, branch_id: str) -> Branch | None:
        """Return a branch by its ID, or None if not found."""
