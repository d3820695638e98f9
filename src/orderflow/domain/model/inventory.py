"""Per-product stock ledger at branch, variant and combination level.

Each product document carries three lists of stock records, all scoped by
branch:

- ``BranchStock``       total for the product at a branch
- ``VariantStock``      stock of one variant at a branch
- ``CombinationStock``  stock of one option combination of a variant

Invariants (absent concurrent writers):
- a variant's quantity equals the sum of its combinations, when it has any
- a branch total equals the sum of its variants, when it has any
- quantities never go below zero on decrement

Every mutation updates the leaf and then recomputes the parents bottom-up
in memory, so persisting the product persists all levels in one write.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from orderflow.domain.exceptions import EntityNotFoundError, ValidationError
from orderflow.domain.model.value_objects import StockLocator


class StockLevel(Enum):
    BRANCH = "BRANCH"
    VARIANT = "VARIANT"
    COMBINATION = "COMBINATION"


@dataclass
class BranchStock:
    branch_id: str
    quantity: int = 0
    low_stock_threshold: int = 5


@dataclass
class VariantStock:
    branch_id: str
    variant_id: str
    quantity: int = 0


@dataclass
class CombinationStock:
    branch_id: str
    variant_id: str
    combination_id: str
    quantity: int = 0


@dataclass(frozen=True)
class StockAdjustment:
    """What a single ledger mutation did, for logging and tests."""

    level: StockLevel
    locator: StockLocator
    before: int
    after: int


@dataclass
class StockLedger:

    branches: list[BranchStock] = field(default_factory=list)
    variants: list[VariantStock] = field(default_factory=list)
    combinations: list[CombinationStock] = field(default_factory=list)

    # --- Mutations ------------------------------------------------------------

    def decrement(
        self, locator: StockLocator, quantity: int, *, has_declared_variants: bool
    ) -> StockAdjustment:
        """Take *quantity* units out, clamping the leaf at zero."""
        if quantity <= 0:
            raise ValidationError("Decrement quantity must be positive")
        return self._adjust(locator, -quantity, has_declared_variants, clamp=True)

    def restore(
        self, locator: StockLocator, quantity: int, *, has_declared_variants: bool
    ) -> StockAdjustment:
        """Put *quantity* units back. Restores are additive and never clamp."""
        if quantity <= 0:
            raise ValidationError("Restore quantity must be positive")
        return self._adjust(locator, quantity, has_declared_variants, clamp=False)

    def set_quantity(
        self, locator: StockLocator, quantity: int, *, has_declared_variants: bool = True
    ) -> StockAdjustment:
        """Set a leaf to an absolute value (creating it if needed), then roll up."""
        if quantity < 0:
            raise ValidationError("Stock quantity cannot be negative")

        if locator.combination_id:
            if not locator.variant_id:
                raise ValidationError("Setting combination stock requires a variant")
            record = self._find_combination(locator)
            if record is None:
                record = CombinationStock(
                    locator.branch_id, locator.variant_id, locator.combination_id
                )
                self.combinations.append(record)
            before, record.quantity = record.quantity, quantity
            self._rollup_variant(locator.branch_id, locator.variant_id)
            self._rollup_branch(locator.branch_id)
            return StockAdjustment(StockLevel.COMBINATION, locator, before, quantity)

        if locator.variant_id:
            record = self._find_variant(locator.branch_id, locator.variant_id)
            if record is None:
                record = VariantStock(locator.branch_id, locator.variant_id)
                self.variants.append(record)
            before, record.quantity = record.quantity, quantity
            self._rollup_branch(locator.branch_id)
            return StockAdjustment(StockLevel.VARIANT, locator, before, quantity)

        if has_declared_variants and any(
            v.branch_id == locator.branch_id for v in self.variants
        ):
            raise ValidationError(
                f"Branch total at {locator.branch_id} is the sum of its variants; "
                f"set a variant instead"
            )
        branch = self._find_or_create_branch(locator.branch_id)
        before, branch.quantity = branch.quantity, quantity
        return StockAdjustment(StockLevel.BRANCH, locator, before, quantity)

    # --- Queries --------------------------------------------------------------

    def quantity_at(self, locator: StockLocator) -> int:
        if locator.combination_id:
            record = self._find_combination(locator)
        elif locator.variant_id:
            record = self._find_variant(locator.branch_id, locator.variant_id)
        else:
            record = self._find_branch(locator.branch_id)
        return record.quantity if record is not None else 0

    def branch_total(self, branch_id: str) -> int:
        branch = self._find_branch(branch_id)
        return branch.quantity if branch is not None else 0

    # --- Internal: leaf dispatch ----------------------------------------------

    def _adjust(
        self,
        locator: StockLocator,
        delta: int,
        has_declared_variants: bool,
        *,
        clamp: bool,
    ) -> StockAdjustment:
        if locator.combination_id:
            record = self._find_combination(locator)
            if record is None:
                raise EntityNotFoundError(f"No combination stock record for {locator}")
            before = record.quantity
            record.quantity = _apply(before, delta, clamp)
            self._rollup_variant(record.branch_id, record.variant_id)
            self._rollup_branch(record.branch_id)
            return StockAdjustment(StockLevel.COMBINATION, locator, before, record.quantity)

        if locator.variant_id:
            variant = self._find_variant(locator.branch_id, locator.variant_id)
            if variant is None:
                raise EntityNotFoundError(f"No variant stock record for {locator}")
            before = variant.quantity
            variant.quantity = _apply(before, delta, clamp)
            self._rollup_branch(locator.branch_id)
            return StockAdjustment(StockLevel.VARIANT, locator, before, variant.quantity)

        # Legacy data: products without declared variants may still carry
        # variant-level rows for the branch. The first one acts as the leaf.
        if not has_declared_variants:
            stray = next(
                (v for v in self.variants if v.branch_id == locator.branch_id), None
            )
            if stray is not None:
                before = stray.quantity
                stray.quantity = _apply(before, delta, clamp)
                self._rollup_branch(locator.branch_id)
                return StockAdjustment(StockLevel.VARIANT, locator, before, stray.quantity)

        branch = self._find_branch(locator.branch_id)
        if branch is None:
            raise EntityNotFoundError(f"No stock record for {locator}")
        before = branch.quantity
        branch.quantity = _apply(before, delta, clamp)
        return StockAdjustment(StockLevel.BRANCH, locator, before, branch.quantity)

    # --- Internal: rollups ----------------------------------------------------

    def _rollup_variant(self, branch_id: str, variant_id: str) -> None:
        total = sum(
            c.quantity
            for c in self.combinations
            if c.branch_id == branch_id and c.variant_id == variant_id
        )
        variant = self._find_variant(branch_id, variant_id)
        if variant is None:
            variant = VariantStock(branch_id, variant_id)
            self.variants.append(variant)
        variant.quantity = total

    def _rollup_branch(self, branch_id: str) -> None:
        total = sum(v.quantity for v in self.variants if v.branch_id == branch_id)
        self._find_or_create_branch(branch_id).quantity = total

    # --- Internal: lookups ----------------------------------------------------

    def _find_branch(self, branch_id: str) -> BranchStock | None:
        return next((b for b in self.branches if b.branch_id == branch_id), None)

    def _find_or_create_branch(self, branch_id: str) -> BranchStock:
        branch = self._find_branch(branch_id)
        if branch is None:
            branch = BranchStock(branch_id)
            self.branches.append(branch)
        return branch

    def _find_variant(self, branch_id: str, variant_id: str) -> VariantStock | None:
        return next(
            (
                v
                for v in self.variants
                if v.branch_id == branch_id and v.variant_id == variant_id
            ),
            None,
        )

    def _find_combination(self, locator: StockLocator) -> CombinationStock | None:
        # Older carts only sent the combination id; the record knows its variant.
        for c in self.combinations:
            if c.branch_id != locator.branch_id or c.combination_id != locator.combination_id:
                continue
            if locator.variant_id is None or c.variant_id == locator.variant_id:
                return c
        return None


def _apply(current: int, delta: int, clamp: bool) -> int:
    result = current + delta
    return max(0, result) if clamp else result
