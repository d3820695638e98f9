"""Unit tests for the three-level StockLedger."""

import pytest

from orderflow.domain.exceptions import EntityNotFoundError, ValidationError
from orderflow.domain.model.inventory import (
    BranchStock,
    CombinationStock,
    StockLedger,
    StockLevel,
    VariantStock,
)
from orderflow.domain.model.value_objects import StockLocator


def _combo_ledger() -> StockLedger:
    """Branch b1: v1 = c1(4) + c2(6), v2 = c3(5); total 15."""
    return StockLedger(
        branches=[BranchStock("b1", 15)],
        variants=[VariantStock("b1", "v1", 10), VariantStock("b1", "v2", 5)],
        combinations=[
            CombinationStock("b1", "v1", "c1", 4),
            CombinationStock("b1", "v1", "c2", 6),
            CombinationStock("b1", "v2", "c3", 5),
        ],
    )


class TestDecrement:

    def test_branch_level(self):
        ledger = StockLedger(branches=[BranchStock("b1", 10)])
        adj = ledger.decrement(StockLocator("b1"), 3, has_declared_variants=False)
        assert (adj.level, adj.before, adj.after) == (StockLevel.BRANCH, 10, 7)
        assert ledger.branch_total("b1") == 7

    def test_clamps_at_zero(self):
        ledger = StockLedger(branches=[BranchStock("b1", 2)])
        adj = ledger.decrement(StockLocator("b1"), 5, has_declared_variants=False)
        assert adj.after == 0

    def test_combination_rolls_up_to_variant_and_branch(self):
        ledger = _combo_ledger()
        ledger.decrement(StockLocator("b1", "v1", "c1"), 3, has_declared_variants=True)
        assert ledger.quantity_at(StockLocator("b1", "v1", "c1")) == 1
        assert ledger.quantity_at(StockLocator("b1", "v1")) == 7
        assert ledger.branch_total("b1") == 12

    def test_combination_without_variant_finds_its_variant(self):
        ledger = _combo_ledger()
        adj = ledger.decrement(StockLocator("b1", None, "c3"), 2, has_declared_variants=True)
        assert adj.level == StockLevel.COMBINATION
        assert ledger.quantity_at(StockLocator("b1", "v2")) == 3
        assert ledger.branch_total("b1") == 13

    def test_variant_level_rolls_up_to_branch(self):
        ledger = StockLedger(
            branches=[BranchStock("b1", 9)],
            variants=[VariantStock("b1", "v1", 4), VariantStock("b1", "v2", 5)],
        )
        ledger.decrement(StockLocator("b1", "v2"), 5, has_declared_variants=True)
        assert ledger.branch_total("b1") == 4

    def test_other_branches_untouched(self):
        ledger = StockLedger(branches=[BranchStock("b1", 10), BranchStock("b2", 10)])
        ledger.decrement(StockLocator("b2"), 4, has_declared_variants=False)
        assert ledger.branch_total("b1") == 10
        assert ledger.branch_total("b2") == 6

    def test_stray_variant_row_used_for_product_without_variants(self):
        ledger = StockLedger(
            branches=[BranchStock("b1", 8)], variants=[VariantStock("b1", "legacy", 8)]
        )
        adj = ledger.decrement(StockLocator("b1"), 3, has_declared_variants=False)
        assert adj.level == StockLevel.VARIANT
        assert ledger.quantity_at(StockLocator("b1", "legacy")) == 5
        assert ledger.branch_total("b1") == 5

    def test_missing_records_raise(self):
        ledger = _combo_ledger()
        with pytest.raises(EntityNotFoundError):
            ledger.decrement(StockLocator("b9"), 1, has_declared_variants=False)
        with pytest.raises(EntityNotFoundError):
            ledger.decrement(StockLocator("b1", "v9"), 1, has_declared_variants=True)
        with pytest.raises(EntityNotFoundError):
            ledger.decrement(StockLocator("b1", "v1", "c9"), 1, has_declared_variants=True)

    def test_non_positive_quantity_rejected(self):
        ledger = StockLedger(branches=[BranchStock("b1", 10)])
        with pytest.raises(ValidationError, match="must be positive"):
            ledger.decrement(StockLocator("b1"), 0, has_declared_variants=False)


class TestRestore:

    def test_restore_is_additive(self):
        ledger = StockLedger(branches=[BranchStock("b1", 7)])
        adj = ledger.restore(StockLocator("b1"), 3, has_declared_variants=False)
        assert adj.after == 10

    def test_restore_after_clamp_inflates_stock(self):
        ledger = StockLedger(branches=[BranchStock("b1", 2)])
        ledger.decrement(StockLocator("b1"), 5, has_declared_variants=False)
        ledger.restore(StockLocator("b1"), 5, has_declared_variants=False)
        assert ledger.branch_total("b1") == 5

    def test_decrement_then_restore_round_trips_all_levels(self):
        ledger = _combo_ledger()
        locator = StockLocator("b1", "v1", "c2")
        ledger.decrement(locator, 4, has_declared_variants=True)
        ledger.restore(locator, 4, has_declared_variants=True)
        assert ledger.quantity_at(locator) == 6
        assert ledger.quantity_at(StockLocator("b1", "v1")) == 10
        assert ledger.branch_total("b1") == 15


class TestSetQuantity:

    def test_creates_missing_combination_and_rolls_up(self):
        ledger = _combo_ledger()
        adj = ledger.set_quantity(StockLocator("b1", "v2", "c4"), 7)
        assert (adj.before, adj.after) == (0, 7)
        assert ledger.quantity_at(StockLocator("b1", "v2")) == 12
        assert ledger.branch_total("b1") == 22

    def test_variant_set_rolls_up_branch(self):
        ledger = _combo_ledger()
        ledger.set_quantity(StockLocator("b2", "v1"), 3)
        assert ledger.branch_total("b2") == 3
        assert ledger.branch_total("b1") == 15

    def test_branch_total_guarded_when_variants_exist(self):
        ledger = _combo_ledger()
        with pytest.raises(ValidationError, match="sum of its variants"):
            ledger.set_quantity(StockLocator("b1"), 100)

    def test_branch_total_for_simple_product(self):
        ledger = StockLedger()
        ledger.set_quantity(StockLocator("b1"), 12, has_declared_variants=False)
        assert ledger.branch_total("b1") == 12

    def test_combination_requires_variant(self):
        with pytest.raises(ValidationError, match="requires a variant"):
            StockLedger().set_quantity(StockLocator("b1", None, "c1"), 1)

    def test_negative_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            StockLedger().set_quantity(StockLocator("b1"), -1)
