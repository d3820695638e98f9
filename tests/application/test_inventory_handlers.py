"""Set/show inventory use cases."""

import pytest

from orderflow.application.set_inventory import SetInventoryHandler
from orderflow.application.show_inventory import ShowInventoryHandler
from orderflow.domain.exceptions import EntityNotFoundError, ValidationError
from tests.fakes import FakeProductRepository, make_product, make_variant_product


class TestSetInventory:

    def test_set_combination_rolls_up(self):
        repo = FakeProductRepository([make_variant_product("p2")])

        adj = SetInventoryHandler(repo).handle("p2", "main", 10, "v1", "c1")

        assert (adj.before, adj.after) == (4, 10)
        assert repo.get_by_id("p2").stock.branch_total("main") == 21

    def test_set_simple_product_branch(self):
        repo = FakeProductRepository([make_product("p1", 10)])
        SetInventoryHandler(repo).handle("p1", "hcm", 4)
        assert repo.get_by_id("p1").stock.branch_total("hcm") == 4

    def test_branch_total_of_variant_product_refused(self):
        repo = FakeProductRepository([make_variant_product("p2")])
        with pytest.raises(ValidationError):
            SetInventoryHandler(repo).handle("p2", "main", 100)

    def test_unknown_product(self):
        with pytest.raises(EntityNotFoundError):
            SetInventoryHandler(FakeProductRepository()).handle("nope", "main", 1)


class TestShowInventory:

    def test_lines_nest_branch_variant_combination(self):
        repo = FakeProductRepository([make_variant_product("p2")])

        lines = ShowInventoryHandler(repo).handle("p2")

        assert [(l.level, l.variant_id, l.combination_id, l.quantity) for l in lines] == [
            ("BRANCH", None, None, 15),
            ("VARIANT", "v1", None, 10),
            ("COMBINATION", "v1", "c1", 4),
            ("COMBINATION", "v1", "c2", 6),
            ("VARIANT", "v2", None, 5),
            ("COMBINATION", "v2", "c3", 5),
        ]
