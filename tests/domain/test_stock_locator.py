"""Option payload shapes the stock locator understands."""

from orderflow.domain.model.order import OrderLineItem
from orderflow.domain.model.value_objects import Money, Quantity, StockLocator
from orderflow.domain.service.stock_locator import resolve_stock_locator


def _item(options=None, variant_id=None) -> OrderLineItem:
    return OrderLineItem(
        product_id="p1",
        name="Serum",
        quantity=Quantity(1),
        unit_price=Money.of("1"),
        variant_id=variant_id,
        options=options or {},
    )


class TestBranch:

    def test_order_branch_wins_over_options(self):
        item = _item({"branchId": "b2"})
        assert resolve_stock_locator(item, "b1", "main").branch_id == "b1"

    def test_option_override_when_order_has_no_branch(self):
        item = _item({"branch_id": "b2"})
        assert resolve_stock_locator(item, None, "main").branch_id == "b2"

    def test_falls_back_to_default(self):
        assert resolve_stock_locator(_item(), None, "main") == StockLocator("main")


class TestVariantAndCombination:

    def test_top_level_keys(self):
        item = _item({"variantId": "v1", "combinationId": "c1"})
        assert resolve_stock_locator(item, "b1", "main") == StockLocator("b1", "v1", "c1")

    def test_selected_options(self):
        item = _item({"selectedOptions": {"variant_id": "v2", "combination_id": "c5"}})
        assert resolve_stock_locator(item, "b1", "main") == StockLocator("b1", "v2", "c5")

    def test_deep_scan_through_lists(self):
        item = _item({"attributes": [{"name": "size"}, {"meta": {"combinationId": "c9"}}]})
        assert resolve_stock_locator(item, "b1", "main").combination_id == "c9"

    def test_item_variant_used_when_options_are_silent(self):
        item = _item({"color": "red"}, variant_id="v7")
        assert resolve_stock_locator(item, "b1", "main") == StockLocator("b1", "v7")

    def test_numeric_ids_become_strings(self):
        item = _item({"variantId": 12})
        assert resolve_stock_locator(item, "b1", "main").variant_id == "12"

    def test_empty_values_ignored(self):
        item = _item({"variantId": "", "combinationId": None})
        assert resolve_stock_locator(item, "b1", "main") == StockLocator("b1")
