"""Normalise a line item's option payload into a ``StockLocator``.

Storefront clients have sent branch and variant hints in several shapes
over time::

    {"branchId": "b1", "combinationId": "c1"}
    {"selectedOptions": {"branch_id": "b1", "variantId": "v1"}}
    {"attributes": [{"name": "size"}, {"combinationId": "c1"}]}

The probe order is: top-level keys, then the same keys under a
"selected options" key, then a depth-first scan of whatever is nested.
"""

from __future__ import annotations

from typing import Any

from orderflow.domain.model.order import OrderLineItem
from orderflow.domain.model.value_objects import StockLocator

BRANCH_KEYS = ("branchId", "branch_id")
VARIANT_KEYS = ("variantId", "variant_id")
COMBINATION_KEYS = ("combinationId", "combination_id")
SELECTED_OPTIONS_KEYS = ("selectedOptions", "selected_options")


def resolve_stock_locator(
    item: OrderLineItem,
    order_branch_id: str | None,
    default_branch_id: str,
) -> StockLocator:
    """Pick the branch, variant and combination an item draws stock from.

    Branch: the order's own branch, else an override in the options, else
    *default_branch_id*.
    """
    options = item.options or {}
    branch_id = order_branch_id or _probe(options, BRANCH_KEYS) or default_branch_id
    variant_id = _probe(options, VARIANT_KEYS) or item.variant_id
    combination_id = _probe(options, COMBINATION_KEYS)
    return StockLocator(
        branch_id=branch_id,
        variant_id=variant_id or None,
        combination_id=combination_id or None,
    )


def _probe(options: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    found = _pick(options, keys)
    if found:
        return found

    for nested_key in SELECTED_OPTIONS_KEYS:
        nested = options.get(nested_key)
        if isinstance(nested, dict):
            found = _pick(nested, keys)
            if found:
                return found

    return _deep_scan(options, keys)


def _pick(mapping: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = mapping.get(key)
        if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value):
            return str(value)
    return None


def _deep_scan(node: Any, keys: tuple[str, ...]) -> str | None:
    if isinstance(node, dict):
        found = _pick(node, keys)
        if found:
            return found
        children = node.values()
    elif isinstance(node, list):
        children = node
    else:
        return None

    for child in children:
        found = _deep_scan(child, keys)
        if found:
            return found
    return None
