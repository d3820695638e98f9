"""Carrier (ViettelPost) status codes mapped onto our order statuses."""

from __future__ import annotations

from orderflow.domain.model.order_status import OrderStatus

_CODES_BY_STATUS: dict[OrderStatus, tuple[int, ...]] = {
    OrderStatus.PROCESSING: (-100, -108, -109, -110, 100, 102, 103, 104),
    OrderStatus.SHIPPING: (
        105, 106, 200, 202, 300, 301, 302, 303, 320,
        400, 401, 402, 403, 500, 506, 507, 508, 509, 550,
    ),
    OrderStatus.DELIVERED: (501,),
    OrderStatus.CANCELLED: (101, 107, 201, 503),
    OrderStatus.RETURNED: (502, 504, 505, 515),
}

CARRIER_STATUS_MAP: dict[int, OrderStatus] = {
    code: status for status, codes in _CODES_BY_STATUS.items() for code in codes
}

# The carrier sends nothing more for a parcel after one of these.
CARRIER_FINAL_CODES: frozenset[int] = frozenset({501, 503, 504, 107, 201})


def map_carrier_status(code: int) -> OrderStatus | None:
    return CARRIER_STATUS_MAP.get(code)


def is_carrier_final(code: int) -> bool:
    return code in CARRIER_FINAL_CODES
