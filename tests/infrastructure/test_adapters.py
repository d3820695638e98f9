"""JSON cart/voucher services and the offline carrier."""

import json
from decimal import Decimal

import pytest

from orderflow.application.ports import ShipmentParty, ShipmentRequest
from orderflow.domain.exceptions import CarrierError, EntityNotFoundError, ValidationError
from orderflow.infrastructure.adapters.carrier import OfflineCarrierClient
from orderflow.infrastructure.adapters.json_services import JsonCartService, JsonVoucherService


@pytest.fixture
def vouchers(tmp_path):
    path = tmp_path / "vouchers.json"
    path.write_text(json.dumps([{"id": "V1", "code": "AUTUMN", "usage_limit": 1, "used_by": []}]))
    return JsonVoucherService(path), path


class TestJsonVoucherService:

    def test_mark_used_appends_usage(self, vouchers):
        service, path = vouchers
        service.mark_used("V1", "u1", 7)
        used_by = json.loads(path.read_text())[0]["used_by"]
        assert [(u["user_id"], u["order_id"]) for u in used_by] == [("u1", 7)]

    def test_same_order_is_idempotent(self, vouchers):
        service, path = vouchers
        service.mark_used("V1", "u1", 7)
        service.mark_used("V1", "u1", 7)
        assert len(json.loads(path.read_text())[0]["used_by"]) == 1

    def test_usage_limit(self, vouchers):
        service, _ = vouchers
        service.mark_used("V1", "u1", 7)
        with pytest.raises(ValidationError, match="used up"):
            service.mark_used("V1", "u2", 8)

    def test_unknown_voucher(self, vouchers):
        service, _ = vouchers
        with pytest.raises(EntityNotFoundError):
            service.mark_used("V9", "u1", 7)


class TestJsonCartService:

    def test_clear_cart_empties_items(self, tmp_path):
        path = tmp_path / "carts.json"
        path.write_text(json.dumps([
            {"user_id": "u1", "items": [{"product_id": "p1", "quantity": 2}]},
            {"user_id": "u2", "items": [{"product_id": "p1", "quantity": 1}]},
        ]))

        JsonCartService(path).clear_cart("u1")

        carts = {c["user_id"]: c["items"] for c in json.loads(path.read_text())}
        assert carts == {"u1": [], "u2": [{"product_id": "p1", "quantity": 1}]}

    def test_missing_cart_is_fine(self, tmp_path):
        JsonCartService(tmp_path / "carts.json").clear_cart("nobody")


def test_offline_carrier_refuses():
    party = ShipmentParty("A", "1 Street", "0912345678")
    request = ShipmentRequest(
        "YM1", party, party, [], Decimal("0"), Decimal("0"), Decimal("0"), is_cod=False
    )
    carrier = OfflineCarrierClient("GHN")
    with pytest.raises(CarrierError, match="GHN is not configured"):
        carrier.create_shipment(request)
    with pytest.raises(CarrierError):
        carrier.request_cancellation("VTP1", "x")
