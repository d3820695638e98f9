"""JSON-file repositories against a temporary data directory."""

import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from orderflow.domain.model.order import (
    Order,
    OrderLineItem,
    OrderVoucher,
    PaymentMethod,
    ShippingAddress,
)
from orderflow.domain.model.order_status import OrderStatus
from orderflow.domain.model.payment import Payment, PendingOrder
from orderflow.domain.model.tracking import CarrierInfo, OrderTracking, TrackingEntry
from orderflow.domain.model.value_objects import Money, Quantity
from orderflow.infrastructure.persistence.json_order_repository import (
    JsonOrderRepository,
    JsonTrackingRepository,
)
from orderflow.infrastructure.persistence.json_payment_repository import (
    JsonPaymentRepository,
    JsonPendingOrderRepository,
)
from orderflow.infrastructure.persistence.json_product_repository import (
    JsonBranchRepository,
    JsonProductRepository,
)
from tests.fakes import make_variant_product

NOW = datetime(2024, 10, 17, 8, 0, tzinfo=timezone.utc)


def _order() -> Order:
    order = Order.create(
        order_number="YM2410170001",
        user_id="u1",
        items=[
            OrderLineItem(
                "p2", "Serum", Quantity(2), Money.of("250000"),
                variant_id="v1", options={"selectedOptions": {"combinationId": "c1"}},
            )
        ],
        shipping_address=ShippingAddress(
            "Nguyen Van A", "0912345678", "12 Hang Bai", "Hang Bai", "Hoan Kiem", "Ha Noi",
            district_code="002", province_code="01",
        ),
        subtotal=Money.of("500000"),
        total_price=Money.of("530000"),
        shipping_fee=Money.of("30000"),
        voucher=OrderVoucher(Money.of("30000"), voucher_id="V1", code="AUTUMN"),
        payment_method=PaymentMethod.WALLET,
    )
    order.metadata["note"] = "Giao giờ hành chính"
    return order


class TestJsonOrderRepository:

    def test_round_trip(self, tmp_path):
        repo = JsonOrderRepository(tmp_path / "orders.json")
        order = _order()
        repo.save(order)

        loaded = repo.get_by_id(order.id)

        assert loaded == order
        assert loaded.final_price == Money.of("500000")

    def test_lookups(self, tmp_path):
        repo = JsonOrderRepository(tmp_path / "orders.json")
        order = _order()
        order.tracking_code = "VTP1"
        repo.save(order)

        assert repo.get_by_order_number("YM2410170001").id == order.id
        assert repo.get_by_tracking_code("VTP1").id == order.id
        assert repo.get_by_tracking_code("VTP2") is None

    def test_ids_and_delete(self, tmp_path):
        repo = JsonOrderRepository(tmp_path / "orders.json")
        first, second = _order(), _order()
        repo.save(first)
        repo.save(second)
        assert (first.id, second.id) == (1, 2)

        repo.delete(first.id)
        assert repo.get_by_id(first.id) is None
        assert repo.next_id() == 3

    def test_file_is_utf8_json(self, tmp_path):
        path = tmp_path / "orders.json"
        JsonOrderRepository(path).save(_order())
        text = path.read_text(encoding="utf-8")
        assert "Giao giờ hành chính" in text
        assert json.loads(text)[0]["final_price"]["amount"] == "500000"


class TestJsonTrackingRepository:

    def test_round_trip_and_delete(self, tmp_path):
        repo = JsonTrackingRepository(tmp_path / "tracking.json")
        tracking = OrderTracking(order_id=1, status=OrderStatus.PENDING)
        tracking.append(TrackingEntry(OrderStatus.SHIPPING, "Picked up", NOW, "Hub", "ViettelPost"))
        tracking.carrier = CarrierInfo("ViettelPost", "VTP1", "https://t/VTP1")
        repo.save(tracking)

        assert repo.get_by_order_id(1) == tracking

        repo.delete_by_order_id(1)
        assert repo.get_by_order_id(1) is None


class TestJsonProductRepository:

    def test_all_stock_levels_persist_in_one_document(self, tmp_path):
        path = tmp_path / "products.json"
        repo = JsonProductRepository(path)
        product = make_variant_product("p2")
        repo.save(product)

        loaded = repo.get_by_id("p2")

        assert loaded == product
        raw = json.loads(path.read_text(encoding="utf-8"))[0]
        assert set(raw) >= {"inventory", "variant_inventory", "combination_inventory"}

    def test_branches(self, tmp_path):
        path = tmp_path / "branches.json"
        path.write_text(json.dumps([
            {"id": "hn", "name": "Ha Noi", "address": "5 Trang Tien", "phone": "0241234567",
             "district_code": "002", "province_code": "01"},
        ]))
        branch = JsonBranchRepository(path).get_by_id("hn")
        assert branch.district_code == "002"
        assert branch.ward_code == ""


class TestJsonPaymentRepositories:

    def test_payment_round_trip(self, tmp_path):
        repo = JsonPaymentRepository(tmp_path / "payments.json")
        payment = Payment(
            id=None, request_id="r1", amount=Money.of("300000"), method=PaymentMethod.WALLET,
            details={"result_code": 0},
        )
        repo.save(payment)

        assert payment.id == 1
        assert repo.get_by_request_id("r1") == payment

    def test_pending_orders_hide_and_purge_expired(self, tmp_path):
        repo = JsonPendingOrderRepository(tmp_path / "pending.json")
        repo.save(PendingOrder.open("fresh", "u1", {"a": 1}, timedelta(hours=24), now=NOW))
        repo.save(PendingOrder.open("stale", "u1", {"a": 2}, timedelta(hours=1), now=NOW))
        later = NOW + timedelta(hours=2)

        assert repo.get_by_request_id("fresh", later).payload == {"a": 1}
        assert repo.get_by_request_id("stale", later) is None
        assert repo.purge_expired(later) == 1
        assert repo.delete("fresh") is True
        assert repo.delete("fresh") is False


def test_money_amount_precision_survives(tmp_path):
    repo = JsonPaymentRepository(tmp_path / "payments.json")
    repo.save(Payment(None, "r1", Money(Decimal("1234.50")), PaymentMethod.CREDIT_CARD))
    assert repo.get_by_request_id("r1").amount.amount == Decimal("1234.50")
