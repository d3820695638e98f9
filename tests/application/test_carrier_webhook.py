"""Carrier webhook reconciliation."""

from datetime import datetime, timezone

import pytest

from orderflow.application.dto import CarrierWebhookEvent, CreateOrderCommand
from orderflow.domain.exceptions import ValidationError
from orderflow.domain.model.order import PaymentStatus
from orderflow.domain.model.order_status import OrderStatus
from tests.fakes import make_app, order_payload


def _shipped_order(app) -> int:
    """A COD order for 3 x p1, shipped as VTP000001 (PROCESSING)."""
    return app.create_order.handle(CreateOrderCommand.from_payload(order_payload()), "u1").id


# Dated ahead of "now" so carrier entries sort first in the history.
def _event(code, when="17/10/2099 15:30:00", **extra) -> CarrierWebhookEvent:
    data = {
        "ORDER_NUMBER": "VTP000001",
        "ORDER_STATUS": code,
        "ORDER_STATUSDATE": when,
        "STATUS_NAME": f"Status {code}",
        "LOCALION_CURRENTLY": "Ha Noi hub",
    }
    data.update(extra)
    return CarrierWebhookEvent.from_payload(data)


class TestStatusUpdates:

    def test_shipping_event_moves_order(self):
        app = make_app()
        order_id = _shipped_order(app)

        result = app.carrier_webhook.handle(_event(200))

        assert result.outcome == "status_updated"
        assert result.status == "SHIPPING"
        latest = app.tracking.get_by_order_id(order_id).latest
        assert latest.location == "Ha Noi hub"
        assert latest.updated_by == "ViettelPost"
        assert latest.timestamp == datetime(2099, 10, 17, 8, 30, tzinfo=timezone.utc)

    def test_cod_delivery_marks_order_paid(self):
        app = make_app()
        order_id = _shipped_order(app)
        app.carrier_webhook.handle(_event(200))

        result = app.carrier_webhook.handle(_event(501, "18/10/2099 09:00:00"))

        order = app.orders.get_by_id(order_id)
        assert result.outcome == "status_updated"
        assert order.status == OrderStatus.DELIVERED
        assert order.payment_status == PaymentStatus.PAID
        assert app.products.get_by_id("p1").sold_count == 3
        assert app.stock("p1") == 7

    def test_carrier_cancellation_restores_stock(self):
        app = make_app()
        _shipped_order(app)

        app.carrier_webhook.handle(_event(107))

        assert app.stock("p1") == 10


class TestIdempotence:

    def test_duplicate_event_recorded_once(self):
        app = make_app()
        order_id = _shipped_order(app)

        first = app.carrier_webhook.handle(_event(200))
        second = app.carrier_webhook.handle(_event(200))

        assert (first.outcome, second.outcome) == ("status_updated", "duplicate")
        history = app.tracking.get_by_order_id(order_id).history
        assert sum(1 for e in history if e.description == "Status 200") == 1

    def test_same_code_later_is_history_only(self):
        app = make_app()
        order_id = _shipped_order(app)
        app.carrier_webhook.handle(_event(200))

        result = app.carrier_webhook.handle(_event(202, "17/10/2099 18:00:00"))

        assert result.outcome == "recorded"
        assert len(app.tracking.get_by_order_id(order_id).history) == 4


class TestFinalOrders:

    def test_event_after_cancellation_keeps_status(self):
        app = make_app()
        order_id = _shipped_order(app)
        app.cancel_order.handle(order_id, "customer request")

        result = app.carrier_webhook.handle(_event(200))

        tracking = app.tracking.get_by_order_id(order_id)
        assert result.outcome == "recorded"
        assert app.orders.get_by_id(order_id).status == OrderStatus.CANCELLED
        assert tracking.status == OrderStatus.CANCELLED
        assert any(e.description == "Status 200" for e in tracking.history)
        assert app.stock("p1") == 10

    def test_refused_move_is_history_only(self):
        app = make_app()
        order_id = _prepaid_confirmed_with_tracking(app)

        result = app.carrier_webhook.handle(_event(504))  # RETURNED from CONFIRMED

        assert result.outcome == "recorded"
        assert app.orders.get_by_id(order_id).status == OrderStatus.CONFIRMED


def _prepaid_confirmed_with_tracking(app) -> int:
    command = CreateOrderCommand.from_payload(order_payload(paymentMethod="WALLET"))
    order_id = app.create_order.handle(command, "u1").id
    app.update_status.handle(order_id, "CONFIRMED")
    order = app.orders.get_by_id(order_id)
    order.tracking_code = "VTP000001"
    app.orders.save(order)
    return order_id


class TestOddEvents:

    def test_unknown_tracking_code(self):
        result = make_app().carrier_webhook.handle(_event(200, ORDER_NUMBER="NOPE"))
        assert result.outcome == "unknown_tracking_code"
        assert result.order_id is None

    def test_unmapped_code_recorded_against_current_status(self):
        app = make_app()
        order_id = _shipped_order(app)

        result = app.carrier_webhook.handle(_event(999))

        latest = app.tracking.get_by_order_id(order_id).latest
        assert result.outcome == "recorded"
        assert latest.status == OrderStatus.PROCESSING

    def test_unparseable_date_falls_back_to_clock(self):
        app = make_app()
        order_id = _shipped_order(app)

        app.carrier_webhook.handle(_event(200, "yesterday-ish"))

        entry = next(
            e for e in app.tracking.get_by_order_id(order_id).history
            if e.description == "Status 200"
        )
        assert entry.timestamp == datetime(2024, 10, 17, 3, 0, tzinfo=timezone.utc)

    def test_string_status_code_accepted(self):
        assert _event(" 501 ").status_code == 501

    def test_missing_tracking_code_rejected(self):
        with pytest.raises(ValidationError, match="ORDER_NUMBER"):
            CarrierWebhookEvent.from_payload({"ORDER_STATUS": 200})

    def test_description_joins_name_and_note(self):
        app = make_app()
        order_id = _shipped_order(app)

        app.carrier_webhook.handle(_event(200, NOTE="Left at reception"))

        latest = app.tracking.get_by_order_id(order_id).latest
        assert latest.description == "Status 200 - Left at reception"
