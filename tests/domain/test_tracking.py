"""Unit tests for the OrderTracking history."""

from datetime import datetime, timedelta, timezone

from orderflow.domain.model.order_status import OrderStatus
from orderflow.domain.model.tracking import OrderTracking, TrackingEntry

T0 = datetime(2024, 10, 17, 8, 0, tzinfo=timezone.utc)


def _entry(status: OrderStatus, minutes: int, text: str = "event") -> TrackingEntry:
    return TrackingEntry(status=status, description=text, timestamp=T0 + timedelta(minutes=minutes))


class TestOrderTracking:

    def test_history_is_newest_first_even_for_late_events(self):
        tracking = OrderTracking(order_id=1, status=OrderStatus.PENDING)
        tracking.append(_entry(OrderStatus.PROCESSING, 10))
        tracking.append(_entry(OrderStatus.SHIPPING, 30))
        tracking.append(_entry(OrderStatus.PROCESSING, 20, "late"))
        assert [e.timestamp.minute for e in tracking.history] == [30, 20, 10]
        assert tracking.latest.status == OrderStatus.SHIPPING

    def test_append_mirrors_status_by_default(self):
        tracking = OrderTracking(order_id=1, status=OrderStatus.PENDING)
        tracking.append(_entry(OrderStatus.CONFIRMED, 1))
        assert tracking.status == OrderStatus.CONFIRMED

    def test_history_only_append_keeps_status(self):
        tracking = OrderTracking(order_id=1, status=OrderStatus.CANCELLED)
        tracking.append(_entry(OrderStatus.SHIPPING, 1), mirror_status=False)
        assert tracking.status == OrderStatus.CANCELLED
        assert len(tracking.history) == 1

    def test_has_entry_matches_status_time_and_text(self):
        tracking = OrderTracking(order_id=1, status=OrderStatus.PENDING)
        tracking.append(_entry(OrderStatus.SHIPPING, 5, "Picked up"))
        assert tracking.has_entry(OrderStatus.SHIPPING, T0 + timedelta(minutes=5), "Picked up")
        assert not tracking.has_entry(OrderStatus.SHIPPING, T0 + timedelta(minutes=5), "Other")
        assert not tracking.has_entry(OrderStatus.SHIPPING, T0, "Picked up")

    def test_latest_of_empty_history(self):
        assert OrderTracking(order_id=1, status=OrderStatus.PENDING).latest is None
