"""Application service: Carrier Webhook use case.

Reconciles one carrier status event against the order it belongs to.
The carrier retries deliveries and may send them out of order, so:

- an unknown tracking code is acknowledged and dropped
- an event already in the tracking log (same status, time and text) is dropped
- an order that is DELIVERED, CANCELLED or RETURNED keeps its status; the
  event is still added to the history
- a move the transition table refuses is treated the same way
- an unknown carrier code is recorded against the order's current status

Nothing here raises for a missing order: the carrier expects an
acknowledgement either way.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from orderflow.application.dto import CarrierWebhookEvent, WebhookResult
from orderflow.application.tracking_log import TrackingLog
from orderflow.application.update_order import UpdateOrderStatusHandler
from orderflow.domain.model.order import PaymentStatus
from orderflow.domain.model.order_status import (
    TERMINAL_STATUSES,
    OrderStatus,
    can_transition,
    describe,
)
from orderflow.domain.model.tracking import TrackingEntry
from orderflow.domain.repository.order_repository import OrderRepository
from orderflow.domain.service.carrier_status import is_carrier_final, map_carrier_status

logger = logging.getLogger(__name__)


class CarrierWebhookHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        tracking_log: TrackingLog,
        status_handler: UpdateOrderStatusHandler,
        carrier_name: str = "ViettelPost",
        utc_offset_hours: float = 7,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._order_repo = order_repo
        self._tracking_log = tracking_log
        self._status_handler = status_handler
        self._carrier_name = carrier_name
        self._utc_offset_hours = utc_offset_hours
        self._clock = clock

    def handle(self, event: CarrierWebhookEvent) -> WebhookResult:
        order = self._order_repo.get_by_tracking_code(event.tracking_code)
        if order is None:
            logger.warning("Carrier webhook for unknown tracking code %s", event.tracking_code)
            return WebhookResult("unknown_tracking_code")

        tracking = self._tracking_log.load_or_create(order)

        timestamp = event.parsed_timestamp(self._utc_offset_hours)
        if timestamp is None:
            logger.warning(
                "Unparseable carrier timestamp %r for %s; using now",
                event.status_date, event.tracking_code,
            )
            timestamp = self._clock()

        mapped = map_carrier_status(event.status_code)
        entry_status = mapped or order.status
        description = " - ".join(p for p in (event.status_name, event.note) if p)
        description = description or describe(entry_status)

        if tracking.has_entry(entry_status, timestamp, description):
            logger.warning(
                "Duplicate carrier event %s/%d for order %s ignored",
                event.tracking_code, event.status_code, order.order_number,
            )
            return WebhookResult("duplicate", order.id, order.status.value)

        if mapped is None:
            logger.info(
                "Carrier code %d for order %s has no status mapping; recording history only",
                event.status_code, order.order_number,
            )
        elif mapped != order.status:
            if order.status in TERMINAL_STATUSES:
                logger.warning(
                    "Order %s is already %s; carrier status %s (%d) kept in history only",
                    order.order_number, order.status.value, mapped.value, event.status_code,
                )
            elif not can_transition(order.status, mapped):
                logger.warning(
                    "Carrier move %s -> %s refused for order %s; recording history only",
                    order.status.value, mapped.value, order.order_number,
                )
            else:
                if mapped == OrderStatus.DELIVERED and order.is_cod:
                    order.payment_status = PaymentStatus.PAID
                self._status_handler.apply(
                    order,
                    mapped,
                    updated_by=self._carrier_name,
                    description=description,
                    timestamp=timestamp,
                    location=event.location,
                )
                if is_carrier_final(event.status_code):
                    logger.info(
                        "Carrier closed shipment %s with code %d",
                        event.tracking_code, event.status_code,
                    )
                return WebhookResult("status_updated", order.id, order.status.value)

        tracking.append(
            TrackingEntry(
                status=entry_status,
                description=description,
                timestamp=timestamp,
                location=event.location,
                updated_by=self._carrier_name,
            ),
            mirror_status=entry_status == order.status,
        )
        self._tracking_log.save(tracking)
        return WebhookResult("recorded", order.id, order.status.value)
