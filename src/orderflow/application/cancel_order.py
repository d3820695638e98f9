"""Application service: Cancel Order use case.

Cancellation is refused once the order is DELIVERED, CANCELLED or
RETURNED. Otherwise stock is restored through the status handler, the
reason is kept on the order, and, when a shipment exists, the carrier is
asked to cancel it after the order is saved. The carrier's answer is
recorded on the order; it never fails the cancellation.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from orderflow.application.dto import OrderDTO, to_order_dto
from orderflow.application.ports import CarrierActionResult, CarrierClient
from orderflow.application.side_effects import SideEffect, SideEffectRunner, record_failures
from orderflow.application.update_order import UpdateOrderStatusHandler
from orderflow.domain.exceptions import CarrierError, EntityNotFoundError, InvalidStateError
from orderflow.domain.model.order import Order
from orderflow.domain.model.order_status import TERMINAL_STATUSES, OrderStatus
from orderflow.domain.repository.order_repository import OrderRepository

logger = logging.getLogger(__name__)


class CancelOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        status_handler: UpdateOrderStatusHandler,
        carrier: CarrierClient,
        runner: SideEffectRunner,
    ) -> None:
        self._order_repo = order_repo
        self._status_handler = status_handler
        self._carrier = carrier
        self._runner = runner

    def handle(self, order_id: int, reason: str, updated_by: str | None = None) -> OrderDTO:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order #{order_id} not found")
        if order.status in TERMINAL_STATUSES:
            raise InvalidStateError(
                f"Cannot cancel order {order.order_number}: it is already {order.status.value}",
                current_status=order.status,
            )

        self._status_handler.apply(
            order,
            OrderStatus.CANCELLED,
            updated_by=updated_by,
            description=f"Order cancelled: {reason}",
        )
        order.record(
            "cancellation",
            {
                "reason": reason,
                "cancelled_by": updated_by,
                "cancelled_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        self._order_repo.save(order)

        if order.tracking_code:
            self._sync_carrier(order.tracking_code, reason, order)
        return to_order_dto(order)

    def _sync_carrier(self, tracking_code: str, reason: str, order: Order) -> None:
        def request() -> CarrierActionResult:
            result = self._carrier.request_cancellation(tracking_code, reason)
            if not result.success:
                raise CarrierError(result.message or "Carrier refused the cancellation")
            return result

        report = self._runner.run([SideEffect("carrier_cancellation", request)])
        synced_at = datetime.now(timezone.utc).isoformat()
        if report.ok:
            result = report.results["carrier_cancellation"]
            order.record(
                "carrier_cancellation",
                {"success": True, "message": result.message, "synced_at": synced_at},
            )
        else:
            failure = report.failures[0]
            logger.warning(
                "Carrier cancellation failed for order %s: %s", order.order_number, failure.error
            )
            order.record(
                "carrier_cancellation",
                {"success": False, "error": failure.error, "synced_at": synced_at},
            )
            record_failures(order, report.failures)
        self._order_repo.save(order)
