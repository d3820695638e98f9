"""Application service: Return Order use case.

Only a DELIVERED order can be returned. Stock goes back through the status
handler; a carrier pickup is requested after the order is saved.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from orderflow.application.dto import OrderDTO, to_order_dto
from orderflow.application.ports import CarrierActionResult, CarrierClient
from orderflow.application.side_effects import SideEffect, SideEffectRunner, record_failures
from orderflow.application.update_order import UpdateOrderStatusHandler
from orderflow.domain.exceptions import CarrierError, EntityNotFoundError, InvalidStateError
from orderflow.domain.model.order_status import OrderStatus
from orderflow.domain.repository.order_repository import OrderRepository

logger = logging.getLogger(__name__)


class ReturnOrderHandler:

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
        if order.status != OrderStatus.DELIVERED:
            raise InvalidStateError(
                f"Only delivered orders can be returned; order {order.order_number} "
                f"is {order.status.value}",
                current_status=order.status,
            )

        self._status_handler.apply(
            order,
            OrderStatus.RETURNED,
            updated_by=updated_by,
            description=f"Return requested: {reason}",
        )
        request = {
            "reason": reason,
            "requested_by": updated_by,
            "requested_at": datetime.now(timezone.utc).isoformat(),
        }

        if order.tracking_code:
            tracking_code = order.tracking_code

            def pickup() -> CarrierActionResult:
                result = self._carrier.request_return(tracking_code, reason)
                if not result.success:
                    raise CarrierError(result.message or "Carrier refused the return pickup")
                return result

            report = self._runner.run([SideEffect("carrier_return", pickup)])
            request["carrier_synced"] = report.ok
            if not report.ok:
                logger.warning(
                    "Carrier return pickup failed for order %s: %s",
                    order.order_number, report.failures[0].error,
                )
                record_failures(order, report.failures)

        order.record("return_request", request)
        self._order_repo.save(order)
        return to_order_dto(order)
