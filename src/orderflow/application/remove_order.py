"""Application service: Remove Order use case (admin hard delete)."""

from __future__ import annotations

import logging

from orderflow.domain.exceptions import EntityNotFoundError, InvalidStateError
from orderflow.domain.model.order_status import OrderStatus
from orderflow.domain.repository.order_repository import OrderRepository
from orderflow.domain.repository.tracking_repository import TrackingRepository

logger = logging.getLogger(__name__)


class RemoveOrderHandler:

    def __init__(self, order_repo: OrderRepository, tracking_repo: TrackingRepository) -> None:
        self._order_repo = order_repo
        self._tracking_repo = tracking_repo

    def handle(self, order_id: int) -> None:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order #{order_id} not found")
        if order.status != OrderStatus.CANCELLED:
            raise InvalidStateError(
                f"Only cancelled orders can be deleted; order {order.order_number} "
                f"is {order.status.value}",
                current_status=order.status,
            )

        self._tracking_repo.delete_by_order_id(order_id)
        self._order_repo.delete(order_id)
        logger.info("Order %s deleted", order.order_number)
