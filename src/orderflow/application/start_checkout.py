"""Application service: Start Checkout use case.

Called before the customer is sent to a gateway's payment page. Records a
PENDING payment and, for a new order, parks the checkout payload as a
draft until the gateway confirms the funds. Returns the token the gateway
must echo back in its callback.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from orderflow.application.create_order import build_order
from orderflow.application.dto import CheckoutResult, CreateOrderCommand
from orderflow.domain.exceptions import EntityNotFoundError, ValidationError
from orderflow.domain.model.order import PaymentMethod, generate_order_number
from orderflow.domain.model.payment import Payment, PaymentToken, PendingOrder
from orderflow.domain.model.value_objects import Money
from orderflow.domain.repository.order_repository import OrderRepository
from orderflow.domain.repository.payment_repository import (
    PaymentRepository,
    PendingOrderRepository,
)

logger = logging.getLogger(__name__)

GATEWAY_METHODS: dict[str, PaymentMethod] = {
    "wallet": PaymentMethod.WALLET,
    "card": PaymentMethod.CREDIT_CARD,
}


def payment_method_for(gateway: str) -> PaymentMethod:
    try:
        return GATEWAY_METHODS[gateway.strip().lower()]
    except KeyError as exc:
        raise ValidationError(
            f"Unknown payment gateway {gateway!r} (expected one of {', '.join(GATEWAY_METHODS)})"
        ) from exc


class StartCheckoutHandler:

    def __init__(
        self,
        payment_repo: PaymentRepository,
        pending_repo: PendingOrderRepository,
        order_repo: OrderRepository,
        draft_ttl: timedelta = timedelta(hours=24),
    ) -> None:
        self._payment_repo = payment_repo
        self._pending_repo = pending_repo
        self._order_repo = order_repo
        self._draft_ttl = draft_ttl

    def handle(
        self,
        user_id: str,
        request_id: str,
        gateway: str,
        payload: dict[str, Any] | None = None,
        order_id: int | None = None,
        amount: Decimal | None = None,
        gateway_order_id: str | None = None,
    ) -> CheckoutResult:
        """Start a payment for a new checkout (*payload*) or an existing order."""
        if not request_id:
            raise ValidationError("A payment request id is required")
        if self._payment_repo.get_by_request_id(request_id) is not None:
            raise ValidationError(f"Payment request {request_id} already exists")
        method = payment_method_for(gateway)
        now = datetime.now(timezone.utc)

        if order_id is not None:
            order = self._order_repo.get_by_id(order_id)
            if order is None:
                raise EntityNotFoundError(f"Order #{order_id} not found")
            token = PaymentToken(order_id=str(order.id), order_number=order.order_number)
            charge = Money.of(amount) if amount is not None else order.final_price
        else:
            if payload is None:
                raise ValidationError("A new checkout needs an order payload")
            command = CreateOrderCommand.from_payload(payload)
            order_number = command.order_number or generate_order_number(now)
            # Refuse now what the callback could never turn into an order.
            build_order(
                dataclasses.replace(command, payment_method=method.value), user_id, order_number
            )
            if amount is None:
                amount = command.final_price
            if amount is None:
                amount = command.total_price - command.discount_amount
            charge = Money.of(amount)
            self._pending_repo.save(
                PendingOrder.open(
                    request_id=request_id,
                    user_id=user_id,
                    payload={**payload, "order_number": order_number},
                    ttl=self._draft_ttl,
                    gateway_order_id=gateway_order_id,
                    now=now,
                )
            )
            token = PaymentToken(order_number=order_number, is_new_order=True)

        payment = Payment(
            id=self._payment_repo.next_id(),
            request_id=request_id,
            amount=charge,
            method=method,
            user_id=user_id,
            order_id=order_id,
            gateway_order_id=gateway_order_id,
        )
        self._payment_repo.save(payment)
        logger.info(
            "Checkout %s started for user %s via %s (%s, new order: %s)",
            request_id, user_id, gateway, charge, token.is_new_order,
        )
        return CheckoutResult(
            request_id=request_id,
            payment_id=payment.id,  # type: ignore[arg-type]
            token=token.encode(),
            is_new_order=token.is_new_order,
        )


class PurgeExpiredDraftsHandler:

    def __init__(self, pending_repo: PendingOrderRepository) -> None:
        self._pending_repo = pending_repo

    def handle(self, now: datetime | None = None) -> int:
        removed = self._pending_repo.purge_expired(now)
        if removed:
            logger.info("Purged %d expired checkout drafts", removed)
        return removed
