"""Application service: Promote Pending Order use case.

Runs when a payment gateway reports back. At most one order is created per
payment request id: the draft is claimed (deleted) before the order is
built, so a replayed callback finds nothing to promote.
If the order cannot be built the draft is put back and the error is kept
on the payment under ``promotion_error``.

Gateways expect an acknowledgement whatever happens, so unknown payments,
drafts and orders are logged no-ops, and every follow-up (shipment, cart)
is a best-effort side effect.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone

from orderflow.application.create_order import CreateOrderHandler
from orderflow.application.create_shipment import CreateShipmentHandler
from orderflow.application.dto import CreateOrderCommand, GatewayCallback, PromotionResult
from orderflow.application.ports import CartService
from orderflow.application.side_effects import (
    SideEffect,
    SideEffectRunner,
    record_failures,
)
from orderflow.application.start_checkout import payment_method_for
from orderflow.application.update_order import UpdateOrderStatusHandler
from orderflow.domain.exceptions import DomainException, ValidationError
from orderflow.domain.model.order import Order, PaymentStatus
from orderflow.domain.model.order_status import OrderStatus
from orderflow.domain.model.payment import Payment, PaymentToken
from orderflow.domain.repository.order_repository import OrderRepository
from orderflow.domain.repository.payment_repository import (
    PaymentRepository,
    PendingOrderRepository,
)

logger = logging.getLogger(__name__)

PROMOTION_ERROR_KEY = "promotion_error"


class PromotePendingOrderHandler:

    def __init__(
        self,
        payment_repo: PaymentRepository,
        pending_repo: PendingOrderRepository,
        order_repo: OrderRepository,
        create_order: CreateOrderHandler,
        status_handler: UpdateOrderStatusHandler,
        shipments: CreateShipmentHandler,
        carts: CartService,
        runner: SideEffectRunner,
    ) -> None:
        self._payment_repo = payment_repo
        self._pending_repo = pending_repo
        self._order_repo = order_repo
        self._create_order = create_order
        self._status_handler = status_handler
        self._shipments = shipments
        self._carts = carts
        self._runner = runner

    def handle(self, callback: GatewayCallback) -> PromotionResult:
        payment = self._payment_repo.get_by_request_id(callback.request_id)
        if payment is None:
            logger.warning("No payment recorded for request %s", callback.request_id)
            return PromotionResult("payment_missing")

        snapshot = {
            "gateway": callback.gateway,
            "result_code": callback.result_code,
            "message": callback.message,
            "amount": str(callback.amount),
        }
        if not callback.succeeded:
            logger.warning(
                "Payment %s failed at %s with code %d: %s",
                callback.request_id, callback.gateway, callback.result_code, callback.message,
            )
            payment.mark(PaymentStatus.FAILED, snapshot)
            self._payment_repo.save(payment)
            return PromotionResult("payment_failed", payment.order_id)

        payment.transaction_id = callback.transaction_id or payment.transaction_id
        payment.mark(PaymentStatus.PAID, snapshot)
        self._payment_repo.save(payment)

        token = self._decode_token(callback)
        if token.is_new_order:
            return self._promote_draft(callback, payment, token)
        if token.order_id:
            return self._confirm_existing(payment, token)

        logger.error(
            "Callback %s names neither a draft nor an order; nothing to promote",
            callback.request_id,
        )
        return PromotionResult("order_missing")

    # --- New order ------------------------------------------------------------

    def _promote_draft(
        self, callback: GatewayCallback, payment: Payment, token: PaymentToken
    ) -> PromotionResult:
        draft = self._pending_repo.get_by_request_id(callback.request_id)
        if draft is None:
            if payment.order_id is not None:
                logger.warning(
                    "Request %s was already promoted to order #%s",
                    callback.request_id, payment.order_id,
                )
                return PromotionResult("already_processed", payment.order_id)
            logger.warning("No checkout draft for request %s", callback.request_id)
            return PromotionResult("draft_missing")

        # Claim the draft first; a concurrent replay loses here.
        if not self._pending_repo.delete(callback.request_id):
            return PromotionResult("already_processed", payment.order_id)

        try:
            command = CreateOrderCommand.from_payload(draft.payload)
            command = dataclasses.replace(
                command,
                payment_method=payment_method_for(callback.gateway).value,
                order_number=token.order_number or command.order_number,
            )
            created = self._create_order.handle(command, draft.user_id)
        except DomainException as exc:
            logger.exception(
                "Paid checkout %s could not be turned into an order", callback.request_id
            )
            # Nothing was persisted; park the draft again for an operator.
            self._pending_repo.save(draft)
            payment.details = {
                **payment.details,
                PROMOTION_ERROR_KEY: {
                    "error": str(exc),
                    "failed_at": datetime.now(timezone.utc).isoformat(),
                },
            }
            self._payment_repo.save(payment)
            return PromotionResult("create_failed")

        order = self._order_repo.get_by_id(created.id)
        if order is None:
            return PromotionResult("order_missing")
        order.payment_status = PaymentStatus.PAID
        order.payment_id = str(payment.id)
        order.touch()
        self._order_repo.save(order)

        payment.attach_order(order.id)  # type: ignore[arg-type]
        self._payment_repo.save(payment)
        logger.info(
            "Draft %s promoted to order %s", callback.request_id, order.order_number
        )

        self._follow_up(order, ship=True)
        return PromotionResult("created", order.id)

    # --- Existing order -------------------------------------------------------

    def _confirm_existing(self, payment: Payment, token: PaymentToken) -> PromotionResult:
        try:
            order_id = int(token.order_id)
        except ValueError:
            logger.error("Payment token carries a bad order id %r", token.order_id)
            return PromotionResult("order_missing")

        order = self._order_repo.get_by_id(order_id)
        if order is None:
            logger.error("Paid order #%d not found", order_id)
            return PromotionResult("order_missing")
        if order.status != OrderStatus.PENDING:
            logger.warning(
                "Order %s is already %s; payment callback ignored",
                order.order_number, order.status.value,
            )
            return PromotionResult("already_processed", order.id)

        order.payment_status = PaymentStatus.PAID
        order.payment_id = str(payment.id)
        self._status_handler.apply(
            order, OrderStatus.CONFIRMED, updated_by=f"payment:{payment.method.value.lower()}"
        )
        payment.attach_order(order_id)
        self._payment_repo.save(payment)

        self._follow_up(order, ship=not order.tracking_code)
        return PromotionResult("confirmed", order.id)

    # --- Internal -------------------------------------------------------------

    def _follow_up(self, order: Order, ship: bool) -> None:
        effects: list[SideEffect] = []
        order_id = order.id
        if ship and not order.tracking_code:
            effects.append(SideEffect("create_shipment", lambda: self._shipments.handle(order_id)))
        effects.append(SideEffect("clear_cart", lambda: self._carts.clear_cart(order.user_id)))

        report = self._runner.run(effects)
        if report.failures:
            current = self._order_repo.get_by_id(order_id)  # type: ignore[arg-type]
            if current is not None:
                record_failures(current, report.failures)
                self._order_repo.save(current)

    @staticmethod
    def _decode_token(callback: GatewayCallback) -> PaymentToken:
        if not callback.token:
            logger.warning("Callback %s carries no payment token", callback.request_id)
            return PaymentToken()
        try:
            return PaymentToken.decode(callback.token)
        except ValidationError:
            logger.exception("Could not decode payment token for %s", callback.request_id)
            return PaymentToken()
