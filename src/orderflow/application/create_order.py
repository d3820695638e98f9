"""Application service: Create Order use case.

Orchestrates the flow between repositories and the domain model:

1. Build line items with the prices the storefront locked in.
2. Assign a ``YM...`` order number that is not taken yet.
3. Take the items out of stock (best-effort, per item).
4. Persist the order and seed its tracking log.
5. After commit: mark the voucher used and, for COD, open a shipment.
"""

from __future__ import annotations

import logging
import random

from orderflow.application.create_shipment import CreateShipmentHandler
from orderflow.application.dto import CreateOrderCommand, OrderDTO, to_order_dto
from orderflow.application.ports import VoucherService
from orderflow.application.side_effects import (
    RetryPolicy,
    SideEffect,
    SideEffectRunner,
    record_failures,
)
from orderflow.application.tracking_log import TrackingLog
from orderflow.application.update_order import INVENTORY_FAILURES_KEY
from orderflow.domain.exceptions import ValidationError
from orderflow.domain.model.order import (
    Order,
    OrderLineItem,
    OrderVoucher,
    PaymentMethod,
    generate_order_number,
)
from orderflow.domain.model.order_status import describe
from orderflow.domain.model.value_objects import Money, Quantity
from orderflow.domain.repository.order_repository import OrderRepository
from orderflow.domain.service.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 5

# A failed shipment is left for an operator to retry by hand.
SHIPMENT_RETRY = RetryPolicy(max_attempts=1)


class CreateOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        tracking_log: TrackingLog,
        ledger: InventoryLedger,
        vouchers: VoucherService,
        shipments: CreateShipmentHandler,
        runner: SideEffectRunner,
        rng: random.Random | None = None,
    ) -> None:
        self._order_repo = order_repo
        self._tracking_log = tracking_log
        self._ledger = ledger
        self._vouchers = vouchers
        self._shipments = shipments
        self._runner = runner
        self._rng = rng or random.Random()

    def handle(self, command: CreateOrderCommand, user_id: str) -> OrderDTO:
        """Create a new order for *user_id* from a checkout payload."""
        order = build_order(command, user_id, self._assign_order_number(command.order_number))
        order.id = self._order_repo.next_id()

        # New orders always start in a stock-holding status.
        report = self._ledger.decrement_for_order(order)
        for failure in report.failures:
            order.append_record(
                INVENTORY_FAILURES_KEY,
                {"action": report.action.value, "product_id": failure.product_id, "error": failure.error},
            )

        self._order_repo.save(order)
        self._tracking_log.record(order, order.status, describe(order.status))
        logger.info(
            "Order %s created for user %s (%d items, %s)",
            order.order_number, user_id, len(order.items), order.final_price,
        )

        self._after_commit(order)
        saved = self._order_repo.get_by_id(order.id)
        return to_order_dto(saved or order)

    # --- Internal -------------------------------------------------------------

    def _assign_order_number(self, requested: str | None) -> str:
        if requested and self._order_repo.get_by_order_number(requested) is None:
            return requested
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            candidate = generate_order_number(rng=self._rng)
            if self._order_repo.get_by_order_number(candidate) is None:
                return candidate
        raise ValidationError(
            f"Could not assign a free order number after {ORDER_NUMBER_ATTEMPTS} attempts"
        )

    def _after_commit(self, order: Order) -> None:
        effects: list[SideEffect] = []
        if order.voucher and order.voucher.voucher_id:
            voucher_id = order.voucher.voucher_id
            effects.append(
                SideEffect(
                    "mark_voucher_used",
                    lambda: self._vouchers.mark_used(voucher_id, order.user_id, order.id),
                )
            )
        if order.is_cod:
            order_id = order.id
            effects.append(
                SideEffect(
                    "create_shipment",
                    lambda: self._shipments.handle(order_id),
                    retry=SHIPMENT_RETRY,
                )
            )
        if not effects:
            return

        report = self._runner.run(effects)
        if report.failures:
            # The shipment effect may have saved the order in the meantime.
            current = self._order_repo.get_by_id(order.id)  # type: ignore[arg-type]
            if current is not None:
                record_failures(current, report.failures)
                self._order_repo.save(current)


def _parse_payment_method(raw: str) -> PaymentMethod:
    try:
        return PaymentMethod(raw.strip().upper())
    except ValueError as exc:
        valid = ", ".join(m.value for m in PaymentMethod)
        raise ValidationError(f"Unknown payment method {raw!r} (expected one of {valid})") from exc


def build_order(command: CreateOrderCommand, user_id: str, order_number: str) -> Order:
    """Turn a checkout payload into an unsaved order.

    Raises ValidationError for anything ``Order.create`` refuses, so callers
    can check a payload before committing to it.
    """
    line_items = [
        OrderLineItem(
            product_id=spec.product_id,
            name=spec.name,
            quantity=Quantity(spec.quantity),
            unit_price=Money.of(spec.unit_price),  # <-- price snapshot
            variant_id=spec.variant_id,
            image=spec.image,
            options=dict(spec.options),
            weight=spec.weight,
        )
        for spec in command.items
    ]

    voucher = None
    if command.voucher_id or command.voucher_code or command.discount_amount:
        voucher = OrderVoucher(
            discount_amount=Money.of(command.discount_amount),
            voucher_id=command.voucher_id,
            code=command.voucher_code,
        )

    return Order.create(
        order_number=order_number,
        user_id=user_id,
        items=line_items,
        shipping_address=command.shipping_address,
        subtotal=Money.of(command.subtotal),
        total_price=Money.of(command.total_price),
        tax=Money.of(command.tax),
        shipping_fee=Money.of(command.shipping_fee),
        voucher=voucher,
        final_price=Money.of(command.final_price) if command.final_price is not None else None,
        branch_id=command.branch_id,
        payment_method=_parse_payment_method(command.payment_method),
        shipping_service_code=command.shipping_service_code,
        notes=command.notes,
        metadata=command.metadata,
    )
