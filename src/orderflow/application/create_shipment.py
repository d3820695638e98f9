"""Application service: Create Shipment use case.

Opens a carrier shipment for an order, stores the tracking code and moves
the order to PROCESSING. The sender is the order's branch, else the default
branch, else the store address from configuration.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from orderflow.application.dto import ShipmentResult
from orderflow.application.ports import (
    CarrierClient,
    ShipmentItem,
    ShipmentParty,
    ShipmentRequest,
)
from orderflow.application.tracking_log import TrackingLog
from orderflow.application.update_order import UpdateOrderStatusHandler
from orderflow.domain.exceptions import CarrierError, EntityNotFoundError, ValidationError
from orderflow.domain.model.order import Order
from orderflow.domain.model.order_status import OrderStatus, ensure_transition
from orderflow.domain.model.tracking import CarrierInfo
from orderflow.domain.model.value_objects import PhoneNumber
from orderflow.domain.repository.order_repository import OrderRepository
from orderflow.domain.repository.product_repository import BranchRepository, ProductRepository

logger = logging.getLogger(__name__)

SHIPMENT_CREATED_DESCRIPTION = "Order has been processed and a shipment was created"


class CreateShipmentHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        branch_repo: BranchRepository,
        tracking_log: TrackingLog,
        carrier: CarrierClient,
        status_handler: UpdateOrderStatusHandler,
        default_branch_id: str,
        store_sender: ShipmentParty,
        tracking_url_template: str = "",
    ) -> None:
        self._order_repo = order_repo
        self._product_repo = product_repo
        self._branch_repo = branch_repo
        self._tracking_log = tracking_log
        self._carrier = carrier
        self._status_handler = status_handler
        self._default_branch_id = default_branch_id
        self._store_sender = store_sender
        self._tracking_url_template = tracking_url_template

    def handle(self, order_id: int) -> ShipmentResult:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order #{order_id} not found")
        if order.tracking_code:
            raise ValidationError(
                f"Order {order.order_number} already has tracking code {order.tracking_code}"
            )
        ensure_transition(order.status, OrderStatus.PROCESSING)

        request = self._build_request(order)
        receipt = self._carrier.create_shipment(request)
        if not receipt.tracking_code:
            raise CarrierError(f"Carrier returned no tracking code for {order.order_number}")

        now = datetime.now(timezone.utc)
        order.tracking_code = receipt.tracking_code
        order.record(
            "carrier_shipment",
            {
                "carrier": self._carrier.name,
                "tracking_code": receipt.tracking_code,
                "created_at": now.isoformat(),
            },
        )

        # The carrier sometimes drops the collection amount; flag it for an operator.
        cod_mismatch = (
            order.is_cod
            and receipt.money_collection is not None
            and receipt.money_collection == 0
            and not order.final_price.is_zero
        )
        if cod_mismatch:
            logger.warning(
                "Carrier set a zero COD amount for order %s (expected %s)",
                order.order_number, order.final_price,
            )
            order.record(
                "cod_collection_mismatch",
                {
                    "expected": str(order.final_price.amount),
                    "carrier_amount": str(receipt.money_collection),
                    "detected_at": now.isoformat(),
                },
            )
        self._order_repo.save(order)

        changed = self._status_handler.apply(
            order,
            OrderStatus.PROCESSING,
            updated_by=self._carrier.name,
            description=SHIPMENT_CREATED_DESCRIPTION,
        )
        if not changed:
            self._tracking_log.record(
                order, OrderStatus.PROCESSING, SHIPMENT_CREATED_DESCRIPTION,
                updated_by=self._carrier.name,
            )
        self._tracking_log.attach_carrier(
            order,
            CarrierInfo(
                name=self._carrier.name,
                tracking_number=receipt.tracking_code,
                tracking_url=self._tracking_url(receipt.tracking_code),
            ),
            receipt.raw,
        )

        logger.info(
            "Shipment %s created for order %s", receipt.tracking_code, order.order_number
        )
        return ShipmentResult(
            order_id=order.id,  # type: ignore[arg-type]
            tracking_code=receipt.tracking_code,
            status=order.status.value,
            cod_mismatch=cod_mismatch,
        )

    # --- Payload --------------------------------------------------------------

    def _build_request(self, order: Order) -> ShipmentRequest:
        address = order.shipping_address
        phone = PhoneNumber.parse(address.phone)
        if not address.district_code or not address.province_code:
            raise ValidationError(
                f"Shipping address of order {order.order_number} is missing "
                f"district/province codes"
            )

        receiver = ShipmentParty(
            name=address.full_name,
            address=address.street,
            phone=str(phone),
            ward_code=address.ward_code or "",
            district_code=address.district_code,
            province_code=address.province_code,
        )
        items = [
            ShipmentItem(
                name=item.name,
                quantity=item.quantity.value,
                price=item.unit_price.amount,
                weight=self._item_weight(item.product_id, item.weight),
            )
            for item in order.items
        ]
        final = order.final_price.amount
        return ShipmentRequest(
            order_number=order.order_number,
            sender=self._sender_for(order),
            receiver=receiver,
            items=items,
            product_price=final,
            money_collection=final if order.is_cod else Decimal("0"),
            money_total=final,
            is_cod=order.is_cod,
            service_code=order.shipping_service_code or "LCOD",
            note=order.notes or "",
            voucher_amount=order.voucher.discount_amount.amount if order.voucher else Decimal("0"),
        )

    def _item_weight(self, product_id: str, override: int | None) -> int:
        product = self._product_repo.get_by_id(product_id)
        if product is not None and product.weight:
            return product.weight
        return override or 0

    def _sender_for(self, order: Order) -> ShipmentParty:
        for branch_id in (order.branch_id, self._default_branch_id):
            if not branch_id:
                continue
            branch = self._branch_repo.get_by_id(branch_id)
            if branch is not None:
                return ShipmentParty(
                    name=branch.name,
                    address=branch.address,
                    phone=branch.phone,
                    ward_code=branch.ward_code,
                    district_code=branch.district_code,
                    province_code=branch.province_code,
                )
        logger.warning(
            "No branch found for order %s; shipping from the store address",
            order.order_number,
        )
        return self._store_sender

    def _tracking_url(self, tracking_code: str) -> str | None:
        if not self._tracking_url_template:
            return None
        return self._tracking_url_template.format(tracking_code=tracking_code)


class CarrierShipmentHandler:
    """Read-only and maintenance calls against an existing shipment."""

    def __init__(self, order_repo: OrderRepository, carrier: CarrierClient) -> None:
        self._order_repo = order_repo
        self._carrier = carrier

    def info(self, order_id: int) -> dict:
        return self._carrier.get_shipment_info(self._tracking_code(order_id))

    def resend_webhook(self, order_id: int, reason: str | None = None) -> bool:
        result = self._carrier.resend_webhook(self._tracking_code(order_id), reason)
        if not result.success:
            raise CarrierError(result.message or "Carrier refused to resend the webhook")
        return True

    def _tracking_code(self, order_id: int) -> str:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order #{order_id} not found")
        if not order.tracking_code:
            raise ValidationError(f"Order {order.order_number} has no shipment yet")
        return order.tracking_code
