"""Composition root — wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions. Settings are read here
and passed down explicitly (default branch, draft TTL, retry policy).
"""

from __future__ import annotations

from datetime import timedelta

from orderflow.application.cancel_order import CancelOrderHandler
from orderflow.application.carrier_webhook import CarrierWebhookHandler
from orderflow.application.create_order import CreateOrderHandler
from orderflow.application.create_shipment import CarrierShipmentHandler, CreateShipmentHandler
from orderflow.application.ports import CarrierClient, ShipmentParty
from orderflow.application.promote_pending_order import PromotePendingOrderHandler
from orderflow.application.remove_order import RemoveOrderHandler
from orderflow.application.return_order import ReturnOrderHandler
from orderflow.application.set_inventory import SetInventoryHandler
from orderflow.application.show_inventory import ShowInventoryHandler
from orderflow.application.show_order import ShowOrderHandler
from orderflow.application.side_effects import RetryPolicy, SideEffectRunner
from orderflow.application.start_checkout import PurgeExpiredDraftsHandler, StartCheckoutHandler
from orderflow.application.tracking_log import TrackingLog
from orderflow.application.update_order import UpdateOrderHandler, UpdateOrderStatusHandler
from orderflow.domain.service.inventory_ledger import InventoryLedger
from orderflow.infrastructure.adapters.carrier import OfflineCarrierClient
from orderflow.infrastructure.adapters.json_services import JsonCartService, JsonVoucherService
from orderflow.infrastructure.config import Settings
from orderflow.infrastructure.persistence.json_order_repository import (
    JsonOrderRepository,
    JsonTrackingRepository,
)
from orderflow.infrastructure.persistence.json_payment_repository import (
    JsonPaymentRepository,
    JsonPendingOrderRepository,
)
from orderflow.infrastructure.persistence.json_product_repository import (
    JsonBranchRepository,
    JsonProductRepository,
)


class Container:
    """Builds every handler once, sharing repositories between them."""

    def __init__(self, settings: Settings, carrier: CarrierClient | None = None) -> None:
        self.settings = settings
        data = settings.data_dir

        self.order_repo = JsonOrderRepository(data / "orders.json")
        self.tracking_repo = JsonTrackingRepository(data / "order_tracking.json")
        self.product_repo = JsonProductRepository(data / "products.json")
        self.branch_repo = JsonBranchRepository(data / "branches.json")
        self.payment_repo = JsonPaymentRepository(data / "payments.json")
        self.pending_repo = JsonPendingOrderRepository(data / "pending_orders.json")
        self.carts = JsonCartService(data / "carts.json")
        self.vouchers = JsonVoucherService(data / "vouchers.json")
        self.carrier = carrier or OfflineCarrierClient(settings.carrier_name)

        self.runner = SideEffectRunner(
            RetryPolicy(
                max_attempts=settings.side_effect_max_attempts,
                base_delay=settings.side_effect_base_delay,
                max_delay=settings.side_effect_max_delay,
            )
        )
        self.tracking_log = TrackingLog(self.tracking_repo)
        self.ledger = InventoryLedger(self.product_repo, settings.default_branch_id)

        # --- Handlers ---------------------------------------------------------

        self.update_status = UpdateOrderStatusHandler(
            self.order_repo, self.product_repo, self.tracking_log, self.ledger, self.runner
        )
        self.update_order = UpdateOrderHandler(self.order_repo, self.update_status)
        self.create_shipment = CreateShipmentHandler(
            order_repo=self.order_repo,
            product_repo=self.product_repo,
            branch_repo=self.branch_repo,
            tracking_log=self.tracking_log,
            carrier=self.carrier,
            status_handler=self.update_status,
            default_branch_id=settings.default_branch_id,
            store_sender=ShipmentParty(
                name=settings.store_name,
                address=settings.store_address,
                phone=settings.store_phone,
                ward_code=settings.store_ward_code,
                district_code=settings.store_district_code,
                province_code=settings.store_province_code,
            ),
            tracking_url_template=settings.carrier_tracking_url,
        )
        self.carrier_shipment = CarrierShipmentHandler(self.order_repo, self.carrier)
        self.create_order = CreateOrderHandler(
            self.order_repo,
            self.tracking_log,
            self.ledger,
            self.vouchers,
            self.create_shipment,
            self.runner,
        )
        self.show_order = ShowOrderHandler(self.order_repo, self.tracking_repo)
        self.cancel_order = CancelOrderHandler(
            self.order_repo, self.update_status, self.carrier, self.runner
        )
        self.return_order = ReturnOrderHandler(
            self.order_repo, self.update_status, self.carrier, self.runner
        )
        self.remove_order = RemoveOrderHandler(self.order_repo, self.tracking_repo)
        self.carrier_webhook = CarrierWebhookHandler(
            self.order_repo,
            self.tracking_log,
            self.update_status,
            carrier_name=self.carrier.name,
            utc_offset_hours=settings.carrier_utc_offset_hours,
        )
        self.start_checkout = StartCheckoutHandler(
            self.payment_repo,
            self.pending_repo,
            self.order_repo,
            draft_ttl=timedelta(hours=settings.pending_order_ttl_hours),
        )
        self.purge_drafts = PurgeExpiredDraftsHandler(self.pending_repo)
        self.promote_pending_order = PromotePendingOrderHandler(
            payment_repo=self.payment_repo,
            pending_repo=self.pending_repo,
            order_repo=self.order_repo,
            create_order=self.create_order,
            status_handler=self.update_status,
            shipments=self.create_shipment,
            carts=self.carts,
            runner=self.runner,
        )
        self.set_inventory = SetInventoryHandler(self.product_repo)
        self.show_inventory = ShowInventoryHandler(self.product_repo)


def build_container(settings: Settings | None = None) -> Container:
    return Container(settings or Settings())
