import logging

import click

from orderflow.infrastructure.bootstrap import build_container
from orderflow.infrastructure.cli.inventory_commands import inventory_set, inventory_show
from orderflow.infrastructure.cli.order_commands import (
    order_cancel,
    order_carrier_info,
    order_create,
    order_remove,
    order_resend_webhook,
    order_return,
    order_ship,
    order_show,
    order_status,
)
from orderflow.infrastructure.cli.payment_commands import (
    payment_callback,
    payment_checkout,
    payment_purge_drafts,
)
from orderflow.infrastructure.cli.webhook_commands import webhook_carrier
from orderflow.infrastructure.config import Settings


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """orderflow — order lifecycle and inventory reconciliation"""
    if ctx.obj is None:
        settings = Settings()
        logging.basicConfig(
            level=settings.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        ctx.obj = build_container(settings)


@cli.group()
def order() -> None:
    """Manage orders."""


@cli.group()
def inventory() -> None:
    """Manage branch stock."""


@cli.group()
def webhook() -> None:
    """Feed inbound webhooks."""


@cli.group()
def payment() -> None:
    """Start checkouts and process gateway callbacks."""


# Register subcommands
order.add_command(order_cancel)
order.add_command(order_carrier_info)
order.add_command(order_create)
order.add_command(order_remove)
order.add_command(order_resend_webhook)
order.add_command(order_return)
order.add_command(order_ship)
order.add_command(order_show)
order.add_command(order_status)
inventory.add_command(inventory_set)
inventory.add_command(inventory_show)
webhook.add_command(webhook_carrier)
payment.add_command(payment_callback)
payment.add_command(payment_checkout)
payment.add_command(payment_purge_drafts)
