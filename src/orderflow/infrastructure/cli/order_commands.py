"""CLI commands for the Order aggregate."""

from __future__ import annotations

import json

import click

from orderflow.application.dto import CreateOrderCommand, OrderDTO, OrderPatch
from orderflow.domain.exceptions import DomainException
from orderflow.infrastructure.bootstrap import Container
from orderflow.infrastructure.cli._io import read_json


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order #{dto.id} {dto.order_number}  (status={dto.status})")
    click.echo(f"Customer: {dto.user_id}")
    click.echo(f"Payment:  {dto.payment_method} / {dto.payment_status}")
    if dto.tracking_code:
        click.echo(f"Tracking: {dto.tracking_code}")
    click.echo(f"Created:  {dto.created_at}")
    click.echo()
    click.echo(f"  {'Product':<24} {'Qty':>5} {'Price':>14} {'Total':>14}")
    click.echo(f"  {'-'*60}")
    for item in dto.items:
        click.echo(
            f"  {item.name or item.product_id:<24} {item.quantity:>5} "
            f"{item.unit_price:>14} {item.line_total:>14}"
        )
    click.echo(f"  {'-'*60}")
    click.echo(f"  {'Order Total':<31} {dto.total:>29}")
    click.echo(f"  {'Discount':<31} {dto.discount:>29}")
    click.echo(f"  {'To Pay':<31} {dto.final_price:>29}")

    if dto.history:
        click.echo()
        click.echo("History:")
        for entry in dto.history:
            where = f" @ {entry.location}" if entry.location else ""
            click.echo(f"  {entry.timestamp}  {entry.status:<10} {entry.description}{where}")


@click.command("create")
@click.option("--user", "user_id", required=True, help="Owning user ID.")
@click.option("--file", "payload_file", required=True, type=click.File("r"), help="Checkout payload (JSON).")
@click.pass_obj
def order_create(container: Container, user_id: str, payload_file) -> None:
    """Create a new order from a checkout payload."""
    try:
        command = CreateOrderCommand.from_payload(read_json(payload_file))
        dto = container.create_order.handle(command, user_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order #{dto.id} created  (status={dto.status})")
    _display_order(dto)


@click.command("show")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to display.")
@click.pass_obj
def order_show(container: Container, order_id: int) -> None:
    """Show an order with its tracking history."""
    try:
        dto = container.show_order.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(dto)


@click.command("status")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
@click.option("--status", required=True, help="Target status, e.g. CONFIRMED.")
@click.option("--by", "updated_by", default=None, help="Who made the change.")
@click.option("--note", default=None, help="Text for the tracking entry.")
@click.pass_obj
def order_status(
    container: Container, order_id: int, status: str, updated_by: str | None, note: str | None
) -> None:
    """Change an order's status (adjusts stock as needed)."""
    try:
        dto = container.update_order.handle(
            order_id, OrderPatch(status=status, updated_by=updated_by, description=note)
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order #{order_id} is now {dto.status}.")


@click.command("cancel")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to cancel.")
@click.option("--reason", required=True, help="Why the order is cancelled.")
@click.option("--by", "updated_by", default=None, help="Who cancelled it.")
@click.pass_obj
def order_cancel(container: Container, order_id: int, reason: str, updated_by: str | None) -> None:
    """Cancel an order (restores stock, asks the carrier to cancel)."""
    try:
        dto = container.cancel_order.handle(order_id, reason, updated_by)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order #{order_id} cancelled.")
    sync = dto.metadata.get("carrier_cancellation")
    if sync and not sync.get("success"):
        click.echo(f"Warning: carrier cancellation failed: {sync.get('error')}")


@click.command("return")
@click.option("--id", "order_id", required=True, type=int, help="Delivered order ID.")
@click.option("--reason", required=True, help="Why the order is returned.")
@click.option("--by", "updated_by", default=None, help="Who requested the return.")
@click.pass_obj
def order_return(container: Container, order_id: int, reason: str, updated_by: str | None) -> None:
    """Return a delivered order (restores stock, requests a pickup)."""
    try:
        container.return_order.handle(order_id, reason, updated_by)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order #{order_id} returned.")


@click.command("remove")
@click.option("--id", "order_id", required=True, type=int, help="Cancelled order ID.")
@click.pass_obj
def order_remove(container: Container, order_id: int) -> None:
    """Delete a cancelled order and its tracking log."""
    try:
        container.remove_order.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order #{order_id} deleted.")


@click.command("ship")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to ship.")
@click.pass_obj
def order_ship(container: Container, order_id: int) -> None:
    """Create a carrier shipment for an order."""
    try:
        result = container.create_shipment.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order #{order_id} shipped: tracking code {result.tracking_code}")
    if result.cod_mismatch:
        click.echo("Warning: the carrier recorded a zero COD amount; check the shipment.")


@click.command("carrier-info")
@click.option("--id", "order_id", required=True, type=int, help="Shipped order ID.")
@click.pass_obj
def order_carrier_info(container: Container, order_id: int) -> None:
    """Show the carrier's view of an order's shipment."""
    try:
        info = container.carrier_shipment.info(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(json.dumps(info, indent=2, ensure_ascii=False, default=str))


@click.command("resend-webhook")
@click.option("--id", "order_id", required=True, type=int, help="Shipped order ID.")
@click.option("--reason", default=None, help="Note for the carrier.")
@click.pass_obj
def order_resend_webhook(container: Container, order_id: int, reason: str | None) -> None:
    """Ask the carrier to send the latest status webhook again."""
    try:
        container.carrier_shipment.resend_webhook(order_id, reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Webhook resend requested for order #{order_id}.")
