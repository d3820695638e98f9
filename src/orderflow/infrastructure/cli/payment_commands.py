"""CLI commands for checkouts and payment gateway callbacks."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

import click

from orderflow.application.dto import GatewayCallback
from orderflow.domain.exceptions import DomainException
from orderflow.infrastructure.bootstrap import Container
from orderflow.infrastructure.cli._io import read_json


@click.command("checkout")
@click.option("--user", "user_id", required=True, help="Paying user ID.")
@click.option("--request-id", required=True, help="Gateway request ID.")
@click.option("--gateway", type=click.Choice(["wallet", "card"]), default="wallet", show_default=True)
@click.option("--file", "payload_file", type=click.File("r"), default=None, help="Checkout payload for a new order.")
@click.option("--order", "order_id", type=int, default=None, help="Pay for an existing order instead.")
@click.option("--amount", default=None, help="Amount to charge (defaults to the order's final price).")
@click.pass_obj
def payment_checkout(
    container: Container,
    user_id: str,
    request_id: str,
    gateway: str,
    payload_file,
    order_id: int | None,
    amount: str | None,
) -> None:
    """Record a payment attempt and print the token for the gateway."""
    if (payload_file is None) == (order_id is None):
        raise click.UsageError("Pass exactly one of --file or --order")
    try:
        charge = Decimal(amount) if amount is not None else None
    except InvalidOperation:
        raise click.BadParameter(f"Invalid amount '{amount}'", param_hint="--amount")

    try:
        result = container.start_checkout.handle(
            user_id=user_id,
            request_id=request_id,
            gateway=gateway,
            payload=read_json(payload_file) if payload_file else None,
            order_id=order_id,
            amount=charge,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Payment #{result.payment_id} pending for request {result.request_id}")
    click.echo(f"Token: {result.token}")


@click.command("callback")
@click.option("--file", "callback_file", required=True, type=click.File("r"), help="Gateway callback body (JSON).")
@click.option("--gateway", type=click.Choice(["wallet", "card"]), default=None, help="Override the gateway name.")
@click.pass_obj
def payment_callback(container: Container, callback_file, gateway: str | None) -> None:
    """Process a gateway callback (promotes the pending order)."""
    try:
        callback = GatewayCallback.from_payload(read_json(callback_file), gateway)
        result = container.promote_pending_order.handle(callback)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    suffix = f": order #{result.order_id}" if result.order_id is not None else ""
    click.echo(f"Callback processed ({result.outcome}){suffix}")


@click.command("purge-drafts")
@click.pass_obj
def payment_purge_drafts(container: Container) -> None:
    """Delete expired checkout drafts."""
    removed = container.purge_drafts.handle()
    click.echo(f"Removed {removed} expired draft(s).")
