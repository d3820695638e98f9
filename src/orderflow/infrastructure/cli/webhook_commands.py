"""CLI commands for inbound carrier webhooks."""

from __future__ import annotations

import hmac

import click

from orderflow.application.dto import CarrierWebhookEvent
from orderflow.domain.exceptions import DomainException
from orderflow.infrastructure.bootstrap import Container
from orderflow.infrastructure.cli._io import read_json


@click.command("carrier")
@click.option("--file", "event_file", required=True, type=click.File("r"), help="Webhook body ({DATA, TOKEN}).")
@click.pass_obj
def webhook_carrier(container: Container, event_file) -> None:
    """Reconcile one carrier status webhook."""
    body = read_json(event_file)
    if not isinstance(body, dict) or "DATA" not in body:
        raise click.ClickException("Webhook body must be an object with a DATA field")

    expected = container.settings.carrier_webhook_token
    if expected and not hmac.compare_digest(str(body.get("TOKEN", "")), expected):
        raise click.ClickException("Invalid webhook token")

    try:
        result = container.carrier_webhook.handle(CarrierWebhookEvent.from_payload(body["DATA"]))
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if result.order_id is None:
        click.echo(f"Webhook acknowledged ({result.outcome}).")
    else:
        click.echo(
            f"Webhook acknowledged ({result.outcome}): order #{result.order_id} is {result.status}."
        )
