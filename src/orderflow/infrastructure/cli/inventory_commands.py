"""CLI commands for branch stock."""

from __future__ import annotations

import click

from orderflow.domain.exceptions import DomainException
from orderflow.infrastructure.bootstrap import Container


@click.command("set")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--branch", "branch_id", required=True, help="Branch ID.")
@click.option("--variant", "variant_id", default=None, help="Variant ID.")
@click.option("--combination", "combination_id", default=None, help="Option combination ID.")
@click.option("--quantity", required=True, type=int, help="Units in stock.")
@click.pass_obj
def inventory_set(
    container: Container,
    product_id: str,
    branch_id: str,
    variant_id: str | None,
    combination_id: str | None,
    quantity: int,
) -> None:
    """Set one stock level; variant and branch totals are recomputed."""
    try:
        adjustment = container.set_inventory.handle(
            product_id, branch_id, quantity, variant_id, combination_id
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Stock for '{product_id}' at {adjustment.locator} set to {adjustment.after} "
        f"(was {adjustment.before})"
    )


@click.command("show")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.pass_obj
def inventory_show(container: Container, product_id: str) -> None:
    """Show a product's stock per branch, variant and combination."""
    try:
        lines = container.show_inventory.handle(product_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not lines:
        click.echo("No inventory records found.")
        return

    click.echo(f"{'Branch':<12} {'Variant':<14} {'Combination':<14} {'Qty':>8}")
    click.echo("-" * 51)
    for line in lines:
        click.echo(
            f"{line.branch_id:<12} {line.variant_id or '':<14} "
            f"{line.combination_id or '':<14} {line.quantity:>8}"
        )
