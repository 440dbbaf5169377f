"""CLI tools for back-office administration."""

import asyncio
from uuid import UUID

import click

from backoffice.core.config import settings
from backoffice.core.structured_logging import configure_logging
from backoffice.db.session import SessionLocal
from backoffice.services import (
    alert_service,
    estimation_service,
    github_service,
    profitability_service,
)
from backoffice.services.errors import BackofficeError


@click.group()
def cli():
    """Back-office CLI tools."""
    configure_logging(settings.LOG_LEVEL)


@cli.command()
def generate_alerts():
    """
    Evaluate alert rules for every active project.

    Meant to be scheduled (cron) once a day.

    Example:
        backoffice generate-alerts
    """
    db = SessionLocal()
    try:
        created = alert_service.generate_alerts(db)
        click.echo(f"✓ {len(created)} new alert(s)")
        for alert in created:
            click.echo(f"  - {alert.message}")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


async def _refresh(quote_id: UUID, state: str):
    db = SessionLocal()
    try:
        async with github_service.build_client() as client:
            return await estimation_service.refresh_from_tracker(
                db, quote_id, client, state=state
            )
    finally:
        db.close()


@cli.command()
@click.option("--quote-id", required=True, type=click.UUID, help="Quote to refresh")
@click.option(
    "--state",
    default="open",
    type=click.Choice(["open", "closed", "all"]),
    help="Milestone state to fetch (default: open)",
)
def reconcile_quote(quote_id: UUID, state: str):
    """
    Re-fetch the quote's repository from GitHub and reconcile its estimations.

    Example:
        backoffice reconcile-quote --quote-id 1b4e28ba-2fa1-11d2-883f-0016d3cca427
    """
    try:
        tree = asyncio.run(_refresh(quote_id, state))
    except BackofficeError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"✓ Reconciled {len(tree.milestones)} milestone(s), {tree.issue_count} issue(s)")
    for milestone in tree.milestones:
        marker = "x" if milestone.include_in_quote else " "
        click.echo(f"  [{marker}] {milestone.title}: {milestone.calculated_price:.2f}")


@cli.command()
@click.option("--project-id", required=True, type=click.UUID, help="Project to report on")
def profitability(project_id: UUID):
    """
    Print live profitability for a project.

    Example:
        backoffice profitability --project-id 1b4e28ba-2fa1-11d2-883f-0016d3cca427
    """
    db = SessionLocal()
    try:
        figures = profitability_service.compute_profitability(db, project_id)
    except BackofficeError as e:
        raise click.ClickException(str(e)) from e
    finally:
        db.close()

    currency = settings.DISPLAY_CURRENCY
    click.echo(f"Income:        {figures.total_income:.2f} {currency}")
    click.echo(f"  AI messages: {figures.breakdown.ai_messages_cost:.2f}")
    click.echo(f"  Manual:      {figures.breakdown.manual_tasks_cost:.2f}")
    click.echo(f"  Extra:       {figures.breakdown.extra_expenses_cost:.2f}")
    click.echo(f"Costs:         {figures.total_costs:.2f} {currency}")
    click.echo(f"Net profit:    {figures.net_profit:.2f} {currency}")
    click.echo(f"Margin:        {figures.profit_margin:.1f}%")


if __name__ == "__main__":
    cli()
