"""
CLI interface for Usage Window.

Lets operators preview the raw usage window an invoice run would read.
"""

import logging
import sys
from datetime import datetime
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from usage_window.config.loader import InvoiceConfig, load_invoice_config
from usage_window.core.billing_period import BillingPeriod, UsageDefinition
from usage_window.core.clock import Clock, FixedClock, SystemClock
from usage_window.core.context import CallContext
from usage_window.core.optimizer import RawUsageOptimizer, RawUsageOptimizerResult
from usage_window.storage.db import DEFAULT_DB_PATH
from usage_window.storage.repository import UsageRepository, initialize_schema

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

DATE_FORMATS = ["%Y-%m-%d"]


def parse_usage_option(value: str) -> UsageDefinition:
    """Parse a NAME:PERIOD usage option, e.g. ``api-calls:monthly``."""
    name, sep, period = value.partition(":")
    if not sep or not name.strip() or not period.strip():
        raise ValueError(f"Invalid usage '{value}', expected NAME:PERIOD")

    period_key = period.strip().lower()
    try:
        billing_period = BillingPeriod(period_key)
    except ValueError:
        valid_periods = [bp.value for bp in BillingPeriod]
        raise ValueError(f"Unknown billing period '{period}' in '{value}', must be one of: {valid_periods}")

    return UsageDefinition(name=name.strip(), billing_period=billing_period)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Usage Window CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Usage Window - Use --help to see available commands")


@app.command()
def init(
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="Path to SQLite database")
):
    """Initialize the usage and tracking tables."""
    try:
        initialize_schema(db)
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def window(
    first_event: datetime = typer.Option(
        ...,
        "--first-event",
        formats=DATE_FORMATS,
        help="Earliest date billable usage can exist for the account"
    ),
    target: datetime = typer.Option(
        ...,
        "--target",
        formats=DATE_FORMATS,
        help="Date the invoice is generated for"
    ),
    usage: Optional[List[str]] = typer.Option(
        None,
        "--usage",
        "-u",
        help="Usage in use as NAME:PERIOD, repeatable"
    ),
    lookback: Optional[int] = typer.Option(
        None,
        "--lookback",
        "-l",
        help="Extra periods of raw usage to read (negative disables optimization)"
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Invoice configuration YAML file"
    ),
    account: int = typer.Option(1, "--account", help="Account record id"),
    tenant: int = typer.Option(1, "--tenant", help="Tenant record id"),
    today: Optional[datetime] = typer.Option(
        None,
        "--today",
        formats=DATE_FORMATS,
        help="Override today's date (UTC)"
    ),
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="Path to SQLite database"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log the computed window")
):
    """
    Compute the raw usage window for an invoice run and read it from the store.

    This is a read-only operation. The lookback comes from --lookback when
    given, otherwise from --config, otherwise from the built-in default.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )

    try:
        known_usage: Dict[str, UsageDefinition] = {}
        for value in usage or []:
            definition = parse_usage_option(value)
            known_usage[definition.name] = definition

        if lookback is not None:
            config = InvoiceConfig(max_raw_usage_previous_period=lookback)
        elif config_path is not None:
            config = load_invoice_config(config_path)
        else:
            config = InvoiceConfig()

        clock: Clock = FixedClock(today.date()) if today is not None else SystemClock()
        repository = UsageRepository(db)
        optimizer = RawUsageOptimizer(config, repository, repository, clock)
        context = CallContext(account_record_id=account, tenant_record_id=tenant)

        result = optimizer.get_in_arrear_usage(
            first_event_start_date=first_event.date(),
            target_date=target.date(),
            known_usage=known_usage,
            context=context
        )
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    _display_window_result(result, target.date().isoformat(), known_usage)
    sys.exit(EXIT_CODE_PASS)


def _display_window_result(result: RawUsageOptimizerResult, target: str, known_usage: Dict[str, UsageDefinition]):
    """Display the computed window and what was read for it."""
    console.print("\n[bold]Raw Usage Window[/bold]")

    table = Table()
    table.add_column("Start date")
    table.add_column("Target date")
    table.add_column("Raw usage records", justify="right")
    table.add_column("Tracking ids", justify="right")
    table.add_row(
        result.raw_usage_start_date.isoformat(),
        target,
        str(len(result.raw_usage)),
        str(len(result.existing_tracking_ids))
    )
    console.print(table)

    if not known_usage:
        console.print("[dim]No usage definitions given; window is not constrained by billing periods.[/]")


if __name__ == "__main__":
    app()
