"""Mini README: Entry point CLI for the cashflow ledger service.

This script exposes a Typer CLI to start the FastAPI application, seed an
empty database, and print the derived summary of the stored ledger. Settings
come from ``CASHFLOW_*`` environment variables when options are omitted.
"""

from __future__ import annotations

import typer
import uvicorn

from cashflow.configuration import get_settings
from cashflow.finance import compute_summary
from cashflow.logging_utils import configure_root_logger
from cashflow.storage import LedgerStore, seed_defaults

cli = typer.Typer(help="Run and inspect the shared cashflow ledger.")


@cli.command()
def run(
    host: str = typer.Option(None, help="Host interface to bind."),
    port: int = typer.Option(None, help="Port to listen on."),
    production: bool = typer.Option(
        False, help="Use production server settings (disable auto-reload)."
    ),
) -> None:
    """Start the FastAPI application using uvicorn."""

    settings = get_settings()
    effective_host = host or settings.interface_host
    effective_port = port or settings.interface_port
    configure_root_logger(settings.log_level)

    # Browsers cannot open the 0.0.0.0 / :: wildcard addresses directly.
    browser_host = "127.0.0.1" if effective_host in {"0.0.0.0", "::"} else effective_host
    typer.echo(
        f"Starting cashflow ledger on {effective_host}:{effective_port}.\n"
        f"API: http://{browser_host}:{effective_port}/api/transactions\n"
        f"Live channel: ws://{browser_host}:{effective_port}/ws"
    )
    uvicorn.run(
        "cashflow.interface.web_app:create_application",
        host=effective_host,
        port=effective_port,
        factory=True,
        reload=not production and settings.environment == "development",
    )


@cli.command()
def seed(
    tax_rate: str = typer.Option(None, help="Default tax rate to seed when absent."),
) -> None:
    """Create the default service list and tax-rate setting if missing."""

    settings = get_settings()
    configure_root_logger(settings.log_level)
    store = LedgerStore(settings.resolved_database_url())
    seed_defaults(store, tax_rate or settings.default_tax_rate)
    typer.echo(f"Seeded {settings.resolved_database_url()}")


@cli.command()
def summary() -> None:
    """Print totals derived from every stored transaction."""

    settings = get_settings()
    configure_root_logger(settings.log_level)
    store = LedgerStore(settings.resolved_database_url())
    totals = compute_summary(store.list_transactions())
    typer.echo(f"Income:  {totals.total_income:12.2f}")
    typer.echo(f"Expense: {totals.total_expense:12.2f}")
    typer.echo(f"Balance: {totals.balance:12.2f}")


if __name__ == "__main__":
    cli()
