"""CLI application entry point."""

from pathlib import Path

import click
from dotenv import load_dotenv

from quotaledger import __version__
from quotaledger.core.config import get_settings
from quotaledger.core.logging import configure_logging, get_logger
from quotaledger.domain.errors import LedgerError
from quotaledger.domain.services import SaleService
from quotaledger.infrastructure.database.base import LedgerStore

# Load environment variables from .env file
dotenv_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path)

# Configure logging on module import
configure_logging()
logger = get_logger(__name__)


def _cents(value: int) -> str:
    return f"{value / 100:,.2f}"


@click.group()
@click.version_option(version=__version__)
def app() -> None:
    """Quota Ledger - installment sales and payments."""
    pass


@app.command("init-db")
@click.option("--company", required=True, help="Company (tenant) id")
def init_db(company: str) -> None:
    """Create the tables of a company database."""
    click.echo(f"🔧 Initializing database for '{company}'...")
    store = LedgerStore()
    try:
        store.create_schema(company)
        click.echo("✅ Database initialized")
    except LedgerError as e:
        click.echo(f"❌ {e.message}", err=True)
        raise click.Abort()
    finally:
        store.dispose()


@app.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind address")
@click.option("--port", default=8000, show_default=True, type=int, help="Bind port")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    click.echo(f"🚀 Serving on http://{host}:{port}")
    uvicorn.run("quotaledger.api.main:app", host=host, port=port, reload=reload)


@app.command("show-sale")
@click.option("--company", required=True, help="Company (tenant) id")
@click.argument("sale_id")
def show_sale(company: str, sale_id: str) -> None:
    """Print the totals and quotas of a sale."""
    store = LedgerStore()
    try:
        sale = SaleService(store).get_sale(company, sale_id)
    except LedgerError as e:
        click.echo(f"❌ {e.message}", err=True)
        raise click.Abort()
    finally:
        store.dispose()

    click.echo(f"Sale #{sale.sale_number} ({sale.id})")
    click.echo(f"Status:     {sale.status}")
    click.echo(f"Total:      {_cents(sale.total_amount_cents)}")
    click.echo(f"Collected:  {_cents(sale.collected_amount_cents)}")
    click.echo(f"Pending:    {_cents(sale.pending_amount_cents)}")
    click.echo(f"Payments:   {len(sale.payment_ids)}\n")

    click.echo(f"{'#':>3}  {'Expires':<10}  {'Amount':>12}  {'Paid':>12}  Status")
    for quota in sale.quotas:
        click.echo(
            f"{quota.quota_number:>3}  {quota.expiration_date.isoformat():<10}  "
            f"{_cents(quota.amount_cents):>12}  {_cents(quota.paid_amount_cents):>12}  {quota.status}"
        )


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = get_settings()

    click.echo("⚙️  Current configuration:\n")
    click.echo(f"Environment:    {settings.environment}")
    click.echo(f"Debug:          {settings.debug}")
    click.echo(f"Log Level:      {settings.log_level}")
    click.echo(f"\nDatabase:       {settings.database_url}")
    click.echo(f"Auto schema:    {settings.auto_create_schema}")
    click.echo(f"Tx attempts:    {settings.transaction_max_attempts}")
    click.echo(f"\nDefault coin:   {settings.default_coin}")


if __name__ == "__main__":
    app()
