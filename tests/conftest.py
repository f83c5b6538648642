"""Pytest configuration and fixtures."""

from datetime import timedelta
from typing import Callable, Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.pool import StaticPool

from quotaledger.api.main import create_app
from quotaledger.core.config import Settings
from quotaledger.core.date_helpers import utc_now, utc_today
from quotaledger.domain.entities.sales import CreateSaleRequest, QuotaRequest, SaleItem
from quotaledger.domain.services import PaymentService, QuotaService, SaleService
from quotaledger.infrastructure.database.base import LedgerStore
from quotaledger.infrastructure.database.models import Client, Payment, Sale
from quotaledger.infrastructure.database.repositories import QuotaRepository

COMPANY = "acme"


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings for tests: no .env, no backoff between retries."""
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        auto_create_schema=True,
        transaction_max_attempts=3,
        transaction_retry_min_wait=0,
        transaction_retry_max_wait=0,
        log_level="WARNING",
    )


@pytest.fixture
def store(settings: Settings) -> Generator[LedgerStore, None, None]:
    """Store over in-memory SQLite. Every tenant gets its own database."""
    ledger_store = LedgerStore(
        settings=settings,
        engine_options={
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,  # Single connection pool for shared in-memory DB
        },
    )
    yield ledger_store
    ledger_store.dispose()


@pytest.fixture
def file_store(settings: Settings, tmp_path) -> Generator[LedgerStore, None, None]:
    """Store over SQLite files, so concurrent sessions use separate connections."""
    ledger_store = LedgerStore(f"sqlite:///{tmp_path.as_posix()}/{{company}}.db", settings=settings)
    yield ledger_store
    ledger_store.dispose()


@pytest.fixture
def company() -> str:
    return COMPANY


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def payment_service(store: LedgerStore) -> PaymentService:
    return PaymentService(store)


@pytest.fixture
def sale_service(store: LedgerStore) -> SaleService:
    return SaleService(store)


@pytest.fixture
def quota_service(store: LedgerStore) -> QuotaService:
    return QuotaService(store)


# =============================================================================
# Data Fixtures
# =============================================================================


def _insert_client(store: LedgerStore, company_id: str, name: str) -> Client:
    with store.session(company_id) as session:
        client = Client(name=name, last_name="Gomez", email=f"{name.lower()}@test.com")
        session.add(client)
        session.flush()
        return client


def make_sale_request(client_id: str, days_until_first_due: int = 30) -> CreateSaleRequest:
    """Three monthly quotas of 1000 cents for a single 3000 cent item."""
    first_due = utc_today() + timedelta(days=days_until_first_due)
    return CreateSaleRequest(
        client_id=client_id,
        items=[SaleItem(name="Television", quantity=1, unit_price_cents=3000)],
        quotas=[
            QuotaRequest(expiration_date=first_due + timedelta(days=30 * i), amount_cents=1000)
            for i in range(3)
        ],
        sale_date=utc_now(),
    )


@pytest.fixture
def sale_request() -> Callable[..., CreateSaleRequest]:
    """Build the 3 x 1000 cent sale request used by the sale fixtures."""
    return make_sale_request


@pytest.fixture
def client_factory(store: LedgerStore) -> Callable[..., Client]:
    """Insert a client into a tenant database."""

    def _create(
        company_id: str = COMPANY, name: str = "Ana", ledger_store: Optional[LedgerStore] = None
    ) -> Client:
        return _insert_client(ledger_store or store, company_id, name)

    return _create


@pytest.fixture
def sale_factory(sale_service: SaleService) -> Callable[..., Sale]:
    """Create a 3 x 1000 cent sale for a client."""

    def _create(client_id: str, company_id: str = COMPANY, days_until_first_due: int = 30) -> Sale:
        return sale_service.create_sale(
            company_id, make_sale_request(client_id, days_until_first_due)
        )

    return _create


@pytest.fixture
def sample_client(client_factory: Callable[..., Client]) -> Client:
    """Create a client with no credit."""
    return client_factory()


@pytest.fixture
def sample_sale(sale_factory: Callable[..., Sale], sample_client: Client) -> Sale:
    """Create a sale with 3 pending quotas of 1000 cents each."""
    return sale_factory(sample_client.id)


@pytest.fixture
def overdue_sale(sale_factory: Callable[..., Sale], sample_client: Client) -> Sale:
    """Create a sale whose quotas have all expired."""
    return sale_factory(sample_client.id, days_until_first_due=-100)


@pytest.fixture
def quota_ids(sample_sale: Sale) -> list[str]:
    """IDs of the sample sale quotas, by quota number."""
    return list(sample_sale.quota_ids)


@pytest.fixture
def ledger_state(store: LedgerStore, company: str) -> Callable[[str], dict]:
    """Read back everything a payment can touch, as plain values."""

    def _read(sale_id: str) -> dict:
        with store.session(company) as session:
            sale = session.get(Sale, sale_id)
            client = session.get(Client, sale.client_id)
            quotas = QuotaRepository().find_by_sale_id(session, sale_id)
            payments = session.execute(
                select(Payment).where(Payment.sale_id == sale_id)
            ).scalars().all()
            return {
                "sale": {
                    "status": sale.status,
                    "total": sale.total_amount_cents,
                    "collected": sale.collected_amount_cents,
                    "pending": sale.pending_amount_cents,
                    "payment_ids": list(sale.payment_ids),
                },
                "quotas": [
                    {
                        "number": q.quota_number,
                        "amount": q.amount_cents,
                        "paid": q.paid_amount_cents,
                        "status": q.status,
                        "payment_ids": list(q.payment_ids),
                    }
                    for q in quotas
                ],
                "credit": client.credit_balance_cents,
                "payments": {p.id: p.status for p in payments},
            }

    return _read


@pytest.fixture
def check_invariants() -> Callable[[dict], None]:
    """Sale totals add up and every quota is within bounds."""

    def _check(state: dict) -> None:
        sale = state["sale"]
        assert sale["collected"] + sale["pending"] == sale["total"]
        for quota in state["quotas"]:
            assert 0 <= quota["paid"] <= quota["amount"]
            assert (quota["status"] == "paid") == (quota["paid"] == quota["amount"])

    return _check


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def api_client(settings: Settings, store: LedgerStore) -> Generator[TestClient, None, None]:
    """FastAPI TestClient sharing the test store."""
    app = create_app(settings=settings, store=store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def company_headers(company: str) -> dict:
    return {"X-Company-ID": company, "X-Collector-ID": "collector-1"}
