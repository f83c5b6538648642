"""Repositories: persistence operations only, no business rules."""

from quotaledger.infrastructure.database.repositories.client_repository import ClientRepository
from quotaledger.infrastructure.database.repositories.counter_repository import CounterRepository
from quotaledger.infrastructure.database.repositories.payment_repository import PaymentRepository
from quotaledger.infrastructure.database.repositories.quota_repository import QuotaRepository
from quotaledger.infrastructure.database.repositories.sale_repository import SaleRepository

__all__ = [
    "ClientRepository",
    "CounterRepository",
    "PaymentRepository",
    "QuotaRepository",
    "SaleRepository",
]
