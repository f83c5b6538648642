"""Database infrastructure."""

from quotaledger.infrastructure.database.base import Base, LedgerStore
from quotaledger.infrastructure.database.models import (
    Client,
    Counter,
    Payment,
    PaymentAffectedQuota,
    Quota,
    Sale,
)

__all__ = [
    "Base",
    "LedgerStore",
    "Client",
    "Counter",
    "Payment",
    "PaymentAffectedQuota",
    "Quota",
    "Sale",
]
