"""Domain entities."""

from quotaledger.domain.entities.ledger import (
    PaymentMethod,
    PaymentStatus,
    QuotaStatus,
    SaleStatus,
)
from quotaledger.domain.entities.payments import (
    AffectedQuota,
    PaymentDetail,
    PaymentFilters,
    QuotaUpdate,
)
from quotaledger.domain.entities.sales import CreateSaleRequest, LoanData, QuotaRequest, SaleItem

__all__ = [
    "SaleStatus",
    "QuotaStatus",
    "PaymentStatus",
    "PaymentMethod",
    "AffectedQuota",
    "PaymentDetail",
    "PaymentFilters",
    "QuotaUpdate",
    "CreateSaleRequest",
    "LoanData",
    "QuotaRequest",
    "SaleItem",
]
