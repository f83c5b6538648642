"""Domain services."""

from quotaledger.domain.services.payment_service import PaymentPage, PaymentService
from quotaledger.domain.services.quota_service import QuotaService
from quotaledger.domain.services.sale_service import SalePage, SaleService

__all__ = ["PaymentPage", "PaymentService", "QuotaService", "SalePage", "SaleService"]
