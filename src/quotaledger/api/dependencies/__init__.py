"""API dependencies."""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from quotaledger.domain.errors import InvalidTenantError
from quotaledger.domain.services import PaymentService, QuotaService, SaleService
from quotaledger.infrastructure.database.base import LedgerStore, validate_company_id


def get_store(request: Request) -> LedgerStore:
    """Store handle created in the application lifespan."""
    return request.app.state.store


def get_company_id(x_company_id: Optional[str] = Header(default=None, alias="X-Company-ID")) -> str:
    """Tenant of the request."""
    if not x_company_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="X-Company-ID header is required"
        )
    try:
        return validate_company_id(x_company_id.strip().lower())
    except InvalidTenantError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


def get_collector_id(
    x_collector_id: Optional[str] = Header(default=None, alias="X-Collector-ID"),
) -> Optional[str]:
    """Who is registering the payment, if known."""
    return x_collector_id.strip() if x_collector_id else None


def get_payment_service(store: LedgerStore = Depends(get_store)) -> PaymentService:
    return PaymentService(store)


def get_sale_service(store: LedgerStore = Depends(get_store)) -> SaleService:
    return SaleService(store)


def get_quota_service(store: LedgerStore = Depends(get_store)) -> QuotaService:
    return QuotaService(store)


__all__ = [
    "get_store",
    "get_company_id",
    "get_collector_id",
    "get_payment_service",
    "get_sale_service",
    "get_quota_service",
]
