"""Pydantic schemas for sales."""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from quotaledger.domain.entities.ledger import QuotaStatus, SaleStatus


class QuotaResponse(BaseModel):
    """Installment as returned by the API."""

    id: str
    sale_id: str
    quota_number: int
    expiration_date: date
    amount_cents: int
    paid_amount_cents: int
    pending_amount_cents: int
    coin: str
    status: QuotaStatus
    payment_ids: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class SaleResponse(BaseModel):
    """Schema for sale response."""

    id: str
    sale_number: int
    client_id: str
    items: list[dict[str, Any]]
    loan: Optional[dict[str, Any]] = None
    status: SaleStatus
    total_amount_cents: int
    collected_amount_cents: int
    pending_amount_cents: int
    quota_count: int
    observations: Optional[str] = None
    sale_date: datetime
    quota_ids: list[str]
    payment_ids: list[str]
    quotas: list[QuotaResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SaleListResponse(BaseModel):
    """Paginated list of sales."""

    docs: list[SaleResponse]
    total_docs: int
    limit: int
    total_pages: int
    page: int
    has_next_page: bool
    has_prev_page: bool
