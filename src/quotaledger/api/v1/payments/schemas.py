"""Pydantic schemas for payments."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from quotaledger.domain.entities.ledger import PaymentMethod, PaymentStatus, QuotaStatus
from quotaledger.domain.entities.payments import PaymentDetail


class BulkPaymentCreate(BaseModel):
    """Pay the selected quotas in full."""

    quota_ids: list[str] = Field(..., min_length=1, description="Quotas to close")
    method: PaymentMethod = Field(..., description="Payment method")


class SequentialPaymentCreate(BaseModel):
    """Apply received money to the oldest unpaid quotas."""

    payments: list[PaymentDetail] = Field(..., min_length=1, description="Collection details")
    notes: Optional[str] = Field(None, max_length=1000, description="Collector notes")


class AffectedQuotaResponse(BaseModel):
    """Amount of a payment applied to one quota."""

    quota_id: str
    amount_applied_cents: int

    model_config = {"from_attributes": True}


class AffectedQuotaDetail(AffectedQuotaResponse):
    """Affected quota joined with the quota it points to."""

    quota_number: Optional[int] = None
    expiration_date: Optional[date] = None
    amount_cents: Optional[int] = None
    paid_amount_cents: Optional[int] = None
    status: Optional[QuotaStatus] = None


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    id: str
    sale_id: str
    collector_id: Optional[str] = None
    payment_number: int
    payment_date: datetime
    amount_cents: int
    applied_amount_cents: int
    credit_granted_cents: int
    coin: str
    method: PaymentMethod
    status: PaymentStatus
    notes: Optional[str] = None
    affected_quotas: list[AffectedQuotaResponse]
    created_at: datetime

    model_config = {"from_attributes": True}


class SaleSummary(BaseModel):
    id: str
    sale_number: int
    sale_date: datetime


class ClientSummary(BaseModel):
    id: str
    name: str
    last_name: str


class PaymentListItem(BaseModel):
    """Payment row with its sale, client and quota details."""

    id: str
    payment_number: int
    payment_date: datetime
    amount_cents: int
    coin: str
    method: PaymentMethod
    status: PaymentStatus
    notes: Optional[str] = None
    collector_id: Optional[str] = None
    sale: SaleSummary
    client: ClientSummary
    affected_quotas: list[AffectedQuotaDetail]


class PaymentListResponse(BaseModel):
    """Paginated list of payments."""

    docs: list[PaymentListItem]
    total_docs: int
    limit: int
    total_pages: int
    page: int
    has_next_page: bool
    has_prev_page: bool
