"""Payment value objects exchanged with the payment and quota services."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from quotaledger.domain.entities.ledger import PaymentMethod, PaymentStatus, QuotaStatus


class AffectedQuota(BaseModel):
    """How much of a payment was applied to one quota."""

    model_config = ConfigDict(frozen=True)

    quota_id: str = Field(..., description="Quota ID")
    amount_applied_cents: int = Field(..., gt=0, description="Amount applied in cents")


class PaymentDetail(BaseModel):
    """One collection action inside a sequential payment."""

    payment_date: datetime = Field(..., description="When the money was received")
    amount_cents: int = Field(..., gt=0, description="Amount received in cents")
    method: PaymentMethod = Field(..., description="Payment method")


class QuotaUpdate(BaseModel):
    """New schedule for a single quota."""

    quota_id: str = Field(..., description="Quota ID")
    new_expiration_date: date = Field(..., description="New expiration date")
    new_status: QuotaStatus = Field(..., description="New quota status")


class PaymentFilters(BaseModel):
    """Filters for listing payments.

    Both dates are inclusive calendar days.
    """

    statuses: list[PaymentStatus] = Field(default_factory=list)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_range(self) -> "PaymentFilters":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self
