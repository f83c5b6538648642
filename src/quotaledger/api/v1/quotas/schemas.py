"""Pydantic schemas for quotas."""

from pydantic import BaseModel, Field

from quotaledger.api.v1.sales.schemas import QuotaResponse
from quotaledger.domain.entities.payments import QuotaUpdate


class RescheduleQuotasRequest(BaseModel):
    """Batch of quota reschedules applied atomically."""

    updates: list[QuotaUpdate] = Field(..., min_length=1)


class RescheduleQuotasResponse(BaseModel):
    message: str
    quotas: list[QuotaResponse]
