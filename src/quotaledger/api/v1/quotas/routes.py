"""Quota routes."""

from fastapi import APIRouter, Depends

from quotaledger.api.dependencies import get_company_id, get_quota_service
from quotaledger.api.v1.sales.schemas import QuotaResponse
from quotaledger.domain.services import QuotaService

from .schemas import RescheduleQuotasRequest, RescheduleQuotasResponse

router = APIRouter(prefix="/quotas", tags=["Quotas"])


@router.patch("/reschedule", response_model=RescheduleQuotasResponse)
def reschedule_quotas(
    data: RescheduleQuotasRequest,
    company_id: str = Depends(get_company_id),
    service: QuotaService = Depends(get_quota_service),
):
    """Change expiration dates and statuses of unpaid quotas."""
    quotas = service.reschedule_quotas(company_id, data.updates)
    return RescheduleQuotasResponse(
        message=f"{len(quotas)} quotas rescheduled",
        quotas=[QuotaResponse.model_validate(q) for q in quotas],
    )
