"""Payment routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError

from quotaledger.api.dependencies import get_collector_id, get_company_id, get_payment_service
from quotaledger.domain.entities.ledger import PaymentStatus
from quotaledger.domain.entities.payments import PaymentFilters
from quotaledger.domain.services import PaymentPage, PaymentService

from .schemas import (
    AffectedQuotaDetail,
    BulkPaymentCreate,
    ClientSummary,
    PaymentListItem,
    PaymentListResponse,
    PaymentResponse,
    SaleSummary,
    SequentialPaymentCreate,
)

router = APIRouter(tags=["Payments"])


def parse_statuses(raw: Optional[str]) -> list[PaymentStatus]:
    """Parse a comma-separated status filter."""
    if not raw:
        return []
    try:
        return [PaymentStatus(s.strip()) for s in raw.split(",") if s.strip()]
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid payment status filter: {raw}"
        )


def build_list_response(result: PaymentPage) -> PaymentListResponse:
    """Build the paginated envelope with sale, client and quota details."""
    docs = []
    for payment in result.payments:
        affected = []
        for entry in payment.affected_quotas:
            quota = result.quotas.get(entry.quota_id)
            affected.append(AffectedQuotaDetail(
                quota_id=entry.quota_id,
                amount_applied_cents=entry.amount_applied_cents,
                quota_number=quota.quota_number if quota else None,
                expiration_date=quota.expiration_date if quota else None,
                amount_cents=quota.amount_cents if quota else None,
                paid_amount_cents=quota.paid_amount_cents if quota else None,
                status=quota.status if quota else None,
            ))

        sale = payment.sale
        docs.append(PaymentListItem(
            id=payment.id,
            payment_number=payment.payment_number,
            payment_date=payment.payment_date,
            amount_cents=payment.amount_cents,
            coin=payment.coin,
            method=payment.method,
            status=payment.status,
            notes=payment.notes,
            collector_id=payment.collector_id,
            sale=SaleSummary(id=sale.id, sale_number=sale.sale_number, sale_date=sale.sale_date),
            client=ClientSummary(
                id=sale.client.id, name=sale.client.name, last_name=sale.client.last_name
            ),
            affected_quotas=affected,
        ))

    return PaymentListResponse(
        docs=docs,
        total_docs=result.total_docs,
        limit=result.limit,
        total_pages=result.total_pages,
        page=result.page,
        has_next_page=result.has_next_page,
        has_prev_page=result.has_prev_page,
    )


@router.post(
    "/sales/{sale_id}/payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_bulk_payment(
    sale_id: str,
    data: BulkPaymentCreate,
    company_id: str = Depends(get_company_id),
    collector_id: Optional[str] = Depends(get_collector_id),
    service: PaymentService = Depends(get_payment_service),
):
    """Pay the selected quotas in full."""
    payment = service.process_bulk_payment(
        company_id, sale_id, data.quota_ids, data.method, collector_id
    )
    return PaymentResponse.model_validate(payment)


@router.post(
    "/sales/{sale_id}/payments/sequential",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_sequential_payment(
    sale_id: str,
    data: SequentialPaymentCreate,
    company_id: str = Depends(get_company_id),
    collector_id: Optional[str] = Depends(get_collector_id),
    service: PaymentService = Depends(get_payment_service),
):
    """Apply money to the oldest unpaid quotas. Excess becomes client credit."""
    payment = service.process_sequential_payment(
        company_id, sale_id, data.payments, data.notes, collector_id
    )
    return PaymentResponse.model_validate(payment)


@router.post("/sales/{sale_id}/payments/{payment_id}/revert", response_model=PaymentResponse)
def revert_payment(
    sale_id: str,
    payment_id: str,
    company_id: str = Depends(get_company_id),
    service: PaymentService = Depends(get_payment_service),
):
    """Revert a payment."""
    payment = service.revert_payment(company_id, sale_id, payment_id)
    return PaymentResponse.model_validate(payment)


@router.get("/payments", response_model=PaymentListResponse)
def list_payments(
    status_filter: Optional[str] = Query(
        None, alias="status", description="Comma-separated: completed,reverted"
    ),
    start_date: Optional[date] = Query(None, description="First day (inclusive)"),
    end_date: Optional[date] = Query(None, description="Last day (inclusive)"),
    page: int = Query(1, ge=1, description="Page"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    company_id: str = Depends(get_company_id),
    service: PaymentService = Depends(get_payment_service),
):
    """List payments newest first."""
    try:
        filters = PaymentFilters(
            statuses=parse_statuses(status_filter), start_date=start_date, end_date=end_date
        )
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="start_date must not be after end_date"
        )

    result = service.list_payments(company_id, filters, page, limit)
    return build_list_response(result)


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
def get_payment(
    payment_id: str,
    company_id: str = Depends(get_company_id),
    service: PaymentService = Depends(get_payment_service),
):
    """Get a payment with its quota breakdown."""
    return PaymentResponse.model_validate(service.get_payment(company_id, payment_id))
