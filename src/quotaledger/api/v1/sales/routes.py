"""Sale routes."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from quotaledger.api.dependencies import get_company_id, get_sale_service
from quotaledger.domain.entities.sales import CreateSaleRequest
from quotaledger.domain.services import SalePage, SaleService

from .schemas import SaleListResponse, SaleResponse

router = APIRouter(prefix="/sales", tags=["Sales"])


def build_list_response(result: SalePage) -> SaleListResponse:
    """Build the paginated sales envelope."""
    return SaleListResponse(
        docs=[SaleResponse.model_validate(sale) for sale in result.sales],
        total_docs=result.total_docs,
        limit=result.limit,
        total_pages=result.total_pages,
        page=result.page,
        has_next_page=result.has_next_page,
        has_prev_page=result.has_prev_page,
    )


@router.post("", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
def create_sale(
    data: CreateSaleRequest,
    company_id: str = Depends(get_company_id),
    service: SaleService = Depends(get_sale_service),
):
    """Create a sale with its installment plan."""
    sale = service.create_sale(company_id, data)
    return SaleResponse.model_validate(sale)


@router.get("", response_model=SaleListResponse)
def list_sales(
    search: Optional[str] = Query(None, description="Sale number or client name"),
    sort_by: Optional[str] = Query(None, description="Field to sort by"),
    sort_order: Literal["asc", "desc"] = Query("asc", description="Sort direction"),
    page: int = Query(1, ge=1, description="Page"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    company_id: str = Depends(get_company_id),
    service: SaleService = Depends(get_sale_service),
):
    """List sales with their quotas."""
    result = service.list_sales(company_id, search, sort_by, sort_order, page, limit)
    return build_list_response(result)


@router.get("/{sale_id}", response_model=SaleResponse)
def get_sale(
    sale_id: str,
    company_id: str = Depends(get_company_id),
    service: SaleService = Depends(get_sale_service),
):
    """Get a sale with its quotas."""
    return SaleResponse.model_validate(service.get_sale(company_id, sale_id))
