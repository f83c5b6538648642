"""Main router for API v1.

This router combines all v1 endpoints under /api/v1 prefix.
"""

from fastapi import APIRouter

from quotaledger.api.schemas import ErrorResponse
from quotaledger.api.v1.payments.routes import router as payments_router
from quotaledger.api.v1.quotas.routes import router as quotas_router
from quotaledger.api.v1.sales.routes import router as sales_router

# Create main v1 router
api_router = APIRouter(
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    }
)

api_router.include_router(sales_router)
api_router.include_router(payments_router)
api_router.include_router(quotas_router)
