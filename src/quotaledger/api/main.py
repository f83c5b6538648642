"""FastAPI application for the installment-sales ledger."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from quotaledger import __version__
from quotaledger.api.schemas import HealthResponse
from quotaledger.api.v1.router import api_router as v1_router
from quotaledger.core.config import Settings, get_settings
from quotaledger.core.logging import configure_logging, get_logger
from quotaledger.domain.errors import (
    ConsistencyError,
    DomainValidationError,
    LedgerError,
    NotFoundError,
)
from quotaledger.infrastructure.database.base import LedgerStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    # A store injected before startup (tests, embedding) is kept as is
    owns_store = getattr(app.state, "store", None) is None
    if owns_store:
        app.state.store = LedgerStore(settings=app.state.settings)
    logger.info("Starting application", environment=app.state.settings.environment)

    yield

    logger.info("Shutting down application")
    if owns_store:
        app.state.store.dispose()
        app.state.store = None


# Middleware to strip trailing slashes (avoid 307 redirects)
class TrailingSlashMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.url.path != "/" and request.url.path.endswith("/"):
            request.scope["path"] = request.url.path.rstrip("/")
        return await call_next(request)


def _error_status(exc: LedgerError) -> int:
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, DomainValidationError):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = _error_status(exc)
    if isinstance(exc, ConsistencyError):
        logger.error("Ledger consistency error", path=request.url.path, error=exc.message)
    elif status_code >= 500:
        logger.error("Unexpected ledger error", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Storage error", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal storage error"},
    )


def create_app(settings: Optional[Settings] = None, store: Optional[LedgerStore] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Settings to use. Defaults to the cached environment settings.
        store: Pre-built store handle. When omitted the lifespan creates one.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    app = FastAPI(
        title="Quota Ledger API",
        description="Installment sales: payment application, reversal and rescheduling",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        redirect_slashes=False,  # Disable automatic trailing slash redirects
    )
    app.state.settings = settings
    app.state.store = store

    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)

    app.add_middleware(TrailingSlashMiddleware)

    # Configure CORS - MUST be added last to be processed first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(v1_router, prefix="/api/v1")

    @app.get("/health", response_model=HealthResponse)
    def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="ok", version=__version__)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
