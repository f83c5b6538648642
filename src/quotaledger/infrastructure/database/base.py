"""Database base configuration, tenant engines and the unit of work."""

import re
import threading
from pathlib import Path
from contextlib import contextmanager
from typing import Any, Callable, Generator, Optional, TypeVar

from sqlalchemy import Engine, create_engine, make_url
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from quotaledger.core.config import Settings, get_settings
from quotaledger.core.logging import get_logger
from quotaledger.domain.errors import InvalidTenantError

logger = get_logger(__name__)
T = TypeVar("T")

_COMPANY_ID_RE = re.compile(r"^[a-z0-9][a-z0-9_-]{0,62}$")

# Fragments of driver messages that indicate a conflict worth retrying.
_TRANSIENT_MARKERS = (
    "deadlock",
    "serialization failure",
    "could not serialize",
    "lock timeout",
    "lock wait timeout",
    "database is locked",
    "connection reset",
    "server closed the connection",
)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def is_transient_error(exc: BaseException) -> bool:
    """Decide whether a failed transaction may be retried as a whole.

    Only storage-level conflicts qualify. Business errors raised by the work
    function are deterministic and never retried.
    """
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    if isinstance(exc, OperationalError):
        message = str(exc).lower()
        return any(marker in message for marker in _TRANSIENT_MARKERS)
    return False


def validate_company_id(company_id: str) -> str:
    """Check a tenant id before it is interpolated into a database URL."""
    if not isinstance(company_id, str) or not _COMPANY_ID_RE.match(company_id):
        raise InvalidTenantError(str(company_id))
    return company_id


class LedgerStore:
    """Store handle: one engine per company plus the transactional unit of work.

    Created once at process start and passed to services by constructor
    injection. Engines are created lazily and cached per tenant.
    """

    def __init__(
        self,
        url_template: Optional[str] = None,
        *,
        settings: Optional[Settings] = None,
        engine_options: Optional[dict[str, Any]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.url_template = url_template or self.settings.database_url
        self._engine_options = engine_options
        self._engines: dict[str, Engine] = {}
        self._factories: dict[str, sessionmaker[Session]] = {}
        self._lock = threading.Lock()

    def url_for(self, company_id: str) -> str:
        """Database URL of a tenant."""
        return self.url_template.replace("{company}", validate_company_id(company_id))

    def _build_engine(self, url: str) -> Engine:
        if self._engine_options is not None:
            return create_engine(url, echo=self.settings.debug, **self._engine_options)
        if url.startswith("sqlite"):
            database = make_url(url).database
            if database and database != ":memory:" and not database.startswith("file:"):
                Path(database).parent.mkdir(parents=True, exist_ok=True)
            return create_engine(
                url,
                echo=self.settings.debug,
                connect_args={"check_same_thread": False},
            )
        return create_engine(
            url,
            echo=self.settings.debug,
            pool_pre_ping=True,  # Check connection health before using
            pool_recycle=self.settings.db_pool_recycle,
            pool_size=self.settings.db_pool_size,
            max_overflow=self.settings.db_max_overflow,
        )

    def _tenant(self, company_id: str) -> tuple[Engine, sessionmaker[Session]]:
        """Engine and session factory of a tenant, created on first use."""
        url = self.url_for(company_id)
        with self._lock:
            engine = self._engines.get(company_id)
            if engine is None:
                engine = self._build_engine(url)
                if self.settings.auto_create_schema:
                    Base.metadata.create_all(bind=engine)
                self._engines[company_id] = engine
                self._factories[company_id] = sessionmaker(
                    bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
                )
                logger.info("Tenant engine created", company=company_id)
            return engine, self._factories[company_id]

    def engine(self, company_id: str) -> Engine:
        """Get (or lazily create) the engine of a tenant."""
        return self._tenant(company_id)[0]

    def create_schema(self, company_id: str) -> None:
        """Create all tables of a tenant database."""
        Base.metadata.create_all(bind=self.engine(company_id))

    @contextmanager
    def session(self, company_id: str) -> Generator[Session, None, None]:
        """Get a tenant session that commits on success and rolls back otherwise."""
        _, factory = self._tenant(company_id)
        session = factory()
        try:
            yield session
            session.commit()
        except BaseException:
            # Cancellation included: nothing is committed on the way out.
            session.rollback()
            raise
        finally:
            session.close()

    def run_in_transaction(
        self,
        company_id: str,
        work: Callable[[Session], T],
        operation_name: str = "transaction",
    ) -> T:
        """
        Run `work` as one atomic unit of work.

        The return value of `work` commits the transaction; any exception rolls
        it back. Transient storage conflicts restart the whole unit of work on
        a fresh session with exponential backoff.

        Args:
            company_id: Tenant whose database is used
            work: Callable receiving the transaction-scoped session
            operation_name: Name for logging purposes

        Returns:
            Whatever `work` returned
        """

        def _log_retry(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "Transient storage conflict, retrying unit of work",
                company=company_id,
                operation=operation_name,
                attempt=retry_state.attempt_number,
                error=str(exc),
            )

        retrying = Retrying(
            stop=stop_after_attempt(self.settings.transaction_max_attempts),
            wait=wait_exponential(
                multiplier=self.settings.transaction_retry_min_wait,
                min=self.settings.transaction_retry_min_wait,
                max=self.settings.transaction_retry_max_wait,
            ),
            retry=retry_if_exception(is_transient_error),
            before_sleep=_log_retry,
            reraise=True,
        )

        result: T
        for attempt in retrying:
            with attempt:
                with self.session(company_id) as session:
                    result = work(session)
        return result

    def dispose(self) -> None:
        """Dispose every tenant engine."""
        with self._lock:
            for engine in self._engines.values():
                engine.dispose()
            self._engines.clear()
            self._factories.clear()
