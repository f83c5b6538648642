"""Sale creation and lookup service."""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from quotaledger.core.logging import get_logger
from quotaledger.domain.entities.ledger import QuotaStatus, SaleStatus
from quotaledger.domain.entities.sales import CreateSaleRequest
from quotaledger.domain.errors import (
    ClientNotFoundError,
    DomainValidationError,
    InvalidSaleError,
    SaleNotFoundError,
)
from quotaledger.domain.services.pagination import Page
from quotaledger.infrastructure.database.base import LedgerStore
from quotaledger.infrastructure.database.models import Quota, Sale
from quotaledger.infrastructure.database.repositories import (
    ClientRepository,
    CounterRepository,
    QuotaRepository,
    SaleRepository,
)
from quotaledger.infrastructure.database.repositories.counter_repository import SALE_NUMBER_SEQ
from quotaledger.infrastructure.database.repositories.sale_repository import SORTABLE_COLUMNS

logger = get_logger(__name__)

MAX_COIN_LENGTH = 10


@dataclass
class SalePage(Page):
    """One page of sales."""

    sales: list[Sale]


def validate_sale_request(request: CreateSaleRequest) -> int:
    """
    Check a sale request and compute its total.

    Total = sum of line item subtotals + loan total to repay, and it must match
    the sum of the quota amounts exactly.

    Returns:
        Sale total in cents

    Raises:
        InvalidSaleError: The request is not acceptable
    """
    has_loan = request.loan is not None and request.loan.has_loan
    if not request.items and not has_loan:
        raise InvalidSaleError("A sale needs at least one item or a loan")
    if not request.quotas:
        raise InvalidSaleError("A sale needs at least one quota")

    for index, quota in enumerate(request.quotas, start=1):
        if quota.amount_cents < 0:
            raise InvalidSaleError(f"Quota {index} has a negative amount")
        if not quota.coin or len(quota.coin) > MAX_COIN_LENGTH:
            raise InvalidSaleError(f"Quota {index} has an invalid coin")

    total = sum(item.subtotal_cents for item in request.items)
    if has_loan:
        loan = request.loan
        if loan.principal_amount_cents <= 0:
            raise InvalidSaleError("Loan principal must be positive")
        if loan.interest_rate < 0:
            raise InvalidSaleError("Loan interest rate cannot be negative")
        total += loan.total_to_repay_cents

    quotas_total = sum(q.amount_cents for q in request.quotas)
    if quotas_total != total:
        raise InvalidSaleError(
            f"Quotas add up to {quotas_total} cents but the sale total is {total} cents"
        )
    return total


class SaleService:
    """Creates sales with their installment plan."""

    def __init__(
        self,
        store: LedgerStore,
        sales: Optional[SaleRepository] = None,
        quotas: Optional[QuotaRepository] = None,
        clients: Optional[ClientRepository] = None,
        counters: Optional[CounterRepository] = None,
    ) -> None:
        self.store = store
        self.sales = sales or SaleRepository()
        self.quotas = quotas or QuotaRepository()
        self.clients = clients or ClientRepository()
        self.counters = counters or CounterRepository()

    def create_sale(self, company_id: str, request: CreateSaleRequest) -> Sale:
        """
        Create a sale and one quota per requested installment.

        Quota numbers follow the request order starting at 1. A zero-amount
        quota is fully covered from the start, so it is stored as paid.

        Args:
            company_id: Tenant
            request: Sale payload

        Returns:
            The created sale with its quotas
        """
        total = validate_sale_request(request)
        has_loan = request.loan is not None and request.loan.has_loan

        def work(session: Session) -> Sale:
            if self.clients.find_by_id(session, request.client_id) is None:
                raise ClientNotFoundError(request.client_id)

            sale = Sale(
                sale_number=self.counters.next_value(session, SALE_NUMBER_SEQ),
                client_id=request.client_id,
                items=[item.model_dump(mode="json") for item in request.items],
                loan=request.loan.model_dump(mode="json") if has_loan else None,
                quota_ids=[],
                payment_ids=[],
                status=(SaleStatus.IN_PROGRESS if total > 0 else SaleStatus.COMPLETED).value,
                total_amount_cents=total,
                collected_amount_cents=0,
                pending_amount_cents=total,
                quota_count=len(request.quotas),
                observations=request.observations,
                sale_date=request.sale_date,
            )
            self.sales.create(session, sale)

            quotas = [
                Quota(
                    sale_id=sale.id,
                    quota_number=number,
                    expiration_date=q.expiration_date,
                    amount_cents=q.amount_cents,
                    paid_amount_cents=0,
                    coin=q.coin,
                    status=(QuotaStatus.PENDING if q.amount_cents > 0 else QuotaStatus.PAID).value,
                    payment_ids=[],
                )
                for number, q in enumerate(request.quotas, start=1)
            ]
            self.quotas.create_many(session, quotas)

            sale.quota_ids = [q.id for q in quotas]
            session.flush()
            session.refresh(sale, ["quotas"])

            logger.info(
                "Sale created",
                company=company_id,
                sale_id=sale.id,
                sale_number=sale.sale_number,
                client_id=sale.client_id,
                total_cents=total,
                quotas=len(quotas),
            )
            return sale

        return self.store.run_in_transaction(company_id, work, "create_sale")

    def get_sale(self, company_id: str, sale_id: str) -> Sale:
        """Get a sale with its quotas ordered by quota number."""
        with self.store.session(company_id) as session:
            sale = self.sales.find_by_id(session, sale_id)
            if sale is None:
                raise SaleNotFoundError(sale_id)
            return sale

    def list_sales(
        self,
        company_id: str,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "asc",
        page: int = 1,
        limit: int = 10,
    ) -> SalePage:
        """
        List sales with their quotas, newest sale date first by default.

        Args:
            company_id: Tenant
            search: Sale number, or part of the client's name or last name
            sort_by: One of SORTABLE_COLUMNS
            sort_order: "asc" or "desc", only used with `sort_by`
            page: 1-based page number
            limit: Page size

        Raises:
            DomainValidationError: Unknown sort field or direction
        """
        if sort_by is not None and sort_by not in SORTABLE_COLUMNS:
            raise DomainValidationError(f"Cannot sort sales by '{sort_by}'")
        order = sort_order.lower()
        if order not in ("asc", "desc"):
            raise DomainValidationError(f"Invalid sort order: '{sort_order}'")

        search = search.strip() if search else None
        page = max(page, 1)
        limit = max(limit, 1)
        with self.store.session(company_id) as session:
            sales, total = self.sales.list_paginated(
                session, search, sort_by, order == "desc", page, limit
            )
        return SalePage(sales=sales, total_docs=total, page=page, limit=limit)
