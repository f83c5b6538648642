"""Sale persistence.

Aggregate updates receive pre-computed amounts; deciding whether a sale is
completed is up to the payment service.
"""

from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from quotaledger.domain.entities.ledger import SaleStatus
from quotaledger.infrastructure.database.models import Client, Sale

SORTABLE_COLUMNS = {
    "sale_number": Sale.sale_number,
    "sale_date": Sale.sale_date,
    "status": Sale.status,
    "total_amount_cents": Sale.total_amount_cents,
    "pending_amount_cents": Sale.pending_amount_cents,
    "created_at": Sale.created_at,
}


class SaleRepository:
    """Sale lookups and aggregate updates."""

    def find_by_id(self, session: Session, sale_id: str, for_update: bool = False) -> Optional[Sale]:
        query = select(Sale).where(Sale.id == sale_id)
        if for_update:
            query = query.with_for_update()
        return session.execute(query).scalar_one_or_none()

    def list_paginated(
        self,
        session: Session,
        search: Optional[str],
        sort_by: Optional[str],
        descending: bool,
        page: int,
        limit: int,
    ) -> tuple[list[Sale], int]:
        """
        List sales joined with their client.

        Args:
            session: Database session
            search: Exact sale number, or part of the client's name or last name
            sort_by: Key of SORTABLE_COLUMNS. None sorts by sale date, newest first
            descending: Sort direction for `sort_by`
            page: 1-based page number
            limit: Page size

        Returns:
            (sales of the page, total count)
        """
        query = select(Sale).join(Sale.client)
        if search:
            conditions = [
                Client.name.icontains(search, autoescape=True),
                Client.last_name.icontains(search, autoescape=True),
            ]
            if search.isdigit():
                conditions.append(Sale.sale_number == int(search))
            query = query.where(or_(*conditions))

        total = session.execute(select(func.count()).select_from(query.subquery())).scalar() or 0

        if sort_by is None:
            order = [Sale.sale_date.desc(), Sale.sale_number.desc()]
        else:
            column = SORTABLE_COLUMNS[sort_by]
            order = [column.desc() if descending else column.asc(), Sale.sale_number.asc()]

        page_query = query.order_by(*order).offset((page - 1) * limit).limit(limit)
        return list(session.execute(page_query).scalars().all()), total

    def create(self, session: Session, sale: Sale) -> Sale:
        session.add(sale)
        session.flush()
        return sale

    def update_after_payment(
        self,
        session: Session,
        sale: Sale,
        payment_id: str,
        amount_cents: int,
        is_completed: bool,
    ) -> None:
        """Register a payment on the sale and optionally complete it.

        When completed, the pending amount is forced to zero instead of being
        decremented.
        """
        sale.collected_amount_cents += amount_cents
        sale.payment_ids = [*sale.payment_ids, payment_id]
        if is_completed:
            sale.status = SaleStatus.COMPLETED.value
            sale.pending_amount_cents = 0
        else:
            sale.pending_amount_cents = max(0, sale.pending_amount_cents - amount_cents)
        session.flush()

    def revert_payment_updates(
        self,
        session: Session,
        sale: Sale,
        payment_id: str,
        amount_cents: int,
    ) -> None:
        """Undo a payment on the sale.

        The sale goes back to in_progress; delinquency is not re-derived here.
        """
        sale.collected_amount_cents -= amount_cents
        sale.pending_amount_cents += amount_cents
        sale.payment_ids = [pid for pid in sale.payment_ids if pid != payment_id]
        sale.status = SaleStatus.IN_PROGRESS.value
        session.flush()
