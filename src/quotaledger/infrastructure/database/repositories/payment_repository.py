"""Payment persistence and listing."""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from quotaledger.core.date_helpers import day_range
from quotaledger.domain.entities.ledger import PaymentStatus
from quotaledger.domain.entities.payments import PaymentFilters
from quotaledger.infrastructure.database.models import Payment, Quota, Sale
from quotaledger.infrastructure.database.repositories.counter_repository import (
    PAYMENT_NUMBER_SEQ,
    CounterRepository,
)


class PaymentRepository:
    """Payment lookups, creation and status changes."""

    def __init__(self, counters: Optional[CounterRepository] = None) -> None:
        self.counters = counters or CounterRepository()

    def create(self, session: Session, payment: Payment) -> Payment:
        session.add(payment)
        session.flush()
        return payment

    def find_by_id(self, session: Session, payment_id: str, for_update: bool = False) -> Optional[Payment]:
        query = select(Payment).where(Payment.id == payment_id)
        if for_update:
            query = query.with_for_update()
        return session.execute(query).scalar_one_or_none()

    def update_status(self, session: Session, payment: Payment, status: PaymentStatus) -> None:
        payment.status = status.value
        session.flush()

    def get_next_payment_number(self, session: Session) -> int:
        return self.counters.next_value(session, PAYMENT_NUMBER_SEQ)

    def list_with_details(
        self,
        session: Session,
        filters: PaymentFilters,
        page: int,
        limit: int,
    ) -> tuple[list[Payment], dict[str, Quota], int]:
        """
        List payments newest first with their sale, client and affected quotas.

        Args:
            session: Database session
            filters: Status and inclusive date-range filters
            page: 1-based page number
            limit: Page size

        Returns:
            (payments, quotas by ID for every affected quota on the page, total count)
        """
        query = select(Payment)
        if filters.statuses:
            query = query.where(Payment.status.in_([s.value for s in filters.statuses]))
        lower, upper = day_range(filters.start_date, filters.end_date)
        if lower is not None:
            query = query.where(Payment.payment_date >= lower)
        if upper is not None:
            query = query.where(Payment.payment_date < upper)

        total = session.execute(select(func.count()).select_from(query.subquery())).scalar() or 0

        page_query = (
            query.options(joinedload(Payment.sale).joinedload(Sale.client))
            .order_by(Payment.payment_date.desc(), Payment.payment_number.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        payments = list(session.execute(page_query).unique().scalars().all())

        quota_ids = {a.quota_id for p in payments for a in p.affected_quotas}
        quotas: dict[str, Quota] = {}
        if quota_ids:
            rows = session.execute(select(Quota).where(Quota.id.in_(quota_ids))).scalars().all()
            quotas = {q.id: q for q in rows}

        return payments, quotas, total
