"""Quota persistence.

Every mutation takes instructions computed by the services: the repository
only writes them. All writes happen inside the caller's transaction.
"""

from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from quotaledger.domain.entities.instructions import (
    QuotaPaymentUpdate,
    QuotaRescheduleInstruction,
    QuotaRevertInstruction,
)
from quotaledger.domain.entities.ledger import QuotaStatus
from quotaledger.domain.errors import ConsistencyError
from quotaledger.infrastructure.database.models import Quota


class QuotaRepository:
    """Quota lookups and bulk writes."""

    def create_many(self, session: Session, quotas: list[Quota]) -> None:
        session.add_all(quotas)
        session.flush()

    def find_by_ids(self, session: Session, ids: Iterable[str], for_update: bool = False) -> list[Quota]:
        """Fetch quotas by ID in one query. Missing IDs are simply absent from the result."""
        id_list = list(ids)
        if not id_list:
            return []
        query = select(Quota).where(Quota.id.in_(id_list)).order_by(Quota.quota_number)
        if for_update:
            query = query.with_for_update()
        return list(session.execute(query).scalars().all())

    def find_by_sale_id(self, session: Session, sale_id: str) -> list[Quota]:
        query = select(Quota).where(Quota.sale_id == sale_id).order_by(Quota.quota_number)
        return list(session.execute(query).scalars().all())

    def find_unpaid_by_sale_id(self, session: Session, sale_id: str, for_update: bool = True) -> list[Quota]:
        """Quotas of a sale not yet paid, oldest obligation first (quota_number ascending)."""
        query = (
            select(Quota)
            .where(Quota.sale_id == sale_id)
            .where(Quota.status != QuotaStatus.PAID.value)
            .order_by(Quota.quota_number.asc())
        )
        if for_update:
            query = query.with_for_update()
        return list(session.execute(query).scalars().all())

    def update_as_paid(self, session: Session, quotas: list[Quota], payment_id: str) -> None:
        """Close quotas completely and link them to the payment."""
        for quota in quotas:
            quota.paid_amount_cents = quota.amount_cents
            quota.status = QuotaStatus.PAID.value
            quota.payment_ids = _with_payment(quota.payment_ids, payment_id)
        session.flush()

    def bulk_update_status(
        self,
        session: Session,
        updates: list[QuotaPaymentUpdate],
        payment_id: str,
    ) -> None:
        """Write new paid amounts/statuses and link each quota to the payment once."""
        for upd in updates:
            quota = self._require(session, upd.quota_id)
            quota.paid_amount_cents = upd.paid_amount_cents
            quota.status = upd.status.value
            quota.payment_ids = _with_payment(quota.payment_ids, payment_id)
        session.flush()

    def bulk_revert(
        self,
        session: Session,
        instructions: list[QuotaRevertInstruction],
        payment_id: str,
    ) -> None:
        """Take applied amounts back and unlink the payment."""
        for inst in instructions:
            quota = self._require(session, inst.quota_id)
            quota.paid_amount_cents -= inst.amount_to_revert_cents
            quota.status = inst.new_status.value
            quota.payment_ids = [pid for pid in quota.payment_ids if pid != payment_id]
        session.flush()

    def bulk_reschedule(self, session: Session, instructions: list[QuotaRescheduleInstruction]) -> None:
        for inst in instructions:
            quota = self._require(session, inst.quota_id)
            quota.expiration_date = inst.new_expiration_date
            quota.status = inst.new_status.value
        session.flush()

    @staticmethod
    def _require(session: Session, quota_id: str) -> Quota:
        quota: Optional[Quota] = session.get(Quota, quota_id)
        if quota is None:
            raise ConsistencyError(f"Quota {quota_id} vanished during a bulk write")
        return quota


def _with_payment(payment_ids: list[str], payment_id: str) -> list[str]:
    if payment_id in payment_ids:
        return list(payment_ids)
    return [*payment_ids, payment_id]
