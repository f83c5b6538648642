"""Quota rescheduling service."""

from typing import Optional

from sqlalchemy.orm import Session

from quotaledger.core.date_helpers import utc_today
from quotaledger.core.logging import get_logger
from quotaledger.domain.entities.instructions import QuotaRescheduleInstruction
from quotaledger.domain.entities.ledger import RESCHEDULABLE_STATUSES, QuotaStatus
from quotaledger.domain.entities.payments import QuotaUpdate
from quotaledger.domain.errors import (
    DomainValidationError,
    InvalidRescheduleError,
    QuotaAlreadyPaidError,
    QuotaNotFoundError,
)
from quotaledger.infrastructure.database.base import LedgerStore
from quotaledger.infrastructure.database.models import Quota
from quotaledger.infrastructure.database.repositories import QuotaRepository

logger = get_logger(__name__)


class QuotaService:
    """Changes expiration dates and statuses of unpaid quotas."""

    def __init__(self, store: LedgerStore, quotas: Optional[QuotaRepository] = None) -> None:
        self.store = store
        self.quotas = quotas or QuotaRepository()

    def reschedule_quotas(self, company_id: str, updates: list[QuotaUpdate]) -> list[Quota]:
        """
        Apply new expiration dates and statuses to several quotas at once.

        Either every update is valid and written, or nothing is.

        Args:
            company_id: Tenant
            updates: One entry per quota

        Returns:
            The rescheduled quotas, ordered by quota number

        Raises:
            QuotaNotFoundError: Some quota does not exist
            QuotaAlreadyPaidError: Some quota is already paid
            InvalidRescheduleError: Past date or forbidden target status
        """
        if not updates:
            raise DomainValidationError("At least one quota update is required")
        ids = [u.quota_id for u in updates]
        if len(set(ids)) != len(ids):
            raise DomainValidationError("The same quota was rescheduled more than once")

        def work(session: Session) -> list[Quota]:
            quotas = self.quotas.find_by_ids(session, ids, for_update=True)
            found = {q.id for q in quotas}
            missing = [qid for qid in ids if qid not in found]
            if missing:
                raise QuotaNotFoundError(missing)

            for quota in quotas:
                if quota.is_paid:
                    raise QuotaAlreadyPaidError(quota.id, quota.quota_number)

            today = utc_today()
            instructions: list[QuotaRescheduleInstruction] = []
            for update in updates:
                if update.new_expiration_date < today:
                    raise InvalidRescheduleError(
                        f"The new expiration date of quota {update.quota_id} is in the past"
                    )
                if update.new_status == QuotaStatus.PAID:
                    raise InvalidRescheduleError("A quota cannot be marked as paid by rescheduling")
                if update.new_status not in RESCHEDULABLE_STATUSES:
                    raise InvalidRescheduleError(f"Status '{update.new_status.value}' is not valid")

                instructions.append(
                    QuotaRescheduleInstruction(
                        quota_id=update.quota_id,
                        new_expiration_date=update.new_expiration_date,
                        new_status=update.new_status,
                    )
                )

            self.quotas.bulk_reschedule(session, instructions)
            logger.info("Quotas rescheduled", company=company_id, quotas=len(instructions))
            return quotas

        return self.store.run_in_transaction(company_id, work, "reschedule_quotas")
