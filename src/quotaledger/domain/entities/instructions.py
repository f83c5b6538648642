"""Pre-computed write instructions handed from the services to the quota repository."""

from dataclasses import dataclass
from datetime import date

from quotaledger.domain.entities.ledger import QuotaStatus


@dataclass(frozen=True, slots=True)
class QuotaPaymentUpdate:
    """New paid amount and status of a quota after a sequential payment."""

    quota_id: str
    paid_amount_cents: int
    status: QuotaStatus


@dataclass(frozen=True, slots=True)
class QuotaRevertInstruction:
    """Amount to take back from a quota and the status it returns to."""

    quota_id: str
    amount_to_revert_cents: int
    new_status: QuotaStatus


@dataclass(frozen=True, slots=True)
class QuotaRescheduleInstruction:
    quota_id: str
    new_expiration_date: date
    new_status: QuotaStatus
