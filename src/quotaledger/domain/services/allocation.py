"""Quota allocation engine.

Pure decision logic: given an amount (or an explicit quota selection) and the
current quota balances, decide how money is split across quotas. Nothing here
touches the database; the payment service persists the result.

All amounts are integer cents.
"""

from dataclasses import dataclass, field
from typing import Iterable, Protocol, Sequence

from quotaledger.core.logging import get_logger
from quotaledger.domain.entities.instructions import QuotaPaymentUpdate
from quotaledger.domain.entities.ledger import PaymentMethod, QuotaStatus
from quotaledger.domain.entities.payments import AffectedQuota, PaymentDetail
from quotaledger.domain.errors import (
    DomainValidationError,
    InvalidAmountError,
    NoPendingQuotasError,
    QuotaAlreadyPaidError,
    QuotaNotFoundError,
    QuotaNotInSaleError,
)

logger = get_logger(__name__)


class QuotaBalance(Protocol):
    """Read-only view of a quota the engine needs."""

    id: str
    sale_id: str
    quota_number: int
    amount_cents: int
    paid_amount_cents: int
    status: str


@dataclass(frozen=True, slots=True)
class SelectiveAllocation:
    """Result of paying an explicit set of quotas in full."""

    affected: list[AffectedQuota]
    total_cents: int


@dataclass(frozen=True, slots=True)
class SequentialAllocation:
    """Result of applying an amount oldest quota first."""

    affected: list[AffectedQuota]
    updates: list[QuotaPaymentUpdate]
    applied_cents: int
    overpayment_cents: int = 0
    quotas_closed: list[str] = field(default_factory=list)

    @property
    def total_cents(self) -> int:
        return self.applied_cents + self.overpayment_cents


def allocate_selected(
    sale_id: str,
    requested_ids: Sequence[str],
    quotas: Iterable[QuotaBalance],
) -> SelectiveAllocation:
    """
    Close the pending balance of every requested quota.

    The payment total is derived (sum of pending balances), never supplied.

    Args:
        sale_id: Sale the quotas must belong to
        requested_ids: Quota IDs chosen by the caller
        quotas: Quotas loaded for those IDs

    Returns:
        SelectiveAllocation with one entry per quota, in quota_number order

    Raises:
        DomainValidationError: duplicated IDs in the request
        QuotaNotFoundError: an ID did not resolve
        QuotaNotInSaleError: a quota belongs to another sale
        QuotaAlreadyPaidError: a quota is already paid
        InvalidAmountError: nothing left to pay
    """
    if not requested_ids:
        raise DomainValidationError("At least one quota must be selected")
    if len(set(requested_ids)) != len(requested_ids):
        raise DomainValidationError("The same quota was selected more than once")

    by_id = {q.id: q for q in quotas}
    missing = [qid for qid in requested_ids if qid not in by_id]
    if missing:
        raise QuotaNotFoundError(missing)

    affected: list[AffectedQuota] = []
    total = 0
    for quota in sorted((by_id[qid] for qid in requested_ids), key=lambda q: q.quota_number):
        if quota.sale_id != sale_id:
            raise QuotaNotInSaleError(quota.id, sale_id)
        if quota.status == QuotaStatus.PAID.value:
            raise QuotaAlreadyPaidError(quota.id, quota.quota_number)

        pending = quota.amount_cents - quota.paid_amount_cents
        if pending <= 0:
            _warn_unpaid_without_balance(sale_id, quota)
            continue

        total += pending
        affected.append(AffectedQuota(quota_id=quota.id, amount_applied_cents=pending))

    if total <= 0:
        raise InvalidAmountError("The total amount to pay is zero or negative")

    return SelectiveAllocation(affected=affected, total_cents=total)


def allocate_sequential(
    sale_id: str,
    amount_cents: int,
    unpaid_quotas: Iterable[QuotaBalance],
) -> SequentialAllocation:
    """
    Apply an amount to the unpaid quotas of a sale, lowest quota_number first.

    Each quota takes min(remaining, pending). Whatever is left after every
    unpaid quota is covered is reported as overpayment.

    Raises:
        NoPendingQuotasError: the sale has no unpaid quotas
        InvalidAmountError: amount is zero or negative
    """
    ordered: list[QuotaBalance] = []
    for quota in sorted(unpaid_quotas, key=lambda q: q.quota_number):
        if quota.amount_cents - quota.paid_amount_cents > 0:
            ordered.append(quota)
        else:
            _warn_unpaid_without_balance(sale_id, quota)
    if not ordered:
        raise NoPendingQuotasError(sale_id)
    if amount_cents <= 0:
        raise InvalidAmountError("The payment amount must be positive")

    remaining = amount_cents
    affected: list[AffectedQuota] = []
    updates: list[QuotaPaymentUpdate] = []
    closed: list[str] = []

    for quota in ordered:
        if remaining <= 0:
            break
        pending = quota.amount_cents - quota.paid_amount_cents

        applied = min(remaining, pending)
        new_paid = quota.paid_amount_cents + applied
        if new_paid >= quota.amount_cents:
            new_status = QuotaStatus.PAID
            closed.append(quota.id)
        else:
            new_status = QuotaStatus(quota.status)

        updates.append(
            QuotaPaymentUpdate(quota_id=quota.id, paid_amount_cents=new_paid, status=new_status)
        )
        affected.append(AffectedQuota(quota_id=quota.id, amount_applied_cents=applied))
        remaining -= applied

    return SequentialAllocation(
        affected=affected,
        updates=updates,
        applied_cents=amount_cents - remaining,
        overpayment_cents=remaining,
        quotas_closed=closed,
    )


def _warn_unpaid_without_balance(sale_id: str, quota: QuotaBalance) -> None:
    # Not flagged as paid but nothing left to pay: the row is skipped
    logger.warning(
        "Unpaid quota has no pending balance",
        sale_id=sale_id,
        quota_id=quota.id,
        quota_number=quota.quota_number,
        status=quota.status,
        amount_cents=quota.amount_cents,
        paid_cents=quota.paid_amount_cents,
    )


def resolve_payment_method(details: Iterable[PaymentDetail]) -> PaymentMethod:
    """Single method when all details agree, `other` for mixed payments."""
    methods = {PaymentMethod(d.method) for d in details}
    if len(methods) == 1:
        return methods.pop()
    return PaymentMethod.OTHER


def overpayment_note(overpayment_cents: int, coin: str) -> str:
    """Human-readable audit note for credit granted to the client.

    Float formatting is for display only; stored amounts stay in cents.
    """
    return f"A credit balance of {overpayment_cents / 100:.2f} {coin} was granted to the client."


def merge_notes(user_notes: str | None, system_note: str | None) -> str | None:
    """Append a system note to the collector's notes."""
    user_notes = (user_notes or "").strip()
    if not system_note:
        return user_notes or None
    if user_notes:
        return f"{user_notes}. {system_note}"
    return system_note
