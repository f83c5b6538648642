"""Unit tests for the quota allocation engine."""

from dataclasses import dataclass
from datetime import datetime, timezone

import pytest

from quotaledger.domain.entities.ledger import PaymentMethod, QuotaStatus
from quotaledger.domain.entities.payments import PaymentDetail
from quotaledger.domain.errors import (
    DomainValidationError,
    InvalidAmountError,
    NoPendingQuotasError,
    QuotaAlreadyPaidError,
    QuotaNotFoundError,
    QuotaNotInSaleError,
)
from quotaledger.domain.services import allocation as allocation_module
from quotaledger.domain.services.allocation import (
    allocate_selected,
    allocate_sequential,
    merge_notes,
    overpayment_note,
    resolve_payment_method,
)


@dataclass
class FakeQuota:
    id: str
    quota_number: int
    amount_cents: int = 1000
    paid_amount_cents: int = 0
    status: str = QuotaStatus.PENDING.value
    sale_id: str = "sale-1"


class RecordingLogger:
    """Keeps warning events instead of emitting them."""

    def __init__(self) -> None:
        self.warnings: list[tuple[str, dict]] = []

    def warning(self, event: str, **kw) -> None:
        self.warnings.append((event, kw))


def three_quotas() -> list[FakeQuota]:
    return [FakeQuota(id=f"q{n}", quota_number=n) for n in (1, 2, 3)]


def detail(amount: int, method: PaymentMethod = PaymentMethod.CASH) -> PaymentDetail:
    return PaymentDetail(
        payment_date=datetime(2024, 5, 1, tzinfo=timezone.utc), amount_cents=amount, method=method
    )


class TestAllocateSequential:
    """Tests for oldest-first allocation."""

    def test_partial_payment_covers_oldest_quotas_first(self):
        """2500 closes quotas 1 and 2 and leaves 500 on quota 3."""
        result = allocate_sequential("sale-1", 2500, three_quotas())

        assert [(a.quota_id, a.amount_applied_cents) for a in result.affected] == [
            ("q1", 1000),
            ("q2", 1000),
            ("q3", 500),
        ]
        assert [(u.quota_id, u.paid_amount_cents, u.status) for u in result.updates] == [
            ("q1", 1000, QuotaStatus.PAID),
            ("q2", 1000, QuotaStatus.PAID),
            ("q3", 500, QuotaStatus.PENDING),
        ]
        assert result.applied_cents == 2500
        assert result.overpayment_cents == 0
        assert result.quotas_closed == ["q1", "q2"]

    def test_excess_is_reported_as_overpayment(self):
        result = allocate_sequential("sale-1", 3500, three_quotas())

        assert result.applied_cents == 3000
        assert result.overpayment_cents == 500
        assert result.total_cents == 3500
        assert all(u.status == QuotaStatus.PAID for u in result.updates)

    def test_input_order_does_not_matter(self):
        """Quotas are always consumed by ascending quota number."""
        shuffled = list(reversed(three_quotas()))

        result = allocate_sequential("sale-1", 1500, shuffled)

        assert [a.quota_id for a in result.affected] == ["q1", "q2"]
        assert result.updates[1].paid_amount_cents == 500

    def test_partially_paid_quota_takes_only_its_remainder(self):
        quotas = three_quotas()
        quotas[0].paid_amount_cents = 700

        result = allocate_sequential("sale-1", 800, quotas)

        assert [(a.quota_id, a.amount_applied_cents) for a in result.affected] == [
            ("q1", 300),
            ("q2", 500),
        ]

    def test_stops_when_money_runs_out(self):
        result = allocate_sequential("sale-1", 1000, three_quotas())

        assert [a.quota_id for a in result.affected] == ["q1"]

    def test_keeps_overdue_status_on_partial_payment(self):
        quotas = [FakeQuota(id="q1", quota_number=1, status=QuotaStatus.OVERDUE.value)]

        result = allocate_sequential("sale-1", 400, quotas)

        assert result.updates[0].status == QuotaStatus.OVERDUE

    def test_no_unpaid_quotas(self):
        with pytest.raises(NoPendingQuotasError):
            allocate_sequential("sale-1", 1000, [])

    def test_unpaid_quotas_without_balance_do_not_count(self):
        """Nothing left to cover means nothing to pay, not a full overpayment."""
        quotas = [FakeQuota(id="q1", quota_number=1, amount_cents=0)]

        with pytest.raises(NoPendingQuotasError):
            allocate_sequential("sale-1", 500, quotas)

    def test_skips_quota_without_balance(self, monkeypatch):
        recorder = RecordingLogger()
        monkeypatch.setattr(allocation_module, "logger", recorder)
        quotas = [
            FakeQuota(id="q1", quota_number=1, amount_cents=0),
            FakeQuota(id="q2", quota_number=2),
        ]

        result = allocate_sequential("sale-1", 1000, quotas)

        assert [a.quota_id for a in result.affected] == ["q2"]
        assert result.overpayment_cents == 0
        assert [context["quota_id"] for _, context in recorder.warnings] == ["q1"]

    @pytest.mark.parametrize("amount", [0, -100])
    def test_non_positive_amount(self, amount):
        with pytest.raises(InvalidAmountError):
            allocate_sequential("sale-1", amount, three_quotas())


class TestAllocateSelected:
    """Tests for explicit quota selection."""

    def test_total_is_sum_of_pending_balances(self):
        quotas = three_quotas()
        quotas[1].paid_amount_cents = 250

        result = allocate_selected("sale-1", ["q2", "q1"], quotas[:2])

        assert result.total_cents == 1750
        assert [(a.quota_id, a.amount_applied_cents) for a in result.affected] == [
            ("q1", 1000),
            ("q2", 750),
        ]

    def test_missing_quota(self):
        with pytest.raises(QuotaNotFoundError) as exc_info:
            allocate_selected("sale-1", ["q1", "nope"], three_quotas()[:1])

        assert exc_info.value.missing_ids == ["nope"]

    def test_quota_from_another_sale(self):
        foreign = FakeQuota(id="x1", quota_number=1, sale_id="sale-2")

        with pytest.raises(QuotaNotInSaleError):
            allocate_selected("sale-1", ["x1"], [foreign])

    def test_already_paid_quota(self):
        quotas = three_quotas()
        quotas[1].paid_amount_cents = 1000
        quotas[1].status = QuotaStatus.PAID.value

        with pytest.raises(QuotaAlreadyPaidError) as exc_info:
            allocate_selected("sale-1", ["q1", "q2"], quotas[:2])

        assert exc_info.value.quota_number == 2

    def test_duplicated_ids_are_rejected(self):
        with pytest.raises(DomainValidationError):
            allocate_selected("sale-1", ["q1", "q1"], three_quotas()[:1])

    def test_nothing_to_pay(self):
        # Inconsistent row: fully covered but not flagged as paid
        quota = FakeQuota(id="q1", quota_number=1, paid_amount_cents=1000)

        with pytest.raises(InvalidAmountError):
            allocate_selected("sale-1", ["q1"], [quota])

    def test_selection_skips_quota_without_balance(self, monkeypatch):
        recorder = RecordingLogger()
        monkeypatch.setattr(allocation_module, "logger", recorder)
        quotas = three_quotas()
        quotas[0].paid_amount_cents = 1000

        result = allocate_selected("sale-1", ["q1", "q2"], quotas[:2])

        assert [a.quota_id for a in result.affected] == ["q2"]
        assert result.total_cents == 1000
        assert len(recorder.warnings) == 1
        event, context = recorder.warnings[0]
        assert event == "Unpaid quota has no pending balance"
        assert context["quota_id"] == "q1"
        assert context["paid_cents"] == 1000


class TestPaymentHelpers:
    """Tests for method resolution and notes."""

    def test_single_method(self):
        details = [detail(100, PaymentMethod.TRANSFER), detail(200, PaymentMethod.TRANSFER)]

        assert resolve_payment_method(details) == PaymentMethod.TRANSFER

    def test_mixed_methods_become_other(self):
        details = [detail(100, PaymentMethod.CASH), detail(200, PaymentMethod.DEBIT_CARD)]

        assert resolve_payment_method(details) == PaymentMethod.OTHER

    def test_overpayment_note(self):
        assert overpayment_note(50050, "ARS") == (
            "A credit balance of 500.50 ARS was granted to the client."
        )

    def test_merge_notes(self):
        assert merge_notes("Paid at the store", "Credit granted.") == (
            "Paid at the store. Credit granted."
        )
        assert merge_notes(None, "Credit granted.") == "Credit granted."
        assert merge_notes("  ", None) is None
