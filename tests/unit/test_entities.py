"""Unit tests for domain entities."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from quotaledger.core.date_helpers import day_range, is_past_due
from quotaledger.domain.entities.ledger import PaymentMethod, QuotaStatus
from quotaledger.domain.entities.payments import (
    AffectedQuota,
    PaymentDetail,
    PaymentFilters,
    QuotaUpdate,
)
from quotaledger.domain.entities.sales import LoanData, SaleItem


class TestPaymentEntities:
    """Tests for payment value objects."""

    def test_payment_detail_parses_method(self):
        """Test methods are parsed from their wire values."""
        detail = PaymentDetail(
            payment_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            amount_cents=1500,
            method="debit-card",
        )

        assert detail.method == PaymentMethod.DEBIT_CARD

    @pytest.mark.parametrize("amount", [0, -1])
    def test_payment_detail_requires_positive_amount(self, amount):
        with pytest.raises(ValidationError):
            PaymentDetail(payment_date=datetime(2024, 1, 1), amount_cents=amount, method="cash")

    def test_affected_quota_is_immutable(self):
        entry = AffectedQuota(quota_id="q1", amount_applied_cents=100)

        with pytest.raises(ValidationError):
            entry.amount_applied_cents = 200

    def test_quota_update_rejects_unknown_status(self):
        with pytest.raises(ValidationError):
            QuotaUpdate(quota_id="q1", new_expiration_date=date(2030, 1, 1), new_status="lost")

    def test_quota_update_parses_status(self):
        update = QuotaUpdate(quota_id="q1", new_expiration_date="2030-01-01", new_status="overdue")

        assert update.new_status == QuotaStatus.OVERDUE
        assert update.new_expiration_date == date(2030, 1, 1)

    def test_filters_reject_inverted_range(self):
        with pytest.raises(ValidationError):
            PaymentFilters(start_date=date(2024, 2, 1), end_date=date(2024, 1, 1))


class TestSaleEntities:
    """Tests for sale value objects."""

    def test_item_subtotal(self):
        item = SaleItem(name="Chair", quantity=4, unit_price_cents=2550)

        assert item.subtotal_cents == 10200

    def test_loan_without_principal(self):
        loan = LoanData(principal_amount_cents=0, total_to_repay_cents=0)

        assert loan.has_loan is False
        assert loan.interest_rate == Decimal("0")


class TestDateHelpers:
    """Tests for date helpers."""

    def test_is_past_due(self):
        assert is_past_due(date(2024, 1, 1), today=date(2024, 1, 2))
        assert not is_past_due(date(2024, 1, 2), today=date(2024, 1, 2))

    def test_day_range_is_half_open(self):
        lower, upper = day_range(date(2024, 1, 1), date(2024, 1, 31))

        assert lower == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert upper == datetime(2024, 2, 1, tzinfo=timezone.utc)

    def test_open_range(self):
        assert day_range(None, None) == (None, None)
