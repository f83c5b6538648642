"""Ledger status and method enumerations."""

from enum import Enum


class SaleStatus(str, Enum):
    """Lifecycle of a sale."""

    PENDING_APPROVAL = "pending_approval"
    PENDING_SHIPMENT = "pending_shipment"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DELINQUENT = "delinquent"


class QuotaStatus(str, Enum):
    """Status of one installment."""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    DELINQUENT = "delinquent"
    CANCELLED = "cancelled"


# Statuses a quota may be moved to by rescheduling.
RESCHEDULABLE_STATUSES = frozenset(
    {
        QuotaStatus.PENDING,
        QuotaStatus.OVERDUE,
        QuotaStatus.DELINQUENT,
        QuotaStatus.CANCELLED,
    }
)


class PaymentStatus(str, Enum):
    """Status of a payment record."""

    COMPLETED = "completed"
    REVERTED = "reverted"


class PaymentMethod(str, Enum):
    """How the money was received."""

    CASH = "cash"
    TRANSFER = "transfer"
    DEBIT_CARD = "debit-card"
    CREDIT_CARD = "credit-card"
    OTHER = "other"
