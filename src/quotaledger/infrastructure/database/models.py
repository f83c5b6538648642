"""SQLAlchemy database models for the sales ledger."""

from datetime import date, datetime
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quotaledger.core.date_helpers import utc_now
from quotaledger.domain.entities.ledger import PaymentStatus, QuotaStatus, SaleStatus
from quotaledger.infrastructure.database.base import Base


def _new_id() -> str:
    return str(uuid4())


class Client(Base):
    """Buyer of a sale.

    Only the columns the payment engine needs: the running credit balance
    (money owed back to the client after an overpayment) and identity.
    """

    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    credit_balance_cents: Mapped[int] = mapped_column(nullable=False, default=0)
    status: Mapped[int] = mapped_column(nullable=False, default=1)  # 1 = active
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=utc_now
    )

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.name}, credit={self.credit_balance_cents})>"


class Sale(Base):
    """One commercial transaction with its installment plan.

    Invariant: collected_amount_cents + pending_amount_cents == total_amount_cents.
    """

    __tablename__ = "sales"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    sale_number: Mapped[int] = mapped_column(nullable=False, unique=True)
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    loan: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    quota_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    payment_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    status: Mapped[str] = mapped_column(String(30), nullable=False, default=SaleStatus.IN_PROGRESS.value)
    total_amount_cents: Mapped[int] = mapped_column(nullable=False)
    collected_amount_cents: Mapped[int] = mapped_column(nullable=False, default=0)
    pending_amount_cents: Mapped[int] = mapped_column(nullable=False)
    quota_count: Mapped[int] = mapped_column(nullable=False, default=0)
    observations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    sale_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=utc_now
    )
    version: Mapped[int] = mapped_column(nullable=False)

    client: Mapped["Client"] = relationship("Client")
    quotas: Mapped[list["Quota"]] = relationship(
        "Quota",
        back_populates="sale",
        order_by="Quota.quota_number",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("collected_amount_cents >= 0", name="ck_sales_collected_non_negative"),
        CheckConstraint("pending_amount_cents >= 0", name="ck_sales_pending_non_negative"),
        Index("idx_sales_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Sale(id={self.id}, number={self.sale_number}, status={self.status}, "
            f"collected={self.collected_amount_cents}/{self.total_amount_cents})>"
        )


class Quota(Base):
    """One installment obligation of a sale.

    Invariant: 0 <= paid_amount_cents <= amount_cents and
    status == paid exactly when the quota is fully covered.
    """

    __tablename__ = "quotas"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    sale_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sales.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    quota_number: Mapped[int] = mapped_column(nullable=False)  # 1-based, payment priority
    expiration_date: Mapped[date] = mapped_column(nullable=False)
    amount_cents: Mapped[int] = mapped_column(nullable=False)
    paid_amount_cents: Mapped[int] = mapped_column(nullable=False, default=0)
    coin: Mapped[str] = mapped_column(String(10), nullable=False, default="ARS")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=QuotaStatus.PENDING.value)
    payment_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=utc_now
    )
    version: Mapped[int] = mapped_column(nullable=False)

    sale: Mapped["Sale"] = relationship("Sale", back_populates="quotas")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("sale_id", "quota_number", name="uq_quotas_sale_number"),
        CheckConstraint(
            "paid_amount_cents >= 0 AND paid_amount_cents <= amount_cents",
            name="ck_quotas_paid_within_amount",
        ),
        Index("idx_quotas_sale_status", "sale_id", "status"),
    )

    @property
    def pending_amount_cents(self) -> int:
        return self.amount_cents - self.paid_amount_cents

    @property
    def is_paid(self) -> bool:
        return self.status == QuotaStatus.PAID.value

    def __repr__(self) -> str:
        return (
            f"<Quota(id={self.id}, number={self.quota_number}, status={self.status}, "
            f"paid={self.paid_amount_cents}/{self.amount_cents})>"
        )


class Payment(Base):
    """Money received against a sale.

    The affected-quota breakdown is written once at creation and never
    changed; reversal replays it backwards.
    """

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    sale_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sales.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    collector_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    payment_number: Mapped[int] = mapped_column(nullable=False, unique=True)
    payment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    amount_cents: Mapped[int] = mapped_column(nullable=False)
    coin: Mapped[str] = mapped_column(String(10), nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PaymentStatus.COMPLETED.value)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=utc_now
    )

    affected_quotas: Mapped[list["PaymentAffectedQuota"]] = relationship(
        "PaymentAffectedQuota",
        back_populates="payment",
        order_by="PaymentAffectedQuota.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    sale: Mapped["Sale"] = relationship("Sale")

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_payments_amount_positive"),
        Index("idx_payments_status_date", "status", "payment_date"),
    )

    @property
    def applied_amount_cents(self) -> int:
        """Part of the payment that went to quotas."""
        return sum(a.amount_applied_cents for a in self.affected_quotas)

    @property
    def credit_granted_cents(self) -> int:
        """Part of the payment credited to the client as overpayment."""
        return self.amount_cents - self.applied_amount_cents

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, number={self.payment_number}, amount={self.amount_cents}, status={self.status})>"


class PaymentAffectedQuota(Base):
    """Audit trail row: amount of a payment applied to one quota."""

    __tablename__ = "payment_affected_quotas"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    payment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("payments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(nullable=False)
    quota_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("quotas.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    amount_applied_cents: Mapped[int] = mapped_column(nullable=False)

    payment: Mapped["Payment"] = relationship("Payment", back_populates="affected_quotas")

    __table_args__ = (
        UniqueConstraint("payment_id", "position", name="uq_payment_affected_position"),
        CheckConstraint("amount_applied_cents > 0", name="ck_payment_affected_positive"),
    )

    def __repr__(self) -> str:
        return f"<PaymentAffectedQuota(payment={self.payment_id}, quota={self.quota_id}, amount={self.amount_applied_cents})>"


class Counter(Base):
    """Named monotonic sequence (payment and sale numbers)."""

    __tablename__ = "counters"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Counter(name={self.name}, value={self.value})>"
