"""Payment application, reversal and query service."""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from quotaledger.core.config import Settings
from quotaledger.core.date_helpers import is_past_due, utc_now, utc_today
from quotaledger.core.logging import get_logger
from quotaledger.domain.entities.instructions import QuotaRevertInstruction
from quotaledger.domain.entities.ledger import PaymentMethod, PaymentStatus, QuotaStatus
from quotaledger.domain.entities.payments import AffectedQuota, PaymentDetail, PaymentFilters
from quotaledger.domain.errors import (
    ConsistencyError,
    PaymentAlreadyRevertedError,
    PaymentNotFoundError,
    PaymentSaleMismatchError,
    SaleNotFoundError,
)
from quotaledger.domain.services.allocation import (
    allocate_selected,
    allocate_sequential,
    merge_notes,
    overpayment_note,
    resolve_payment_method,
)
from quotaledger.domain.services.pagination import Page
from quotaledger.infrastructure.database.base import LedgerStore
from quotaledger.infrastructure.database.models import Payment, PaymentAffectedQuota, Quota, Sale
from quotaledger.infrastructure.database.repositories import (
    ClientRepository,
    PaymentRepository,
    QuotaRepository,
    SaleRepository,
)

logger = get_logger(__name__)


@dataclass
class PaymentPage(Page):
    """One page of payments plus the quotas they touched."""

    payments: list[Payment]
    quotas: dict[str, Quota]


class PaymentService:
    """Applies payments to quotas, reverts them and lists them.

    Every mutating operation runs as one unit of work on the tenant database:
    the payment, its audit trail, the quotas, the sale aggregates and the
    client credit commit or roll back together.
    """

    def __init__(
        self,
        store: LedgerStore,
        sales: Optional[SaleRepository] = None,
        quotas: Optional[QuotaRepository] = None,
        payments: Optional[PaymentRepository] = None,
        clients: Optional[ClientRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        """Initialize payment service.

        Args:
            store: Tenant-aware store handle
            sales: Sale repository
            quotas: Quota repository
            payments: Payment repository
            clients: Client repository
            settings: Application settings
        """
        self.store = store
        self.sales = sales or SaleRepository()
        self.quotas = quotas or QuotaRepository()
        self.payments = payments or PaymentRepository()
        self.clients = clients or ClientRepository()
        self.settings = settings or store.settings

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------

    def process_bulk_payment(
        self,
        company_id: str,
        sale_id: str,
        quota_ids: list[str],
        method: PaymentMethod,
        collector_id: Optional[str] = None,
    ) -> Payment:
        """
        Pay the full pending balance of the selected quotas.

        The payment amount is the sum of their pending balances.

        Args:
            company_id: Tenant
            sale_id: Sale being paid
            quota_ids: Quotas to close
            method: Payment method
            collector_id: Who collected the money

        Returns:
            The created payment
        """
        self._ensure_sale_exists(company_id, sale_id)

        def work(session: Session) -> Payment:
            sale = self._load_sale(session, sale_id)
            quotas = self.quotas.find_by_ids(session, quota_ids, for_update=True)
            allocation = allocate_selected(sale_id, quota_ids, quotas)

            payment = self._create_payment(
                session,
                sale=sale,
                amount_cents=allocation.total_cents,
                method=PaymentMethod(method),
                affected=allocation.affected,
                notes=None,
                collector_id=collector_id,
            )

            affected_ids = {a.quota_id for a in allocation.affected}
            self.quotas.update_as_paid(
                session, [q for q in quotas if q.id in affected_ids], payment.id
            )

            is_completed = sale.collected_amount_cents + allocation.total_cents >= sale.total_amount_cents
            self.sales.update_after_payment(
                session, sale, payment.id, allocation.total_cents, is_completed
            )

            logger.info(
                "Bulk payment applied",
                company=company_id,
                sale_id=sale_id,
                payment_id=payment.id,
                payment_number=payment.payment_number,
                amount_cents=payment.amount_cents,
                quotas=len(allocation.affected),
                sale_completed=is_completed,
            )
            return payment

        return self.store.run_in_transaction(company_id, work, "process_bulk_payment")

    def process_sequential_payment(
        self,
        company_id: str,
        sale_id: str,
        payments: list[PaymentDetail],
        notes: Optional[str] = None,
        collector_id: Optional[str] = None,
    ) -> Payment:
        """
        Apply received money to the unpaid quotas, lowest quota number first.

        Money left after every unpaid quota is covered becomes client credit
        and is recorded in the payment notes.

        Args:
            company_id: Tenant
            sale_id: Sale being paid
            payments: Collection details (amounts may use different methods)
            notes: Collector notes
            collector_id: Who collected the money

        Returns:
            The created payment
        """
        self._ensure_sale_exists(company_id, sale_id)
        total_cents = sum(detail.amount_cents for detail in payments)
        method = resolve_payment_method(payments)

        def work(session: Session) -> Payment:
            sale = self._load_sale(session, sale_id)
            unpaid = self.quotas.find_unpaid_by_sale_id(session, sale_id, for_update=True)
            allocation = allocate_sequential(sale_id, total_cents, unpaid)

            system_note = None
            if allocation.overpayment_cents > 0:
                self.clients.adjust_credit_balance(
                    session, sale.client_id, allocation.overpayment_cents
                )
                system_note = overpayment_note(allocation.overpayment_cents, self.settings.default_coin)
                logger.info(
                    "Overpayment credited to client",
                    company=company_id,
                    sale_id=sale_id,
                    client_id=sale.client_id,
                    credit_cents=allocation.overpayment_cents,
                )

            payment = self._create_payment(
                session,
                sale=sale,
                amount_cents=total_cents,
                method=method,
                affected=allocation.affected,
                notes=merge_notes(notes, system_note),
                collector_id=collector_id,
            )

            self.quotas.bulk_update_status(session, allocation.updates, payment.id)

            # Sale aggregates only move by what reached the quotas; credit is the client's.
            is_completed = (
                sale.collected_amount_cents + allocation.applied_cents >= sale.total_amount_cents
            )
            self.sales.update_after_payment(
                session, sale, payment.id, allocation.applied_cents, is_completed
            )

            logger.info(
                "Sequential payment applied",
                company=company_id,
                sale_id=sale_id,
                payment_id=payment.id,
                payment_number=payment.payment_number,
                amount_cents=total_cents,
                applied_cents=allocation.applied_cents,
                quotas_closed=len(allocation.quotas_closed),
                sale_completed=is_completed,
            )
            return payment

        return self.store.run_in_transaction(company_id, work, "process_sequential_payment")

    # ------------------------------------------------------------------
    # Reversal
    # ------------------------------------------------------------------

    def revert_payment(self, company_id: str, sale_id: str, payment_id: str) -> Payment:
        """
        Undo a payment by replaying its stored breakdown backwards.

        Quotas go back to pending (overdue when already expired), the sale goes
        back to in_progress and any credit the payment granted is clawed back.

        Returns:
            The reverted payment
        """

        def work(session: Session) -> Payment:
            payment = self.payments.find_by_id(session, payment_id, for_update=True)
            if payment is None:
                raise PaymentNotFoundError(payment_id)
            sale = self._load_sale(session, sale_id)

            if payment.status == PaymentStatus.REVERTED.value:
                raise PaymentAlreadyRevertedError(payment_id)
            if payment.sale_id != sale_id:
                raise PaymentSaleMismatchError(payment_id, sale_id)

            self.payments.update_status(session, payment, PaymentStatus.REVERTED)

            instructions = self._build_revert_instructions(session, company_id, payment)
            self.quotas.bulk_revert(session, instructions, payment.id)

            applied_cents = payment.applied_amount_cents
            if applied_cents > sale.collected_amount_cents:
                logger.error(
                    "Reversal exceeds collected amount",
                    company=company_id,
                    sale_id=sale_id,
                    payment_id=payment_id,
                    applied_cents=applied_cents,
                    collected_cents=sale.collected_amount_cents,
                )
                raise ConsistencyError(
                    f"Payment {payment_id} applied more than sale {sale_id} has collected"
                )
            self.sales.revert_payment_updates(session, sale, payment.id, applied_cents)

            credit_cents = payment.credit_granted_cents
            if credit_cents > 0:
                self.clients.adjust_credit_balance(session, sale.client_id, -credit_cents)

            logger.info(
                "Payment reverted",
                company=company_id,
                sale_id=sale_id,
                payment_id=payment_id,
                payment_number=payment.payment_number,
                reverted_cents=applied_cents,
                credit_clawed_back_cents=credit_cents,
            )
            return payment

        return self.store.run_in_transaction(company_id, work, "revert_payment")

    def _build_revert_instructions(
        self, session: Session, company_id: str, payment: Payment
    ) -> list[QuotaRevertInstruction]:
        """One instruction per affected quota, status re-derived from today's date."""
        entries = payment.affected_quotas
        quotas = {
            q.id: q
            for q in self.quotas.find_by_ids(session, [e.quota_id for e in entries], for_update=True)
        }
        today = utc_today()

        instructions: list[QuotaRevertInstruction] = []
        for entry in entries:
            quota = quotas.get(entry.quota_id)
            if quota is None:
                logger.error(
                    "Affected quota missing during reversal",
                    company=company_id,
                    payment_id=payment.id,
                    quota_id=entry.quota_id,
                )
                raise ConsistencyError(
                    f"Quota {entry.quota_id} recorded in payment {payment.id} does not exist"
                )
            if quota.paid_amount_cents < entry.amount_applied_cents:
                logger.error(
                    "Reversal would leave a negative paid amount",
                    company=company_id,
                    payment_id=payment.id,
                    quota_id=quota.id,
                    paid_cents=quota.paid_amount_cents,
                    to_revert_cents=entry.amount_applied_cents,
                )
                raise ConsistencyError(
                    f"Quota {quota.id} has less paid than payment {payment.id} applied to it"
                )

            new_status = (
                QuotaStatus.OVERDUE if is_past_due(quota.expiration_date, today) else QuotaStatus.PENDING
            )
            instructions.append(
                QuotaRevertInstruction(
                    quota_id=quota.id,
                    amount_to_revert_cents=entry.amount_applied_cents,
                    new_status=new_status,
                )
            )
        return instructions

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_payments(
        self,
        company_id: str,
        filters: Optional[PaymentFilters] = None,
        page: int = 1,
        limit: int = 10,
    ) -> PaymentPage:
        """List payments newest first with sale, client and quota details."""
        filters = filters or PaymentFilters()
        page = max(page, 1)
        limit = max(limit, 1)
        with self.store.session(company_id) as session:
            payments, quotas, total = self.payments.list_with_details(session, filters, page, limit)
        return PaymentPage(payments=payments, quotas=quotas, total_docs=total, page=page, limit=limit)

    def get_payment(self, company_id: str, payment_id: str) -> Payment:
        with self.store.session(company_id) as session:
            payment = self.payments.find_by_id(session, payment_id)
            if payment is None:
                raise PaymentNotFoundError(payment_id)
            return payment

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ensure_sale_exists(self, company_id: str, sale_id: str) -> None:
        """Fail fast before opening the unit of work. Advisory only."""
        with self.store.session(company_id) as session:
            if self.sales.find_by_id(session, sale_id) is None:
                raise SaleNotFoundError(sale_id)

    def _load_sale(self, session: Session, sale_id: str) -> Sale:
        sale = self.sales.find_by_id(session, sale_id, for_update=True)
        if sale is None:
            raise SaleNotFoundError(sale_id)
        return sale

    def _create_payment(
        self,
        session: Session,
        *,
        sale: Sale,
        amount_cents: int,
        method: PaymentMethod,
        affected: list[AffectedQuota],
        notes: Optional[str],
        collector_id: Optional[str],
    ) -> Payment:
        payment = Payment(
            sale_id=sale.id,
            collector_id=collector_id,
            payment_number=self.payments.get_next_payment_number(session),
            payment_date=utc_now(),
            amount_cents=amount_cents,
            coin=self.settings.default_coin,
            method=method.value,
            status=PaymentStatus.COMPLETED.value,
            notes=notes,
            affected_quotas=[
                PaymentAffectedQuota(
                    position=position,
                    quota_id=entry.quota_id,
                    amount_applied_cents=entry.amount_applied_cents,
                )
                for position, entry in enumerate(affected)
            ],
        )
        return self.payments.create(session, payment)
