"""Domain errors raised by the payment, quota and sale services.

Three families, each mapped to an HTTP status by the API layer:

- NotFoundError: the referenced sale, payment, quota or client does not exist (404).
- DomainValidationError: the request breaks a business rule (400). Never retried.
- ConsistencyError: stored data contradicts an invariant (500). Aborts the
  transaction and is logged at error level.
"""


class LedgerError(Exception):
    """Base exception for ledger errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(LedgerError):
    """A referenced entity does not exist."""

    pass


class SaleNotFoundError(NotFoundError):
    def __init__(self, sale_id: str) -> None:
        super().__init__(f"Sale not found: {sale_id}")
        self.sale_id = sale_id


class PaymentNotFoundError(NotFoundError):
    def __init__(self, payment_id: str) -> None:
        super().__init__(f"Payment not found: {payment_id}")
        self.payment_id = payment_id


class QuotaNotFoundError(NotFoundError):
    def __init__(self, missing_ids: list[str]) -> None:
        super().__init__(f"One or more quotas were not found: {', '.join(sorted(missing_ids))}")
        self.missing_ids = missing_ids


class ClientNotFoundError(NotFoundError):
    def __init__(self, client_id: str) -> None:
        super().__init__(f"Client not found: {client_id}")
        self.client_id = client_id


class DomainValidationError(LedgerError):
    """The request violates a business rule."""

    pass


class QuotaNotInSaleError(DomainValidationError):
    def __init__(self, quota_id: str, sale_id: str) -> None:
        super().__init__(f"Quota {quota_id} does not belong to sale {sale_id}")
        self.quota_id = quota_id
        self.sale_id = sale_id


class QuotaAlreadyPaidError(DomainValidationError):
    def __init__(self, quota_id: str, quota_number: int) -> None:
        super().__init__(f"Quota #{quota_number} ({quota_id}) has already been paid")
        self.quota_id = quota_id
        self.quota_number = quota_number


class NoPendingQuotasError(DomainValidationError):
    def __init__(self, sale_id: str) -> None:
        super().__init__(f"Sale {sale_id} has no quotas pending payment")
        self.sale_id = sale_id


class InvalidAmountError(DomainValidationError):
    """Payment total is zero or negative."""

    pass


class PaymentAlreadyRevertedError(DomainValidationError):
    def __init__(self, payment_id: str) -> None:
        super().__init__(f"Payment {payment_id} has already been reverted")
        self.payment_id = payment_id


class PaymentSaleMismatchError(DomainValidationError):
    def __init__(self, payment_id: str, sale_id: str) -> None:
        super().__init__(f"Payment {payment_id} does not belong to sale {sale_id}")
        self.payment_id = payment_id
        self.sale_id = sale_id


class InvalidRescheduleError(DomainValidationError):
    """A quota reschedule update is not acceptable."""

    pass


class InvalidSaleError(DomainValidationError):
    """A sale creation request is not acceptable."""

    pass


class InvalidTenantError(DomainValidationError):
    def __init__(self, company_id: str) -> None:
        super().__init__(f"Invalid company id: {company_id!r}")
        self.company_id = company_id


class ConsistencyError(LedgerError):
    """Stored data contradicts a ledger invariant."""

    pass
