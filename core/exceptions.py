"""Typed exceptions for billing failures."""


class BillingError(Exception):
    """Base class for billing engine errors."""


class CurrencyMismatchError(BillingError):
    """Binary money operation attempted across two currencies."""

    def __init__(self, left, right):
        self.left = left
        self.right = right
        super().__init__(f"Currency mismatch: {left} vs {right}")


class DivisionByZeroError(BillingError):
    """Money divided by a zero count."""


class InvalidTransitionError(BillingError):
    """Invoice is not in a state that allows the requested operation."""

    def __init__(self, invoice_id, status, operation: str):
        self.invoice_id = invoice_id
        self.status = status
        self.operation = operation
        super().__init__(f"Invoice {invoice_id} cannot {operation} while {status}")


class DuplicatePeriodError(BillingError):
    """A non-cancelled invoice already exists for the client and billing period."""

    def __init__(self, client_id, period_label: str):
        self.client_id = client_id
        self.period_label = period_label
        super().__init__(
            f"An active invoice already exists for client {client_id} in period {period_label}"
        )


class InvoiceAlreadyClosedError(BillingError):
    """Operation against an invoice that is PAID or CANCELLED."""

    def __init__(self, invoice_id, status):
        self.invoice_id = invoice_id
        self.status = status
        super().__init__(f"Invoice {invoice_id} is already {status}")


class OverpaymentRejectedError(BillingError):
    """
    Payment exceeds the invoice's outstanding balance.

    Rejected instead of clamped so caller bugs surface.
    """

    def __init__(self, invoice_id, amount, outstanding):
        self.invoice_id = invoice_id
        self.amount = amount
        self.outstanding = outstanding
        super().__init__(
            f"Payment of {amount} exceeds outstanding balance {outstanding} "
            f"on invoice {invoice_id}"
        )


class NumberAllocationExhaustedError(BillingError):
    """
    Sequential numbering gave up after the retry ceiling.

    Recovered locally by the allocator's timestamp fallback; never
    reaches callers.
    """

    def __init__(self, prefix: str, attempts: int):
        self.prefix = prefix
        self.attempts = attempts
        super().__init__(f"No free sequence for {prefix} after {attempts} attempts")


class PeriodClosedError(BillingError):
    """Accounting period is closed and its statements are immutable."""

    def __init__(self, period_id: str, message: str | None = None):
        self.period_id = period_id
        super().__init__(message or f"Period {period_id} is closed")


class PeriodAlreadyClosedError(PeriodClosedError):
    """Close requested for a period that is already CLOSED. Carries the stored period."""

    def __init__(self, period):
        self.period = period
        super().__init__(period.period_id, f"Period {period.period_id} was already closed")


class PeriodIncompleteError(BillingError):
    """Statements are missing for clients with activity in the period."""

    def __init__(self, period_id: str, missing_client_ids: list | None = None):
        self.period_id = period_id
        self.missing_client_ids = list(missing_client_ids or [])
        if self.missing_client_ids:
            detail = f"missing statements for {len(self.missing_client_ids)} client(s)"
        else:
            detail = "no statements computed"
        super().__init__(f"Period {period_id} is incomplete: {detail}")


class AlreadyConsolidatedError(BillingError):
    """Ledger already consolidated this period. Carries the prior result."""

    def __init__(self, prior):
        self.prior = prior
        super().__init__(
            f"Period {prior.period_id} already consolidated for {prior.currency.value}"
        )


class DuplicateKeyError(BillingError):
    """Store-level uniqueness constraint violated."""

    def __init__(self, constraint: str, message: str | None = None):
        self.constraint = constraint
        super().__init__(message or f"Unique constraint {constraint} violated")
