"""Result models returned by batch jobs and read-side reports."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from core.models.invoice import Invoice
from core.models.money import Currency, Money
from core.models.payment import Payment
from core.models.statement import MonthlyStatement


class BatchItemOutcome(BaseModel):
    """What happened to one item of a batch run."""

    outcome: str  # "done", "skipped" or "failed"
    invoice_id: UUID | None = None
    invoice_number: str | None = None
    client_id: UUID | None = None
    error: str | None = None


class ActivationResult(BaseModel):
    """TRACKING invoices moved to PENDING in one activation run."""

    activated: int = 0
    skipped: int = 0
    failed: int = 0
    items: list[BatchItemOutcome] = Field(default_factory=list)


class OverdueResult(BaseModel):
    """Payable invoices marked OVERDUE in one run."""

    marked: int = 0
    skipped: int = 0
    failed: int = 0
    items: list[BatchItemOutcome] = Field(default_factory=list)


class ScheduledBatchResult(BaseModel):
    """Outcome of generating scheduled invoices for many contracts."""

    created: list[Invoice] = Field(default_factory=list)
    skipped: dict[str, str] = Field(default_factory=dict)
    failed: dict[str, str] = Field(default_factory=dict)


class StatementBatchResult(BaseModel):
    """Outcome of computing statements for every active client in a month."""

    computed: list[MonthlyStatement] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)


class PortfolioSummary(BaseModel):
    """Receivables overview for one currency."""

    currency: Currency
    billed_scaled: int = 0
    paid_scaled: int = 0
    outstanding_scaled: int = 0
    overdue_scaled: int = 0
    counts_by_status: dict[str, int] = Field(default_factory=dict)
    collection_rate: Decimal = Decimal("0")

    @property
    def billed(self) -> Money:
        return Money(self.billed_scaled, self.currency)

    @property
    def outstanding(self) -> Money:
        return Money(self.outstanding_scaled, self.currency)


class AccountStatement(BaseModel):
    """A client's invoices and payments over a date range."""

    client_id: UUID
    currency: Currency
    start: date
    end: date
    invoices: list[Invoice] = Field(default_factory=list)
    payments: list[Payment] = Field(default_factory=list)
    total_billed_scaled: int = 0
    total_paid_scaled: int = 0
    balance_scaled: int = 0
