"""Invoice domain models.

All amounts are stored as scaled integers (1 unit = 100000) to avoid
floating point issues. $10.00 = 1000000 scaled units.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from core.models.money import Currency, Money
from core.models.period import BillingPeriod


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status."""

    TRACKING = "TRACKING"
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


# Statuses that can no longer accept payments or transitions
CLOSED_STATUSES = frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED})

# Statuses that accept payments
PAYABLE_STATUSES = frozenset({InvoiceStatus.PENDING, InvoiceStatus.PARTIAL, InvoiceStatus.OVERDUE})


class LineItemCreate(BaseModel):
    """A billable line as supplied by the caller. unit_price is a display decimal."""

    concept: str = Field(..., min_length=1, max_length=500)
    quantity: Decimal = Field(Decimal("1"), gt=0)
    unit_price: Decimal = Field(..., ge=0)
    notes: str | None = Field(None, max_length=2000)


class LineItem(BaseModel):
    """A billable line as stored on the invoice."""

    concept: str
    quantity: Decimal
    unit_price_scaled: int = Field(..., ge=0)
    subtotal_scaled: int = Field(..., ge=0)
    notes: str | None = None


class ManualInvoiceCreate(BaseModel):
    """Data required to issue an invoice by hand."""

    client_id: UUID
    items: list[LineItemCreate] = Field(..., min_length=1)
    discount: Decimal = Field(Decimal("0"), ge=0)
    currency: Currency = Currency.USD
    due_days: int | None = Field(None, ge=1, le=365)
    period: BillingPeriod | None = None
    issue_date: date | None = None
    notes: str | None = Field(None, max_length=2000)


class Invoice(BaseModel):
    """Full invoice entity as stored."""

    id: UUID
    client_id: UUID
    contract_id: UUID | None = None
    invoice_number: str
    status: InvoiceStatus
    currency: Currency
    period_year: int | None = None
    period_month: int | None = None
    period_half: int | None = None
    line_items: list[LineItem]
    subtotal_scaled: int = Field(..., ge=0)
    discount_scaled: int = Field(0, ge=0)
    total_scaled: int = Field(..., ge=0)
    outstanding_scaled: int = Field(..., ge=0)
    issue_date: date
    cut_date: date
    due_date: date
    payment_ids: list[UUID] = Field(default_factory=list)
    notes: str | None = None
    cancel_reason: str | None = None
    # Scheduled invoices only
    sales_total_scaled: int | None = None
    sales_count: int | None = None
    commission_percentage: Decimal | None = None
    range_start: date | None = None
    range_end: date | None = None
    created_by: UUID | None = None
    created_at: datetime
    updated_at: datetime
    activated_at: datetime | None = None
    overdue_at: datetime | None = None
    paid_at: datetime | None = None
    cancelled_at: datetime | None = None

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def check_amounts(self) -> "Invoice":
        if self.total_scaled != self.subtotal_scaled - self.discount_scaled:
            raise ValueError("total must equal subtotal minus discount")
        if self.outstanding_scaled > self.total_scaled:
            raise ValueError("outstanding balance cannot exceed total")
        return self

    @property
    def period(self) -> BillingPeriod | None:
        if self.period_year is None or self.period_month is None:
            return None
        return BillingPeriod(
            year=self.period_year,
            month=self.period_month,
            half=self.period_half,
            cut_date=self.cut_date,
        )

    @property
    def total(self) -> Money:
        return Money(self.total_scaled, self.currency)

    @property
    def outstanding(self) -> Money:
        return Money(self.outstanding_scaled, self.currency)

    @property
    def paid_amount(self) -> Money:
        return Money(self.total_scaled - self.outstanding_scaled, self.currency)

    @property
    def is_paid(self) -> bool:
        """Whether invoice is fully paid."""
        return self.status == InvoiceStatus.PAID

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_STATUSES
