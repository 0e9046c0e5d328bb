"""
Domain events for billing.

Immutable event objects that represent state changes in the billing domain.
Services publish what happened; notification handlers react without the
publisher knowing who is listening. Delivery is fire-and-forget.

Event Categories:
- InvoiceEvent: Invoice lifecycle (activated, overdue, paid, cancelled, reminder due)
- PeriodEvent: Accounting period lifecycle (closed)

Events carry the full domain object so handlers don't need to re-fetch state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class BillingEvent:
    """Base class for all billing domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


# =============================================================================
# INVOICE EVENTS
# =============================================================================


@dataclass(frozen=True)
class InvoiceEvent(BillingEvent):
    """Events related to invoice lifecycle."""
    invoice: Any = None  # Invoice; Any avoids a circular import


@dataclass(frozen=True)
class InvoiceActivated(InvoiceEvent):
    """A TRACKING invoice reached its cut date and is now PENDING."""

    @classmethod
    def create(cls, invoice: Any) -> "InvoiceActivated":
        return cls(invoice=invoice)


@dataclass(frozen=True)
class InvoiceOverdue(InvoiceEvent):
    """A payable invoice passed its due date with a balance."""

    @classmethod
    def create(cls, invoice: Any) -> "InvoiceOverdue":
        return cls(invoice=invoice)


@dataclass(frozen=True)
class InvoicePaid(InvoiceEvent):
    """Invoice was fully paid."""
    payment: Any = None

    @classmethod
    def create(cls, invoice: Any, payment: Any = None) -> "InvoicePaid":
        return cls(invoice=invoice, payment=payment)


@dataclass(frozen=True)
class InvoiceCancelled(InvoiceEvent):
    """Invoice was cancelled by an operator."""
    reason: str | None = None

    @classmethod
    def create(cls, invoice: Any, reason: str | None = None) -> "InvoiceCancelled":
        return cls(invoice=invoice, reason=reason)


@dataclass(frozen=True)
class InvoiceReminderDue(InvoiceEvent):
    """An unpaid invoice is a configured number of days before or after its due date."""
    days_from_due: int = 0  # negative before the due date

    @classmethod
    def create(cls, invoice: Any, days_from_due: int) -> "InvoiceReminderDue":
        return cls(invoice=invoice, days_from_due=days_from_due)


# =============================================================================
# PERIOD EVENTS
# =============================================================================


@dataclass(frozen=True)
class PeriodEvent(BillingEvent):
    """Events related to accounting periods."""
    period: Any = None  # ConsolidatedPeriod


@dataclass(frozen=True)
class PeriodClosed(PeriodEvent):
    """A calendar month was consolidated and closed."""

    @classmethod
    def create(cls, period: Any) -> "PeriodClosed":
        return cls(period=period)
