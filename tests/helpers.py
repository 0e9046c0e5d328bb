"""Small builders shared by the test modules."""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from core.models import Currency, Invoice, InvoiceStatus, LineItem, Money, Sale
from utils.timezone import now_utc


def usd(amount: str | int) -> Money:
    """Shorthand for a USD amount from a display decimal."""
    return Money.from_display(Decimal(str(amount)), Currency.USD)


def at(year: int, month: int, day: int, hour: int = 12) -> datetime:
    """Aware UTC datetime."""
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def make_sale(client_id: UUID, amount: str | int, when: datetime, sale_type: str = "SUBSCRIPTION") -> Sale:
    return Sale(client_id=client_id, amount_scaled=usd(amount).scaled, occurred_at=when, sale_type=sale_type)


def make_invoice(**overrides) -> Invoice:
    """PENDING $10.00 manual-style invoice; any field can be overridden."""
    now = now_utc()
    fields = dict(
        id=uuid4(),
        client_id=uuid4(),
        invoice_number="FACT-2025-0001",
        status=InvoiceStatus.PENDING,
        currency=Currency.USD,
        line_items=[LineItem(concept="Fee", quantity=Decimal("1"), unit_price_scaled=1000000, subtotal_scaled=1000000)],
        subtotal_scaled=1000000,
        discount_scaled=0,
        total_scaled=1000000,
        outstanding_scaled=1000000,
        issue_date=date(2025, 10, 1),
        cut_date=date(2025, 10, 1),
        due_date=date(2025, 10, 16),
        created_at=now,
        updated_at=now,
    )
    fields.update(overrides)
    return Invoice(**fields)
