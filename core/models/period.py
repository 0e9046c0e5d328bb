"""Billing period and consolidated accounting period models."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class BillingPeriod(BaseModel):
    """
    An invoiceable slice of time for one client.

    half is 1 or 2 for semi-monthly cadence, None for monthly.
    """

    year: int = Field(..., ge=2000, le=2999)
    month: int = Field(..., ge=1, le=12)
    half: int | None = Field(None, ge=1, le=2)
    cut_date: date | None = None

    model_config = {"frozen": True}

    @property
    def label(self) -> str:
        base = f"{self.year}-{self.month:02d}"
        return f"{base}-H{self.half}" if self.half else base

    def key(self) -> tuple[int, int, int | None]:
        """Identity used for the one-active-invoice-per-period rule."""
        return (self.year, self.month, self.half)


class PeriodState(str, Enum):
    """Accounting period status."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class TopClient(BaseModel):
    """Client ranking entry in a consolidated period."""

    client_id: UUID
    agency_net_scaled: int
    gross_sales_scaled: int


class PeriodTotals(BaseModel):
    """Aggregates of every statement in a consolidated month. Amounts are scaled integers."""

    gross_sales_scaled: int = 0
    agency_commission_scaled: int = 0
    processor_commission_scaled: int = 0
    client_payouts_scaled: int = 0
    agency_net_scaled: int = 0
    client_count: int = Field(0, ge=0)
    sales_count: int = Field(0, ge=0)
    average_sales_per_client_scaled: int = 0
    average_processor_percentage: Decimal = Decimal("0")
    top_clients: list[TopClient] = Field(default_factory=list)


class ConsolidatedPeriod(BaseModel):
    """Calendar month as an accounting unit. CLOSED is final."""

    period_id: str = Field(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    year: int
    month: int = Field(..., ge=1, le=12)
    state: PeriodState = PeriodState.OPEN
    totals: PeriodTotals = Field(default_factory=PeriodTotals)
    statement_ids: list[UUID] = Field(default_factory=list)
    consolidated_amounts: dict[str, int] = Field(default_factory=dict)
    opened_at: datetime
    closed_at: datetime | None = None
    closed_by: UUID | None = None

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def check_closed_fields(self) -> "ConsolidatedPeriod":
        if self.state == PeriodState.CLOSED and self.closed_at is None:
            raise ValueError("CLOSED periods require closed_at")
        return self

    @property
    def is_closed(self) -> bool:
        return self.state == PeriodState.CLOSED


def period_id_for(year: int, month: int) -> str:
    """Accounting period identifier, e.g. 2025-10."""
    return f"{year:04d}-{month:02d}"
