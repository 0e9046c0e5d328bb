"""Ledger models.

The transaction log is the only stored fact; LedgerState is always a fold of
it, computed on read.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from core.models.money import Currency, Money


class LedgerPool(str, Enum):
    """The two balances tracked per currency."""

    IN_MOVEMENT = "IN_MOVEMENT"
    CONSOLIDATED = "CONSOLIDATED"


class EntryType(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class LedgerReason(str, Enum):
    """Origin tag of a ledger movement."""

    STATEMENT_REVENUE = "STATEMENT_REVENUE"
    FIXED_COST = "FIXED_COST"
    VARIABLE_COST = "VARIABLE_COST"
    MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT"
    COST_CONSOLIDATION = "COST_CONSOLIDATION"
    STATEMENT_RECALCULATION = "STATEMENT_RECALCULATION"
    PERIOD_CONSOLIDATION = "PERIOD_CONSOLIDATION"
    OTHER = "OTHER"


class LedgerTransaction(BaseModel):
    """Append-only log entry. Never updated or deleted."""

    id: UUID
    currency: Currency
    pool: LedgerPool
    entry_type: EntryType
    amount_scaled: int = Field(..., ge=0)
    reason: LedgerReason
    reference: str | None = None
    period_id: str | None = None
    description: str | None = Field(None, max_length=500)
    created_by: UUID | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @property
    def amount(self) -> Money:
        return Money(self.amount_scaled, self.currency)

    @property
    def signed_scaled(self) -> int:
        """Effect on its pool's balance."""
        return self.amount_scaled if self.entry_type == EntryType.CREDIT else -self.amount_scaled


class LedgerState(BaseModel):
    """Balances of one currency, derived by replaying its log from zero."""

    currency: Currency
    in_movement_scaled: int = 0
    consolidated_scaled: int = 0
    periods_consolidated: int = 0
    last_period_id: str | None = None
    last_consolidated_at: datetime | None = None
    transaction_count: int = 0

    @property
    def in_movement(self) -> Money:
        return Money(self.in_movement_scaled, self.currency)

    @property
    def consolidated(self) -> Money:
        return Money(self.consolidated_scaled, self.currency)

    @property
    def total(self) -> Money:
        return Money(self.in_movement_scaled + self.consolidated_scaled, self.currency)


class ConsolidationResult(BaseModel):
    """Outcome of moving in-movement funds into the consolidated pool for a period."""

    period_id: str
    currency: Currency
    amount_scaled: int
    debit_id: UUID
    credit_id: UUID
    consolidated_at: datetime

    @property
    def amount(self) -> Money:
        return Money(self.amount_scaled, self.currency)


class LedgerSummary(BaseModel):
    """Credit/debit totals over a time window."""

    currency: Currency
    total_credits_scaled: int = 0
    total_debits_scaled: int = 0
    net_scaled: int = 0
    credit_count: int = 0
    debit_count: int = 0
    by_reason: dict[str, int] = Field(default_factory=dict)
