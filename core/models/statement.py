"""Monthly financial statement model.

One statement per client per calendar month. All amounts are scaled
integers in the statement currency.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from core.models.money import Currency, Money


class MonthlyStatement(BaseModel):
    """Per-client monthly split of gross sales between client and agency."""

    id: UUID
    client_id: UUID
    year: int
    month: int = Field(..., ge=1, le=12)
    period_id: str
    currency: Currency
    gross_sales_scaled: int
    agency_percentage: Decimal
    agency_commission_scaled: int
    processor_percentage: Decimal
    processor_commission_scaled: int
    client_payout_scaled: int
    agency_net_scaled: int
    sales_count: int = Field(..., ge=0)
    # Fixed breakdown fields
    sales_by_type: dict[str, int] = Field(default_factory=dict)
    active_days: int = Field(0, ge=0)
    daily_average_scaled: int = 0
    recompute_count: int = Field(0, ge=0)
    computed_at: datetime
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def gross_sales(self) -> Money:
        return Money(self.gross_sales_scaled, self.currency)

    @property
    def agency_commission(self) -> Money:
        return Money(self.agency_commission_scaled, self.currency)

    @property
    def processor_commission(self) -> Money:
        return Money(self.processor_commission_scaled, self.currency)

    @property
    def client_payout(self) -> Money:
        return Money(self.client_payout_scaled, self.currency)

    @property
    def agency_net(self) -> Money:
        return Money(self.agency_net_scaled, self.currency)
