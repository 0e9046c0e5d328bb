"""Contract and commission scale models.

Contracts and scales are owned by the contract directory collaborator; the
engine only reads them. Percentages are Decimals where 20 means 20%.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator

from core.models.money import Currency


class CommissionType(str, Enum):
    """How the agency percentage is determined."""

    FLAT = "FLAT"
    TIERED = "TIERED"


class BillingCadence(str, Enum):
    """How often a client is invoiced."""

    MONTHLY = "MONTHLY"
    SEMI_MONTHLY = "SEMI_MONTHLY"


class CommissionTier(BaseModel):
    """
    One bracket of a tiered scale, with bounds written in whole USD.

    matches() checks the written bounds only. Within a scale a bracket also
    covers the step up to the next tier's min_usd (CommissionCalculator.matching_tiers).
    """

    min_usd: Decimal = Field(..., ge=0)
    max_usd: Decimal | None = Field(None, ge=0)
    percentage: Decimal = Field(..., ge=0, le=100)

    @model_validator(mode="after")
    def check_bounds(self) -> "CommissionTier":
        if self.max_usd is not None and self.max_usd < self.min_usd:
            raise ValueError(f"Tier max {self.max_usd} is below its min {self.min_usd}")
        return self

    def matches(self, value: Decimal) -> bool:
        return self.min_usd <= value and (self.max_usd is None or value <= self.max_usd)


class CommissionScale(BaseModel):
    """Ordered list of tiers covering [0, inf)."""

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=200)
    tiers: list[CommissionTier] = Field(..., min_length=1)

    model_config = {"from_attributes": True}


DEFAULT_COMMISSION_SCALE = CommissionScale(
    id=UUID("00000000-0000-0000-0000-0000000005ca"),
    name="Default agency scale",
    tiers=[
        CommissionTier(min_usd=Decimal("0"), max_usd=Decimal("19999"), percentage=Decimal("10")),
        CommissionTier(min_usd=Decimal("20000"), max_usd=Decimal("25999"), percentage=Decimal("20")),
        CommissionTier(min_usd=Decimal("26000"), max_usd=None, percentage=Decimal("30")),
    ],
)


class Contract(BaseModel):
    """A client's effective commission and billing terms."""

    id: UUID = Field(default_factory=uuid4)
    client_id: UUID
    commission_type: CommissionType
    flat_percentage: Decimal | None = Field(None, ge=0, le=100)
    tiered_scale_id: UUID | None = None
    billing_cadence: BillingCadence = BillingCadence.MONTHLY
    start_date: date
    signed_at: datetime | None = None
    currency: Currency = Currency.USD
    due_days: int | None = Field(None, ge=1, le=90)

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def check_commission_terms(self) -> "Contract":
        if self.commission_type == CommissionType.FLAT and self.flat_percentage is None:
            raise ValueError("FLAT contracts require flat_percentage")
        if self.commission_type == CommissionType.TIERED and self.tiered_scale_id is None:
            raise ValueError("TIERED contracts require tiered_scale_id")
        return self
