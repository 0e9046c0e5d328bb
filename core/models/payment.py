"""Payment domain models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, Field

from core.models.money import Currency, Money


class PaymentMethod(str, Enum):
    """How the client paid."""

    TRANSFER = "TRANSFER"
    CASH = "CASH"
    CHECK = "CHECK"
    CARD = "CARD"
    OTHER = "OTHER"


class PaymentCreate(BaseModel):
    """Data required to record a payment. amount is a display decimal."""

    amount: Decimal = Field(..., gt=0)
    currency: Currency = Currency.USD
    paid_at: AwareDatetime | None = None
    method: PaymentMethod = PaymentMethod.TRANSFER
    reference: str | None = Field(None, max_length=200)
    notes: str | None = Field(None, max_length=2000)


class Payment(BaseModel):
    """Full payment entity as stored. Never retracted."""

    id: UUID
    invoice_id: UUID
    receipt_number: str
    amount_scaled: int = Field(..., gt=0)
    currency: Currency
    paid_at: datetime
    method: PaymentMethod
    reference: str | None = None
    notes: str | None = None
    recorded_by: UUID | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @property
    def amount(self) -> Money:
        return Money(self.amount_scaled, self.currency)
