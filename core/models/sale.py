"""Sale record as read from the sales ledger collaborator."""

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from core.models.money import Currency, Money


class Sale(BaseModel):
    """One itemized sale. Read-only to this engine."""

    id: UUID = Field(default_factory=uuid4)
    client_id: UUID
    amount_scaled: int = Field(..., ge=0)
    currency: Currency = Currency.USD
    sale_type: str = "OTHER"
    occurred_at: datetime

    model_config = {"from_attributes": True}

    @property
    def amount(self) -> Money:
        return Money(self.amount_scaled, self.currency)
