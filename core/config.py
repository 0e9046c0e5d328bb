"""Billing engine configuration."""

from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from core.models.money import Currency, CurrencyConfig, DEFAULT_CURRENCY_CONFIGS


class BillingConfig(BaseModel):
    """
    Billing engine configuration.

    Durations are in days (grace periods, reminders) or seconds (scheduler
    intervals). Percentages are Decimals where 2 means 2%.
    """

    # Invoices
    grace_period_days: int = Field(
        default=15,
        description="Days after the cut date before an invoice is due",
        ge=1,
        le=90,
    )
    invoice_prefix: str = Field(
        default="FACT",
        description="Prefix of human-facing invoice numbers",
        min_length=1,
        max_length=10,
        pattern=r"^[A-Z0-9]+$",
    )
    receipt_prefix: str = Field(
        default="REC",
        description="Prefix of payment receipt numbers",
        min_length=1,
        max_length=10,
        pattern=r"^[A-Z0-9]+$",
    )
    max_allocation_attempts: int = Field(
        default=10,
        description="Sequential numbering attempts before the timestamp fallback",
        ge=1,
        le=50,
    )

    # Statements
    processor_fee_percentage: Decimal = Field(
        default=Decimal("2"),
        description="Payment processor fee, taken from the agency commission only",
        ge=0,
        le=100,
    )

    # Scheduler
    activation_interval_seconds: int = Field(
        default=3600,
        description="How often TRACKING invoices are checked for activation",
        ge=60,
    )
    overdue_interval_seconds: int = Field(
        default=86400,
        description="How often payable invoices are checked for overdue",
        ge=60,
    )

    # Reminders (consumed by the notification collaborator)
    reminder_days_before_due: list[int] = Field(
        default_factory=lambda: [5, 2],
        description="Days before the due date to send payment reminders",
    )
    reminder_days_after_due: list[int] = Field(
        default_factory=lambda: [3, 7],
        description="Days after the due date to send overdue notices",
    )

    # Money presentation
    default_currency: Currency = Currency.USD
    currency_configs: dict[Currency, CurrencyConfig] = Field(
        default_factory=lambda: dict(DEFAULT_CURRENCY_CONFIGS),
    )

    @model_validator(mode="after")
    def check_currency_configs(self) -> "BillingConfig":
        for currency in Currency:
            if currency not in self.currency_configs:
                raise ValueError(f"Missing currency config for {currency.value}")
        for key, config in self.currency_configs.items():
            if config.code != key:
                raise ValueError(f"Currency config for {key.value} has code {config.code.value}")
        if any(day <= 0 for day in self.reminder_days_before_due + self.reminder_days_after_due):
            raise ValueError("Reminder offsets must be positive day counts")
        return self

    def currency_config(self, currency: Currency) -> CurrencyConfig:
        return self.currency_configs[currency]
