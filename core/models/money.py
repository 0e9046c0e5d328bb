"""Money value object.

All amounts are scaled integers: 1 unit = 100000 scaled units (5 fractional
digits). Floats never enter the arithmetic; conversion to a human decimal
happens only at the presentation boundary (to_display / format).

Every percentage taken anywhere in the engine goes through
Money.multiply_by_ratio / Money.percentage so the half-up rounding rule is
applied the same way for commissions and processor fees.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from functools import total_ordering
from typing import Iterable

from pydantic import BaseModel, Field, model_validator

from core.exceptions import CurrencyMismatchError, DivisionByZeroError

SCALE_DIGITS = 5
SCALE_FACTOR = 10 ** SCALE_DIGITS


class Currency(str, Enum):
    """Supported currencies."""

    USD = "USD"
    COP = "COP"


class DisplayFormat(str, Enum):
    """How a formatted amount is labelled."""

    SYMBOL_ONLY = "SYMBOL_ONLY"
    CODE_SYMBOL = "CODE_SYMBOL"
    CODE_ONLY = "CODE_ONLY"


class CurrencyConfig(BaseModel):
    """Presentation settings for one currency."""

    code: Currency
    symbol: str = Field("$", min_length=1, max_length=5)
    minimum_fraction_digits: int = Field(2, ge=0, le=SCALE_DIGITS)
    maximum_fraction_digits: int = Field(2, ge=0, le=SCALE_DIGITS)
    display_format: DisplayFormat = DisplayFormat.CODE_SYMBOL
    thousands_separator: str = Field(",", min_length=1, max_length=1)
    decimal_separator: str = Field(".", min_length=1, max_length=1)

    @model_validator(mode="after")
    def check_consistency(self) -> "CurrencyConfig":
        if self.minimum_fraction_digits > self.maximum_fraction_digits:
            raise ValueError("minimum_fraction_digits cannot exceed maximum_fraction_digits")
        if self.thousands_separator == self.decimal_separator:
            raise ValueError("thousands and decimal separators must differ")
        return self


DEFAULT_CURRENCY_CONFIGS: dict[Currency, CurrencyConfig] = {
    Currency.USD: CurrencyConfig(
        code=Currency.USD,
        symbol="$",
        minimum_fraction_digits=2,
        maximum_fraction_digits=2,
        thousands_separator=",",
        decimal_separator=".",
    ),
    Currency.COP: CurrencyConfig(
        code=Currency.COP,
        symbol="$",
        minimum_fraction_digits=0,
        maximum_fraction_digits=0,
        thousands_separator=".",
        decimal_separator=",",
    ),
}


def to_decimal(value: Decimal | int | str | float) -> Decimal:
    """
    Coerce a numeric input to Decimal without binary float artifacts.

    Floats go through their shortest string form (0.1 -> Decimal("0.1")).

    Raises:
        ValueError: If value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError("Boolean is not a numeric amount")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Invalid numeric amount: {value!r}")
    else:
        raise ValueError(f"Unsupported amount type: {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    return result


def round_half_up(value: Decimal) -> int:
    """Round a scaled Decimal to the nearest scaled unit, ties away from zero."""
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


@total_ordering
@dataclass(frozen=True)
class Money:
    """Currency-tagged scaled integer amount."""

    scaled: int
    currency: Currency

    def __post_init__(self):
        if isinstance(self.scaled, bool) or not isinstance(self.scaled, int):
            raise TypeError(f"Money.scaled must be int, got {type(self.scaled).__name__}")
        object.__setattr__(self, "currency", Currency(self.currency))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def zero(cls, currency: Currency) -> "Money":
        return cls(0, currency)

    @classmethod
    def from_display(cls, value: Decimal | int | str | float, currency: Currency) -> "Money":
        """
        Build Money from a human decimal amount.

        Args:
            value: Decimal amount in whole currency units (e.g. Decimal("12.50"))
            currency: Currency of the amount

        Returns:
            Exact Money value

        Raises:
            ValueError: If value is not finite or has more than 5 fractional digits
        """
        amount = to_decimal(value)
        scaled = amount * SCALE_FACTOR
        if scaled != scaled.to_integral_value():
            raise ValueError(
                f"Amount {value} has more than {SCALE_DIGITS} decimal places"
            )
        return cls(int(scaled), currency)

    @staticmethod
    def sum(values: Iterable["Money"], currency: Currency) -> "Money":
        """Sum an iterable of Money; empty input gives zero in currency."""
        total = Money.zero(currency)
        for value in values:
            total = total.add(value)
        return total

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def _require_same_currency(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Expected Money, got {type(other).__name__}")
        if other.currency != self.currency:
            raise CurrencyMismatchError(self.currency.value, other.currency.value)

    def add(self, other: "Money") -> "Money":
        self._require_same_currency(other)
        return Money(self.scaled + other.scaled, self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._require_same_currency(other)
        return Money(self.scaled - other.scaled, self.currency)

    def multiply_by_ratio(self, ratio: Decimal | int | str | float) -> "Money":
        """Multiply by a plain ratio (0.2 = 20%), rounding half up."""
        return Money(round_half_up(Decimal(self.scaled) * to_decimal(ratio)), self.currency)

    def percentage(self, percent: Decimal | int | str | float) -> "Money":
        """Take `percent`% of this amount (20 = 20%), rounding half up."""
        return Money(
            round_half_up(Decimal(self.scaled) * to_decimal(percent) / Decimal(100)),
            self.currency,
        )

    def divide(self, count: Decimal | int | str) -> "Money":
        """
        Divide into `count` equal parts, rounding half up.

        Raises:
            DivisionByZeroError: If count is zero
        """
        divisor = to_decimal(count)
        if divisor == 0:
            raise DivisionByZeroError(f"Cannot divide {self} by zero")
        return Money(round_half_up(Decimal(self.scaled) / divisor), self.currency)

    def __add__(self, other: "Money") -> "Money":
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        return self.subtract(other)

    def __neg__(self) -> "Money":
        return Money(-self.scaled, self.currency)

    def __lt__(self, other: "Money") -> bool:
        self._require_same_currency(other)
        return self.scaled < other.scaled

    def is_zero(self) -> bool:
        return self.scaled == 0

    def is_positive(self) -> bool:
        return self.scaled > 0

    def is_negative(self) -> bool:
        return self.scaled < 0

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def to_decimal(self) -> Decimal:
        """Exact decimal value with all 5 fractional digits."""
        return Decimal(self.scaled).scaleb(-SCALE_DIGITS)

    def _config(self, config: CurrencyConfig | None) -> CurrencyConfig:
        config = config or DEFAULT_CURRENCY_CONFIGS[self.currency]
        if config.code != self.currency:
            raise CurrencyMismatchError(self.currency.value, config.code.value)
        return config

    def to_display(self, config: CurrencyConfig | None = None) -> Decimal:
        """Decimal rounded half up to the currency's display precision."""
        config = self._config(config)
        quantum = Decimal(1).scaleb(-config.maximum_fraction_digits)
        return self.to_decimal().quantize(quantum, rounding=ROUND_HALF_UP)

    def format(self, config: CurrencyConfig | None = None) -> str:
        """
        Human-readable amount, e.g. "USD $ 1,234.56" or "COP $ 1.234.567".
        """
        config = self._config(config)
        value = self.to_display(config)
        sign = "-" if value < 0 else ""
        integer, _, fraction = f"{abs(value):f}".partition(".")

        fraction = fraction.rstrip("0")
        if len(fraction) < config.minimum_fraction_digits:
            fraction = fraction.ljust(config.minimum_fraction_digits, "0")

        number = f"{int(integer):,}".replace(",", config.thousands_separator)
        if fraction:
            number = f"{number}{config.decimal_separator}{fraction}"
        number = f"{sign}{number}"

        if config.display_format == DisplayFormat.CODE_ONLY:
            return f"{config.code.value} {number}"
        if config.display_format == DisplayFormat.CODE_SYMBOL:
            return f"{config.code.value} {config.symbol} {number}"
        return f"{config.symbol} {number}"

    def __str__(self) -> str:
        return self.format()
