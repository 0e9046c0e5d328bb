"""Tests for the Money value object."""

from decimal import Decimal

import pytest

from core.exceptions import CurrencyMismatchError, DivisionByZeroError
from core.models import (
    Currency,
    CurrencyConfig,
    DEFAULT_CURRENCY_CONFIGS,
    DisplayFormat,
    Money,
    SCALE_FACTOR,
)
from tests.helpers import usd


class TestConstruction:

    def test_from_display_scales_by_factor(self):
        assert Money.from_display(Decimal("12.50"), Currency.USD).scaled == 12 * SCALE_FACTOR + SCALE_FACTOR // 2

    def test_from_float_uses_shortest_repr(self):
        assert Money.from_display(0.1, Currency.USD).scaled == 10000

    def test_rejects_more_than_five_decimals(self):
        with pytest.raises(ValueError, match="decimal places"):
            Money.from_display("1.123456", Currency.USD)

    def test_rejects_non_finite(self):
        with pytest.raises(ValueError, match="finite"):
            Money.from_display(Decimal("NaN"), Currency.USD)

    def test_rejects_garbage_string(self):
        with pytest.raises(ValueError):
            Money.from_display("twelve", Currency.USD)

    def test_rejects_boolean(self):
        with pytest.raises(ValueError):
            Money.from_display(True, Currency.USD)

    def test_scaled_must_be_int(self):
        with pytest.raises(TypeError):
            Money(1.5, Currency.USD)

    def test_currency_string_is_coerced(self):
        assert Money(100, "COP").currency == Currency.COP

    def test_sum_of_nothing_is_zero(self):
        assert Money.sum([], Currency.COP) == Money.zero(Currency.COP)


class TestArithmetic:

    def test_decimal_fractions_add_exactly(self):
        assert usd("0.1") + usd("0.2") == usd("0.3")

    def test_subtract(self):
        assert usd(10) - usd("2.5") == usd("7.5")

    def test_negation(self):
        assert (-usd(3)).scaled == -usd(3).scaled

    def test_cross_currency_add_raises(self):
        with pytest.raises(CurrencyMismatchError):
            usd(1) + Money.from_display(1, Currency.COP)

    def test_cross_currency_compare_raises(self):
        with pytest.raises(CurrencyMismatchError):
            usd(1) < Money.from_display(1, Currency.COP)

    def test_ordering(self):
        assert usd(1) < usd(2)
        assert usd(2) >= usd(2)

    def test_percentage(self):
        assert usd(100).percentage(20) == usd(20)

    def test_multiply_by_ratio_rounds_half_up(self):
        assert Money(5, Currency.USD).multiply_by_ratio("0.5").scaled == 3

    def test_negative_half_rounds_away_from_zero(self):
        assert Money(-5, Currency.USD).multiply_by_ratio("0.5").scaled == -3

    def test_divide_rounds_to_nearest_unit(self):
        assert usd(10).divide(3).scaled == 333333

    def test_divide_by_zero_raises(self):
        with pytest.raises(DivisionByZeroError):
            usd(10).divide(0)

    def test_predicates(self):
        assert Money.zero(Currency.USD).is_zero()
        assert usd(1).is_positive()
        assert (-usd(1)).is_negative()

    @pytest.mark.parametrize("scaled", [0, 1, 99999, 100000, 123456789, -42])
    def test_decimal_round_trip_is_exact(self, scaled):
        money = Money(scaled, Currency.USD)
        assert Money.from_display(money.to_decimal(), Currency.USD) == money


class TestPresentation:

    def test_usd_format(self):
        assert usd("1234.56").format() == "USD $ 1,234.56"

    def test_usd_pads_cents(self):
        assert usd(10).format() == "USD $ 10.00"

    def test_cop_format_has_no_decimals(self):
        assert Money.from_display(1234567, Currency.COP).format() == "COP $ 1.234.567"

    def test_negative_amount(self):
        assert (-usd(5)).format() == "USD $ -5.00"

    def test_display_rounds_half_up(self):
        assert usd("1.005").to_display() == Decimal("1.01")

    def test_symbol_only_format(self):
        config = CurrencyConfig(code=Currency.USD, display_format=DisplayFormat.SYMBOL_ONLY)
        assert usd("1234.56").format(config) == "$ 1,234.56"

    def test_code_only_format(self):
        config = CurrencyConfig(code=Currency.USD, display_format=DisplayFormat.CODE_ONLY)
        assert usd(7).format(config) == "USD 7.00"

    def test_config_for_other_currency_raises(self):
        with pytest.raises(CurrencyMismatchError):
            usd(1).format(DEFAULT_CURRENCY_CONFIGS[Currency.COP])

    def test_str_uses_default_config(self):
        assert str(usd("0.5")) == "USD $ 0.50"


class TestCurrencyConfig:

    def test_min_digits_above_max_rejected(self):
        with pytest.raises(ValueError):
            CurrencyConfig(code=Currency.USD, minimum_fraction_digits=3, maximum_fraction_digits=2)

    def test_same_separators_rejected(self):
        with pytest.raises(ValueError):
            CurrencyConfig(code=Currency.USD, thousands_separator=".", decimal_separator=".")
