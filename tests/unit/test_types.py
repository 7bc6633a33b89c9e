"""
Tests for exact monetary arithmetic helpers (ledger_kernel/db/types.py).

- Floats never enter the kernel.
- Rounding is half-to-even and the only sanctioned rounding path.
- Sums and products keep every digit of 38-digit amounts.
"""

from decimal import Decimal

import pytest

from ledger_kernel.db.types import (
    decimal_places,
    exact_product,
    exact_sum,
    round_money,
    to_decimal,
    validate_currency_code,
)
from ledger_kernel.domain.currency import CurrencyInfo, default_precision
from ledger_kernel.exceptions import InvalidAmountError, InvalidCurrencyError


class TestToDecimal:

    def test_strings_and_ints_parse_exactly(self):
        assert to_decimal("100.10") == Decimal("100.10")
        assert to_decimal(42) == Decimal("42")
        assert to_decimal(Decimal("0.000000000000000001")) == Decimal("1E-18")

    def test_float_is_rejected(self):
        with pytest.raises(InvalidAmountError, match="floating point"):
            to_decimal(0.1)

    def test_bool_is_rejected(self):
        with pytest.raises(InvalidAmountError):
            to_decimal(True)

    @pytest.mark.parametrize("value", ["abc", "", "1,000.00"])
    def test_unparsable_strings_are_rejected(self, value):
        with pytest.raises(InvalidAmountError):
            to_decimal(value)

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_values_are_rejected(self, value):
        with pytest.raises(InvalidAmountError, match="finite"):
            to_decimal(value)


class TestDecimalPlaces:

    def test_trailing_zeros_are_ignored(self):
        assert decimal_places(Decimal("1.2300")) == 2

    def test_integers_have_no_places(self):
        assert decimal_places(Decimal("100")) == 0
        assert decimal_places(Decimal("1E+3")) == 0

    def test_small_fractions(self):
        assert decimal_places(Decimal("0.00000001")) == 8


class TestRoundMoney:

    @pytest.mark.parametrize(
        "value,places,expected",
        [
            ("2.345", 2, "2.34"),
            ("2.355", 2, "2.36"),
            ("0.5", 0, "0"),
            ("1.5", 0, "2"),
            ("-2.345", 2, "-2.34"),
        ],
    )
    def test_half_even(self, value, places, expected):
        assert round_money(Decimal(value), places) == Decimal(expected)

    def test_large_amounts_keep_every_digit(self):
        big = Decimal("12345678901234567890123456789012.345")
        assert round_money(big, 2) == Decimal("12345678901234567890123456789012.34")


class TestExactArithmetic:

    def test_sum_beyond_default_context_precision(self):
        values = [Decimal("99999999999999999999.999999999999999999")] * 3
        assert exact_sum(values) == Decimal("299999999999999999999.999999999999999997")

    def test_sum_of_nothing_is_zero(self):
        assert exact_sum([]) == Decimal("0")

    def test_product_is_not_rounded(self):
        amount = Decimal("100000000000000000001")
        rate = Decimal("1.000000000000000001")
        assert exact_product(amount, rate) == Decimal("100000000000000000101.000000000000000001")


class TestCurrencyCodes:

    def test_normalizes_case_and_whitespace(self):
        assert validate_currency_code(" usd ") == "USD"

    @pytest.mark.parametrize("code", ["US", "USDD", "12A", "", "U$D"])
    def test_malformed_codes_rejected(self, code):
        with pytest.raises(InvalidCurrencyError):
            validate_currency_code(code)

    def test_default_precision(self):
        assert default_precision("USD") == 2
        assert default_precision("jpy") == 0
        assert default_precision("KWD") == 3
        assert default_precision("BTC") == 8

    def test_currency_info_quantize(self):
        yen = CurrencyInfo("JPY", "Japanese Yen", 0)
        assert yen.smallest_unit == Decimal("1")
        assert yen.quantize(Decimal("102.5")) == Decimal("102")
        assert yen.quantize(Decimal("103.5")) == Decimal("104")
