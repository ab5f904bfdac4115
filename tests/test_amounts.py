"""Tests for decimal <-> base unit conversion and display formatting."""

from fractions import Fraction

import pytest

from cpswap_client.core.amounts import U64_MAX, require_u64, to_base_units, to_display_string
from cpswap_client.core.errors import (
    AmountOutOfRange,
    InvalidAmount,
    NonPositiveAmount,
    PrecisionExceeded,
    ValidationError,
)
from cpswap_client.core.formatting import (
    format_fee_rate,
    format_percent,
    format_rational,
    truncate_address,
)


class TestToBaseUnits:
    """Exact conversion of user-typed amounts."""

    def test_fractional_amount(self):
        """1.5 with 6 decimals is 1,500,000 base units."""
        assert to_base_units("1.5", 6) == 1_500_000

    def test_whole_amount(self):
        assert to_base_units("42", 0) == 42
        assert to_base_units("1", 9) == 1_000_000_000

    def test_exact_precision_accepted(self):
        """As many fractional digits as the token has is fine."""
        assert to_base_units("0.000001", 6) == 1
        assert to_base_units("1.234567", 6) == 1_234_567

    def test_trailing_zeros_do_not_count_as_precision(self):
        assert to_base_units("1.50000000", 2) == 150

    def test_precision_exceeded(self):
        """1.23456789 cannot be represented with 6 decimals."""
        with pytest.raises(PrecisionExceeded) as exc_info:
            to_base_units("1.23456789", 6)
        assert exc_info.value.decimals == 6
        assert "1.23456789" in str(exc_info.value)

    def test_zero_decimals_rejects_fraction(self):
        with pytest.raises(PrecisionExceeded):
            to_base_units("0.5", 0)

    @pytest.mark.parametrize("literal", ["0", "0.0", "-1", "-0.5"])
    def test_non_positive(self, literal):
        with pytest.raises(NonPositiveAmount):
            to_base_units(literal, 6)

    @pytest.mark.parametrize("literal", ["abc", "", "1.2.3", "NaN", "Infinity", "1e"])
    def test_invalid(self, literal):
        with pytest.raises(InvalidAmount):
            to_base_units(literal, 6)

    def test_large_amount_is_exact(self):
        """No float rounding on long literals."""
        assert to_base_units("123456789012.123456789", 9) == 123456789012123456789

    def test_errors_are_validation_errors(self):
        with pytest.raises(ValidationError):
            to_base_units("1.23", 1)


class TestRequireU64:
    def test_bounds(self):
        assert require_u64(0, "x") == 0
        assert require_u64(U64_MAX, "x") == U64_MAX

    def test_out_of_range(self):
        with pytest.raises(AmountOutOfRange):
            require_u64(U64_MAX + 1, "amount in")
        with pytest.raises(AmountOutOfRange):
            require_u64(-1, "amount in")


class TestDisplay:
    """Display helpers substitute placeholders rather than failing."""

    def test_to_display_string(self):
        assert to_display_string(1_500_000, 6, 6) == "1.500000"
        assert to_display_string(1_500_000, 6, 2) == "1.50"
        assert to_display_string(42, 0, 0) == "42"

    def test_display_rounds_half_away_from_zero(self):
        assert to_display_string(1_005, 3, 2) == "1.01"
        assert to_display_string(1_004, 3, 2) == "1.00"

    def test_display_absent_amount(self):
        assert to_display_string(None, 9, 4) == "0"

    def test_display_small_amount_is_zero_padded(self):
        assert to_display_string(5, 6, 6) == "0.000005"

    def test_format_rational_negative(self):
        assert format_rational(Fraction(-3, 2), 1) == "-1.5"

    def test_format_rational_rejects_negative_precision(self):
        with pytest.raises(ValueError):
            format_rational(Fraction(1), -1)

    def test_fee_rate(self):
        assert format_fee_rate(2500) == "0.25%"
        assert format_fee_rate(3000) == "0.3%"
        assert format_fee_rate(10_000) == "1%"
        assert format_fee_rate(0) == "0%"

    def test_percent(self):
        assert format_percent(0.5) == "0.5%"
        assert format_percent(1) == "1%"

    def test_truncate_address(self):
        address = "So11111111111111111111111111111111111111112"
        assert truncate_address(address) == "So1111…111112"
        assert truncate_address("short") == "short"
