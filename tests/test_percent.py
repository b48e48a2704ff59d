"""Tests for the percent engine."""

import pytest
from decimal import Decimal

from percent import (
    PercentResult,
    compute_percent,
    format_scaled,
    format_scaled_signed,
    round_percent_scaled,
)


class TestComputePercent:
    """Single-pair percent lookups."""

    def test_known_values(self):
        """Values quoted on the table page."""
        result = compute_percent(122, 123)
        assert result == PercentResult(
            value_text="0.82",
            value_text_signed="+0.82",
            label="122 -> 123 = +0.82%",
        )

        result = compute_percent(125, 126)
        assert result.value_text == "0.80"
        assert result.value_text_signed == "+0.80"

    def test_same_bpm_is_zero(self):
        result = compute_percent(120, 120)
        assert result.value_text == "0.00"
        assert result.value_text_signed == "+0.00"
        assert result.label == "120 -> 120 = +0.00%"

    def test_negative_change(self):
        """Unsigned text never carries a sign, signed text always does."""
        result = compute_percent(123, 122)
        assert result.value_text == "0.81"
        assert result.value_text_signed == "-0.81"
        assert result.label == "123 -> 122 = -0.81%"

    def test_large_change(self):
        result = compute_percent(95, 121)
        assert result.value_text_signed == "+27.37"

        result = compute_percent(300, 40)
        assert result.value_text_signed == "-86.67"

    def test_sign_follows_direction(self):
        """Leading '+' iff dest >= src, '-' iff dest < src."""
        for src in range(40, 301, 7):
            for dest in range(40, 301, 11):
                result = compute_percent(src, dest)
                assert result is not None
                if dest >= src:
                    assert result.value_text_signed.startswith('+')
                else:
                    assert result.value_text_signed.startswith('-')
                assert not result.value_text.startswith(('+', '-'))

    @pytest.mark.parametrize("src,dest", [
        (0, 120),
        (-5, 120),
        (float('nan'), 120),
        (120, float('nan')),
        (float('inf'), 120),
        (120, float('-inf')),
        ("120", 121),
        (None, 121),
    ])
    def test_invalid_input_returns_none(self, src, dest):
        assert compute_percent(src, dest) is None

    def test_decimal_operands(self):
        result = compute_percent(Decimal("125"), Decimal("126"))
        assert result.value_text_signed == "+0.80"

    def test_integers_beyond_float_range(self):
        """Any positive integer is a valid source, however large."""
        big = 10 ** 400
        result = compute_percent(big, big + 1)
        assert result is not None
        assert result.value_text == "0.00"
        assert result.value_text_signed == "+0.00"
        assert result.label == f"{big} -> {big + 1} = +0.00%"

        assert compute_percent(2 * big, big).value_text_signed == "-50.00"
        assert compute_percent(Decimal("1E+400"), Decimal("1.01E+400")).value_text_signed == "+1.00"

    def test_label_drops_trailing_zero_for_integral_values(self):
        assert compute_percent(120.0, 121).label == "120 -> 121 = +0.83%"
        assert compute_percent(Decimal("120.0"), Decimal("121")).label == "120 -> 121 = +0.83%"
        assert compute_percent(120.5, 121).label == "120.5 -> 121 = +0.41%"


class TestRounding:
    """Round-half-away-from-zero with exact arithmetic."""

    def test_half_rounds_away_from_zero(self):
        # 1 / 200 * 100 = 0.5 exactly
        assert round_percent_scaled(200, 201, 0) == 1
        assert round_percent_scaled(200, 199, 0) == -1

        # 1 / 160 * 100 = 0.625 exactly, banker's rounding would give 0.62
        assert round_percent_scaled(160, 161, 2) == 63
        assert round_percent_scaled(160, 159, 2) == -63
        assert compute_percent(160, 161).value_text_signed == "+0.63"
        assert compute_percent(160, 159).value_text_signed == "-0.63"

        # -1 / 80 * 100 = -1.25 exactly
        assert round_percent_scaled(80, 79, 1) == -13

    def test_below_half_truncates(self):
        # 100 / 122 = 0.8196...
        assert round_percent_scaled(122, 123, 1) == 8
        assert round_percent_scaled(122, 123, 2) == 82
        assert round_percent_scaled(122, 123, 3) == 820

    def test_exact_values(self):
        assert round_percent_scaled(125, 126, 2) == 80
        assert round_percent_scaled(100, 150, 2) == 5000
        assert round_percent_scaled(120, 120, 2) == 0

    def test_zero_source(self):
        assert round_percent_scaled(0, 120, 2) == 0

    def test_precisions_agree(self):
        """1-decimal and 2-decimal results come from the same rounding law."""
        assert round_percent_scaled(128, 120, 1) == -63   # -6.25 -> -6.3
        assert round_percent_scaled(128, 120, 2) == -625


class TestFormatting:

    def test_format_scaled(self):
        assert format_scaled(82, 2) == "0.82"
        assert format_scaled(5, 2) == "0.05"
        assert format_scaled(-1234, 2) == "-12.34"
        assert format_scaled(7, 0) == "7"
        assert format_scaled(-7, 0) == "-7"
        assert format_scaled(0, 1) == "0.0"

    def test_format_scaled_signed(self):
        assert format_scaled_signed(0, 2) == "+0.00"
        assert format_scaled_signed(82, 2) == "+0.82"
        assert format_scaled_signed(-5, 1) == "-0.5"
        assert format_scaled_signed(12, 0) == "+12"


if __name__ == "__main__":
    pytest.main([__file__])
