"""
Tests for price/size precision helpers.
"""

from decimal import ROUND_DOWN

import pytest

from adaptive_twap.utils.precision import (
    format_price,
    format_size,
    max_price_decimals,
    remaining_size,
    round_size,
    validate_price,
    validate_size,
)


class TestFormatPrice:

    def test_whole_number_passes_through(self):
        assert format_price(50000.0, 4) == "50000"
        assert format_price(123456.0, 0) == "123456"

    def test_significant_figures_capped(self):
        assert format_price(1234.56, 0) == "1234.6"
        assert format_price(123456.7, 0) == "123460"

    def test_decimals_capped_by_sz_decimals(self):
        # 6 - 4 = 2 decimals allowed
        assert format_price(1.23456, 4) == "1.23"
        assert max_price_decimals(4) == 2
        assert max_price_decimals(8) == 0

    def test_spot_allows_more_decimals(self):
        assert format_price(0.00012345, 0, max_decimals=8) == "0.00012345"
        assert format_price(0.00012345, 0, max_decimals=6) == "0.000123"

    def test_tiny_price_raised_to_smallest_tick(self):
        assert format_price(0.0000001, 0) == "0.000001"

    def test_no_exponent_notation(self):
        out = format_price(0.000012345, 0, max_decimals=8)
        assert "e" not in out.lower()

    @pytest.mark.parametrize("bad", [0.0, -1.0, float("nan"), float("inf")])
    def test_rejects_non_positive_or_non_finite(self, bad):
        with pytest.raises(ValueError):
            format_price(bad, 2)

    def test_formatted_price_validates(self):
        for px in (100.09999999999999, 0.123456, 2.71828, 99.8001):
            assert validate_price(format_price(px, 2), 2).is_valid


class TestValidatePrice:

    def test_too_many_decimals(self):
        check = validate_price("1.234", 4)
        assert not check.is_valid
        assert "decimal places" in check.reason

    def test_too_many_sig_figs(self):
        check = validate_price("1.23456", 0)
        assert not check.is_valid
        assert "significant figures" in check.reason

    def test_integer_always_valid(self):
        assert validate_price("1234567", 5).is_valid

    def test_unparseable(self):
        assert not validate_price("abc", 2).is_valid
        assert not validate_price("-1", 2).is_valid


class TestSizes:

    def test_round_half_up(self):
        assert round_size(1.23456, 2) == 1.23
        assert round_size(1.235, 2) == 1.24
        assert round_size(7.5, 0) == 8.0

    def test_round_down_mode(self):
        assert round_size(5.629, 2, ROUND_DOWN) == 5.62

    def test_round_invalid_is_zero(self):
        assert round_size(-1.0, 2) == 0.0
        assert round_size(float("nan"), 2) == 0.0

    def test_format_truncates(self):
        assert format_size(1.239, 2) == "1.23"
        assert format_size(10.0, 2) == "10"
        assert format_size(3.0, 0) == "3"

    def test_validate_size(self):
        assert validate_size("1.23", 2).is_valid
        assert not validate_size("1.234", 2).is_valid
        assert not validate_size("0", 2).is_valid

    def test_remaining_size_is_exact_on_lot_grid(self):
        assert remaining_size(1.05, [0.35, 0.35], 2) == 0.35
        assert remaining_size(1.05, [0.35, 0.35, 0.35], 2) == 0.0
        assert remaining_size(0.3, [0.1, 0.2], 2) == 0.0
        assert remaining_size(5.0, [], 0) == 5.0

    def test_remaining_size_never_negative(self):
        assert remaining_size(1.0, [0.6, 0.6], 2) == 0.0


PRICES = [0.000123456, 0.0123456, 0.99996, 1.23456789, 9.99995, 12.3456, 99.8001, 1234.5678, 65432.1, 123456.78]
PRECISIONS = [(sz, 6) for sz in range(0, 7)] + [(sz, 8) for sz in range(0, 9)]


@pytest.mark.parametrize("sz_decimals,max_decimals", PRECISIONS)
def test_formatted_prices_validate_and_are_stable(sz_decimals, max_decimals):
    for px in PRICES:
        out = format_price(px, sz_decimals, max_decimals)
        assert "e" not in out.lower()
        assert validate_price(out, sz_decimals, max_decimals).is_valid, (px, out)
        assert format_price(float(out), sz_decimals, max_decimals) == out


@pytest.mark.parametrize("sz_decimals", range(0, 9))
def test_rounded_sizes_format_and_validate(sz_decimals):
    for sz in (1.0, 2.5, 13.37, 1234.56789, 0.987654321 + 1):
        out = format_size(round_size(sz, sz_decimals), sz_decimals)
        assert validate_size(out, sz_decimals).is_valid, (sz, out)
