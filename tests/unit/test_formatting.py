"""
Tests for cost display formatting.

Covers currency formatting thresholds, resource share computation and
the small label helpers built on top of them.
"""

import math

import pytest

from cost_analysis.formatting import (
    PLACEHOLDER,
    ResourceKind,
    cell_or_placeholder,
    format_currency,
    format_percent_change,
    format_share_label,
    resource_shares,
    to_fixed,
)
from cost_analysis.trend import Trend


class TestFormatCurrency:
    """Test cases for format_currency."""

    def test_zero(self):
        assert format_currency(0) == "$0.00"
        assert format_currency(0.0) == "$0.00"

    def test_sub_cent_amounts_never_show_zero(self):
        assert format_currency(0.004) == "<$0.01"
        assert format_currency(0.0099) == "<$0.01"
        assert format_currency(1e-9) == "<$0.01"

    def test_two_decimal_display(self):
        assert format_currency(4.2) == "$4.20"
        assert format_currency(0.01) == "$0.01"
        assert format_currency(999.99) == "$999.99"

    def test_thousands_suffix(self):
        assert format_currency(1234.5) == "$1.23k"
        assert format_currency(1000) == "$1.00k"
        assert format_currency(25000) == "$25.00k"

    def test_rounds_half_up(self):
        # 0.125 is exactly representable, so this is a true tie
        assert format_currency(0.125) == "$0.13"
        assert format_currency(2.675) == "$2.67"  # stored just below 2.675

    def test_rejects_negative(self):
        with pytest.raises(ValueError, match="negative"):
            format_currency(-1.0)

    def test_rejects_non_finite(self):
        with pytest.raises(ValueError, match="non-finite"):
            format_currency(math.inf)
        with pytest.raises(ValueError, match="non-finite"):
            format_currency(math.nan)

    def test_very_large_amounts(self):
        result = format_currency(1e30)

        whole, decimals = result.removeprefix("$").removesuffix("k").split(".")
        assert result.startswith("$1000000000000000")
        assert result.endswith("k")
        assert len(whole) == 28
        assert decimals == "00"


class TestToFixed:
    """Test cases for fixed-point rendering."""

    def test_pads_decimals(self):
        assert to_fixed(1, 4) == "1.0000"
        assert to_fixed(0, 2) == "0.00"

    def test_four_places(self):
        assert to_fixed(12.34567, 4) == "12.3457"
        assert to_fixed(0.00004, 4) == "0.0000"

    def test_values_beyond_default_precision(self):
        assert to_fixed(1e25, 4) == "10000000000000000905969664.0000"
        assert to_fixed(1e30, 2) == "1000000000000000019884624838656.00"


class TestResourceShares:
    """Test cases for resource_shares."""

    def test_zero_total_placeholder(self):
        shares = resource_shares(0, 0, 0)

        assert [s.kind for s in shares] == [ResourceKind.CPU, ResourceKind.MEMORY, ResourceKind.DISK]
        for share in shares:
            assert share.value == 0
            assert share.percent == pytest.approx(33.3)

        # Placeholder shares are not corrected to 100
        assert sum(s.percent for s in shares) == pytest.approx(99.9)

    def test_exact_percentages(self):
        shares = resource_shares(10, 20, 70)

        assert [s.percent for s in shares] == pytest.approx([10.0, 20.0, 70.0])
        assert [s.value for s in shares] == [10, 20, 70]

    def test_order_is_cpu_memory_disk(self):
        shares = resource_shares(1, 50, 3)
        assert [s.kind.value for s in shares] == ["CPU", "Memory", "Disk"]
        assert shares[1].value == 50

    @pytest.mark.parametrize(
        "cpu,memory,disk",
        [(1, 1, 1), (0.3, 0.6, 0.1), (123.45, 0.0001, 77.7), (0, 0, 5), (1e-6, 3e6, 42)],
    )
    def test_percentages_sum_to_hundred(self, cpu, memory, disk):
        shares = resource_shares(cpu, memory, disk)
        assert sum(s.percent for s in shares) == pytest.approx(100.0)


class TestLabels:
    """Test cases for label helpers."""

    def test_share_label(self):
        share = resource_shares(10, 20, 70)[0]
        assert format_share_label(share, 100) == "$10.00 (10.0%)"

    def test_share_label_zero_total(self):
        share = resource_shares(0, 0, 0)[2]
        assert format_share_label(share, 0) == "$0.00 (0.0%)"

    def test_percent_change_up(self):
        assert format_percent_change(Trend(percent=12.34, is_up=True)) == "+12.3% vs prior period"

    def test_percent_change_down(self):
        assert format_percent_change(Trend(percent=4.0, is_up=False)) == "-4.0% vs prior period"

    def test_percent_change_flat(self):
        assert format_percent_change(Trend()) is None

    def test_cell_placeholder(self):
        assert cell_or_placeholder(None) == PLACEHOLDER
        assert cell_or_placeholder(0.004) == "<$0.01"
