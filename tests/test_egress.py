"""
Unit tests for network egress pricing.
"""

from decimal import Decimal

import pytest

from gcp_cost_monitor.core.egress import (
    GB,
    MB,
    bytes_to_gb,
    daily_egress_average,
    format_bytes,
    price_egress,
)
from gcp_cost_monitor.core.errors import InvalidArgument


class TestPriceEgress:
    """Test tiered egress pricing."""

    def test_five_gb_with_one_gb_free(self):
        """5 GB sent, 1 GB free, $0.12/GB costs $0.48."""
        assert price_egress(5 * GB, 1, Decimal("0.12")) == Decimal("0.48")

    def test_zero_bytes(self):
        assert price_egress(0, 1, Decimal("0.12")) == Decimal("0")

    def test_exactly_free_tier_is_free(self):
        assert price_egress(GB, 1, Decimal("0.12")) == Decimal("0")

    def test_below_free_tier_is_free(self):
        assert price_egress(GB - 1, 1, Decimal("0.12")) == Decimal("0")

    def test_linear_above_free_tier(self):
        """Each additional GB above the free tier adds exactly the rate."""
        rate = Decimal("0.12")
        for gb in (2, 3, 10):
            delta = price_egress((gb + 1) * GB, 1, rate) - price_egress(gb * GB, 1, rate)
            assert delta == rate

    def test_uses_binary_gigabytes(self):
        """10^9 bytes is less than one GB and stays within the free tier."""
        assert price_egress(10 ** 9, 1, Decimal("0.12")) == Decimal("0")

    def test_no_free_tier(self):
        assert price_egress(GB, 0, Decimal("0.12")) == Decimal("0.12")

    def test_negative_bytes_rejected(self):
        with pytest.raises(InvalidArgument):
            price_egress(-1, 1, Decimal("0.12"))

    def test_non_integer_bytes_rejected(self):
        with pytest.raises(InvalidArgument):
            price_egress(1.5, 1, Decimal("0.12"))

    def test_invalid_argument_is_value_error(self):
        with pytest.raises(ValueError):
            price_egress(-5, 1, Decimal("0.12"))

    def test_result_is_decimal(self):
        assert isinstance(price_egress(3 * GB, 1, 0.12), Decimal)


class TestConversions:
    """Test byte conversions and formatting."""

    def test_bytes_to_gb_truncates(self):
        assert bytes_to_gb(GB + GB // 2, places=3) == Decimal("1.500")
        assert bytes_to_gb(GB - 1, places=3) == Decimal("0.999")

    def test_format_bytes_units(self):
        assert format_bytes(512) == "512B"
        assert format_bytes(1536) == "1.50KB"
        assert format_bytes(MB) == "1.00MB"
        assert format_bytes(GB * 5 // 2) == "2.50GB"

    def test_format_bytes_truncates(self):
        assert format_bytes(GB - 1) == "1023.99MB"


class TestDailyAverage:
    """Test per-day egress averaging."""

    def test_average_over_uptime(self):
        daily_gb, cost = daily_egress_average(10 * GB, 5, 1, Decimal("0.12"))
        assert daily_gb == Decimal("2.000")
        assert cost == Decimal("0.12")

    def test_less_than_a_day_of_uptime(self):
        assert daily_egress_average(10 * GB, 0, 1, Decimal("0.12")) is None
