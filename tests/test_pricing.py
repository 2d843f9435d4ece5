"""
Unit tests for pricing calculations.

Tests rate table validation, decimal conversion and rounding behavior.
"""

import pytest
from decimal import Decimal

from gcp_cost_monitor.core.errors import InvalidArgument, InvalidConfiguration
from gcp_cost_monitor.core.pricing import (
    RateTable,
    monthly_to_daily,
    round_cents,
    to_decimal,
)


def _rates(**overrides):
    values = dict(
        machine_types={"e2-micro": 6},
        standard_disk_gb_monthly=0.04,
        ssd_disk_gb_monthly=0.17,
        static_ip_monthly=7.30,
        network_free_tier_gb=1,
        network_egress_per_gb=0.12,
    )
    values.update(overrides)
    return RateTable.from_mapping(**values)


class TestDecimalConversion:
    """Test conversion of configuration numbers to Decimal."""

    def test_float_has_no_binary_artifacts(self):
        """Verify 0.1 converts to exactly Decimal('0.1')."""
        assert to_decimal(0.1) == Decimal("0.1")

    def test_decimal_passes_through(self):
        value = Decimal("1.23")
        assert to_decimal(value) is value

    def test_invalid_string_raises(self):
        with pytest.raises(InvalidArgument):
            to_decimal("not-a-number")

    def test_bool_rejected(self):
        with pytest.raises(InvalidArgument):
            to_decimal(True)


class TestRounding:
    """Test cent rounding and monthly to daily conversion."""

    def test_round_half_up(self):
        """Verify exact half cents round up."""
        assert round_cents(Decimal("0.005")) == Decimal("0.01")
        assert round_cents(Decimal("0.125")) == Decimal("0.13")

    def test_round_below_half(self):
        assert round_cents(Decimal("0.0249")) == Decimal("0.02")

    def test_monthly_to_daily_is_unrounded(self):
        """Verify conversion divides by 30 without rounding to cents."""
        daily = monthly_to_daily(Decimal("7.30"))
        assert daily == Decimal("7.30") / 30
        assert daily != round_cents(daily)
        assert round_cents(daily * 30) == Decimal("7.30")

    def test_monthly_to_daily_example(self):
        assert round_cents(monthly_to_daily(6)) == Decimal("0.20")


class TestRateTable:
    """Test rate table construction and lookups."""

    def test_from_mapping_converts_to_decimal(self):
        rates = _rates()
        assert rates.machine_types["e2-micro"] == Decimal("6")
        assert rates.static_ip_monthly == Decimal("7.3")
        assert isinstance(rates.network_egress_per_gb, Decimal)

    def test_known_machine_type(self):
        assert _rates().machine_monthly("e2-micro") == Decimal("6")

    def test_unknown_machine_type_returns_none(self):
        """Unknown types are reported by the estimator, not raised here."""
        assert _rates().machine_monthly("n2-standard-64") is None
        assert _rates().machine_monthly(None) is None

    def test_disk_rates(self):
        rates = _rates()
        assert rates.disk_gb_monthly(ssd=True) == Decimal("0.17")
        assert rates.disk_gb_monthly(ssd=False) == Decimal("0.04")

    def test_negative_rate_rejected(self):
        with pytest.raises(InvalidConfiguration, match="static_ip_monthly"):
            _rates(static_ip_monthly=-1)

    def test_negative_machine_rate_rejected(self):
        with pytest.raises(InvalidConfiguration, match="e2-micro"):
            _rates(machine_types={"e2-micro": -6})

    def test_zero_rates_allowed(self):
        rates = _rates(network_egress_per_gb=0, network_free_tier_gb=0)
        assert rates.network_egress_per_gb == Decimal("0")
