"""
Pricing calculations and rate management.

Handles the rate table for compute, storage, static IPs and network egress,
plus the monthly to daily conversion shared by every estimate.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Mapping, Optional, Union

from .errors import InvalidArgument, InvalidConfiguration

Number = Union[Decimal, int, float, str]

DAYS_PER_MONTH = Decimal("30")
CENT = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidArgument(f"Expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except ArithmeticError:
        raise InvalidArgument(f"Expected a number, got {value!r}")


def round_cents(amount: Decimal) -> Decimal:
    """Round to 2 decimal places, half up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def monthly_to_daily(monthly: Number) -> Decimal:
    """Unrounded daily share of a monthly price, at context precision."""
    return to_decimal(monthly) / DAYS_PER_MONTH


@dataclass(frozen=True)
class RateTable:
    """Fixed monthly rates, loaded once from configuration."""
    machine_types: Mapping[str, Decimal]
    standard_disk_gb_monthly: Decimal
    ssd_disk_gb_monthly: Decimal
    static_ip_monthly: Decimal
    network_free_tier_gb: Decimal
    network_egress_per_gb: Decimal
    unknown_price: Decimal = field(default=Decimal("0"))

    def __post_init__(self):
        """Validate that every rate is non-negative."""
        for machine_type, monthly in self.machine_types.items():
            if monthly < 0:
                raise InvalidConfiguration(
                    f"Monthly rate for machine type '{machine_type}' must be >= 0"
                )
        for name in (
            "standard_disk_gb_monthly",
            "ssd_disk_gb_monthly",
            "static_ip_monthly",
            "network_free_tier_gb",
            "network_egress_per_gb",
        ):
            if getattr(self, name) < 0:
                raise InvalidConfiguration(f"{name} must be >= 0")

    @classmethod
    def from_mapping(
        cls,
        machine_types: Mapping[str, Number],
        standard_disk_gb_monthly: Number,
        ssd_disk_gb_monthly: Number,
        static_ip_monthly: Number,
        network_free_tier_gb: Number,
        network_egress_per_gb: Number,
    ) -> "RateTable":
        """Build a table from plain numbers, converting everything to Decimal."""
        return cls(
            machine_types={name: to_decimal(v) for name, v in machine_types.items()},
            standard_disk_gb_monthly=to_decimal(standard_disk_gb_monthly),
            ssd_disk_gb_monthly=to_decimal(ssd_disk_gb_monthly),
            static_ip_monthly=to_decimal(static_ip_monthly),
            network_free_tier_gb=to_decimal(network_free_tier_gb),
            network_egress_per_gb=to_decimal(network_egress_per_gb),
        )

    def machine_monthly(self, machine_type: Optional[str]) -> Optional[Decimal]:
        """Monthly price for a machine type, or None if it is not in the table."""
        if machine_type is None:
            return None
        return self.machine_types.get(machine_type)

    def disk_gb_monthly(self, ssd: bool) -> Decimal:
        return self.ssd_disk_gb_monthly if ssd else self.standard_disk_gb_monthly

    @property
    def static_ip_daily(self) -> Decimal:
        """Unrounded daily price of one reserved address."""
        return monthly_to_daily(self.static_ip_monthly)
