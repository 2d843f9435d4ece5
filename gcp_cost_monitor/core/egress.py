"""
Tiered network egress pricing.

Bytes are converted with the binary gigabyte (2^30 bytes). Egress up to the
free tier is free; above it the price is linear in the excess.
"""

from decimal import Decimal, ROUND_DOWN
from typing import Optional, Tuple

from .errors import InvalidArgument
from .pricing import Number, round_cents, to_decimal

KB = 1024
MB = 1024 * 1024
GB = 1073741824

_ZERO = Decimal("0")


def bytes_to_gb(bytes_count: int, places: Optional[int] = None) -> Decimal:
    """Convert bytes to GB (2^30), optionally truncated to ``places`` decimals."""
    gb = Decimal(bytes_count) / Decimal(GB)
    if places is None:
        return gb
    return gb.quantize(Decimal(1).scaleb(-places), rounding=ROUND_DOWN)


def price_gb(gb: Number, free_tier_gb: Number, rate_per_gb: Number) -> Decimal:
    """Price an egress volume already expressed in GB."""
    gb = to_decimal(gb)
    free_tier = to_decimal(free_tier_gb)
    if gb <= free_tier:
        return round_cents(_ZERO)
    return round_cents((gb - free_tier) * to_decimal(rate_per_gb))


def price_egress(bytes_sent: int, free_tier_gb: Number, rate_per_gb: Number) -> Decimal:
    """Price outbound traffic above the free tier.

    Args:
        bytes_sent: Bytes transmitted (non-negative)
        free_tier_gb: Free allowance in GB
        rate_per_gb: Price per GB above the allowance

    Returns:
        Price rounded half up to cents

    Raises:
        InvalidArgument: If bytes_sent is negative or not an integer
    """
    if isinstance(bytes_sent, bool) or not isinstance(bytes_sent, int):
        raise InvalidArgument(f"bytes_sent must be an integer, got {bytes_sent!r}")
    if bytes_sent < 0:
        raise InvalidArgument(f"bytes_sent must be >= 0, got {bytes_sent}")
    return price_gb(bytes_to_gb(bytes_sent), free_tier_gb, rate_per_gb)


def daily_egress_average(
    bytes_sent: int,
    uptime_days: int,
    free_tier_gb: Number,
    rate_per_gb: Number,
) -> Optional[Tuple[Decimal, Decimal]]:
    """Average GB per day and its price, or None for less than a day of uptime."""
    if uptime_days <= 0:
        return None
    daily_gb = (bytes_to_gb(bytes_sent, places=3) / uptime_days).quantize(
        Decimal("0.001"), rounding=ROUND_DOWN
    )
    return daily_gb, price_gb(daily_gb, free_tier_gb, rate_per_gb)


def format_bytes(bytes_count: int) -> str:
    """Human readable size using 1024-based units, truncated to 2 decimals."""
    if bytes_count < KB:
        return f"{bytes_count}B"
    if bytes_count < MB:
        return f"{_truncate(bytes_count, KB)}KB"
    if bytes_count < GB:
        return f"{_truncate(bytes_count, MB)}MB"
    return f"{_truncate(bytes_count, GB)}GB"


def _truncate(bytes_count: int, unit: int) -> Decimal:
    return (Decimal(bytes_count) / Decimal(unit)).quantize(Decimal("0.01"), rounding=ROUND_DOWN)
