"""
Daily cost estimation from inventory records.

Network egress is not priced here; see ``egress.price_egress``.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Sequence, Tuple

from .pricing import RateTable, monthly_to_daily, round_cents
from .resources import DiskType, ResourceKind, ResourceRecord

logger = logging.getLogger(__name__)

CATEGORY_COMPUTE = "compute"
CATEGORY_STATIC_IP = "static_ip"
CATEGORY_STORAGE = "storage"
CATEGORIES = (CATEGORY_COMPUTE, CATEGORY_STATIC_IP, CATEGORY_STORAGE)

CATEGORY_LABELS = {
    CATEGORY_COMPUTE: "Compute",
    CATEGORY_STATIC_IP: "Static IPs",
    CATEGORY_STORAGE: "Storage",
}

_ZERO = Decimal("0")


@dataclass(frozen=True)
class LineItem:
    """Daily cost of a single resource."""
    name: str
    category: str
    daily_cost: Decimal
    note: str = ""


@dataclass(frozen=True)
class CostEstimate:
    """Result of a daily cost estimate."""
    total: Decimal
    breakdown: Dict[str, Decimal]
    line_items: Tuple[LineItem, ...] = ()
    warnings: Tuple[str, ...] = ()

    @property
    def monthly_projection(self) -> Decimal:
        return round_cents(self.total * 30)


def estimate_daily_cost(
    records: Sequence[ResourceRecord],
    rates: RateTable,
) -> CostEstimate:
    """Estimate the daily cost of a set of resources.

    Compute cost is rounded per instance. Static IP and storage amounts are
    accumulated exactly and rounded once per category, so several small
    addresses are not each rounded down to zero.

    Args:
        records: Observed resources
        rates: Rate table

    Returns:
        CostEstimate with per-category breakdown and line items
    """
    compute = _ZERO
    exact: Dict[str, Decimal] = {CATEGORY_STATIC_IP: _ZERO, CATEGORY_STORAGE: _ZERO}
    items: List[LineItem] = []
    warnings: List[str] = []

    for record in records:
        if record.kind == ResourceKind.COMPUTE_INSTANCE:
            daily, note = _instance_daily(record, rates, warnings)
            compute += daily
            items.append(LineItem(record.label, CATEGORY_COMPUTE, daily, note))

        elif record.kind == ResourceKind.STATIC_IP:
            # Reserved addresses bill whether attached or not
            daily = rates.static_ip_daily
            exact[CATEGORY_STATIC_IP] += daily
            note = "not in use" if record.is_unused_address else ""
            items.append(LineItem(record.label, CATEGORY_STATIC_IP, round_cents(daily), note))

        elif record.kind == ResourceKind.DISK:
            daily = _disk_daily(record, rates, warnings)
            exact[CATEGORY_STORAGE] += daily
            items.append(LineItem(record.label, CATEGORY_STORAGE, round_cents(daily)))

    breakdown = {
        CATEGORY_COMPUTE: compute,
        CATEGORY_STATIC_IP: round_cents(exact[CATEGORY_STATIC_IP]),
        CATEGORY_STORAGE: round_cents(exact[CATEGORY_STORAGE]),
    }
    total = sum(breakdown.values(), _ZERO)

    return CostEstimate(
        total=total,
        breakdown=breakdown,
        line_items=tuple(items),
        warnings=tuple(warnings),
    )


def _instance_daily(record: ResourceRecord, rates: RateTable, warnings: List[str]) -> Tuple[Decimal, str]:
    if not record.is_running:
        return round_cents(_ZERO), "not running"

    monthly = rates.machine_monthly(record.machine_type)
    if monthly is None:
        message = f"Unknown machine type '{record.machine_type}' for instance {record.label}"
        logger.warning(message)
        warnings.append(message)
        return round_cents(rates.unknown_price), "unknown machine type"

    return round_cents(monthly_to_daily(monthly)), ""


def _disk_daily(record: ResourceRecord, rates: RateTable, warnings: List[str]) -> Decimal:
    if record.size_gb is None:
        message = f"Disk {record.label} has no size; priced at 0"
        logger.warning(message)
        warnings.append(message)
        return _ZERO

    disk_type = record.disk_type or DiskType.STANDARD
    monthly = record.size_gb * rates.disk_gb_monthly(disk_type == DiskType.SSD)
    return monthly_to_daily(monthly)


def format_breakdown(estimate: CostEstimate) -> List[str]:
    """Human-readable breakdown lines, e.g. ``Compute: $0.20``."""
    return [
        f"{CATEGORY_LABELS[category]}: ${estimate.breakdown[category]:.2f}"
        for category in CATEGORIES
    ]
