"""
Daily cost report assembly.

Compares today's estimate with the last delivered report and lists
optimisation issues.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from .alerts import cost_increase_percent
from .egress import bytes_to_gb, format_bytes, price_egress
from .estimator import CATEGORY_COMPUTE, CATEGORY_STATIC_IP, CATEGORY_STORAGE, CostEstimate
from .pricing import RateTable, round_cents

TREND_THRESHOLD_PERCENT = Decimal("5")

TREND_UP = "up"
TREND_DOWN = "down"
TREND_FLAT = "flat"

TREND_EMOJI = {TREND_UP: "📈", TREND_DOWN: "📉", TREND_FLAT: "➡️"}


@dataclass(frozen=True)
class DailyReport:
    """Everything that goes into one daily report."""
    day: date
    project_id: str
    total: Decimal
    compute: Decimal
    storage: Decimal
    static_ip: Decimal
    network: Decimal
    egress: str
    change_percent: Optional[Decimal]
    trend: str
    issues: Tuple[str, ...]
    threshold_exceeded: bool

    @property
    def status(self) -> str:
        return "warning" if self.threshold_exceeded else "ok"

    @property
    def monthly_projection(self) -> Decimal:
        return round_cents(self.total * 30)

    @property
    def summary(self) -> str:
        text = f"📊 *Daily Cost:* ${self.total:.2f} {TREND_EMOJI[self.trend]}"
        if self.change_percent is not None and self.change_percent != 0:
            arrow = "↑" if self.change_percent > 0 else "↓"
            text += f" ({arrow} {abs(self.change_percent)}%)"
        return text

    def breakdown_lines(self) -> List[str]:
        return [
            f"Compute: ${self.compute:.2f}",
            f"Storage: ${self.storage:.2f}",
            f"Static IPs: ${self.static_ip:.2f}",
            f"Network: ~${self.network:.2f}",
        ]

    def archive_lines(self) -> List[str]:
        change = "0" if self.change_percent is None else str(self.change_percent)
        lines = [
            f"Daily Report - {self.day.isoformat()}",
            "=======================",
            f"Total Cost: ${self.total:.2f}",
            f"Change: {change}%",
            "",
            "Breakdown:",
        ]
        lines += [f"- {line.replace('~', '')}" for line in self.breakdown_lines()]
        lines += ["", f"Issues: {len(self.issues)}"]
        lines += [f"• {issue}" for issue in self.issues]
        return lines


def trend_of(total: Decimal, previous: Optional[Decimal]) -> str:
    """Trend direction; changes within ±5% count as flat."""
    change = cost_increase_percent(total, previous)
    if change is None:
        return TREND_FLAT
    if change > TREND_THRESHOLD_PERCENT:
        return TREND_UP
    if change < -TREND_THRESHOLD_PERCENT:
        return TREND_DOWN
    return TREND_FLAT


def build_daily_report(
    project_id: str,
    estimate: CostEstimate,
    rates: RateTable,
    daily_cost_threshold: Decimal,
    previous_total: Optional[Decimal] = None,
    egress_bytes: Optional[int] = None,
    unused_static_ips: int = 0,
    stopped_instances: int = 0,
    day: Optional[date] = None,
) -> DailyReport:
    """Assemble a daily report from an estimate and the run's observations."""
    issues: List[str] = []
    threshold_exceeded = estimate.total > daily_cost_threshold
    if threshold_exceeded:
        issues.append(f"⚠️ Daily cost exceeds threshold (${daily_cost_threshold:.2f})")
    if unused_static_ips > 0:
        wasted = round_cents(rates.static_ip_daily * unused_static_ips)
        issues.append(f"💡 {unused_static_ips} unused static IP(s) - ${wasted}/day wasted")
    if stopped_instances > 0:
        issues.append(f"💾 {stopped_instances} stopped instance(s) still incurring disk costs")

    if egress_bytes is None:
        egress = "unknown"
        network = round_cents(Decimal("0"))
    else:
        egress = f"{format_bytes(egress_bytes)} ({bytes_to_gb(egress_bytes, places=3)} GB)"
        network = price_egress(egress_bytes, rates.network_free_tier_gb, rates.network_egress_per_gb)

    return DailyReport(
        day=day or date.today(),
        project_id=project_id,
        total=estimate.total,
        compute=estimate.breakdown[CATEGORY_COMPUTE],
        storage=estimate.breakdown[CATEGORY_STORAGE],
        static_ip=estimate.breakdown[CATEGORY_STATIC_IP],
        network=network,
        egress=egress,
        change_percent=cost_increase_percent(estimate.total, previous_total),
        trend=trend_of(estimate.total, previous_total),
        issues=tuple(issues),
        threshold_exceeded=threshold_exceeded,
    )
