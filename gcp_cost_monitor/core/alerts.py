"""
Alert decision pipeline.

Each alert category is evaluated independently against the configured
thresholds. A category whose condition holds is sent only if the cooldown
ledger allows it, and the ledger is updated under its lock so two
overlapping runs cannot both send.

Evaluation Order:
1. Cost increase since the previous run
2. Network egress threshold
3. Daily cost threshold (plus a detailed cost report)
4. Unused static IPs
5. Daily OK status (only when the cost threshold is not exceeded)
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import DeliveryFailure
from .ledger import AlertCategory, AlertLedger
from .pricing import round_cents

logger = logging.getLogger(__name__)

ALERT_TITLES = {
    AlertCategory.COST_INCREASE: "Cost Increase",
    AlertCategory.NETWORK_THRESHOLD: "Network Threshold",
    AlertCategory.COST_THRESHOLD: "Daily Cost Threshold",
    AlertCategory.UNUSED_RESOURCES: "Unused Resources",
    AlertCategory.DAILY_OK_STATUS: "Daily Status",
}


@dataclass(frozen=True)
class AlertPayload:
    """Structured alert handed to the notifier."""
    category: AlertCategory
    message: str
    current_value: str
    threshold_value: str
    timestamp: int

    @property
    def title(self) -> str:
        return ALERT_TITLES[self.category]


@dataclass(frozen=True)
class CostSnapshot:
    """Totals gathered by one monitoring run."""
    total_cost: Decimal
    breakdown_lines: Tuple[str, ...] = ()
    previous_total: Optional[Decimal] = None
    egress_gb: Optional[Decimal] = None
    unused_static_ips: int = 0


@dataclass
class AlertOutcome:
    """What the pipeline decided for each triggered category."""
    threshold_exceeded: bool = False
    fired: List[AlertPayload] = field(default_factory=list)
    suppressed: List[AlertPayload] = field(default_factory=list)
    delivery_failures: List[str] = field(default_factory=list)

    @property
    def fired_categories(self) -> List[AlertCategory]:
        return [p.category for p in self.fired]


def cost_increase_percent(total: Decimal, previous: Optional[Decimal]) -> Optional[Decimal]:
    """Percentage change from ``previous`` to ``total``, or None without a usable baseline."""
    if previous is None or previous <= 0:
        return None
    change = (total - previous) / previous * 100
    return change.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def check_conditions(snapshot: CostSnapshot, config, now: int) -> List[AlertPayload]:
    """Alert payloads whose conditions hold, in evaluation order.

    ``daily_ok_status`` is included when the cost threshold is not exceeded
    and OK status messages are enabled.
    """
    thresholds = config.thresholds
    candidates: List[AlertPayload] = []

    increase = cost_increase_percent(snapshot.total_cost, snapshot.previous_total)
    if increase is not None and increase > thresholds.cost_increase_percent:
        candidates.append(AlertPayload(
            category=AlertCategory.COST_INCREASE,
            message=f"Daily costs increased by {increase}% since last check",
            current_value=f"${snapshot.total_cost:.2f}",
            threshold_value=f"${snapshot.previous_total:.2f} (previous)",
            timestamp=now,
        ))

    if (config.monitor.network and thresholds.network_gb is not None
            and snapshot.egress_gb is not None
            and snapshot.egress_gb > thresholds.network_gb):
        candidates.append(AlertPayload(
            category=AlertCategory.NETWORK_THRESHOLD,
            message="Network egress exceeded configured threshold",
            current_value=f"{snapshot.egress_gb}GB",
            threshold_value=f"{thresholds.network_gb}GB",
            timestamp=now,
        ))

    threshold_exceeded = snapshot.total_cost > thresholds.daily_cost
    if threshold_exceeded:
        candidates.append(AlertPayload(
            category=AlertCategory.COST_THRESHOLD,
            message="Daily costs have exceeded your configured threshold",
            current_value=f"${snapshot.total_cost:.2f}",
            threshold_value=f"${thresholds.daily_cost:.2f}",
            timestamp=now,
        ))

    if config.monitor.static_ip and snapshot.unused_static_ips > 0:
        wasted = round_cents(config.rates.static_ip_daily * snapshot.unused_static_ips)
        candidates.append(AlertPayload(
            category=AlertCategory.UNUSED_RESOURCES,
            message=(
                f"Found {snapshot.unused_static_ips} unused static IP(s) "
                f"costing ${wasted}/day"
            ),
            current_value=f"{snapshot.unused_static_ips} IPs",
            threshold_value="0 unused IPs",
            timestamp=now,
        ))

    if not threshold_exceeded and config.alerts.send_ok_status:
        candidates.append(AlertPayload(
            category=AlertCategory.DAILY_OK_STATUS,
            message="Daily costs are within threshold",
            current_value=f"${snapshot.total_cost:.2f}",
            threshold_value=f"${thresholds.daily_cost:.2f}",
            timestamp=now,
        ))

    return candidates


def evaluate_alerts(
    snapshot: CostSnapshot,
    config,
    ledger: AlertLedger,
    notifier=None,
    now: int = 0,
) -> AlertOutcome:
    """Evaluate every alert category and send the ones the ledger permits.

    A category is recorded as fired even when delivery fails; the failure is
    logged and reported in the outcome.

    Args:
        snapshot: Totals from the current run
        config: MonitorConfig
        ledger: Cooldown ledger
        notifier: Object with ``send_alert`` and ``send_cost_report``; when
            None, alerts are only logged
        now: Current time in epoch seconds

    Returns:
        AlertOutcome with fired and suppressed payloads
    """
    outcome = AlertOutcome(threshold_exceeded=snapshot.total_cost > config.thresholds.daily_cost)
    if outcome.threshold_exceeded:
        logger.warning("Daily cost threshold exceeded!")

    for payload in check_conditions(snapshot, config, now):
        if payload.category != AlertCategory.DAILY_OK_STATUS:
            logger.warning(f"{payload.title}: {payload.message}")
        senders = _senders_for(payload, snapshot, notifier)
        _dispatch(payload, senders, ledger, outcome)

    return outcome


def _senders_for(payload: AlertPayload, snapshot: CostSnapshot, notifier) -> Sequence[Callable[[], None]]:
    if notifier is None:
        return ()
    if payload.category == AlertCategory.DAILY_OK_STATUS:
        return (lambda: notifier.send_cost_report(snapshot.total_cost, snapshot.breakdown_lines, "ok"),)
    senders = [lambda: notifier.send_alert(payload)]
    if payload.category == AlertCategory.COST_THRESHOLD:
        senders.append(
            lambda: notifier.send_cost_report(snapshot.total_cost, snapshot.breakdown_lines, "alert")
        )
    return senders


def _dispatch(
    payload: AlertPayload,
    senders: Sequence[Callable[[], None]],
    ledger: AlertLedger,
    outcome: AlertOutcome,
) -> None:
    with ledger.lock():
        if not ledger.should_fire(payload.category, payload.timestamp):
            logger.info(f"{payload.title} alert already sent recently, skipping to avoid spam")
            outcome.suppressed.append(payload)
            return

        if not senders:
            logger.warning(f"No notifier configured; {payload.category.value} alert logged only")
        for send in senders:
            try:
                send()
            except DeliveryFailure as e:
                logger.warning(f"Failed to deliver {payload.category.value} notification: {e}")
                outcome.delivery_failures.append(f"{payload.category.value}: {e}")

        ledger.record_fired(payload.category, payload.timestamp)
        outcome.fired.append(payload)
