"""
Monitoring runs.

Ties the inventory, remote counters, estimator, egress pricing and alert
pipeline together. Per-resource failures are collected as skipped items
instead of aborting the run:

1. NotFound - a configured instance is missing; the rest are still priced
2. Unreachable - a listing or ssh hop failed; that category or instance is
   skipped
3. DeliveryFailure - logged by the alert pipeline; the run still succeeds
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .alerts import AlertOutcome, CostSnapshot, evaluate_alerts
from .egress import bytes_to_gb, daily_egress_average, price_egress
from .errors import DeliveryFailure, NotFound, Unreachable
from .estimator import CostEstimate, estimate_daily_cost, format_breakdown
from .ledger import AlertLedger
from .report import DailyReport, build_daily_report
from .resources import STATUS_IN_USE, STATUS_TERMINATED, ResourceKind, ResourceRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedResource:
    """A resource left out of a run, with the reason."""
    name: str
    kind: str
    reason: str


@dataclass
class CostAnalysis:
    """Result of pricing the project's inventory."""
    estimate: CostEstimate
    records: List[ResourceRecord] = field(default_factory=list)
    skipped: List[SkippedResource] = field(default_factory=list)
    unused_static_ips: int = 0
    stopped_instances: int = 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uptime(started: Optional[datetime], now: datetime) -> Optional[timedelta]:
    if started is None:
        return None
    if started.tzinfo is None:
        started = started.replace(tzinfo=timezone.utc)
    return now - started


def run_cost_analysis(config, inventory) -> CostAnalysis:
    """Describe the configured resources and estimate their daily cost.

    Args:
        config: MonitorConfig
        inventory: Inventory client (see ``GcloudInventory``)

    Returns:
        CostAnalysis annotated with any skipped resources
    """
    records: List[ResourceRecord] = []
    skipped: List[SkippedResource] = []
    unused = 0
    stopped = 0

    if config.monitor.compute:
        for name in config.project.instances:
            try:
                records.append(inventory.describe_instance(name).record)
            except NotFound as e:
                logger.warning(f"Could not fetch details for instance: {name} ({e})")
                skipped.append(SkippedResource(name, ResourceKind.COMPUTE_INSTANCE.value, str(e)))

        try:
            stopped = len(inventory.list_instances(status=STATUS_TERMINATED))
        except Unreachable as e:
            logger.warning(f"Could not list stopped instances: {e}")

    if config.monitor.static_ip:
        try:
            addresses = inventory.list_static_ips()
        except Unreachable as e:
            logger.warning(f"Could not list static IPs: {e}")
            skipped.append(SkippedResource("static IPs", ResourceKind.STATIC_IP.value, str(e)))
        else:
            records.extend(addresses)
            unused = sum(1 for address in addresses if address.is_unused_address)

    if config.monitor.storage:
        try:
            records.extend(inventory.list_disks())
        except Unreachable as e:
            logger.warning(f"Could not list disks: {e}")
            skipped.append(SkippedResource("disks", ResourceKind.DISK.value, str(e)))

    estimate = estimate_daily_cost(records, config.rates)
    return CostAnalysis(
        estimate=estimate,
        records=records,
        skipped=skipped,
        unused_static_ips=unused,
        stopped_instances=stopped,
    )


@dataclass
class InstanceCost:
    """Daily cost of one instance with its external IP and attached disks."""
    name: str
    details: object
    estimate: CostEstimate
    disks: List[ResourceRecord] = field(default_factory=list)
    uptime: Optional[timedelta] = None

    @property
    def total(self) -> Decimal:
        return self.estimate.total


@dataclass
class InstanceCostReport:
    instances: List[InstanceCost] = field(default_factory=list)
    skipped: List[SkippedResource] = field(default_factory=list)
    total: Decimal = Decimal("0.00")
    threshold_exceeded: bool = False


def check_instances(
    config,
    inventory,
    names: Optional[Sequence[str]] = None,
    now: Optional[datetime] = None,
) -> InstanceCostReport:
    """Price individual instances including their external IP and disks."""
    now = now or _utcnow()
    report = InstanceCostReport()

    for name in names or config.project.instances:
        try:
            details = inventory.describe_instance(name)
        except NotFound as e:
            logger.warning(f"Instance '{name}' not found in zone '{config.project.zone}'")
            report.skipped.append(SkippedResource(name, ResourceKind.COMPUTE_INSTANCE.value, str(e)))
            continue

        records = [details.record]
        if details.external_ip:
            records.append(ResourceRecord(
                kind=ResourceKind.STATIC_IP,
                status=STATUS_IN_USE,
                name=f"{name} external IP",
                address=details.external_ip,
            ))

        disks: List[ResourceRecord] = []
        for disk_name in details.disk_names:
            try:
                disks.append(inventory.describe_disk(disk_name, details.record.zone))
            except NotFound as e:
                logger.warning(f"Could not describe disk {disk_name} of {name}: {e}")
                report.skipped.append(SkippedResource(disk_name, ResourceKind.DISK.value, str(e)))
        records.extend(disks)

        instance = InstanceCost(
            name=name,
            details=details,
            estimate=estimate_daily_cost(records, config.rates),
            disks=disks,
            uptime=_uptime(details.record.last_started_at, now),
        )
        report.instances.append(instance)
        report.total += instance.total

    report.threshold_exceeded = report.total > config.thresholds.daily_cost
    return report


@dataclass
class InstanceTraffic:
    """Egress observed on one instance."""
    name: str
    counters: object
    egress_gb: Decimal
    egress_cost: Decimal
    daily_average: Optional[Tuple[Decimal, Decimal]] = None


@dataclass
class NetworkUsage:
    instances: List[InstanceTraffic] = field(default_factory=list)
    skipped: List[SkippedResource] = field(default_factory=list)
    total_rx_bytes: int = 0
    total_tx_bytes: int = 0
    total_egress_cost: Decimal = Decimal("0.00")

    @property
    def total_egress_gb(self) -> Decimal:
        return bytes_to_gb(self.total_tx_bytes, places=3)

    def exceeds(self, threshold_gb: Optional[Decimal]) -> bool:
        return threshold_gb is not None and self.total_egress_gb > threshold_gb


def run_network_usage(
    config,
    inventory,
    remote,
    names: Optional[Sequence[str]] = None,
    now: Optional[datetime] = None,
) -> NetworkUsage:
    """Collect interface counters from running instances and price the egress."""
    now = now or _utcnow()
    rates = config.rates
    usage = NetworkUsage()
    kind = ResourceKind.COMPUTE_INSTANCE.value

    for name in names or config.project.instances:
        try:
            details = inventory.describe_instance(name)
        except NotFound as e:
            logger.warning(f"Instance '{name}' not found")
            usage.skipped.append(SkippedResource(name, kind, str(e)))
            continue

        if not details.record.is_running:
            logger.info(f"Instance '{name}' is {details.record.status}; network monitoring requires a running instance")
            usage.skipped.append(SkippedResource(name, kind, f"status {details.record.status}"))
            continue

        try:
            counters = remote.collect_counters(name, details.record.zone)
        except Unreachable as e:
            logger.warning(f"Could not connect to instance {name} for network monitoring: {e}")
            usage.skipped.append(SkippedResource(name, kind, str(e)))
            continue

        if not counters.complete:
            usage.skipped.append(SkippedResource(name, kind, "interface counters unavailable"))
            continue

        usage.total_rx_bytes += counters.rx_bytes
        usage.total_tx_bytes += counters.tx_bytes

        average = None
        uptime = _uptime(details.record.last_started_at, now)
        if uptime is not None:
            average = daily_egress_average(
                counters.tx_bytes, uptime.days, rates.network_free_tier_gb, rates.network_egress_per_gb
            )

        usage.instances.append(InstanceTraffic(
            name=name,
            counters=counters,
            egress_gb=bytes_to_gb(counters.tx_bytes, places=3),
            egress_cost=price_egress(
                counters.tx_bytes, rates.network_free_tier_gb, rates.network_egress_per_gb
            ),
            daily_average=average,
        ))

    usage.total_egress_cost = price_egress(
        usage.total_tx_bytes, rates.network_free_tier_gb, rates.network_egress_per_gb
    )
    if usage.exceeds(config.thresholds.network_gb):
        logger.warning(
            f"Network egress ({usage.total_egress_gb} GB) exceeds threshold "
            f"({config.thresholds.network_gb} GB)"
        )
    return usage


@dataclass
class MonitorRun:
    """Result of one alert monitor run."""
    analysis: CostAnalysis
    outcome: AlertOutcome
    previous_total: Optional[Decimal] = None
    network: Optional[NetworkUsage] = None

    @property
    def exit_code(self) -> int:
        """1 when the daily cost threshold is exceeded, otherwise 0."""
        return 1 if self.outcome.threshold_exceeded else 0


def run_alert_monitor(
    config,
    inventory,
    remote,
    ledger: AlertLedger,
    history,
    notifier=None,
    now: Optional[datetime] = None,
) -> MonitorRun:
    """Estimate costs, compare with the previous run and send alerts."""
    now = now or _utcnow()
    logger.info(f"Starting cost alert monitoring for project: {config.project.id}")

    analysis = run_cost_analysis(config, inventory)
    total = analysis.estimate.total
    logger.info(f"Current daily cost: ${total:.2f}")
    for item in analysis.skipped:
        logger.warning(f"Skipped {item.kind} {item.name}: {item.reason}")

    previous = history.last_cost()
    history.save_last_cost(total)

    network = None
    if config.monitor.network and remote is not None:
        logger.info("Checking network usage...")
        network = run_network_usage(config, inventory, remote, now=now)

    snapshot = CostSnapshot(
        total_cost=total,
        breakdown_lines=tuple(format_breakdown(analysis.estimate)),
        previous_total=previous,
        egress_gb=network.total_egress_gb if network and network.instances else None,
        unused_static_ips=analysis.unused_static_ips,
    )
    if analysis.unused_static_ips:
        logger.info(f"Found {analysis.unused_static_ips} unused static IP(s)")

    outcome = evaluate_alerts(snapshot, config, ledger, notifier, now=int(now.timestamp()))
    logger.info("Alert monitoring completed")
    return MonitorRun(analysis=analysis, outcome=outcome, previous_total=previous, network=network)


@dataclass
class ReportRun:
    report: DailyReport
    analysis: CostAnalysis
    delivered: bool = False
    archive_path: Optional[Path] = None
    error: Optional[str] = None


def run_daily_report(
    config,
    inventory,
    remote,
    history,
    notifier,
    now: Optional[datetime] = None,
) -> Optional[ReportRun]:
    """Build and send the daily report; None when daily reports are disabled.

    The total is saved for tomorrow's comparison and the report archived only
    after the webhook acknowledges it.
    """
    if not config.monitor.daily_reports:
        logger.info("Daily reports are disabled")
        return None

    now = now or _utcnow()
    logger.info("Starting daily report generation")
    analysis = run_cost_analysis(config, inventory)

    egress_bytes = None
    if config.monitor.network and remote is not None:
        network = run_network_usage(config, inventory, remote, now=now)
        if network.instances:
            egress_bytes = network.total_tx_bytes

    report = build_daily_report(
        project_id=config.project.id,
        estimate=analysis.estimate,
        rates=config.rates,
        daily_cost_threshold=config.thresholds.daily_cost,
        previous_total=history.last_daily_total(),
        egress_bytes=egress_bytes,
        unused_static_ips=analysis.unused_static_ips,
        stopped_instances=analysis.stopped_instances,
        day=now.date(),
    )
    run = ReportRun(report=report, analysis=analysis)

    if notifier is None:
        run.error = "no notifier configured"
        logger.warning("No notifier configured; daily report not sent")
        return run

    try:
        notifier.send_daily_report(report)
    except DeliveryFailure as e:
        run.error = str(e)
        logger.error(f"Error sending report to Slack: {e}")
        return run

    run.delivered = True
    logger.info("Daily report sent successfully to Slack")
    history.save_last_daily_total(report.total)
    run.archive_path = history.archive_report(report.archive_lines(), day=report.day)
    logger.info(f"Report archived to: {run.archive_path}")
    return run
