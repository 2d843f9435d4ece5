"""
CLI interface for GCP Cost Monitor.

Provides command-line access to cost analysis, network monitoring, alerting
and daily reports.
"""

import sys
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from gcp_cost_monitor.config.loader import (
    SAMPLE_CONFIG,
    MonitorConfig,
    default_config_path,
    load_monitor_config,
)
from gcp_cost_monitor.core.egress import format_bytes
from gcp_cost_monitor.core.errors import DeliveryFailure, InvalidConfiguration
from gcp_cost_monitor.core.estimator import CATEGORIES, CATEGORY_LABELS
from gcp_cost_monitor.core.ledger import AlertLedger
from gcp_cost_monitor.core.monitor import (
    check_instances,
    run_alert_monitor,
    run_cost_analysis,
    run_daily_report,
    run_network_usage,
)
from gcp_cost_monitor.core.pricing import round_cents
from gcp_cost_monitor.inventory.gcloud import GcloudInventory
from gcp_cost_monitor.inventory.remote import RemoteExecutor
from gcp_cost_monitor.logging_config import configure_logging
from gcp_cost_monitor.notify.slack import SlackNotifier
from gcp_cost_monitor.storage.history import RunHistory
from gcp_cost_monitor.storage.ledger_store import FileLedgerStore

app = typer.Typer()
console = Console()

# Exit codes - only an exceeded cost threshold (or a fatal config error) fails
EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the YAML configuration file",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """GCP Cost Monitor CLI."""
    ctx.obj = {"config_path": config or default_config_path(), "verbose": verbose}
    if ctx.invoked_subcommand is None:
        console.print("GCP Cost Monitor - Use --help to see available commands")


def get_inventory(config: MonitorConfig) -> GcloudInventory:
    return GcloudInventory(config.project.id, config.project.zone)


def get_remote(config: MonitorConfig) -> RemoteExecutor:
    return RemoteExecutor(config.project.id, config.project.zone)


def get_notifier(config: MonitorConfig) -> Optional[SlackNotifier]:
    if config.slack is None:
        return None
    return SlackNotifier.from_config(config.slack, config.project.id, config.thresholds.daily_cost)


def _load(ctx: typer.Context) -> MonitorConfig:
    """Load configuration and set up logging, exiting on invalid config."""
    path = ctx.obj["config_path"]
    try:
        config = load_monitor_config(path)
    except (FileNotFoundError, yaml.YAMLError, InvalidConfiguration) as e:
        console.print(f"[red]Configuration error:[/] {str(e)}")
        console.print("Run `gcp-cost-monitor init` to create a sample configuration")
        sys.exit(EXIT_CODE_FAIL)
    configure_logging(RunHistory(config.state_dir).event_log_path, ctx.obj["verbose"])
    return config


def _format_currency(amount: Decimal) -> str:
    """Format currency with proper symbols and formatting."""
    return f"${amount:,.2f}"


def _print_skipped(skipped) -> None:
    if not skipped:
        return
    console.print(f"\n[yellow]Skipped {len(skipped)} resource(s):[/]")
    for item in skipped:
        console.print(f"  • {item.kind} {item.name}: {item.reason}")


@app.command()
def init(
    path: str = typer.Argument("config.yaml", help="Where to write the sample configuration"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
):
    """Write a sample configuration and create the state directories."""
    config_path = Path(path)
    if config_path.exists() and not force:
        console.print(f"[yellow]![/] {config_path} already exists (use --force to overwrite)")
    else:
        config_path.write_text(SAMPLE_CONFIG, encoding="utf-8")
        console.print(f"[green]✓[/] Created {config_path}")

    history = RunHistory(config_path.parent / "logs")
    history.ensure_dirs()
    console.print(f"[green]✓[/] Created log directories under {history.state_dir}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def analyze(ctx: typer.Context):
    """Daily cost analysis of instances, static IPs and disks."""
    config = _load(ctx)
    analysis = run_cost_analysis(config, get_inventory(config))
    estimate = analysis.estimate

    console.print(f"\n[bold]GCP Daily Cost Analysis - {config.project.id}[/bold]")
    table = Table()
    table.add_column("Resource")
    table.add_column("Category")
    table.add_column("Daily Cost", justify="right")
    table.add_column("Note")
    for item in estimate.line_items:
        table.add_row(item.name, CATEGORY_LABELS[item.category], _format_currency(item.daily_cost), item.note)
    console.print(table)

    console.print("\n[bold]Daily Cost Summary[/bold]")
    summary = []
    for category in CATEGORIES:
        line = f"{CATEGORY_LABELS[category]}: {_format_currency(estimate.breakdown[category])}"
        summary.append(line)
        console.print(line)
    console.print(f"[green]TOTAL ESTIMATED DAILY COST: {_format_currency(estimate.total)}[/]")
    console.print(f"Monthly projection: {_format_currency(estimate.monthly_projection)}")

    for warning in estimate.warnings:
        console.print(f"[yellow]Warning:[/] {warning}")
    _print_skipped(analysis.skipped)

    console.print("\n[bold]Optimization Opportunities[/bold]")
    if analysis.unused_static_ips:
        wasted = round_cents(config.rates.static_ip_daily * analysis.unused_static_ips)
        console.print(
            f"[red]Found {analysis.unused_static_ips} unused static IP(s) - "
            f"release to save {_format_currency(wasted)}/day[/]"
        )
    if analysis.stopped_instances:
        console.print(
            f"[yellow]{analysis.stopped_instances} instance(s) are stopped but still incur disk costs[/]"
        )
    if not analysis.unused_static_ips and not analysis.stopped_instances:
        console.print("No idle resources found")

    path = RunHistory(config.state_dir).save_analysis(
        ["Total Daily Cost: " + _format_currency(estimate.total), "", "Breakdown:", *summary]
    )
    console.print(f"\nReport saved to: {path}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def instances(
    ctx: typer.Context,
    names: Optional[List[str]] = typer.Argument(None, help="Instances to check (default: configured)"),
):
    """Cost breakdown for individual instances."""
    config = _load(ctx)
    report = check_instances(config, get_inventory(config), names)

    for instance in report.instances:
        record = instance.details.record
        console.print(f"\n[bold]INSTANCE: {instance.name}[/bold]")
        console.print(f"Status: {record.status}")
        console.print(f"Machine Type: {record.machine_type}")
        console.print(f"Zone: {record.zone}")
        if record.created_at:
            console.print(f"Created: {record.created_at.date().isoformat()}")
        if instance.uptime is not None:
            hours = instance.uptime.seconds // 3600
            console.print(f"Uptime: {instance.uptime.days}d {hours}h")
        console.print(f"Internal IP: {instance.details.internal_ip or 'None'}")
        console.print(f"External IP: {instance.details.external_ip or 'None'}")

        table = Table(title="Cost Breakdown")
        table.add_column("Item")
        table.add_column("Daily Cost", justify="right")
        for item in instance.estimate.line_items:
            table.add_row(item.name, _format_currency(item.daily_cost))
        console.print(table)
        console.print(f"Instance Daily Total: {_format_currency(instance.total)}")

    _print_skipped(report.skipped)
    console.print(f"\nTOTAL DAILY COST (all instances): {_format_currency(report.total)}")
    if report.threshold_exceeded:
        console.print(
            f"[yellow]WARNING: Daily cost exceeds threshold of "
            f"{_format_currency(config.thresholds.daily_cost)}[/]"
        )
    sys.exit(EXIT_CODE_PASS)


@app.command()
def network(
    ctx: typer.Context,
    names: Optional[List[str]] = typer.Argument(None, help="Instances to sample (default: configured)"),
):
    """Network traffic and egress cost per instance."""
    config = _load(ctx)
    usage = run_network_usage(config, get_inventory(config), get_remote(config), names)

    table = Table(title="Network Usage")
    table.add_column("Instance")
    table.add_column("RX")
    table.add_column("TX")
    table.add_column("Egress GB", justify="right")
    table.add_column("Egress Cost", justify="right")
    table.add_column("Daily Average")
    for traffic in usage.instances:
        average = "-"
        if traffic.daily_average is not None:
            daily_gb, daily_cost = traffic.daily_average
            average = f"{daily_gb} GB ({_format_currency(daily_cost)}/day)"
        table.add_row(
            traffic.name,
            format_bytes(traffic.counters.rx_bytes),
            format_bytes(traffic.counters.tx_bytes),
            str(traffic.egress_gb),
            _format_currency(traffic.egress_cost),
            average,
        )
    console.print(table)
    _print_skipped(usage.skipped)

    console.print(f"\nTotal RX (all instances): {format_bytes(usage.total_rx_bytes)}")
    console.print(f"Total TX (all instances): {format_bytes(usage.total_tx_bytes)}")
    console.print(f"Total egress: {usage.total_egress_gb} GB")
    console.print(f"Total egress cost: {_format_currency(usage.total_egress_cost)}")
    if usage.exceeds(config.thresholds.network_gb):
        console.print(
            f"[yellow]ALERT: Network egress ({usage.total_egress_gb} GB) exceeds threshold "
            f"({config.thresholds.network_gb} GB)[/]"
        )
    sys.exit(EXIT_CODE_PASS)


@app.command()
def monitor(ctx: typer.Context):
    """
    Check costs against thresholds and send rate-limited alerts.

    Exits with code 1 only when the daily cost threshold is exceeded.
    """
    config = _load(ctx)
    history = RunHistory(config.state_dir)
    ledger = AlertLedger(FileLedgerStore(history.alert_state_path), config.alerts.cooldown_seconds)

    run = run_alert_monitor(
        config,
        get_inventory(config),
        get_remote(config) if config.monitor.network else None,
        ledger,
        history,
        get_notifier(config),
    )

    console.print(f"\nDaily cost: {_format_currency(run.analysis.estimate.total)}")
    for payload in run.outcome.fired:
        console.print(f"[red]Alert sent:[/] {payload.title} - {payload.message}")
    for payload in run.outcome.suppressed:
        console.print(f"[dim]Alert suppressed (cooldown): {payload.title}[/]")
    for failure in run.outcome.delivery_failures:
        console.print(f"[yellow]Delivery failed:[/] {failure}")
    _print_skipped(run.analysis.skipped)

    if run.outcome.threshold_exceeded:
        console.print("[bold red]Daily cost threshold exceeded[/]")
    sys.exit(run.exit_code)


@app.command()
def report(ctx: typer.Context):
    """Send the daily cost report to Slack."""
    config = _load(ctx)
    result = run_daily_report(
        config,
        get_inventory(config),
        get_remote(config) if config.monitor.network else None,
        RunHistory(config.state_dir),
        get_notifier(config),
    )
    if result is None:
        console.print("Daily reports are disabled in the configuration")
        sys.exit(EXIT_CODE_PASS)

    daily = result.report
    console.print(f"\n[bold]Daily Cost Report - {daily.day.isoformat()}[/bold]")
    for line in daily.breakdown_lines():
        console.print(f"• {line}")
    console.print(f"Total: {_format_currency(daily.total)}")
    console.print(f"Monthly projection: {_format_currency(daily.monthly_projection)}")
    for issue in daily.issues:
        console.print(f"• {issue}")

    if not result.delivered:
        console.print(f"[red]Error sending report:[/] {result.error}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] Report sent and archived to {result.archive_path}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def notify(
    ctx: typer.Context,
    message: str = typer.Argument(..., help="Message text"),
    color: str = typer.Option("#36a64f", "--color", help="Attachment color"),
    title: str = typer.Option("GCP Cost Monitor", "--title", help="Message title"),
):
    """Send a plain message to the configured Slack webhook."""
    config = _load(ctx)
    notifier = get_notifier(config)
    if notifier is None:
        console.print("[red]Error:[/] Slack webhook URL not configured")
        sys.exit(EXIT_CODE_FAIL)
    try:
        notifier.send_message(message, color, title)
    except DeliveryFailure as e:
        console.print(f"[red]Error sending message to Slack:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    console.print("[green]✓[/] Message sent successfully to Slack")
    sys.exit(EXIT_CODE_PASS)


if __name__ == "__main__":
    app()
