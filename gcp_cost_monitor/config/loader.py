"""
Configuration management and loading.

Handles the YAML monitor configuration. Everything is read once at start-up
and is immutable afterwards.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional, Set, Tuple

import yaml

from gcp_cost_monitor.core.errors import InvalidArgument, InvalidConfiguration
from gcp_cost_monitor.core.ledger import DEFAULT_COOLDOWN_SECONDS
from gcp_cost_monitor.core.pricing import RateTable, to_decimal

CONFIG_ENV_VAR = "GCP_COST_MONITOR_CONFIG"
DEFAULT_CONFIG_PATH = "config.yaml"
PLACEHOLDER_WEBHOOK = "https://hooks.slack.com/services/YOUR/WEBHOOK/URL"


@dataclass(frozen=True)
class ProjectConfig:
    """Project and instances to monitor."""
    id: str
    zone: str
    instances: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ThresholdConfig:
    """Alert thresholds."""
    daily_cost: Decimal
    cost_increase_percent: Decimal
    network_gb: Optional[Decimal] = None

    def __post_init__(self):
        """Validate thresholds are non-negative."""
        if self.daily_cost < 0:
            raise InvalidConfiguration("thresholds.daily_cost must be >= 0")
        if self.cost_increase_percent < 0:
            raise InvalidConfiguration("thresholds.cost_increase_percent must be >= 0")
        if self.network_gb is not None and self.network_gb < 0:
            raise InvalidConfiguration("thresholds.network_gb must be >= 0")


@dataclass(frozen=True)
class AlertConfig:
    """Alert rate limiting."""
    cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS
    send_ok_status: bool = False


@dataclass(frozen=True)
class MonitorFlags:
    """Which resource categories are monitored."""
    compute: bool = True
    static_ip: bool = True
    storage: bool = True
    network: bool = True
    daily_reports: bool = True


@dataclass(frozen=True)
class SlackConfig:
    """Webhook notification target."""
    webhook_url: str
    channel: str = "#gcp-costs"
    username: str = "GCP Cost Monitor"
    icon: str = ":money_with_wings:"
    mentions: str = ""
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class MonitorConfig:
    """Complete monitor configuration."""
    project: ProjectConfig
    rates: RateTable
    thresholds: ThresholdConfig
    alerts: AlertConfig = field(default_factory=AlertConfig)
    monitor: MonitorFlags = field(default_factory=MonitorFlags)
    slack: Optional[SlackConfig] = None
    state_dir: Path = Path("logs")


def default_config_path() -> str:
    """Config path from the environment, or ``config.yaml``."""
    return os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)


def load_monitor_config(path: str) -> MonitorConfig:
    """Load and validate monitor configuration from a YAML file.

    Validation is strict: unknown keys and missing rates or thresholds are
    rejected before any billing calculation runs.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated MonitorConfig

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        InvalidConfiguration: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Monitor config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise InvalidConfiguration("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise InvalidConfiguration("Configuration must be a mapping")

    return parse_monitor_config(raw_config, base_dir=config_path.parent)


def parse_monitor_config(raw_config: Dict[str, Any], base_dir: Optional[Path] = None) -> MonitorConfig:
    """Validate an already-parsed configuration mapping."""
    _check_keys(
        raw_config,
        {'project', 'rates', 'thresholds', 'alerts', 'monitor', 'slack', 'state_dir'},
        "configuration",
    )

    project = _parse_project(_section(raw_config, 'project', required=True))
    rates = _parse_rates(_section(raw_config, 'rates', required=True))
    thresholds = _parse_thresholds(_section(raw_config, 'thresholds', required=True))
    alerts = _parse_alerts(_section(raw_config, 'alerts'))
    monitor = _parse_flags(_section(raw_config, 'monitor'))

    slack_data = _section(raw_config, 'slack')
    slack = _parse_slack(slack_data) if slack_data else None

    state_dir = Path(str(raw_config.get('state_dir') or "logs"))
    if base_dir is not None and not state_dir.is_absolute():
        state_dir = base_dir / state_dir

    return MonitorConfig(
        project=project,
        rates=rates,
        thresholds=thresholds,
        alerts=alerts,
        monitor=monitor,
        slack=slack,
        state_dir=state_dir,
    )


def _section(raw: Dict, name: str, required: bool = False) -> Dict:
    if name not in raw or raw[name] is None:
        if required:
            raise InvalidConfiguration(f"Missing required '{name}' section")
        return {}
    data = raw[name]
    if not isinstance(data, dict):
        raise InvalidConfiguration(f"'{name}' must be a dictionary")
    return data


def _check_keys(data: Dict, allowed: Set[str], path: str) -> None:
    unknown_keys = set(data.keys()) - allowed
    if unknown_keys:
        raise InvalidConfiguration(f"Unknown keys in {path}: {sorted(unknown_keys)}")


def _require(data: Dict, key: str, path: str) -> Any:
    if key not in data or data[key] is None:
        raise InvalidConfiguration(f"Missing required '{key}' in {path}")
    return data[key]


def _decimal(value: Any, path: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise InvalidConfiguration(f"'{path}' must be a number")
    try:
        result = to_decimal(value)
    except InvalidArgument:
        raise InvalidConfiguration(f"'{path}' must be a number")
    if not result.is_finite():
        raise InvalidConfiguration(f"'{path}' must be a finite number")
    if result < 0:
        raise InvalidConfiguration(f"'{path}' must be >= 0")
    return result


def _bool(value: Any, path: str) -> bool:
    if not isinstance(value, bool):
        raise InvalidConfiguration(f"'{path}' must be true or false")
    return value


def _parse_project(data: Dict) -> ProjectConfig:
    _check_keys(data, {'id', 'zone', 'instances'}, "project")
    project_id = _require(data, 'id', "project")
    zone = _require(data, 'zone', "project")
    if not isinstance(project_id, str) or not project_id.strip():
        raise InvalidConfiguration("'project.id' must be a non-empty string")
    if not isinstance(zone, str) or not zone.strip():
        raise InvalidConfiguration("'project.zone' must be a non-empty string")

    instances = data.get('instances') or []
    if isinstance(instances, str):
        instances = instances.split()
    if not isinstance(instances, list) or not all(isinstance(i, str) for i in instances):
        raise InvalidConfiguration("'project.instances' must be a list of names")

    return ProjectConfig(id=project_id.strip(), zone=zone.strip(), instances=tuple(instances))


def _parse_rates(data: Dict) -> RateTable:
    required = (
        'standard_disk_gb_monthly',
        'ssd_disk_gb_monthly',
        'static_ip_monthly',
        'network_free_tier_gb',
        'network_egress_per_gb',
    )
    _check_keys(data, {'machine_types', *required}, "rates")

    machine_data = _require(data, 'machine_types', "rates")
    if not isinstance(machine_data, dict):
        raise InvalidConfiguration("'rates.machine_types' must be a dictionary")
    machine_types = {
        str(name): _decimal(monthly, f"rates.machine_types.{name}")
        for name, monthly in machine_data.items()
    }

    values = {key: _decimal(_require(data, key, "rates"), f"rates.{key}") for key in required}
    return RateTable(machine_types=machine_types, **values)


def _parse_thresholds(data: Dict) -> ThresholdConfig:
    _check_keys(data, {'daily_cost', 'cost_increase_percent', 'network_gb'}, "thresholds")
    network_gb = data.get('network_gb')
    return ThresholdConfig(
        daily_cost=_decimal(_require(data, 'daily_cost', "thresholds"), "thresholds.daily_cost"),
        cost_increase_percent=_decimal(
            _require(data, 'cost_increase_percent', "thresholds"),
            "thresholds.cost_increase_percent",
        ),
        network_gb=None if network_gb is None else _decimal(network_gb, "thresholds.network_gb"),
    )


def _parse_alerts(data: Dict) -> AlertConfig:
    _check_keys(data, {'cooldown_seconds', 'send_ok_status'}, "alerts")
    cooldown = data.get('cooldown_seconds', DEFAULT_COOLDOWN_SECONDS)
    if isinstance(cooldown, bool) or not isinstance(cooldown, int) or cooldown < 0:
        raise InvalidConfiguration("'alerts.cooldown_seconds' must be a non-negative integer")
    return AlertConfig(
        cooldown_seconds=cooldown,
        send_ok_status=_bool(data.get('send_ok_status', False), "alerts.send_ok_status"),
    )


def _parse_flags(data: Dict) -> MonitorFlags:
    names = ('compute', 'static_ip', 'storage', 'network', 'daily_reports')
    _check_keys(data, set(names), "monitor")
    return MonitorFlags(**{name: _bool(data.get(name, True), f"monitor.{name}") for name in names})


def _parse_slack(data: Dict) -> SlackConfig:
    _check_keys(
        data,
        {'webhook_url', 'channel', 'username', 'icon', 'mentions', 'timeout_seconds'},
        "slack",
    )
    webhook_url = _require(data, 'webhook_url', "slack")
    if not isinstance(webhook_url, str) or not webhook_url.startswith("https://"):
        raise InvalidConfiguration("'slack.webhook_url' must be an https URL")
    if webhook_url == PLACEHOLDER_WEBHOOK:
        raise InvalidConfiguration("'slack.webhook_url' is still the placeholder URL")

    timeout = data.get('timeout_seconds', 10)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise InvalidConfiguration("'slack.timeout_seconds' must be > 0")

    defaults = SlackConfig(webhook_url=webhook_url)
    return SlackConfig(
        webhook_url=webhook_url,
        channel=str(data.get('channel') or defaults.channel),
        username=str(data.get('username') or defaults.username),
        icon=str(data.get('icon') or defaults.icon),
        mentions=str(data.get('mentions') or ""),
        timeout_seconds=float(timeout),
    )


SAMPLE_CONFIG = """\
project:
  id: your-project-id
  zone: us-central1-a
  instances:
    - instance-1

rates:
  machine_types:
    e2-micro: 6.11
    e2-small: 12.23
    e2-medium: 24.46
  standard_disk_gb_monthly: 0.04
  ssd_disk_gb_monthly: 0.17
  static_ip_monthly: 7.30
  network_free_tier_gb: 1
  network_egress_per_gb: 0.12

thresholds:
  daily_cost: 10.00
  cost_increase_percent: 20
  network_gb: 50

alerts:
  cooldown_seconds: 14400
  send_ok_status: false

monitor:
  compute: true
  static_ip: true
  storage: true
  network: true
  daily_reports: true

# slack:
#   webhook_url: https://hooks.slack.com/services/...
#   channel: "#gcp-costs"
#   mentions: "<!channel>"

state_dir: logs
"""
