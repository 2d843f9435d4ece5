"""
Shared fixtures for the test suite.
"""

import copy

import pytest

from gcp_cost_monitor.config.loader import parse_monitor_config

BASE_CONFIG = {
    "project": {"id": "test-project", "zone": "us-central1-a", "instances": ["web-1"]},
    "rates": {
        "machine_types": {"e2-micro": 6.00, "e2-small": 12.00},
        "standard_disk_gb_monthly": 0.04,
        "ssd_disk_gb_monthly": 0.17,
        "static_ip_monthly": 7.30,
        "network_free_tier_gb": 1,
        "network_egress_per_gb": 0.12,
    },
    "thresholds": {"daily_cost": 10.0, "cost_increase_percent": 20, "network_gb": 50},
    "alerts": {"cooldown_seconds": 14400, "send_ok_status": False},
    "monitor": {
        "compute": True,
        "static_ip": True,
        "storage": True,
        "network": True,
        "daily_reports": True,
    },
    "state_dir": "logs",
}


@pytest.fixture
def config_data():
    """A fresh copy of a valid raw configuration."""
    return copy.deepcopy(BASE_CONFIG)


@pytest.fixture
def make_config(tmp_path):
    """Factory building a MonitorConfig with per-section overrides."""
    def _make(**sections):
        data = copy.deepcopy(BASE_CONFIG)
        for name, values in sections.items():
            if isinstance(values, dict) and isinstance(data.get(name), dict):
                data[name].update(values)
            else:
                data[name] = values
        return parse_monitor_config(data, base_dir=tmp_path)
    return _make
