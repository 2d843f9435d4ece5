"""
Unit tests for configuration loading and validation.

Tests strict validation and error handling for monitor configs.
"""

import os
import shutil
import tempfile
from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from gcp_cost_monitor.config.loader import (
    CONFIG_ENV_VAR,
    PLACEHOLDER_WEBHOOK,
    SAMPLE_CONFIG,
    default_config_path,
    load_monitor_config,
)
from gcp_cost_monitor.core.errors import InvalidConfiguration


class TestConfigLoading:
    """Test configuration loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    @pytest.fixture(autouse=True)
    def _base_config(self, config_data):
        self.config_data = config_data

    def teardown_method(self):
        """Clean up test environment."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def test_valid_config_loads_correctly(self):
        """Test that a valid configuration loads correctly."""
        config = load_monitor_config(self._write_config(self.config_data))

        assert config.project.id == "test-project"
        assert config.project.zone == "us-central1-a"
        assert config.project.instances == ("web-1",)

        assert config.rates.machine_monthly("e2-micro") == Decimal("6.0")
        assert config.rates.static_ip_monthly == Decimal("7.3")
        assert config.thresholds.daily_cost == Decimal("10.0")
        assert config.thresholds.network_gb == Decimal("50")

        assert config.alerts.cooldown_seconds == 14400
        assert config.alerts.send_ok_status is False
        assert config.monitor.network is True
        assert config.slack is None

    def test_state_dir_relative_to_config_file(self):
        """Test that state_dir resolves next to the config file."""
        config = load_monitor_config(self._write_config(self.config_data))
        assert config.state_dir == Path(self.temp_dir) / "logs"

    def test_optional_sections_default(self):
        """Test that alerts, monitor and slack sections are optional."""
        for name in ("alerts", "monitor", "state_dir"):
            del self.config_data[name]
        config = load_monitor_config(self._write_config(self.config_data))

        assert config.alerts.cooldown_seconds == 14400
        assert config.monitor.compute is True
        assert config.monitor.daily_reports is True

    def test_instances_as_space_separated_string(self):
        self.config_data["project"]["instances"] = "web-1 web-2"
        config = load_monitor_config(self._write_config(self.config_data))
        assert config.project.instances == ("web-1", "web-2")

    def test_slack_section(self):
        self.config_data["slack"] = {
            "webhook_url": "https://hooks.slack.com/services/T000/B000/XXXX",
            "mentions": "<!channel>",
        }
        config = load_monitor_config(self._write_config(self.config_data))

        assert config.slack.webhook_url.endswith("/XXXX")
        assert config.slack.channel == "#gcp-costs"
        assert config.slack.mentions == "<!channel>"
        assert config.slack.timeout_seconds == 10.0

    def test_missing_file_raises_error(self):
        """Test that missing config file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Monitor config file not found"):
            load_monitor_config(os.path.join(self.temp_dir, "missing.yaml"))

    def test_invalid_yaml_raises_error(self):
        """Test that invalid YAML raises YAMLError."""
        config_path = os.path.join(self.temp_dir, "config.yaml")
        with open(config_path, 'w') as f:
            f.write("project: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_monitor_config(config_path)

    def test_empty_config_raises_error(self):
        config_path = os.path.join(self.temp_dir, "config.yaml")
        open(config_path, 'w').close()

        with pytest.raises(InvalidConfiguration, match="Configuration file is empty"):
            load_monitor_config(config_path)

    def test_unknown_top_level_key_rejected(self):
        self.config_data["budget"] = {"daily": 1}
        with pytest.raises(InvalidConfiguration, match="Unknown keys in configuration"):
            load_monitor_config(self._write_config(self.config_data))

    def test_unknown_rate_key_rejected(self):
        self.config_data["rates"]["gpu_hourly"] = 1.0
        with pytest.raises(InvalidConfiguration, match="Unknown keys in rates"):
            load_monitor_config(self._write_config(self.config_data))

    def test_missing_rates_section(self):
        del self.config_data["rates"]
        with pytest.raises(InvalidConfiguration, match="Missing required 'rates' section"):
            load_monitor_config(self._write_config(self.config_data))

    def test_missing_rate_value(self):
        del self.config_data["rates"]["static_ip_monthly"]
        with pytest.raises(InvalidConfiguration, match="static_ip_monthly"):
            load_monitor_config(self._write_config(self.config_data))

    def test_missing_threshold(self):
        del self.config_data["thresholds"]["daily_cost"]
        with pytest.raises(InvalidConfiguration, match="daily_cost"):
            load_monitor_config(self._write_config(self.config_data))

    def test_negative_rate_rejected(self):
        self.config_data["rates"]["network_egress_per_gb"] = -0.12
        with pytest.raises(InvalidConfiguration, match=">= 0"):
            load_monitor_config(self._write_config(self.config_data))

    def test_non_numeric_rate_rejected(self):
        self.config_data["rates"]["machine_types"]["e2-micro"] = "cheap"
        with pytest.raises(InvalidConfiguration, match="must be a number"):
            load_monitor_config(self._write_config(self.config_data))

    def test_negative_cooldown_rejected(self):
        self.config_data["alerts"]["cooldown_seconds"] = -5
        with pytest.raises(InvalidConfiguration, match="cooldown_seconds"):
            load_monitor_config(self._write_config(self.config_data))

    def test_non_boolean_flag_rejected(self):
        self.config_data["monitor"]["network"] = "yes please"
        with pytest.raises(InvalidConfiguration, match="monitor.network"):
            load_monitor_config(self._write_config(self.config_data))

    def test_missing_project_id(self):
        del self.config_data["project"]["id"]
        with pytest.raises(InvalidConfiguration, match="'id'"):
            load_monitor_config(self._write_config(self.config_data))

    def test_placeholder_webhook_rejected(self):
        self.config_data["slack"] = {"webhook_url": PLACEHOLDER_WEBHOOK}
        with pytest.raises(InvalidConfiguration, match="placeholder"):
            load_monitor_config(self._write_config(self.config_data))

    def test_http_webhook_rejected(self):
        self.config_data["slack"] = {"webhook_url": "http://hooks.slack.com/services/x"}
        with pytest.raises(InvalidConfiguration, match="https"):
            load_monitor_config(self._write_config(self.config_data))

    def test_sample_config_is_valid(self):
        """Test that the generated sample config loads."""
        config_path = os.path.join(self.temp_dir, "config.yaml")
        with open(config_path, 'w') as f:
            f.write(SAMPLE_CONFIG)

        config = load_monitor_config(config_path)
        assert config.project.id == "your-project-id"
        assert config.rates.machine_monthly("e2-micro") == Decimal("6.11")


class TestDefaultConfigPath:
    """Test config path resolution from the environment."""

    def test_default(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert default_config_path() == "config.yaml"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, "/etc/gcp-cost-monitor.yaml")
        assert default_config_path() == "/etc/gcp-cost-monitor.yaml"
