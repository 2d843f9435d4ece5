"""
Unit tests for the alert cooldown ledger.
"""

import pytest

from gcp_cost_monitor.core.errors import CorruptState
from gcp_cost_monitor.core.ledger import (
    DEFAULT_COOLDOWN_SECONDS,
    AlertCategory,
    AlertLedger,
    parse_ledger,
    record_fired,
    serialize_ledger,
    should_fire,
)
from gcp_cost_monitor.storage.ledger_store import InMemoryLedgerStore


class TestShouldFire:
    """Test the cooldown decision."""

    def test_never_fired(self):
        assert should_fire(AlertCategory.COST_THRESHOLD, 1000, {}) is True

    def test_within_cooldown(self):
        """Fired at 1000, checked at 15399 (14399 s later): suppressed."""
        ledger = {"cost_threshold": 1000}
        assert should_fire(AlertCategory.COST_THRESHOLD, 15399, ledger) is False

    def test_after_cooldown(self):
        """Fired at 1000, checked at 15401 (14401 s later): fires."""
        ledger = {"cost_threshold": 1000}
        assert should_fire(AlertCategory.COST_THRESHOLD, 15401, ledger) is True

    def test_exact_cooldown_does_not_fire(self):
        ledger = {"cost_threshold": 1000}
        assert should_fire(AlertCategory.COST_THRESHOLD, 1000 + DEFAULT_COOLDOWN_SECONDS, ledger) is False

    def test_categories_are_independent(self):
        ledger = {"cost_threshold": 1000}
        assert should_fire(AlertCategory.NETWORK_THRESHOLD, 1001, ledger) is True

    def test_string_category(self):
        assert should_fire("unused_resources", 10, {"unused_resources": 5}) is False

    def test_custom_cooldown(self):
        ledger = {"cost_increase": 100}
        assert should_fire("cost_increase", 161, ledger, cooldown_seconds=60) is True
        assert should_fire("cost_increase", 160, ledger, cooldown_seconds=60) is False

    def test_record_then_suppressed(self):
        ledger = {}
        record_fired(AlertCategory.COST_INCREASE, 500, ledger)
        assert ledger == {"cost_increase": 500}
        assert should_fire(AlertCategory.COST_INCREASE, 501, ledger) is False

    def test_record_replaces_earlier_entry(self):
        ledger = {"cost_increase": 500}
        record_fired("cost_increase", 900, ledger)
        assert ledger["cost_increase"] == 900


class TestLedgerFormat:
    """Test parsing and serialising ledger files."""

    def test_parse(self):
        text = "cost_threshold:1700000000\nunused_resources:1700000500\n"
        assert parse_ledger(text) == {
            "cost_threshold": 1700000000,
            "unused_resources": 1700000500,
        }

    def test_parse_ignores_blank_lines(self):
        assert parse_ledger("\n\ncost_increase:5\n\n") == {"cost_increase": 5}

    def test_duplicate_lines_last_wins(self):
        text = "cost_threshold:100\ncost_threshold:200\n"
        assert parse_ledger(text) == {"cost_threshold": 200}

    def test_parse_empty(self):
        assert parse_ledger("") == {}

    def test_malformed_line(self):
        with pytest.raises(CorruptState):
            parse_ledger("this is not a ledger\n")

    def test_invalid_timestamp(self):
        with pytest.raises(CorruptState, match="line 2"):
            parse_ledger("cost_threshold:100\ncost_increase:yesterday\n")

    def test_serialize_sorted(self):
        text = serialize_ledger({"unused_resources": 2, "cost_increase": 1})
        assert text == "cost_increase:1\nunused_resources:2\n"

    def test_serialize_then_parse(self):
        entries = {"cost_threshold": 1700000000, "daily_ok_status": 1700003600}
        assert parse_ledger(serialize_ledger(entries)) == entries


class TestAlertLedger:
    """Test the store-backed ledger."""

    def test_fire_and_suppress(self):
        ledger = AlertLedger(InMemoryLedgerStore())
        assert ledger.should_fire(AlertCategory.COST_THRESHOLD, 1000)
        with ledger.lock():
            ledger.record_fired(AlertCategory.COST_THRESHOLD, 1000)
        assert not ledger.should_fire(AlertCategory.COST_THRESHOLD, 2000)
        assert ledger.last_fired_at(AlertCategory.COST_THRESHOLD) == 1000

    def test_existing_entries(self):
        ledger = AlertLedger(InMemoryLedgerStore({"cost_increase": 100}), cooldown_seconds=10)
        assert not ledger.should_fire("cost_increase", 110)
        assert ledger.should_fire("cost_increase", 111)

    def test_negative_cooldown_rejected(self):
        with pytest.raises(ValueError):
            AlertLedger(InMemoryLedgerStore(), cooldown_seconds=-1)
