"""
Flat-file run history.

Holds the previous totals used for percentage-change comparisons and the
archived daily reports.
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterable, Optional, Union

logger = logging.getLogger(__name__)

LAST_COST_FILE = "last-cost.txt"
LAST_DAILY_TOTAL_FILE = "last-daily-total.txt"
ALERT_STATE_FILE = ".alert-state"
EVENT_LOG_FILE = "cost-alerts.log"
REPORTS_DIR = "reports"


class RunHistory:
    """Previous totals and report archives under a state directory."""

    def __init__(self, state_dir: Union[str, Path]):
        self.state_dir = Path(state_dir)

    @property
    def alert_state_path(self) -> Path:
        return self.state_dir / ALERT_STATE_FILE

    @property
    def event_log_path(self) -> Path:
        return self.state_dir / EVENT_LOG_FILE

    @property
    def reports_dir(self) -> Path:
        return self.state_dir / REPORTS_DIR

    def ensure_dirs(self) -> None:
        self.reports_dir.mkdir(parents=True, exist_ok=True)

    def last_cost(self) -> Optional[Decimal]:
        """Total recorded by the previous alert monitor run."""
        return self._read_value(self.state_dir / LAST_COST_FILE)

    def save_last_cost(self, total: Decimal) -> None:
        self._write_value(self.state_dir / LAST_COST_FILE, total)

    def last_daily_total(self) -> Optional[Decimal]:
        """Total from the last successfully delivered daily report."""
        return self._read_value(self.state_dir / LAST_DAILY_TOTAL_FILE)

    def save_last_daily_total(self, total: Decimal) -> None:
        self._write_value(self.state_dir / LAST_DAILY_TOTAL_FILE, total)

    def archive_report(self, lines: Iterable[str], day: Optional[date] = None) -> Path:
        """Write a daily report archive, replacing one from the same day."""
        day = day or date.today()
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        path = self.reports_dir / f"{day.isoformat()}-report.txt"
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    def save_analysis(self, lines: Iterable[str], day: Optional[date] = None) -> Path:
        """Write the cost analysis log for a day."""
        day = day or date.today()
        self.state_dir.mkdir(parents=True, exist_ok=True)
        path = self.state_dir / f"cost-analysis-{day.isoformat()}.log"
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    def _read_value(self, path: Path) -> Optional[Decimal]:
        if not path.exists():
            return None
        try:
            value = Decimal(path.read_text(encoding="utf-8").strip())
        except (OSError, InvalidOperation) as e:
            logger.warning(f"Ignoring unreadable history file {path}: {e}")
            return None
        if not value.is_finite():
            logger.warning(f"Ignoring non-numeric value {value} in history file {path}")
            return None
        return value

    def _write_value(self, path: Path, value: Decimal) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"{value}\n", encoding="utf-8")
