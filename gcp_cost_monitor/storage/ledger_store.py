"""
Persistent stores for the alert cooldown ledger.

The file store keeps one ``category:epoch_seconds`` line per category and
serialises writers with a file lock next to the state file.
"""

import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from filelock import FileLock

from gcp_cost_monitor.core.errors import CorruptState
from gcp_cost_monitor.core.ledger import parse_ledger, serialize_ledger

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SECONDS = 30


class InMemoryLedgerStore:
    """Ledger store backed by a dict, for tests and dry runs."""

    def __init__(self, entries: Optional[Dict[str, int]] = None):
        self._entries: Dict[str, int] = dict(entries or {})
        self._lock = threading.RLock()

    def load(self) -> Dict[str, int]:
        return dict(self._entries)

    def get(self, category: str) -> Optional[int]:
        return self._entries.get(category)

    def put(self, category: str, timestamp: Union[int, float]) -> None:
        with self._lock:
            self._entries[category] = int(timestamp)

    @contextmanager
    def lock(self) -> Iterator[None]:
        with self._lock:
            yield


class FileLedgerStore:
    """Ledger store persisted as a flat ``category:epoch_seconds`` file.

    An unreadable or corrupt file is treated as empty so a damaged state file
    never suppresses alerting. Writes go through a temporary file and an
    atomic rename; the last writer wins.
    """

    def __init__(self, path: Union[str, Path], lock_timeout: float = LOCK_TIMEOUT_SECONDS):
        self.path = Path(path)
        self._file_lock = FileLock(str(self.path) + ".lock", timeout=lock_timeout)

    def load(self) -> Dict[str, int]:
        if not self.path.exists():
            return {}
        try:
            text = self.path.read_text(encoding="utf-8")
            return parse_ledger(text)
        except (OSError, UnicodeDecodeError, CorruptState) as e:
            logger.warning(f"Alert state file {self.path} unreadable, treating as empty: {e}")
            return {}

    def get(self, category: str) -> Optional[int]:
        return self.load().get(category)

    def put(self, category: str, timestamp: Union[int, float]) -> None:
        # FileLock is reentrant within a process, so this nests inside lock()
        with self._file_lock:
            entries = self.load()
            entries[category] = int(timestamp)
            self._write(entries)

    @contextmanager
    def lock(self) -> Iterator[None]:
        with self._file_lock:
            yield

    def _write(self, entries: Dict[str, int]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(serialize_ledger(entries))
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
