"""
Alert cooldown ledger.

Tracks when each alert category last fired and decides whether a new
notification may be sent. A category that has never fired may always fire;
otherwise strictly more than the cooldown must have elapsed.
"""

from contextlib import contextmanager
from enum import Enum
from typing import Dict, Iterator, Mapping, MutableMapping, Union

from .errors import CorruptState

DEFAULT_COOLDOWN_SECONDS = 14400  # 4 hours

Timestamp = Union[int, float]


class AlertCategory(Enum):
    """Alert categories tracked by the ledger."""
    COST_INCREASE = "cost_increase"
    NETWORK_THRESHOLD = "network_threshold"
    COST_THRESHOLD = "cost_threshold"
    UNUSED_RESOURCES = "unused_resources"
    DAILY_OK_STATUS = "daily_ok_status"


def _key(category: Union[AlertCategory, str]) -> str:
    return category.value if isinstance(category, AlertCategory) else category


def should_fire(
    category: Union[AlertCategory, str],
    now: Timestamp,
    ledger: Mapping[str, Timestamp],
    cooldown_seconds: Timestamp = DEFAULT_COOLDOWN_SECONDS,
) -> bool:
    """Whether an alert of ``category`` may be sent at ``now``.

    Exactly ``cooldown_seconds`` elapsed is not enough; the cooldown must be
    exceeded.
    """
    last_fired_at = ledger.get(_key(category))
    if last_fired_at is None:
        return True
    return now - last_fired_at > cooldown_seconds


def record_fired(
    category: Union[AlertCategory, str],
    now: Timestamp,
    ledger: MutableMapping[str, Timestamp],
) -> None:
    """Record that ``category`` fired at ``now``, replacing any earlier entry."""
    ledger[_key(category)] = now


def parse_ledger(text: str) -> Dict[str, int]:
    """Parse ``category:epoch_seconds`` lines.

    Blank lines are ignored. When a category appears more than once the last
    line wins.

    Raises:
        CorruptState: If a line cannot be parsed
    """
    entries: Dict[str, int] = {}
    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue
        category, sep, value = line.partition(":")
        category = category.strip()
        if not sep or not category:
            raise CorruptState(f"Malformed ledger line {line_number}: {raw_line!r}")
        try:
            entries[category] = int(value.strip())
        except ValueError:
            raise CorruptState(f"Invalid timestamp on ledger line {line_number}: {raw_line!r}")
    return entries


def serialize_ledger(entries: Mapping[str, Timestamp]) -> str:
    """Render a ledger mapping as ``category:epoch_seconds`` lines."""
    return "".join(f"{category}:{int(ts)}\n" for category, ts in sorted(entries.items()))


class AlertLedger:
    """Cooldown ledger bound to a persistent store.

    The store supplies ``load``, ``put`` and a scoped exclusive ``lock``.
    Callers wrap each read-decide-write sequence in ``lock()`` so concurrent
    runs cannot both decide to fire.
    """

    def __init__(self, store, cooldown_seconds: Timestamp = DEFAULT_COOLDOWN_SECONDS):
        if cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must be >= 0")
        self.store = store
        self.cooldown_seconds = cooldown_seconds

    @contextmanager
    def lock(self) -> Iterator[None]:
        with self.store.lock():
            yield

    def should_fire(self, category: Union[AlertCategory, str], now: Timestamp) -> bool:
        return should_fire(category, now, self.store.load(), self.cooldown_seconds)

    def record_fired(self, category: Union[AlertCategory, str], now: Timestamp) -> None:
        self.store.put(_key(category), now)

    def last_fired_at(self, category: Union[AlertCategory, str]):
        return self.store.get(_key(category))
