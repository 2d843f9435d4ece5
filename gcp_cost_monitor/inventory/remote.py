"""
Remote collection of interface byte counters.

A fixed script is piped to ``bash -s`` over ``gcloud compute ssh``. It prints
``EXPORT_<KEY>=value`` lines that are parsed here; anything unparseable is
reported as absent rather than failing the run.
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import Dict, Optional

from gcp_cost_monitor.core.errors import Unreachable

from .gcloud import GCLOUD, Runner, subprocess_runner

logger = logging.getLogger(__name__)

DEFAULT_SSH_TIMEOUT_SECONDS = 120
SAMPLE_SECONDS = 5

COUNTER_SCRIPT = """\
#!/bin/bash
PRIMARY_IF=$(ip route | grep default | awk '{print $5}' | head -1)
echo "EXPORT_INTERFACE=$PRIMARY_IF"
if [ -z "$PRIMARY_IF" ]; then
    exit 0
fi

STATS=$(ip -s -j link show "$PRIMARY_IF" 2>/dev/null)
if [ -n "$STATS" ] && command -v jq >/dev/null 2>&1; then
    RX_BYTES=$(echo "$STATS" | jq -r '.[0].stats64.rx.bytes // 0')
    TX_BYTES=$(echo "$STATS" | jq -r '.[0].stats64.tx.bytes // 0')
else
    RX_BYTES=$(ip -s link show "$PRIMARY_IF" | grep -A1 "RX:" | tail -1 | awk '{print $1}')
    TX_BYTES=$(ip -s link show "$PRIMARY_IF" | grep -A1 "TX:" | tail -1 | awk '{print $1}')
fi
echo "EXPORT_RX_BYTES=$RX_BYTES"
echo "EXPORT_TX_BYTES=$TX_BYTES"

if [ -f /proc/net/dev ]; then
    RX1=$(grep "$PRIMARY_IF" /proc/net/dev | awk '{print $2}')
    TX1=$(grep "$PRIMARY_IF" /proc/net/dev | awk '{print $10}')
    sleep %(sample)d
    RX2=$(grep "$PRIMARY_IF" /proc/net/dev | awk '{print $2}')
    TX2=$(grep "$PRIMARY_IF" /proc/net/dev | awk '{print $10}')
    echo "EXPORT_RX_RATE=$(( (RX2 - RX1) / %(sample)d ))"
    echo "EXPORT_TX_RATE=$(( (TX2 - TX1) / %(sample)d ))"
fi
""" % {"sample": SAMPLE_SECONDS}


@dataclass(frozen=True)
class InterfaceCounters:
    """Byte counters read from an instance's primary interface."""
    interface: Optional[str] = None
    rx_bytes: Optional[int] = None
    tx_bytes: Optional[int] = None
    rx_rate: Optional[int] = None  # bytes/s over the sample window
    tx_rate: Optional[int] = None

    @property
    def complete(self) -> bool:
        return self.rx_bytes is not None and self.tx_bytes is not None


def parse_exports(output: str) -> Dict[str, str]:
    """Collect ``EXPORT_KEY=value`` lines; later lines win."""
    values: Dict[str, str] = {}
    for line in output.splitlines():
        line = line.strip()
        if not line.startswith("EXPORT_") or "=" not in line:
            continue
        key, _, value = line[len("EXPORT_"):].partition("=")
        values[key.strip()] = value.strip()
    return values


def _int_or_none(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        parsed = int(value)
    except ValueError:
        return None
    return parsed if parsed >= 0 else None


def parse_counters(output: str) -> InterfaceCounters:
    """Parse the counter script output."""
    values = parse_exports(output)
    return InterfaceCounters(
        interface=values.get("INTERFACE") or None,
        rx_bytes=_int_or_none(values.get("RX_BYTES")),
        tx_bytes=_int_or_none(values.get("TX_BYTES")),
        rx_rate=_int_or_none(values.get("RX_RATE")),
        tx_rate=_int_or_none(values.get("TX_RATE")),
    )


class RemoteExecutor:
    """Runs the counter script on an instance over ``gcloud compute ssh``."""

    def __init__(
        self,
        project: str,
        zone: str,
        runner: Optional[Runner] = None,
        timeout: float = DEFAULT_SSH_TIMEOUT_SECONDS,
    ):
        self.project = project
        self.zone = zone
        self.runner = runner or subprocess_runner
        self.timeout = timeout

    def collect_counters(self, instance: str, zone: Optional[str] = None) -> InterfaceCounters:
        """Collect byte counters from ``instance``.

        Raises:
            Unreachable: If the ssh hop fails or produces no output
        """
        command = [
            GCLOUD, "compute", "ssh", instance,
            f"--zone={zone or self.zone}",
            f"--project={self.project}",
            "--command=bash -s",
        ]
        try:
            output = self.runner(command, COUNTER_SCRIPT, self.timeout)
        except subprocess.CalledProcessError as e:
            raise Unreachable(f"ssh to {instance} failed: {(e.stderr or '').strip() or e}")
        except subprocess.TimeoutExpired:
            raise Unreachable(f"ssh to {instance} timed out after {self.timeout}s")
        except FileNotFoundError:
            raise Unreachable("gcloud CLI not found on PATH")

        if not output.strip():
            raise Unreachable(f"No output from {instance}")

        counters = parse_counters(output)
        if not counters.complete:
            logger.warning(f"Incomplete counters from {instance}: {counters}")
        return counters
