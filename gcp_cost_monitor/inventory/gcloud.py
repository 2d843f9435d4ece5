"""
Inventory client backed by the gcloud CLI.

Every call requests ``--format=json`` and maps the provider objects straight
into resource records.
"""

import json
import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from gcp_cost_monitor.core.errors import NotFound, Unreachable
from gcp_cost_monitor.core.resources import DiskType, ResourceKind, ResourceRecord

logger = logging.getLogger(__name__)

GCLOUD = "gcloud"
DEFAULT_TIMEOUT_SECONDS = 60

# runner(args, stdin, timeout) -> stdout
Runner = Callable[[Sequence[str], Optional[str], float], str]


def subprocess_runner(args: Sequence[str], stdin: Optional[str], timeout: float) -> str:
    """Run a command and return its stdout, raising on a non-zero exit."""
    result = subprocess.run(
        list(args),
        input=stdin,
        capture_output=True,
        text=True,
        timeout=timeout,
        check=True,
    )
    return result.stdout


@dataclass(frozen=True)
class InstanceDetails:
    """A described compute instance and its attachments."""
    record: ResourceRecord
    disk_names: Tuple[str, ...] = ()
    internal_ip: Optional[str] = None
    external_ip: Optional[str] = None


def last_segment(url: Optional[str]) -> Optional[str]:
    """Last path segment of a provider resource URL."""
    if not url:
        return None
    return url.rstrip("/").rsplit("/", 1)[-1]


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp, returning None when absent or malformed."""
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.debug(f"Unparseable timestamp: {value}")
        return None


def _size(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def instance_from_json(data: Dict[str, Any]) -> InstanceDetails:
    """Map an instance resource to InstanceDetails."""
    interfaces = data.get("networkInterfaces") or [{}]
    primary = interfaces[0] if interfaces else {}
    access_configs = primary.get("accessConfigs") or [{}]

    record = ResourceRecord(
        kind=ResourceKind.COMPUTE_INSTANCE,
        status=data.get("status", "UNKNOWN"),
        machine_type=last_segment(data.get("machineType")),
        name=data.get("name"),
        zone=last_segment(data.get("zone")),
        last_started_at=parse_timestamp(data.get("lastStartTimestamp")),
        created_at=parse_timestamp(data.get("creationTimestamp")),
    )
    disk_names = tuple(
        name for name in (last_segment(d.get("source")) for d in data.get("disks") or []) if name
    )
    return InstanceDetails(
        record=record,
        disk_names=disk_names,
        internal_ip=primary.get("networkIP"),
        external_ip=access_configs[0].get("natIP") if access_configs else None,
    )


def address_from_json(data: Dict[str, Any]) -> ResourceRecord:
    """Map an address resource to a static IP record."""
    return ResourceRecord(
        kind=ResourceKind.STATIC_IP,
        status=data.get("status", "UNKNOWN"),
        name=data.get("name"),
        zone=last_segment(data.get("region")),
        address=data.get("address"),
    )


def disk_from_json(data: Dict[str, Any]) -> ResourceRecord:
    """Map a disk resource to a disk record."""
    return ResourceRecord(
        kind=ResourceKind.DISK,
        status=data.get("status", "READY"),
        size_gb=_size(data.get("sizeGb")),
        disk_type=DiskType.from_provider(last_segment(data.get("type"))),
        name=data.get("name"),
        zone=last_segment(data.get("zone")),
    )


class GcloudInventory:
    """Read-only view of a project's instances, addresses and disks."""

    def __init__(
        self,
        project: str,
        zone: str,
        runner: Optional[Runner] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.project = project
        self.zone = zone
        self.runner = runner or subprocess_runner
        self.timeout = timeout

    def describe_instance(self, name: str, zone: Optional[str] = None) -> InstanceDetails:
        """Describe one instance.

        Raises:
            NotFound: If the instance does not exist or cannot be described
        """
        try:
            data = self._call_json(
                ["compute", "instances", "describe", name, f"--zone={zone or self.zone}"]
            )
        except Unreachable as e:
            raise NotFound("Instance", name, f"zone {zone or self.zone}: {e}")
        if not isinstance(data, dict):
            raise NotFound("Instance", name, "empty response")
        return instance_from_json(data)

    def describe_disk(self, name: str, zone: Optional[str] = None) -> ResourceRecord:
        try:
            data = self._call_json(
                ["compute", "disks", "describe", name, f"--zone={zone or self.zone}"]
            )
        except Unreachable as e:
            raise NotFound("Disk", name, str(e))
        if not isinstance(data, dict):
            raise NotFound("Disk", name, "empty response")
        return disk_from_json(data)

    def list_instances(self, status: Optional[str] = None) -> List[ResourceRecord]:
        args = ["compute", "instances", "list"]
        if status:
            args.append(f"--filter=status={status}")
        return [instance_from_json(item).record for item in self._call_list(args)]

    def list_static_ips(self, status: Optional[str] = None) -> List[ResourceRecord]:
        args = ["compute", "addresses", "list"]
        if status:
            args.append(f"--filter=status={status}")
        return [address_from_json(item) for item in self._call_list(args)]

    def list_disks(self) -> List[ResourceRecord]:
        return [disk_from_json(item) for item in self._call_list(["compute", "disks", "list"])]

    def _call_list(self, args: List[str]) -> List[Dict[str, Any]]:
        data = self._call_json(args)
        if data is None:
            return []
        if not isinstance(data, list):
            raise Unreachable(f"Expected a list from gcloud {' '.join(args)}")
        return data

    def _call_json(self, args: List[str]) -> Any:
        command = [GCLOUD, *args, f"--project={self.project}", "--format=json"]
        try:
            output = self.runner(command, None, self.timeout)
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise Unreachable(f"gcloud {' '.join(args[:3])} failed: {stderr or e}")
        except subprocess.TimeoutExpired:
            raise Unreachable(f"gcloud {' '.join(args[:3])} timed out after {self.timeout}s")
        except FileNotFoundError:
            raise Unreachable("gcloud CLI not found on PATH")

        if not output.strip():
            return None
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise Unreachable(f"Invalid JSON from gcloud {' '.join(args[:3])}: {e}")
