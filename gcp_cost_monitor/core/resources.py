"""
Cloud resource records used for pricing.

Records are produced by the inventory client and are read-only to the
estimator.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class ResourceKind(Enum):
    """Kinds of billable resources."""
    COMPUTE_INSTANCE = "compute_instance"
    STATIC_IP = "static_ip"
    DISK = "disk"


class DiskType(Enum):
    """Persistent disk pricing classes."""
    STANDARD = "standard"
    SSD = "ssd"

    @classmethod
    def from_provider(cls, type_name: Optional[str]) -> "DiskType":
        """Map a provider disk type name (e.g. ``pd-ssd``) to a pricing class."""
        if type_name and "ssd" in type_name.lower():
            return cls.SSD
        return cls.STANDARD


# Provider status values
STATUS_RUNNING = "RUNNING"
STATUS_TERMINATED = "TERMINATED"
STATUS_IN_USE = "IN_USE"
STATUS_RESERVED = "RESERVED"


@dataclass(frozen=True)
class ResourceRecord:
    """One observed cloud resource.

    Only ``kind``, ``status``, ``size_gb``, ``machine_type`` and ``disk_type``
    affect pricing. The remaining fields are carried for reporting.
    """
    kind: ResourceKind
    status: str
    size_gb: Optional[Decimal] = None
    machine_type: Optional[str] = None
    disk_type: Optional[DiskType] = None
    name: Optional[str] = None
    zone: Optional[str] = None
    address: Optional[str] = None
    last_started_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self.status == STATUS_RUNNING

    @property
    def is_unused_address(self) -> bool:
        """Reserved static address not attached to anything."""
        return self.kind == ResourceKind.STATIC_IP and self.status == STATUS_RESERVED

    @property
    def label(self) -> str:
        return self.name or self.kind.value
