"""
Inventory and remote execution clients.
"""

from .gcloud import GcloudInventory, InstanceDetails
from .remote import InterfaceCounters, RemoteExecutor

__all__ = ["GcloudInventory", "InstanceDetails", "InterfaceCounters", "RemoteExecutor"]
