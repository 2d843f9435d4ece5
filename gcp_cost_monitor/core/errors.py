"""
Error taxonomy for cost monitoring.

Partial failures (NotFound, Unreachable, DeliveryFailure, CorruptState) are
caught at the orchestration layer and reported; InvalidConfiguration and
InvalidArgument are fatal for the operation that raised them.
"""


class CostMonitorError(Exception):
    """Base class for all cost monitor errors."""


class NotFound(CostMonitorError, LookupError):
    """Named resource is absent from the inventory."""
    def __init__(self, kind: str, name: str, detail: str = ""):
        message = f"{kind} '{name}' not found"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.kind = kind
        self.name = name


class Unreachable(CostMonitorError, RuntimeError):
    """Remote execution or API call failed."""


class DeliveryFailure(CostMonitorError, RuntimeError):
    """Webhook did not acknowledge a notification."""


class CorruptState(CostMonitorError, RuntimeError):
    """Persisted state could not be parsed."""


class InvalidConfiguration(CostMonitorError, ValueError):
    """Missing or invalid configuration value."""


class InvalidArgument(CostMonitorError, ValueError):
    """Invalid input passed to a pricing function."""
