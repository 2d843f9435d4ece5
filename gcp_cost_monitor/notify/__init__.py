"""
Notification sinks for GCP Cost Monitor.
"""

from .slack import SlackNotifier

__all__ = ["SlackNotifier"]
