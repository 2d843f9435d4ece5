"""
GCP Cost Monitor.

Estimates daily project costs, prices network egress and sends rate-limited
alerts to a Slack webhook.
"""

__version__ = "0.1.0"
