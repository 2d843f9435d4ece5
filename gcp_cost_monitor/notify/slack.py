"""
Slack webhook notifier.

Posts JSON payloads to an incoming webhook. Slack acknowledges with the
literal body ``ok``; anything else is a delivery failure.
"""

import logging
import time
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

import requests

from gcp_cost_monitor.config.loader import PLACEHOLDER_WEBHOOK, SlackConfig
from gcp_cost_monitor.core.errors import DeliveryFailure, InvalidConfiguration

logger = logging.getLogger(__name__)

COLOR_OK = "#36a64f"
COLOR_WARNING = "#ff9500"
COLOR_ALERT = "#ff0000"

STATUS_STYLE = {
    "ok": (COLOR_OK, "✅"),
    "warning": (COLOR_WARNING, "⚠️"),
    "alert": (COLOR_ALERT, "🚨"),
}

FOOTER = "GCP Cost Monitor"
FOOTER_ICON = "https://www.gstatic.com/images/branding/product/1x/google_cloud_48dp.png"


def billing_url(project_id: str) -> str:
    return f"https://console.cloud.google.com/billing/projects/{project_id}"


class SlackNotifier:
    """Sends messages, alerts and cost reports to a Slack webhook."""

    def __init__(
        self,
        webhook_url: str,
        project_id: str,
        daily_cost_threshold: Optional[Decimal] = None,
        channel: str = "#gcp-costs",
        username: str = "GCP Cost Monitor",
        icon: str = ":money_with_wings:",
        mentions: str = "",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        if not webhook_url or webhook_url == PLACEHOLDER_WEBHOOK:
            raise InvalidConfiguration("Slack webhook URL is not configured")
        self.webhook_url = webhook_url
        self.project_id = project_id
        self.daily_cost_threshold = daily_cost_threshold
        self.channel = channel
        self.username = username
        self.icon = icon
        self.mentions = mentions
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(
        cls,
        slack: SlackConfig,
        project_id: str,
        daily_cost_threshold: Optional[Decimal] = None,
    ) -> "SlackNotifier":
        return cls(
            webhook_url=slack.webhook_url,
            project_id=project_id,
            daily_cost_threshold=daily_cost_threshold,
            channel=slack.channel,
            username=slack.username,
            icon=slack.icon,
            mentions=slack.mentions,
            timeout=slack.timeout_seconds,
        )

    def send_payload(self, payload: Dict[str, Any]) -> None:
        """POST a payload to the webhook.

        Raises:
            DeliveryFailure: On timeout, connection error or a non-``ok`` body
        """
        try:
            response = self.session.post(self.webhook_url, json=payload, timeout=self.timeout)
        except requests.Timeout:
            raise DeliveryFailure(f"Slack webhook timed out after {self.timeout}s")
        except requests.RequestException as e:
            raise DeliveryFailure(f"Slack webhook request failed: {e}")

        body = response.text.strip()
        if body != "ok":
            raise DeliveryFailure(
                f"Slack webhook rejected message (HTTP {response.status_code}): {body or '<empty>'}"
            )
        logger.debug("Message delivered to Slack")

    def base_payload(self, icon: Optional[str] = None) -> Dict[str, Any]:
        return {
            "username": self.username,
            "icon_emoji": icon or self.icon,
            "channel": self.channel,
        }

    def build_message(
        self,
        text: str,
        color: str = COLOR_OK,
        title: str = "GCP Cost Monitor",
        icon: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = self.base_payload(icon)
        payload["attachments"] = [{
            "color": color,
            "title": title,
            "text": text,
            "footer": FOOTER,
            "footer_icon": FOOTER_ICON,
            "ts": int(time.time()),
        }]
        return payload

    def send_message(self, text: str, color: str = COLOR_OK, title: str = "GCP Cost Monitor") -> None:
        self.send_payload(self.build_message(text, color, title))

    def build_alert(self, payload) -> Dict[str, Any]:
        """Alert message for an ``AlertPayload``."""
        fired_at = datetime.fromtimestamp(payload.timestamp).astimezone()
        lines = []
        if self.mentions:
            lines += [self.mentions, ""]
        lines += [
            f"🚨 *GCP COST ALERT* - {self.project_id}",
            "━━━━━━━━━━━━━━━━━━━━━━━━━━━━━",
            "",
            f"*Alert Type:* {payload.title}",
            f"*Message:* {payload.message}",
            f"*Current Value:* {payload.current_value}",
            f"*Threshold:* {payload.threshold_value}",
            "",
            f"*Time:* {fired_at.strftime('%Y-%m-%d %H:%M:%S %Z')}",
        ]
        return self.build_message(
            "\n".join(lines),
            COLOR_ALERT,
            "⚠️ Cost Alert - Immediate Action Required",
            ":rotating_light:",
        )

    def send_alert(self, payload) -> None:
        self.send_payload(self.build_alert(payload))

    def build_cost_report(
        self,
        daily_cost: Decimal,
        breakdown: Iterable[str],
        status: str = "ok",
        today: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Rich cost report with a status-coloured attachment."""
        color, emoji = STATUS_STYLE.get(status, STATUS_STYLE["ok"])
        today = today or datetime.now()
        breakdown_text = "\n".join(f"• {line}" for line in breakdown)
        threshold = (
            f"${self.daily_cost_threshold:.2f}" if self.daily_cost_threshold is not None else "n/a"
        )

        payload = self.base_payload()
        payload["blocks"] = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"💰 GCP Daily Cost Report - {self.project_id}",
                    "emoji": True,
                },
            },
            {"type": "divider"},
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Date:*\n{today.strftime('%Y-%m-%d')}"},
                    {"type": "mrkdwn", "text": f"*Total Cost:*\n${daily_cost:.2f}"},
                ],
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*📊 Breakdown:*\n{breakdown_text}"},
            },
            {"type": "divider"},
            {
                "type": "context",
                "elements": [{
                    "type": "mrkdwn",
                    "text": f"View detailed billing: <{billing_url(self.project_id)}|GCP Console>",
                }],
            },
        ]
        payload["attachments"] = [{
            "color": color,
            "fields": [
                {"title": "Status", "value": f"{emoji} {status.capitalize()}", "short": True},
                {"title": "Threshold", "value": threshold, "short": True},
            ],
        }]
        return payload

    def send_cost_report(self, daily_cost: Decimal, breakdown: Iterable[str], status: str = "ok") -> None:
        self.send_payload(self.build_cost_report(daily_cost, breakdown, status))

    def build_daily_report(self, report) -> Dict[str, Any]:
        """Daily summary for a ``DailyReport``."""
        url = billing_url(report.project_id)
        blocks = [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": "💰 GCP Daily Cost Report", "emoji": True},
            },
            {
                "type": "context",
                "elements": [{
                    "type": "mrkdwn",
                    "text": f"*Project:* {report.project_id} | *Date:* {report.day.isoformat()}",
                }],
            },
            {"type": "divider"},
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": report.summary},
                "accessory": {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "View Details", "emoji": True},
                    "url": url,
                    "action_id": "view_details",
                },
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*💻 Compute:*\n${report.compute:.2f}"},
                    {"type": "mrkdwn", "text": f"*💾 Storage:*\n${report.storage:.2f}"},
                    {"type": "mrkdwn", "text": f"*🌐 Static IPs:*\n${report.static_ip:.2f}"},
                    {"type": "mrkdwn", "text": f"*📡 Network:*\n~${report.network:.2f}"},
                ],
            },
            {"type": "divider"},
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*🌐 Network Egress:*\n{report.egress}"},
                    {"type": "mrkdwn", "text": f"*📅 Monthly Projection:*\n${report.monthly_projection:.2f}"},
                ],
            },
        ]
        if report.issues:
            issues = "\n".join(f"• {issue}" for issue in report.issues)
            blocks += [
                {"type": "divider"},
                {
                    "type": "section",
                    "text": {
                        "type": "mrkdwn",
                        "text": f"*⚠️ Issues Found ({len(report.issues)}):*\n{issues}",
                    },
                },
            ]

        payload = self.base_payload()
        payload["blocks"] = blocks
        payload["attachments"] = [{
            "color": COLOR_OK if report.status == "ok" else COLOR_WARNING,
            "footer": f"{FOOTER} | <{url}|View in Console>",
            "footer_icon": FOOTER_ICON,
            "ts": int(time.time()),
        }]
        return payload

    def send_daily_report(self, report) -> None:
        self.send_payload(self.build_daily_report(report))
