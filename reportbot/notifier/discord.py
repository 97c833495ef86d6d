"""Discord notifier over the REST API (bot token, one text channel)."""

import logging
from datetime import UTC, datetime
from typing import Any, Dict

import requests

from reportbot.models import Report
from reportbot.notifier.base import NotifierError, ReportNotifier

LOG = logging.getLogger("reportbot.notifier.discord")

# Guild text, announcement, and thread channel types
TEXT_CHANNEL_TYPES = {0, 5, 10, 11, 12}
DESCRIPTION_LIMIT = 4096
FIELD_VALUE_LIMIT = 1024


def _truncate(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    return value[: limit - 1] + "…"


def _field(name: str, value: str) -> Dict[str, Any]:
    # Discord rejects empty field values
    return {"name": name, "value": _truncate(value or "-", FIELD_VALUE_LIMIT), "inline": False}


def build_report_embed(report: Report) -> Dict[str, Any]:
    """Render a report as a Discord embed object."""
    latest = report.latest_report_comment
    report_date = datetime.fromtimestamp(report.first_report_date, tz=UTC).strftime("%Y-%m-%d")
    embed: Dict[str, Any] = {
        "title": f"{report.content_info.username} - [{report.report_id}]",
        "url": report.report_url,
        "fields": [
            _field("Report date", report_date),
            _field("Reported by", latest.username if latest else ""),
            _field("Thread title", report.content_info.thread_title or "No thread title"),
            _field("Report count", str(report.report_count)),
        ],
        "timestamp": datetime.now(UTC).isoformat(),
    }
    if latest and latest.message:
        embed["description"] = _truncate(latest.message, DESCRIPTION_LIMIT)
    return embed


class DiscordNotifier(ReportNotifier):
    """Posts report embeds to a Discord channel as a bot."""

    def __init__(
        self,
        token: str,
        channel_id: str,
        api_url: str = "https://discord.com/api/v10",
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._channel_id = channel_id
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers["Authorization"] = f"Bot {token}"
        self._session.headers["User-Agent"] = "DiscordBot (reportbot, 0.1.0)"

    @property
    def channel_id(self) -> str:
        return self._channel_id

    def validate_channel(self) -> str:
        """Check the channel exists and accepts messages. Returns its name.

        Raises NotifierError otherwise; call once at startup.
        """
        url = f"{self._api_url}/channels/{self._channel_id}"
        try:
            resp = self._session.request("GET", url, timeout=self._timeout)
        except requests.RequestException as e:
            raise NotifierError(f"Failed to fetch Discord channel {self._channel_id}: {e}") from e
        if resp.status_code == 404:
            raise NotifierError(f"Discord channel not found: {self._channel_id}. Please verify the channel ID.")
        if resp.status_code >= 400:
            raise NotifierError(
                f"Failed to fetch Discord channel {self._channel_id}: {resp.status_code} {resp.text or resp.reason}"
            )
        try:
            data = resp.json() or {}
        except ValueError as e:
            raise NotifierError(f"Discord channel {self._channel_id} lookup returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise NotifierError(f"Discord channel {self._channel_id} lookup returned an unexpected body")
        if data.get("type") not in TEXT_CHANNEL_TYPES:
            raise NotifierError(f"Discord channel {self._channel_id} is not a text channel")
        name = data.get("name") or self._channel_id
        LOG.info("Validated Discord channel: %s", name)
        return name

    def send_report(self, report: Report) -> bool:
        url = f"{self._api_url}/channels/{self._channel_id}/messages"
        try:
            embed = build_report_embed(report)
        except (ValueError, OverflowError, OSError) as e:
            LOG.error("Failed to build embed for report %s: %s", report.report_id, e)
            return False
        try:
            resp = self._session.request("POST", url, json={"embeds": [embed]}, timeout=self._timeout)
        except requests.RequestException as e:
            LOG.error("Failed to send Discord message for report %s: %s", report.report_id, e)
            return False
        if resp.status_code >= 400:
            LOG.error(
                "Failed to send Discord message for report %s: %s %s",
                report.report_id,
                resp.status_code,
                resp.text or resp.reason,
            )
            return False
        LOG.debug("Sent report %s to Discord channel %s", report.report_id, self._channel_id)
        return True
