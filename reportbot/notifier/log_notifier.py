"""
Log-only notifier: writes report alerts to the log instead of a chat channel.

Use for dry runs or until Discord credentials are available.
"""

import logging

from reportbot.models import Report
from reportbot.notifier.base import ReportNotifier


class LogNotifier(ReportNotifier):
    """Logs each report at INFO and always reports success."""

    def send_report(self, report: Report) -> bool:
        log = logging.getLogger("reportbot.notifier.log")
        latest = report.latest_report_comment
        log.info(
            "Report alert (dry run): #%s %s by %s - %s",
            report.report_id,
            report.content_info.thread_title or "(no thread)",
            latest.username if latest else "?",
            report.report_url,
        )
        return True
