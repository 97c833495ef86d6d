"""Report notifications (Discord, log-only)."""

from reportbot.notifier.base import NotifierError, ReportNotifier
from reportbot.notifier.discord import DiscordNotifier, build_report_embed
from reportbot.notifier.log_notifier import LogNotifier

__all__ = ["DiscordNotifier", "LogNotifier", "NotifierError", "ReportNotifier", "build_report_embed"]
