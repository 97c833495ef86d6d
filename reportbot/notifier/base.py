"""Abstract base for report notifiers."""

from abc import ABC, abstractmethod

from reportbot.models import Report


class NotifierError(Exception):
    """Raised when a notifier cannot be set up (bad token, unknown channel)."""

    pass


class ReportNotifier(ABC):
    """Sends an alert for a new or updated report to an operator channel."""

    @abstractmethod
    def send_report(self, report: Report) -> bool:
        """Send one report alert. Returns True if it was delivered."""
        ...
