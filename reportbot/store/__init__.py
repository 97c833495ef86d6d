"""Local storage of known reports (single JSON document)."""

from reportbot.store.report_store import ReportRepository

__all__ = ["ReportRepository"]
