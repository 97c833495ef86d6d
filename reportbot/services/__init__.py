"""Services: report synchronization."""

from reportbot.services.report_service import ReportService, SyncResult, has_new_comment

__all__ = ["ReportService", "SyncResult", "has_new_comment"]
