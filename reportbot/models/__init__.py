"""Data models for reports and report comments (Pydantic)."""

from reportbot.models.comment import ReportComment
from reportbot.models.content_info import ContentInfo
from reportbot.models.report import Report, Reports, WireReport, map_report

__all__ = ["ContentInfo", "Report", "ReportComment", "Reports", "WireReport", "map_report"]
