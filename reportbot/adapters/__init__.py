"""Report API adapters (XenForo)."""

from reportbot.adapters.base import FetchOutcome, FetchResult, ReportApiError, ReportSource
from reportbot.adapters.xenforo import XenForoReportClient

__all__ = ["FetchOutcome", "FetchResult", "ReportApiError", "ReportSource", "XenForoReportClient"]
