"""Report as received from the API and as stored locally."""

from typing import Dict, List

from pydantic import BaseModel, Field, model_validator

from reportbot.models.comment import ReportComment
from reportbot.models.content_info import ContentInfo


class WireReport(BaseModel):
    """Report record as returned by GET api/reports/.

    report_comment is in chronological order (oldest first).
    """

    model_config = {"extra": "ignore"}

    report_id: int
    report_count: int = 0
    last_modified_date: int = 0
    first_report_date: int = 0
    content_info: ContentInfo = Field(default_factory=ContentInfo)
    report_comment: List[ReportComment] = Field(default_factory=list)

    @model_validator(mode="after")
    def _comments_belong_to_report(self) -> "WireReport":
        for comment in self.report_comment:
            if comment.report_id != self.report_id:
                raise ValueError(
                    f"comment {comment.report_comment_id} belongs to report {comment.report_id}, not {self.report_id}"
                )
        return self


class Report(WireReport):
    """Stored report: wire fields plus forum URL and latest comment."""

    report_url: str
    latest_report_comment: ReportComment | None = None

    @property
    def latest_comment_id(self) -> int | None:
        """Freshness marker: id of the latest comment, None if there are none."""
        if self.latest_report_comment is None:
            return None
        return self.latest_report_comment.report_comment_id


# Full store snapshot keyed by str(report_id)
Reports = Dict[str, Report]


def map_report(report: WireReport, report_url: str) -> Report:
    """Build the stored Report from a wire record.

    report_url is the forum prefix the report id is appended to.
    """
    comments = list(report.report_comment)
    return Report(
        **report.model_dump(exclude={"report_comment"}),
        report_comment=comments,
        report_url=f"{report_url}{report.report_id}",
        latest_report_comment=comments[-1] if comments else None,
    )
