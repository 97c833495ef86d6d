"""Moderation comment attached to a report."""

from pydantic import BaseModel, field_validator


class ReportComment(BaseModel):
    """One moderation remark on a report.

    report_comment_id is unique within its report only.
    """

    model_config = {"extra": "ignore"}

    report_id: int
    report_comment_id: int
    comment_date: int = 0
    message: str = ""
    username: str = ""
    state: str = ""

    @field_validator("message", "username", "state", mode="before")
    @classmethod
    def _null_as_empty(cls, value: object) -> object:
        return "" if value is None else value
