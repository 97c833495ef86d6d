"""Reported content (post, thread, author) as returned by the report API."""

from pydantic import BaseModel, Field, field_validator


class ContentInfo(BaseModel):
    """Reported content. Non-post content omits most of these fields."""

    model_config = {"extra": "ignore"}

    message: str = Field(default="", description="Reported message body")
    node_id: int | None = None
    node_name: str = ""
    post_id: int | None = None
    thread_id: int | None = None
    thread_title: str = ""
    user_id: int | None = None
    username: str = Field(default="", description="Author of the reported content")
    post_date: int | None = None

    @field_validator("message", "node_name", "thread_title", "username", mode="before")
    @classmethod
    def _null_as_empty(cls, value: object) -> object:
        return "" if value is None else value
