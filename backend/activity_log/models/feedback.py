"""Supervisor feedback models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Feedback(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    subject: str = ""
    content_html: str = ""
    content_text: str = ""
    author_email: str = ""
    author_name: str = ""
    activity_id: str | None = None
    target_email: str | None = None
    created_at: str | None = None


class FeedbackInput(BaseModel):
    subject: Any = None
    content_html: Any = Field(None, validation_alias=AliasChoices("contentHtml", "content_html"))
    content_text: Any = Field(None, validation_alias=AliasChoices("contentText", "content_text"))
    activity_id: Any = Field(None, validation_alias=AliasChoices("activityId", "activity_id"))
    target_email: Any = Field(None, validation_alias=AliasChoices("targetEmail", "target_email"))


class FeedbackResponse(BaseModel):
    feedback: Feedback | None


class FeedbackListResponse(BaseModel):
    feedbacks: list[Feedback]


class TargetFeedbacksResponse(BaseModel):
    activities: list[str]
    feedbacks: list[Feedback]
