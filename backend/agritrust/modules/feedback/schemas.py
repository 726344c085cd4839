"""Pydantic schemas for consumer issues and feedback questionnaires."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MAX_MESSAGE_LENGTH = 500


class FeedbackRole(str, Enum):
    FARMER = "farmer"
    CONSUMER = "consumer"


class ConsumerIssue(BaseModel):
    """A problem reported by a consumer about a product code."""

    id: str
    consumer_code: str = Field(alias="consumerCode")
    message: str
    contact_optional: str | None = Field(default=None, alias="contactOptional")
    created_at: str = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)


class ConsumerIssueCreate(BaseModel):
    message: str = Field(min_length=2, max_length=MAX_MESSAGE_LENGTH)
    contact_optional: str | None = Field(default=None, alias="contactOptional", max_length=255)

    model_config = ConfigDict(populate_by_name=True)


class FeedbackQuestion(BaseModel):
    id: str
    type: Literal["text", "rating"]
    question: str
    options: list[str] | None = None


class Feedback(BaseModel):
    """Submitted questionnaire answers."""

    id: str
    role: FeedbackRole
    answers: dict[str, str | int]
    created_at: str = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)


class FeedbackCreate(BaseModel):
    role: FeedbackRole
    answers: dict[str, str | int]
