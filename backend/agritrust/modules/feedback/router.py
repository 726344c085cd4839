"""Feedback questionnaire endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from agritrust.core.dependencies import get_feedback_service
from agritrust.modules.feedback.schemas import (
    Feedback,
    FeedbackCreate,
    FeedbackQuestion,
    FeedbackRole,
)
from agritrust.modules.feedback.service import (
    FeedbackService,
    InvalidFeedbackError,
    questions_for,
)

router = APIRouter()


@router.get("/questions/{role}", response_model=list[FeedbackQuestion])
async def get_questions(role: FeedbackRole) -> list[FeedbackQuestion]:
    return questions_for(role)


@router.post("", response_model=Feedback, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    body: FeedbackCreate,
    service: Annotated[FeedbackService, Depends(get_feedback_service)],
) -> Feedback:
    try:
        return await service.submit(body)
    except InvalidFeedbackError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
