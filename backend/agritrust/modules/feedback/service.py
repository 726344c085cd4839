"""Consumer issue reports and role-specific feedback questionnaires."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from agritrust.core.logging import get_logger
from agritrust.modules.feedback.schemas import (
    ConsumerIssue,
    ConsumerIssueCreate,
    Feedback,
    FeedbackCreate,
    FeedbackQuestion,
    FeedbackRole,
)
from agritrust.modules.lookup.service import LookupIndex
from agritrust.storage.ports import Stores

logger = get_logger(__name__)

RATING_MIN = 1
RATING_MAX = 5


def _rating(question_id: str, question: str, low: str, middle: str, high: str) -> FeedbackQuestion:
    return FeedbackQuestion(
        id=question_id,
        type="rating",
        question=question,
        options=[f"1 ({low})", "2", f"3 ({middle})", "4", f"5 ({high})"],
    )


FEEDBACK_QUESTIONS: dict[FeedbackRole, list[FeedbackQuestion]] = {
    FeedbackRole.FARMER: [
        _rating(
            "easeOfUse",
            "How easy was it to submit your farm and batch data?",
            "Very Difficult",
            "Neutral",
            "Very Easy",
        ),
        FeedbackQuestion(
            id="featureRequest",
            type="text",
            question="What new features would you like to see in Agri-Trust?",
        ),
        _rating(
            "overallExperience",
            "Overall, how would you rate your experience with Agri-Trust?",
            "Poor",
            "Average",
            "Excellent",
        ),
        FeedbackQuestion(
            id="improvements",
            type="text",
            question="Do you have any suggestions for improvement?",
        ),
    ],
    FeedbackRole.CONSUMER: [
        _rating(
            "traceability",
            "How satisfied are you with the traceability information provided?",
            "Very Dissatisfied",
            "Neutral",
            "Very Satisfied",
        ),
        _rating(
            "clarity",
            "Was the claims information clear and easy to understand?",
            "Not Clear",
            "Neutral",
            "Very Clear",
        ),
        _rating(
            "trustImpact",
            "Has Agri-Trust increased your trust in agricultural products?",
            "Not at all",
            "Somewhat",
            "Significantly",
        ),
        _rating(
            "recommendation",
            "How likely are you to recommend Agri-Trust to others?",
            "Not Likely",
            "Neutral",
            "Very Likely",
        ),
        FeedbackQuestion(
            id="openFeedback",
            type="text",
            question="Please share any additional feedback or suggestions.",
        ),
    ],
}


class UnknownConsumerCodeError(LookupError):
    """Raised when an issue is reported against a code that is not indexed."""

    def __init__(self, code: str) -> None:
        super().__init__(f"Consumer code {code} is not registered")
        self.code = code


class InvalidFeedbackError(ValueError):
    """Raised when answers do not fit the role's questionnaire."""


def questions_for(role: FeedbackRole) -> list[FeedbackQuestion]:
    return list(FEEDBACK_QUESTIONS[role])


def validate_answers(role: FeedbackRole, answers: dict[str, str | int]) -> None:
    """Check answers against the role's questions.

    Unknown question ids are rejected, ratings must be integers from 1 to 5
    and text answers must be strings. Unanswered questions are allowed.
    """
    questions = {question.id: question for question in FEEDBACK_QUESTIONS[role]}
    if not answers:
        raise InvalidFeedbackError("At least one answer is required")
    for question_id, value in answers.items():
        question = questions.get(question_id)
        if question is None:
            raise InvalidFeedbackError(f"Unknown question '{question_id}' for role {role.value}")
        if question.type == "rating":
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidFeedbackError(f"Answer to '{question_id}' must be a rating")
            if not RATING_MIN <= value <= RATING_MAX:
                raise InvalidFeedbackError(
                    f"Rating for '{question_id}' must be between {RATING_MIN} and {RATING_MAX}"
                )
        elif not isinstance(value, str):
            raise InvalidFeedbackError(f"Answer to '{question_id}' must be text")


class FeedbackService:
    def __init__(self, stores: Stores, *, index: LookupIndex) -> None:
        self._stores = stores
        self._index = index

    async def report_issue(self, code: str, request: ConsumerIssueCreate) -> ConsumerIssue:
        if await self._index.get(code) is None:
            raise UnknownConsumerCodeError(code)
        issue = ConsumerIssue(
            id=str(uuid.uuid4()),
            consumer_code=code,
            message=request.message.strip(),
            contact_optional=request.contact_optional,
            created_at=datetime.now(UTC).isoformat(),
        )
        await self._stores.consumer_issues.add(issue)
        logger.info("consumer_issue_reported", consumer_code=code, issue_id=issue.id)
        return issue

    async def list_issues(self, code: str) -> list[ConsumerIssue]:
        return await self._stores.consumer_issues.list_by_code(code)

    async def submit(self, request: FeedbackCreate) -> Feedback:
        validate_answers(request.role, request.answers)
        feedback = Feedback(
            id=str(uuid.uuid4()),
            role=request.role,
            answers=request.answers,
            created_at=datetime.now(UTC).isoformat(),
        )
        await self._stores.feedback.add(feedback)
        logger.info("feedback_submitted", role=request.role.value, answers=len(request.answers))
        return feedback
