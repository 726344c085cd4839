"""Public (unauthenticated) endpoints for consumers holding a product code."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from agritrust.core.dependencies import get_feedback_service, get_provenance_service
from agritrust.modules.claims.schemas import ProvenanceReport, TrustState
from agritrust.modules.claims.service import ProvenanceService
from agritrust.modules.feedback.schemas import ConsumerIssue, ConsumerIssueCreate
from agritrust.modules.feedback.service import FeedbackService, UnknownConsumerCodeError

router = APIRouter()


@router.get("/claims/{code}", response_model=ProvenanceReport)
async def lookup_claims(
    code: str,
    service: Annotated[ProvenanceService, Depends(get_provenance_service)],
) -> ProvenanceReport:
    """Return the batch, its claims and the result of every trust check.

    A failed check is reported in ``trustState``; only an unknown code is a 404.
    """
    report = await service.lookup(code.strip())
    if report.trust_state is TrustState.UNKNOWN_CODE:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=report.errors[0])
    return report


@router.post(
    "/claims/{code}/issues",
    response_model=ConsumerIssue,
    status_code=status.HTTP_201_CREATED,
)
async def report_issue(
    code: str,
    body: ConsumerIssueCreate,
    service: Annotated[FeedbackService, Depends(get_feedback_service)],
) -> ConsumerIssue:
    try:
        return await service.report_issue(code.strip(), body)
    except UnknownConsumerCodeError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
