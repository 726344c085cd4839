"""Farmer-scoped endpoints for drafts and batch submission."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status

from agritrust.core.crypto.canonicalization import SerializationError
from agritrust.core.dependencies import get_draft_service, get_submission_service
from agritrust.modules.batches.schemas import (
    DraftDocument,
    SubmissionResponse,
    SubmitBatchRequest,
)
from agritrust.modules.batches.service import DraftService, SubmissionService
from agritrust.modules.farmers.service import FarmerNotFoundError
from agritrust.modules.lookup.service import CodeCollisionError, CodeGenerationExhaustedError
from agritrust.modules.transparency.service import DuplicateLogEntryError

router = APIRouter()

DraftServiceDep = Annotated[DraftService, Depends(get_draft_service)]
SubmissionServiceDep = Annotated[SubmissionService, Depends(get_submission_service)]


def _not_found(exc: FarmerNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.put("/{farmer_id}/draft", response_model=DraftDocument)
async def save_draft(
    farmer_id: str, body: DraftDocument, service: DraftServiceDep
) -> DraftDocument:
    try:
        return await service.save(farmer_id, body)
    except FarmerNotFoundError as exc:
        raise _not_found(exc) from exc


@router.get("/{farmer_id}/draft", response_model=DraftDocument)
async def get_draft(farmer_id: str, service: DraftServiceDep) -> DraftDocument:
    try:
        draft = await service.get(farmer_id)
    except FarmerNotFoundError as exc:
        raise _not_found(exc) from exc
    if draft is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No saved draft")
    return draft


@router.delete("/{farmer_id}/draft", status_code=status.HTTP_204_NO_CONTENT)
async def clear_draft(farmer_id: str, service: DraftServiceDep) -> Response:
    try:
        await service.clear(farmer_id)
    except FarmerNotFoundError as exc:
        raise _not_found(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{farmer_id}/batches",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_batch(
    farmer_id: str, body: SubmitBatchRequest, service: SubmissionServiceDep
) -> SubmissionResponse:
    """Finalize a batch, issue its credential and return the consumer code."""
    try:
        result = await service.submit_batch(body.batch, body.claims, farmer_id)
    except FarmerNotFoundError as exc:
        raise _not_found(exc) from exc
    except (CodeCollisionError, DuplicateLogEntryError) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except SerializationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    except CodeGenerationExhaustedError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc

    return SubmissionResponse(
        consumer_code=result.consumer_code,
        batch=result.batch,
        claims=result.claims,
        credential=result.credential,
        log_index=result.log_index,
    )
