"""Public (unauthenticated) read access to the transparency log."""

from __future__ import annotations

from fastapi import APIRouter, Query

from agritrust.core.dependencies import LogDep
from agritrust.modules.transparency.schemas import (
    ChainVerificationResponse,
    ConsistencyResult,
    TransparencyLogPage,
)

router = APIRouter()


@router.get("/transparency-log", response_model=TransparencyLogPage)
async def list_log_entries(
    log: LogDep,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
) -> TransparencyLogPage:
    entries = await log.entries(offset=offset, limit=limit)
    return TransparencyLogPage(total=await log.length(), offset=offset, entries=list(entries))


@router.get("/transparency-log/verify", response_model=ChainVerificationResponse)
async def verify_log_chain(log: LogDep) -> ChainVerificationResponse:
    """Walk the whole log and report the first broken link, if any."""
    result = await log.verify_chain()
    return ChainVerificationResponse(
        is_valid=result.is_valid,
        verified_count=result.verified_count,
        first_break_at=result.first_break_at,
        errors=result.errors,
    )


@router.get("/transparency-log/{vc_digest}/consistency", response_model=ConsistencyResult)
async def check_log_consistency(
    vc_digest: str,
    log: LogDep,
    cid: str = Query(min_length=1),
) -> ConsistencyResult:
    return await log.check_consistency(vc_digest, cid)
