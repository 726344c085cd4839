"""
FastAPI dependencies wiring storage and services.

Process-wide state (the signer, the log append lock, the code reservations
and, for the memory backend, the stores themselves) lives in one
``LedgerRuntime`` singleton. Stores for the database backend are bound to a
request-scoped session that commits when the request succeeds.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends

from agritrust.core.config import Settings, get_settings
from agritrust.core.crypto.signing import Signer
from agritrust.db.session import session_scope
from agritrust.modules.batches.service import DraftService, SubmissionService
from agritrust.modules.claims.service import ProvenanceService
from agritrust.modules.credentials.vc import build_signer
from agritrust.modules.demo.seed import seed_demo_data
from agritrust.modules.farmers.service import FarmerService
from agritrust.modules.feedback.service import FeedbackService
from agritrust.modules.lookup.service import (
    CodeReservations,
    LookupIndex,
    ReservationScope,
)
from agritrust.modules.transparency.service import TransparencyLog
from agritrust.storage import Stores, build_memory_stores, build_sql_stores


class LedgerRuntime:
    """State shared by every request in this process."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.signer: Signer = build_signer(settings)
        self.log_lock = asyncio.Lock()
        self.reservations = CodeReservations()
        self.memory_stores: Stores | None = (
            build_memory_stores() if settings.storage_backend == "memory" else None
        )


_runtime: LedgerRuntime | None = None


def get_runtime() -> LedgerRuntime:
    global _runtime  # noqa: PLW0603
    if _runtime is None:
        _runtime = LedgerRuntime(get_settings())
    return _runtime


def reset_runtime() -> None:
    """Drop the process state (tests start each case from an empty ledger)."""
    global _runtime  # noqa: PLW0603
    _runtime = None


Runtime = Annotated[LedgerRuntime, Depends(get_runtime)]


async def get_reservation_scope(runtime: Runtime) -> AsyncGenerator[ReservationScope, None]:
    scope = ReservationScope(runtime.reservations)
    try:
        yield scope
    finally:
        scope.release_all()


ScopeDep = Annotated[ReservationScope, Depends(get_reservation_scope)]


async def get_stores(runtime: Runtime, _scope: ScopeDep) -> AsyncGenerator[Stores, None]:
    """Yield the stores for one request.

    Depending on the reservation scope makes it tear down after the session
    below, so consumer codes stay reserved until the request's writes commit.
    """
    if runtime.memory_stores is not None:
        yield runtime.memory_stores
        return
    async with session_scope() as session:
        yield build_sql_stores(session)


StoresDep = Annotated[Stores, Depends(get_stores)]


def get_transparency_log(runtime: Runtime, stores: StoresDep) -> TransparencyLog:
    return TransparencyLog(
        stores.log,
        lock=runtime.log_lock,
        allow_duplicates=runtime.settings.transparency_log_allow_duplicates,
    )


def get_lookup_index(runtime: Runtime, stores: StoresDep, scope: ScopeDep) -> LookupIndex:
    return LookupIndex(
        stores.codes,
        reservations=runtime.reservations,
        scope=scope,
        code_prefix=runtime.settings.consumer_code_prefix,
        max_attempts=runtime.settings.consumer_code_max_attempts,
    )


LogDep = Annotated[TransparencyLog, Depends(get_transparency_log)]
IndexDep = Annotated[LookupIndex, Depends(get_lookup_index)]


def get_farmer_service(runtime: Runtime, stores: StoresDep) -> FarmerService:
    return FarmerService(stores.farmers, max_attempts=runtime.settings.farmer_id_max_attempts)


def get_draft_service(stores: StoresDep) -> DraftService:
    return DraftService(stores)


def get_submission_service(
    runtime: Runtime, stores: StoresDep, log: LogDep, index: IndexDep
) -> SubmissionService:
    return SubmissionService(
        stores,
        log=log,
        index=index,
        signer=runtime.signer,
        canonicalization=runtime.settings.digest_canonicalization,
    )


def get_provenance_service(
    runtime: Runtime, stores: StoresDep, log: LogDep, index: IndexDep
) -> ProvenanceService:
    return ProvenanceService(
        stores,
        log=log,
        index=index,
        verifier=runtime.signer,
        canonicalization=runtime.settings.digest_canonicalization,
    )


def get_feedback_service(stores: StoresDep, index: IndexDep) -> FeedbackService:
    return FeedbackService(stores, index=index)


async def seed_demo_ledger(runtime: LedgerRuntime) -> list[str]:
    """Seed the demonstration ledger with the same wiring requests use."""
    scope = ReservationScope(runtime.reservations)
    try:
        if runtime.memory_stores is not None:
            return await _seed(runtime, runtime.memory_stores, scope)
        async with session_scope() as session:
            return await _seed(runtime, build_sql_stores(session), scope)
    finally:
        scope.release_all()


async def _seed(runtime: LedgerRuntime, stores: Stores, scope: ReservationScope) -> list[str]:
    log = get_transparency_log(runtime, stores)
    index = get_lookup_index(runtime, stores, scope)
    return await seed_demo_data(stores, get_submission_service(runtime, stores, log, index))
