"""
SQLAlchemy-backed implementation of the storage ports.

All stores built by :func:`build_sql_stores` share one ``AsyncSession``, so a
submission's writes commit or roll back together. A consumer code inserted
twice by racing transactions surfaces as ``DuplicateKeyError``, raised from
a savepoint so the session stays usable. Other integrity errors (a log
position taken twice) propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from agritrust.db import models
from agritrust.modules.batches.schemas import Batch, Claim, DraftDocument
from agritrust.modules.farmers.schemas import Farmer
from agritrust.modules.feedback.schemas import ConsumerIssue, Feedback
from agritrust.modules.lookup.schemas import LookupIndexEntry
from agritrust.modules.transparency.schemas import TransparencyLogEntry
from agritrust.storage.ports import DuplicateKeyError, Stores

# Advisory lock key serializing transparency-log appends on PostgreSQL.
LOG_APPEND_LOCK_KEY = 0x4147_5452


def _doc(model: Any) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


class SqlFarmerStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, farmer_id: str) -> Farmer | None:
        row = await self._session.get(models.Farmer, farmer_id)
        return Farmer.model_validate(row.payload) if row is not None else None

    async def exists(self, farmer_id: str) -> bool:
        result = await self._session.execute(
            select(models.Farmer.id).where(models.Farmer.id == farmer_id)
        )
        return result.scalar_one_or_none() is not None

    async def add(self, farmer: Farmer) -> None:
        self._session.add(models.Farmer(id=farmer.id, name=farmer.name, payload=_doc(farmer)))
        await self._session.flush()


class SqlBatchStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, batch: Batch) -> None:
        self._session.add(
            models.Batch(
                id=batch.id,
                farmer_id=batch.farmer_id,
                consumer_code=batch.consumer_code,
                cid=batch.cid,
                vc_digest=batch.vc_digest,
                payload=_doc(batch),
            )
        )
        await self._session.flush()

    async def get_by_id(self, batch_id: str) -> Batch | None:
        row = await self._session.get(models.Batch, batch_id)
        return Batch.model_validate(row.payload) if row is not None else None


class SqlClaimStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, claim: Claim) -> None:
        result = await self._session.execute(
            select(func.count()).select_from(models.Claim).where(
                models.Claim.batch_id == claim.batch_id
            )
        )
        position = int(result.scalar_one())
        self._session.add(
            models.Claim(
                id=claim.id,
                batch_id=claim.batch_id,
                position=position,
                payload=_doc(claim),
            )
        )
        await self._session.flush()

    async def get_by_batch_id(self, batch_id: str) -> list[Claim]:
        result = await self._session.execute(
            select(models.Claim.payload)
            .where(models.Claim.batch_id == batch_id)
            .order_by(models.Claim.position.asc())
        )
        return [Claim.model_validate(payload) for payload in result.scalars().all()]


class SqlDraftStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save(self, farmer_id: str, draft: DraftDocument) -> None:
        row = await self._session.get(models.BatchDraft, farmer_id)
        if row is None:
            self._session.add(models.BatchDraft(farmer_id=farmer_id, payload=_doc(draft)))
        else:
            row.payload = _doc(draft)
        await self._session.flush()

    async def get(self, farmer_id: str) -> DraftDocument | None:
        row = await self._session.get(models.BatchDraft, farmer_id)
        return DraftDocument.model_validate(row.payload) if row is not None else None

    async def clear(self, farmer_id: str) -> None:
        await self._session.execute(
            delete(models.BatchDraft).where(models.BatchDraft.farmer_id == farmer_id)
        )


class SqlCodeIndexStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, code: str) -> LookupIndexEntry | None:
        row = await self._session.get(models.ConsumerCode, code)
        if row is None:
            return None
        return LookupIndexEntry(cid=row.cid, vc_digest=row.vc_digest, batch_id=row.batch_id)

    async def insert(self, code: str, entry: LookupIndexEntry) -> None:
        try:
            async with self._session.begin_nested():
                self._session.add(
                    models.ConsumerCode(
                        code=code,
                        cid=entry.cid,
                        vc_digest=entry.vc_digest,
                        batch_id=entry.batch_id,
                    )
                )
        except IntegrityError as exc:
            raise DuplicateKeyError(code) from exc


def _log_entry(row: models.TransparencyLogEntry) -> TransparencyLogEntry:
    return TransparencyLogEntry(
        index=row.position,
        digest=row.digest,
        previous_hash=row.previous_hash,
        timestamp=row.timestamp,
        cid=row.cid,
    )


class SqlTransparencyLogStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def length(self) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(models.TransparencyLogEntry)
        )
        return int(result.scalar_one())

    async def tail(self) -> TransparencyLogEntry | None:
        result = await self._session.execute(
            select(models.TransparencyLogEntry)
            .order_by(models.TransparencyLogEntry.position.desc())
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return _log_entry(row) if row is not None else None

    async def append(self, entry: TransparencyLogEntry) -> None:
        self._session.add(
            models.TransparencyLogEntry(
                position=entry.index,
                digest=entry.digest,
                previous_hash=entry.previous_hash,
                cid=entry.cid,
                timestamp=entry.timestamp,
            )
        )
        await self._session.flush()

    async def find_by_digest(self, digest: str) -> TransparencyLogEntry | None:
        result = await self._session.execute(
            select(models.TransparencyLogEntry)
            .where(models.TransparencyLogEntry.digest == digest)
            .order_by(models.TransparencyLogEntry.position.asc())
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return _log_entry(row) if row is not None else None

    async def list_entries(
        self, *, offset: int = 0, limit: int | None = None
    ) -> Sequence[TransparencyLogEntry]:
        stmt = (
            select(models.TransparencyLogEntry)
            .order_by(models.TransparencyLogEntry.position.asc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return [_log_entry(row) for row in result.scalars().all()]

    async def lock(self) -> None:
        bind = self._session.get_bind()
        if bind.dialect.name == "postgresql":
            await self._session.execute(
                text("SELECT pg_advisory_xact_lock(:key)"),
                {"key": LOG_APPEND_LOCK_KEY},
            )


class SqlCredentialStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, vc_digest: str, credential: dict[str, Any]) -> None:
        self._session.add(
            models.IssuedCredential(
                vc_digest=vc_digest,
                batch_id=str(credential.get("credentialSubject", {}).get("batchId", "")),
                issuer=str(credential.get("issuer", "")),
                credential_json=credential,
            )
        )
        await self._session.flush()

    async def get(self, vc_digest: str) -> dict[str, Any] | None:
        row = await self._session.get(models.IssuedCredential, vc_digest)
        return dict(row.credential_json) if row is not None else None


class SqlConsumerIssueStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, issue: ConsumerIssue) -> None:
        self._session.add(
            models.ConsumerIssue(
                id=issue.id,
                consumer_code=issue.consumer_code,
                message=issue.message,
                payload=_doc(issue),
                created_at=datetime.fromisoformat(issue.created_at),
            )
        )
        await self._session.flush()

    async def list_by_code(self, consumer_code: str) -> list[ConsumerIssue]:
        result = await self._session.execute(
            select(models.ConsumerIssue.payload)
            .where(models.ConsumerIssue.consumer_code == consumer_code)
            .order_by(models.ConsumerIssue.created_at.asc())
        )
        return [ConsumerIssue.model_validate(payload) for payload in result.scalars().all()]


class SqlFeedbackStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, feedback: Feedback) -> None:
        self._session.add(
            models.Feedback(
                id=feedback.id,
                role=feedback.role.value,
                payload=_doc(feedback),
                created_at=datetime.fromisoformat(feedback.created_at),
            )
        )
        await self._session.flush()

    async def list_all(self) -> list[Feedback]:
        result = await self._session.execute(
            select(models.Feedback.payload).order_by(models.Feedback.created_at.asc())
        )
        return [Feedback.model_validate(payload) for payload in result.scalars().all()]


def build_sql_stores(session: AsyncSession) -> Stores:
    """Bind every collection to ``session``."""
    return Stores(
        farmers=SqlFarmerStore(session),
        batches=SqlBatchStore(session),
        claims=SqlClaimStore(session),
        drafts=SqlDraftStore(session),
        codes=SqlCodeIndexStore(session),
        log=SqlTransparencyLogStore(session),
        credentials=SqlCredentialStore(session),
        consumer_issues=SqlConsumerIssueStore(session),
        feedback=SqlFeedbackStore(session),
    )
