"""
Integration tests for the SQLAlchemy stores.

Runs against SQLite (aiosqlite) in a temporary file, or against the database
named by TEST_DATABASE_URL when set.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from agritrust.core.config import get_settings
from agritrust.core.crypto.signing import KeyedHashSigner
from agritrust.core.dependencies import get_runtime, seed_demo_ledger
from agritrust.db import models
from agritrust.db.models import Base
from agritrust.db.session import close_db, init_db
from agritrust.main import create_application
from agritrust.modules.batches.schemas import BatchDraft, ClaimDraft, DraftDocument
from agritrust.modules.batches.service import SubmissionService
from agritrust.modules.claims.schemas import TrustState
from agritrust.modules.claims.service import ProvenanceService
from agritrust.modules.farmers.schemas import Farmer, Location
from agritrust.modules.lookup.schemas import LookupIndexEntry
from agritrust.modules.lookup.service import (
    CodeCollisionError,
    CodeReservations,
    LookupIndex,
    ReservationScope,
)
from agritrust.modules.transparency.service import DuplicateLogEntryError, TransparencyLog
from agritrust.storage import DuplicateKeyError, Stores, build_sql_stores

SIGNER = KeyedHashSigner("integration-secret")
FARMER = Farmer(
    id="20230115-greenacres-1234",
    name="Green Acres Farm",
    date_of_joining="2023-01-15",
    location=Location(village="Farmville", district="Rural", state="Karnataka"),
    created_at="2023-01-15T00:00:00+00:00",
    updated_at="2023-01-15T00:00:00+00:00",
)


def _database_url(tmp_path: Path) -> str:
    return os.getenv("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"


@pytest_asyncio.fixture
async def sql_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(_database_url(tmp_path), echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(sql_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=sql_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def sql_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def sql_stores(sql_session: AsyncSession) -> Stores:
    return build_sql_stores(sql_session)


class TestSqlTransparencyLog:
    @pytest.mark.asyncio
    async def test_append_and_linkage(self, sql_stores: Stores) -> None:
        log = TransparencyLog(sql_stores.log)
        assert await log.append("a1" * 32, "01" * 32) == 0
        assert await log.append("b2" * 32, "02" * 32) == 1

        entries = await log.entries()
        assert entries[1].previous_hash == "a1" * 32
        assert (await log.verify_chain()).is_valid
        assert (await log.check_consistency("b2" * 32, "02" * 32)).consistent
        assert not (await log.check_consistency("b2" * 32, "01" * 32)).consistent

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, sql_stores: Stores) -> None:
        log = TransparencyLog(sql_stores.log)
        await log.append("a1" * 32, "01" * 32)
        with pytest.raises(DuplicateLogEntryError):
            await log.append("a1" * 32, "01" * 32)

    @pytest.mark.asyncio
    async def test_detects_broken_previous_hash(
        self, sql_stores: Stores, sql_session: AsyncSession
    ) -> None:
        log = TransparencyLog(sql_stores.log)
        for i in range(3):
            await log.append(f"{i:064x}", "01" * 32)

        await sql_session.execute(
            update(models.TransparencyLogEntry)
            .where(models.TransparencyLogEntry.position == 2)
            .values(previous_hash="ff" * 32)
        )

        result = await log.verify_chain()
        assert not result.is_valid
        assert result.first_break_at == 2


class TestSqlCollections:
    @pytest.mark.asyncio
    async def test_farmers(self, sql_stores: Stores) -> None:
        await sql_stores.farmers.add(FARMER)
        assert await sql_stores.farmers.exists(FARMER.id)
        assert await sql_stores.farmers.get_by_id(FARMER.id) == FARMER
        assert await sql_stores.farmers.get_by_id("20230115-nobody-0000") is None

    @pytest.mark.asyncio
    async def test_drafts(self, sql_stores: Stores) -> None:
        draft = DraftDocument(batch=BatchDraft(product_name="Mangoes"))
        await sql_stores.drafts.save(FARMER.id, draft)
        await sql_stores.drafts.save(
            FARMER.id, DraftDocument(batch=BatchDraft(product_name="Mangos"))
        )

        loaded = await sql_stores.drafts.get(FARMER.id)
        assert loaded is not None
        assert loaded.batch.product_name == "Mangos"

        await sql_stores.drafts.clear(FARMER.id)
        assert await sql_stores.drafts.get(FARMER.id) is None

    @pytest.mark.asyncio
    async def test_code_collision(self, sql_stores: Stores) -> None:
        index = LookupIndex(sql_stores.codes)
        await index.put("AGRITRUST-240910-1234", "01" * 32, "a1" * 32, "batch-1")
        with pytest.raises(CodeCollisionError):
            await index.put("AGRITRUST-240910-1234", "02" * 32, "b2" * 32, "batch-2")

    @pytest.mark.asyncio
    async def test_racing_code_insert_raises_duplicate_key(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        code = "AGRITRUST-240910-1234"
        entry = LookupIndexEntry(cid="01" * 32, vc_digest="a1" * 32, batch_id="batch-1")
        async with session_factory() as session:
            await build_sql_stores(session).codes.insert(code, entry)
            await session.commit()

        async with session_factory() as session:
            stores = build_sql_stores(session)
            await stores.farmers.add(FARMER)
            with pytest.raises(DuplicateKeyError):
                await stores.codes.insert(code, entry.model_copy(update={"batch_id": "batch-2"}))
            # Only the savepoint rolled back; the farmer is still pending commit.
            await session.commit()

        async with session_factory() as session:
            stores = build_sql_stores(session)
            assert await stores.farmers.exists(FARMER.id)
            stored = await stores.codes.get(code)
            assert stored is not None
            assert stored.batch_id == "batch-1"


class TestSqlSubmission:
    @pytest.mark.asyncio
    async def test_submission_survives_commit(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with session_factory() as session:
            stores = build_sql_stores(session)
            await stores.farmers.add(FARMER)
            service = SubmissionService(
                stores,
                log=TransparencyLog(stores.log),
                index=LookupIndex(stores.codes),
                signer=SIGNER,
            )
            result = await service.submit_batch(
                BatchDraft(product_name="Apples", soil_ph=6.8),
                [ClaimDraft(type="Organic"), ClaimDraft(type="Fair Trade")],
                FARMER.id,
            )
            await session.commit()

        async with session_factory() as session:
            stores = build_sql_stores(session)
            provenance = ProvenanceService(
                stores,
                log=TransparencyLog(stores.log),
                index=LookupIndex(stores.codes),
                verifier=SIGNER,
            )
            report = await provenance.lookup(result.consumer_code)

        assert report.trust_state is TrustState.VERIFIED, report.errors
        assert [c.type for c in report.claims] == ["Organic", "Fair Trade"]
        assert report.credential == result.credential

    @pytest.mark.asyncio
    async def test_rolled_back_submission_leaves_nothing(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with session_factory() as session:
            stores = build_sql_stores(session)
            await stores.farmers.add(FARMER)
            await session.commit()

        async with session_factory() as session:
            stores = build_sql_stores(session)
            service = SubmissionService(
                stores,
                log=TransparencyLog(stores.log),
                index=LookupIndex(stores.codes),
                signer=SIGNER,
            )
            result = await service.submit_batch(BatchDraft(), [], FARMER.id)
            await session.rollback()

        async with session_factory() as session:
            stores = build_sql_stores(session)
            assert await stores.log.length() == 0
            assert await stores.codes.get(result.consumer_code) is None
            assert await stores.batches.get_by_id(result.batch.id) is None


    @pytest.mark.asyncio
    async def test_claim_ids_scoped_to_batch(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with session_factory() as session:
            stores = build_sql_stores(session)
            await stores.farmers.add(FARMER)
            service = SubmissionService(
                stores,
                log=TransparencyLog(stores.log),
                index=LookupIndex(stores.codes),
                signer=SIGNER,
            )
            first = await service.submit_batch(
                BatchDraft(product_name="Apples"),
                [ClaimDraft(id="claim-1", type="Organic")],
                FARMER.id,
            )
            second = await service.submit_batch(
                BatchDraft(product_name="Pears"),
                [ClaimDraft(id="claim-1", type="GI-Tag")],
                FARMER.id,
            )
            await session.commit()

        async with session_factory() as session:
            stores = build_sql_stores(session)
            assert [c.type for c in await stores.claims.get_by_batch_id(first.batch.id)] == [
                "Organic"
            ]
            assert [c.type for c in await stores.claims.get_by_batch_id(second.batch.id)] == [
                "GI-Tag"
            ]

    @pytest.mark.asyncio
    async def test_uncommitted_code_stays_reserved(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with session_factory() as session:
            await build_sql_stores(session).farmers.add(FARMER)
            await session.commit()

        reservations = CodeReservations()
        suffixes = iter([1234, 1234, 5678])

        async with session_factory() as writer_session, session_factory() as reader_session:
            writer_stores = build_sql_stores(writer_session)
            scope = ReservationScope(reservations)
            service = SubmissionService(
                writer_stores,
                log=TransparencyLog(writer_stores.log),
                index=LookupIndex(
                    writer_stores.codes,
                    reservations=reservations,
                    scope=scope,
                    random_suffix=lambda: next(suffixes),
                ),
                signer=SIGNER,
            )
            result = await service.submit_batch(BatchDraft(), [], FARMER.id)
            assert result.consumer_code in reservations

            reader = LookupIndex(
                build_sql_stores(reader_session).codes,
                reservations=reservations,
                random_suffix=lambda: next(suffixes),
            )
            other = await reader.generate_code()
            assert other != result.consumer_code
            assert other.endswith("-5678")

            await writer_session.commit()
            scope.release_all()

        assert result.consumer_code not in reservations


class TestDatabaseBackedApi:
    @pytest_asyncio.fixture
    async def db_client(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> AsyncGenerator[AsyncClient, None]:
        monkeypatch.setenv("STORAGE_BACKEND", "database")
        monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
        get_settings.cache_clear()
        await init_db()
        app = create_application()
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client
        await close_db()

    @pytest.mark.asyncio
    async def test_submit_and_lookup(self, db_client: AsyncClient) -> None:
        farmer: dict[str, Any] = (
            await db_client.post("/api/v1/farmers", json={"name": "Green Acres"})
        ).json()

        submission = await db_client.post(
            f"/api/v1/farmers/{farmer['id']}/batches",
            json={"batch": {"productName": "Apples"}, "claims": []},
        )
        assert submission.status_code == 201, submission.text
        code = submission.json()["consumerCode"]

        report = (await db_client.get(f"/api/v1/public/claims/{code}")).json()
        assert report["trustState"] == "verified"

        chain = (await db_client.get("/api/v1/public/transparency-log/verify")).json()
        assert chain["is_valid"] is True
        assert chain["verified_count"] == 1

        health = (await db_client.get("/health")).json()
        assert health["checks"]["db"] == "ok"

    @pytest.mark.asyncio
    async def test_seeded_ledger_verifies(self, db_client: AsyncClient) -> None:
        codes = await seed_demo_ledger(get_runtime())
        assert len(codes) == 2
        assert await seed_demo_ledger(get_runtime()) == []

        for code in codes:
            report = (await db_client.get(f"/api/v1/public/claims/{code}")).json()
            assert report["trustState"] == "verified", report["errors"]
