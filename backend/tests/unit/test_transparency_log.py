"""Tests for the append-only transparency log."""

from __future__ import annotations

import asyncio

import pytest

from agritrust.modules.transparency.schemas import TransparencyLogEntry
from agritrust.modules.transparency.service import DuplicateLogEntryError, TransparencyLog
from agritrust.storage import Stores
from agritrust.storage.memory import InMemoryTransparencyLogStore

D1, D2, D3 = "a1" * 32, "b2" * 32, "c3" * 32
C1, C2, C3 = "01" * 32, "02" * 32, "03" * 32


class TestAppend:
    @pytest.mark.asyncio
    async def test_indices_and_linkage(self, transparency_log: TransparencyLog) -> None:
        assert await transparency_log.append(D1, C1) == 0
        assert await transparency_log.append(D2, C2) == 1
        assert await transparency_log.append(D3, C3) == 2

        entries = await transparency_log.entries()
        assert [e.index for e in entries] == [0, 1, 2]
        assert entries[0].previous_hash is None
        assert entries[1].previous_hash == D1
        assert entries[2].previous_hash == D2
        assert await transparency_log.length() == 3

    @pytest.mark.asyncio
    async def test_serialized_by_json_aliases(self, transparency_log: TransparencyLog) -> None:
        await transparency_log.append(D1, C1)
        (entry,) = await transparency_log.entries()
        assert set(entry.model_dump(by_alias=True)) == {
            "index",
            "digest",
            "previousHash",
            "timestamp",
            "cid",
        }

    @pytest.mark.asyncio
    async def test_duplicate_rejected_by_default(self, transparency_log: TransparencyLog) -> None:
        await transparency_log.append(D1, C1)
        with pytest.raises(DuplicateLogEntryError) as exc_info:
            await transparency_log.append(D1, C2)
        assert exc_info.value.existing_index == 0
        assert await transparency_log.length() == 1

    @pytest.mark.asyncio
    async def test_duplicate_allowed_when_configured(self, stores: Stores) -> None:
        log = TransparencyLog(stores.log, allow_duplicates=True)
        await log.append(D1, C1)
        assert await log.append(D1, C2) == 1

        found = await log.exists(D1)
        assert found is not None
        assert found.index == 0
        assert found.cid == C1

    @pytest.mark.asyncio
    async def test_concurrent_appends_stay_contiguous(self, stores: Stores) -> None:
        lock = asyncio.Lock()
        writers = [TransparencyLog(stores.log, lock=lock) for _ in range(4)]
        digests = [f"{i:064x}" for i in range(40)]

        indices = await asyncio.gather(
            *(writers[i % 4].append(digest, C1) for i, digest in enumerate(digests))
        )

        assert sorted(indices) == list(range(40))
        assert (await writers[0].verify_chain()).is_valid


class TestReads:
    @pytest.mark.asyncio
    async def test_exists(self, transparency_log: TransparencyLog) -> None:
        await transparency_log.append(D1, C1)
        entry = await transparency_log.exists(D1)
        assert entry is not None
        assert entry.cid == C1
        assert await transparency_log.exists(D2) is None

    @pytest.mark.asyncio
    async def test_check_consistency(self, transparency_log: TransparencyLog) -> None:
        await transparency_log.append(D1, C1)

        result = await transparency_log.check_consistency(D1, C1)
        assert (result.exists, result.consistent) == (True, True)

        result = await transparency_log.check_consistency(D1, C2)
        assert (result.exists, result.consistent) == (True, False)

        result = await transparency_log.check_consistency(D2, C1)
        assert (result.exists, result.consistent) == (False, False)

    @pytest.mark.asyncio
    async def test_entries_pagination(self, transparency_log: TransparencyLog) -> None:
        for digest, cid in ((D1, C1), (D2, C2), (D3, C3)):
            await transparency_log.append(digest, cid)
        page = await transparency_log.entries(offset=1, limit=1)
        assert [e.digest for e in page] == [D2]


class TestVerifyChain:
    @pytest.mark.asyncio
    async def test_intact(self, transparency_log: TransparencyLog) -> None:
        for digest, cid in ((D1, C1), (D2, C2), (D3, C3)):
            await transparency_log.append(digest, cid)
        result = await transparency_log.verify_chain()
        assert result.is_valid
        assert result.verified_count == 3

    @pytest.mark.asyncio
    async def test_detects_broken_previous_hash(self) -> None:
        store = InMemoryTransparencyLogStore()
        log = TransparencyLog(store)
        for digest, cid in ((D1, C1), (D2, C2), (D3, C3)):
            await log.append(digest, cid)

        original = (await log.entries(offset=1, limit=1))[0]
        store.replace_at(
            1,
            TransparencyLogEntry(
                index=1,
                digest=original.digest,
                previous_hash="ff" * 32,
                timestamp=original.timestamp,
                cid=original.cid,
            ),
        )

        result = await log.verify_chain()
        assert not result.is_valid
        assert result.first_break_at == 1

    @pytest.mark.asyncio
    async def test_consistency_stays_shallow_on_broken_chain(self) -> None:
        store = InMemoryTransparencyLogStore()
        log = TransparencyLog(store)
        await log.append(D1, C1)
        await log.append(D2, C2)
        store.replace_at(
            1,
            TransparencyLogEntry(
                index=1, digest=D2, previous_hash=None, timestamp="t", cid=C2
            ),
        )

        assert (await log.check_consistency(D2, C2)).consistent
        assert not (await log.verify_chain()).is_valid
