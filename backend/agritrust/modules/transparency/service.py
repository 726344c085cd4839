"""Append-only, hash-linked transparency log of credential digests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from agritrust.core.crypto.hash_chain import ChainVerificationResult, verify_hash_chain
from agritrust.core.logging import get_logger
from agritrust.modules.transparency.schemas import ConsistencyResult, TransparencyLogEntry
from agritrust.storage.ports import TransparencyLogStore

logger = get_logger(__name__)

# Page size used when walking the whole log for chain verification.
_VERIFY_PAGE_SIZE = 500


class DuplicateLogEntryError(ValueError):
    """Raised when a digest already in the log is appended again."""

    def __init__(self, digest: str, existing_index: int) -> None:
        super().__init__(f"Digest {digest} already logged at index {existing_index}")
        self.digest = digest
        self.existing_index = existing_index


class TransparencyLog:
    """Transparency log over a :class:`TransparencyLogStore`.

    Appends are serialized by ``lock``: reading the current length, deriving
    ``previousHash`` and writing the entry happen as one critical section.
    Share the same lock between every instance that writes the same log.
    """

    def __init__(
        self,
        store: TransparencyLogStore,
        *,
        lock: asyncio.Lock | None = None,
        allow_duplicates: bool = False,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._lock = lock or asyncio.Lock()
        self._allow_duplicates = allow_duplicates
        self._clock = clock or (lambda: datetime.now(UTC))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def append(self, vc_digest: str, cid: str) -> int:
        """Append a credential digest and return its index."""
        async with self._lock:
            await self._store.lock()
            if not self._allow_duplicates:
                existing = await self._store.find_by_digest(vc_digest)
                if existing is not None:
                    logger.warning(
                        "transparency_log_duplicate_rejected",
                        digest=vc_digest,
                        existing_index=existing.index,
                    )
                    raise DuplicateLogEntryError(vc_digest, existing.index)

            length = await self._store.length()
            tail = await self._store.tail()
            entry = TransparencyLogEntry(
                index=length,
                digest=vc_digest,
                previous_hash=tail.digest if tail is not None else None,
                timestamp=self._clock().isoformat(),
                cid=cid,
            )
            await self._store.append(entry)

        logger.info("transparency_log_appended", index=entry.index, digest=vc_digest, cid=cid)
        return entry.index

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def exists(self, vc_digest: str) -> TransparencyLogEntry | None:
        """Return the first entry recording ``vc_digest``, if any."""
        return await self._store.find_by_digest(vc_digest)

    async def check_consistency(self, vc_digest: str, expected_cid: str) -> ConsistencyResult:
        """Check that ``vc_digest`` is logged with ``expected_cid``.

        This is a shallow check: it compares the stored CID only. It does not
        verify ``previousHash`` linkage and is not a cryptographic inclusion
        proof; use :meth:`verify_chain` for linkage.
        """
        entry = await self.exists(vc_digest)
        if entry is None:
            return ConsistencyResult(exists=False, consistent=False)
        if entry.cid != expected_cid:
            logger.warning(
                "transparency_log_cid_mismatch",
                digest=vc_digest,
                index=entry.index,
                logged_cid=entry.cid,
                expected_cid=expected_cid,
            )
            return ConsistencyResult(exists=True, consistent=False)
        return ConsistencyResult(exists=True, consistent=True)

    async def length(self) -> int:
        return await self._store.length()

    async def entries(
        self, *, offset: int = 0, limit: int | None = None
    ) -> Sequence[TransparencyLogEntry]:
        return await self._store.list_entries(offset=offset, limit=limit)

    async def verify_chain(self) -> ChainVerificationResult:
        """Walk the whole log and verify index continuity and hash linkage."""
        entries: list[dict[str, object]] = []
        offset = 0
        while True:
            page = await self._store.list_entries(offset=offset, limit=_VERIFY_PAGE_SIZE)
            entries.extend(entry.model_dump(by_alias=True) for entry in page)
            if len(page) < _VERIFY_PAGE_SIZE:
                break
            offset += len(page)

        result = verify_hash_chain(entries)
        if not result.is_valid:
            logger.error(
                "transparency_log_chain_broken",
                first_break_at=result.first_break_at,
                errors=result.errors,
            )
        return result
