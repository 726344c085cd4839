"""
In-memory implementation of the storage ports.

Records are kept as JSON documents (camelCase, as serialized) and revalidated
on read, so callers never share mutable state with the store. Used for tests
and single-process deployments.
"""

from __future__ import annotations

import copy
from collections.abc import Sequence
from typing import Any

from agritrust.modules.batches.schemas import Batch, Claim, DraftDocument
from agritrust.modules.farmers.schemas import Farmer
from agritrust.modules.feedback.schemas import ConsumerIssue, Feedback
from agritrust.modules.lookup.schemas import LookupIndexEntry
from agritrust.modules.transparency.schemas import TransparencyLogEntry
from agritrust.storage.ports import DuplicateKeyError, Stores


def _doc(model: Any) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


class InMemoryFarmerStore:
    def __init__(self) -> None:
        self._rows: dict[str, dict[str, Any]] = {}

    async def get_by_id(self, farmer_id: str) -> Farmer | None:
        row = self._rows.get(farmer_id)
        return Farmer.model_validate(row) if row is not None else None

    async def exists(self, farmer_id: str) -> bool:
        return farmer_id in self._rows

    async def add(self, farmer: Farmer) -> None:
        self._rows[farmer.id] = _doc(farmer)


class InMemoryBatchStore:
    def __init__(self) -> None:
        self._rows: dict[str, dict[str, Any]] = {}

    async def add(self, batch: Batch) -> None:
        self._rows[batch.id] = _doc(batch)

    async def get_by_id(self, batch_id: str) -> Batch | None:
        row = self._rows.get(batch_id)
        return Batch.model_validate(row) if row is not None else None

    def raw(self, batch_id: str) -> dict[str, Any] | None:
        """Direct access to the stored document (tests use it to simulate tampering)."""
        return self._rows.get(batch_id)


class InMemoryClaimStore:
    def __init__(self) -> None:
        self._rows: list[dict[str, Any]] = []

    async def add(self, claim: Claim) -> None:
        self._rows.append(_doc(claim))

    async def get_by_batch_id(self, batch_id: str) -> list[Claim]:
        return [Claim.model_validate(row) for row in self._rows if row["batchId"] == batch_id]


class InMemoryDraftStore:
    def __init__(self) -> None:
        self._rows: dict[str, dict[str, Any]] = {}

    async def save(self, farmer_id: str, draft: DraftDocument) -> None:
        self._rows[farmer_id] = _doc(draft)

    async def get(self, farmer_id: str) -> DraftDocument | None:
        row = self._rows.get(farmer_id)
        return DraftDocument.model_validate(row) if row is not None else None

    async def clear(self, farmer_id: str) -> None:
        self._rows.pop(farmer_id, None)


class InMemoryCodeIndexStore:
    def __init__(self) -> None:
        self._rows: dict[str, LookupIndexEntry] = {}

    async def get(self, code: str) -> LookupIndexEntry | None:
        return self._rows.get(code)

    async def insert(self, code: str, entry: LookupIndexEntry) -> None:
        if code in self._rows:
            raise DuplicateKeyError(code)
        self._rows[code] = entry


class InMemoryTransparencyLogStore:
    def __init__(self) -> None:
        self._entries: list[TransparencyLogEntry] = []

    async def length(self) -> int:
        return len(self._entries)

    async def tail(self) -> TransparencyLogEntry | None:
        return self._entries[-1] if self._entries else None

    async def append(self, entry: TransparencyLogEntry) -> None:
        if entry.index != len(self._entries):
            raise ValueError(
                f"Log position mismatch: entry index {entry.index}, log length {len(self._entries)}"
            )
        self._entries.append(entry)

    async def find_by_digest(self, digest: str) -> TransparencyLogEntry | None:
        return next((e for e in self._entries if e.digest == digest), None)

    async def list_entries(
        self, *, offset: int = 0, limit: int | None = None
    ) -> Sequence[TransparencyLogEntry]:
        end = None if limit is None else offset + limit
        return list(self._entries[offset:end])

    async def lock(self) -> None:
        return None

    def replace_at(self, position: int, entry: TransparencyLogEntry) -> None:
        """Overwrite an entry in place (tests use it to simulate a corrupted log)."""
        self._entries[position] = entry


class InMemoryCredentialStore:
    def __init__(self) -> None:
        self._rows: dict[str, dict[str, Any]] = {}

    async def add(self, vc_digest: str, credential: dict[str, Any]) -> None:
        self._rows[vc_digest] = copy.deepcopy(credential)

    async def get(self, vc_digest: str) -> dict[str, Any] | None:
        row = self._rows.get(vc_digest)
        return copy.deepcopy(row) if row is not None else None

    def raw(self, vc_digest: str) -> dict[str, Any] | None:
        return self._rows.get(vc_digest)


class InMemoryConsumerIssueStore:
    def __init__(self) -> None:
        self._rows: list[dict[str, Any]] = []

    async def add(self, issue: ConsumerIssue) -> None:
        self._rows.append(_doc(issue))

    async def list_by_code(self, consumer_code: str) -> list[ConsumerIssue]:
        return [
            ConsumerIssue.model_validate(row)
            for row in self._rows
            if row["consumerCode"] == consumer_code
        ]


class InMemoryFeedbackStore:
    def __init__(self) -> None:
        self._rows: list[dict[str, Any]] = []

    async def add(self, feedback: Feedback) -> None:
        self._rows.append(_doc(feedback))

    async def list_all(self) -> list[Feedback]:
        return [Feedback.model_validate(row) for row in self._rows]


def build_memory_stores() -> Stores:
    """Create an empty, independent set of in-memory collections."""
    return Stores(
        farmers=InMemoryFarmerStore(),
        batches=InMemoryBatchStore(),
        claims=InMemoryClaimStore(),
        drafts=InMemoryDraftStore(),
        codes=InMemoryCodeIndexStore(),
        log=InMemoryTransparencyLogStore(),
        credentials=InMemoryCredentialStore(),
        consumer_issues=InMemoryConsumerIssueStore(),
        feedback=InMemoryFeedbackStore(),
    )
