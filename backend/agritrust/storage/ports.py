"""
Storage ports for every persisted collection.

The ledger core never talks to a concrete store: services receive these
protocols, and the application wires either the in-memory or the SQLAlchemy
implementation. Each collection is keyed independently; references between
collections are identifiers that readers must check.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from agritrust.modules.batches.schemas import Batch, Claim, DraftDocument
from agritrust.modules.farmers.schemas import Farmer
from agritrust.modules.feedback.schemas import ConsumerIssue, Feedback
from agritrust.modules.lookup.schemas import LookupIndexEntry
from agritrust.modules.transparency.schemas import TransparencyLogEntry


class DuplicateKeyError(KeyError):
    """Raised by a store when an insert-only key is already present."""


class FarmerStore(Protocol):
    async def get_by_id(self, farmer_id: str) -> Farmer | None: ...

    async def exists(self, farmer_id: str) -> bool: ...

    async def add(self, farmer: Farmer) -> None: ...


class BatchStore(Protocol):
    async def add(self, batch: Batch) -> None: ...

    async def get_by_id(self, batch_id: str) -> Batch | None: ...


class ClaimStore(Protocol):
    async def add(self, claim: Claim) -> None: ...

    async def get_by_batch_id(self, batch_id: str) -> list[Claim]:
        """Claims of a batch, in the order they were added."""
        ...


class DraftStore(Protocol):
    async def save(self, farmer_id: str, draft: DraftDocument) -> None: ...

    async def get(self, farmer_id: str) -> DraftDocument | None: ...

    async def clear(self, farmer_id: str) -> None: ...


class CodeIndexStore(Protocol):
    async def get(self, code: str) -> LookupIndexEntry | None: ...

    async def insert(self, code: str, entry: LookupIndexEntry) -> None:
        """Insert a new mapping. Never called for a code that already exists."""
        ...


class TransparencyLogStore(Protocol):
    async def length(self) -> int: ...

    async def tail(self) -> TransparencyLogEntry | None: ...

    async def append(self, entry: TransparencyLogEntry) -> None:
        """Write ``entry`` at position ``entry.index``; must equal the current length."""
        ...

    async def find_by_digest(self, digest: str) -> TransparencyLogEntry | None:
        """First entry with ``digest``, in log order."""
        ...

    async def list_entries(
        self, *, offset: int = 0, limit: int | None = None
    ) -> Sequence[TransparencyLogEntry]: ...

    async def lock(self) -> None:
        """Take any backend-level append lock for the current transaction."""
        ...


class CredentialStore(Protocol):
    async def add(self, vc_digest: str, credential: dict[str, Any]) -> None: ...

    async def get(self, vc_digest: str) -> dict[str, Any] | None: ...


class ConsumerIssueStore(Protocol):
    async def add(self, issue: ConsumerIssue) -> None: ...

    async def list_by_code(self, consumer_code: str) -> list[ConsumerIssue]: ...


class FeedbackStore(Protocol):
    async def add(self, feedback: Feedback) -> None: ...

    async def list_all(self) -> list[Feedback]: ...


@dataclass(frozen=True)
class Stores:
    """All collections behind one handle, as injected into services."""

    farmers: FarmerStore
    batches: BatchStore
    claims: ClaimStore
    drafts: DraftStore
    codes: CodeIndexStore
    log: TransparencyLogStore
    credentials: CredentialStore
    consumer_issues: ConsumerIssueStore
    feedback: FeedbackStore
