"""Pydantic schemas for the transparency log."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TransparencyLogEntry(BaseModel):
    """One appended credential digest. Immutable once written."""

    index: int = Field(ge=0)
    digest: str
    previous_hash: str | None = Field(alias="previousHash")
    timestamp: str
    cid: str

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ConsistencyResult(BaseModel):
    """Shallow log check: presence of the digest and agreement of its CID.

    It does not verify chain linkage and is not an inclusion proof.
    """

    exists: bool
    consistent: bool


class TransparencyLogPage(BaseModel):
    """A slice of the log."""

    total: int
    offset: int
    entries: list[TransparencyLogEntry]


class ChainVerificationResponse(BaseModel):
    """Result of walking the full log chain."""

    is_valid: bool
    verified_count: int
    first_break_at: int | None = None
    errors: list[str] = []
