"""Pydantic schemas for the consumer-code lookup index."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class LookupIndexEntry(BaseModel):
    """What a consumer code points at. Never mutated once written."""

    cid: str
    vc_digest: str = Field(alias="vcDigest")
    batch_id: str = Field(alias="batchId")

    model_config = ConfigDict(populate_by_name=True, frozen=True)
