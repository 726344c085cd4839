"""Pydantic schemas for the consumer provenance report."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from agritrust.modules.batches.schemas import Batch, Claim
from agritrust.modules.transparency.schemas import ConsistencyResult


class TrustState(str, Enum):
    """Overall verdict of a lookup, naming the first check that failed."""

    UNKNOWN_CODE = "unknown_code"
    BATCH_MISSING = "batch_missing"
    SIGNATURE_INVALID = "signature_invalid"
    LOG_MISSING = "log_missing"
    LOG_INCONSISTENT = "log_inconsistent"
    CONTENT_MISMATCH = "content_mismatch"
    VERIFIED = "verified"


class ProvenanceChecks(BaseModel):
    """Outcome of each independent check; ``None`` when it could not run."""

    batch_found: bool = Field(alias="batchFound")
    signature_valid: bool | None = Field(default=None, alias="signatureValid")
    credential_digest_matches: bool | None = Field(default=None, alias="credentialDigestMatches")
    log: ConsistencyResult | None = None
    content_matches: bool | None = Field(default=None, alias="contentMatches")

    model_config = ConfigDict(populate_by_name=True)


class ProvenanceReport(BaseModel):
    """What a consumer sees for a code."""

    consumer_code: str = Field(alias="consumerCode")
    trust_state: TrustState = Field(alias="trustState")
    cid: str | None = None
    vc_digest: str | None = Field(default=None, alias="vcDigest")
    batch: Batch | None = None
    claims: list[Claim] = Field(default_factory=list)
    credential: dict[str, Any] | None = None
    log_index: int | None = Field(default=None, alias="logIndex")
    checks: ProvenanceChecks | None = None
    errors: list[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)
