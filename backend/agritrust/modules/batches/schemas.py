"""Pydantic schemas for batches, claims and drafts."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agritrust.modules.farmers.schemas import MAX_INPUT_TEXT_LENGTH, Location

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
MAX_TEXTAREA_LENGTH = 500
MAX_CLAIM_ID_LENGTH = 64


class EvidenceType(str, Enum):
    IMAGE = "Image"
    DOCUMENT = "Document"
    VIDEO = "Video"
    OTHER = "Other"


class ClaimStatus(str, Enum):
    VERIFIED = "Verified"
    PENDING = "Pending"
    REJECTED = "Rejected"


class Evidence(BaseModel):
    """A piece of evidence backing a claim."""

    type: EvidenceType
    url_or_path: str | None = Field(default=None, alias="urlOrPath")
    notes: str | None = Field(default=None, max_length=MAX_TEXTAREA_LENGTH)

    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Finalized records
# ---------------------------------------------------------------------------


class Claim(BaseModel):
    """A claim bound to a finalized batch."""

    id: str
    batch_id: str = Field(alias="batchId")
    type: str
    description: str | None = None
    evidence: list[Evidence] = Field(default_factory=list)
    status: ClaimStatus = ClaimStatus.PENDING
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)


class Batch(BaseModel):
    """A finalized batch as persisted and hashed."""

    id: str
    farmer_id: str = Field(alias="farmerId")
    farmer_name: str = Field(alias="farmerName")
    location: Location
    product_name: str = Field(alias="productName")
    variety: str
    harvest_date: str = Field(alias="harvestDate")
    soil_type_texture: str = Field(alias="soilTypeTexture")
    nitrogen_level: float = Field(alias="nitrogenLevel")
    phosphorus_level: float = Field(alias="phosphorusLevel")
    potassium_level: float = Field(alias="potassiumLevel")
    micronutrients: str
    soil_ph: float = Field(alias="soilPh")
    humidity: float
    temperature: float
    inputs_used: list[str] = Field(default_factory=list, alias="inputsUsed")
    certifications: list[str] = Field(default_factory=list)
    lot_size: str = Field(alias="lotSize")
    processing_steps: list[str] | None = Field(default=None, alias="processingSteps")
    storage_transport_notes: str | None = Field(default=None, alias="storageTransportNotes")
    consumer_code: str = Field(alias="consumerCode")
    cid: str = ""
    vc_digest: str = Field(default="", alias="vcDigest")
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Drafts (farmer input, every field optional)
# ---------------------------------------------------------------------------


class ClaimDraft(BaseModel):
    """A claim as entered by the farmer, before the batch exists."""

    id: str | None = Field(default=None, min_length=1, max_length=MAX_CLAIM_ID_LENGTH)
    type: str = Field(min_length=1, max_length=MAX_INPUT_TEXT_LENGTH)
    description: str | None = Field(default=None, max_length=MAX_TEXTAREA_LENGTH)
    evidence: list[Evidence] = Field(default_factory=list)
    status: ClaimStatus = ClaimStatus.PENDING
    created_at: str | None = Field(default=None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)


def ensure_unique_claim_ids(claims: list[ClaimDraft]) -> list[ClaimDraft]:
    """Reject two claims carrying the same client-supplied id."""
    seen: set[str] = set()
    for claim in claims:
        if claim.id is None:
            continue
        if claim.id in seen:
            raise ValueError(f"Duplicate claim id: {claim.id}")
        seen.add(claim.id)
    return claims


class BatchDraft(BaseModel):
    """Partial batch data collected from the farmer."""

    location: Location | None = None
    product_name: str | None = Field(
        default=None, alias="productName", max_length=MAX_INPUT_TEXT_LENGTH
    )
    variety: str | None = Field(default=None, max_length=MAX_INPUT_TEXT_LENGTH)
    harvest_date: str | None = Field(default=None, alias="harvestDate", pattern=DATE_PATTERN)
    soil_type_texture: str | None = Field(default=None, alias="soilTypeTexture")
    nitrogen_level: float | None = Field(default=None, alias="nitrogenLevel", ge=0)
    phosphorus_level: float | None = Field(default=None, alias="phosphorusLevel", ge=0)
    potassium_level: float | None = Field(default=None, alias="potassiumLevel", ge=0)
    micronutrients: str | None = None
    soil_ph: float | None = Field(default=None, alias="soilPh", ge=0, le=14)
    humidity: float | None = Field(default=None, ge=0, le=100)
    temperature: float | None = None
    inputs_used: list[str] | None = Field(default=None, alias="inputsUsed")
    certifications: list[str] | None = None
    lot_size: str | None = Field(default=None, alias="lotSize")
    processing_steps: list[str] | None = Field(default=None, alias="processingSteps")
    storage_transport_notes: str | None = Field(
        default=None, alias="storageTransportNotes", max_length=MAX_TEXTAREA_LENGTH
    )

    model_config = ConfigDict(populate_by_name=True)


class DraftDocument(BaseModel):
    """Saved in-progress submission for one farmer."""

    batch: BatchDraft = Field(default_factory=BatchDraft)
    claims: list[ClaimDraft] = Field(default_factory=list)

    @field_validator("claims")
    @classmethod
    def _unique_claim_ids(cls, claims: list[ClaimDraft]) -> list[ClaimDraft]:
        return ensure_unique_claim_ids(claims)


# ---------------------------------------------------------------------------
# API Request / Response Schemas
# ---------------------------------------------------------------------------


class SubmitBatchRequest(BaseModel):
    """Request body for submitting a batch with its claims."""

    batch: BatchDraft
    claims: list[ClaimDraft] = Field(default_factory=list)

    @field_validator("claims")
    @classmethod
    def _unique_claim_ids(cls, claims: list[ClaimDraft]) -> list[ClaimDraft]:
        return ensure_unique_claim_ids(claims)


class SubmissionResponse(BaseModel):
    """Result of a successful submission."""

    consumer_code: str = Field(alias="consumerCode")
    batch: Batch
    claims: list[Claim]
    credential: dict[str, Any]
    log_index: int = Field(alias="logIndex")

    model_config = ConfigDict(populate_by_name=True)
