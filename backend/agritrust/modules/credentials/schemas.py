"""Pydantic schemas for batch Verifiable Credentials."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

CREDENTIALS_CONTEXT_V1 = "https://www.w3.org/2018/credentials/v1"


class CredentialSubject(BaseModel):
    """Subject of a batch credential: the batch and its content digest."""

    id: str  # did:agritrust:batch:{batch_id}
    cid: str
    batch_id: str = Field(alias="batchId")
    farmer_id: str = Field(alias="farmerId")

    model_config = ConfigDict(populate_by_name=True)


class CredentialProof(BaseModel):
    """Proof block; ``signature_value`` comes from the configured signer."""

    type: str
    created: str
    verification_method: str = Field(alias="verificationMethod")
    proof_purpose: str = Field(alias="proofPurpose", default="assertionMethod")
    signature_value: str = Field(alias="signatureValue")

    model_config = ConfigDict(populate_by_name=True)


class VerifiableCredential(BaseModel):
    """W3C Verifiable Credential Data Model 1.1 shape."""

    context: list[str] = Field(
        alias="@context",
        default=[CREDENTIALS_CONTEXT_V1],
    )
    type: list[str] = [
        "VerifiableCredential",
        "AgriTrustBatchCredential",
    ]
    id: str
    issuer: str
    issuance_date: str = Field(alias="issuanceDate")
    credential_subject: CredentialSubject = Field(alias="credentialSubject")
    proof: CredentialProof

    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# API Request / Response Schemas
# ---------------------------------------------------------------------------


class VCVerifyRequest(BaseModel):
    """Request body for verifying a credential."""

    credential: dict[str, Any]


class VCVerifyResponse(BaseModel):
    """Response from credential verification."""

    valid: bool
    errors: list[str] = []
    issuer_did: str | None = None
    subject_id: str | None = None
    vc_digest: str | None = None
