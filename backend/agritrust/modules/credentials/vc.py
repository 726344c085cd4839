"""Verifiable Credential issuance and verification for finalized batches."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from agritrust.core.config import Settings
from agritrust.core.crypto.canonicalization import CANONICALIZATION_RFC8785, compute_digest
from agritrust.core.crypto.signing import (
    Ed25519Signer,
    KeyedHashSigner,
    SignatureVerifier,
    Signer,
    proof_message,
)
from agritrust.modules.credentials.schemas import (
    CredentialProof,
    CredentialSubject,
    VCVerifyResponse,
    VerifiableCredential,
)

DID_PREFIX = "did:agritrust:"
VERIFICATION_KEY_FRAGMENT = "key1"


@dataclass(frozen=True)
class IssuedCredential:
    """A credential together with its digest (the log's primary key)."""

    credential: dict[str, Any]
    vc_digest: str


def issuer_did(farmer_id: str) -> str:
    return f"{DID_PREFIX}{farmer_id}"


def batch_subject_did(batch_id: str) -> str:
    return f"{DID_PREFIX}batch:{batch_id}"


def build_signer(settings: Settings) -> Signer:
    """Build the proof signer selected by ``credential_signer``."""
    if settings.credential_signer == "ed25519":
        return Ed25519Signer.from_pem(settings.credential_signing_key)
    return KeyedHashSigner(settings.credential_secret.get_secret_value())


# ------------------------------------------------------------------
# Issuance
# ------------------------------------------------------------------


def issue_credential(
    cid: str,
    farmer_id: str,
    batch_id: str,
    *,
    signer: Signer,
    now: datetime | None = None,
    canonicalization: str = CANONICALIZATION_RFC8785,
) -> IssuedCredential:
    """Issue a credential binding a content digest to its batch and issuer.

    The proof covers ``{cid, created, issuer, batchId}``; ``created`` is the
    issuance timestamp and is stored in the credential, so the proof can be
    recomputed from the credential alone.
    """
    created = (now or datetime.now(UTC)).isoformat()
    issuer = issuer_did(farmer_id)
    signature_value = signer.sign(proof_message(cid, created, issuer, batch_id))

    vc = VerifiableCredential(
        id=f"urn:uuid:{uuid.uuid4()}",
        issuer=issuer,
        issuance_date=created,
        credential_subject=CredentialSubject(
            id=batch_subject_did(batch_id),
            cid=cid,
            batch_id=batch_id,
            farmer_id=farmer_id,
        ),
        proof=CredentialProof(
            type=signer.proof_type,
            created=created,
            verification_method=f"{issuer}#{VERIFICATION_KEY_FRAGMENT}",
            signature_value=signature_value,
        ),
    )
    credential = vc.model_dump(by_alias=True)
    return IssuedCredential(
        credential=credential,
        vc_digest=compute_digest(credential, canonicalization=canonicalization),
    )


# ------------------------------------------------------------------
# Verification
# ------------------------------------------------------------------


def _str_field(source: Any, key: str) -> str | None:
    if not isinstance(source, Mapping):
        return None
    value = source.get(key)
    return value if isinstance(value, str) and value else None


def _is_utf8(value: str) -> bool:
    # JSON input may carry lone surrogates (``"\ud800"``) that cannot be encoded.
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _text_field(source: Any, key: str) -> str | None:
    value = _str_field(source, key)
    return value if value is not None and _is_utf8(value) else None


def inspect_credential(
    credential: Any,
    *,
    verifier: SignatureVerifier,
) -> list[str]:
    """Return the reasons a credential fails verification (empty when valid).

    Never raises: malformed input is reported, not thrown.
    """
    proof = credential.get("proof") if isinstance(credential, Mapping) else None
    subject = credential.get("credentialSubject") if isinstance(credential, Mapping) else None

    fields = (
        ("proof.signatureValue", _str_field(proof, "signatureValue")),
        ("proof.created", _str_field(proof, "created")),
        ("issuer", _str_field(credential, "issuer")),
        ("credentialSubject.cid", _str_field(subject, "cid")),
        ("credentialSubject.batchId", _str_field(subject, "batchId")),
    )
    missing = [name for name, value in fields if value is None]
    if missing:
        return [f"Missing '{name}'" for name in missing]
    invalid = [name for name, value in fields if value is not None and not _is_utf8(value)]
    if invalid:
        return [f"Invalid text in '{name}'" for name in invalid]

    signature_value, created, issuer, cid, batch_id = (value for _, value in fields)
    assert signature_value and created and issuer and cid and batch_id
    if not verifier.verify(proof_message(cid, created, issuer, batch_id), signature_value):
        return ["Signature does not match credential contents"]
    return []


def verify_credential(credential: Any, *, verifier: SignatureVerifier) -> bool:
    """Verify a credential's proof against its own visible fields.

    Fails closed: returns ``False`` when required fields are absent.
    """
    return not inspect_credential(credential, verifier=verifier)


def verification_response(
    credential: dict[str, Any],
    *,
    verifier: SignatureVerifier,
    canonicalization: str = CANONICALIZATION_RFC8785,
) -> VCVerifyResponse:
    """Build the public verification response for a submitted credential."""
    errors = inspect_credential(credential, verifier=verifier)
    subject = credential.get("credentialSubject")
    try:
        vc_digest: str | None = compute_digest(credential, canonicalization=canonicalization)
    except ValueError:
        vc_digest = None
        errors.append("Credential cannot be canonicalized")
    return VCVerifyResponse(
        valid=not errors,
        errors=errors,
        issuer_did=_text_field(credential, "issuer"),
        subject_id=_text_field(subject, "id"),
        vc_digest=vc_digest,
    )
