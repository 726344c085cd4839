"""Consumer-facing provenance lookup."""

from __future__ import annotations

from agritrust.core.crypto.canonicalization import (
    CANONICALIZATION_RFC8785,
    SerializationError,
    compute_digest,
)
from agritrust.core.crypto.signing import SignatureVerifier
from agritrust.core.logging import get_logger
from agritrust.modules.batches.service import content_payload
from agritrust.modules.claims.schemas import ProvenanceChecks, ProvenanceReport, TrustState
from agritrust.modules.credentials.vc import inspect_credential
from agritrust.modules.lookup.service import LookupIndex
from agritrust.modules.transparency.service import TransparencyLog
from agritrust.storage.ports import Stores

logger = get_logger(__name__)


class ProvenanceService:
    """Resolves a consumer code and re-checks everything that backs it.

    Each check runs independently against stored data:

    * the stored credential's proof and its digest against the indexed
      ``vcDigest``;
    * the transparency log entry for that digest and its CID;
    * the CID recomputed from the stored batch and claims.

    The report's ``trustState`` names the first failing check in that order.
    Lookups never raise for an unknown code or a failed check.
    """

    def __init__(
        self,
        stores: Stores,
        *,
        log: TransparencyLog,
        index: LookupIndex,
        verifier: SignatureVerifier,
        canonicalization: str = CANONICALIZATION_RFC8785,
    ) -> None:
        self._stores = stores
        self._log = log
        self._index = index
        self._verifier = verifier
        self._canonicalization = canonicalization

    def _digest(self, payload: object) -> str | None:
        try:
            return compute_digest(payload, canonicalization=self._canonicalization)
        except SerializationError:
            return None

    async def lookup(self, code: str) -> ProvenanceReport:
        entry = await self._index.get(code)
        if entry is None:
            logger.info("provenance_lookup_unknown_code", consumer_code=code)
            return ProvenanceReport(
                consumer_code=code,
                trust_state=TrustState.UNKNOWN_CODE,
                errors=[f"Consumer code {code} is not registered"],
            )

        errors: list[str] = []
        batch = await self._stores.batches.get_by_id(entry.batch_id)
        claims = await self._stores.claims.get_by_batch_id(entry.batch_id) if batch else []
        if batch is None:
            errors.append(f"Batch {entry.batch_id} is missing from storage")

        # Credential
        credential = await self._stores.credentials.get(entry.vc_digest)
        signature_valid: bool | None = None
        digest_matches: bool | None = None
        if credential is None:
            errors.append("Issued credential is missing from storage")
        else:
            signature_errors = inspect_credential(credential, verifier=self._verifier)
            errors.extend(signature_errors)
            subject = credential.get("credentialSubject")
            bound_to_entry = (
                isinstance(subject, dict)
                and subject.get("cid") == entry.cid
                and subject.get("batchId") == entry.batch_id
            )
            if not bound_to_entry:
                errors.append("Credential subject does not match the indexed batch")
            signature_valid = not signature_errors and bound_to_entry
            digest_matches = self._digest(credential) == entry.vc_digest
            if not digest_matches:
                errors.append("Stored credential does not match its digest")

        # Transparency log
        consistency = await self._log.check_consistency(entry.vc_digest, entry.cid)
        log_entry = await self._log.exists(entry.vc_digest) if consistency.exists else None
        if not consistency.exists:
            errors.append("Credential digest is not in the transparency log")
        elif not consistency.consistent:
            errors.append("Transparency log entry records a different CID")

        # Content
        content_matches: bool | None = None
        if batch is not None:
            recomputed = self._digest(content_payload(batch, claims))
            content_matches = (
                recomputed == entry.cid
                and batch.cid == entry.cid
                and batch.vc_digest == entry.vc_digest
            )
            if not content_matches:
                errors.append("Stored batch content does not match its CID")

        if batch is None:
            state = TrustState.BATCH_MISSING
        elif not (signature_valid and digest_matches):
            state = TrustState.SIGNATURE_INVALID
        elif not consistency.exists:
            state = TrustState.LOG_MISSING
        elif not consistency.consistent:
            state = TrustState.LOG_INCONSISTENT
        elif not content_matches:
            state = TrustState.CONTENT_MISMATCH
        else:
            state = TrustState.VERIFIED

        log_method = logger.info if state is TrustState.VERIFIED else logger.warning
        log_method(
            "provenance_lookup",
            consumer_code=code,
            batch_id=entry.batch_id,
            trust_state=state.value,
        )

        return ProvenanceReport(
            consumer_code=code,
            trust_state=state,
            cid=entry.cid,
            vc_digest=entry.vc_digest,
            batch=batch,
            claims=claims,
            credential=credential,
            log_index=log_entry.index if log_entry is not None else None,
            checks=ProvenanceChecks(
                batch_found=batch is not None,
                signature_valid=signature_valid,
                credential_digest_matches=digest_matches,
                log=consistency,
                content_matches=content_matches,
            ),
            errors=errors,
        )
