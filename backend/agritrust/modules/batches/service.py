"""
Batch submission orchestration and farmer drafts.

A submission finalizes the farmer's batch, content-addresses it together with
its claims, issues a credential over that digest, records the credential
digest in the transparency log and finally makes the batch reachable through
a consumer code.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from agritrust.core.crypto.canonicalization import CANONICALIZATION_RFC8785, compute_digest
from agritrust.core.crypto.signing import Signer
from agritrust.core.logging import get_logger
from agritrust.modules.batches.schemas import (
    Batch,
    BatchDraft,
    Claim,
    ClaimDraft,
    DraftDocument,
    ensure_unique_claim_ids,
)
from agritrust.modules.credentials.vc import issue_credential
from agritrust.modules.farmers.schemas import Farmer, Location
from agritrust.modules.farmers.service import FarmerNotFoundError
from agritrust.modules.lookup.service import LookupIndex
from agritrust.modules.transparency.service import TransparencyLog
from agritrust.storage.ports import Stores

logger = get_logger(__name__)

DEFAULT_PRODUCT_NAME = "Unknown Product"
DEFAULT_VARIETY = "Unknown Variety"
NOT_SPECIFIED = "Not specified"
DEFAULT_SOIL_PH = 7.0

# Batch fields that record the outcome of hashing and are therefore not hashed.
_DERIVED_BATCH_FIELDS = {"cid", "vc_digest"}


@dataclass(frozen=True)
class SubmissionResult:
    """Everything produced by one successful submission."""

    consumer_code: str
    batch: Batch
    claims: list[Claim]
    credential: dict[str, Any]
    log_index: int


def content_payload(batch: Batch, claims: Sequence[Claim]) -> dict[str, Any]:
    """The document whose digest is the batch CID.

    Built from the serialized records, so it can be rebuilt from storage and
    compared against the CID bound into the credential.
    """
    return {
        "batch": batch.model_dump(mode="json", by_alias=True, exclude=_DERIVED_BATCH_FIELDS),
        "claims": [claim.model_dump(mode="json", by_alias=True) for claim in claims],
    }


def finalize_batch(
    draft: BatchDraft,
    farmer: Farmer,
    *,
    batch_id: str,
    consumer_code: str,
    now: datetime,
) -> Batch:
    """Fill every unset draft field with its default and bind the farmer."""
    timestamp = now.isoformat()

    def _or(value: Any, default: Any) -> Any:
        return default if value is None else value

    return Batch(
        id=batch_id,
        farmer_id=farmer.id,
        farmer_name=farmer.name,
        location=draft.location or farmer.location or Location(),
        product_name=draft.product_name or DEFAULT_PRODUCT_NAME,
        variety=draft.variety or DEFAULT_VARIETY,
        harvest_date=draft.harvest_date or now.date().isoformat(),
        soil_type_texture=draft.soil_type_texture or NOT_SPECIFIED,
        nitrogen_level=_or(draft.nitrogen_level, 0),
        phosphorus_level=_or(draft.phosphorus_level, 0),
        potassium_level=_or(draft.potassium_level, 0),
        micronutrients=draft.micronutrients or NOT_SPECIFIED,
        soil_ph=_or(draft.soil_ph, DEFAULT_SOIL_PH),
        humidity=_or(draft.humidity, 0),
        temperature=_or(draft.temperature, 0),
        inputs_used=list(draft.inputs_used or []),
        certifications=list(draft.certifications or []),
        lot_size=draft.lot_size or NOT_SPECIFIED,
        processing_steps=draft.processing_steps,
        storage_transport_notes=draft.storage_transport_notes,
        consumer_code=consumer_code,
        created_at=timestamp,
        updated_at=timestamp,
    )


def finalize_claims(drafts: Sequence[ClaimDraft], *, batch_id: str, now: datetime) -> list[Claim]:
    timestamp = now.isoformat()
    return [
        Claim(
            id=draft.id or str(uuid.uuid4()),
            batch_id=batch_id,
            type=draft.type,
            description=draft.description,
            evidence=list(draft.evidence),
            status=draft.status,
            created_at=draft.created_at or timestamp,
            updated_at=timestamp,
        )
        for draft in drafts
    ]


class SubmissionService:
    """Runs a batch submission end to end."""

    def __init__(
        self,
        stores: Stores,
        *,
        log: TransparencyLog,
        index: LookupIndex,
        signer: Signer,
        canonicalization: str = CANONICALIZATION_RFC8785,
    ) -> None:
        self._stores = stores
        self._log = log
        self._index = index
        self._signer = signer
        self._canonicalization = canonicalization

    async def submit_batch(
        self,
        batch_draft: BatchDraft,
        claim_drafts: Sequence[ClaimDraft],
        farmer_id: str,
    ) -> SubmissionResult:
        """Finalize, hash, credential, log and index a batch.

        The consumer code is reserved before any durable write and released
        if any later step fails. The code index is written last, so a failed
        submission is never reachable by code. Claims sharing an id raise
        ``ValueError`` before a code is reserved.
        """
        ensure_unique_claim_ids(list(claim_drafts))
        consumer_code = await self._index.generate_code()
        try:
            result = await self._submit(consumer_code, batch_draft, claim_drafts, farmer_id)
        except Exception:
            self._index.release(consumer_code)
            logger.exception(
                "batch_submission_failed", farmer_id=farmer_id, consumer_code=consumer_code
            )
            raise

        logger.info(
            "batch_submitted",
            farmer_id=farmer_id,
            batch_id=result.batch.id,
            consumer_code=consumer_code,
            cid=result.batch.cid,
            vc_digest=result.batch.vc_digest,
            log_index=result.log_index,
        )
        return result

    async def _submit(
        self,
        consumer_code: str,
        batch_draft: BatchDraft,
        claim_drafts: Sequence[ClaimDraft],
        farmer_id: str,
    ) -> SubmissionResult:
        farmer = await self._stores.farmers.get_by_id(farmer_id)
        if farmer is None:
            raise FarmerNotFoundError(farmer_id)

        now = datetime.now(UTC)
        batch_id = str(uuid.uuid4())
        batch = finalize_batch(
            batch_draft, farmer, batch_id=batch_id, consumer_code=consumer_code, now=now
        )
        claims = finalize_claims(claim_drafts, batch_id=batch_id, now=now)

        cid = compute_digest(
            content_payload(batch, claims), canonicalization=self._canonicalization
        )
        issued = issue_credential(
            cid,
            farmer.id,
            batch_id,
            signer=self._signer,
            now=now,
            canonicalization=self._canonicalization,
        )
        log_index = await self._log.append(issued.vc_digest, cid)

        batch = batch.model_copy(update={"cid": cid, "vc_digest": issued.vc_digest})
        await self._stores.credentials.add(issued.vc_digest, issued.credential)
        await self._stores.batches.add(batch)
        for claim in claims:
            await self._stores.claims.add(claim)
        await self._index.put(consumer_code, cid, issued.vc_digest, batch_id)

        await self._stores.drafts.clear(farmer.id)

        return SubmissionResult(
            consumer_code=consumer_code,
            batch=batch,
            claims=claims,
            credential=issued.credential,
            log_index=log_index,
        )


class DraftService:
    """Save, load and discard a farmer's in-progress submission."""

    def __init__(self, stores: Stores) -> None:
        self._stores = stores

    async def _require_farmer(self, farmer_id: str) -> None:
        if not await self._stores.farmers.exists(farmer_id):
            raise FarmerNotFoundError(farmer_id)

    async def save(self, farmer_id: str, draft: DraftDocument) -> DraftDocument:
        await self._require_farmer(farmer_id)
        await self._stores.drafts.save(farmer_id, draft)
        logger.debug("batch_draft_saved", farmer_id=farmer_id, claims=len(draft.claims))
        return draft

    async def get(self, farmer_id: str) -> DraftDocument | None:
        await self._require_farmer(farmer_id)
        return await self._stores.drafts.get(farmer_id)

    async def clear(self, farmer_id: str) -> None:
        await self._require_farmer(farmer_id)
        await self._stores.drafts.clear(farmer_id)
