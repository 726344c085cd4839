"""Public (unauthenticated) endpoint for credential verification."""

from __future__ import annotations

from fastapi import APIRouter

from agritrust.core.dependencies import Runtime
from agritrust.modules.credentials.schemas import VCVerifyRequest, VCVerifyResponse
from agritrust.modules.credentials.vc import verification_response

router = APIRouter()


@router.post("/credentials/verify", response_model=VCVerifyResponse)
async def public_verify_credential(body: VCVerifyRequest, runtime: Runtime) -> VCVerifyResponse:
    """Check a credential's proof against its own fields (no auth required)."""
    return verification_response(
        body.credential,
        verifier=runtime.signer,
        canonicalization=runtime.settings.digest_canonicalization,
    )
