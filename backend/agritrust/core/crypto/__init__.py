"""
Cryptographic provenance primitives.

Pure library modules for tamper-evident integrity:
- **canonicalization**: canonical JSON and SHA-256 content digests
- **signing**: keyed-hash and Ed25519 credential proof signers
- **hash_chain**: transparency-log linkage verification
"""

from agritrust.core.crypto.canonicalization import (
    CANONICALIZATION_INSERTION_ORDER,
    CANONICALIZATION_RFC8785,
    SHA256_ALGORITHM,
    SerializationError,
    canonical_bytes,
    compute_digest,
    is_digest,
)
from agritrust.core.crypto.hash_chain import (
    ChainVerificationResult,
    verify_hash_chain,
    verify_link,
)
from agritrust.core.crypto.signing import (
    ED25519_PROOF_TYPE,
    KEYED_HASH_PROOF_TYPE,
    Ed25519Signer,
    KeyedHashSigner,
    SignatureVerifier,
    Signer,
    generate_ed25519_private_key_pem,
    proof_message,
)

__all__ = [
    "CANONICALIZATION_RFC8785",
    "CANONICALIZATION_INSERTION_ORDER",
    "SHA256_ALGORITHM",
    "SerializationError",
    "canonical_bytes",
    "compute_digest",
    "is_digest",
    "ChainVerificationResult",
    "verify_hash_chain",
    "verify_link",
    "ED25519_PROOF_TYPE",
    "KEYED_HASH_PROOF_TYPE",
    "Ed25519Signer",
    "KeyedHashSigner",
    "SignatureVerifier",
    "Signer",
    "generate_ed25519_private_key_pem",
    "proof_message",
]
