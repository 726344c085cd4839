"""
Credential proof signers.

A proof binds ``{cid, created, issuer, batchId}`` to the issuing platform.
Two implementations share the ``Signer`` / ``SignatureVerifier`` protocols:

- ``KeyedHashSigner``: HMAC-SHA256 under a shared static secret. Anyone who
  knows the secret can forge proofs; it preserves the issue/verify shape
  without key management.
- ``Ed25519Signer``: asymmetric signatures via the ``cryptography`` library.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
from typing import Protocol, runtime_checkable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

KEYED_HASH_PROOF_TYPE = "HmacSha256Signature2024"
ED25519_PROOF_TYPE = "Ed25519Signature2020"


def proof_message(cid: str, created: str, issuer: str, batch_id: str) -> bytes:
    """Bytes covered by a credential proof.

    Raises ``UnicodeEncodeError`` when a field holds a lone surrogate.
    """
    return f"{cid}-{created}-{issuer}-{batch_id}".encode()


@runtime_checkable
class SignatureVerifier(Protocol):
    """Checks a proof value over a message."""

    proof_type: str

    def verify(self, message: bytes, signature_value: str) -> bool: ...


@runtime_checkable
class Signer(SignatureVerifier, Protocol):
    """Produces proof values; every signer can also verify its own output."""

    def sign(self, message: bytes) -> str: ...


class KeyedHashSigner:
    """HMAC-SHA256 proof under a static shared secret."""

    proof_type = KEYED_HASH_PROOF_TYPE

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("Keyed-hash signer requires a non-empty secret")
        self._key = secret.encode("utf-8")

    def sign(self, message: bytes) -> str:
        return hmac.new(self._key, message, hashlib.sha256).hexdigest()

    def verify(self, message: bytes, signature_value: str) -> bool:
        try:
            presented = signature_value.encode("utf-8")
        except UnicodeEncodeError:
            return False
        return hmac.compare_digest(self.sign(message).encode("ascii"), presented)


class Ed25519Signer:
    """Ed25519 proof; signature values are base64-encoded."""

    proof_type = ED25519_PROOF_TYPE

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._public_key = private_key.public_key()

    @classmethod
    def from_pem(cls, private_key_pem: str) -> Ed25519Signer:
        private_key = load_pem_private_key(private_key_pem.encode("utf-8"), password=None)
        if not isinstance(private_key, Ed25519PrivateKey):
            raise TypeError("Expected an Ed25519 private key")
        return cls(private_key)

    @property
    def public_key(self) -> Ed25519PublicKey:
        return self._public_key

    def public_key_pem(self) -> str:
        return self._public_key.public_bytes(
            encoding=Encoding.PEM,
            format=PublicFormat.SubjectPublicKeyInfo,
        ).decode("utf-8")

    def sign(self, message: bytes) -> str:
        return base64.b64encode(self._private_key.sign(message)).decode("utf-8")

    def verify(self, message: bytes, signature_value: str) -> bool:
        try:
            signature = base64.b64decode(signature_value, validate=True)
        except (binascii.Error, ValueError):
            return False
        try:
            self._public_key.verify(signature, message)
        except (InvalidSignature, ValueError):
            return False
        return True


def generate_ed25519_private_key_pem() -> str:
    """Generate a PEM-encoded Ed25519 private key (PKCS8, unencrypted)."""
    return (
        Ed25519PrivateKey.generate()
        .private_bytes(
            encoding=Encoding.PEM,
            format=PrivateFormat.PKCS8,
            encryption_algorithm=NoEncryption(),
        )
        .decode("utf-8")
    )
