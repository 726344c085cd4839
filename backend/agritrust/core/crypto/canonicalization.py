"""Content digests over canonical JSON.

A digest is the lowercase hex SHA-256 of a payload's canonical bytes. RFC 8785
(JCS) is used for new writes, so semantically equal payloads hash the same
regardless of key order. ``insertion-order`` reproduces compact
``JSON.stringify``-style output, which is sensitive to key order and exists
only to recompute digests produced that way.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

import rfc8785

CANONICALIZATION_RFC8785 = "rfc8785"
CANONICALIZATION_INSERTION_ORDER = "insertion-order"
SHA256_ALGORITHM = "sha-256"

DIGEST_HEX_LENGTH = 64


class SerializationError(ValueError):
    """Raised when a payload cannot be serialized for hashing."""


def canonicalize_jcs_bytes(data: Any) -> bytes:
    """Return RFC 8785 (JCS) canonical bytes."""
    try:
        canonical = rfc8785.dumps(data)
    except (rfc8785.CanonicalizationError, TypeError, ValueError) as exc:
        raise SerializationError(f"Payload is not canonicalizable: {exc}") from exc
    if isinstance(canonical, bytes):
        return canonical
    return str(canonical).encode("utf-8")


def serialize_insertion_order_bytes(data: Any) -> bytes:
    """Return compact JSON bytes that keep the payload's key order."""
    try:
        return json.dumps(
            data,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        ).encode("utf-8")
    except (TypeError, ValueError) as exc:
        # UnicodeEncodeError (lone surrogates) is a ValueError.
        raise SerializationError(f"Payload is not serializable: {exc}") from exc


def canonical_bytes(data: Any, *, canonicalization: str = CANONICALIZATION_RFC8785) -> bytes:
    if canonicalization == CANONICALIZATION_RFC8785:
        return canonicalize_jcs_bytes(data)
    if canonicalization == CANONICALIZATION_INSERTION_ORDER:
        return serialize_insertion_order_bytes(data)
    raise ValueError(f"Unsupported canonicalization mode: {canonicalization}")


def compute_digest(
    payload: Any,
    *,
    canonicalization: str = CANONICALIZATION_RFC8785,
) -> str:
    """Compute the content digest (CID) of a structured payload.

    Parameters
    ----------
    payload:
        Any JSON-compatible value: dicts with string keys, lists, strings,
        numbers, booleans and ``None``.
    canonicalization:
        ``"rfc8785"`` (default) or ``"insertion-order"``.

    Returns
    -------
    str
        64-character lowercase hex SHA-256 digest.

    Raises
    ------
    SerializationError
        If the payload contains values that cannot be serialized.
    """
    return hashlib.sha256(canonical_bytes(payload, canonicalization=canonicalization)).hexdigest()


def is_digest(value: object) -> bool:
    """Check that ``value`` looks like a digest produced by :func:`compute_digest`."""
    if not isinstance(value, str) or len(value) != DIGEST_HEX_LENGTH:
        return False
    return all(ch in "0123456789abcdef" for ch in value)
