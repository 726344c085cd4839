"""
Hash-chain linkage verification for the transparency log.

Each log entry carries ``previousHash``, the ``digest`` of the entry before it
(``None`` for the first entry). Verification walks the sequence and reports the
first position where the index or the linkage breaks. These are pure functions
operating on entry dicts, decoupled from storage.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ChainVerificationResult:
    """Result of verifying a hash chain.

    Attributes
    ----------
    is_valid:
        ``True`` if the entire chain is intact.
    verified_count:
        Number of entries successfully verified.
    first_break_at:
        Zero-based position where the chain first broke, or ``None``.
    errors:
        Human-readable descriptions of integrity violations.
    """

    is_valid: bool = True
    verified_count: int = 0
    first_break_at: int | None = None
    errors: list[str] = field(default_factory=list)

    def fail(self, position: int, message: str) -> ChainVerificationResult:
        self.is_valid = False
        if self.first_break_at is None:
            self.first_break_at = position
        self.errors.append(message)
        return self


def verify_link(entry: Mapping[str, Any], previous: Mapping[str, Any] | None) -> bool:
    """Check a single entry's ``previousHash`` against its predecessor."""
    expected_prev = previous.get("digest") if previous is not None else None
    return entry.get("previousHash") == expected_prev


def verify_hash_chain(entries: Iterable[Mapping[str, Any]]) -> ChainVerificationResult:
    """Verify index continuity and ``previousHash`` linkage of log entries.

    Parameters
    ----------
    entries:
        Entries in log order, as camelCase dicts with ``index``, ``digest``
        and ``previousHash``.

    Returns
    -------
    ChainVerificationResult
        Detailed verification outcome; stops at the first break.
    """
    result = ChainVerificationResult()
    previous: Mapping[str, Any] | None = None

    for position, entry in enumerate(entries):
        digest = entry.get("digest")
        if not digest:
            return result.fail(position, f"Entry at position {position}: missing digest")

        if entry.get("index") != position:
            return result.fail(
                position,
                f"Entry at position {position}: index mismatch "
                f"(stored={entry.get('index')!r}, expected={position!r})",
            )

        if not verify_link(entry, previous):
            expected_prev = previous.get("digest") if previous is not None else None
            return result.fail(
                position,
                f"Entry at position {position}: previousHash mismatch "
                f"(stored={entry.get('previousHash')!r}, expected={expected_prev!r})",
            )

        result.verified_count += 1
        previous = entry

    return result
