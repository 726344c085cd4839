"""Database package."""

from agritrust.db.models import (
    Base,
    Batch,
    BatchDraft,
    Claim,
    ConsumerCode,
    ConsumerIssue,
    Farmer,
    Feedback,
    IssuedCredential,
    TransparencyLogEntry,
)
from agritrust.db.session import close_db, init_db, session_scope

__all__ = [
    "init_db",
    "close_db",
    "session_scope",
    "Base",
    "Farmer",
    "Batch",
    "Claim",
    "ConsumerCode",
    "TransparencyLogEntry",
    "IssuedCredential",
    "BatchDraft",
    "ConsumerIssue",
    "Feedback",
]
