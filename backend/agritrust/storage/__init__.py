"""Storage ports and their in-memory and SQL implementations."""

from agritrust.storage.memory import build_memory_stores
from agritrust.storage.ports import (
    BatchStore,
    ClaimStore,
    CodeIndexStore,
    ConsumerIssueStore,
    CredentialStore,
    DraftStore,
    DuplicateKeyError,
    FarmerStore,
    FeedbackStore,
    Stores,
    TransparencyLogStore,
)
from agritrust.storage.sql import build_sql_stores

__all__ = [
    "Stores",
    "DuplicateKeyError",
    "FarmerStore",
    "BatchStore",
    "ClaimStore",
    "DraftStore",
    "CodeIndexStore",
    "TransparencyLogStore",
    "CredentialStore",
    "ConsumerIssueStore",
    "FeedbackStore",
    "build_memory_stores",
    "build_sql_stores",
]
