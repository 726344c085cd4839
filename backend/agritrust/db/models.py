"""
SQLAlchemy ORM models for the Agri-Trust ledger.

Every record keeps its exact JSON document in ``payload`` (camelCase, as
hashed) so content digests can be recomputed from stored data. Scalar columns
duplicate the fields used for lookups. There are no foreign keys: references
between collections are plain identifiers checked by readers.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

DIGEST_LENGTH = 64


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        dict[str, Any]: JSON().with_variant(JSONB(), "postgresql"),
    }


class Farmer(Base):
    """Registered farmer."""

    __tablename__ = "farmers"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )


class Batch(Base):
    """Finalized produce batch."""

    __tablename__ = "batches"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    farmer_id: Mapped[str] = mapped_column(String(128), nullable=False)
    consumer_code: Mapped[str] = mapped_column(String(64), nullable=False)
    cid: Mapped[str] = mapped_column(String(DIGEST_LENGTH), nullable=False)
    vc_digest: Mapped[str] = mapped_column(String(DIGEST_LENGTH), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    __table_args__ = (Index("ix_batches_farmer_id", "farmer_id"),)


class Claim(Base):
    """Claim attached to a batch. Ids are unique within their batch."""

    __tablename__ = "claims"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    batch_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Order of the claim within its batch, as hashed",
    )
    payload: Mapped[dict[str, Any]] = mapped_column(nullable=False)

    __table_args__ = (Index("ix_claims_batch_id", "batch_id", "position"),)


class ConsumerCode(Base):
    """Lookup index: consumer code to the cryptographic record."""

    __tablename__ = "consumer_codes"

    code: Mapped[str] = mapped_column(String(64), primary_key=True)
    cid: Mapped[str] = mapped_column(String(DIGEST_LENGTH), nullable=False)
    vc_digest: Mapped[str] = mapped_column(String(DIGEST_LENGTH), nullable=False)
    batch_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )


class TransparencyLogEntry(Base):
    """Append-only, hash-linked log of credential digests."""

    __tablename__ = "transparency_log"

    position: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=False,
        comment="Zero-based index; equals the log length at append time",
    )
    digest: Mapped[str] = mapped_column(String(DIGEST_LENGTH), nullable=False)
    previous_hash: Mapped[str | None] = mapped_column(String(DIGEST_LENGTH))
    cid: Mapped[str] = mapped_column(String(DIGEST_LENGTH), nullable=False)
    timestamp: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        comment="ISO-8601 append time, stored verbatim",
    )

    __table_args__ = (Index("ix_transparency_log_digest", "digest"),)


class IssuedCredential(Base):
    """Credential as issued, keyed by its digest."""

    __tablename__ = "issued_credentials"

    vc_digest: Mapped[str] = mapped_column(String(DIGEST_LENGTH), primary_key=True)
    batch_id: Mapped[str] = mapped_column(String(64), nullable=False)
    issuer: Mapped[str] = mapped_column(String(255), nullable=False)
    # Plain JSON keeps key order, which insertion-order digests depend on.
    credential_json: Mapped[dict[str, Any]] = mapped_column(JSON(), nullable=False)


class BatchDraft(Base):
    """A farmer's in-progress batch, at most one per farmer."""

    __tablename__ = "batch_drafts"

    farmer_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    payload: Mapped[dict[str, Any]] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )


class ConsumerIssue(Base):
    """Problem reported by a consumer against a consumer code."""

    __tablename__ = "consumer_issues"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    consumer_code: Mapped[str] = mapped_column(String(64), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_consumer_issues_code", "consumer_code"),)


class Feedback(Base):
    """Feedback questionnaire answers."""

    __tablename__ = "feedback"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
