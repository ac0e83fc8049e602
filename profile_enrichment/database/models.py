"""SQLAlchemy models for all database tables."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    ForeignKey,
    String,
    Text,
    TIMESTAMP,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from profile_enrichment.core.database import Base


class Subject(Base):
    """The person whose profile is ingested and enriched.

    Subject CRUD belongs to the directory service; this table is read here.
    The legacy_* columns hold provider payloads written before per-source
    raw records existed.
    """

    __tablename__ = "subjects"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    current_role: Mapped[str | None] = mapped_column(String, nullable=True)
    target_role: Mapped[str | None] = mapped_column(String, nullable=True)
    company_name: Mapped[str | None] = mapped_column(String, nullable=True)
    legacy_provider_a_data: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    legacy_provider_b_data: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=datetime.utcnow
    )

    # Relationships
    raw_records: Mapped[list["RawDataRecord"]] = relationship(
        "RawDataRecord", back_populates="subject", cascade="all, delete-orphan"
    )
    enrichment: Mapped["EnrichmentResult | None"] = relationship(
        "EnrichmentResult", back_populates="subject", cascade="all, delete-orphan", uselist=False
    )


class RawDataRecord(Base):
    """One payload per (subject, source); upserts replace data wholesale."""

    __tablename__ = "raw_data_records"
    __table_args__ = (
        UniqueConstraint("subject_id", "source", name="uq_raw_data_subject_source"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    subject_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    source: Mapped[str] = mapped_column(
        String, nullable=False
    )  # document | manual | provider_a | provider_b | merged
    data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=datetime.utcnow
    )

    subject: Mapped["Subject"] = relationship("Subject", back_populates="raw_records")


class EnrichmentResult(Base):
    """One-time enrichment output for a subject.

    A row in status "enriching" is a claim; claimed_at bounds its lease.
    completed=True is terminal.
    """

    __tablename__ = "enrichment_results"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    subject_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="enriching"
    )  # enriching | completed
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    project_summaries: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    value_statement: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    claimed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=datetime.utcnow
    )

    subject: Mapped["Subject"] = relationship("Subject", back_populates="enrichment")
