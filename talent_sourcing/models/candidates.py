"""Candidate records and their per-track intelligence snapshots."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from talent_sourcing.models.base import Base, enum_values
from talent_sourcing.models.enums import EnrichmentStatusEnum, SnapshotTrackEnum


class Candidate(Base):
    """A sourced person, known only through search hints until enriched."""

    __tablename__ = "candidates"
    __table_args__ = (
        UniqueConstraint("tenant_id", "linkedin_id", name="uq_candidates_tenant_linkedin"),
        Index("idx_candidates_tenant_enrichment", "tenant_id", "enrichment_status"),
    )

    id: Mapped[UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False)
    linkedin_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    linkedin_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ═══════════════════════════════════════════════════════════════════
    # SEARCH HINTS (unverified, from SERP results)
    # ═══════════════════════════════════════════════════════════════════
    name_hint: Mapped[str | None] = mapped_column(Text, nullable=True)
    headline_hint: Mapped[str | None] = mapped_column(Text, nullable=True)
    location_hint: Mapped[str | None] = mapped_column(Text, nullable=True)
    company_hint: Mapped[str | None] = mapped_column(Text, nullable=True)
    search_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    search_snippet: Mapped[str | None] = mapped_column(Text, nullable=True)
    search_meta: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    # ═══════════════════════════════════════════════════════════════════
    # ENRICHMENT
    # ═══════════════════════════════════════════════════════════════════
    enrichment_status: Mapped[EnrichmentStatusEnum] = mapped_column(
        Enum(
            EnrichmentStatusEnum,
            name="enrichment_status_enum",
            values_callable=enum_values,
        ),
        nullable=False,
        default=EnrichmentStatusEnum.PENDING,
    )
    last_enriched_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # ═══════════════════════════════════════════════════════════════════
    # RANKING (denormalized from the latest sourcing run)
    # ═══════════════════════════════════════════════════════════════════
    last_fit_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_ranked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=func.now()
    )


class CandidateIntelligenceSnapshot(Base):
    """Computed profile for one candidate and track, valid until stale_after."""

    __tablename__ = "candidate_intelligence_snapshots"
    __table_args__ = (
        UniqueConstraint("candidate_id", "track", name="uq_snapshot_candidate_track"),
    )

    id: Mapped[UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    candidate_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("candidates.id", ondelete="CASCADE"),
        nullable=False,
    )
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False)
    track: Mapped[SnapshotTrackEnum] = mapped_column(
        Enum(SnapshotTrackEnum, name="snapshot_track_enum", values_callable=enum_values),
        nullable=False,
    )

    # Tech profile
    skills_normalized: Mapped[list[str] | None] = mapped_column(ARRAY(Text), nullable=True)
    role_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    seniority_band: Mapped[str | None] = mapped_column(String(50), nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Non-tech validation
    tier: Mapped[int | None] = mapped_column(Integer, nullable=True)
    overall_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    signals: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    stale_after: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
