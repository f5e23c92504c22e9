"""Sourcing request, result and queue models."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
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
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from talent_sourcing.models.base import Base, enum_values
from talent_sourcing.models.enums import (
    CandidateSourceTypeEnum,
    EnrichmentStatusEnum,
    MatchTierEnum,
    QueueJobStateEnum,
    SourcingStatusEnum,
)


class JobSourcingRequest(Base):
    """One sourcing run requested for an external job.

    At most one row per (tenant, external job, job context hash). Retries reuse
    the row rather than inserting a new one.
    """

    __tablename__ = "job_sourcing_requests"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "external_job_id",
            "job_context_hash",
            name="uq_sourcing_request_tenant_job_hash",
        ),
        Index("idx_sourcing_requests_tenant_status", "tenant_id", "status"),
    )

    id: Mapped[UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False)
    external_job_id: Mapped[str] = mapped_column(String(255), nullable=False)
    job_context_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    job_context: Mapped[dict] = mapped_column(JSONB, nullable=False)
    callback_url: Mapped[str] = mapped_column(Text, nullable=False)

    # ═══════════════════════════════════════════════════════════════════
    # STATUS & RESULTS
    # ═══════════════════════════════════════════════════════════════════
    status: Mapped[SourcingStatusEnum] = mapped_column(
        Enum(SourcingStatusEnum, name="sourcing_status_enum", values_callable=enum_values),
        nullable=False,
        default=SourcingStatusEnum.QUEUED,
    )
    result_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    quality_gate_triggered: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    queries_executed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    diagnostics: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    # ═══════════════════════════════════════════════════════════════════
    # CALLBACK DELIVERY
    # ═══════════════════════════════════════════════════════════════════
    callback_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_callback_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_reranked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class JobSourcingCandidate(Base):
    """A ranked candidate within one sourcing request's result."""

    __tablename__ = "job_sourcing_candidates"
    __table_args__ = (
        UniqueConstraint("sourcing_request_id", "candidate_id", name="uq_sourcing_request_candidate"),
        CheckConstraint(
            "fit_score IS NULL OR (fit_score >= 0 AND fit_score <= 1)",
            name="ck_sourcing_candidate_fit_score_range",
        ),
        Index("idx_sourcing_candidates_request_rank", "sourcing_request_id", "rank"),
    )

    id: Mapped[UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    sourcing_request_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("job_sourcing_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    candidate_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("candidates.id", ondelete="CASCADE"),
        nullable=False,
    )
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False)

    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    result_group: Mapped[str] = mapped_column(String(20), nullable=False)
    fit_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    fit_breakdown: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    match_tier: Mapped[MatchTierEnum | None] = mapped_column(
        Enum(MatchTierEnum, name="match_tier_enum", values_callable=enum_values), nullable=True
    )
    location_match_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    source_type: Mapped[CandidateSourceTypeEnum] = mapped_column(
        Enum(
            CandidateSourceTypeEnum,
            name="candidate_source_type_enum",
            values_callable=enum_values,
        ),
        nullable=False,
    )
    enrichment_status: Mapped[EnrichmentStatusEnum] = mapped_column(
        Enum(
            EnrichmentStatusEnum,
            name="enrichment_status_enum",
            values_callable=enum_values,
            create_type=False,
        ),
        nullable=False,
    )
    non_tech_validation: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class SourcingQueueJob(Base):
    """Unit of worker queue work. job_id equals the sourcing request id."""

    __tablename__ = "sourcing_queue_jobs"
    __table_args__ = (Index("idx_sourcing_queue_state_enqueued", "state", "enqueued_at"),)

    job_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    state: Mapped[QueueJobStateEnum] = mapped_column(
        Enum(QueueJobStateEnum, name="queue_job_state_enum", values_callable=enum_values),
        nullable=False,
        default=QueueJobStateEnum.WAITING,
    )
    payload: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    enqueued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
