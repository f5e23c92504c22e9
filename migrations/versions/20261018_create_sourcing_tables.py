"""Create sourcing tables.

Revision ID: 20261018_sourcing
Revises:
Create Date: 2026-10-18

Creates the candidate pool, per-track intelligence snapshots, sourcing
requests with their ranked results, and the worker queue table.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "20261018_sourcing"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ENUMS = {
    "sourcing_status_enum": ("queued", "running", "complete", "failed", "callback_failed"),
    "snapshot_track_enum": ("tech", "non-tech"),
    "enrichment_status_enum": ("pending", "in_progress", "completed", "failed"),
    "match_tier_enum": ("strict_location", "expanded_location"),
    "candidate_source_type_enum": ("existing", "discovered"),
    "queue_job_state_enum": ("waiting", "active", "completed", "failed"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamp(name: str, nullable: bool = True, now_default: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=sa.func.now() if now_default else None,
    )


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "candidates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", sa.String(255), nullable=False),
        sa.Column("linkedin_id", sa.String(255), nullable=True),
        sa.Column("linkedin_url", sa.Text(), nullable=True),
        sa.Column("name_hint", sa.Text(), nullable=True),
        sa.Column("headline_hint", sa.Text(), nullable=True),
        sa.Column("location_hint", sa.Text(), nullable=True),
        sa.Column("company_hint", sa.Text(), nullable=True),
        sa.Column("search_title", sa.Text(), nullable=True),
        sa.Column("search_snippet", sa.Text(), nullable=True),
        sa.Column("search_meta", postgresql.JSONB(), nullable=True),
        sa.Column(
            "enrichment_status",
            _enum("enrichment_status_enum"),
            nullable=False,
            server_default="pending",
        ),
        _timestamp("last_enriched_at"),
        sa.Column("last_fit_score", sa.Float(), nullable=True),
        _timestamp("last_ranked_at"),
        _timestamp("created_at", now_default=True),
        _timestamp("updated_at"),
        sa.UniqueConstraint("tenant_id", "linkedin_id", name="uq_candidates_tenant_linkedin"),
    )
    op.create_index(
        "idx_candidates_tenant_enrichment", "candidates", ["tenant_id", "enrichment_status"]
    )

    op.create_table(
        "candidate_intelligence_snapshots",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "candidate_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("candidates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("tenant_id", sa.String(255), nullable=False),
        sa.Column("track", _enum("snapshot_track_enum"), nullable=False),
        sa.Column("skills_normalized", postgresql.ARRAY(sa.Text()), nullable=True),
        sa.Column("role_type", sa.Text(), nullable=True),
        sa.Column("seniority_band", sa.String(50), nullable=True),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("tier", sa.Integer(), nullable=True),
        sa.Column("overall_score", sa.Float(), nullable=True),
        sa.Column("signals", postgresql.JSONB(), nullable=True),
        _timestamp("computed_at", nullable=False, now_default=True),
        _timestamp("stale_after"),
        sa.UniqueConstraint("candidate_id", "track", name="uq_snapshot_candidate_track"),
    )

    op.create_table(
        "job_sourcing_requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", sa.String(255), nullable=False),
        sa.Column("external_job_id", sa.String(255), nullable=False),
        sa.Column("job_context_hash", sa.String(64), nullable=False),
        sa.Column("job_context", postgresql.JSONB(), nullable=False),
        sa.Column("callback_url", sa.Text(), nullable=False),
        sa.Column(
            "status", _enum("sourcing_status_enum"), nullable=False, server_default="queued"
        ),
        sa.Column("result_count", sa.Integer(), nullable=True),
        sa.Column("quality_gate_triggered", sa.Boolean(), nullable=True),
        sa.Column("queries_executed", sa.Integer(), nullable=True),
        sa.Column("diagnostics", postgresql.JSONB(), nullable=True),
        sa.Column("callback_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_callback_error", sa.Text(), nullable=True),
        _timestamp("requested_at", nullable=False, now_default=True),
        _timestamp("completed_at"),
        sa.UniqueConstraint(
            "tenant_id",
            "external_job_id",
            "job_context_hash",
            name="uq_sourcing_request_tenant_job_hash",
        ),
    )
    op.create_index(
        "idx_sourcing_requests_tenant_status", "job_sourcing_requests", ["tenant_id", "status"]
    )

    op.create_table(
        "job_sourcing_candidates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "sourcing_request_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("job_sourcing_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "candidate_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("candidates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("tenant_id", sa.String(255), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("result_group", sa.String(20), nullable=False),
        sa.Column("fit_score", sa.Float(), nullable=True),
        sa.Column("fit_breakdown", postgresql.JSONB(), nullable=True),
        sa.Column("match_tier", _enum("match_tier_enum"), nullable=True),
        sa.Column("location_match_type", sa.String(20), nullable=True),
        sa.Column("source_type", _enum("candidate_source_type_enum"), nullable=False),
        sa.Column("enrichment_status", _enum("enrichment_status_enum"), nullable=False),
        sa.Column("non_tech_validation", postgresql.JSONB(), nullable=True),
        _timestamp("created_at", now_default=True),
        sa.UniqueConstraint(
            "sourcing_request_id", "candidate_id", name="uq_sourcing_request_candidate"
        ),
        sa.CheckConstraint(
            "fit_score IS NULL OR (fit_score >= 0 AND fit_score <= 1)",
            name="ck_sourcing_candidate_fit_score_range",
        ),
    )
    op.create_index(
        "idx_sourcing_candidates_request_rank",
        "job_sourcing_candidates",
        ["sourcing_request_id", "rank"],
    )

    op.create_table(
        "sourcing_queue_jobs",
        sa.Column("job_id", sa.String(64), primary_key=True),
        sa.Column(
            "state", _enum("queue_job_state_enum"), nullable=False, server_default="waiting"
        ),
        sa.Column("payload", postgresql.JSONB(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error", sa.Text(), nullable=True),
        _timestamp("enqueued_at", nullable=False, now_default=True),
        _timestamp("started_at"),
        _timestamp("finished_at"),
    )
    op.create_index(
        "idx_sourcing_queue_state_enqueued", "sourcing_queue_jobs", ["state", "enqueued_at"]
    )


def downgrade() -> None:
    op.drop_index("idx_sourcing_queue_state_enqueued", table_name="sourcing_queue_jobs")
    op.drop_table("sourcing_queue_jobs")
    op.drop_index("idx_sourcing_candidates_request_rank", table_name="job_sourcing_candidates")
    op.drop_table("job_sourcing_candidates")
    op.drop_index("idx_sourcing_requests_tenant_status", table_name="job_sourcing_requests")
    op.drop_table("job_sourcing_requests")
    op.drop_table("candidate_intelligence_snapshots")
    op.drop_index("idx_candidates_tenant_enrichment", table_name="candidates")
    op.drop_table("candidates")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
