"""Add last_reranked_at column to job_sourcing_requests.

Revision ID: 20261018_reranked_at
Revises: 20261018_sourcing
Create Date: 2026-10-18

Records when a completed request's results were last re-scored after
candidate enrichment.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "20261018_reranked_at"
down_revision: str | None = "20261018_sourcing"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.add_column(
        "job_sourcing_requests",
        sa.Column("last_reranked_at", sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_column("job_sourcing_requests", "last_reranked_at")
