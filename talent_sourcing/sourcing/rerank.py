"""Post-enrichment rerank of completed sourcing requests.

A finished enrichment can change the fit of every completed request the
candidate was returned for. ``find_requests_to_rerank`` maps a window of
enrichment completions onto those requests, and ``rerank_request`` re-scores
all of one request's result rows from the latest candidate data and snapshots.

A rerank rewrites fit score, breakdown, match tier, enrichment status and
rank. It never changes a row's group or source type and never adds or drops
rows. Strict-location matches are ranked ahead of everyone else.
"""

import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from talent_sourcing.config import SourcingConfig
from talent_sourcing.models.enums import EnrichmentStatusEnum, SourcingStatusEnum
from talent_sourcing.repositories.base import (
    CandidateRepository,
    SnapshotStore,
    SourcingRequestStore,
)
from talent_sourcing.sourcing.orchestrator import snapshot_track_for
from talent_sourcing.sourcing.ranking import rank
from talent_sourcing.sourcing.requirements import requirements_from_job_context
from talent_sourcing.sourcing.types import ScoredCandidate, StoredResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RerankOutcome:
    request_id: str
    reranked: int = 0
    skipped_reason: str | None = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None


def data_confidence(enrichment_status: str, skill_score_method: str) -> str:
    """How much of a fit score rests on enriched data: high, medium or low."""
    enriched = enrichment_status == EnrichmentStatusEnum.COMPLETED.value
    if enriched and skill_score_method == "snapshot":
        return "high"
    if skill_score_method == "text_fallback" or enriched:
        return "medium"
    return "low"


def find_requests_to_rerank(
    candidates: CandidateRepository,
    store: SourcingRequestStore,
    *,
    after: datetime,
    until: datetime,
) -> list[str]:
    """Completed requests containing a candidate enriched in (after, until]."""
    enriched: dict[str, set[str]] = {}
    for completion in candidates.list_enriched_between(after, until):
        enriched.setdefault(completion.tenant_id, set()).add(completion.candidate_id)

    request_ids: list[str] = []
    for tenant_id in sorted(enriched):
        for request_id in store.list_requests_containing(
            tenant_id, enriched[tenant_id], SourcingStatusEnum.COMPLETE.value
        ):
            if request_id not in request_ids:
                request_ids.append(request_id)
    return request_ids


def _strict_first(scored: list[ScoredCandidate]) -> list[ScoredCandidate]:
    strict = [s for s in scored if s.match_tier == "strict_location"]
    rest = [s for s in scored if s.match_tier != "strict_location"]
    return strict + rest


def rerank_request(
    request_id: str,
    *,
    store: SourcingRequestStore,
    candidates: CandidateRepository,
    snapshots: SnapshotStore,
    config: SourcingConfig,
    now: datetime | None = None,
) -> RerankOutcome:
    """Re-score and re-rank a completed request's results in place."""
    now = now or datetime.now(UTC)
    record = store.get_request(request_id)
    if record is None or record.status != SourcingStatusEnum.COMPLETE.value:
        return RerankOutcome(request_id, skipped_reason="not_complete")
    if not isinstance(record.job_context.get("jdDigest"), str):
        logger.warning("Skipping rerank of %s: job context has no jdDigest", request_id)
        return RerankOutcome(request_id, skipped_reason="invalid_context")

    rows = store.list_results(request_id)
    if not rows:
        return RerankOutcome(request_id, skipped_reason="no_candidates")

    pool = candidates.get_candidates([row.candidate_id for row in rows])
    found = snapshots.get_snapshots(
        [c.candidate_id for c in pool], snapshot_track_for(record.track_decision)
    )
    for candidate in pool:
        candidate.snapshot = found.get(candidate.candidate_id)
    status_by_id = {c.candidate_id: c.enrichment_status for c in pool}

    requirements = requirements_from_job_context(record.job_context)
    ordered = _strict_first(
        rank(pool, requirements, now=now, epsilon=config.fit_score_epsilon)
    )

    row_by_id = {row.candidate_id: row for row in rows}
    updated: list[StoredResult] = []
    for scored in ordered:
        row = row_by_id[scored.candidate_id]
        enrichment_status = status_by_id[scored.candidate_id]
        breakdown = scored.fit_breakdown.to_dict()
        breakdown["dataConfidence"] = data_confidence(
            enrichment_status, scored.fit_breakdown.skill_score_method
        )
        updated.append(
            replace(
                row,
                rank=len(updated) + 1,
                fit_score=scored.fit_score,
                fit_breakdown=breakdown,
                match_tier=scored.match_tier,
                location_match_type=scored.location_match_type,
                enrichment_status=enrichment_status,
            )
        )
    # Rows whose candidate no longer exists keep their scores and go last
    rescored = {row.candidate_id for row in updated}
    for row in rows:
        if row.candidate_id not in rescored:
            updated.append(replace(row, rank=len(updated) + 1))

    store.replace_results(request_id, record.tenant_id, updated)
    store.update_request(request_id, last_reranked_at=now)
    logger.info("Reranked %d candidates for sourcing request %s", len(ordered), request_id)
    return RerankOutcome(request_id, reranked=len(ordered))
