"""One sourcing run: rank the known pool, top it up via discovery, assemble.

The orchestrator reads from the stores and the discovery provider but never
touches the sourcing request's status; the worker owns persistence of the
outcome and every status transition.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Protocol

from talent_sourcing.config import NonTechConfig, SourcingConfig
from talent_sourcing.models.enums import EnrichmentStatusEnum, JobTrackEnum, SnapshotTrackEnum
from talent_sourcing.repositories.base import (
    CandidateRepository,
    SnapshotStore,
    SourcingRequestStore,
)
from talent_sourcing.sourcing.non_tech import extract_non_tech_signals, score_non_tech
from talent_sourcing.sourcing.novelty import NoveltyFilter
from talent_sourcing.sourcing.pool import (
    assemble_pool,
    evaluate_quality_gate,
    plan_discovery,
    settle_discovery,
)
from talent_sourcing.sourcing.ranking import rank
from talent_sourcing.sourcing.types import (
    AssembledCandidate,
    CandidateForRanking,
    DiscoveryResult,
    JobRequirements,
    SourcingDiagnostics,
    SourcingRequestRecord,
    TrackDecision,
)

logger = logging.getLogger(__name__)

POOL_LOAD_LIMIT = 2000


class DiscoveryProvider(Protocol):
    """Finds new candidates for a job and registers them as pending."""

    def discover(
        self,
        tenant_id: str,
        requirements: JobRequirements,
        *,
        target_count: int,
        max_queries: int,
    ) -> DiscoveryResult: ...


@dataclass(frozen=True)
class SnapshotFreshness:
    fresh: int = 0
    stale: int = 0
    missing: int = 0


@dataclass
class SourcingOutcome:
    entries: list[AssembledCandidate]
    diagnostics: SourcingDiagnostics
    queries_executed: int
    quality_gate_triggered: bool
    fit_scores: dict[str, float] = field(default_factory=dict)

    @property
    def enriched_count(self) -> int:
        return sum(
            1 for e in self.entries if e.enrichment_status == EnrichmentStatusEnum.COMPLETED.value
        )


def snapshot_freshness(candidates: list[CandidateForRanking], now: datetime) -> SnapshotFreshness:
    fresh = stale = missing = 0
    for candidate in candidates:
        if candidate.snapshot is None:
            missing += 1
        elif candidate.snapshot.is_stale(now):
            stale += 1
        else:
            fresh += 1
    return SnapshotFreshness(fresh=fresh, stale=stale, missing=missing)


def snapshot_track_for(track_decision: TrackDecision | None) -> str:
    """Snapshot track scored for a job track; tech unless the job is non-tech."""
    if track_decision is not None and track_decision.track == JobTrackEnum.NON_TECH.value:
        return SnapshotTrackEnum.NON_TECH.value
    return SnapshotTrackEnum.TECH.value


def _start_of_day(now: datetime) -> datetime:
    return datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)


class SourcingOrchestrator:
    def __init__(
        self,
        candidates: CandidateRepository,
        snapshots: SnapshotStore,
        requests: SourcingRequestStore,
        discovery: DiscoveryProvider,
        config: SourcingConfig,
        non_tech_config: NonTechConfig,
        novelty: NoveltyFilter | None = None,
    ):
        self.candidates = candidates
        self.snapshots = snapshots
        self.requests = requests
        self.discovery = discovery
        self.config = config
        self.non_tech_config = non_tech_config
        self.novelty = novelty

    def _serp_allowance(self, tenant_id: str, now: datetime) -> tuple[int, bool]:
        """Queries this run may spend and whether the tenant's daily cap is exhausted."""
        cap = self.config.daily_serp_cap_per_tenant
        if cap <= 0:
            return self.config.max_serp_queries, False
        used = self.requests.count_serp_queries_since(tenant_id, _start_of_day(now))
        remaining = cap - used
        if remaining <= 0:
            return 0, True
        return min(self.config.max_serp_queries, remaining), False

    def run(
        self,
        record: SourcingRequestRecord,
        requirements: JobRequirements,
        track_decision: TrackDecision,
        *,
        now: datetime,
    ) -> SourcingOutcome:
        config = self.config
        tenant_id = record.tenant_id

        pool = self.candidates.load_pool(tenant_id, POOL_LOAD_LIMIT)
        snapshots = self.snapshots.get_snapshots(
            [c.candidate_id for c in pool], snapshot_track_for(track_decision)
        )
        for candidate in pool:
            candidate.snapshot = snapshots.get(candidate.candidate_id)
        freshness = snapshot_freshness(pool, now)

        ranked = rank(pool, requirements, now=now, epsilon=config.fit_score_epsilon)
        enriched_count = sum(1 for c in pool if c.is_enriched)

        # Discovery
        plan = plan_discovery(len(pool), enriched_count, config)
        discovery = DiscoveryResult(candidate_ids=[])
        serp_cap_reached = False
        discovery_error = None
        if plan.discovery_target > 0:
            max_queries, serp_cap_reached = self._serp_allowance(tenant_id, now)
            if serp_cap_reached:
                logger.warning("Daily SERP cap reached for tenant %s, skipping discovery", tenant_id)
            else:
                try:
                    discovery = self.discovery.discover(
                        tenant_id,
                        requirements,
                        target_count=plan.discovery_target,
                        max_queries=max_queries,
                    )
                except Exception as e:
                    logger.exception("Discovery failed for request %s", record.id)
                    discovery_error = f"{type(e).__name__}: {e}"
        budget = settle_discovery(plan, len(discovery.candidate_ids), config.target_count)
        discovered_ids = discovery.candidate_ids[: budget.discovered_count]

        # Novelty
        exposed: set[str] = set()
        if config.novelty_enabled and self.novelty is not None:
            exposed = self.novelty.exposed_ids(
                tenant_id, requirements.role_family, requirements.location, now=now
            )

        candidates_by_id = {c.candidate_id: c for c in pool}
        assembly = assemble_pool(ranked, candidates_by_id, discovered_ids, exposed, config)

        tier_counts = None
        if track_decision.track == JobTrackEnum.NON_TECH.value and self.non_tech_config.enabled:
            tier_counts = self._score_non_tech(assembly.entries, candidates_by_id, tenant_id, now)

        gate = evaluate_quality_gate(
            [e.fit_score for e in assembly.entries if e.fit_score is not None],
            config,
            budget.shortfall_rate,
        )

        diagnostics = SourcingDiagnostics(
            track_decision=track_decision,
            pool_size=len(pool),
            enriched_count=enriched_count,
            discovery_mode=budget.mode,
            discovery_target=budget.discovery_target,
            discovered_count=budget.discovered_count,
            discovery_shortfall_rate=round(budget.shortfall_rate, 4),
            serp_cap_reached=serp_cap_reached,
            queries_executed=discovery.queries_executed,
            discovery_error=discovery_error,
            best_matches_count=assembly.best_matches_count,
            broader_pool_count=assembly.broader_pool_count,
            strict_rescue_count=assembly.strict_rescue_count,
            demoted_strict_count=assembly.demoted_strict_count,
            novelty_exposed_count=len(exposed),
            novelty_suppressed_count=assembly.novelty_suppressed_count,
            snapshot_fresh_count=freshness.fresh,
            snapshot_stale_count=freshness.stale,
            snapshot_missing_count=freshness.missing,
            quality_gate=gate,
            non_tech_tier_counts=tier_counts,
        )
        logger.info(
            "Assembled %d candidates for %s (best=%d, broader=%d, discovered=%d, gate=%s)",
            len(assembly.entries),
            record.id,
            assembly.best_matches_count,
            assembly.broader_pool_count,
            assembly.discovered_count,
            ",".join(gate.reasons) or "ok",
        )
        return SourcingOutcome(
            entries=assembly.entries,
            diagnostics=diagnostics,
            queries_executed=discovery.queries_executed,
            quality_gate_triggered=gate.triggered,
            fit_scores={s.candidate_id: s.fit_score for s in ranked},
        )

    def _score_non_tech(
        self,
        entries: list[AssembledCandidate],
        candidates_by_id: dict[str, CandidateForRanking],
        tenant_id: str,
        now: datetime,
    ) -> dict[str, int]:
        """Attach non-tech scores to known candidates and refresh their snapshots."""
        tier_counts = {"1": 0, "2": 0, "3": 0}
        stale_after = now + timedelta(days=self.config.snapshot_stale_days)
        for entry in entries:
            candidate = candidates_by_id.get(entry.candidate_id)
            if candidate is None:
                continue
            signals = extract_non_tech_signals(candidate, self.non_tech_config, now=now)
            entry.non_tech = score_non_tech(signals, self.non_tech_config)
            tier_counts[str(entry.non_tech.tier)] += 1
            self.snapshots.upsert_non_tech_snapshot(
                entry.candidate_id, tenant_id, entry.non_tech, signals, now, stale_after
            )
        return tier_counts
