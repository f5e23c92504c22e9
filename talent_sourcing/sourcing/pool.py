"""Discovery budget, pool assembly and the aggregate quality gate.

Budget modes:
- none: the known pool already reaches target_count
- aggressive: fewer than min_good_enough enriched candidates; discovery is
  capped at job_max_enrich so a weak pool cannot trigger runaway enrichment
- decent: enough enriched candidates; discovery fills the whole deficit
"""

import math
from dataclasses import dataclass, field

from talent_sourcing.config import SourcingConfig
from talent_sourcing.models.enums import CandidateSourceTypeEnum, EnrichmentStatusEnum
from talent_sourcing.sourcing.types import (
    AssembledCandidate,
    CandidateForRanking,
    QualityGateReport,
    ScoredCandidate,
)

NOVELTY_EXEMPT_FRACTION = 0.10


# ═══════════════════════════════════════════════════════════════════
# DISCOVERY BUDGET
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class DiscoveryPlan:
    pool_size: int
    enriched_count: int
    pool_deficit: int
    mode: str
    discovery_target: int


@dataclass(frozen=True)
class DiscoveryBudget:
    pool_size: int
    enriched_count: int
    pool_deficit: int
    mode: str
    discovery_target: int
    discovered_count: int
    assembled_count: int
    shortfall_rate: float


def plan_discovery(pool_size: int, enriched_count: int, config: SourcingConfig) -> DiscoveryPlan:
    """Decide how many new candidates to ask the discovery provider for."""
    pool_deficit = config.target_count - pool_size
    if pool_deficit <= 0:
        return DiscoveryPlan(pool_size, enriched_count, pool_deficit, "none", 0)
    if enriched_count < config.min_good_enough:
        return DiscoveryPlan(
            pool_size,
            enriched_count,
            pool_deficit,
            "aggressive",
            min(pool_deficit, config.job_max_enrich),
        )
    return DiscoveryPlan(pool_size, enriched_count, pool_deficit, "decent", pool_deficit)


def settle_discovery(plan: DiscoveryPlan, actual_yield: int, target_count: int) -> DiscoveryBudget:
    """Combine a plan with what discovery actually returned."""
    discovered = min(plan.discovery_target, max(0, actual_yield))
    if plan.discovery_target > 0:
        shortfall_rate = (plan.discovery_target - discovered) / plan.discovery_target
    else:
        shortfall_rate = 0.0
    return DiscoveryBudget(
        pool_size=plan.pool_size,
        enriched_count=plan.enriched_count,
        pool_deficit=plan.pool_deficit,
        mode=plan.mode,
        discovery_target=plan.discovery_target,
        discovered_count=discovered,
        assembled_count=min(plan.pool_size + discovered, target_count),
        shortfall_rate=shortfall_rate,
    )


def compute_discovery_budget(
    pool_size: int,
    enriched_count: int,
    actual_yield: int,
    config: SourcingConfig,
) -> DiscoveryBudget:
    plan = plan_discovery(pool_size, enriched_count, config)
    return settle_discovery(plan, actual_yield, config.target_count)


# ═══════════════════════════════════════════════════════════════════
# QUALITY GATE
# ═══════════════════════════════════════════════════════════════════


def evaluate_quality_gate(
    fit_scores: list[float],
    config: SourcingConfig,
    shortfall_rate: float = 0.0,
) -> QualityGateReport:
    """Flag a weak result set. Never blocks the response; reasons are recorded."""
    top_k = sorted(fit_scores, reverse=True)[: config.quality_top_k]
    reasons = []

    if not top_k:
        return QualityGateReport(
            triggered=True,
            discovery_shortfall_rate=round(shortfall_rate, 4),
            reasons=["empty_pool"],
        )

    avg_fit = sum(top_k) / len(top_k)
    count_above = sum(1 for s in top_k if s >= config.quality_threshold)

    if avg_fit < config.quality_min_avg_fit:
        reasons.append("low_avg_fit")
    if count_above < min(config.quality_min_count_above, len(top_k)):
        reasons.append("few_above_threshold")
    if shortfall_rate > config.quality_max_shortfall_rate:
        reasons.append("high_discovery_shortfall")

    return QualityGateReport(
        triggered=bool(reasons),
        top_k_size=len(top_k),
        avg_fit_top_k=round(avg_fit, 4),
        count_above_threshold=count_above,
        discovery_shortfall_rate=round(shortfall_rate, 4),
        reasons=reasons,
    )


# ═══════════════════════════════════════════════════════════════════
# ASSEMBLY
# ═══════════════════════════════════════════════════════════════════


@dataclass
class PoolAssembly:
    entries: list[AssembledCandidate] = field(default_factory=list)
    best_matches_count: int = 0
    broader_pool_count: int = 0
    discovered_count: int = 0
    strict_rescue_count: int = 0
    demoted_strict_count: int = 0
    novelty_suppressed_count: int = 0


def novelty_exempt_ids(ranked: list[ScoredCandidate]) -> set[str]:
    """Ids in the top 10% of the ranked pool, which novelty never suppresses."""
    if not ranked:
        return set()
    count = max(1, math.ceil(len(ranked) * NOVELTY_EXEMPT_FRACTION))
    return {s.candidate_id for s in ranked[:count]}


def _enriched_first(
    scored: list[ScoredCandidate], candidates: dict[str, CandidateForRanking]
) -> list[ScoredCandidate]:
    # stable sort keeps rank order within each half
    def _key(s: ScoredCandidate) -> int:
        candidate = candidates.get(s.candidate_id)
        return 0 if candidate is not None and candidate.is_enriched else 1

    return sorted(scored, key=_key)


def assemble_pool(
    ranked: list[ScoredCandidate],
    candidates: dict[str, CandidateForRanking],
    discovered_ids: list[str],
    exposed_ids: set[str],
    config: SourcingConfig,
) -> PoolAssembly:
    """Build the final ordered result: best matches, broader pool, then discovered.

    Strict-location candidates (or every candidate when the job has no location
    constraint) at or above best_matches_min_fit_score are best matches; strict
    candidates below it are demoted to the broader pool. If nothing qualifies,
    a few strict candidates above strict_rescue_min_fit_score are rescued.
    Recently exposed candidates are dropped from the broader pool and the
    discovered tail unless they are in the top 10% of the ranking.
    """
    eligible = [s for s in ranked if s.match_tier in ("strict_location", None)]
    best = [s for s in eligible if s.fit_score >= config.best_matches_min_fit_score]
    demoted = [
        s
        for s in eligible
        if s.match_tier == "strict_location" and s.fit_score < config.best_matches_min_fit_score
    ]

    rescued: list[ScoredCandidate] = []
    if not best and demoted and config.strict_rescue_count > 0:
        rescued = [s for s in demoted if s.fit_score >= config.strict_rescue_min_fit_score][
            : config.strict_rescue_count
        ]
        rescued_ids = {s.candidate_id for s in rescued}
        demoted = [s for s in demoted if s.candidate_id not in rescued_ids]
        best = rescued

    in_best = {s.candidate_id for s in best}
    demoted_ids = {s.candidate_id for s in demoted}
    broader = [
        s
        for s in ranked
        if s.candidate_id not in in_best
        and (s.match_tier in ("expanded_location", None) or s.candidate_id in demoted_ids)
    ]

    exempt = novelty_exempt_ids(ranked)
    suppressed = 0
    kept_broader = []
    for s in broader:
        if s.candidate_id in exposed_ids and s.candidate_id not in exempt:
            suppressed += 1
            continue
        kept_broader.append(s)

    seen = {s.candidate_id for s in ranked}
    discovered = []
    for candidate_id in discovered_ids:
        if candidate_id in seen:
            continue
        seen.add(candidate_id)
        if candidate_id in exposed_ids:
            suppressed += 1
            continue
        discovered.append(candidate_id)

    assembly = PoolAssembly(
        strict_rescue_count=len(rescued),
        demoted_strict_count=len(demoted),
        novelty_suppressed_count=suppressed,
    )

    ordered: list[tuple[str, ScoredCandidate]] = [
        ("best_matches", s) for s in _enriched_first(best, candidates)
    ] + [("broader_pool", s) for s in _enriched_first(kept_broader, candidates)]

    for group, scored in ordered:
        if len(assembly.entries) >= config.target_count:
            break
        candidate = candidates.get(scored.candidate_id)
        assembly.entries.append(
            AssembledCandidate(
                candidate_id=scored.candidate_id,
                rank=len(assembly.entries) + 1,
                group=group,
                source_type=CandidateSourceTypeEnum.EXISTING.value,
                enrichment_status=(
                    candidate.enrichment_status if candidate else EnrichmentStatusEnum.PENDING.value
                ),
                scored=scored,
            )
        )
        if group == "best_matches":
            assembly.best_matches_count += 1
        else:
            assembly.broader_pool_count += 1

    for candidate_id in discovered:
        if len(assembly.entries) >= config.target_count:
            break
        assembly.entries.append(
            AssembledCandidate(
                candidate_id=candidate_id,
                rank=len(assembly.entries) + 1,
                group="discovered",
                source_type=CandidateSourceTypeEnum.DISCOVERED.value,
                enrichment_status=EnrichmentStatusEnum.PENDING.value,
            )
        )
        assembly.discovered_count += 1

    return assembly
