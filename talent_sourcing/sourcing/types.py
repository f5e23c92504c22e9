"""Value types passed between the sourcing pipeline stages.

Hot-path scoring types are plain dataclasses. Anything persisted as JSON on the
sourcing request (track decision, diagnostics) is a pydantic model with camelCase
aliases, so stored blobs and API responses share one shape.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from talent_sourcing.models.enums import EnrichmentStatusEnum

Track = Literal["tech", "non_tech"]
SkillScoreMethod = Literal["snapshot", "text_fallback"]
MatchTier = Literal["strict_location", "expanded_location"]
LocationMatchType = Literal["city_exact", "city_alias", "country_only", "none"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ═══════════════════════════════════════════════════════════════════
# REQUIREMENTS
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class JobRequirements:
    top_skills: tuple[str, ...] = ()
    seniority_level: str | None = None
    domain: str | None = None
    role_family: str | None = None
    location: str | None = None
    experience_years: float | None = None
    education: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "topSkills": list(self.top_skills),
            "seniorityLevel": self.seniority_level,
            "domain": self.domain,
            "roleFamily": self.role_family,
            "location": self.location,
            "experienceYears": self.experience_years,
            "education": self.education,
        }


# ═══════════════════════════════════════════════════════════════════
# TRACK DECISION
# ═══════════════════════════════════════════════════════════════════


class TrackSignals(_CamelModel):
    tech_score: float = 0.0
    non_tech_score: float = 0.0
    matched_tech: list[str] = Field(default_factory=list)
    matched_non_tech: list[str] = Field(default_factory=list)
    role_family: str | None = None


class TrackDecision(_CamelModel):
    """Versioned, persisted classification of a job as tech or non_tech."""

    track: Track
    confidence: float = Field(ge=0.0, le=1.0)
    method: Literal["hint", "classifier", "default"]
    classifier_version: str
    hint_source: str | None = None
    hint_reason: str | None = None
    signals: TrackSignals | None = None
    resolved_at: datetime | None = None


# ═══════════════════════════════════════════════════════════════════
# CANDIDATES & SCORES
# ═══════════════════════════════════════════════════════════════════


@dataclass
class CandidateSnapshot:
    """Enrichment output for one candidate and track."""

    skills_normalized: list[str] = field(default_factory=list)
    role_type: str | None = None
    seniority_band: str | None = None
    location: str | None = None
    computed_at: datetime | None = None
    stale_after: datetime | None = None

    def is_stale(self, now: datetime) -> bool:
        return self.stale_after is not None and self.stale_after <= now


@dataclass
class CandidateForRanking:
    candidate_id: str
    headline_hint: str | None = None
    search_title: str | None = None
    search_snippet: str | None = None
    location_hint: str | None = None
    company_hint: str | None = None
    enrichment_status: str = EnrichmentStatusEnum.PENDING.value
    last_enriched_at: datetime | None = None
    snapshot: CandidateSnapshot | None = None
    search_meta: dict[str, Any] | None = None

    @property
    def is_enriched(self) -> bool:
        return self.enrichment_status == EnrichmentStatusEnum.COMPLETED.value

    def text_bag(self) -> str:
        return " ".join(
            part for part in (self.headline_hint, self.search_title, self.search_snippet) if part
        )


@dataclass(frozen=True)
class FitBreakdown:
    skill_score: float
    skill_score_method: SkillScoreMethod
    role_score: float
    seniority_score: float
    activity_freshness_score: float
    location_score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "skillScore": self.skill_score,
            "skillScoreMethod": self.skill_score_method,
            "roleScore": self.role_score,
            "seniorityScore": self.seniority_score,
            "activityFreshnessScore": self.activity_freshness_score,
            "locationScore": self.location_score,
        }


@dataclass(frozen=True)
class ScoredCandidate:
    candidate_id: str
    fit_score: float
    fit_breakdown: FitBreakdown
    match_tier: MatchTier | None = None
    location_match_type: LocationMatchType | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidateId": self.candidate_id,
            "fitScore": self.fit_score,
            "fitBreakdown": self.fit_breakdown.to_dict(),
            "matchTier": self.match_tier,
            "locationMatchType": self.location_match_type,
        }


# ═══════════════════════════════════════════════════════════════════
# NON-TECH VALIDATION
# ═══════════════════════════════════════════════════════════════════


@dataclass
class CompanyAlignment:
    corroboration_count: int = 0
    sources: list[str] = field(default_factory=list)


@dataclass
class SeniorityValidation:
    normalized_band: str | None = None
    confidence: float = 0.0
    sources: list[str] = field(default_factory=list)


@dataclass
class FreshnessSignal:
    last_validated_at: datetime | None = None
    age_days: int | None = None
    stale: bool = True


@dataclass
class SerpContext:
    result_date: str | None = None
    age_days: int | None = None
    location_consistency: Literal["match", "mismatch", "unknown"] = "unknown"


@dataclass
class Contradictions:
    count: int = 0
    details: list[str] = field(default_factory=list)


@dataclass
class NonTechSignals:
    company_alignment: CompanyAlignment = field(default_factory=CompanyAlignment)
    seniority_validation: SeniorityValidation = field(default_factory=SeniorityValidation)
    freshness: FreshnessSignal = field(default_factory=FreshnessSignal)
    serp_context: SerpContext = field(default_factory=SerpContext)
    contradictions: Contradictions = field(default_factory=Contradictions)


@dataclass(frozen=True)
class NonTechGateResults:
    corroboration: bool
    contradictions: bool
    freshness: bool
    seniority_confidence: bool
    score_floor: bool

    def to_dict(self) -> dict[str, bool]:
        return {
            "corroboration": self.corroboration,
            "contradictions": self.contradictions,
            "freshness": self.freshness,
            "seniorityConfidence": self.seniority_confidence,
            "scoreFloor": self.score_floor,
        }


@dataclass(frozen=True)
class NonTechScore:
    tier: Literal[1, 2, 3]
    overall_score: float
    top_reasons: list[str]
    gate_results: NonTechGateResults

    def to_dict(self) -> dict[str, Any]:
        return {
            "tier": self.tier,
            "overallScore": self.overall_score,
            "topReasons": list(self.top_reasons),
            "gateResults": self.gate_results.to_dict(),
        }


# ═══════════════════════════════════════════════════════════════════
# POOL ASSEMBLY
# ═══════════════════════════════════════════════════════════════════


@dataclass
class AssembledCandidate:
    candidate_id: str
    rank: int
    group: Literal["best_matches", "broader_pool", "discovered"]
    source_type: str
    enrichment_status: str
    scored: ScoredCandidate | None = None
    non_tech: NonTechScore | None = None

    @property
    def fit_score(self) -> float | None:
        return self.scored.fit_score if self.scored else None


class QualityGateReport(_CamelModel):
    triggered: bool
    top_k_size: int = 0
    avg_fit_top_k: float = 0.0
    count_above_threshold: int = 0
    discovery_shortfall_rate: float = 0.0
    reasons: list[str] = Field(default_factory=list)


class SourcingDiagnostics(_CamelModel):
    """Typed diagnostics blob stored on a sourcing request.

    Every counter is optional so rows written by older workers still load.
    Unknown keys are kept on round-trip.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    kind: Literal["sourcing_diagnostics"] = "sourcing_diagnostics"
    version: int = 1
    track_decision: TrackDecision | None = None

    pool_size: int | None = None
    enriched_count: int | None = None
    discovery_mode: Literal["none", "aggressive", "decent"] | None = None
    discovery_target: int | None = None
    discovered_count: int | None = None
    discovery_shortfall_rate: float | None = None
    serp_cap_reached: bool | None = None
    queries_executed: int | None = None
    discovery_error: str | None = None

    best_matches_count: int | None = None
    broader_pool_count: int | None = None
    strict_rescue_count: int | None = None
    demoted_strict_count: int | None = None
    novelty_exposed_count: int | None = None
    novelty_suppressed_count: int | None = None

    snapshot_fresh_count: int | None = None
    snapshot_stale_count: int | None = None
    snapshot_missing_count: int | None = None

    quality_gate: QualityGateReport | None = None
    non_tech_tier_counts: dict[str, int] | None = None

    error: str | None = None
    failed_at: datetime | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> "SourcingDiagnostics":
        return cls.model_validate(data or {})

    def reset_for_retry(self) -> "SourcingDiagnostics":
        """Drop run counters and errors, keeping the persisted track decision."""
        return SourcingDiagnostics(track_decision=self.track_decision)


# ═══════════════════════════════════════════════════════════════════
# REQUEST RECORD
# ═══════════════════════════════════════════════════════════════════


@dataclass
class SourcingRequestRecord:
    id: str
    tenant_id: str
    external_job_id: str
    job_context_hash: str
    job_context: dict[str, Any]
    callback_url: str
    status: str
    requested_at: datetime
    diagnostics: SourcingDiagnostics = field(default_factory=SourcingDiagnostics)
    result_count: int | None = None
    quality_gate_triggered: bool | None = None
    queries_executed: int | None = None
    callback_attempts: int = 0
    last_callback_error: str | None = None
    completed_at: datetime | None = None
    last_reranked_at: datetime | None = None

    @property
    def track_decision(self) -> TrackDecision | None:
        return self.diagnostics.track_decision


@dataclass
class StoredResult:
    """A persisted result row, as read back for the results endpoint."""

    candidate_id: str
    rank: int
    group: str
    source_type: str
    enrichment_status: str
    fit_score: float | None = None
    fit_breakdown: dict[str, Any] | None = None
    match_tier: str | None = None
    location_match_type: str | None = None
    non_tech_validation: dict[str, Any] | None = None

    @classmethod
    def from_assembled(cls, entry: AssembledCandidate) -> "StoredResult":
        scored = entry.scored
        return cls(
            candidate_id=entry.candidate_id,
            rank=entry.rank,
            group=entry.group,
            source_type=entry.source_type,
            enrichment_status=entry.enrichment_status,
            fit_score=scored.fit_score if scored else None,
            fit_breakdown=scored.fit_breakdown.to_dict() if scored else None,
            match_tier=scored.match_tier if scored else None,
            location_match_type=scored.location_match_type if scored else None,
            non_tech_validation=entry.non_tech.to_dict() if entry.non_tech else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidateId": self.candidate_id,
            "rank": self.rank,
            "group": self.group,
            "sourceType": self.source_type,
            "enrichmentStatus": self.enrichment_status,
            "fitScore": self.fit_score,
            "fitBreakdown": self.fit_breakdown,
            "matchTier": self.match_tier,
            "locationMatchType": self.location_match_type,
            "nonTechValidation": self.non_tech_validation,
        }


@dataclass(frozen=True)
class EnrichmentCompletion:
    tenant_id: str
    candidate_id: str
    enriched_at: datetime


@dataclass(frozen=True)
class DiscoveryResult:
    candidate_ids: list[str]
    queries_executed: int = 0
