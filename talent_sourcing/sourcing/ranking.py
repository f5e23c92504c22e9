"""Deterministic fit ranking of candidates against job requirements.

Pure functions only: no database access, no clock reads beyond the ``now``
argument default. Safe to call from any worker thread.

Scoring (each component 0-1):
- skill: matched fraction of required skills (whole-word, case-insensitive),
  against a fresh snapshot when one exists, else the free-text hints
- role: role-family agreement between the job and the candidate's title text
- seniority: ladder distance 0 -> 1.0, 1 -> 0.5, otherwise 0
- location: city/alias/country match against the job location
- freshness: age of the most recent enrichment or snapshot

The weighted sum uses one of two fixed weight sets depending on whether the
job carries a usable location constraint.
"""

import functools
import logging
import re
from collections.abc import Iterable
from datetime import UTC, datetime

from talent_sourcing.errors import MalformedSnapshotError
from talent_sourcing.sourcing.types import (
    CandidateForRanking,
    CandidateSnapshot,
    FitBreakdown,
    JobRequirements,
    ScoredCandidate,
)
from talent_sourcing.taxonomy.location import (
    is_location_constraint,
    is_noisy_location,
    match_location,
)
from talent_sourcing.taxonomy.role_family import (
    ROLE_FAMILIES,
    detect_role_family,
    matches_role_family,
)
from talent_sourcing.taxonomy.seniority import (
    normalize_seniority,
    normalize_seniority_from_text,
    seniority_distance,
)
from talent_sourcing.taxonomy.skills import skill_in_list, skill_in_text

logger = logging.getLogger(__name__)

DEFAULT_FIT_EPSILON = 0.03

WEIGHTS_WITH_LOCATION = {
    "skill": 0.40,
    "role": 0.10,
    "seniority": 0.20,
    "location": 0.20,
    "freshness": 0.10,
}
WEIGHTS_WITHOUT_LOCATION = {
    "skill": 0.45,
    "role": 0.15,
    "seniority": 0.25,
    "location": 0.0,
    "freshness": 0.15,
}

NEUTRAL_SCORE = 0.5
UNKNOWN_SENIORITY_SCORE = 0.3
UNKNOWN_ROLE_SCORE = 0.3

# (max age in days, score); anything older, or never enriched, gets FRESHNESS_FLOOR
FRESHNESS_TIERS: list[tuple[int, float]] = [(30, 1.0), (90, 0.7), (180, 0.4)]
FRESHNESS_FLOOR = 0.1
SECONDS_PER_DAY = 86400


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def usable_snapshot(candidate: CandidateForRanking, now: datetime) -> CandidateSnapshot | None:
    """The candidate's snapshot when present and not past staleAfter."""
    snapshot = candidate.snapshot
    if snapshot is None:
        return None
    if snapshot.stale_after is not None:
        if not isinstance(snapshot.stale_after, datetime):
            raise MalformedSnapshotError(f"stale_after is {type(snapshot.stale_after).__name__}")
        if _as_utc(snapshot.stale_after) <= now:
            return None
    return snapshot


def _snapshot_skills(snapshot: CandidateSnapshot) -> list[str]:
    skills = snapshot.skills_normalized
    if skills is None:
        return []
    if not isinstance(skills, (list, tuple)) or not all(isinstance(s, str) for s in skills):
        raise MalformedSnapshotError("skills_normalized must be a list of strings")
    return [s for s in skills if s.strip()]


# ═══════════════════════════════════════════════════════════════════
# COMPONENT SCORES
# ═══════════════════════════════════════════════════════════════════


def compute_skill_score(
    top_skills: Iterable[str],
    candidate: CandidateForRanking,
    snapshot: CandidateSnapshot | None,
) -> tuple[float, str]:
    required = [s for s in top_skills if s.strip()]
    snapshot_skills = _snapshot_skills(snapshot) if snapshot is not None else []

    if snapshot_skills:
        method = "snapshot"
        matched = sum(1 for skill in required if skill_in_list(skill, snapshot_skills))
    else:
        method = "text_fallback"
        text = candidate.text_bag()
        matched = sum(1 for skill in required if skill_in_text(skill, text))

    if not required:
        return NEUTRAL_SCORE, method
    return min(1.0, matched / len(required)), method


def compute_seniority_score(
    target: str | None,
    candidate: CandidateForRanking,
    snapshot: CandidateSnapshot | None,
) -> float:
    target_band = normalize_seniority(target)
    if target_band is None:
        return NEUTRAL_SCORE

    band = None
    if snapshot is not None and snapshot.seniority_band is not None:
        if not isinstance(snapshot.seniority_band, str):
            raise MalformedSnapshotError("seniority_band must be a string")
        band = normalize_seniority(snapshot.seniority_band)
    if band is None:
        band = normalize_seniority_from_text(candidate.text_bag())
    if band is None:
        return UNKNOWN_SENIORITY_SCORE

    distance = seniority_distance(target_band, band)
    if distance == 0:
        return 1.0
    if distance == 1:
        return 0.5
    return 0.0


def compute_freshness_score(
    candidate: CandidateForRanking,
    now: datetime,
) -> float:
    timestamps = []
    if candidate.last_enriched_at is not None:
        timestamps.append(_as_utc(candidate.last_enriched_at))
    if candidate.snapshot is not None and candidate.snapshot.computed_at is not None:
        computed_at = candidate.snapshot.computed_at
        if not isinstance(computed_at, datetime):
            raise MalformedSnapshotError("computed_at must be a datetime")
        timestamps.append(_as_utc(computed_at))
    if not timestamps:
        return FRESHNESS_FLOOR

    age_days = max(0.0, (now - max(timestamps)).total_seconds() / SECONDS_PER_DAY)
    for max_age, score in FRESHNESS_TIERS:
        if age_days <= max_age:
            return score
    return FRESHNESS_FLOOR


def compute_location_score(
    target: str | None,
    candidate: CandidateForRanking,
    snapshot: CandidateSnapshot | None,
) -> tuple[float, str | None, str | None]:
    """Return (score, location_match_type, match_tier).

    Jobs without a usable location get (0.0, None, None); the location weight
    is zero for them.
    """
    if not is_location_constraint(target):
        return 0.0, None, None

    location = None
    if snapshot is not None and isinstance(snapshot.location, str):
        if not is_noisy_location(snapshot.location):
            location = snapshot.location
    if location is None:
        location = candidate.location_hint

    match = match_location(target, location)
    tier = "strict_location" if match.score >= 1.0 else "expanded_location"
    return match.score, match.match_type, tier


_TOKEN = re.compile(r"[a-z0-9+#]+")


def compute_role_score(
    role_family: str | None,
    candidate: CandidateForRanking,
    snapshot: CandidateSnapshot | None,
) -> float:
    if not role_family:
        return NEUTRAL_SCORE

    parts = [candidate.headline_hint, candidate.search_title, candidate.search_snippet]
    if snapshot is not None and isinstance(snapshot.role_type, str):
        parts.insert(0, snapshot.role_type)
    text = " ".join(p for p in parts if p)

    if role_family in ROLE_FAMILIES:
        if matches_role_family(role_family, text):
            return 1.0
        if detect_role_family(text) is not None:
            return 0.0
        return UNKNOWN_ROLE_SCORE

    # Free-text family label ("Software Engineer"): token overlap
    wanted = {t for t in _TOKEN.findall(role_family.lower()) if len(t) > 2}
    if not wanted:
        return NEUTRAL_SCORE
    present = set(_TOKEN.findall(text.lower()))
    return len(wanted & present) / len(wanted)


# ═══════════════════════════════════════════════════════════════════
# CANDIDATE SCORING
# ═══════════════════════════════════════════════════════════════════


def _score(
    candidate: CandidateForRanking,
    requirements: JobRequirements,
    snapshot: CandidateSnapshot | None,
    now: datetime,
) -> ScoredCandidate:
    skill_score, method = compute_skill_score(requirements.top_skills, candidate, snapshot)
    role_score = compute_role_score(requirements.role_family, candidate, snapshot)
    seniority_score = compute_seniority_score(requirements.seniority_level, candidate, snapshot)
    location_score, location_match_type, match_tier = compute_location_score(
        requirements.location, candidate, snapshot
    )
    freshness_score = compute_freshness_score(candidate, now)

    weights = WEIGHTS_WITH_LOCATION if match_tier is not None else WEIGHTS_WITHOUT_LOCATION
    fit_score = (
        weights["skill"] * skill_score
        + weights["role"] * role_score
        + weights["seniority"] * seniority_score
        + weights["location"] * location_score
        + weights["freshness"] * freshness_score
    )

    return ScoredCandidate(
        candidate_id=candidate.candidate_id,
        fit_score=round(min(1.0, max(0.0, fit_score)), 4),
        fit_breakdown=FitBreakdown(
            skill_score=round(skill_score, 4),
            skill_score_method=method,
            role_score=round(role_score, 4),
            seniority_score=seniority_score,
            activity_freshness_score=freshness_score,
            location_score=location_score,
        ),
        match_tier=match_tier,
        location_match_type=location_match_type,
    )


def score_candidate(
    candidate: CandidateForRanking,
    requirements: JobRequirements,
    now: datetime | None = None,
) -> ScoredCandidate:
    """Score one candidate. A malformed snapshot degrades to text-only scoring."""
    now = now or datetime.now(UTC)
    try:
        return _score(candidate, requirements, usable_snapshot(candidate, now), now)
    except (MalformedSnapshotError, TypeError, AttributeError, ValueError) as e:
        logger.warning(
            "Malformed snapshot for candidate %s, scoring from text hints: %s",
            candidate.candidate_id,
            e,
        )
        text_only = CandidateForRanking(
            candidate_id=candidate.candidate_id,
            headline_hint=candidate.headline_hint,
            search_title=candidate.search_title,
            search_snippet=candidate.search_snippet,
            location_hint=candidate.location_hint,
            company_hint=candidate.company_hint,
            enrichment_status=candidate.enrichment_status,
            last_enriched_at=candidate.last_enriched_at,
            snapshot=None,
            search_meta=candidate.search_meta,
        )
        return _score(text_only, requirements, None, now)


def compare_fit_with_confidence(
    a: ScoredCandidate,
    b: ScoredCandidate,
    epsilon: float = 0.0,
) -> int:
    """Order two scored candidates; negative means ``a`` ranks first.

    Outside epsilon the higher fit score wins. Within epsilon a snapshot-based
    skill score beats a text fallback, then ascending candidate id decides.
    """
    delta = a.fit_score - b.fit_score
    if abs(delta) > epsilon:
        return -1 if delta > 0 else 1

    a_snapshot = a.fit_breakdown.skill_score_method == "snapshot"
    b_snapshot = b.fit_breakdown.skill_score_method == "snapshot"
    if a_snapshot != b_snapshot:
        return -1 if a_snapshot else 1

    if a.candidate_id < b.candidate_id:
        return -1
    if a.candidate_id > b.candidate_id:
        return 1
    return 0


def rank(
    candidates: Iterable[CandidateForRanking],
    requirements: JobRequirements,
    *,
    now: datetime | None = None,
    epsilon: float = DEFAULT_FIT_EPSILON,
) -> list[ScoredCandidate]:
    """Score every candidate and sort best-first with deterministic tie-breaks."""
    now = now or datetime.now(UTC)
    scored = [score_candidate(c, requirements, now) for c in candidates]
    # Pre-sort by id so the non-transitive epsilon comparison sees a stable input order
    scored.sort(key=lambda s: s.candidate_id)
    scored.sort(key=functools.cmp_to_key(lambda a, b: compare_fit_with_confidence(a, b, epsilon)))
    return scored
