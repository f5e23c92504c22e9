"""Job track resolution: tech vs non_tech.

A caller hint of ``tech`` or ``non_tech`` wins outright. Otherwise a keyword
classifier scores the title, digest, top skills, domain and role family.
The resulting decision is persisted on the sourcing request once and reused on
every idempotent replay, even after TRACK_CLASSIFIER_VERSION changes.
"""

import logging
import re
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from talent_sourcing.config import SourcingConfig
from talent_sourcing.sourcing.types import JobRequirements, TrackDecision, TrackSignals
from talent_sourcing.taxonomy.role_family import ROLE_FAMILIES, detect_role_family

logger = logging.getLogger(__name__)

STRONG = 1.0
MODERATE = 0.5
ROLE_FAMILY_BOOST = 2.0
DEFAULT_CONFIDENCE = 0.30

TECH_KEYWORDS: list[tuple[str, float]] = [
    # Languages
    *(
        (t, STRONG)
        for t in (
            "python", "javascript", "typescript", "java", "golang", "rust", "c++", "c#",
            "ruby", "scala", "kotlin", "swift", "php", "perl", "haskell", "elixir",
            "clojure", "matlab", "julia", "solidity", "sql", "graphql",
        )
    ),
    # Frameworks and infrastructure
    *(
        (t, STRONG)
        for t in (
            "react", "angular", "vue", "svelte", "next.js", "nextjs", "django", "flask",
            "fastapi", "spring boot", "express", "nestjs", "rails", "laravel",
            "kubernetes", "k8s", "terraform", "docker", "ansible", "jenkins",
            "github actions", "aws", "azure", "gcp", "google cloud", "pytorch",
            "tensorflow", "scikit-learn", "spark", "kafka", "airflow", "redis",
            "elasticsearch", "mongodb", "postgresql", "mysql", "dynamodb", "prometheus",
        )
    ),
    # Engineering titles
    *(
        (t, STRONG)
        for t in (
            "software engineer", "backend engineer", "frontend engineer",
            "fullstack engineer", "full stack engineer", "full-stack engineer",
            "devops engineer", "sre", "site reliability", "platform engineer",
            "infrastructure engineer", "ml engineer", "machine learning engineer",
            "data engineer", "data scientist", "security engineer", "cloud engineer",
            "mobile engineer", "ios engineer", "android engineer", "embedded engineer",
            "firmware engineer", "software developer", "web developer", "qa engineer",
            "test automation", "sdet",
        )
    ),
    *(
        (t, MODERATE)
        for t in (
            "agile", "scrum", "git", "linux", "algorithm", "sdk", "api", "microservices",
            "ci/cd", "cicd", "rest api", "restful", "grpc", "oauth", "saas",
            "cloud native", "serverless", "distributed systems", "machine learning",
            "deep learning", "nlp", "computer vision", "llm", "generative ai",
        )
    ),
]

NON_TECH_KEYWORDS: list[tuple[str, float]] = [
    # Sales
    *(
        (t, STRONG)
        for t in (
            "account executive", "sdr", "sales development", "bdr", "quota",
            "pipeline management", "crm", "salesforce", "hubspot", "sales manager",
            "sales director", "vp sales", "revenue operations", "inside sales",
            "enterprise sales",
        )
    ),
    # Marketing
    *(
        (t, STRONG)
        for t in (
            "content marketing", "seo", "demand generation", "brand manager",
            "marketing manager", "growth marketing", "performance marketing",
            "social media manager", "copywriter", "digital marketing", "product marketing",
        )
    ),
    # People
    *(
        (t, STRONG)
        for t in (
            "recruiter", "talent acquisition", "hrbp", "hr business partner",
            "people operations", "hr manager", "employee relations", "total rewards",
        )
    ),
    # Finance
    *(
        (t, STRONG)
        for t in (
            "financial analyst", "cpa", "fp&a", "controller", "accountant", "bookkeeper",
            "treasury", "audit", "tax analyst", "financial planning", "accounts payable",
            "accounts receivable",
        )
    ),
    # Operations, legal and customer success
    *(
        (t, STRONG)
        for t in (
            "operations manager", "procurement", "supply chain", "logistics",
            "office manager", "paralegal", "legal counsel", "general counsel",
            "compliance officer", "customer success", "account manager",
            "customer experience",
        )
    ),
    *(
        (t, MODERATE)
        for t in (
            "stakeholder management", "budget", "vendor management", "excel",
            "powerpoint", "negotiation", "territory management", "p&l",
            "kpi reporting", "project management",
        )
    ),
]


def _compile(keywords: list[tuple[str, float]]) -> list[tuple[str, float, re.Pattern]]:
    return [
        (term, weight, re.compile(rf"(?<![a-z0-9]){re.escape(term)}(?![a-z0-9])", re.I))
        for term, weight in keywords
    ]


_TECH_PATTERNS = _compile(TECH_KEYWORDS)
_NON_TECH_PATTERNS = _compile(NON_TECH_KEYWORDS)


def _match(patterns, text: str) -> tuple[float, list[str], int]:
    raw = 0.0
    matched: list[str] = []
    strong = 0
    for term, weight, pattern in patterns:
        if pattern.search(text):
            raw += weight
            matched.append(term)
            if weight >= STRONG:
                strong += 1
    return raw, matched, strong


def classify_track(
    requirements: JobRequirements,
    *,
    title: str | None = None,
    jd_digest: str | None = None,
    config: SourcingConfig,
    now: datetime | None = None,
) -> TrackDecision:
    """Deterministic keyword classifier. Does not consult hints."""
    now = now or datetime.now(UTC)
    parts = [title, jd_digest, " ".join(requirements.top_skills), requirements.domain]
    text_bag = " ".join(p for p in parts if p)

    tech_raw, matched_tech, strong_tech = _match(_TECH_PATTERNS, text_bag)
    non_tech_raw, matched_non_tech, strong_non_tech = _match(_NON_TECH_PATTERNS, text_bag)

    role_family = requirements.role_family or detect_role_family(title)
    if role_family in ROLE_FAMILIES:
        tech_raw += ROLE_FAMILY_BOOST

    if tech_raw == 0 and non_tech_raw == 0:
        return TrackDecision(
            track=config.default_track,
            confidence=DEFAULT_CONFIDENCE,
            method="default",
            classifier_version=config.track_classifier_version,
            signals=TrackSignals(role_family=role_family),
            resolved_at=now,
        )

    total = tech_raw + non_tech_raw
    tech_score = tech_raw / total
    non_tech_score = non_tech_raw / total
    margin = abs(tech_score - non_tech_score)
    signals = TrackSignals(
        tech_score=round(tech_score, 4),
        non_tech_score=round(non_tech_score, 4),
        matched_tech=matched_tech,
        matched_non_tech=matched_non_tech,
        role_family=role_family,
    )

    if tech_score == non_tech_score:
        return TrackDecision(
            track=config.default_track,
            confidence=0.5,
            method="classifier",
            classifier_version=config.track_classifier_version,
            signals=signals,
            resolved_at=now,
        )

    track = "tech" if tech_score > non_tech_score else "non_tech"
    confidence = min(0.99, 0.6 + margin * 0.8)
    one_sided = (strong_tech >= 5 and strong_non_tech == 0) or (
        strong_non_tech >= 5 and strong_tech == 0
    )
    if one_sided:
        confidence = max(0.95, confidence)

    return TrackDecision(
        track=track,
        confidence=round(confidence, 4),
        method="classifier",
        classifier_version=config.track_classifier_version,
        signals=signals,
        resolved_at=now,
    )


def resolve_track(
    requirements: JobRequirements,
    hint: Mapping[str, Any] | None,
    *,
    title: str | None = None,
    jd_digest: str | None = None,
    config: SourcingConfig,
    now: datetime | None = None,
) -> TrackDecision:
    """Resolve the job track from an optional hint, falling back to the classifier.

    ``hint`` carries jobTrackHint / jobTrackHintSource / jobTrackHintReason.
    Any classifier error yields the configured default track rather than
    failing request creation.
    """
    now = now or datetime.now(UTC)
    hint = hint or {}
    hinted = hint.get("jobTrackHint")
    if hinted in ("tech", "non_tech"):
        return TrackDecision(
            track=hinted,
            confidence=1.0,
            method="hint",
            classifier_version=config.track_classifier_version,
            hint_source=hint.get("jobTrackHintSource") or "user",
            hint_reason=hint.get("jobTrackHintReason"),
            resolved_at=now,
        )

    try:
        return classify_track(
            requirements, title=title, jd_digest=jd_digest, config=config, now=now
        )
    except Exception:
        logger.exception("Track classification failed, using default track")
        return TrackDecision(
            track=config.default_track,
            confidence=DEFAULT_CONFIDENCE,
            method="default",
            classifier_version=config.track_classifier_version,
            resolved_at=now,
        )
