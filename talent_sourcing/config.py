"""Pipeline tunables loaded from environment variables.

Integer settings fall back to their default when missing, unparsable or
non-positive. Float settings fall back when unparsable and are then clamped to
[0, 1]. Nothing here raises on bad input.
"""

import math
import os
from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict


def parse_int_safe(value: str | None, fallback: int, *, allow_zero: bool = False) -> int:
    if value is None or not value.strip():
        return fallback
    try:
        parsed = int(value.strip(), 10)
    except ValueError:
        return fallback
    if parsed < 0 or (parsed == 0 and not allow_zero):
        return fallback
    return parsed


def parse_float_safe(value: str | None, fallback: float) -> float:
    if value is None or not value.strip():
        return fallback
    try:
        parsed = float(value.strip())
    except ValueError:
        return fallback
    return parsed if math.isfinite(parsed) else fallback


def parse_bool(value: str | None, fallback: bool) -> bool:
    if value is None or not value.strip():
        return fallback
    return value.strip().lower() in ("1", "true", "yes", "on")


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


class SourcingConfig(BaseModel):
    """Tunables for budget, quality gate, assembly, novelty and track resolution."""

    model_config = ConfigDict(frozen=True)

    target_count: int = 100
    min_good_enough: int = 30
    job_max_enrich: int = 50
    max_serp_queries: int = 3
    snapshot_stale_days: int = 30

    quality_top_k: int = 20
    quality_min_avg_fit: float = 0.45
    quality_threshold: float = 0.55
    quality_min_count_above: int = 15
    quality_max_shortfall_rate: float = 0.5

    best_matches_min_fit_score: float = 0.45
    strict_rescue_count: int = 5
    strict_rescue_min_fit_score: float = 0.3
    fit_score_epsilon: float = 0.03

    novelty_enabled: bool = True
    novelty_window_days: int = 30

    # 0 means no per-tenant cap
    daily_serp_cap_per_tenant: int = 0

    # Completions within the delay coalesce into one rerank per request
    rerank_after_enrichment: bool = True
    rerank_delay_seconds: int = 60

    default_track: Literal["tech", "non_tech"] = "tech"
    track_classifier_version: str = "track-v1"

    worker_concurrency: int = 4


class NonTechConfig(BaseModel):
    """Thresholds for the non-tech professional validation gates."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    min_corroboration: int = 2
    max_source_age_days: int = 180
    seniority_min_conf: float = 0.6
    score_floor: float = 0.5


def get_sourcing_config(env: Mapping[str, str] | None = None) -> SourcingConfig:
    """Build a SourcingConfig from the environment (os.environ by default)."""
    env = os.environ if env is None else env
    defaults = SourcingConfig()

    def _int(name: str, fallback: int, allow_zero: bool = False) -> int:
        return parse_int_safe(env.get(name), fallback, allow_zero=allow_zero)

    def _fraction(name: str, fallback: float) -> float:
        return clamp(parse_float_safe(env.get(name), fallback), 0.0, 1.0)

    default_track = (env.get("SOURCE_DEFAULT_TRACK") or defaults.default_track).strip().lower()
    if default_track not in ("tech", "non_tech"):
        default_track = defaults.default_track

    return SourcingConfig(
        target_count=_int("TARGET_COUNT", defaults.target_count),
        min_good_enough=_int("MIN_GOOD_ENOUGH", defaults.min_good_enough),
        job_max_enrich=_int("JOB_MAX_ENRICH", defaults.job_max_enrich),
        max_serp_queries=_int("MAX_SERP_QUERIES", defaults.max_serp_queries),
        snapshot_stale_days=_int("SNAPSHOT_STALE_DAYS", defaults.snapshot_stale_days),
        quality_top_k=_int("SOURCE_QUALITY_TOP_K", defaults.quality_top_k),
        quality_min_avg_fit=_fraction("SOURCE_QUALITY_MIN_AVG_FIT", defaults.quality_min_avg_fit),
        quality_threshold=_fraction("SOURCE_QUALITY_THRESHOLD", defaults.quality_threshold),
        quality_min_count_above=_int(
            "SOURCE_QUALITY_MIN_COUNT_ABOVE", defaults.quality_min_count_above
        ),
        quality_max_shortfall_rate=_fraction(
            "SOURCE_QUALITY_MAX_SHORTFALL_RATE", defaults.quality_max_shortfall_rate
        ),
        best_matches_min_fit_score=_fraction(
            "SOURCE_BEST_MATCHES_MIN_FIT_SCORE", defaults.best_matches_min_fit_score
        ),
        strict_rescue_count=_int(
            "SOURCE_STRICT_RESCUE_COUNT", defaults.strict_rescue_count, allow_zero=True
        ),
        strict_rescue_min_fit_score=_fraction(
            "SOURCE_STRICT_RESCUE_MIN_FIT_SCORE", defaults.strict_rescue_min_fit_score
        ),
        fit_score_epsilon=_fraction("SOURCE_FIT_SCORE_EPSILON", defaults.fit_score_epsilon),
        novelty_enabled=parse_bool(env.get("SOURCE_NOVELTY_ENABLED"), defaults.novelty_enabled),
        novelty_window_days=_int("SOURCE_NOVELTY_WINDOW_DAYS", defaults.novelty_window_days),
        daily_serp_cap_per_tenant=_int(
            "SOURCE_DAILY_SERP_CAP_PER_TENANT",
            defaults.daily_serp_cap_per_tenant,
            allow_zero=True,
        ),
        rerank_after_enrichment=parse_bool(
            env.get("SOURCE_RERANK_AFTER_ENRICHMENT"), defaults.rerank_after_enrichment
        ),
        rerank_delay_seconds=_int(
            "SOURCE_RERANK_DELAY_SECONDS", defaults.rerank_delay_seconds, allow_zero=True
        ),
        default_track=default_track,
        track_classifier_version=(
            env.get("SOURCE_TRACK_CLASSIFIER_VERSION") or defaults.track_classifier_version
        ).strip(),
        worker_concurrency=_int("SOURCING_WORKER_CONCURRENCY", defaults.worker_concurrency),
    )


def get_non_tech_config(env: Mapping[str, str] | None = None) -> NonTechConfig:
    env = os.environ if env is None else env
    defaults = NonTechConfig()
    return NonTechConfig(
        enabled=parse_bool(env.get("NON_TECH_ENABLED"), defaults.enabled),
        min_corroboration=parse_int_safe(
            env.get("NON_TECH_MIN_CORROBORATION"), defaults.min_corroboration
        ),
        max_source_age_days=parse_int_safe(
            env.get("NON_TECH_MAX_SOURCE_AGE_DAYS"), defaults.max_source_age_days
        ),
        seniority_min_conf=clamp(
            parse_float_safe(env.get("NON_TECH_SENIORITY_MIN_CONF"), defaults.seniority_min_conf),
            0.0,
            1.0,
        ),
        score_floor=clamp(
            parse_float_safe(env.get("NON_TECH_SCORE_FLOOR"), defaults.score_floor), 0.0, 1.0
        ),
    )
