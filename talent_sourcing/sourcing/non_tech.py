"""Non-tech professional validation: signal extraction and tiered scoring.

Tier assignment walks the gates in a fixed order and stops at the first
failure; only that gate's reason is reported. Hard fails (corroboration,
contradictions) give tier 3, soft fails (freshness, seniority confidence,
score floor) give tier 2, and passing every gate gives tier 1. Callers that
need every gate outcome read ``gate_results``.
"""

from dataclasses import asdict
from datetime import UTC, datetime
from typing import Any

from talent_sourcing.config import NonTechConfig
from talent_sourcing.sourcing.types import (
    CandidateForRanking,
    CandidateSnapshot,
    CompanyAlignment,
    Contradictions,
    FreshnessSignal,
    NonTechGateResults,
    NonTechScore,
    NonTechSignals,
    SeniorityValidation,
    SerpContext,
)
from talent_sourcing.taxonomy.location import canonicalize_location, infer_countries
from talent_sourcing.taxonomy.seniority import normalize_seniority_from_text

MAX_CORROBORATING_SOURCES = 5
CORROBORATION_WEIGHT = 0.35
SENIORITY_WEIGHT = 0.20
FRESHNESS_WEIGHT = 0.25
NO_CONTRADICTION_BONUS = 0.20
SERP_RECENCY_WEIGHT = 0.07
SERP_LOCATION_ADJUSTMENT = 0.03
SERP_CONTEXT_CAP = 0.10

# Locale country codes as they appear in search metadata -> location country keys
LOCALE_COUNTRY_CODES = {
    "us": "us",
    "gb": "uk",
    "uk": "uk",
    "in": "india",
    "ca": "canada",
    "au": "australia",
    "de": "germany",
    "fr": "france",
    "ru": "russia",
    "sg": "singapore",
    "nl": "netherlands",
    "ie": "ireland",
    "es": "spain",
    "br": "brazil",
    "mx": "mexico",
    "jp": "japan",
    "il": "israel",
    "ae": "uae",
}


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def _fractional_age_days(then: datetime, now: datetime) -> float:
    return max(0.0, (now - _as_utc(then)).total_seconds() / 86400)


def _age_days(then: datetime, now: datetime) -> int:
    return int(_fractional_age_days(then, now))


def _serper_meta(search_meta: Any) -> dict[str, Any]:
    if not isinstance(search_meta, dict):
        return {}
    serper = search_meta.get("serper")
    return serper if isinstance(serper, dict) else {}


def _parse_result_date(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        return _as_utc(datetime.fromisoformat(raw.strip().replace("Z", "+00:00")))
    except ValueError:
        return None


# ═══════════════════════════════════════════════════════════════════
# SIGNAL EXTRACTION
# ═══════════════════════════════════════════════════════════════════


def extract_company_alignment(candidate: CandidateForRanking) -> CompanyAlignment:
    """Count hint fields that independently mention the candidate's company."""
    company = (candidate.company_hint or "").strip().lower()
    if not company:
        return CompanyAlignment()

    sources = []
    for source, text in (
        ("headline", candidate.headline_hint),
        ("serp_title", candidate.search_title),
        ("serp_snippet", candidate.search_snippet),
    ):
        if text and company in text.lower():
            sources.append(source)
    return CompanyAlignment(corroboration_count=len(sources), sources=sources)


def extract_seniority_validation(candidate: CandidateForRanking) -> SeniorityValidation:
    band = None
    sources = []
    for source, text in (("headline", candidate.headline_hint), ("serp_title", candidate.search_title)):
        found = normalize_seniority_from_text(text)
        if found:
            band = band or found
            sources.append(source)

    if len(sources) >= 2:
        confidence = 1.0
    elif sources:
        confidence = 0.8
    else:
        confidence = 0.0
    return SeniorityValidation(normalized_band=band, confidence=confidence, sources=sources)


def extract_freshness(
    candidate: CandidateForRanking,
    snapshot: CandidateSnapshot | None,
    config: NonTechConfig,
    now: datetime,
) -> FreshnessSignal:
    """Most recent of enrichment time and search result date; snapshot time as last resort.

    No timestamp at all counts as stale.
    """
    timestamps = []
    if candidate.last_enriched_at is not None:
        timestamps.append(_as_utc(candidate.last_enriched_at))
    result_date = _parse_result_date(_serper_meta(candidate.search_meta).get("resultDate"))
    if result_date is not None:
        timestamps.append(result_date)
    if not timestamps and snapshot is not None and snapshot.computed_at is not None:
        timestamps.append(_as_utc(snapshot.computed_at))

    if not timestamps:
        return FreshnessSignal(last_validated_at=None, age_days=None, stale=True)

    most_recent = max(timestamps)
    return FreshnessSignal(
        last_validated_at=most_recent,
        age_days=_age_days(most_recent, now),
        stale=_fractional_age_days(most_recent, now) > config.max_source_age_days,
    )


def extract_serp_context(candidate: CandidateForRanking, now: datetime) -> SerpContext:
    serper = _serper_meta(candidate.search_meta)
    raw_date = serper.get("resultDate") if isinstance(serper.get("resultDate"), str) else None
    result_date = _parse_result_date(raw_date)

    consistency = "unknown"
    locale = serper.get("localeCountryCode")
    locale_country = LOCALE_COUNTRY_CODES.get(locale.lower()) if isinstance(locale, str) else None
    if locale_country and candidate.location_hint:
        countries = infer_countries(canonicalize_location(candidate.location_hint))
        if countries:
            consistency = "match" if locale_country in countries else "mismatch"

    return SerpContext(
        result_date=raw_date,
        age_days=_age_days(result_date, now) if result_date else None,
        location_consistency=consistency,
    )


def extract_non_tech_signals(
    candidate: CandidateForRanking,
    config: NonTechConfig,
    *,
    contradictions: list[str] | None = None,
    now: datetime | None = None,
) -> NonTechSignals:
    """Build non-tech signals from data already on the candidate record.

    ``contradictions`` are notes from identity checks run elsewhere.
    """
    now = now or datetime.now(UTC)
    notes = [n for n in (contradictions or []) if n]
    return NonTechSignals(
        company_alignment=extract_company_alignment(candidate),
        seniority_validation=extract_seniority_validation(candidate),
        freshness=extract_freshness(candidate, candidate.snapshot, config, now),
        serp_context=extract_serp_context(candidate, now),
        contradictions=Contradictions(count=len(notes), details=notes),
    )


def signals_to_dict(signals: NonTechSignals) -> dict[str, Any]:
    """JSON-ready form of the signals, as stored on the non-tech snapshot."""

    def _convert(value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, dict):
            return {k: _convert(v) for k, v in value.items()}
        if isinstance(value, list):
            return [_convert(v) for v in value]
        return value

    return _convert(asdict(signals))


# ═══════════════════════════════════════════════════════════════════
# SCORING
# ═══════════════════════════════════════════════════════════════════


def _serp_context_score(signals: NonTechSignals, max_source_age_days: int) -> float:
    score = 0.0
    age_days = signals.serp_context.age_days
    if age_days is not None:
        window = max(1, max_source_age_days)
        score += max(0.0, 1 - age_days / window) * SERP_RECENCY_WEIGHT

    if signals.serp_context.location_consistency == "match":
        score += SERP_LOCATION_ADJUSTMENT
    elif signals.serp_context.location_consistency == "mismatch":
        score -= SERP_LOCATION_ADJUSTMENT

    return max(0.0, min(SERP_CONTEXT_CAP, score))


def compute_overall_score(signals: NonTechSignals, max_source_age_days: int) -> float:
    score = 0.0

    corroboration = min(signals.company_alignment.corroboration_count, MAX_CORROBORATING_SOURCES)
    score += corroboration / MAX_CORROBORATING_SOURCES * CORROBORATION_WEIGHT

    score += signals.seniority_validation.confidence * SENIORITY_WEIGHT

    if signals.freshness.age_days is not None and not signals.freshness.stale:
        window = max(1, max_source_age_days)
        score += max(0.0, 1 - signals.freshness.age_days / window) * FRESHNESS_WEIGHT

    if signals.contradictions.count == 0:
        score += NO_CONTRADICTION_BONUS

    score += _serp_context_score(signals, max_source_age_days)

    return round(max(0.0, min(1.0, score)), 2)


def score_non_tech(signals: NonTechSignals, config: NonTechConfig) -> NonTechScore:
    overall_score = compute_overall_score(signals, config.max_source_age_days)

    gate_results = NonTechGateResults(
        corroboration=signals.company_alignment.corroboration_count >= config.min_corroboration,
        contradictions=signals.contradictions.count == 0,
        freshness=not signals.freshness.stale,
        seniority_confidence=signals.seniority_validation.confidence >= config.seniority_min_conf,
        score_floor=overall_score >= config.score_floor,
    )

    if not gate_results.corroboration:
        tier = 3
        reason = (
            f"Corroboration {signals.company_alignment.corroboration_count} "
            f"< {config.min_corroboration}"
        )
    elif not gate_results.contradictions:
        tier = 3
        reason = f"{signals.contradictions.count} contradiction(s) found"
    elif not gate_results.freshness:
        tier = 2
        age = signals.freshness.age_days
        reason = (
            f"Data age {age}d > {config.max_source_age_days}d"
            if age is not None
            else "No dated source available"
        )
    elif not gate_results.seniority_confidence:
        tier = 2
        reason = (
            f"Seniority confidence {signals.seniority_validation.confidence} "
            f"< {config.seniority_min_conf}"
        )
    elif not gate_results.score_floor:
        tier = 2
        reason = f"Score {overall_score} < floor {config.score_floor}"
    else:
        tier = 1
        reason = "All gates passed"

    return NonTechScore(
        tier=tier,
        overall_score=overall_score,
        top_reasons=[reason],
        gate_results=gate_results,
    )
