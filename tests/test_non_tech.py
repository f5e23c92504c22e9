"""Tests for non-tech professional validation."""

from datetime import timedelta

from talent_sourcing.config import NonTechConfig
from talent_sourcing.sourcing.non_tech import (
    compute_overall_score,
    extract_company_alignment,
    extract_non_tech_signals,
    extract_serp_context,
    score_non_tech,
    signals_to_dict,
)
from tests.conftest import NOW, make_candidate


def _strong_candidate(**overrides):
    fields = {
        "company_hint": "Globex",
        "headline_hint": "Senior Account Executive at Globex",
        "search_title": "Jane Doe - Senior Account Executive - Globex | LinkedIn",
        "search_snippet": "Closing enterprise deals at Globex since 2021",
        "location_hint": "New York, NY",
        "last_enriched_at": NOW - timedelta(days=5),
        "search_meta": {"serper": {"resultDate": "2026-10-01", "localeCountryCode": "US"}},
    }
    fields.update(overrides)
    return make_candidate("nt-1", **fields)


class TestSignalExtraction:
    """Tests for signals read from candidate hints."""

    def test_company_alignment_counts_sources(self):
        """Each hint field naming the company corroborates once."""
        alignment = extract_company_alignment(_strong_candidate())
        assert alignment.corroboration_count == 3
        assert alignment.sources == ["headline", "serp_title", "serp_snippet"]

    def test_no_company_hint(self):
        """Without a company there is nothing to corroborate."""
        assert extract_company_alignment(_strong_candidate(company_hint=None)).corroboration_count == 0

    def test_serp_context_location_consistency(self):
        """Locale country is compared with the location hint."""
        assert extract_serp_context(_strong_candidate(), NOW).location_consistency == "match"
        mismatch = _strong_candidate(location_hint="Pune, India")
        assert extract_serp_context(mismatch, NOW).location_consistency == "mismatch"
        unknown = _strong_candidate(search_meta=None)
        assert extract_serp_context(unknown, NOW).location_consistency == "unknown"

    def test_freshness_uses_most_recent_timestamp(self, non_tech_config):
        """Enrichment time and result date are both considered."""
        signals = extract_non_tech_signals(_strong_candidate(), non_tech_config, now=NOW)
        assert signals.freshness.age_days == 5
        assert signals.freshness.stale is False
        assert signals.serp_context.age_days == 17

    def test_no_timestamps_is_stale(self, non_tech_config):
        """A candidate with no dated source is stale."""
        candidate = _strong_candidate(last_enriched_at=None, search_meta=None)
        signals = extract_non_tech_signals(candidate, non_tech_config, now=NOW)
        assert signals.freshness.stale is True
        assert signals.freshness.age_days is None

    def test_signals_to_dict_is_json_ready(self, non_tech_config):
        """Datetimes are serialized as ISO strings."""
        signals = extract_non_tech_signals(_strong_candidate(), non_tech_config, now=NOW)
        data = signals_to_dict(signals)
        assert isinstance(data["freshness"]["last_validated_at"], str)
        assert data["company_alignment"]["corroboration_count"] == 3

    def test_part_day_past_window_is_stale(self, non_tech_config):
        """Half a day past the age window is stale though the reported age is whole days."""
        candidate = _strong_candidate(
            last_enriched_at=NOW - timedelta(days=180, hours=12), search_meta=None
        )
        signals = extract_non_tech_signals(candidate, non_tech_config, now=NOW)
        assert signals.freshness.age_days == 180
        assert signals.freshness.stale is True


class TestScoring:
    """Tests for the overall score and tier gates."""

    def test_strong_candidate_is_tier_one(self, non_tech_config):
        """Passing every gate gives tier 1."""
        signals = extract_non_tech_signals(_strong_candidate(), non_tech_config, now=NOW)
        result = score_non_tech(signals, non_tech_config)
        assert result.tier == 1
        assert result.top_reasons == ["All gates passed"]
        assert result.overall_score == 0.95
        assert all(result.gate_results.to_dict().values())

    def test_missing_corroboration_is_tier_three(self, non_tech_config):
        """Corroboration is a hard gate."""
        signals = extract_non_tech_signals(
            _strong_candidate(company_hint=None), non_tech_config, now=NOW
        )
        result = score_non_tech(signals, non_tech_config)
        assert result.tier == 3
        assert result.top_reasons == ["Corroboration 0 < 2"]

    def test_contradictions_are_tier_three(self, non_tech_config):
        """Any contradiction is a hard fail."""
        signals = extract_non_tech_signals(
            _strong_candidate(), non_tech_config, contradictions=["name mismatch"], now=NOW
        )
        result = score_non_tech(signals, non_tech_config)
        assert result.tier == 3
        assert result.top_reasons == ["1 contradiction(s) found"]
        assert result.gate_results.corroboration is True

    def test_stale_data_is_tier_two(self, non_tech_config):
        """Freshness is a soft gate."""
        candidate = _strong_candidate(last_enriched_at=None, search_meta=None)
        result = score_non_tech(
            extract_non_tech_signals(candidate, non_tech_config, now=NOW), non_tech_config
        )
        assert result.tier == 2
        assert result.top_reasons == ["No dated source available"]

    def test_low_seniority_confidence_is_tier_two(self, non_tech_config):
        """No seniority in the hints fails the confidence gate."""
        candidate = _strong_candidate(
            headline_hint="Account Executive at Globex",
            search_title="Jane Doe - Account Executive - Globex",
        )
        result = score_non_tech(
            extract_non_tech_signals(candidate, non_tech_config, now=NOW), non_tech_config
        )
        assert result.tier == 2
        assert result.top_reasons[0].startswith("Seniority confidence")

    def test_score_floor_is_tier_two(self):
        """Only the floor failing still gives tier 2."""
        config = NonTechConfig(score_floor=0.99)
        result = score_non_tech(
            extract_non_tech_signals(_strong_candidate(), config, now=NOW), config
        )
        assert result.tier == 2
        assert result.top_reasons == ["Score 0.95 < floor 0.99"]

    def test_overall_score_bounds(self, non_tech_config):
        """Scores stay within [0, 1] and reward a clean record."""
        signals = extract_non_tech_signals(
            make_candidate("empty"), non_tech_config, now=NOW
        )
        # Only the no-contradiction bonus applies
        assert compute_overall_score(signals, non_tech_config.max_source_age_days) == 0.2
