"""Tests for environment-driven configuration."""

import pytest

from talent_sourcing.config import (
    clamp,
    get_non_tech_config,
    get_sourcing_config,
    parse_bool,
    parse_float_safe,
    parse_int_safe,
)


class TestParsers:
    """Tests for the tolerant env parsers."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(None, 7), ("", 7), ("  ", 7), ("12", 12), (" 12 ", 12), ("abc", 7), ("-3", 7), ("0", 7), ("1.5", 7)],
    )
    def test_parse_int_safe(self, raw, expected):
        """Missing, unparsable, negative and zero values fall back."""
        assert parse_int_safe(raw, 7) == expected

    def test_parse_int_allow_zero(self):
        """allow_zero keeps an explicit 0."""
        assert parse_int_safe("0", 7, allow_zero=True) == 0
        assert parse_int_safe("-1", 7, allow_zero=True) == 7

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(None, 0.5), ("0.25", 0.25), ("nope", 0.5), ("nan", 0.5), ("inf", 0.5)],
    )
    def test_parse_float_safe(self, raw, expected):
        """Non-finite and unparsable floats fall back."""
        assert parse_float_safe(raw, 0.5) == expected

    def test_parse_bool(self):
        """Truthy spellings parse as True; anything else is False."""
        assert parse_bool("TRUE", False) is True
        assert parse_bool("on", False) is True
        assert parse_bool("0", True) is False
        assert parse_bool(None, True) is True

    def test_clamp(self):
        """clamp bounds values on both sides."""
        assert clamp(1.7, 0.0, 1.0) == 1.0
        assert clamp(-0.2, 0.0, 1.0) == 0.0


class TestGetSourcingConfig:
    """Tests for get_sourcing_config."""

    def test_defaults(self):
        """An empty environment yields the documented defaults."""
        config = get_sourcing_config({})
        assert config.target_count == 100
        assert config.min_good_enough == 30
        assert config.job_max_enrich == 50
        assert config.max_serp_queries == 3
        assert config.daily_serp_cap_per_tenant == 0
        assert config.default_track == "tech"
        assert config.novelty_enabled is True
        assert config.rerank_after_enrichment is True
        assert config.rerank_delay_seconds == 60

    def test_overrides(self):
        """Valid values override defaults; fractions are clamped."""
        config = get_sourcing_config(
            {
                "TARGET_COUNT": "40",
                "SOURCE_QUALITY_MIN_AVG_FIT": "1.5",
                "SOURCE_BEST_MATCHES_MIN_FIT_SCORE": "-0.2",
                "SOURCE_STRICT_RESCUE_COUNT": "0",
                "SOURCE_DAILY_SERP_CAP_PER_TENANT": "25",
                "SOURCE_NOVELTY_ENABLED": "false",
                "SOURCE_DEFAULT_TRACK": "NON_TECH",
                "SOURCE_TRACK_CLASSIFIER_VERSION": " track-v2 ",
                "SOURCING_WORKER_CONCURRENCY": "8",
                "SOURCE_RERANK_AFTER_ENRICHMENT": "off",
                "SOURCE_RERANK_DELAY_SECONDS": "0",
            }
        )
        assert config.target_count == 40
        assert config.quality_min_avg_fit == 1.0
        assert config.best_matches_min_fit_score == 0.0
        assert config.strict_rescue_count == 0
        assert config.daily_serp_cap_per_tenant == 25
        assert config.novelty_enabled is False
        assert config.default_track == "non_tech"
        assert config.track_classifier_version == "track-v2"
        assert config.worker_concurrency == 8
        assert config.rerank_after_enrichment is False
        assert config.rerank_delay_seconds == 0

    def test_bad_values_fall_back(self):
        """Garbage never raises."""
        config = get_sourcing_config(
            {"TARGET_COUNT": "lots", "MAX_SERP_QUERIES": "0", "SOURCE_DEFAULT_TRACK": "sales"}
        )
        assert config.target_count == 100
        assert config.max_serp_queries == 3
        assert config.default_track == "tech"


class TestGetNonTechConfig:
    """Tests for get_non_tech_config."""

    def test_overrides_and_clamps(self):
        """Non-tech thresholds read from NON_TECH_* variables."""
        config = get_non_tech_config(
            {
                "NON_TECH_ENABLED": "no",
                "NON_TECH_MIN_CORROBORATION": "3",
                "NON_TECH_SCORE_FLOOR": "2",
            }
        )
        assert config.enabled is False
        assert config.min_corroboration == 3
        assert config.score_floor == 1.0
        assert config.max_source_age_days == 180
