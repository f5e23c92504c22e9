"""Tests for tech / non-tech track resolution."""

from unittest.mock import patch

from talent_sourcing.config import SourcingConfig
from talent_sourcing.sourcing.requirements import extract_job_requirements
from talent_sourcing.sourcing.track_resolver import classify_track, resolve_track
from talent_sourcing.sourcing.types import JobRequirements


class TestResolveTrack:
    """Tests for hint handling and classifier fallback."""

    def test_explicit_hint_wins(self, config, now):
        """A tech/non_tech hint is used with full confidence."""
        requirements = extract_job_requirements("Python, Django", title="Backend Engineer")
        decision = resolve_track(
            requirements,
            {"jobTrackHint": "non_tech", "jobTrackHintReason": "recruiter override"},
            config=config,
            now=now,
        )
        assert decision.track == "non_tech"
        assert decision.method == "hint"
        assert decision.confidence == 1.0
        assert decision.hint_source == "user"
        assert decision.hint_reason == "recruiter override"
        assert decision.resolved_at == now

    def test_auto_hint_uses_classifier(self, config, now):
        """The auto hint is not an override."""
        requirements = extract_job_requirements("Python, Django", title="Backend Engineer")
        decision = resolve_track(requirements, {"jobTrackHint": "auto"}, config=config, now=now)
        assert decision.method == "classifier"
        assert decision.track == "tech"

    def test_classifier_error_falls_back_to_default(self, now):
        """A classifier exception yields the configured default track."""
        config = SourcingConfig(default_track="non_tech")
        with patch(
            "talent_sourcing.sourcing.track_resolver.classify_track",
            side_effect=RuntimeError("boom"),
        ):
            decision = resolve_track(JobRequirements(), None, config=config, now=now)
        assert decision.track == "non_tech"
        assert decision.method == "default"
        assert decision.confidence == 0.3


class TestClassifyTrack:
    """Tests for the keyword classifier."""

    def test_strong_tech_job(self, config, now):
        """Many strong tech signals and no non-tech ones give high confidence."""
        requirements = extract_job_requirements(
            "Python, Django, PostgreSQL, Docker, Kubernetes, AWS",
            title="Senior Backend Engineer",
        )
        decision = classify_track(
            requirements, title="Senior Backend Engineer", config=config, now=now
        )
        assert decision.track == "tech"
        assert decision.confidence >= 0.95
        assert "python" in decision.signals.matched_tech
        assert decision.signals.role_family == "backend"

    def test_sales_job(self, config, now):
        """Sales keywords classify as non_tech."""
        requirements = extract_job_requirements(
            "Salesforce, quota, pipeline management, negotiation",
            title="Enterprise Account Executive",
        )
        decision = classify_track(
            requirements, title="Enterprise Account Executive", config=config, now=now
        )
        assert decision.track == "non_tech"
        assert decision.confidence > 0.6
        assert "account executive" in decision.signals.matched_non_tech

    def test_no_signals_uses_default(self, now):
        """A job with no keyword signal gets the default track at low confidence."""
        config = SourcingConfig(default_track="tech", track_classifier_version="track-v9")
        decision = classify_track(
            JobRequirements(top_skills=("Gardening",)), title="Groundskeeper", config=config, now=now
        )
        assert decision.track == "tech"
        assert decision.method == "default"
        assert decision.confidence == 0.3
        assert decision.classifier_version == "track-v9"

    def test_decision_serializes_camel_case(self, config, now):
        """Persisted decisions use camelCase keys."""
        requirements = extract_job_requirements("Python", title="Data Engineer")
        body = classify_track(requirements, title="Data Engineer", config=config, now=now).to_json()
        assert body["classifierVersion"] == config.track_classifier_version
        assert "techScore" in body["signals"]
        assert body["resolvedAt"].startswith("2026-10-18")
