"""Tests for the discovery budget, quality gate and pool assembly."""

import pytest

from talent_sourcing.config import SourcingConfig
from talent_sourcing.sourcing.pool import (
    assemble_pool,
    compute_discovery_budget,
    evaluate_quality_gate,
    novelty_exempt_ids,
    plan_discovery,
)
from talent_sourcing.sourcing.types import FitBreakdown, ScoredCandidate
from tests.conftest import make_candidate


def _scored(candidate_id, fit, tier=None):
    return ScoredCandidate(
        candidate_id=candidate_id,
        fit_score=fit,
        fit_breakdown=FitBreakdown(
            skill_score=fit,
            skill_score_method="text_fallback",
            role_score=0.5,
            seniority_score=0.5,
            activity_freshness_score=0.1,
            location_score=1.0 if tier == "strict_location" else 0.0,
        ),
        match_tier=tier,
    )


class TestDiscoveryBudget:
    """Tests for plan and settle."""

    def test_weak_pool_is_aggressive_and_capped(self, config):
        """Pool 10, enriched 5, yield 15: target 50, shortfall 0.7."""
        budget = compute_discovery_budget(10, 5, 15, config)
        assert budget.mode == "aggressive"
        assert budget.pool_deficit == 90
        assert budget.discovery_target == 50
        assert budget.discovered_count == 15
        assert budget.assembled_count == 25
        assert budget.shortfall_rate == pytest.approx(0.7)

    def test_decent_pool_fills_deficit(self, config):
        """Enough enriched candidates: discovery covers the whole deficit."""
        plan = plan_discovery(60, 40, config)
        assert plan.mode == "decent"
        assert plan.discovery_target == 40

    def test_full_pool_needs_nothing(self, config):
        """A pool at target skips discovery with no shortfall."""
        budget = compute_discovery_budget(120, 100, 0, config)
        assert budget.mode == "none"
        assert budget.discovery_target == 0
        assert budget.shortfall_rate == 0.0
        assert budget.assembled_count == 100

    def test_over_yield_is_clamped(self, config):
        """Discovery never counts more than its target."""
        budget = compute_discovery_budget(90, 40, 25, config)
        assert budget.discovered_count == 10
        assert budget.shortfall_rate == 0.0


class TestQualityGate:
    """Tests for the aggregate quality gate."""

    def test_empty_pool_triggers(self, config):
        """No scores is always a weak result."""
        report = evaluate_quality_gate([], config)
        assert report.triggered is True
        assert report.reasons == ["empty_pool"]

    def test_strong_results_pass(self, config):
        """High scores and low shortfall pass."""
        report = evaluate_quality_gate([0.8] * 20, config, shortfall_rate=0.1)
        assert report.triggered is False
        assert report.count_above_threshold == 20
        assert report.avg_fit_top_k == 0.8

    def test_reasons_accumulate(self, config):
        """Each failing check adds its own reason."""
        report = evaluate_quality_gate([0.3] * 20, config, shortfall_rate=0.7)
        assert report.triggered is True
        assert report.reasons == ["low_avg_fit", "few_above_threshold", "high_discovery_shortfall"]

    def test_small_pool_count_threshold_scales(self):
        """A pool smaller than the count threshold only needs all of top-k above it."""
        config = SourcingConfig(quality_min_count_above=15)
        report = evaluate_quality_gate([0.9, 0.8, 0.7], config)
        assert report.triggered is False


class TestAssemblePool:
    """Tests for grouping, rescue, novelty and ordering."""

    def test_groups_and_order(self, config):
        """Best matches, then broader pool, then discovered."""
        ranked = [
            _scored("a", 0.9, "strict_location"),
            _scored("b", 0.8, "expanded_location"),
            _scored("c", 0.5, "strict_location"),
            _scored("d", 0.2, "strict_location"),
        ]
        candidates = {cid: make_candidate(cid) for cid in "abcd"}
        assembly = assemble_pool(ranked, candidates, ["x", "y"], set(), config)

        assert [(e.candidate_id, e.group) for e in assembly.entries] == [
            ("a", "best_matches"),
            ("c", "best_matches"),
            ("b", "broader_pool"),
            ("d", "broader_pool"),
            ("x", "discovered"),
            ("y", "discovered"),
        ]
        assert [e.rank for e in assembly.entries] == [1, 2, 3, 4, 5, 6]
        assert assembly.demoted_strict_count == 1
        assert assembly.entries[-1].source_type == "discovered"
        assert assembly.entries[-1].enrichment_status == "pending"

    def test_enriched_first_within_group(self, config):
        """Enriched candidates lead their group without reordering the rest."""
        ranked = [_scored("a", 0.9), _scored("b", 0.85), _scored("c", 0.8)]
        candidates = {
            "a": make_candidate("a"),
            "b": make_candidate("b", enrichment_status="completed"),
            "c": make_candidate("c"),
        }
        assembly = assemble_pool(ranked, candidates, [], set(), config)
        assert [e.candidate_id for e in assembly.entries] == ["b", "a", "c"]

    def test_strict_rescue(self, config):
        """With no best match, strict candidates above the rescue floor are promoted."""
        ranked = [
            _scored("a", 0.40, "strict_location"),
            _scored("b", 0.35, "strict_location"),
            _scored("c", 0.10, "strict_location"),
            _scored("d", 0.30, "expanded_location"),
        ]
        candidates = {cid: make_candidate(cid) for cid in "abcd"}
        assembly = assemble_pool(ranked, candidates, [], set(), config)

        assert assembly.strict_rescue_count == 2
        assert assembly.demoted_strict_count == 1
        best = [e.candidate_id for e in assembly.entries if e.group == "best_matches"]
        assert best == ["a", "b"]

    def test_novelty_suppression_spares_top_decile(self, config):
        """Exposed candidates leave the broader pool unless in the top 10%."""
        ranked = [_scored(f"e{i}", 0.9 - i * 0.05, "expanded_location") for i in range(10)]
        candidates = {s.candidate_id: make_candidate(s.candidate_id) for s in ranked}
        exposed = {"e0", "e5", "disc-1"}
        assert novelty_exempt_ids(ranked) == {"e0"}

        assembly = assemble_pool(ranked, candidates, ["disc-1", "disc-2"], exposed, config)
        ids = [e.candidate_id for e in assembly.entries]
        assert "e0" in ids
        assert "e5" not in ids
        assert "disc-1" not in ids
        assert "disc-2" in ids
        assert assembly.novelty_suppressed_count == 2

    def test_target_count_caps_entries(self):
        """Entries never exceed target_count."""
        config = SourcingConfig(target_count=3)
        ranked = [_scored(f"r{i}", 0.9) for i in range(5)]
        candidates = {s.candidate_id: make_candidate(s.candidate_id) for s in ranked}
        assembly = assemble_pool(ranked, candidates, ["d1"], set(), config)
        assert len(assembly.entries) == 3
        assert assembly.discovered_count == 0

    def test_discovered_duplicates_of_pool_skipped(self, config):
        """A discovered id already ranked is not repeated."""
        ranked = [_scored("a", 0.9)]
        assembly = assemble_pool(ranked, {"a": make_candidate("a")}, ["a", "n"], set(), config)
        assert [e.candidate_id for e in assembly.entries] == ["a", "n"]
