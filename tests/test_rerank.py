"""Tests for the post-enrichment rerank."""

from datetime import timedelta

import pytest
from dagster import build_op_context

from talent_sourcing.jobs import SourcingRequestConfig, rerank_sourcing_request
from talent_sourcing.sourcing.rerank import (
    data_confidence,
    find_requests_to_rerank,
    rerank_request,
)
from talent_sourcing.sourcing.types import SourcingRequestRecord, StoredResult
from tests.conftest import NOW, make_candidate, make_snapshot

JOB_CONTEXT = {
    "jdDigest": "Senior engineer for our React and Node.js platform",
    "title": "Senior Engineer",
    "skills": ["React", "TypeScript", "Node.js"],
    "location": "San Francisco",
}


def _add_request(store, request_id, *, tenant="t1", status="complete", job_context=None):
    store.create_request(
        SourcingRequestRecord(
            id=request_id,
            tenant_id=tenant,
            external_job_id=f"job-{request_id}",
            job_context_hash=request_id,
            job_context=JOB_CONTEXT if job_context is None else job_context,
            callback_url="https://example.com/cb",
            status=status,
            requested_at=NOW - timedelta(days=1),
        )
    )


def _row(candidate_id, rank, *, group="pool_enriched", fit=0.5):
    return StoredResult(
        candidate_id=candidate_id,
        rank=rank,
        group=group,
        source_type="pool",
        enrichment_status="pending",
        fit_score=fit,
        fit_breakdown={"skillScoreMethod": "text_fallback"},
        match_tier="expanded_location",
        location_match_type="none",
    )


def _rerank(request_store, candidate_repo, snapshot_store, config, request_id="r1"):
    return rerank_request(
        request_id,
        store=request_store,
        candidates=candidate_repo,
        snapshots=snapshot_store,
        config=config,
        now=NOW,
    )


class TestDataConfidence:
    """Tests for data_confidence."""

    @pytest.mark.parametrize(
        "status,method,expected",
        [
            ("completed", "snapshot", "high"),
            ("completed", "text_fallback", "medium"),
            ("pending", "text_fallback", "medium"),
            ("completed", "none", "medium"),
            ("pending", "none", "low"),
            ("failed", "snapshot", "low"),
        ],
    )
    def test_levels(self, status, method, expected):
        assert data_confidence(status, method) == expected


class TestRerankRequest:
    """Tests for rerank_request."""

    def test_enriched_candidate_moves_up(
        self, request_store, candidate_repo, snapshot_store, config
    ):
        """A newly enriched match overtakes a weaker row and the request is stamped."""
        _add_request(request_store, "r1")
        candidate_repo.add("t1", make_candidate("weak", headline_hint="Java Engineer"))
        candidate_repo.add(
            "t1",
            make_candidate(
                "strong",
                headline_hint="Engineer",
                enrichment_status="completed",
                last_enriched_at=NOW - timedelta(hours=2),
            ),
        )
        snapshot_store.put(
            "strong",
            "tech",
            make_snapshot(
                skills_normalized=["react", "typescript", "node.js"],
                seniority_band="senior",
                location="San Francisco, California",
            ),
        )
        request_store.replace_results(
            "r1", "t1", [_row("weak", 1), _row("strong", 2, group="discovered")]
        )

        outcome = _rerank(request_store, candidate_repo, snapshot_store, config)

        assert outcome.reranked == 2
        assert not outcome.skipped
        rows = request_store.list_results("r1")
        assert [r.candidate_id for r in rows] == ["strong", "weak"]
        assert [r.rank for r in rows] == [1, 2]
        top = rows[0]
        assert top.group == "discovered"
        assert top.source_type == "pool"
        assert top.enrichment_status == "completed"
        assert top.match_tier == "strict_location"
        assert top.fit_breakdown["skillScoreMethod"] == "snapshot"
        assert top.fit_breakdown["dataConfidence"] == "high"
        assert top.fit_score > rows[1].fit_score
        assert rows[1].fit_breakdown["dataConfidence"] == "medium"
        assert request_store.get_request("r1").last_reranked_at == NOW

    def test_strict_location_matches_lead(
        self, request_store, candidate_repo, snapshot_store, config
    ):
        """A strict-location match ranks ahead of a higher-scoring remote candidate."""
        _add_request(request_store, "r1")
        candidate_repo.add(
            "t1",
            make_candidate("far", enrichment_status="completed", last_enriched_at=NOW),
        )
        snapshot_store.put(
            "far",
            "tech",
            make_snapshot(
                skills_normalized=["react", "typescript", "node.js"],
                seniority_band="senior",
                location="Berlin, Germany",
            ),
        )
        candidate_repo.add(
            "t1",
            make_candidate(
                "local", headline_hint="Recruiter", location_hint="San Francisco, California"
            ),
        )
        request_store.replace_results("r1", "t1", [_row("far", 1), _row("local", 2)])

        _rerank(request_store, candidate_repo, snapshot_store, config)

        rows = request_store.list_results("r1")
        assert [r.candidate_id for r in rows] == ["local", "far"]
        assert rows[0].match_tier == "strict_location"
        assert rows[1].match_tier == "expanded_location"
        assert rows[1].fit_score > rows[0].fit_score

    def test_missing_candidate_keeps_row_last(
        self, request_store, candidate_repo, snapshot_store, config
    ):
        """A row whose candidate is gone keeps its old score and moves to the end."""
        _add_request(request_store, "r1")
        candidate_repo.add("t1", make_candidate("kept", headline_hint="React Engineer"))
        request_store.replace_results("r1", "t1", [_row("gone", 1, fit=0.9), _row("kept", 2)])

        outcome = _rerank(request_store, candidate_repo, snapshot_store, config)

        assert outcome.reranked == 1
        rows = request_store.list_results("r1")
        assert [(r.candidate_id, r.rank) for r in rows] == [("kept", 1), ("gone", 2)]
        assert rows[1].fit_score == 0.9

    def test_not_complete_is_skipped(self, request_store, candidate_repo, snapshot_store, config):
        """Running and unknown requests are left alone."""
        _add_request(request_store, "r1", status="running")
        assert _rerank(request_store, candidate_repo, snapshot_store, config).skipped_reason == (
            "not_complete"
        )
        assert _rerank(
            request_store, candidate_repo, snapshot_store, config, request_id="nope"
        ).skipped_reason == "not_complete"
        assert request_store.get_request("r1").last_reranked_at is None

    def test_context_without_digest_is_skipped(
        self, request_store, candidate_repo, snapshot_store, config
    ):
        """A stored job context with no jdDigest is not reranked."""
        _add_request(request_store, "r1", job_context={"title": "Engineer"})
        request_store.replace_results("r1", "t1", [_row("c1", 1)])
        outcome = _rerank(request_store, candidate_repo, snapshot_store, config)
        assert outcome.skipped_reason == "invalid_context"
        assert request_store.list_results("r1")[0].fit_score == 0.5

    def test_empty_results_are_skipped(self, request_store, candidate_repo, snapshot_store, config):
        """A completed request with no rows has nothing to rerank."""
        _add_request(request_store, "r1")
        outcome = _rerank(request_store, candidate_repo, snapshot_store, config)
        assert outcome.skipped_reason == "no_candidates"
        assert request_store.get_request("r1").last_reranked_at is None


class TestFindRequestsToRerank:
    """Tests for find_requests_to_rerank."""

    def test_maps_completions_to_completed_requests(self, request_store, candidate_repo):
        """Only completed requests of the same tenant holding an enriched candidate are returned."""
        enriched = make_candidate(
            "c1", enrichment_status="completed", last_enriched_at=NOW - timedelta(minutes=5)
        )
        candidate_repo.add("t1", enriched)
        candidate_repo.add("t1", make_candidate("c2"))
        candidate_repo.add(
            "t2",
            make_candidate("c3", enrichment_status="completed", last_enriched_at=NOW),
        )
        _add_request(request_store, "done")
        _add_request(request_store, "running", status="running")
        _add_request(request_store, "other", tenant="t2")
        _add_request(request_store, "unrelated")
        request_store.replace_results("done", "t1", [_row("c1", 1), _row("c2", 2)])
        request_store.replace_results("running", "t1", [_row("c1", 1)])
        request_store.replace_results("other", "t2", [_row("c1", 1), _row("c3", 2)])
        request_store.replace_results("unrelated", "t1", [_row("c2", 1)])

        found = find_requests_to_rerank(
            candidate_repo, request_store, after=NOW - timedelta(hours=1), until=NOW
        )

        assert found == ["done", "other"]

    def test_window_excludes_start_and_includes_end(self, request_store, candidate_repo):
        """Completions exactly at the window start belong to the previous window."""
        candidate_repo.add(
            "t1", make_candidate("c1", enrichment_status="completed", last_enriched_at=NOW)
        )
        _add_request(request_store, "r1")
        request_store.replace_results("r1", "t1", [_row("c1", 1)])

        assert find_requests_to_rerank(
            candidate_repo, request_store, after=NOW - timedelta(minutes=1), until=NOW
        ) == ["r1"]
        assert find_requests_to_rerank(
            candidate_repo, request_store, after=NOW, until=NOW + timedelta(minutes=1)
        ) == []


class FakeSourcing:
    """Stands in for SourcingResource in op tests."""

    def __init__(self, request_store, candidate_repo, snapshot_store, config):
        self._stores = (request_store, candidate_repo, snapshot_store)
        self._config = config

    def request_store(self):
        return self._stores[0]

    def candidate_repository(self):
        return self._stores[1]

    def snapshot_store(self):
        return self._stores[2]

    def sourcing_config(self):
        return self._config


class TestRerankSourcingRequestOp:
    """Tests for the rerank_sourcing_request op."""

    def test_op_reports_outcome(self, request_store, candidate_repo, snapshot_store, config):
        """The op reranks through the resource's stores and returns the counts."""
        _add_request(request_store, "r1")
        candidate_repo.add("t1", make_candidate("c1", headline_hint="React Engineer"))
        request_store.replace_results("r1", "t1", [_row("c1", 1)])
        sourcing = FakeSourcing(request_store, candidate_repo, snapshot_store, config)

        result = rerank_sourcing_request(
            build_op_context(resources={"sourcing": sourcing}),
            SourcingRequestConfig(request_id="r1"),
        )

        assert result == {"request_id": "r1", "reranked": 1, "skipped_reason": None}
        assert request_store.get_request("r1").last_reranked_at is not None
