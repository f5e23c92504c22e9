"""Tests for the recent-exposure (novelty) lookup."""

from datetime import timedelta
from unittest.mock import MagicMock

from talent_sourcing.cache import TTLStore
from talent_sourcing.repositories.memory import InMemorySourcingRequestStore
from talent_sourcing.sourcing.novelty import (
    NoveltyFilter,
    get_recently_exposed_candidate_ids,
    normalize_city,
)
from talent_sourcing.sourcing.types import SourcingRequestRecord, StoredResult
from tests.conftest import NOW


def _completed_request(store, request_id, job_context, candidate_ids, *, tenant="t1", age_days=1):
    store.create_request(
        SourcingRequestRecord(
            id=request_id,
            tenant_id=tenant,
            external_job_id=f"job-{request_id}",
            job_context_hash=request_id,
            job_context=job_context,
            callback_url="https://example.com/cb",
            status="complete",
            requested_at=NOW - timedelta(days=age_days),
        )
    )
    store.replace_results(
        request_id,
        tenant,
        [
            StoredResult(
                candidate_id=cid,
                rank=i + 1,
                group="best_matches",
                source_type="existing",
                enrichment_status="completed",
            )
            for i, cid in enumerate(candidate_ids)
        ],
    )


class TestNormalizeCity:
    """Tests for the city key."""

    def test_aliases_share_a_key(self):
        """Alias spellings of one city normalize identically."""
        assert normalize_city("Bengaluru, India") == normalize_city("Bangalore")
        assert normalize_city(None) is None
        assert normalize_city("India") is None


class TestRecentlyExposed:
    """Tests for get_recently_exposed_candidate_ids."""

    def test_matches_role_family_and_city(self):
        """Only completed requests with the same family and city count."""
        store = InMemorySourcingRequestStore()
        _completed_request(
            store, "r1", {"jdDigest": "Python", "title": "Backend Engineer", "location": "Bengaluru"}, ["c1", "c2"]
        )
        _completed_request(
            store, "r2", {"jdDigest": "React", "title": "Frontend Engineer", "location": "Bangalore"}, ["c3"]
        )
        _completed_request(
            store, "r3", {"jdDigest": "Go", "title": "Backend Engineer", "location": "Pune"}, ["c4"]
        )
        _completed_request(
            store,
            "r4",
            {"jdDigest": "Java", "title": "Backend Engineer", "location": "Bangalore"},
            ["c5"],
            age_days=45,
        )
        _completed_request(
            store,
            "r5",
            {"jdDigest": "Java", "title": "Backend Engineer", "location": "Bangalore"},
            ["c6"],
            tenant="other",
        )

        exposed = get_recently_exposed_candidate_ids(
            store, "t1", "backend", "Bangalore, India", 30, now=NOW
        )
        assert exposed == {"c1", "c2"}

    def test_no_role_family_is_empty(self):
        """Without a role family nothing is compared."""
        store = MagicMock()
        assert get_recently_exposed_candidate_ids(store, "t1", None, "Berlin", 30, now=NOW) == set()
        store.list_completed_requests.assert_not_called()


class TestNoveltyFilter:
    """Tests for the cached filter."""

    def test_cache_reuses_lookup(self):
        """A second lookup with the same key is served from the cache."""
        store = MagicMock()
        store.list_completed_requests.return_value = []
        novelty = NoveltyFilter(store, 30, cache=TTLStore(default_ttl_seconds=60))

        assert novelty.exposed_ids("t1", "backend", "Berlin", now=NOW) == set()
        assert novelty.exposed_ids("t1", "Backend", "berlin", now=NOW) == set()
        assert store.list_completed_requests.call_count == 1

    def test_without_cache_queries_every_time(self):
        """No cache means every call hits the store."""
        store = MagicMock()
        store.list_completed_requests.return_value = []
        novelty = NoveltyFilter(store, 30)
        novelty.exposed_ids("t1", "backend", "Berlin", now=NOW)
        novelty.exposed_ids("t1", "backend", "Berlin", now=NOW)
        assert store.list_completed_requests.call_count == 2
