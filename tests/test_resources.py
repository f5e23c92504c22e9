"""Tests for Dagster resources and the mock discovery provider."""

import pytest

from talent_sourcing.resources import MockDiscoveryResource
from talent_sourcing.sourcing.discovery import MockDiscoveryProvider
from talent_sourcing.sourcing.types import JobRequirements

REQUIREMENTS = JobRequirements(
    top_skills=("Python", "Django"),
    seniority_level="senior",
    role_family="backend",
    location="Berlin",
)


class TestMockDiscoveryProvider:
    """Tests for MockDiscoveryProvider."""

    def test_discovers_pending_candidates(self, candidate_repo):
        """Discovered people are registered as pending candidates of the tenant."""
        provider = MockDiscoveryProvider(candidate_repo)
        result = provider.discover("t1", REQUIREMENTS, target_count=12, max_queries=3)

        assert result.queries_executed == 2
        assert len(result.candidate_ids) == 12
        pool = candidate_repo.load_pool("t1", 100)
        assert {c.candidate_id for c in pool} == set(result.candidate_ids)
        assert all(c.enrichment_status == "pending" for c in pool)
        assert pool[0].location_hint == "Berlin"
        assert "Senior Backend Engineer" in pool[0].headline_hint
        assert pool[0].search_snippet == "Experience with Python, Django"

    def test_same_request_same_people(self, candidate_repo):
        """Repeat discovery for the same job returns the same candidate ids."""
        provider = MockDiscoveryProvider(candidate_repo)
        first = provider.discover("t1", REQUIREMENTS, target_count=5, max_queries=3)
        second = provider.discover("t1", REQUIREMENTS, target_count=5, max_queries=3)
        assert first.candidate_ids == second.candidate_ids
        assert len(candidate_repo.load_pool("t1", 100)) == 5

    @pytest.mark.parametrize(
        ("yield_rate", "max_queries", "expected_found", "expected_queries"),
        [(0.5, 3, 15, 3), (1.0, 1, 10, 1), (0.0, 3, 0, 3)],
    )
    def test_yield_and_query_limits(
        self, candidate_repo, yield_rate, max_queries, expected_found, expected_queries
    ):
        """Yield rate and the query limit bound what discovery returns."""
        provider = MockDiscoveryProvider(candidate_repo, yield_rate=yield_rate)
        result = provider.discover("t1", REQUIREMENTS, target_count=40, max_queries=max_queries)
        assert len(result.candidate_ids) == expected_found
        assert result.queries_executed == expected_queries

    def test_no_budget_no_queries(self, candidate_repo):
        """A zero target or zero query allowance spends nothing."""
        provider = MockDiscoveryProvider(candidate_repo)
        assert provider.discover("t1", REQUIREMENTS, target_count=0, max_queries=3).queries_executed == 0
        assert provider.discover("t1", REQUIREMENTS, target_count=5, max_queries=0).candidate_ids == []


class TestMockDiscoveryResource:
    """Tests for the MockDiscoveryResource."""

    def test_provider_uses_resource_settings(self, candidate_repo):
        """The provider inherits yield rate and page size from the resource."""
        resource = MockDiscoveryResource(yield_rate=0.5, results_per_query=4)
        provider = resource.get_provider(candidate_repo)
        assert provider.yield_rate == 0.5
        assert provider.results_per_query == 4
        assert provider.candidates is candidate_repo

    def test_out_of_range_yield_is_clamped(self, candidate_repo):
        """Yield rates outside 0-1 are clamped by the provider."""
        provider = MockDiscoveryResource(yield_rate=3.0).get_provider(candidate_repo)
        assert provider.yield_rate == 1.0
