"""Discovery resource for finding candidates beyond the tenant's known pool.

Live search providers are not part of this project; the resource hands out a
deterministic mock provider whose yield can be tuned to exercise shortfall
handling and the quality gate.
"""

from dagster import ConfigurableResource
from pydantic import Field

from talent_sourcing.repositories.base import CandidateRepository
from talent_sourcing.sourcing.discovery import MockDiscoveryProvider


class MockDiscoveryResource(ConfigurableResource):
    """Mock discovery: plausible pending candidates, seeded by the job requirements."""

    yield_rate: float = Field(
        default=1.0,
        description="Fraction of the requested candidates the mock returns (0-1)",
    )
    results_per_query: int = Field(
        default=10,
        description="Candidates one simulated search query yields",
    )

    def get_provider(self, candidates: CandidateRepository) -> MockDiscoveryProvider:
        return MockDiscoveryProvider(
            candidates,
            yield_rate=self.yield_rate,
            results_per_query=self.results_per_query,
        )
