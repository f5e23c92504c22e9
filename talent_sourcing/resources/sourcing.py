"""Sourcing resource: PostgreSQL-backed stores, queue and worker wiring.

The resource owns the process-lifetime TTL cache used by the novelty filter;
it is created when the resource is initialized for a run and its sweeper is
stopped on teardown.
"""

from dagster import ConfigurableResource, InitResourceContext
from pydantic import Field, PrivateAttr

from talent_sourcing.cache import TTLStore
from talent_sourcing.config import (
    NonTechConfig,
    SourcingConfig,
    get_non_tech_config,
    get_sourcing_config,
)
from talent_sourcing.repositories.postgres import (
    PostgresCandidateRepository,
    PostgresSnapshotStore,
    PostgresSourcingRequestStore,
)
from talent_sourcing.sourcing.idempotency import IdempotencyController
from talent_sourcing.sourcing.orchestrator import DiscoveryProvider
from talent_sourcing.sourcing.queue import PostgresJobQueue
from talent_sourcing.sourcing.worker import SourcingWorker, build_sourcing_worker


class SourcingResource(ConfigurableResource):
    """Builds the sourcing collaborators for ops, sensors and the CLI."""

    callback_auth_token: str = Field(
        default="",
        description="Bearer token sent with result callbacks (empty sends no Authorization header)",
    )
    novelty_cache_ttl_seconds: float = Field(
        default=60.0,
        description="How long a novelty exposure lookup is reused",
    )
    cache_sweep_interval_seconds: float = Field(
        default=30.0,
        description="Interval of the expired-entry sweep on the shared TTL cache",
    )

    _cache: TTLStore | None = PrivateAttr(default=None)

    def setup_for_execution(self, context: InitResourceContext) -> None:
        self._cache = TTLStore(default_ttl_seconds=self.novelty_cache_ttl_seconds)
        self._cache.start_sweeper(self.cache_sweep_interval_seconds)

    def teardown_after_execution(self, context: InitResourceContext) -> None:
        if self._cache is not None:
            self._cache.stop()
            self._cache = None

    @property
    def cache(self) -> TTLStore | None:
        return self._cache

    def sourcing_config(self) -> SourcingConfig:
        return get_sourcing_config()

    def non_tech_config(self) -> NonTechConfig:
        return get_non_tech_config()

    def request_store(self) -> PostgresSourcingRequestStore:
        return PostgresSourcingRequestStore()

    def candidate_repository(self) -> PostgresCandidateRepository:
        return PostgresCandidateRepository()

    def snapshot_store(self) -> PostgresSnapshotStore:
        return PostgresSnapshotStore()

    def job_queue(self) -> PostgresJobQueue:
        return PostgresJobQueue()

    def controller(self) -> IdempotencyController:
        return IdempotencyController(self.request_store(), self.job_queue(), self.sourcing_config())

    def build_worker(self, discovery: DiscoveryProvider) -> SourcingWorker:
        return build_sourcing_worker(
            store=self.request_store(),
            candidates=self.candidate_repository(),
            snapshots=self.snapshot_store(),
            queue=self.job_queue(),
            discovery=discovery,
            config=self.sourcing_config(),
            non_tech_config=self.non_tech_config(),
            cache=self._cache,
            callback_auth_token=self.callback_auth_token or None,
        )
