"""Shared fixtures for the sourcing pipeline tests."""

from datetime import UTC, datetime, timedelta

import httpx
import pytest

from talent_sourcing.config import NonTechConfig, SourcingConfig
from talent_sourcing.repositories.memory import (
    InMemoryCandidateRepository,
    InMemorySnapshotStore,
    InMemorySourcingRequestStore,
)
from talent_sourcing.sourcing.queue import InMemoryJobQueue
from talent_sourcing.sourcing.types import CandidateForRanking, CandidateSnapshot

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


def make_candidate(candidate_id: str, **fields) -> CandidateForRanking:
    return CandidateForRanking(candidate_id=candidate_id, **fields)


def make_snapshot(**fields) -> CandidateSnapshot:
    fields.setdefault("computed_at", NOW - timedelta(days=5))
    fields.setdefault("stale_after", NOW + timedelta(days=25))
    return CandidateSnapshot(**fields)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request and answers from a status list."""

    def __init__(self, statuses: list[int] | None = None):
        self.requests: list[httpx.Request] = []
        self.statuses = list(statuses or [200])
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return httpx.Response(status, json={"ok": status < 300})


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def config() -> SourcingConfig:
    return SourcingConfig()


@pytest.fixture
def non_tech_config() -> NonTechConfig:
    return NonTechConfig()


@pytest.fixture
def request_store() -> InMemorySourcingRequestStore:
    return InMemorySourcingRequestStore()


@pytest.fixture
def candidate_repo() -> InMemoryCandidateRepository:
    return InMemoryCandidateRepository()


@pytest.fixture
def snapshot_store() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()


@pytest.fixture
def job_queue() -> InMemoryJobQueue:
    return InMemoryJobQueue(clock=lambda: NOW)
