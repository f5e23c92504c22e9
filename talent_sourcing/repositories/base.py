"""Storage contracts the sourcing pipeline depends on.

Each contract has a PostgreSQL implementation (``postgres.py``) and an
in-memory one (``memory.py``) used by tests and local runs.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from talent_sourcing.sourcing.types import (
    CandidateForRanking,
    CandidateSnapshot,
    EnrichmentCompletion,
    NonTechScore,
    NonTechSignals,
    SourcingRequestRecord,
    StoredResult,
)


class SourcingRequestStore(ABC):
    """Sourcing requests and their persisted result rows."""

    @abstractmethod
    def find_request(
        self, tenant_id: str, external_job_id: str, job_context_hash: str
    ) -> SourcingRequestRecord | None: ...

    @abstractmethod
    def create_request(
        self, record: SourcingRequestRecord
    ) -> tuple[SourcingRequestRecord, bool]:
        """Insert unless the (tenant, job, hash) key exists.

        Returns the stored record and whether this call created it. When a
        concurrent writer won, the winner's record is returned with False.
        """

    @abstractmethod
    def get_request(self, request_id: str) -> SourcingRequestRecord | None: ...

    @abstractmethod
    def update_request(self, request_id: str, **fields: Any) -> SourcingRequestRecord:
        """Set the given record fields. Raises SourcingRequestNotFound."""

    @abstractmethod
    def find_latest_request(
        self, tenant_id: str, external_job_id: str, request_id: str | None = None
    ) -> SourcingRequestRecord | None:
        """A specific request when request_id is given, else the newest for the job."""

    @abstractmethod
    def list_completed_requests(
        self, tenant_id: str, since: datetime
    ) -> list[SourcingRequestRecord]: ...

    @abstractmethod
    def list_result_candidate_ids(self, request_ids: Iterable[str]) -> set[str]: ...

    @abstractmethod
    def replace_results(
        self, request_id: str, tenant_id: str, entries: list[StoredResult]
    ) -> None:
        """Delete the request's result rows and write ``entries`` in their place."""

    @abstractmethod
    def list_results(self, request_id: str) -> list[StoredResult]:
        """Result rows ordered by rank."""

    @abstractmethod
    def list_callback_failed(
        self, since: datetime, limit: int, tenant_id: str | None = None
    ) -> list[SourcingRequestRecord]: ...

    @abstractmethod
    def count_serp_queries_since(self, tenant_id: str, since: datetime) -> int: ...

    @abstractmethod
    def list_requests_containing(
        self, tenant_id: str, candidate_ids: Iterable[str], status: str
    ) -> list[str]:
        """Ids of the tenant requests in ``status`` whose results include any candidate."""


class CandidateRepository(ABC):
    @abstractmethod
    def load_pool(self, tenant_id: str, limit: int) -> list[CandidateForRanking]:
        """The tenant's known candidates, without snapshots attached."""

    @abstractmethod
    def get_candidates(self, candidate_ids: Iterable[str]) -> list[CandidateForRanking]: ...

    @abstractmethod
    def add_discovered(self, tenant_id: str, hints: list[dict[str, Any]]) -> list[str]:
        """Insert pending candidates from search hints; return their ids in order.

        A hint whose linkedin_id already exists for the tenant resolves to the
        existing candidate.
        """

    @abstractmethod
    def record_ranking(self, fit_scores: dict[str, float], ranked_at: datetime) -> None:
        """Write last_fit_score / last_ranked_at for each scored candidate."""

    @abstractmethod
    def list_enriched_between(
        self, after: datetime, until: datetime
    ) -> list[EnrichmentCompletion]:
        """Completed enrichments with after < last_enriched_at <= until, oldest first."""


class SnapshotStore(ABC):
    @abstractmethod
    def get_snapshots(
        self, candidate_ids: Iterable[str], track: str
    ) -> dict[str, CandidateSnapshot]: ...

    @abstractmethod
    def upsert_non_tech_snapshot(
        self,
        candidate_id: str,
        tenant_id: str,
        score: NonTechScore,
        signals: NonTechSignals,
        computed_at: datetime,
        stale_after: datetime,
    ) -> None: ...
