"""In-memory stores for tests and local runs. Thread-safe, process-local."""

import copy
import threading
from collections.abc import Iterable
from datetime import datetime
from typing import Any
from uuid import uuid4

from talent_sourcing.errors import SourcingRequestNotFound
from talent_sourcing.models.enums import EnrichmentStatusEnum, SourcingStatusEnum
from talent_sourcing.repositories.base import (
    CandidateRepository,
    SnapshotStore,
    SourcingRequestStore,
)
from talent_sourcing.sourcing.non_tech import signals_to_dict
from talent_sourcing.sourcing.types import (
    CandidateForRanking,
    CandidateSnapshot,
    EnrichmentCompletion,
    NonTechScore,
    NonTechSignals,
    SourcingRequestRecord,
    StoredResult,
)


class InMemorySourcingRequestStore(SourcingRequestStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._requests: dict[str, SourcingRequestRecord] = {}
        self._results: dict[str, list[StoredResult]] = {}

    def find_request(self, tenant_id, external_job_id, job_context_hash):
        with self._lock:
            for record in self._requests.values():
                if (
                    record.tenant_id == tenant_id
                    and record.external_job_id == external_job_id
                    and record.job_context_hash == job_context_hash
                ):
                    return copy.deepcopy(record)
        return None

    def create_request(self, record):
        with self._lock:
            for existing in self._requests.values():
                if (
                    existing.tenant_id == record.tenant_id
                    and existing.external_job_id == record.external_job_id
                    and existing.job_context_hash == record.job_context_hash
                ):
                    return copy.deepcopy(existing), False
            self._requests[record.id] = copy.deepcopy(record)
            return copy.deepcopy(record), True

    def get_request(self, request_id):
        with self._lock:
            record = self._requests.get(request_id)
            return copy.deepcopy(record) if record else None

    def update_request(self, request_id, **fields):
        with self._lock:
            record = self._requests.get(request_id)
            if record is None:
                raise SourcingRequestNotFound(request_id)
            for name, value in fields.items():
                if not hasattr(record, name):
                    raise AttributeError(f"SourcingRequestRecord has no field {name!r}")
                setattr(record, name, copy.deepcopy(value))
            return copy.deepcopy(record)

    def find_latest_request(self, tenant_id, external_job_id, request_id=None):
        with self._lock:
            matches = [
                r
                for r in self._requests.values()
                if r.tenant_id == tenant_id and r.external_job_id == external_job_id
            ]
        if request_id is not None:
            matches = [r for r in matches if r.id == request_id]
        if not matches:
            return None
        return copy.deepcopy(max(matches, key=lambda r: r.requested_at))

    def list_completed_requests(self, tenant_id, since):
        with self._lock:
            return [
                copy.deepcopy(r)
                for r in self._requests.values()
                if r.tenant_id == tenant_id
                and r.status == SourcingStatusEnum.COMPLETE.value
                and r.requested_at >= since
            ]

    def list_result_candidate_ids(self, request_ids):
        with self._lock:
            return {
                row.candidate_id
                for request_id in request_ids
                for row in self._results.get(request_id, [])
            }

    def replace_results(self, request_id, tenant_id, entries):
        with self._lock:
            self._results[request_id] = [copy.deepcopy(e) for e in entries]

    def list_results(self, request_id):
        with self._lock:
            rows = self._results.get(request_id, [])
            return sorted((copy.deepcopy(r) for r in rows), key=lambda r: r.rank)

    def list_callback_failed(self, since, limit, tenant_id=None):
        with self._lock:
            rows = [
                r
                for r in self._requests.values()
                if r.status == SourcingStatusEnum.CALLBACK_FAILED.value
                and r.requested_at >= since
                and (tenant_id is None or r.tenant_id == tenant_id)
            ]
        rows.sort(key=lambda r: r.requested_at)
        return [copy.deepcopy(r) for r in rows[:limit]]

    def count_serp_queries_since(self, tenant_id, since):
        with self._lock:
            return sum(
                r.queries_executed or 0
                for r in self._requests.values()
                if r.tenant_id == tenant_id and r.requested_at >= since
            )

    def list_requests_containing(self, tenant_id, candidate_ids, status):
        wanted = set(candidate_ids)
        with self._lock:
            matches = [
                r
                for r in self._requests.values()
                if r.tenant_id == tenant_id
                and r.status == status
                and any(row.candidate_id in wanted for row in self._results.get(r.id, []))
            ]
        matches.sort(key=lambda r: (r.requested_at, r.id))
        return [r.id for r in matches]


class InMemoryCandidateRepository(CandidateRepository):
    def __init__(self, candidates: dict[str, list[CandidateForRanking]] | None = None):
        self._lock = threading.Lock()
        self._by_tenant: dict[str, list[str]] = {}
        self._candidates: dict[str, CandidateForRanking] = {}
        self._linkedin_ids: dict[tuple[str, str], str] = {}
        self.rankings: dict[str, tuple[float, datetime]] = {}
        for tenant_id, rows in (candidates or {}).items():
            for candidate in rows:
                self.add(tenant_id, candidate)

    def add(self, tenant_id: str, candidate: CandidateForRanking) -> None:
        """Insert a candidate, or replace the stored copy of an existing one."""
        with self._lock:
            if candidate.candidate_id not in self._candidates:
                self._by_tenant.setdefault(tenant_id, []).append(candidate.candidate_id)
            self._candidates[candidate.candidate_id] = copy.deepcopy(candidate)

    def load_pool(self, tenant_id, limit):
        with self._lock:
            ids = self._by_tenant.get(tenant_id, [])[:limit]
            return [copy.deepcopy(self._candidates[cid]) for cid in ids]

    def get_candidates(self, candidate_ids):
        with self._lock:
            return [
                copy.deepcopy(self._candidates[cid])
                for cid in candidate_ids
                if cid in self._candidates
            ]

    def add_discovered(self, tenant_id: str, hints: list[dict[str, Any]]) -> list[str]:
        ids = []
        for hint in hints:
            linkedin_id = hint.get("linkedin_id")
            with self._lock:
                existing = self._linkedin_ids.get((tenant_id, linkedin_id)) if linkedin_id else None
            if existing:
                ids.append(existing)
                continue
            candidate = CandidateForRanking(
                candidate_id=str(uuid4()),
                headline_hint=hint.get("headline_hint"),
                search_title=hint.get("search_title"),
                search_snippet=hint.get("search_snippet"),
                location_hint=hint.get("location_hint"),
                company_hint=hint.get("company_hint"),
                enrichment_status=EnrichmentStatusEnum.PENDING.value,
                search_meta=hint.get("search_meta"),
            )
            self.add(tenant_id, candidate)
            if linkedin_id:
                with self._lock:
                    self._linkedin_ids[(tenant_id, linkedin_id)] = candidate.candidate_id
            ids.append(candidate.candidate_id)
        return ids

    def record_ranking(self, fit_scores: dict[str, float], ranked_at: datetime) -> None:
        with self._lock:
            for candidate_id, score in fit_scores.items():
                self.rankings[candidate_id] = (score, ranked_at)

    def list_enriched_between(self, after, until):
        completions = []
        with self._lock:
            for tenant_id, ids in self._by_tenant.items():
                for cid in ids:
                    candidate = self._candidates[cid]
                    enriched_at = candidate.last_enriched_at
                    if candidate.is_enriched and enriched_at and after < enriched_at <= until:
                        completions.append(EnrichmentCompletion(tenant_id, cid, enriched_at))
        completions.sort(key=lambda c: (c.enriched_at, c.candidate_id))
        return completions


class InMemorySnapshotStore(SnapshotStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._snapshots: dict[tuple[str, str], CandidateSnapshot] = {}
        self.non_tech: dict[str, dict[str, Any]] = {}

    def put(self, candidate_id: str, track: str, snapshot: CandidateSnapshot) -> None:
        with self._lock:
            self._snapshots[(candidate_id, track)] = snapshot

    def get_snapshots(self, candidate_ids: Iterable[str], track: str):
        with self._lock:
            return {
                cid: copy.deepcopy(self._snapshots[(cid, track)])
                for cid in candidate_ids
                if (cid, track) in self._snapshots
            }

    def upsert_non_tech_snapshot(
        self,
        candidate_id: str,
        tenant_id: str,
        score: NonTechScore,
        signals: NonTechSignals,
        computed_at: datetime,
        stale_after: datetime,
    ) -> None:
        with self._lock:
            self.non_tech[candidate_id] = {
                "tenant_id": tenant_id,
                "tier": score.tier,
                "overall_score": score.overall_score,
                "signals": signals_to_dict(signals),
                "computed_at": computed_at,
                "stale_after": stale_after,
            }
