"""PostgreSQL-backed stores (SQLAlchemy 2.0, one short-lived session per call)."""

from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from talent_sourcing.db import get_session
from talent_sourcing.errors import SourcingRequestNotFound
from talent_sourcing.models.candidates import Candidate, CandidateIntelligenceSnapshot
from talent_sourcing.models.enums import (
    CandidateSourceTypeEnum,
    EnrichmentStatusEnum,
    MatchTierEnum,
    SnapshotTrackEnum,
    SourcingStatusEnum,
)
from talent_sourcing.models.sourcing import JobSourcingCandidate, JobSourcingRequest
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
    SourcingDiagnostics,
    SourcingRequestRecord,
    StoredResult,
)

SessionFactory = Callable[[], Session]


def _uuids(ids: Iterable[str]) -> list[UUID]:
    return [UUID(i) if isinstance(i, str) else i for i in ids]


def _enum_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


# ═══════════════════════════════════════════════════════════════════
# SOURCING REQUESTS
# ═══════════════════════════════════════════════════════════════════


def _to_record(row: JobSourcingRequest) -> SourcingRequestRecord:
    return SourcingRequestRecord(
        id=str(row.id),
        tenant_id=row.tenant_id,
        external_job_id=row.external_job_id,
        job_context_hash=row.job_context_hash,
        job_context=row.job_context or {},
        callback_url=row.callback_url,
        status=_enum_value(row.status),
        requested_at=row.requested_at,
        diagnostics=SourcingDiagnostics.from_json(row.diagnostics),
        result_count=row.result_count,
        quality_gate_triggered=row.quality_gate_triggered,
        queries_executed=row.queries_executed,
        callback_attempts=row.callback_attempts or 0,
        last_callback_error=row.last_callback_error,
        completed_at=row.completed_at,
        last_reranked_at=row.last_reranked_at,
    )


def _column_value(name: str, value: Any) -> Any:
    if name == "status":
        return SourcingStatusEnum(value)
    if name == "diagnostics":
        return value.to_json() if isinstance(value, SourcingDiagnostics) else value
    return value


class PostgresSourcingRequestStore(SourcingRequestStore):
    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    def _select_by_key(self, session: Session, tenant_id, external_job_id, job_context_hash):
        return session.execute(
            select(JobSourcingRequest).where(
                JobSourcingRequest.tenant_id == tenant_id,
                JobSourcingRequest.external_job_id == external_job_id,
                JobSourcingRequest.job_context_hash == job_context_hash,
            )
        ).scalar_one_or_none()

    def find_request(self, tenant_id, external_job_id, job_context_hash):
        session = self._session_factory()
        try:
            row = self._select_by_key(session, tenant_id, external_job_id, job_context_hash)
            return _to_record(row) if row else None
        finally:
            session.close()

    def create_request(self, record):
        session = self._session_factory()
        try:
            stmt = insert(JobSourcingRequest).values(
                id=UUID(record.id),
                tenant_id=record.tenant_id,
                external_job_id=record.external_job_id,
                job_context_hash=record.job_context_hash,
                job_context=record.job_context,
                callback_url=record.callback_url,
                status=SourcingStatusEnum(record.status),
                diagnostics=record.diagnostics.to_json(),
                callback_attempts=record.callback_attempts,
                requested_at=record.requested_at,
            )
            stmt = stmt.on_conflict_do_nothing(
                constraint="uq_sourcing_request_tenant_job_hash"
            ).returning(JobSourcingRequest.id)
            inserted_id = session.execute(stmt).scalar_one_or_none()
            session.commit()

            row = self._select_by_key(
                session, record.tenant_id, record.external_job_id, record.job_context_hash
            )
            return _to_record(row), inserted_id is not None
        finally:
            session.close()

    def get_request(self, request_id):
        session = self._session_factory()
        try:
            row = session.get(JobSourcingRequest, UUID(request_id))
            return _to_record(row) if row else None
        finally:
            session.close()

    def update_request(self, request_id, **fields):
        session = self._session_factory()
        try:
            row = session.get(JobSourcingRequest, UUID(request_id))
            if row is None:
                raise SourcingRequestNotFound(request_id)
            for name, value in fields.items():
                setattr(row, name, _column_value(name, value))
            session.commit()
            session.refresh(row)
            return _to_record(row)
        finally:
            session.close()

    def find_latest_request(self, tenant_id, external_job_id, request_id=None):
        session = self._session_factory()
        try:
            stmt = select(JobSourcingRequest).where(
                JobSourcingRequest.tenant_id == tenant_id,
                JobSourcingRequest.external_job_id == external_job_id,
            )
            if request_id is not None:
                stmt = stmt.where(JobSourcingRequest.id == UUID(request_id))
            stmt = stmt.order_by(JobSourcingRequest.requested_at.desc()).limit(1)
            row = session.execute(stmt).scalar_one_or_none()
            return _to_record(row) if row else None
        finally:
            session.close()

    def list_completed_requests(self, tenant_id, since):
        session = self._session_factory()
        try:
            rows = session.execute(
                select(JobSourcingRequest).where(
                    JobSourcingRequest.tenant_id == tenant_id,
                    JobSourcingRequest.status == SourcingStatusEnum.COMPLETE,
                    JobSourcingRequest.requested_at >= since,
                )
            ).scalars()
            return [_to_record(row) for row in rows]
        finally:
            session.close()

    def list_result_candidate_ids(self, request_ids):
        uuids = _uuids(request_ids)
        if not uuids:
            return set()
        session = self._session_factory()
        try:
            rows = session.execute(
                select(JobSourcingCandidate.candidate_id)
                .where(JobSourcingCandidate.sourcing_request_id.in_(uuids))
                .distinct()
            ).scalars()
            return {str(cid) for cid in rows}
        finally:
            session.close()

    def replace_results(self, request_id, tenant_id, entries):
        session = self._session_factory()
        try:
            session.execute(
                delete(JobSourcingCandidate).where(
                    JobSourcingCandidate.sourcing_request_id == UUID(request_id)
                )
            )
            for entry in entries:
                session.add(
                    JobSourcingCandidate(
                        sourcing_request_id=UUID(request_id),
                        candidate_id=UUID(entry.candidate_id),
                        tenant_id=tenant_id,
                        rank=entry.rank,
                        result_group=entry.group,
                        fit_score=entry.fit_score,
                        fit_breakdown=entry.fit_breakdown,
                        match_tier=MatchTierEnum(entry.match_tier) if entry.match_tier else None,
                        location_match_type=entry.location_match_type,
                        source_type=CandidateSourceTypeEnum(entry.source_type),
                        enrichment_status=EnrichmentStatusEnum(entry.enrichment_status),
                        non_tech_validation=entry.non_tech_validation,
                    )
                )
            session.commit()
        finally:
            session.close()

    def list_results(self, request_id):
        session = self._session_factory()
        try:
            rows = session.execute(
                select(JobSourcingCandidate)
                .where(JobSourcingCandidate.sourcing_request_id == UUID(request_id))
                .order_by(JobSourcingCandidate.rank)
            ).scalars()
            return [
                StoredResult(
                    candidate_id=str(row.candidate_id),
                    rank=row.rank,
                    group=row.result_group,
                    source_type=_enum_value(row.source_type),
                    enrichment_status=_enum_value(row.enrichment_status),
                    fit_score=row.fit_score,
                    fit_breakdown=row.fit_breakdown,
                    match_tier=_enum_value(row.match_tier) if row.match_tier else None,
                    location_match_type=row.location_match_type,
                    non_tech_validation=row.non_tech_validation,
                )
                for row in rows
            ]
        finally:
            session.close()

    def list_callback_failed(self, since, limit, tenant_id=None):
        session = self._session_factory()
        try:
            stmt = select(JobSourcingRequest).where(
                JobSourcingRequest.status == SourcingStatusEnum.CALLBACK_FAILED,
                JobSourcingRequest.requested_at >= since,
            )
            if tenant_id is not None:
                stmt = stmt.where(JobSourcingRequest.tenant_id == tenant_id)
            stmt = stmt.order_by(JobSourcingRequest.requested_at).limit(limit)
            return [_to_record(row) for row in session.execute(stmt).scalars()]
        finally:
            session.close()

    def count_serp_queries_since(self, tenant_id, since):
        session = self._session_factory()
        try:
            total = session.execute(
                select(func.coalesce(func.sum(JobSourcingRequest.queries_executed), 0)).where(
                    JobSourcingRequest.tenant_id == tenant_id,
                    JobSourcingRequest.requested_at >= since,
                )
            ).scalar_one()
            return int(total)
        finally:
            session.close()

    def list_requests_containing(self, tenant_id, candidate_ids, status):
        uuids = _uuids(candidate_ids)
        if not uuids:
            return []
        session = self._session_factory()
        try:
            rows = session.execute(
                select(JobSourcingRequest.id)
                .join(
                    JobSourcingCandidate,
                    JobSourcingCandidate.sourcing_request_id == JobSourcingRequest.id,
                )
                .where(
                    JobSourcingRequest.tenant_id == tenant_id,
                    JobSourcingRequest.status == SourcingStatusEnum(status),
                    JobSourcingCandidate.candidate_id.in_(uuids),
                )
                .group_by(JobSourcingRequest.id, JobSourcingRequest.requested_at)
                .order_by(JobSourcingRequest.requested_at, JobSourcingRequest.id)
            ).scalars()
            return [str(request_id) for request_id in rows]
        finally:
            session.close()


# ═══════════════════════════════════════════════════════════════════
# CANDIDATES & SNAPSHOTS
# ═══════════════════════════════════════════════════════════════════


def _to_candidate(row: Candidate) -> CandidateForRanking:
    return CandidateForRanking(
        candidate_id=str(row.id),
        headline_hint=row.headline_hint,
        search_title=row.search_title,
        search_snippet=row.search_snippet,
        location_hint=row.location_hint,
        company_hint=row.company_hint,
        enrichment_status=_enum_value(row.enrichment_status),
        last_enriched_at=row.last_enriched_at,
        search_meta=row.search_meta,
    )


class PostgresCandidateRepository(CandidateRepository):
    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    def load_pool(self, tenant_id, limit):
        session = self._session_factory()
        try:
            rows = session.execute(
                select(Candidate)
                .where(Candidate.tenant_id == tenant_id)
                .order_by(Candidate.created_at, Candidate.id)
                .limit(limit)
            ).scalars()
            return [_to_candidate(row) for row in rows]
        finally:
            session.close()

    def get_candidates(self, candidate_ids):
        uuids = _uuids(candidate_ids)
        if not uuids:
            return []
        session = self._session_factory()
        try:
            rows = session.execute(select(Candidate).where(Candidate.id.in_(uuids))).scalars()
            return [_to_candidate(row) for row in rows]
        finally:
            session.close()

    def add_discovered(self, tenant_id, hints):
        session = self._session_factory()
        ids = []
        try:
            for hint in hints:
                values = {
                    "tenant_id": tenant_id,
                    "linkedin_id": hint.get("linkedin_id"),
                    "linkedin_url": hint.get("linkedin_url"),
                    "name_hint": hint.get("name_hint"),
                    "headline_hint": hint.get("headline_hint"),
                    "location_hint": hint.get("location_hint"),
                    "company_hint": hint.get("company_hint"),
                    "search_title": hint.get("search_title"),
                    "search_snippet": hint.get("search_snippet"),
                    "search_meta": hint.get("search_meta"),
                    "enrichment_status": EnrichmentStatusEnum.PENDING,
                }
                stmt = (
                    insert(Candidate)
                    .values(**values)
                    .on_conflict_do_update(
                        constraint="uq_candidates_tenant_linkedin",
                        set_={"search_meta": values["search_meta"]},
                    )
                    .returning(Candidate.id)
                )
                ids.append(str(session.execute(stmt).scalar_one()))
            session.commit()
        finally:
            session.close()
        return ids

    def record_ranking(self, fit_scores, ranked_at):
        if not fit_scores:
            return
        session = self._session_factory()
        try:
            for candidate_id, score in fit_scores.items():
                session.execute(
                    update(Candidate)
                    .where(Candidate.id == UUID(candidate_id))
                    .values(last_fit_score=score, last_ranked_at=ranked_at)
                )
            session.commit()
        finally:
            session.close()

    def list_enriched_between(self, after, until):
        session = self._session_factory()
        try:
            rows = session.execute(
                select(Candidate.tenant_id, Candidate.id, Candidate.last_enriched_at)
                .where(
                    Candidate.enrichment_status == EnrichmentStatusEnum.COMPLETED,
                    Candidate.last_enriched_at > after,
                    Candidate.last_enriched_at <= until,
                )
                .order_by(Candidate.last_enriched_at, Candidate.id)
            ).all()
            return [
                EnrichmentCompletion(tenant_id, str(candidate_id), enriched_at)
                for tenant_id, candidate_id, enriched_at in rows
            ]
        finally:
            session.close()


class PostgresSnapshotStore(SnapshotStore):
    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    def get_snapshots(self, candidate_ids, track):
        uuids = _uuids(candidate_ids)
        if not uuids:
            return {}
        session = self._session_factory()
        try:
            rows = session.execute(
                select(CandidateIntelligenceSnapshot).where(
                    CandidateIntelligenceSnapshot.candidate_id.in_(uuids),
                    CandidateIntelligenceSnapshot.track == SnapshotTrackEnum(track),
                )
            ).scalars()
            return {
                str(row.candidate_id): CandidateSnapshot(
                    skills_normalized=row.skills_normalized,
                    role_type=row.role_type,
                    seniority_band=row.seniority_band,
                    location=row.location,
                    computed_at=row.computed_at,
                    stale_after=row.stale_after,
                )
                for row in rows
            }
        finally:
            session.close()

    def upsert_non_tech_snapshot(
        self,
        candidate_id: str,
        tenant_id: str,
        score: NonTechScore,
        signals: NonTechSignals,
        computed_at: datetime,
        stale_after: datetime,
    ) -> None:
        session = self._session_factory()
        try:
            values = {
                "candidate_id": UUID(candidate_id),
                "tenant_id": tenant_id,
                "track": SnapshotTrackEnum.NON_TECH,
                "seniority_band": signals.seniority_validation.normalized_band,
                "tier": score.tier,
                "overall_score": score.overall_score,
                "signals": signals_to_dict(signals),
                "computed_at": computed_at,
                "stale_after": stale_after,
            }
            stmt = insert(CandidateIntelligenceSnapshot).values(**values)
            stmt = stmt.on_conflict_do_update(
                constraint="uq_snapshot_candidate_track",
                set_={
                    k: values[k]
                    for k in (
                        "seniority_band",
                        "tier",
                        "overall_score",
                        "signals",
                        "computed_at",
                        "stale_after",
                    )
                },
            )
            session.execute(stmt)
            session.commit()
        finally:
            session.close()
