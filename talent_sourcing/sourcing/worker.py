"""Queue worker: runs one sourcing request end to end.

Status flow: queued -> running -> complete (then the callback may move it to
callback_failed), or running -> failed. A failed run keeps its track decision
in diagnostics so a retry replays the same classification.
"""

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime

import httpx

from talent_sourcing.cache import TTLStore
from talent_sourcing.config import NonTechConfig, SourcingConfig
from talent_sourcing.errors import SourcingRequestNotFound
from talent_sourcing.models.enums import SourcingStatusEnum
from talent_sourcing.repositories.base import (
    CandidateRepository,
    SnapshotStore,
    SourcingRequestStore,
)
from talent_sourcing.sourcing.callback import CallbackDelivery, build_callback_payload
from talent_sourcing.sourcing.idempotency import assert_transition
from talent_sourcing.sourcing.novelty import NoveltyFilter
from talent_sourcing.sourcing.orchestrator import DiscoveryProvider, SourcingOrchestrator
from talent_sourcing.sourcing.queue import JobQueue
from talent_sourcing.sourcing.requirements import requirements_from_job_context
from talent_sourcing.sourcing.track_resolver import resolve_track
from talent_sourcing.sourcing.types import SourcingRequestRecord, StoredResult

logger = logging.getLogger(__name__)


class SourcingWorker:
    def __init__(
        self,
        store: SourcingRequestStore,
        candidates: CandidateRepository,
        queue: JobQueue,
        orchestrator: SourcingOrchestrator,
        callback: CallbackDelivery,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.store = store
        self.candidates = candidates
        self.queue = queue
        self.orchestrator = orchestrator
        self.callback = callback
        self.clock = clock

    def handle_job(self, job_id: str) -> SourcingRequestRecord | None:
        """Claim and process one queue job. Returns None if another worker holds it."""
        job = self.queue.claim(job_id)
        if job is None:
            logger.info("Queue job %s not claimable, skipping", job_id)
            return None
        try:
            record = self.process(job_id)
        except Exception as e:
            self.queue.fail(job_id, f"{type(e).__name__}: {e}")
            raise
        self.queue.complete(job_id)
        return record

    def process(self, request_id: str) -> SourcingRequestRecord:
        record = self.store.get_request(request_id)
        if record is None:
            raise SourcingRequestNotFound(request_id)
        if record.status != SourcingStatusEnum.QUEUED.value:
            logger.warning(
                "Sourcing request %s is %s, not queued; nothing to do", request_id, record.status
            )
            return record

        assert_transition(record.status, SourcingStatusEnum.RUNNING.value)
        record = self.store.update_request(request_id, status=SourcingStatusEnum.RUNNING.value)
        logger.info("Sourcing request %s: queued -> running", request_id)

        now = self.clock()
        try:
            requirements = requirements_from_job_context(record.job_context)
            decision = record.track_decision
            if decision is None:
                # Rows created before decisions were persisted
                decision = resolve_track(
                    requirements,
                    record.job_context,
                    title=record.job_context.get("title"),
                    jd_digest=record.job_context.get("jdDigest"),
                    config=self.orchestrator.config,
                    now=now,
                )

            outcome = self.orchestrator.run(record, requirements, decision, now=now)

            self.store.replace_results(
                record.id,
                record.tenant_id,
                [StoredResult.from_assembled(e) for e in outcome.entries],
            )
            self.candidates.record_ranking(outcome.fit_scores, now)

            assert_transition(SourcingStatusEnum.RUNNING.value, SourcingStatusEnum.COMPLETE.value)
            record = self.store.update_request(
                record.id,
                status=SourcingStatusEnum.COMPLETE.value,
                result_count=len(outcome.entries),
                quality_gate_triggered=outcome.quality_gate_triggered,
                queries_executed=outcome.queries_executed,
                diagnostics=outcome.diagnostics,
                completed_at=self.clock(),
            )
        except Exception as e:
            logger.exception("Sourcing request %s failed", request_id)
            self._mark_failed(record, e)
            raise

        logger.info(
            "Sourcing request %s: running -> complete (%d candidates)",
            request_id,
            len(outcome.entries),
        )
        payload = build_callback_payload(
            record,
            SourcingStatusEnum.COMPLETE.value,
            candidate_count=len(outcome.entries),
            enriched_count=outcome.enriched_count,
        )
        self.callback.deliver(record, payload, update_status=True)
        return self.store.get_request(record.id) or record

    def _mark_failed(self, record: SourcingRequestRecord, error: Exception) -> None:
        message = f"{type(error).__name__}: {error}"
        diagnostics = record.diagnostics.model_copy(
            update={"error": message, "failed_at": self.clock()}
        )
        assert_transition(record.status, SourcingStatusEnum.FAILED.value)
        record = self.store.update_request(
            record.id, status=SourcingStatusEnum.FAILED.value, diagnostics=diagnostics
        )
        logger.info("Sourcing request %s: running -> failed", record.id)

        payload = build_callback_payload(
            record,
            SourcingStatusEnum.FAILED.value,
            candidate_count=0,
            enriched_count=0,
            error=message,
        )
        self.callback.deliver(record, payload, update_status=False)


def build_sourcing_worker(
    *,
    store: SourcingRequestStore,
    candidates: CandidateRepository,
    snapshots: SnapshotStore,
    queue: JobQueue,
    discovery: DiscoveryProvider,
    config: SourcingConfig,
    non_tech_config: NonTechConfig,
    cache: TTLStore | None = None,
    callback_auth_token: str | None = None,
    callback_transport: httpx.BaseTransport | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> SourcingWorker:
    """Wire a worker from its collaborators. Shared by the Dagster op and the CLI pool."""
    novelty = NoveltyFilter(store, config.novelty_window_days, cache=cache)
    orchestrator = SourcingOrchestrator(
        candidates, snapshots, store, discovery, config, non_tech_config, novelty
    )
    callback = CallbackDelivery(
        store,
        auth_token=callback_auth_token,
        transport=callback_transport,
        sleep=sleep,
    )
    return SourcingWorker(store, candidates, queue, orchestrator, callback)


def fail_stranded_request(
    store: SourcingRequestStore,
    request_id: str,
    error: str,
    now: datetime | None = None,
) -> bool:
    """Mark a queued/running request failed after its run died outside the worker.

    Returns False when the request is missing or already settled.
    """
    record = store.get_request(request_id)
    if record is None or record.status not in (
        SourcingStatusEnum.QUEUED.value,
        SourcingStatusEnum.RUNNING.value,
    ):
        return False
    assert_transition(record.status, SourcingStatusEnum.FAILED.value)
    diagnostics = record.diagnostics.model_copy(
        update={"error": error, "failed_at": now or datetime.now(UTC)}
    )
    store.update_request(
        request_id, status=SourcingStatusEnum.FAILED.value, diagnostics=diagnostics
    )
    logger.warning("Sourcing request %s: %s -> failed (%s)", request_id, record.status, error)
    return True
