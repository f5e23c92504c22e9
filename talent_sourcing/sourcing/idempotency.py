"""Request idempotency: the same job context never produces two sourcing runs.

A request is keyed by (tenant, external job id, hash of the job context).
Track hints are excluded from the hash, so re-submitting with a different hint
replays the existing request instead of starting a new one.
"""

import hashlib
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from talent_sourcing.config import SourcingConfig
from talent_sourcing.errors import (
    DuplicateJobError,
    EnqueueError,
    InvalidStatusTransition,
)
from talent_sourcing.models.enums import SourcingStatusEnum
from talent_sourcing.repositories.base import SourcingRequestStore
from talent_sourcing.sourcing.queue import JobQueue
from talent_sourcing.sourcing.requirements import requirements_from_job_context
from talent_sourcing.sourcing.track_resolver import resolve_track
from talent_sourcing.sourcing.types import (
    SourcingDiagnostics,
    SourcingRequestRecord,
    TrackDecision,
)

logger = logging.getLogger(__name__)

HASH_EXCLUDED_KEYS = frozenset({"jobTrackHint", "jobTrackHintSource", "jobTrackHintReason"})

RETRYABLE_STATUSES = frozenset(
    {SourcingStatusEnum.FAILED.value, SourcingStatusEnum.CALLBACK_FAILED.value}
)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    SourcingStatusEnum.QUEUED.value: frozenset(
        {SourcingStatusEnum.RUNNING.value, SourcingStatusEnum.FAILED.value}
    ),
    SourcingStatusEnum.RUNNING.value: frozenset(
        {SourcingStatusEnum.COMPLETE.value, SourcingStatusEnum.FAILED.value}
    ),
    SourcingStatusEnum.COMPLETE.value: frozenset({SourcingStatusEnum.CALLBACK_FAILED.value}),
    SourcingStatusEnum.FAILED.value: frozenset({SourcingStatusEnum.QUEUED.value}),
    SourcingStatusEnum.CALLBACK_FAILED.value: frozenset(
        {SourcingStatusEnum.QUEUED.value, SourcingStatusEnum.COMPLETE.value}
    ),
}


def assert_transition(current: str, target: str) -> None:
    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidStatusTransition(current, target)


def _canonical(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _canonical(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    return value


def compute_job_context_hash(job_context: Mapping[str, Any]) -> str:
    """sha256 hex of the canonical JSON job context, track hints excluded."""
    hashed = {k: v for k, v in job_context.items() if k not in HASH_EXCLUDED_KEYS}
    payload = json.dumps(_canonical(hashed), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class SubmitResult:
    request_id: str
    status: str
    idempotent: bool
    retried: bool
    track_decision: TrackDecision | None

    @property
    def status_code(self) -> int:
        return 200 if self.idempotent else 202

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "success": True,
            "requestId": self.request_id,
            "status": self.status,
            "idempotent": self.idempotent,
        }
        if self.retried:
            body["retried"] = True
        if self.track_decision is not None:
            body["trackDecision"] = self.track_decision.to_json()
        return body


class IdempotencyController:
    """Creates, replays or retries sourcing requests and keeps the queue in step."""

    def __init__(
        self,
        store: SourcingRequestStore,
        queue: JobQueue,
        config: SourcingConfig,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.store = store
        self.queue = queue
        self.config = config
        self.clock = clock

    def submit(
        self,
        tenant_id: str,
        external_job_id: str,
        job_context: Mapping[str, Any],
        callback_url: str,
    ) -> SubmitResult:
        job_context = dict(job_context)
        context_hash = compute_job_context_hash(job_context)

        existing = self.store.find_request(tenant_id, external_job_id, context_hash)
        if existing is not None:
            if existing.status in RETRYABLE_STATUSES:
                return self._retry(existing, callback_url)
            # Replays return the persisted decision even if the classifier version has
            # since changed; decisions are never recomputed for an existing request.
            logger.info(
                "Idempotent replay of sourcing request %s (%s)", existing.id, existing.status
            )
            return SubmitResult(
                request_id=existing.id,
                status=existing.status,
                idempotent=True,
                retried=False,
                track_decision=existing.track_decision,
            )

        now = self.clock()
        decision = resolve_track(
            requirements_from_job_context(job_context),
            job_context,
            title=job_context.get("title"),
            jd_digest=job_context.get("jdDigest"),
            config=self.config,
            now=now,
        )
        record, created = self.store.create_request(
            SourcingRequestRecord(
                id=str(uuid4()),
                tenant_id=tenant_id,
                external_job_id=external_job_id,
                job_context_hash=context_hash,
                job_context=job_context,
                callback_url=callback_url,
                status=SourcingStatusEnum.QUEUED.value,
                requested_at=now,
                diagnostics=SourcingDiagnostics(track_decision=decision),
            )
        )
        if not created:
            logger.info("Lost create race for %s/%s, replaying %s", tenant_id, external_job_id, record.id)
            return SubmitResult(
                request_id=record.id,
                status=record.status,
                idempotent=True,
                retried=False,
                track_decision=record.track_decision,
            )

        self._enqueue(record)
        logger.info(
            "Created sourcing request %s for %s/%s (track=%s via %s)",
            record.id,
            tenant_id,
            external_job_id,
            decision.track,
            decision.method,
        )
        return SubmitResult(
            request_id=record.id,
            status=SourcingStatusEnum.QUEUED.value,
            idempotent=False,
            retried=False,
            track_decision=decision,
        )

    def _retry(self, existing: SourcingRequestRecord, callback_url: str) -> SubmitResult:
        """Reset a failed request for another attempt, delivering to the replay's callback URL."""
        assert_transition(existing.status, SourcingStatusEnum.QUEUED.value)
        record = self.store.update_request(
            existing.id,
            status=SourcingStatusEnum.QUEUED.value,
            callback_url=callback_url,
            diagnostics=existing.diagnostics.reset_for_retry(),
            result_count=None,
            quality_gate_triggered=None,
            queries_executed=None,
            callback_attempts=0,
            last_callback_error=None,
            completed_at=None,
        )
        # Drop the previous attempt's job, including one left active by a crashed run
        self.queue.remove(record.id)
        self._enqueue(record)
        logger.info("Retrying sourcing request %s (was %s)", record.id, existing.status)
        return SubmitResult(
            request_id=record.id,
            status=SourcingStatusEnum.QUEUED.value,
            idempotent=False,
            retried=True,
            track_decision=record.track_decision,
        )

    def _enqueue(self, record: SourcingRequestRecord) -> None:
        try:
            self.queue.add(
                record.id,
                {"requestId": record.id, "tenantId": record.tenant_id},
            )
        except DuplicateJobError:
            # Already live under this id; the pending run will pick it up
            logger.warning("Queue job %s already live, not re-adding", record.id)
        except Exception as e:
            logger.exception("Failed to enqueue sourcing request %s", record.id)
            diagnostics = record.diagnostics.model_copy(
                update={"error": f"enqueue failed: {e}", "failed_at": self.clock()}
            )
            self.store.update_request(
                record.id, status=SourcingStatusEnum.FAILED.value, diagnostics=diagnostics
            )
            raise EnqueueError(f"Could not enqueue sourcing request {record.id}") from e
