"""Durable job queue for sourcing work.

Job ids equal sourcing request ids, so a queue job is always traceable to its
request. A job is "live" while waiting or active; adding a job whose id is
live raises DuplicateJobError, and a stale (completed/failed) job must be
removed before the same id can be queued again.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from talent_sourcing.db import get_session
from talent_sourcing.errors import DuplicateJobError
from talent_sourcing.models.enums import QueueJobStateEnum
from talent_sourcing.models.sourcing import SourcingQueueJob

logger = logging.getLogger(__name__)

LIVE_STATES = (QueueJobStateEnum.WAITING.value, QueueJobStateEnum.ACTIVE.value)


@dataclass(frozen=True)
class QueueJob:
    job_id: str
    state: str
    payload: dict[str, Any]
    enqueued_at: datetime
    attempts: int = 0
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: str | None = None


class JobQueue(ABC):
    @abstractmethod
    def add(self, job_id: str, payload: dict[str, Any]) -> QueueJob: ...

    @abstractmethod
    def get_job(self, job_id: str) -> QueueJob | None: ...

    @abstractmethod
    def remove(self, job_id: str) -> bool: ...

    @abstractmethod
    def claim(self, job_id: str) -> QueueJob | None:
        """Atomically move a waiting job to active. None if it is not waiting."""

    @abstractmethod
    def complete(self, job_id: str) -> None: ...

    @abstractmethod
    def fail(self, job_id: str, error: str) -> None: ...

    @abstractmethod
    def list_waiting(self, limit: int) -> list[QueueJob]:
        """Waiting jobs, oldest first."""


# ═══════════════════════════════════════════════════════════════════
# IN-MEMORY
# ═══════════════════════════════════════════════════════════════════


class InMemoryJobQueue(JobQueue):
    def __init__(self, clock: Callable[[], datetime] = lambda: datetime.now(UTC)):
        self._clock = clock
        self._lock = threading.Lock()
        self._jobs: dict[str, QueueJob] = {}

    def add(self, job_id, payload):
        with self._lock:
            existing = self._jobs.get(job_id)
            if existing is not None and existing.state in LIVE_STATES:
                raise DuplicateJobError(job_id)
            job = QueueJob(
                job_id=job_id,
                state=QueueJobStateEnum.WAITING.value,
                payload=dict(payload),
                enqueued_at=self._clock(),
            )
            self._jobs[job_id] = job
            return job

    def get_job(self, job_id):
        with self._lock:
            return self._jobs.get(job_id)

    def remove(self, job_id):
        with self._lock:
            return self._jobs.pop(job_id, None) is not None

    def claim(self, job_id):
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.state != QueueJobStateEnum.WAITING.value:
                return None
            job = replace(
                job,
                state=QueueJobStateEnum.ACTIVE.value,
                attempts=job.attempts + 1,
                started_at=self._clock(),
            )
            self._jobs[job_id] = job
            return job

    def _finish(self, job_id: str, state: QueueJobStateEnum, error: str | None) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            self._jobs[job_id] = replace(
                job, state=state.value, finished_at=self._clock(), error=error
            )

    def complete(self, job_id):
        self._finish(job_id, QueueJobStateEnum.COMPLETED, None)

    def fail(self, job_id, error):
        self._finish(job_id, QueueJobStateEnum.FAILED, error)

    def list_waiting(self, limit):
        with self._lock:
            waiting = [j for j in self._jobs.values() if j.state == QueueJobStateEnum.WAITING.value]
        waiting.sort(key=lambda j: (j.enqueued_at, j.job_id))
        return waiting[:limit]


# ═══════════════════════════════════════════════════════════════════
# POSTGRES
# ═══════════════════════════════════════════════════════════════════


def _to_job(row: SourcingQueueJob) -> QueueJob:
    return QueueJob(
        job_id=row.job_id,
        state=row.state.value,
        payload=row.payload or {},
        enqueued_at=row.enqueued_at,
        attempts=row.attempts or 0,
        started_at=row.started_at,
        finished_at=row.finished_at,
        error=row.error,
    )


class PostgresJobQueue(JobQueue):
    """Queue rows in sourcing_queue_jobs; claims use FOR UPDATE SKIP LOCKED."""

    def __init__(self, session_factory: Callable[[], Session] = get_session):
        self._session_factory = session_factory

    def add(self, job_id, payload):
        session = self._session_factory()
        try:
            row = session.get(SourcingQueueJob, job_id, with_for_update=True)
            if row is not None:
                if row.state.value in LIVE_STATES:
                    raise DuplicateJobError(job_id)
                session.delete(row)
                session.flush()
            row = SourcingQueueJob(
                job_id=job_id,
                state=QueueJobStateEnum.WAITING,
                payload=dict(payload),
                attempts=0,
                enqueued_at=datetime.now(UTC),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as e:
                # A concurrent add inserted the same id first
                session.rollback()
                raise DuplicateJobError(job_id) from e
            return _to_job(row)
        finally:
            session.close()

    def get_job(self, job_id):
        session = self._session_factory()
        try:
            row = session.get(SourcingQueueJob, job_id)
            return _to_job(row) if row else None
        finally:
            session.close()

    def remove(self, job_id):
        session = self._session_factory()
        try:
            result = session.execute(delete(SourcingQueueJob).where(SourcingQueueJob.job_id == job_id))
            session.commit()
            return result.rowcount > 0
        finally:
            session.close()

    def claim(self, job_id):
        session = self._session_factory()
        try:
            row = session.execute(
                select(SourcingQueueJob)
                .where(
                    SourcingQueueJob.job_id == job_id,
                    SourcingQueueJob.state == QueueJobStateEnum.WAITING,
                )
                .with_for_update(skip_locked=True)
            ).scalar_one_or_none()
            if row is None:
                session.rollback()
                return None
            row.state = QueueJobStateEnum.ACTIVE
            row.attempts = (row.attempts or 0) + 1
            row.started_at = datetime.now(UTC)
            session.commit()
            return _to_job(row)
        finally:
            session.close()

    def _finish(self, job_id: str, state: QueueJobStateEnum, error: str | None) -> None:
        session = self._session_factory()
        try:
            row = session.get(SourcingQueueJob, job_id)
            if row is None:
                return
            row.state = state
            row.error = error
            row.finished_at = datetime.now(UTC)
            session.commit()
        finally:
            session.close()

    def complete(self, job_id):
        self._finish(job_id, QueueJobStateEnum.COMPLETED, None)

    def fail(self, job_id, error):
        self._finish(job_id, QueueJobStateEnum.FAILED, error)

    def list_waiting(self, limit):
        session = self._session_factory()
        try:
            rows = session.execute(
                select(SourcingQueueJob)
                .where(SourcingQueueJob.state == QueueJobStateEnum.WAITING)
                .order_by(SourcingQueueJob.enqueued_at, SourcingQueueJob.job_id)
                .limit(limit)
            ).scalars()
            return [_to_job(row) for row in rows]
        finally:
            session.close()


# ═══════════════════════════════════════════════════════════════════
# LOCAL WORKER POOL
# ═══════════════════════════════════════════════════════════════════


class SourcingWorkerPool:
    """Drains a JobQueue with a fixed-size thread pool.

    Used outside Dagster (the ``sourcing-worker`` console script). The
    ``handler`` receives a job id and must claim the job itself, so two pools
    polling the same queue never process a job twice.
    """

    def __init__(
        self,
        queue: JobQueue,
        handler: Callable[[str], Any],
        concurrency: int = 4,
        poll_interval_seconds: float = 2.0,
    ):
        self.queue = queue
        self.handler = handler
        self.concurrency = max(1, concurrency)
        self.poll_interval_seconds = poll_interval_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=self.concurrency, thread_name_prefix="sourcing-worker"
        )
        self._in_flight: dict[str, Future] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()

    def _run(self, job_id: str) -> None:
        try:
            self.handler(job_id)
        except Exception:
            logger.exception("Sourcing job %s raised", job_id)
        finally:
            with self._lock:
                self._in_flight.pop(job_id, None)

    def poll_once(self) -> int:
        """Submit waiting jobs up to the free capacity; returns the number submitted."""
        with self._lock:
            free = self.concurrency - len(self._in_flight)
        if free <= 0:
            return 0
        submitted = 0
        for job in self.queue.list_waiting(free):
            with self._lock:
                if job.job_id in self._in_flight:
                    continue
                self._in_flight[job.job_id] = self._executor.submit(self._run, job.job_id)
            submitted += 1
        return submitted

    def run_forever(self) -> None:
        logger.info("Sourcing worker pool started (concurrency=%d)", self.concurrency)
        while not self._stop.is_set():
            self.poll_once()
            self._stop.wait(self.poll_interval_seconds)

    def drain(self) -> None:
        """Process until no job is waiting or in flight."""
        while True:
            self.poll_once()
            with self._lock:
                pending = list(self._in_flight.values())
            if not pending:
                if not self.queue.list_waiting(1):
                    return
                continue
            for future in pending:
                future.result()

    def shutdown(self) -> None:
        self._stop.set()
        self._executor.shutdown(wait=True)
