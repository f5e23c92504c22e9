"""Tests for the job queues and the local worker pool."""

import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from talent_sourcing.errors import DuplicateJobError
from talent_sourcing.sourcing.idempotency import IdempotencyController
from talent_sourcing.sourcing.queue import InMemoryJobQueue, PostgresJobQueue, SourcingWorkerPool
from tests.conftest import NOW


class TestInMemoryJobQueue:
    """Tests for queue job lifecycle."""

    def test_add_and_claim(self, job_queue):
        """A claimed job becomes active exactly once."""
        job_queue.add("r1", {"requestId": "r1"})
        claimed = job_queue.claim("r1")
        assert claimed.state == "active"
        assert claimed.attempts == 1
        assert job_queue.claim("r1") is None

    def test_live_duplicate_rejected(self, job_queue):
        """A waiting or active id cannot be added again."""
        job_queue.add("r1", {})
        with pytest.raises(DuplicateJobError):
            job_queue.add("r1", {})
        job_queue.claim("r1")
        with pytest.raises(DuplicateJobError):
            job_queue.add("r1", {})

    def test_finished_job_can_be_requeued(self, job_queue):
        """A completed or failed id may be queued again."""
        job_queue.add("r1", {})
        job_queue.claim("r1")
        job_queue.fail("r1", "boom")
        assert job_queue.get_job("r1").error == "boom"
        assert job_queue.add("r1", {}).state == "waiting"

    def test_remove(self, job_queue):
        """Removing frees the id; removing twice reports False."""
        job_queue.add("r1", {})
        assert job_queue.remove("r1") is True
        assert job_queue.remove("r1") is False
        assert job_queue.get_job("r1") is None

    def test_list_waiting_oldest_first(self):
        """Waiting jobs come back in enqueue order."""
        times = iter([NOW + timedelta(seconds=s) for s in (5, 1, 3)])
        queue = InMemoryJobQueue(clock=lambda: next(times))
        for job_id in ("late", "early", "middle"):
            queue.add(job_id, {})
        assert [j.job_id for j in queue.list_waiting(10)] == ["early", "middle", "late"]
        assert len(queue.list_waiting(2)) == 2

    def test_concurrent_claims(self, job_queue):
        """Only one of many racing claimers wins."""
        job_queue.add("r1", {})
        wins = []
        barrier = threading.Barrier(8)

        def claimer():
            barrier.wait()
            if job_queue.claim("r1") is not None:
                wins.append(1)

        threads = [threading.Thread(target=claimer) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(wins) == 1


class TestPostgresJobQueueAdd:
    """Tests for PostgresJobQueue.add against a mocked session."""

    @staticmethod
    def _racing_session():
        session = MagicMock()
        session.get.return_value = None
        session.commit.side_effect = IntegrityError(
            "INSERT INTO sourcing_queue_jobs", {}, Exception("duplicate key value")
        )
        return session

    def test_concurrent_insert_is_duplicate(self):
        """Losing the insert race raises DuplicateJobError and rolls back."""
        session = self._racing_session()
        queue = PostgresJobQueue(session_factory=lambda: session)

        with pytest.raises(DuplicateJobError):
            queue.add("r1", {"requestId": "r1"})

        session.rollback.assert_called_once()
        session.close.assert_called_once()

    def test_racing_enqueue_keeps_request_queued(self, request_store, config):
        """A submit that loses the queue insert race leaves its request queued."""
        queue = PostgresJobQueue(session_factory=self._racing_session)
        controller = IdempotencyController(request_store, queue, config, clock=lambda: NOW)

        result = controller.submit("t1", "job-1", {"jdDigest": "Python"}, "https://example.com/cb")

        assert result.status == "queued"
        assert request_store.get_request(result.request_id).status == "queued"


class TestSourcingWorkerPool:
    """Tests for the thread pool that drains the queue."""

    def test_drain_processes_every_job(self, job_queue):
        """Every waiting job is handed to the handler once."""
        handled = []
        lock = threading.Lock()

        def handler(job_id):
            if job_queue.claim(job_id) is None:
                return
            with lock:
                handled.append(job_id)
            job_queue.complete(job_id)

        for i in range(6):
            job_queue.add(f"r{i}", {})
        pool = SourcingWorkerPool(job_queue, handler, concurrency=3, poll_interval_seconds=0.01)
        try:
            pool.drain()
        finally:
            pool.shutdown()

        assert sorted(handled) == [f"r{i}" for i in range(6)]
        assert job_queue.list_waiting(10) == []

    def test_handler_errors_do_not_stop_the_pool(self, job_queue):
        """A raising handler is logged and the next job still runs."""
        handled = []

        def handler(job_id):
            job_queue.claim(job_id)
            if job_id == "bad":
                job_queue.fail(job_id, "boom")
                raise RuntimeError("boom")
            handled.append(job_id)
            job_queue.complete(job_id)

        job_queue.add("bad", {})
        job_queue.add("good", {})
        pool = SourcingWorkerPool(job_queue, handler, concurrency=1)
        try:
            pool.drain()
        finally:
            pool.shutdown()
        assert handled == ["good"]
        assert job_queue.get_job("bad").state == "failed"
