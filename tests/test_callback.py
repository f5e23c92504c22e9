"""Tests for callback delivery and redelivery."""

import json
from datetime import timedelta

import httpx
import pytest

from talent_sourcing.sourcing.callback import (
    BASE_DELAYS_MS,
    CallbackDelivery,
    build_callback_payload,
    jittered_delay,
    redeliver_stale_callbacks,
)
from talent_sourcing.sourcing.types import SourcingRequestRecord, StoredResult
from tests.conftest import NOW, RecordingTransport


@pytest.fixture
def record(request_store):
    created, _ = request_store.create_request(
        SourcingRequestRecord(
            id="req-1",
            tenant_id="t1",
            external_job_id="job-1",
            job_context_hash="h1",
            job_context={"jdDigest": "Python"},
            callback_url="https://caller.example.com/hooks/sourcing",
            status="complete",
            requested_at=NOW,
            result_count=2,
        )
    )
    return created


def _delivery(store, transport, sleeps=None, **kwargs):
    sleeps = sleeps if sleeps is not None else []
    return CallbackDelivery(
        store,
        transport=transport,
        sleep=sleeps.append,
        rand=lambda: 0.5,
        **kwargs,
    )


class TestJitteredDelay:
    """Tests for the retry delay."""

    def test_bounds(self):
        """Delays stay within plus or minus 20% of the base."""
        assert jittered_delay(1000, lambda: 0.0) == 800
        assert jittered_delay(1000, lambda: 1.0) == 1200
        assert jittered_delay(1000, lambda: 0.5) == 1000

    def test_random_delays_vary(self):
        """Real jitter stays in bounds and is not constant."""
        delays = [jittered_delay(1000) for _ in range(50)]
        assert all(800 <= d <= 1200 for d in delays)
        assert len(set(delays)) > 1


class TestBuildPayload:
    """Tests for the callback body."""

    def test_payload_shape(self, record):
        """Payload carries version, ids and counts; error only when given."""
        payload = build_callback_payload(record, "complete", 2, 1)
        assert payload == {
            "version": 1,
            "requestId": "req-1",
            "externalJobId": "job-1",
            "status": "complete",
            "candidateCount": 2,
            "enrichedCount": 1,
        }
        assert build_callback_payload(record, "failed", 0, 0, error="boom")["error"] == "boom"


class TestCallbackDelivery:
    """Tests for CallbackDelivery.deliver."""

    def test_first_attempt_success(self, request_store, record):
        """A 2xx on the first try records one attempt."""
        transport = RecordingTransport([200])
        delivery = _delivery(request_store, transport, auth_token="secret")

        assert delivery.deliver(record, {"status": "complete"}) is True

        sent = transport.requests[0]
        assert sent.headers["Authorization"] == "Bearer secret"
        assert json.loads(sent.content) == {"status": "complete"}
        stored = request_store.get_request("req-1")
        assert stored.callback_attempts == 1
        assert stored.status == "complete"

    def test_no_auth_header_without_token(self, request_store, record):
        """No token means no Authorization header."""
        transport = RecordingTransport([204])
        _delivery(request_store, transport).deliver(record, {})
        assert "Authorization" not in transport.requests[0].headers

    def test_retries_then_succeeds(self, request_store, record):
        """Failures are retried with jittered backoff."""
        transport = RecordingTransport([500, 503, 200])
        sleeps = []
        assert _delivery(request_store, transport, sleeps).deliver(record, {}) is True
        assert len(transport.requests) == 3
        assert sleeps == [BASE_DELAYS_MS[0] / 1000, BASE_DELAYS_MS[1] / 1000]
        assert request_store.get_request("req-1").callback_attempts == 3

    def test_exhaustion_marks_callback_failed(self, request_store, record):
        """After the last attempt the request moves to callback_failed."""
        transport = RecordingTransport([500])
        sleeps = []
        assert _delivery(request_store, transport, sleeps).deliver(record, {}) is False

        assert len(transport.requests) == 5
        assert len(sleeps) == 4
        stored = request_store.get_request("req-1")
        assert stored.status == "callback_failed"
        assert stored.callback_attempts == 5
        assert stored.last_callback_error == "HTTP 500"

    def test_failure_notice_keeps_status(self, request_store, record):
        """Without update_status the request status is untouched."""
        request_store.update_request("req-1", status="failed")
        transport = RecordingTransport([500])
        assert _delivery(request_store, transport).deliver(record, {}, update_status=False) is False
        assert request_store.get_request("req-1").status == "failed"

    def test_transport_error_is_retried(self, request_store, record):
        """Connection errors count as failed attempts."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200)

        delivery = _delivery(request_store, httpx.MockTransport(handler))
        assert delivery.deliver(record, {}) is True
        assert len(calls) == 2


class TestRedelivery:
    """Tests for redeliver_stale_callbacks."""

    def test_redelivery_completes_request(self, request_store, record):
        """A successful redelivery moves callback_failed back to complete."""
        request_store.update_request("req-1", status="callback_failed", callback_attempts=5)
        request_store.replace_results(
            "req-1",
            "t1",
            [
                StoredResult("c1", 1, "best_matches", "existing", "completed"),
                StoredResult("c2", 2, "discovered", "discovered", "pending"),
            ],
        )
        transport = RecordingTransport([200])

        counts = redeliver_stale_callbacks(
            request_store, _delivery(request_store, transport), since=NOW - timedelta(days=7)
        )

        assert counts == {"attempted": 1, "delivered": 1}
        body = json.loads(transport.requests[0].content)
        assert body["status"] == "complete"
        assert body["candidateCount"] == 2
        assert body["enrichedCount"] == 1
        assert request_store.get_request("req-1").status == "complete"

    def test_failed_redelivery_stays_callback_failed(self, request_store, record):
        """A failed redelivery leaves the request retryable."""
        request_store.update_request("req-1", status="callback_failed")
        counts = redeliver_stale_callbacks(
            request_store,
            _delivery(request_store, RecordingTransport([502])),
            since=NOW - timedelta(days=7),
        )
        assert counts == {"attempted": 1, "delivered": 0}
        assert request_store.get_request("req-1").status == "callback_failed"

    def test_old_requests_skipped(self, request_store, record):
        """Requests older than the lookback are not retried."""
        request_store.update_request("req-1", status="callback_failed")
        counts = redeliver_stale_callbacks(
            request_store,
            _delivery(request_store, RecordingTransport([200])),
            since=NOW + timedelta(days=1),
        )
        assert counts == {"attempted": 0, "delivered": 0}
