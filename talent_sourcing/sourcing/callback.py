"""Out-of-band result delivery to the caller's callback URL.

Delivery is bounded: at most MAX_ATTEMPTS POSTs, separated by jittered
delays from BASE_DELAYS_MS. A request whose results could not be delivered
moves to ``callback_failed``, which the idempotency controller and the
redelivery job can both retry. Failure notices (sent after a run failed)
never change the request status.
"""

import logging
import random
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import httpx

from talent_sourcing.errors import CallbackDeliveryError, SourcingRequestNotFound
from talent_sourcing.models.enums import EnrichmentStatusEnum, SourcingStatusEnum
from talent_sourcing.repositories.base import SourcingRequestStore
from talent_sourcing.sourcing.idempotency import assert_transition
from talent_sourcing.sourcing.types import SourcingRequestRecord

logger = logging.getLogger(__name__)

CALLBACK_PAYLOAD_VERSION = 1
MAX_ATTEMPTS = 5
BASE_DELAYS_MS = [1000, 3000, 10000, 30000]
ATTEMPT_TIMEOUT_SECONDS = 10.0
JITTER = 0.2


def jittered_delay(base_ms: int, rand: Callable[[], float] = random.random) -> int:
    """Uniform delay in [0.8 * base, 1.2 * base] milliseconds."""
    return round(base_ms * (1 - JITTER + rand() * 2 * JITTER))


def build_callback_payload(
    record: SourcingRequestRecord,
    status: str,
    candidate_count: int,
    enriched_count: int,
    error: str | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "version": CALLBACK_PAYLOAD_VERSION,
        "requestId": record.id,
        "externalJobId": record.external_job_id,
        "status": status,
        "candidateCount": candidate_count,
        "enrichedCount": enriched_count,
    }
    if error:
        payload["error"] = error
    return payload


class CallbackDelivery:
    """POSTs callback payloads with bounded, jittered retries.

    ``sleep`` and ``rand`` are injectable so tests run without waiting;
    ``transport`` lets tests swap in an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        store: SourcingRequestStore,
        *,
        auth_token: str | None = None,
        timeout_seconds: float = ATTEMPT_TIMEOUT_SECONDS,
        max_attempts: int = MAX_ATTEMPTS,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rand: Callable[[], float] = random.random,
    ):
        self.store = store
        self.auth_token = auth_token
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max_attempts
        self.transport = transport
        self.sleep = sleep
        self.rand = rand

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def _post(self, client: httpx.Client, url: str, payload: dict[str, Any]) -> None:
        try:
            response = client.post(url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            raise CallbackDeliveryError(f"{type(e).__name__}: {e}") from e
        if not response.is_success:
            raise CallbackDeliveryError(f"HTTP {response.status_code}")

    def deliver(
        self,
        record: SourcingRequestRecord,
        payload: dict[str, Any],
        *,
        update_status: bool = True,
    ) -> bool:
        """Deliver ``payload`` to the record's callback URL. Returns True on a 2xx.

        With ``update_status`` a final failure moves the request to
        ``callback_failed``; either way the attempt count and last error are
        persisted.
        """
        last_error = None
        with httpx.Client(timeout=self.timeout_seconds, transport=self.transport) as client:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    self._post(client, record.callback_url, payload)
                except CallbackDeliveryError as e:
                    last_error = str(e)
                    logger.warning(
                        "Callback attempt %d/%d for %s failed: %s",
                        attempt,
                        self.max_attempts,
                        record.id,
                        last_error,
                    )
                    if attempt < self.max_attempts:
                        base = BASE_DELAYS_MS[min(attempt - 1, len(BASE_DELAYS_MS) - 1)]
                        self.sleep(jittered_delay(base, self.rand) / 1000)
                    continue

                logger.info("Callback delivered for %s on attempt %d", record.id, attempt)
                self.store.update_request(
                    record.id, callback_attempts=attempt, last_callback_error=None
                )
                return True

        self.store.update_request(
            record.id, callback_attempts=self.max_attempts, last_callback_error=last_error
        )
        if update_status:
            current = self.store.get_request(record.id)
            if current is None:
                raise SourcingRequestNotFound(record.id)
            if current.status != SourcingStatusEnum.CALLBACK_FAILED.value:
                assert_transition(current.status, SourcingStatusEnum.CALLBACK_FAILED.value)
                self.store.update_request(
                    record.id, status=SourcingStatusEnum.CALLBACK_FAILED.value
                )
        logger.error(
            "Callback for %s failed after %d attempts: %s",
            record.id,
            self.max_attempts,
            last_error,
        )
        return False


def redeliver_stale_callbacks(
    store: SourcingRequestStore,
    delivery: CallbackDelivery,
    *,
    since: datetime,
    limit: int = 50,
    tenant_id: str | None = None,
) -> dict[str, int]:
    """Re-send results for ``callback_failed`` requests; success moves them to ``complete``."""
    attempted = 0
    delivered = 0
    for record in store.list_callback_failed(since, limit, tenant_id=tenant_id):
        attempted += 1
        results = store.list_results(record.id)
        enriched = sum(
            1 for r in results if r.enrichment_status == EnrichmentStatusEnum.COMPLETED.value
        )
        payload = build_callback_payload(
            record,
            SourcingStatusEnum.COMPLETE.value,
            candidate_count=record.result_count if record.result_count is not None else len(results),
            enriched_count=enriched,
        )
        if delivery.deliver(record, payload, update_status=False):
            assert_transition(record.status, SourcingStatusEnum.COMPLETE.value)
            store.update_request(
                record.id,
                status=SourcingStatusEnum.COMPLETE.value,
                completed_at=record.completed_at or datetime.now(UTC),
            )
            delivered += 1
    logger.info("Redelivered %d of %d stale callbacks", delivered, attempted)
    return {"attempted": attempted, "delivered": delivered}
