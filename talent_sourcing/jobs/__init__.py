"""Dagster jobs for the sourcing pipeline.

OPS JOBS:
- sourcing_request_job: Claim one queued sourcing request and run it end to end
  (launched by sourcing_queue_sensor, one run per request)
- redeliver_callbacks_job: Re-send results for requests stuck in callback_failed
- rerank_request_job: Re-score a completed request after its candidates were enriched
  (launched by rerank_sensor, one run per affected request)

SCHEDULES:
- redeliver_callbacks_hourly
"""

from datetime import UTC, datetime, timedelta

from dagster import (
    Backoff,
    Config,
    Jitter,
    OpExecutionContext,
    RetryPolicy,
    ScheduleDefinition,
    job,
    op,
)

from talent_sourcing.sourcing.callback import CallbackDelivery, redeliver_stale_callbacks
from talent_sourcing.sourcing.rerank import rerank_request

# Retry policy for transient database errors (connection resets, lock timeouts)
# Uses exponential backoff: 1s, 2s, 4s between retries
database_retry_policy = RetryPolicy(
    max_retries=3,
    delay=1,
    backoff=Backoff.EXPONENTIAL,
    jitter=Jitter.PLUS_MINUS,
)

REQUEST_ID_TAG = "sourcing/request_id"
# Separate tag so a failed rerank never marks the request itself failed
RERANK_REQUEST_ID_TAG = "sourcing/rerank_request_id"
REDELIVERY_LOOKBACK_DAYS = 7


class SourcingRequestConfig(Config):
    request_id: str


@op(
    required_resource_keys={"sourcing", "discovery"},
    tags={"dagster/concurrency_key": "sourcing_worker"},
    description="Claim a queued sourcing request, rank and assemble, deliver the callback",
)
def process_sourcing_request(context: OpExecutionContext, config: SourcingRequestConfig) -> dict:
    sourcing = context.resources.sourcing
    discovery = context.resources.discovery.get_provider(sourcing.candidate_repository())
    worker = sourcing.build_worker(discovery)

    record = worker.handle_job(config.request_id)
    if record is None:
        context.log.info(f"Sourcing request {config.request_id} already claimed; nothing to do")
        return {"request_id": config.request_id, "status": "skipped"}

    context.log.info(
        f"Sourcing request {record.id} finished with status={record.status} "
        f"({record.result_count or 0} candidates, callback attempts={record.callback_attempts})"
    )
    return {
        "request_id": record.id,
        "status": record.status,
        "result_count": record.result_count,
        "quality_gate_triggered": record.quality_gate_triggered,
    }


@job(
    description="Process one sourcing request from the queue (sensor-triggered)",
    op_retry_policy=database_retry_policy,
)
def sourcing_request_job():
    process_sourcing_request()


@op(
    required_resource_keys={"sourcing"},
    description="Re-send results for requests whose callback delivery was exhausted",
)
def redeliver_failed_callbacks(context: OpExecutionContext) -> dict:
    sourcing = context.resources.sourcing
    store = sourcing.request_store()
    delivery = CallbackDelivery(store, auth_token=sourcing.callback_auth_token or None)
    since = datetime.now(UTC) - timedelta(days=REDELIVERY_LOOKBACK_DAYS)

    counts = redeliver_stale_callbacks(store, delivery, since=since)
    context.log.info(
        f"Redelivered {counts['delivered']} of {counts['attempted']} callback_failed requests"
    )
    return counts


@job(
    description="Retry callback delivery for callback_failed sourcing requests",
    op_retry_policy=database_retry_policy,
)
def redeliver_callbacks_job():
    redeliver_failed_callbacks()


@op(
    required_resource_keys={"sourcing"},
    tags={"dagster/concurrency_key": "sourcing_rerank"},
    description="Re-score and re-rank a completed request from the latest candidate snapshots",
)
def rerank_sourcing_request(context: OpExecutionContext, config: SourcingRequestConfig) -> dict:
    sourcing = context.resources.sourcing
    outcome = rerank_request(
        config.request_id,
        store=sourcing.request_store(),
        candidates=sourcing.candidate_repository(),
        snapshots=sourcing.snapshot_store(),
        config=sourcing.sourcing_config(),
    )
    if outcome.skipped:
        context.log.info(f"Rerank of {outcome.request_id} skipped: {outcome.skipped_reason}")
    else:
        context.log.info(f"Reranked {outcome.reranked} candidates for {outcome.request_id}")
    return {
        "request_id": outcome.request_id,
        "reranked": outcome.reranked,
        "skipped_reason": outcome.skipped_reason,
    }


@job(
    description="Re-rank one completed sourcing request after enrichment (sensor-triggered)",
    op_retry_policy=database_retry_policy,
)
def rerank_request_job():
    rerank_sourcing_request()


redeliver_callbacks_schedule = ScheduleDefinition(
    name="redeliver_callbacks_hourly",
    cron_schedule="15 * * * *",
    job=redeliver_callbacks_job,
    description="Retry stale callbacks every hour at :15",
)


__all__ = [
    "REQUEST_ID_TAG",
    "RERANK_REQUEST_ID_TAG",
    "SourcingRequestConfig",
    "database_retry_policy",
    "process_sourcing_request",
    "sourcing_request_job",
    "redeliver_failed_callbacks",
    "redeliver_callbacks_job",
    "redeliver_callbacks_schedule",
    "rerank_sourcing_request",
    "rerank_request_job",
]
