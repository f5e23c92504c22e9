"""Rerank sensor: launches one rerank_request_job run per completed request
whose candidates finished enrichment.

Flow:
1. Read candidates whose enrichment completed in (cursor, now - delay]
2. Map them to the completed sourcing requests that returned them
3. Yield a RunRequest per request and advance the cursor to the window end

Holding each window back by the rerank delay lets enrichments that finish
close together share one rerank per request.
"""

import json
from datetime import UTC, datetime, timedelta

from dagster import (
    RunRequest,
    SensorEvaluationContext,
    SkipReason,
    sensor,
)

from talent_sourcing.jobs import RERANK_REQUEST_ID_TAG, rerank_request_job
from talent_sourcing.sourcing.rerank import find_requests_to_rerank

# How far back the first tick (no cursor yet) looks for completed enrichments
INITIAL_LOOKBACK = timedelta(days=1)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def build_rerank_run_key(request_id: str, window_end: str) -> str:
    return f"rerank-{request_id}-{window_end}"


@sensor(
    job=rerank_request_job,
    minimum_interval_seconds=30,
    description=(
        "Watches for completed candidate enrichments and launches one "
        "rerank_request_job run per affected sourcing request."
    ),
    required_resource_keys={"sourcing"},
)
def rerank_sensor(context: SensorEvaluationContext):
    """Launch reranks for enrichment completions since the last tick.

    The cursor stores {"enrichedThrough": "<iso>"}, the end of the last
    processed window.
    """
    sourcing = context.resources.sourcing
    config = sourcing.sourcing_config()
    if not config.rerank_after_enrichment:
        return SkipReason("Post-enrichment rerank is disabled")

    until = _utcnow() - timedelta(seconds=config.rerank_delay_seconds)
    cursor_data: dict = json.loads(context.cursor) if context.cursor else {}
    if "enrichedThrough" in cursor_data:
        after = datetime.fromisoformat(cursor_data["enrichedThrough"])
    else:
        after = until - INITIAL_LOOKBACK
    if after >= until:
        return SkipReason("Enrichment window has not advanced")

    request_ids = find_requests_to_rerank(
        sourcing.candidate_repository(), sourcing.request_store(), after=after, until=until
    )
    window_end = until.isoformat()
    context.update_cursor(json.dumps({"enrichedThrough": window_end}))
    if not request_ids:
        return SkipReason("No completed sourcing requests affected by new enrichments")

    context.log.info(f"Launching {len(request_ids)} rerank runs")
    for request_id in request_ids:
        yield RunRequest(
            run_key=build_rerank_run_key(request_id, window_end),
            run_config={
                "ops": {"rerank_sourcing_request": {"config": {"request_id": request_id}}}
            },
            tags={RERANK_REQUEST_ID_TAG: request_id},
        )
