"""Sourcing queue sensor: launches one sourcing_request_job run per waiting queue job.

Flow:
1. List waiting jobs in sourcing_queue_jobs (oldest first)
2. Skip jobs already requested by an earlier tick (sensor cursor)
3. Yield a RunRequest per job; the run claims the job, so a job requested twice
   is still processed once

The run key includes the enqueue time, so a request that is retried (and
re-enqueued under the same id) gets a fresh run.
"""

import json

from dagster import (
    RunRequest,
    SensorEvaluationContext,
    SkipReason,
    sensor,
)

from talent_sourcing.jobs import REQUEST_ID_TAG, sourcing_request_job

MAX_RUNS_PER_TICK = 25


def build_run_key(job_id: str, enqueued_at: str) -> str:
    return f"sourcing-{job_id}-{enqueued_at}"


@sensor(
    job=sourcing_request_job,
    minimum_interval_seconds=15,
    description=(
        "Polls the sourcing queue for waiting jobs and launches one "
        "sourcing_request_job run per job."
    ),
    required_resource_keys={"sourcing"},
)
def sourcing_queue_sensor(context: SensorEvaluationContext):
    """Launch runs for waiting queue jobs.

    The cursor stores {"requested": {"<job_id>": "<enqueued_at iso>"}} for jobs
    still waiting, so a job is not re-requested every tick while a run is
    starting up.
    """
    queue = context.resources.sourcing.job_queue()

    cursor_data: dict = {"requested": {}}
    if context.cursor:
        cursor_data = json.loads(context.cursor)
    requested: dict[str, str] = cursor_data.get("requested", {})

    waiting = queue.list_waiting(MAX_RUNS_PER_TICK)
    if not waiting:
        context.update_cursor(json.dumps({"requested": {}}))
        return SkipReason("No waiting sourcing jobs")

    new_jobs = [
        j for j in waiting if requested.get(j.job_id) != j.enqueued_at.isoformat()
    ]
    if not new_jobs:
        return SkipReason(f"{len(waiting)} waiting sourcing jobs, all already requested")

    context.log.info(f"Launching {len(new_jobs)} sourcing runs")
    for queued in new_jobs:
        enqueued_at = queued.enqueued_at.isoformat()
        requested[queued.job_id] = enqueued_at
        yield RunRequest(
            run_key=build_run_key(queued.job_id, enqueued_at),
            run_config={
                "ops": {"process_sourcing_request": {"config": {"request_id": queued.job_id}}}
            },
            tags={REQUEST_ID_TAG: queued.job_id},
        )

    # Forget jobs that are no longer waiting (claimed, completed or removed)
    waiting_ids = {j.job_id for j in waiting}
    requested = {k: v for k, v in requested.items() if k in waiting_ids}
    context.update_cursor(json.dumps({"requested": requested}))
