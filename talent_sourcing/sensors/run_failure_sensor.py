"""Run failure sensor that tags failed runs and settles their sourcing requests.

Known failures are tagged with a specific category (e.g. DATABASE_ERROR).
Unknown failures are tagged with UNKNOWN_FAILURE so they surface for investigation.
A failed sourcing run whose request is still queued or running (the process
died before the worker could record the failure) has that request marked
failed, so it can be retried by replaying the submission.
"""

import dagster as dg

from talent_sourcing.jobs import REQUEST_ID_TAG
from talent_sourcing.sourcing.worker import fail_stranded_request

FAILURE_TAG = "failure_type"

KNOWN_FAILURES: list[tuple[str, list[str]]] = [
    (
        "DATABASE_ERROR",
        ["OperationalError", "psycopg2", "could not connect to server", "deadlock detected"],
    ),
    (
        "INVALID_ENUM_VALUE",
        ["InvalidTextRepresentation", "invalid input value for enum"],
    ),
    (
        "CALLBACK_DELIVERY_FAILED",
        ["CallbackDeliveryError"],
    ),
    (
        "QUEUE_ERROR",
        ["EnqueueError", "DuplicateJobError", "sourcing_queue_jobs"],
    ),
    (
        "INVALID_STATUS_TRANSITION",
        ["InvalidStatusTransition"],
    ),
    (
        "TIMEOUT",
        ["TimeoutException", "ReadTimeout", "ConnectTimeout", "statement timeout"],
    ),
    (
        "RATE_LIMIT",
        ["429", "Too Many Requests", "rate limit"],
    ),
    (
        "CONCURRENCY_SLOTS_ERROR",
        ["concurrency_limits", "concurrency_slots", "NotNullViolation"],
    ),
]


def _classify_failure(error_str: str) -> list[str]:
    """Return all matching failure tags for the given error string."""
    lowered = error_str.lower()
    return [
        tag
        for tag, patterns in KNOWN_FAILURES
        if any(pattern.lower() in lowered for pattern in patterns)
    ]


def _failure_messages(context: dg.RunFailureSensorContext) -> list[str]:
    """Step errors of the run, falling back to the run-level error."""
    messages = [
        event.step_failure_data.error.to_string()
        for event in context.get_step_failure_events()
        if event.step_failure_data is not None and event.step_failure_data.error is not None
    ]
    if not messages:
        run_error = context.failure_event.pipeline_failure_data.error
        if run_error is not None:
            messages.append(run_error.to_string())
    return messages


def _stranded_message(run_id: str, tag_value: str, messages: list[str]) -> str:
    message = f"run {run_id} failed: {tag_value}"
    if messages and messages[0].strip():
        message = f"{message}: {messages[0].strip().splitlines()[-1][:500]}"
    return message


@dg.run_failure_sensor(
    name="run_failure_tagger",
    description=(
        "Tags failed runs with classified failure reasons and marks stranded "
        "sourcing requests failed."
    ),
    default_status=dg.DefaultSensorStatus.RUNNING,
    required_resource_keys={"sourcing"},
)
def run_failure_tagger(context: dg.RunFailureSensorContext):
    run = context.dagster_run
    messages = _failure_messages(context)

    tags = {tag for message in messages for tag in _classify_failure(message)}
    tag_value = ", ".join(sorted(tags)) or "UNKNOWN_FAILURE"
    context.instance.add_run_tags(run.run_id, {FAILURE_TAG: tag_value})
    context.log.info(f"Run {run.run_id} ({run.job_name}) failed: {FAILURE_TAG}={tag_value}")

    request_id = run.tags.get(REQUEST_ID_TAG)
    if not request_id:
        return
    store = context.resources.sourcing.request_store()
    if fail_stranded_request(store, request_id, _stranded_message(run.run_id, tag_value, messages)):
        context.log.warning(f"Marked sourcing request {request_id} failed after run {run.run_id}")
