"""Framework-agnostic handlers for the sourcing endpoints.

    POST /jobs/{externalJobId}/source   -> submit_sourcing_request
    GET  /jobs/{externalJobId}/results  -> get_sourcing_results

Routing and authentication belong to the host service; these functions take
already-authenticated tenant ids and return an ApiResponse the host
serializes as JSON.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from talent_sourcing.errors import EnqueueError
from talent_sourcing.repositories.base import SourcingRequestStore
from talent_sourcing.sourcing.idempotency import IdempotencyController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiResponse:
    status_code: int
    body: dict[str, Any]


class JobContextInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # May be empty; requirements then come from title and the skill lists
    jd_digest: str
    title: str | None = None
    skills: list[str] | None = None
    good_to_have_skills: list[str] | None = None
    location: str | None = None
    experience_years: float | None = Field(default=None, ge=0)
    education: str | None = None
    job_track_hint: Literal["auto", "tech", "non_tech"] | None = None
    job_track_hint_source: Literal["user", "system"] | None = None
    job_track_hint_reason: str | None = Field(default=None, max_length=500)


class SourcingRequestBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_context: JobContextInput
    callback_url: str

    @field_validator("callback_url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("callbackUrl must be an http(s) URL")
        return value


def _error(status_code: int, error: str, **extra: Any) -> ApiResponse:
    return ApiResponse(status_code, {"success": False, "error": error, **extra})


def submit_sourcing_request(
    controller: IdempotencyController,
    tenant_id: str,
    external_job_id: str,
    body: Mapping[str, Any],
) -> ApiResponse:
    """Validate and submit. 400 has no side effects; 202 new or retried; 200 replay."""
    if not external_job_id or not external_job_id.strip():
        return _error(400, "validation_error", details=[{"msg": "externalJobId is required"}])
    try:
        request = SourcingRequestBody.model_validate(body)
    except ValidationError as e:
        return _error(400, "validation_error", details=json.loads(e.json(include_url=False)))

    job_context = request.job_context.model_dump(by_alias=True, exclude_none=True)
    try:
        result = controller.submit(
            tenant_id, external_job_id.strip(), job_context, request.callback_url
        )
    except EnqueueError as e:
        logger.error("Sourcing submit for %s/%s failed: %s", tenant_id, external_job_id, e)
        return _error(503, "enqueue_failed", message=str(e))

    return ApiResponse(result.status_code, result.to_body())


def get_sourcing_results(
    store: SourcingRequestStore,
    tenant_id: str,
    external_job_id: str,
    request_id: str | None = None,
) -> ApiResponse:
    """Latest (or a specific) request's ranked candidates and diagnostics."""
    record = store.find_latest_request(tenant_id, external_job_id, request_id)
    if record is None:
        return _error(404, "not_found")

    results = store.list_results(record.id)
    diagnostics = record.diagnostics
    group_counts = {"bestMatches": 0, "broaderPool": 0, "discovered": 0}
    for row in results:
        if row.group == "best_matches":
            group_counts["bestMatches"] += 1
        elif row.group == "broader_pool":
            group_counts["broaderPool"] += 1
        else:
            group_counts["discovered"] += 1

    body: dict[str, Any] = {
        "success": True,
        "requestId": record.id,
        "externalJobId": record.external_job_id,
        "status": record.status,
        "requestedAt": record.requested_at.isoformat() if record.requested_at else None,
        "completedAt": record.completed_at.isoformat() if record.completed_at else None,
        "lastRerankedAt": record.last_reranked_at.isoformat()
        if record.last_reranked_at
        else None,
        "resultCount": record.result_count,
        "qualityGateTriggered": record.quality_gate_triggered,
        "trackDecision": diagnostics.track_decision.to_json()
        if diagnostics.track_decision
        else None,
        "groupCounts": group_counts,
        "counters": {
            "poolSize": diagnostics.pool_size,
            "enrichedCount": diagnostics.enriched_count,
            "discoveryMode": diagnostics.discovery_mode,
            "discoveryTarget": diagnostics.discovery_target,
            "discoveredCount": diagnostics.discovered_count,
            "discoveryShortfallRate": diagnostics.discovery_shortfall_rate,
            "strictRescueCount": diagnostics.strict_rescue_count,
            "demotedStrictCount": diagnostics.demoted_strict_count,
            "noveltySuppressedCount": diagnostics.novelty_suppressed_count,
        },
        "snapshotFreshness": {
            "fresh": diagnostics.snapshot_fresh_count,
            "stale": diagnostics.snapshot_stale_count,
            "missing": diagnostics.snapshot_missing_count,
        },
        "qualityGate": diagnostics.quality_gate.to_json() if diagnostics.quality_gate else None,
        "candidates": [row.to_dict() for row in results],
    }
    if diagnostics.error:
        body["error"] = diagnostics.error
    return ApiResponse(200, body)
