"""Recent-exposure lookup so the same people are not resurfaced for similar roles.

Two requests are "similar" when they share tenant, role family and primary
city. Historical requests are re-read through the requirements extractor so
the comparison uses the same normalization as the current request.
"""

import logging
from datetime import UTC, datetime, timedelta

from talent_sourcing.cache import TTLStore
from talent_sourcing.repositories.base import SourcingRequestStore
from talent_sourcing.sourcing.requirements import requirements_from_job_context
from talent_sourcing.taxonomy.location import canonicalize_location, primary_city
from talent_sourcing.taxonomy.role_family import normalize_role_family

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 60.0


def normalize_city(location: str | None) -> str | None:
    if not location:
        return None
    return primary_city(canonicalize_location(location))


def get_recently_exposed_candidate_ids(
    store: SourcingRequestStore,
    tenant_id: str,
    role_family: str | None,
    location: str | None,
    window_days: int,
    *,
    now: datetime | None = None,
) -> set[str]:
    """Candidate ids shown in completed, similar requests within the window.

    Without a role family there is nothing to compare against, so the result
    is empty.
    """
    family = normalize_role_family(role_family)
    if family is None:
        return set()
    city = normalize_city(location)

    now = now or datetime.now(UTC)
    since = now - timedelta(days=window_days)

    matching_ids = []
    for request in store.list_completed_requests(tenant_id, since):
        previous = requirements_from_job_context(request.job_context)
        if normalize_role_family(previous.role_family) != family:
            continue
        if normalize_city(previous.location) != city:
            continue
        matching_ids.append(request.id)

    if not matching_ids:
        return set()
    return store.list_result_candidate_ids(matching_ids)


class NoveltyFilter:
    """Exposure lookup with an optional injected TTL cache."""

    def __init__(
        self,
        store: SourcingRequestStore,
        window_days: int,
        cache: TTLStore | None = None,
        cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
    ):
        self.store = store
        self.window_days = window_days
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_seconds

    def exposed_ids(
        self,
        tenant_id: str,
        role_family: str | None,
        location: str | None,
        *,
        now: datetime | None = None,
    ) -> set[str]:
        def _load() -> set[str]:
            return get_recently_exposed_candidate_ids(
                self.store,
                tenant_id,
                role_family,
                location,
                self.window_days,
                now=now,
            )

        if self.cache is None:
            return _load()

        key = (
            "novelty",
            tenant_id,
            normalize_role_family(role_family),
            normalize_city(location),
        )
        exposed = self.cache.get_or_set(key, _load, self.cache_ttl_seconds)
        logger.debug("Novelty exposure for %s: %d candidates", key, len(exposed))
        return exposed
