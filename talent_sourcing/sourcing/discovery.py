"""Deterministic mock discovery provider.

Stands in for a live search provider in development and tests. Results are
seeded from the tenant and the job requirements, so the same request always
"discovers" the same people.
"""

import hashlib
import json
import math
import random

from talent_sourcing.repositories.base import CandidateRepository
from talent_sourcing.sourcing.types import DiscoveryResult, JobRequirements

MOCK_FIRST_NAMES = ["Ana", "Ravi", "Chen", "Fatima", "Lucas", "Mei", "Omar", "Sofia", "Kenji", "Zara"]
MOCK_LAST_NAMES = ["Silva", "Iyer", "Wang", "Khan", "Martin", "Lin", "Haddad", "Rossi", "Sato", "Ali"]
MOCK_COMPANIES = ["Northwind", "Globex", "Initech", "Umbrella Labs", "Hooli", "Stark Analytics"]


class MockDiscoveryProvider:
    def __init__(
        self,
        candidates: CandidateRepository,
        yield_rate: float = 1.0,
        results_per_query: int = 10,
    ):
        self.candidates = candidates
        self.yield_rate = max(0.0, min(1.0, yield_rate))
        self.results_per_query = max(1, results_per_query)

    def _seed(self, tenant_id: str, requirements: JobRequirements) -> str:
        key = json.dumps([tenant_id, requirements.to_dict()], sort_keys=True, default=str)
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    def discover(
        self,
        tenant_id: str,
        requirements: JobRequirements,
        *,
        target_count: int,
        max_queries: int,
    ) -> DiscoveryResult:
        if target_count <= 0 or max_queries <= 0:
            return DiscoveryResult(candidate_ids=[], queries_executed=0)

        queries = min(max_queries, math.ceil(target_count / self.results_per_query))
        found = min(target_count, round(queries * self.results_per_query * self.yield_rate))

        digest = self._seed(tenant_id, requirements)
        rng = random.Random(int(digest[:16], 16))
        role = (requirements.role_family or "software").title()
        seniority = (requirements.seniority_level or "").title()
        skills = ", ".join(requirements.top_skills[:3])

        hints = []
        for i in range(found):
            name = f"{rng.choice(MOCK_FIRST_NAMES)} {rng.choice(MOCK_LAST_NAMES)}"
            company = rng.choice(MOCK_COMPANIES)
            headline = " ".join(p for p in (seniority, role, "Engineer") if p)
            hints.append(
                {
                    "linkedin_id": f"mock-{digest[:12]}-{i}",
                    "linkedin_url": f"https://www.linkedin.com/in/mock-{digest[:12]}-{i}",
                    "name_hint": name,
                    "headline_hint": f"{headline} at {company}",
                    "location_hint": requirements.location,
                    "company_hint": company,
                    "search_title": f"{name} - {headline} - {company} | LinkedIn",
                    "search_snippet": f"Experience with {skills}" if skills else None,
                    "search_meta": {"serper": {"mock": True, "query_index": i // self.results_per_query}},
                }
            )

        return DiscoveryResult(
            candidate_ids=self.candidates.add_discovered(tenant_id, hints),
            queries_executed=queries,
        )
