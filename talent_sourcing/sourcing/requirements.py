"""Job requirements extraction from a job-description digest.

Parsing order:
1. JSON digest with a ``topSkills`` list is used directly.
2. Any other non-empty digest is split on ``;`` and ``,`` into a skill list.
3. Empty digest (or one yielding no skills) falls back to the structured
   fields (skills, good-to-have skills, title).

Nothing here raises: unparsable or missing input yields ``None`` fields.
"""

import json
import re
from collections.abc import Mapping
from typing import Any

from talent_sourcing.sourcing.types import JobRequirements
from talent_sourcing.taxonomy.role_family import detect_role_family, normalize_role_family
from talent_sourcing.taxonomy.seniority import normalize_seniority, normalize_seniority_from_text
from talent_sourcing.taxonomy.skills import dedupe_skills


def _clean_str(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _clean_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if value >= 0 else None
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return None
    return parsed if parsed >= 0 else None


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def parse_jd_digest(jd_digest: str | None) -> dict[str, Any]:
    """Parse the digest into topSkills / seniorityLevel / domain / roleFamily.

    Extra JSON keys (location, experienceYears, education) are passed through
    so structured digests can carry them.
    """
    digest = (jd_digest or "").strip()
    if not digest:
        return {"topSkills": []}

    try:
        parsed = json.loads(digest)
    except ValueError:
        parsed = None

    if isinstance(parsed, dict) and "topSkills" in parsed:
        return {
            "topSkills": _string_list(parsed.get("topSkills")),
            "seniorityLevel": _clean_str(parsed.get("seniorityLevel")),
            "domain": _clean_str(parsed.get("domain")),
            "roleFamily": _clean_str(parsed.get("roleFamily")),
            "location": _clean_str(parsed.get("location")),
            "experienceYears": _clean_number(parsed.get("experienceYears")),
            "education": _clean_str(parsed.get("education")),
        }

    tokens = [t.strip() for t in re.split(r"[;,]", digest)]
    return {"topSkills": [t for t in tokens if t]}


def extract_job_requirements(
    jd_digest: str | None,
    *,
    skills: list[str] | None = None,
    good_to_have_skills: list[str] | None = None,
    title: str | None = None,
    location: str | None = None,
    experience_years: float | None = None,
    education: str | None = None,
) -> JobRequirements:
    digest = parse_jd_digest(jd_digest)

    top_skills = dedupe_skills(digest.get("topSkills", []))
    if not top_skills:
        top_skills = dedupe_skills(
            _string_list(skills or []) + _string_list(good_to_have_skills or [])
        )

    seniority = normalize_seniority(digest.get("seniorityLevel"))
    if seniority is None:
        seniority = normalize_seniority_from_text(_clean_str(title))

    role_family = normalize_role_family(digest.get("roleFamily"))
    if role_family is None:
        role_family = detect_role_family(_clean_str(title))
    if role_family is None and top_skills:
        role_family = detect_role_family(" ".join(top_skills))

    return JobRequirements(
        top_skills=tuple(top_skills),
        seniority_level=seniority,
        domain=digest.get("domain"),
        role_family=role_family,
        location=_clean_str(location) or digest.get("location"),
        experience_years=_clean_number(experience_years)
        if experience_years is not None
        else digest.get("experienceYears"),
        education=_clean_str(education) or digest.get("education"),
    )


def requirements_from_job_context(job_context: Mapping[str, Any] | None) -> JobRequirements:
    """Build requirements from a persisted camelCase jobContext payload."""
    job_context = job_context or {}
    return extract_job_requirements(
        _clean_str(job_context.get("jdDigest")),
        skills=_string_list(job_context.get("skills")),
        good_to_have_skills=_string_list(job_context.get("goodToHaveSkills")),
        title=_clean_str(job_context.get("title")),
        location=_clean_str(job_context.get("location")),
        experience_years=_clean_number(job_context.get("experienceYears")),
        education=_clean_str(job_context.get("education")),
    )
