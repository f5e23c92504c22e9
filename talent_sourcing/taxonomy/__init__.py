from talent_sourcing.taxonomy.location import (
    LocationMatch,
    canonicalize_location,
    is_location_constraint,
    is_noisy_location,
    match_location,
    primary_city,
)
from talent_sourcing.taxonomy.role_family import (
    ROLE_FAMILIES,
    detect_role_family,
    matches_role_family,
    normalize_role_family,
)
from talent_sourcing.taxonomy.seniority import (
    SENIORITY_LADDER,
    normalize_seniority,
    normalize_seniority_from_text,
    seniority_distance,
)
from talent_sourcing.taxonomy.skills import (
    build_skill_pattern,
    canonical_skill,
    dedupe_skills,
    skill_in_list,
    skill_in_text,
)

__all__ = [
    "LocationMatch",
    "canonicalize_location",
    "is_location_constraint",
    "is_noisy_location",
    "match_location",
    "primary_city",
    "ROLE_FAMILIES",
    "detect_role_family",
    "matches_role_family",
    "normalize_role_family",
    "SENIORITY_LADDER",
    "normalize_seniority",
    "normalize_seniority_from_text",
    "seniority_distance",
    "build_skill_pattern",
    "canonical_skill",
    "dedupe_skills",
    "skill_in_list",
    "skill_in_text",
]
