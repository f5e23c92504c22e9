"""Location text canonicalization and city/country matching.

Candidate location hints come from search snippets and scraped headlines, so a
large share of them are noise ("...", "View X's profile on LinkedIn"). Noise is
rejected before matching. Country detection works on whole tokens only, so
"Russia" never satisfies a "USA" target.
"""

import re
from dataclasses import dataclass

LOCATION_ALIAS_REWRITES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"\bbengaluru\b"), "bangalore"),
    (re.compile(r"\bbombay\b"), "mumbai"),
    (re.compile(r"\bmadras\b"), "chennai"),
    (re.compile(r"\bcalcutta\b"), "kolkata"),
    (re.compile(r"\bgurgaon\b"), "gurugram"),
    (re.compile(r"\bnew delhi\b"), "delhi"),
    (re.compile(r"\bnyc\b"), "new york"),
    (re.compile(r"\bnew york city\b"), "new york"),
    (re.compile(r"\bsf\b"), "san francisco"),
    (re.compile(r"\bsan francisco bay\b"), "san francisco"),
    (re.compile(r"\bbay area\b"), "san francisco"),
]

PLACEHOLDER_LOCATIONS = {
    ".",
    "..",
    "...",
    "-",
    "na",
    "n a",
    "n/a",
    "unknown",
    "not specified",
    "none",
    "null",
}

# Targets that place no constraint on candidate location.
UNCONSTRAINED_LOCATIONS = {"remote", "anywhere", "worldwide", "global", "remote first"}

_NOISE_PATTERNS = [
    re.compile(r"\blinkedin\b", re.I),
    re.compile(r"\bview\b.*\bprofile\b", re.I),
    re.compile(r"\bprofessional community\b", re.I),
    re.compile(r"\beducation\s*:", re.I),
    re.compile(r"\bexperience\s*:", re.I),
    re.compile(r"https?://", re.I),
    re.compile(r"www\.", re.I),
    re.compile(r"\.(com|org)\b", re.I),
]

COUNTRY_NAMES: dict[str, tuple[str, ...]] = {
    "us": ("usa", "us", "u s", "u s a", "united states", "united states of america", "america"),
    "uk": ("uk", "u k", "united kingdom", "england", "great britain", "britain", "scotland"),
    "india": ("india",),
    "canada": ("canada",),
    "australia": ("australia",),
    "germany": ("germany", "deutschland"),
    "france": ("france",),
    "russia": ("russia", "russian federation"),
    "singapore": ("singapore",),
    "netherlands": ("netherlands", "holland"),
    "ireland": ("ireland",),
    "spain": ("spain",),
    "brazil": ("brazil",),
    "mexico": ("mexico",),
    "japan": ("japan",),
    "israel": ("israel",),
    "uae": ("uae", "united arab emirates"),
    "pakistan": ("pakistan",),
    "poland": ("poland",),
    "ukraine": ("ukraine",),
}

# Post-canonicalization city names with their country, used to infer a country
# when the text names only a city.
KNOWN_CITY_COUNTRY: dict[str, str] = {
    "san francisco": "us",
    "new york": "us",
    "los angeles": "us",
    "seattle": "us",
    "austin": "us",
    "boston": "us",
    "chicago": "us",
    "denver": "us",
    "atlanta": "us",
    "miami": "us",
    "london": "uk",
    "manchester": "uk",
    "berlin": "germany",
    "munich": "germany",
    "paris": "france",
    "amsterdam": "netherlands",
    "dublin": "ireland",
    "toronto": "canada",
    "vancouver": "canada",
    "sydney": "australia",
    "melbourne": "australia",
    "moscow": "russia",
    "bangalore": "india",
    "mumbai": "india",
    "delhi": "india",
    "hyderabad": "india",
    "pune": "india",
    "chennai": "india",
    "kolkata": "india",
    "noida": "india",
    "gurugram": "india",
    "ahmedabad": "india",
    "dubai": "uae",
    "tel aviv": "israel",
    "warsaw": "poland",
    "kyiv": "ukraine",
    "tokyo": "japan",
    "sao paulo": "brazil",
}

_GREATER_AREA = re.compile(r"\bgreater\s+(.+?)\s+area\b")
_METRO_SUFFIX = re.compile(r"\s+(metropolitan region|metropolitan area|metro area|metro)\b")


@dataclass(frozen=True)
class LocationMatch:
    score: float
    match_type: str  # city_exact | city_alias | country_only | none


def _basic_normalize(value: str) -> str:
    lowered = value.lower()
    lowered = _GREATER_AREA.sub(r"\1", lowered)
    lowered = _METRO_SUFFIX.sub("", lowered)
    lowered = re.sub(r"[^a-z0-9\s,]", " ", lowered)
    lowered = re.sub(r"\s*,\s*", ", ", lowered)
    return re.sub(r"\s+", " ", lowered).strip(" ,")


def canonicalize_location(value: str | None) -> str:
    """Lowercase, unify known city aliases, strip punctuation and collapse spaces."""
    if not value:
        return ""
    lowered = value.lower()
    lowered = _GREATER_AREA.sub(r"\1", lowered)
    lowered = _METRO_SUFFIX.sub("", lowered)
    for pattern, replacement in LOCATION_ALIAS_REWRITES:
        lowered = pattern.sub(replacement, lowered)
    lowered = re.sub(r"[^a-z0-9\s,]", " ", lowered)
    lowered = re.sub(r"\s*,\s*", ", ", lowered)
    return re.sub(r"\s+", " ", lowered).strip(" ,")


def is_noisy_location(value: str | None) -> bool:
    """True for empty, placeholder or boilerplate location text."""
    if value is None:
        return True
    stripped = value.strip()
    if not stripped:
        return True
    lowered = stripped.lower()
    if lowered in PLACEHOLDER_LOCATIONS:
        return True
    if "..." in stripped or "…" in stripped:
        return True
    if len(stripped) > 80:
        return True
    if any(p.search(stripped) for p in _NOISE_PATTERNS):
        return True
    if len(re.sub(r"[^a-z0-9]", "", lowered)) < 3:
        return not detect_countries(canonicalize_location(stripped))
    return False


def is_location_constraint(value: str | None) -> bool:
    """True when a job location actually restricts where candidates may be."""
    if is_noisy_location(value):
        return False
    return canonicalize_location(value) not in UNCONSTRAINED_LOCATIONS


def _contains_phrase(text: str, phrase: str) -> bool:
    padded = f" {text.replace(',', ' ')} "
    return f" {phrase} " in re.sub(r"\s+", " ", padded)


def detect_countries(canonical: str) -> set[str]:
    """Countries named in canonical text, matched on whole tokens."""
    return {
        country
        for country, names in COUNTRY_NAMES.items()
        if any(_contains_phrase(canonical, name) for name in names)
    }


def infer_countries(canonical: str) -> set[str]:
    """Named countries plus countries implied by known city names."""
    countries = detect_countries(canonical)
    for city, country in KNOWN_CITY_COUNTRY.items():
        if _contains_phrase(canonical, city):
            countries.add(country)
    return countries


def primary_city(canonical: str) -> str | None:
    """First comma segment, unless that segment is only a country name."""
    if not canonical:
        return None
    segment = canonical.split(",")[0].strip()
    if not segment:
        return None
    remainder = segment
    for names in COUNTRY_NAMES.values():
        for name in sorted(names, key=len, reverse=True):
            if _contains_phrase(remainder, name):
                remainder = re.sub(rf"(?<![a-z0-9]){re.escape(name)}(?![a-z0-9])", " ", remainder)
    if not remainder.strip():
        return None
    return segment


def match_location(target: str, candidate: str | None) -> LocationMatch:
    """Score a candidate location against a job location constraint.

    City-scoped targets need the same city (directly or through an alias) and
    no conflicting country. Country targets accept any city in that country.

    ``match_type`` names the geographic relation and ``score`` carries the
    credit: same country but another city is ``(0.0, "country_only")``, which
    ranking places in the expanded tier and diagnostics count as country_only.
    """
    if is_noisy_location(candidate):
        return LocationMatch(0.0, "none")

    target_canonical = canonicalize_location(target)
    candidate_canonical = canonicalize_location(candidate)
    target_countries = infer_countries(target_canonical)
    candidate_countries = infer_countries(candidate_canonical)
    shares_country = bool(target_countries & candidate_countries)

    city = primary_city(target_canonical)
    if city is None:
        if shares_country:
            return LocationMatch(1.0, "country_only")
        return LocationMatch(0.0, "none")

    if _contains_phrase(candidate_canonical, city):
        explicit_target = detect_countries(target_canonical)
        explicit_candidate = detect_countries(candidate_canonical)
        if explicit_target and explicit_candidate and not explicit_target & explicit_candidate:
            return LocationMatch(0.0, "none")
        raw_city = _basic_normalize(target).split(",")[0].strip()
        if raw_city and _contains_phrase(_basic_normalize(candidate), raw_city):
            return LocationMatch(1.0, "city_exact")
        return LocationMatch(1.0, "city_alias")

    if shares_country:
        return LocationMatch(0.0, "country_only")
    return LocationMatch(0.0, "none")
