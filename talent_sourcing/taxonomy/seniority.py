"""Seniority ladder shared by the requirements extractor, ranking and non-tech scoring."""

import re

SENIORITY_LADDER: tuple[str, ...] = (
    "intern",
    "junior",
    "mid",
    "senior",
    "staff",
    "principal",
    "lead",
    "manager",
    "director",
    "vp",
    "cxo",
)

# Extra spellings recognized for a band, in addition to the band name itself.
_SYNONYMS: dict[str, tuple[str, ...]] = {
    "intern": ("internship", "trainee"),
    "junior": ("jr", "entry level", "entry-level"),
    "mid": ("mid-level", "intermediate"),
    "senior": ("sr",),
    "vp": ("vice president", "svp", "evp"),
    "director": ("head of",),
    "cxo": ("chief", "cto", "ceo", "cfo", "coo", "cmo", "cpo"),
}


def _band_pattern(band: str) -> re.Pattern:
    terms = (band, *_SYNONYMS.get(band, ()))
    alternation = "|".join(re.escape(t) for t in terms)
    return re.compile(rf"(?<![a-z0-9])(?:{alternation})(?![a-z0-9])", re.IGNORECASE)


# Highest band first so "VP Engineering" resolves to vp and
# "Senior Engineering Manager" to manager.
_BAND_PATTERNS: list[tuple[str, re.Pattern]] = [
    (band, _band_pattern(band)) for band in reversed(SENIORITY_LADDER)
]


def normalize_seniority_from_text(text: str | None) -> str | None:
    """Extract a ladder band from free text such as a headline or job title."""
    if not text:
        return None
    for band, pattern in _BAND_PATTERNS:
        if pattern.search(text):
            return band
    return None


def normalize_seniority(value: str | None) -> str | None:
    """Map a band label (exact ladder value or free text) onto the ladder."""
    if not value or not isinstance(value, str):
        return None
    lowered = value.strip().lower()
    if lowered in SENIORITY_LADDER:
        return lowered
    return normalize_seniority_from_text(lowered)


def seniority_distance(a: str, b: str) -> int:
    """Absolute ladder distance between two bands."""
    return abs(SENIORITY_LADDER.index(a) - SENIORITY_LADDER.index(b))
