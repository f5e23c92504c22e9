"""Role family detection from titles, headlines and snippets."""

import re

ROLE_FAMILY_PATTERNS: list[tuple[str, list[re.Pattern]]] = [
    (
        "devops",
        [
            re.compile(r"\bdevops\b", re.I),
            re.compile(r"\bsre\b", re.I),
            re.compile(r"\bsite reliability\b", re.I),
            re.compile(r"\bplatform engineer", re.I),
        ],
    ),
    (
        "fullstack",
        [re.compile(r"\bfull[- ]?stack\b", re.I)],
    ),
    (
        "frontend",
        [
            re.compile(r"\bfront[- ]?end\b", re.I),
            re.compile(r"\bui engineer\b", re.I),
            re.compile(r"\breact\b(?! native)", re.I),
            re.compile(r"\bangular\b", re.I),
        ],
    ),
    (
        "backend",
        [
            re.compile(r"\bback[- ]?end\b", re.I),
            re.compile(r"\bapi engineer\b", re.I),
            re.compile(r"\bserver[- ]?side\b", re.I),
        ],
    ),
    (
        "data",
        [
            re.compile(r"\bdata engineer", re.I),
            re.compile(r"\bdata scientist", re.I),
            re.compile(r"\bml engineer", re.I),
            re.compile(r"\bmachine learning\b", re.I),
            re.compile(r"\banalytics\b", re.I),
        ],
    ),
    (
        "qa",
        [
            re.compile(r"\bqa\b", re.I),
            re.compile(r"\bquality assurance\b", re.I),
            re.compile(r"\btest automation\b", re.I),
            re.compile(r"\bselenium\b", re.I),
        ],
    ),
    (
        "security",
        [
            re.compile(r"\b(application|cloud|cyber|information)\s+security\b", re.I),
            re.compile(
                r"\bsecurity\s+(engineer|analyst|architect|lead|specialist|consultant)\b", re.I
            ),
        ],
    ),
    (
        "mobile",
        [
            re.compile(r"\bandroid\b", re.I),
            re.compile(r"\bios\b", re.I),
            re.compile(r"\bmobile\b", re.I),
            re.compile(r"\breact native\b", re.I),
            re.compile(r"\bflutter\b", re.I),
        ],
    ),
]

ROLE_FAMILIES: tuple[str, ...] = tuple(family for family, _ in ROLE_FAMILY_PATTERNS)


def detect_role_family(text: str | None) -> str | None:
    """Return the first family whose patterns match the text, or None."""
    if not text or not text.strip():
        return None
    for family, patterns in ROLE_FAMILY_PATTERNS:
        if any(p.search(text) for p in patterns):
            return family
    return None


def matches_role_family(family: str, text: str | None) -> bool:
    """True when any pattern of the given family matches the text."""
    if not text:
        return False
    for name, patterns in ROLE_FAMILY_PATTERNS:
        if name == family:
            return any(p.search(text) for p in patterns)
    return False


def normalize_role_family(value: str | None) -> str | None:
    """Map a free role-family label onto a known family when possible.

    Known family names pass through; other labels are run through detection.
    Unrecognized labels are returned lowercased so callers can fall back to
    token overlap.
    """
    if not value or not isinstance(value, str) or not value.strip():
        return None
    lowered = value.strip().lower()
    if lowered in ROLE_FAMILIES:
        return lowered
    return detect_role_family(lowered) or lowered
