"""Skill name normalization and whole-word matching.

Patterns use alphanumeric lookarounds instead of \\b so that skills ending or
starting in symbols (c++, c#, .net) still anchor correctly, and "java" never
matches inside "javascript".
"""

import re
from functools import lru_cache

# Spellings treated as the same skill. The first entry is the canonical name.
SKILL_ALIAS_GROUPS: list[tuple[str, ...]] = [
    ("node.js", "nodejs", "node"),
    ("typescript", "ts"),
    ("javascript", "js"),
    ("postgresql", "postgres"),
    ("kubernetes", "k8s"),
    ("golang", "go"),
    ("react", "react.js", "reactjs"),
    ("vue", "vue.js", "vuejs"),
    ("next.js", "nextjs"),
    ("amazon web services", "aws"),
    ("google cloud", "gcp"),
    ("machine learning", "ml"),
]

_ALIAS_TO_CANONICAL: dict[str, str] = {
    alias: group[0] for group in SKILL_ALIAS_GROUPS for alias in group
}
_CANONICAL_TO_ALIASES: dict[str, tuple[str, ...]] = {group[0]: group for group in SKILL_ALIAS_GROUPS}


def canonical_skill(name: str) -> str:
    """Lowercased canonical spelling of a skill."""
    key = " ".join(name.strip().lower().split())
    return _ALIAS_TO_CANONICAL.get(key, key)


def skill_variants(name: str) -> tuple[str, ...]:
    canonical = canonical_skill(name)
    return _CANONICAL_TO_ALIASES.get(canonical, (canonical,))


@lru_cache(maxsize=2048)
def build_skill_pattern(name: str) -> re.Pattern:
    """Case-insensitive whole-word pattern matching any spelling of the skill."""
    variants = sorted(skill_variants(name), key=len, reverse=True)
    alternation = "|".join(re.escape(v) for v in variants)
    return re.compile(rf"(?<![a-z0-9])(?:{alternation})(?![a-z0-9+#])", re.IGNORECASE)


def skill_in_text(name: str, text: str | None) -> bool:
    if not text or not name.strip():
        return False
    return build_skill_pattern(name).search(text) is not None


def skill_in_list(name: str, skills: list[str]) -> bool:
    """True when any entry of a normalized skill list is the given skill.

    Each entry is matched with the whole-word pattern, so "Java" is found in
    ["java", "spring"] but not in ["javascript"].
    """
    if not name.strip():
        return False
    pattern = build_skill_pattern(name)
    return any(pattern.search(entry) for entry in skills)


def dedupe_skills(skills: list[str]) -> list[str]:
    """Case-insensitive de-duplication preserving first-seen casing and order."""
    seen: set[str] = set()
    result: list[str] = []
    for skill in skills:
        cleaned = skill.strip()
        if not cleaned:
            continue
        key = cleaned.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(cleaned)
    return result
