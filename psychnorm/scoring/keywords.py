"""Ordered keyword rules over free-text table names.

Seeded tables encode their audience in the display name ("MEMORE - Trânsito",
"MIG - Ensino Médio 26-35 anos"). Rules are evaluated top to bottom and the
first rule whose keywords all occur in the name wins; matching ignores case
and accents.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

__all__ = [
    "KeywordRule",
    "normalize_text",
    "contains_keyword",
    "any_keyword",
    "first_match",
    "EDUCATION_TIERS",
    "education_tier",
    "parse_age_range",
]

_AGE_RANGE_RE = re.compile(r"(\d+)\s*-\s*(\d+)\s*anos", re.IGNORECASE)


def normalize_text(value: str | None) -> str:
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold().strip()


def contains_keyword(haystack: str | None, keyword: str) -> bool:
    return normalize_text(keyword) in normalize_text(haystack)


@dataclass(frozen=True, slots=True)
class KeywordRule:
    keywords: tuple[str, ...]
    tag: str

    def matches(self, text: str) -> bool:
        normalized = normalize_text(text)
        return all(normalize_text(keyword) in normalized for keyword in self.keywords)


def first_match(text: str | None, rules: Sequence[KeywordRule], default: Optional[str] = None) -> Optional[str]:
    for rule in rules:
        if rule.matches(text or ""):
            return rule.tag
    return default


# Canonical education tiers stored in ``normative_rows.category``.
EDUCATION_TIERS: tuple[str, ...] = ("fundamental", "medio", "superior")

_EDUCATION_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(("fundamental",), "fundamental"),
    KeywordRule(("medio",), "medio"),
    KeywordRule(("superior",), "superior"),
)


def education_tier(value: str | None) -> str | None:
    """Map "Ensino Médio", "E. Médio", "medio" and similar to a canonical tier."""
    return first_match(value, _EDUCATION_RULES)


def parse_age_range(name: str | None) -> tuple[int, int] | None:
    """Age band embedded as ``N-M anos`` in a table name."""
    match = _AGE_RANGE_RE.search(name or "")
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def any_keyword(text: str | None, keywords: Iterable[str]) -> bool:
    return any(contains_keyword(text, keyword) for keyword in keywords)
