from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from psychnorm.core.numeric import to_int_safe
from psychnorm.models.enums import TestType
from psychnorm.scoring.classification import OUT_OF_RANGE
from psychnorm.scoring.lookup import NormLookup
from psychnorm.scoring.types import ComponentScore, ScoreResult, TableRef


@dataclass(frozen=True, slots=True)
class ScoringContext:
    """Everything a scorer may consult besides the raw counters."""

    lookup: NormLookup
    table: TableRef
    education: str | None = None
    licence_context: str | None = None


class Scorer(Protocol):
    """Protocol for test-specific scoring functions."""

    test_type: TestType

    def score(self, context: ScoringContext, raw_input: Mapping[str, Any]) -> ScoreResult: ...


def pick(raw_input: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """First key present in ``raw_input``; English names first, legacy Portuguese aliases after."""
    for key in keys:
        if key in raw_input and raw_input[key] is not None:
            return raw_input[key]
    return default


def pick_int(raw_input: Mapping[str, Any], *keys: str) -> int:
    return to_int_safe(pick(raw_input, *keys))


def pick_text(raw_input: Mapping[str, Any], *keys: str) -> str | None:
    value = pick(raw_input, *keys)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def response_counts(
    raw_input: Mapping[str, Any],
    suffix: str = "",
    legacy_suffix: str | None = None,
) -> dict[str, int]:
    """Correct/incorrect/omitted counters, optionally suffixed.

    ``response_counts(raw, "sustained", "sustentada")`` reads
    ``correct_sustained`` or, failing that, ``acertos_sustentada``.
    """

    def keys(english: str, *legacy: str) -> tuple[str, ...]:
        if not suffix:
            return (english, *legacy)
        alias_suffix = legacy_suffix or suffix
        return (f"{english}_{suffix}", *(f"{alias}_{alias_suffix}" for alias in legacy))

    return {
        "correct": pick_int(raw_input, *keys("correct", "acertos")),
        "incorrect": pick_int(raw_input, *keys("incorrect", "erros")),
        "omitted": pick_int(raw_input, *keys("omitted", "omissoes", "omissao")),
    }


def points(counts: Mapping[str, int]) -> int:
    """Net score (PB): correct minus incorrect minus omitted."""
    return counts["correct"] - counts["incorrect"] - counts["omitted"]


def lookup_component(
    context: ScoringContext,
    raw_score: float,
    *,
    category: str | None = None,
    counts: Mapping[str, int] | None = None,
) -> ComponentScore:
    hit = context.lookup.find(context.table.id, raw_score, category=category)
    if hit is None:
        return ComponentScore(raw_score=raw_score, percentile=None, classification=OUT_OF_RANGE, counts=dict(counts or {}))
    return ComponentScore(
        raw_score=raw_score,
        percentile=hit.percentile,
        classification=hit.classification,
        counts=dict(counts or {}),
    )
