"""Rank the active normative tables of a test type against an examinee profile.

Every rule is additive and evaluated in a fixed order:

====================  ======
rule                  points
====================  ======
primary region         1000
secondary region        800
transit sub-context     900
professional drivers    850
age band                300
education tier          200
general population      100
====================  ======

Ranking is a stable sort on the total, so ties keep the repository order
(name, then id).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Sequence

from sqlalchemy.orm import Session

from psychnorm.core.config import settings
from psychnorm.core.errors import TableSelectionError
from psychnorm.core.logging import get_logger
from psychnorm.core.metrics import measure_time
from psychnorm.db.repositories import NormativeRepository
from psychnorm.i18n.pt_messages import SelectionMessages
from psychnorm.models import NormativeTable, TestType
from psychnorm.scoring.keywords import any_keyword, contains_keyword, parse_age_range
from psychnorm.services.profile import ExamineeProfile

__all__ = [
    "Candidate",
    "SelectionWarning",
    "TableSelection",
    "score_table",
    "rank_tables",
    "selection_warnings",
    "select_table",
    "suggest_tables",
]

logger = get_logger("psychnorm.selector", component="selector")

PRIMARY_REGION_POINTS = 1000
SECONDARY_REGION_POINTS = 800
TRANSIT_MATCH_POINTS = 900
PROFESSIONAL_POINTS = 850
AGE_POINTS = 300
EDUCATION_POINTS = 200
GENERAL_POINTS = 100

GENERAL_KEYWORDS: tuple[str, ...] = ("Geral", "População Brasileira")
PROFESSIONAL_KEYWORD = "Motoristas Profissionais"
EDUCATION_LABELS = {"fundamental": "Fundamental", "medio": "Médio", "superior": "Superior"}


@dataclass(frozen=True, slots=True)
class TransitRule:
    """Profile sub-context keywords, the table keyword they match, and the reason shown."""

    profile_keywords: tuple[str, ...]
    table_keywords: tuple[str, ...]
    reason: str


TRANSIT_RULES: tuple[TransitRule, ...] = (
    TransitRule(("1ª Habilitação", "Primeira Habilitação"), ("1ª Habilitação", "Primeira Habilitação"), SelectionMessages.REASON_FIRST_LICENSE),
    TransitRule(("Renovação",), ("Renovação",), SelectionMessages.REASON_RENEWAL),
    TransitRule(("Mudança",), ("Mudança",), SelectionMessages.REASON_CATEGORY_CHANGE),
    # Category additions are normed together with category changes.
    TransitRule(("Adição",), ("Mudança",), SelectionMessages.REASON_CATEGORY_ADDITION),
)


@dataclass(frozen=True, slots=True)
class Candidate:
    table_id: int
    table_name: str
    score: int
    reasons: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "table_id": self.table_id,
            "table_name": self.table_name,
            "score": self.score,
            "reasons": list(self.reasons),
        }


@dataclass(frozen=True, slots=True)
class SelectionWarning:
    level: str
    message: str

    def to_dict(self) -> dict:
        return {"level": self.level, "message": self.message}


@dataclass(slots=True)
class TableSelection:
    table_id: int
    table_name: str
    score: int
    reasons: List[str]
    candidates: List[Candidate] = field(default_factory=list)
    warnings: List[SelectionWarning] = field(default_factory=list)


def _transit_points(profile: ExamineeProfile, name: str) -> tuple[int, str | None]:
    if not (profile.is_transit and profile.transit_type):
        return 0, None
    for rule in TRANSIT_RULES:
        if any_keyword(profile.transit_type, rule.profile_keywords):
            if any_keyword(name, rule.table_keywords):
                return TRANSIT_MATCH_POINTS, rule.reason
            break
    if contains_keyword(name, PROFESSIONAL_KEYWORD):
        return PROFESSIONAL_POINTS, SelectionMessages.REASON_PROFESSIONAL
    return 0, None


def score_table(profile: ExamineeProfile, table: NormativeTable, *, today: date | None = None) -> Candidate:
    name = table.name or ""
    score = 0
    reasons: list[str] = []

    primary_region = profile.region or settings.primary_region
    secondary_region = settings.secondary_region
    if primary_region and contains_keyword(name, primary_region):
        score += PRIMARY_REGION_POINTS
        reasons.append(SelectionMessages.REASON_PRIMARY_REGION.format(region=primary_region))
    elif secondary_region and contains_keyword(name, secondary_region):
        score += SECONDARY_REGION_POINTS
        reasons.append(SelectionMessages.REASON_SECONDARY_REGION.format(region=secondary_region))

    points, reason = _transit_points(profile, name)
    if points:
        score += points
        reasons.append(reason or "")

    age = profile.resolved_age(today)
    age_range = parse_age_range(name)
    if age is not None and age >= 0 and age_range is not None:
        low, high = age_range
        if low <= age <= high:
            score += AGE_POINTS
            reasons.append(SelectionMessages.REASON_AGE_BAND.format(low=low, high=high))

    tier = profile.education_tier
    if tier is not None and contains_keyword(name, tier):
        score += EDUCATION_POINTS
        reasons.append(SelectionMessages.REASON_EDUCATION.format(tier=EDUCATION_LABELS[tier]))

    if any_keyword(name, GENERAL_KEYWORDS):
        score += GENERAL_POINTS
        reasons.append(SelectionMessages.REASON_GENERAL)

    return Candidate(table_id=table.id, table_name=name, score=score, reasons=tuple(reasons))


def rank_tables(
    tables: Iterable[NormativeTable],
    profile: ExamineeProfile,
    *,
    today: date | None = None,
) -> List[Candidate]:
    scored = [score_table(profile, table, today=today) for table in tables]
    # sorted() is stable: equal scores keep fetch order
    return sorted(scored, key=lambda candidate: -candidate.score)


def selection_warnings(profile: ExamineeProfile, *, today: date | None = None) -> List[SelectionWarning]:
    warnings: list[SelectionWarning] = []
    age = profile.resolved_age(today)
    if profile.is_transit and age is not None and age < settings.transit_minimum_age:
        warnings.append(
            SelectionWarning(
                "warning",
                SelectionMessages.WARN_TRANSIT_AGE.format(age=age, minimum=settings.transit_minimum_age),
            )
        )
    if profile.is_unschooled:
        warnings.append(SelectionWarning("info", SelectionMessages.INFO_UNSCHOOLED))
    if age is not None and age < settings.normative_minimum_age:
        warnings.append(
            SelectionWarning(
                "warning",
                SelectionMessages.WARN_OUTSIDE_NORMS.format(age=age, minimum=settings.normative_minimum_age),
            )
        )
    return warnings


def _top(candidates: Sequence[Candidate]) -> List[Candidate]:
    return list(candidates[: settings.candidate_limit])


@measure_time("selector.select_table")
def select_table(
    db: Session,
    test_type: TestType,
    profile: ExamineeProfile,
    *,
    today: date | None = None,
) -> TableSelection:
    """Pick the best active table; raises ``TableSelectionError`` when there is none."""
    tables = NormativeRepository(db).list_active_tables(test_type.value)
    ranked = rank_tables(tables, profile, today=today)
    warnings = selection_warnings(profile, today=today)
    if not ranked:
        logger.warning(
            "table_selection_empty",
            extra={"structured_data": {"test_type": test_type.value}},
        )
        raise TableSelectionError(
            SelectionMessages.NO_ACTIVE_TABLES.format(test_type=test_type.value),
            detail={
                "test_type": test_type.value,
                "suggestions": [],
                "warnings": [w.to_dict() for w in warnings],
            },
        )

    best = ranked[0]
    logger.info(
        "table_selected",
        extra={
            "structured_data": {
                "test_type": test_type.value,
                "table_id": best.table_id,
                "score": best.score,
                "candidates": len(ranked),
            }
        },
    )
    return TableSelection(
        table_id=best.table_id,
        table_name=best.table_name,
        score=best.score,
        reasons=list(best.reasons),
        candidates=_top(ranked),
        warnings=warnings,
    )


def suggest_tables(
    db: Session,
    test_type: TestType,
    profile: ExamineeProfile,
    *,
    today: date | None = None,
) -> tuple[List[Candidate], List[SelectionWarning]]:
    """Ranked suggestions without committing to a choice; empty when no table is active."""
    tables = NormativeRepository(db).list_active_tables(test_type.value)
    return _top(rank_tables(tables, profile, today=today)), selection_warnings(profile, today=today)
