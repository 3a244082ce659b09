"""Reasoning and intelligence tests: BETA-III, R-1 and MIG."""

from __future__ import annotations

from typing import Any, Mapping

from psychnorm.core.numeric import round_half_up
from psychnorm.models.enums import TestType
from psychnorm.scoring.classification import OUT_OF_RANGE
from psychnorm.scoring.keywords import KeywordRule, education_tier, first_match
from psychnorm.scoring.scorers.base import ScoringContext, lookup_component, pick_int, pick_text
from psychnorm.scoring.types import ComponentScore, ScoreResult, ScoreStatus

BETA_III_ITEMS = 25


class MatrixReasoningScorer:
    test_type = TestType.beta_iii

    def score(self, context: ScoringContext, raw_input: Mapping[str, Any]) -> ScoreResult:
        correct = pick_int(raw_input, "correct", "acertos")
        component = lookup_component(context, correct)
        return ScoreResult(
            test_type=self.test_type,
            raw_score=correct,
            percentile=component.percentile,
            classification=component.classification,
            status=ScoreStatus.ok if component.percentile is not None else ScoreStatus.out_of_range,
            extras={"derived_percentage": round_half_up(correct / BETA_III_ITEMS * 100, 2)},
        )


class ReasoningScorer:
    """R-1: correct count looked up within the education tier."""

    test_type = TestType.r1

    def score(self, context: ScoringContext, raw_input: Mapping[str, Any]) -> ScoreResult:
        correct = pick_int(raw_input, "correct", "acertos")
        tier = education_tier(pick_text(raw_input, "education", "escolaridade") or context.education)
        if tier is None:
            component = ComponentScore(raw_score=correct, percentile=None, classification=OUT_OF_RANGE)
        else:
            component = lookup_component(context, correct, category=tier)
        return ScoreResult(
            test_type=self.test_type,
            raw_score=correct,
            percentile=component.percentile,
            classification=component.classification,
            status=ScoreStatus.ok if component.percentile is not None else ScoreStatus.out_of_range,
            extras={"education_tier": tier},
        )


MIG_DEFAULT_SUBTYPE = "geral"
MIG_IQ_SUBTYPE = "qi"
MIG_IQ_TABLE_FRAGMENT = "Conversão QI"

MIG_SUBTYPE_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(("conversao qi",), MIG_IQ_SUBTYPE),
    KeywordRule(("geral",), MIG_DEFAULT_SUBTYPE),
)


def mig_subtype(table_name: str | None, explicit: str | None = None) -> str:
    if explicit:
        return explicit
    return first_match(table_name, MIG_SUBTYPE_RULES, default=MIG_DEFAULT_SUBTYPE) or MIG_DEFAULT_SUBTYPE


class GeneralIntelligenceScorer:
    """MIG: correct count within the table's evaluation sub-type, plus an IQ conversion."""

    test_type = TestType.mig

    def score(self, context: ScoringContext, raw_input: Mapping[str, Any]) -> ScoreResult:
        correct = pick_int(raw_input, "correct", "acertos")
        subtype = mig_subtype(context.table.name, context.table.evaluation_subtype)
        component = lookup_component(context, correct, category=subtype)

        iq: int | None = None
        iq_table = context.lookup.find_table_by_name(self.test_type.value, MIG_IQ_TABLE_FRAGMENT)
        if iq_table is not None:
            hit = context.lookup.find(iq_table.id, correct, category=MIG_IQ_SUBTYPE)
            if hit is not None:
                iq = hit.iq

        return ScoreResult(
            test_type=self.test_type,
            raw_score=correct,
            percentile=component.percentile,
            classification=component.classification,
            status=ScoreStatus.ok if component.percentile is not None else ScoreStatus.out_of_range,
            extras={"evaluation_subtype": subtype, "iq": iq},
        )
