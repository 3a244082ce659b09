"""Attention tests: AC (concentrated), BPA-2 (three modalities) and Rotas (three routes)."""

from __future__ import annotations

from statistics import fmean
from typing import Any, Mapping

from psychnorm.core.numeric import round_half_up
from psychnorm.models.enums import TestType
from psychnorm.scoring.classification import INVALID_NEGATIVE_PB, OUT_OF_RANGE, general_classification
from psychnorm.scoring.keywords import education_tier
from psychnorm.scoring.scorers.base import (
    ScoringContext,
    lookup_component,
    pick_text,
    points,
    response_counts,
)
from psychnorm.scoring.types import ComponentScore, ScoreResult, ScoreStatus


def _status(percentile: float | None) -> ScoreStatus:
    return ScoreStatus.ok if percentile is not None else ScoreStatus.out_of_range


class ConcentratedAttentionScorer:
    """AC: PB = correct - incorrect - omitted, looked up within the examinee's education tier."""

    test_type = TestType.ac

    def score(self, context: ScoringContext, raw_input: Mapping[str, Any]) -> ScoreResult:
        counts = response_counts(raw_input)
        pb = points(counts)
        if pb < 0:
            return ScoreResult(
                test_type=self.test_type,
                raw_score=pb,
                percentile=None,
                classification=INVALID_NEGATIVE_PB,
                status=ScoreStatus.invalid,
                extras={"counts": counts},
            )

        tier = education_tier(pick_text(raw_input, "education", "escolaridade") or context.education)
        if tier is None:
            component = ComponentScore(raw_score=pb, percentile=None, classification=OUT_OF_RANGE)
        else:
            component = lookup_component(context, pb, category=tier)
        return ScoreResult(
            test_type=self.test_type,
            raw_score=pb,
            percentile=component.percentile,
            classification=component.classification,
            status=_status(component.percentile),
            extras={"counts": counts, "education_tier": tier},
        )


BPA2_MODALITIES: tuple[tuple[str, str], ...] = (
    ("sustained", "sustentada"),
    ("alternating", "alternada"),
    ("divided", "dividida"),
)


class ThreeModalityAttentionScorer:
    """BPA-2: one PB per modality; the general score averages them."""

    test_type = TestType.bpa2

    def score(self, context: ScoringContext, raw_input: Mapping[str, Any]) -> ScoreResult:
        components: dict[str, ComponentScore] = {}
        for modality, legacy in BPA2_MODALITIES:
            counts = response_counts(raw_input, modality, legacy)
            components[modality] = lookup_component(context, points(counts), category=modality, counts=counts)

        general_points = round_half_up(fmean(c.raw_score or 0 for c in components.values()), 2)
        resolved = [c.percentile for c in components.values() if c.percentile is not None]
        general_percentile = round_half_up(fmean(resolved)) if resolved else None
        classification = general_classification(general_percentile)
        return ScoreResult(
            test_type=self.test_type,
            raw_score=general_points,
            percentile=general_percentile,
            classification=classification,
            status=_status(general_percentile),
            components=components,
        )


ROUTES: tuple[str, ...] = ("a", "d", "c")
COMPOSITE_ROUTE = "C"


class MultiRouteAttentionScorer:
    """Rotas: routes A, D and C scored separately; the composite (MGA) uses route C rows."""

    test_type = TestType.rotas

    def score(self, context: ScoringContext, raw_input: Mapping[str, Any]) -> ScoreResult:
        components: dict[str, ComponentScore] = {}
        for route in ROUTES:
            counts = response_counts(raw_input, f"route_{route}", f"rota_{route}")
            components[route] = lookup_component(context, points(counts), category=route.upper(), counts=counts)

        composite = sum(int(c.raw_score or 0) for c in components.values())
        general = lookup_component(context, composite, category=COMPOSITE_ROUTE)
        return ScoreResult(
            test_type=self.test_type,
            raw_score=composite,
            percentile=general.percentile,
            classification=general.classification,
            status=_status(general.percentile),
            components=components,
            extras={"composite_route": COMPOSITE_ROUTE},
        )
