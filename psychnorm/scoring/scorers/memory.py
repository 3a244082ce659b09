"""Memory tests: MVT (visual memory for drivers) and MEMORE (recognition)."""

from __future__ import annotations

from typing import Any, Mapping

from psychnorm.core.logging import get_logger
from psychnorm.core.numeric import non_negative_int, safe_div
from psychnorm.models.enums import TestType
from psychnorm.scoring.classification import OUT_OF_RANGE, memore_classification
from psychnorm.scoring.curves import select_curve
from psychnorm.scoring.scorers.base import ScoringContext, lookup_component, pick, pick_text, response_counts
from psychnorm.scoring.types import ComponentScore, ScoreResult, ScoreStatus

logger = get_logger("psychnorm.scoring.memory", component="scoring")


class VisualMemoryScorer:
    """MVT: percentage of correct answers, looked up within the licence context."""

    test_type = TestType.mvt

    def score(self, context: ScoringContext, raw_input: Mapping[str, Any]) -> ScoreResult:
        counts = response_counts(raw_input)
        answered = counts["correct"] + counts["incorrect"] + counts["omitted"]
        percentage = safe_div(counts["correct"], answered) * 100
        licence = pick_text(raw_input, "licence_context", "tipo_cnh") or context.licence_context
        if licence is None:
            component = ComponentScore(raw_score=percentage, percentile=None, classification=OUT_OF_RANGE)
        else:
            component = lookup_component(context, percentage, category=licence)
        return ScoreResult(
            test_type=self.test_type,
            raw_score=percentage,
            percentile=component.percentile,
            classification=component.classification,
            status=ScoreStatus.ok if component.percentile is not None else ScoreStatus.out_of_range,
            extras={"counts": counts, "licence_context": licence},
        )


class MemoryRecognitionScorer:
    """MEMORE: (vp + vn) - (fn + fp), with a reference-curve fallback on lookup miss."""

    test_type = TestType.memore

    def score(self, context: ScoringContext, raw_input: Mapping[str, Any]) -> ScoreResult:
        counters = {
            "vp": non_negative_int(pick(raw_input, "true_positive", "vp")),
            "vn": non_negative_int(pick(raw_input, "true_negative", "vn")),
            "fn": non_negative_int(pick(raw_input, "false_negative", "fn")),
            "fp": non_negative_int(pick(raw_input, "false_positive", "fp")),
        }
        raw = (counters["vp"] + counters["vn"]) - (counters["fn"] + counters["fp"])

        hit = context.lookup.find(context.table.id, raw)
        if hit is not None:
            return ScoreResult(
                test_type=self.test_type,
                raw_score=raw,
                percentile=hit.percentile,
                classification=hit.classification,
                status=ScoreStatus.ok if hit.percentile is not None else ScoreStatus.out_of_range,
                extras={"counters": counters},
            )

        curve = select_curve(context.table.name, context.table.reference_curve)
        if curve is None:
            logger.info(
                "memore_no_reference_curve",
                extra={"structured_data": {"table_id": context.table.id, "raw_score": raw}},
            )
            return ScoreResult(
                test_type=self.test_type,
                raw_score=raw,
                percentile=None,
                classification=OUT_OF_RANGE,
                status=ScoreStatus.out_of_range,
                extras={"counters": counters},
            )

        percentile = curve.percentile_for(raw)
        logger.debug(
            "memore_interpolated",
            extra={"structured_data": {"table_id": context.table.id, "curve": curve.key, "raw_score": raw, "percentile": percentile}},
        )
        return ScoreResult(
            test_type=self.test_type,
            raw_score=raw,
            percentile=percentile,
            classification=memore_classification(percentile),
            status=ScoreStatus.interpolated,
            extras={"counters": counters, "reference_curve": curve.key},
        )
