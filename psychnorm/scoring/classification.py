"""Fixed labels and percentile breakpoint ladders shared by the scorers."""

from __future__ import annotations

from typing import Sequence

__all__ = [
    "OUT_OF_RANGE",
    "INVALID_NEGATIVE_PB",
    "GENERAL_LADDER",
    "MEMORE_LADDER",
    "classify_percentile",
    "general_classification",
    "memore_classification",
]

OUT_OF_RANGE = "out of normative range"
INVALID_NEGATIVE_PB = "invalid values (negative PB)"

# (minimum percentile, label), highest first; the last entry catches everything below.
GENERAL_LADDER: tuple[tuple[float, str], ...] = (
    (95, "Superior"),
    (85, "Above-average"),
    (75, "Above-average-median"),
    (50, "Average"),
    (25, "Below-average-median"),
    (15, "Below-average"),
    (float("-inf"), "Inferior"),
)

MEMORE_LADDER: tuple[tuple[float, str], ...] = (
    (95, "Superior"),
    (80, "Above-median"),
    (30, "Median"),
    (10, "Below-median"),
    (float("-inf"), "Inferior"),
)


def classify_percentile(percentile: float | None, ladder: Sequence[tuple[float, str]]) -> str:
    if percentile is None:
        return OUT_OF_RANGE
    for threshold, label in ladder:
        if percentile >= threshold:
            return label
    return ladder[-1][1]


def general_classification(percentile: float | None) -> str:
    return classify_percentile(percentile, GENERAL_LADDER)


def memore_classification(percentile: float | None) -> str:
    return classify_percentile(percentile, MEMORE_LADDER)
