"""Built-in MEMORE reference curves and their step/linear interpolator.

Each curve lists the published (raw score, percentile) anchors. Several
percentiles may share one raw score; such an anchor is a vertical step whose
entry is its lowest percentile and whose exit is its highest.

* raw equal to an anchor: the anchor's entry percentile
* raw between anchors ``a < raw < b``: linear from exit(a) to exit(b),
  rounded half-up to the nearest multiple of 5 and kept within that span
* raw below the first anchor: the lowest percentile of the curve
* raw above the last anchor: the highest percentile of the curve
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Sequence

import numpy as np

from psychnorm.core.numeric import round_to_multiple
from psychnorm.scoring.keywords import KeywordRule, first_match

__all__ = [
    "ReferenceCurve",
    "REFERENCE_CURVES",
    "CURVE_RULES",
    "select_curve",
]

ROUNDING_STEP = 5


@dataclass(frozen=True)
class ReferenceCurve:
    key: str
    label: str
    anchors: tuple[tuple[int, int], ...]
    _raw: np.ndarray = field(init=False, repr=False, compare=False)
    _entry: np.ndarray = field(init=False, repr=False, compare=False)
    _exit: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.anchors:
            raise ValueError(f"Curve {self.key} has no anchors")
        grouped: Dict[int, list[int]] = {}
        for raw, percentile in self.anchors:
            grouped.setdefault(int(raw), []).append(int(percentile))
        ordered = sorted(grouped)
        object.__setattr__(self, "_raw", np.array(ordered, dtype=float))
        object.__setattr__(self, "_entry", np.array([min(grouped[r]) for r in ordered], dtype=float))
        object.__setattr__(self, "_exit", np.array([max(grouped[r]) for r in ordered], dtype=float))

    @property
    def lowest(self) -> int:
        return int(self._entry[0])

    @property
    def highest(self) -> int:
        return int(self._exit[-1])

    def percentile_for(self, raw: float) -> int:
        xs = self._raw
        if raw < xs[0]:
            return self.lowest
        if raw > xs[-1]:
            return self.highest
        idx = int(np.searchsorted(xs, raw, side="left"))
        if xs[idx] == raw:
            return int(self._entry[idx])
        lo, hi = idx - 1, idx
        start, end = float(self._exit[lo]), float(self._exit[hi])
        value = float(np.interp(raw, [xs[lo], xs[hi]], [start, end]))
        rounded = round_to_multiple(value, ROUNDING_STEP)
        return int(min(max(rounded, start), end))


def _curve(key: str, label: str, anchors: Sequence[tuple[int, int]]) -> ReferenceCurve:
    return ReferenceCurve(key=key, label=label, anchors=tuple(anchors))


REFERENCE_CURVES: Mapping[str, ReferenceCurve] = {
    curve.key: curve
    for curve in (
        _curve(
            "transit",
            "Tabela 7 - Trânsito",
            [(-4, 1), (0, 5), (2, 10), (4, 15), (6, 20), (7, 25), (8, 30), (8, 35), (10, 40), (10, 45),
             (12, 50), (14, 55), (14, 60), (16, 65), (16, 70), (16, 75), (18, 80), (20, 85), (22, 90),
             (22, 95), (24, 99)],
        ),
        _curve(
            "general",
            "Tabela 10 - Amostra geral",
            [(-8, 1), (0, 5), (2, 10), (4, 15), (6, 20), (6, 25), (8, 30), (8, 35), (10, 40), (10, 45),
             (12, 50), (12, 55), (12, 60), (14, 65), (14, 70), (16, 75), (16, 80), (18, 85), (20, 90),
             (22, 95), (24, 99)],
        ),
        _curve(
            "education_fundamental",
            "Tabela 8 - Ensino Fundamental",
            [(-8, 1), (-4, 5), (-2, 10), (0, 15), (2, 20), (2, 25), (2, 30), (4, 35), (4, 40), (4, 45),
             (4, 50), (6, 55), (6, 60), (8, 65), (10, 70), (10, 75), (10, 80), (12, 85), (12, 90),
             (16, 95), (18, 99)],
        ),
        _curve(
            "education_medio",
            "Tabela 8 - Ensino Médio",
            [(-4, 1), (0, 5), (2, 10), (4, 15), (4, 20), (6, 25), (8, 30), (8, 35), (10, 40), (10, 45),
             (10, 50), (12, 55), (12, 60), (14, 65), (14, 70), (16, 75), (16, 80), (18, 85), (22, 90),
             (24, 95), (24, 99)],
        ),
        _curve(
            "education_superior",
            "Tabela 8 - Ensino Superior",
            [(-6, 1), (0, 5), (4, 10), (4, 15), (6, 20), (8, 25), (8, 30), (10, 35), (10, 40), (12, 45),
             (12, 50), (12, 55), (14, 60), (14, 65), (16, 70), (16, 75), (18, 80), (20, 85), (20, 90),
             (24, 95), (24, 99)],
        ),
        _curve(
            "age_14_24",
            "Tabela 9 - 14-24 anos",
            [(-4, 1), (-2, 5), (4, 10), (6, 15), (8, 20), (8, 25), (10, 30), (10, 35), (12, 40), (12, 45),
             (12, 50), (14, 55), (14, 60), (14, 65), (16, 70), (16, 75), (16, 80), (18, 85), (20, 90),
             (20, 95), (24, 99)],
        ),
        _curve(
            "age_25_34",
            "Tabela 9 - 25-34 anos",
            [(-4, 1), (-2, 5), (0, 10), (2, 15), (4, 20), (4, 25), (8, 30), (8, 35), (10, 40), (10, 45),
             (12, 50), (12, 55), (14, 60), (14, 65), (16, 70), (16, 75), (18, 80), (20, 85), (20, 90),
             (24, 95), (24, 99)],
        ),
        _curve(
            "age_35_44",
            "Tabela 9 - 35-44 anos",
            [(-4, 1), (-2, 5), (0, 10), (0, 15), (2, 20), (2, 25), (4, 30), (4, 35), (6, 40), (6, 45),
             (8, 50), (8, 55), (10, 60), (10, 65), (10, 70), (12, 75), (12, 80), (14, 85), (16, 90),
             (16, 95), (20, 99)],
        ),
        _curve(
            "age_45_54",
            "Tabela 9 - 45-54 anos",
            [(-4, 1), (-2, 5), (0, 10), (0, 15), (0, 20), (0, 25), (2, 30), (3, 35), (4, 40), (4, 45),
             (4, 50), (6, 55), (7, 60), (8, 65), (8, 70), (10, 75), (11, 80), (12, 85), (14, 90),
             (15, 95), (22, 99)],
        ),
        _curve(
            "age_55_64",
            "Tabela 9 - 55-64 anos",
            [(-4, 1), (-1, 5), (0, 10), (0, 15), (0, 20), (0, 25), (2, 30), (3, 35), (4, 40), (4, 45),
             (4, 50), (6, 55), (7, 60), (8, 65), (8, 70), (10, 75), (11, 80), (12, 85), (14, 90),
             (15, 95), (22, 99)],
        ),
    )
}

# Specific tiers and bands precede their defaults so every curve is reachable.
CURVE_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(("transito",), "transit"),
    KeywordRule(("geral",), "general"),
    KeywordRule(("escolaridade", "fundamental"), "education_fundamental"),
    KeywordRule(("escolaridade", "superior"), "education_superior"),
    KeywordRule(("escolaridade", "medio"), "education_medio"),
    KeywordRule(("escolaridade",), "education_medio"),
    KeywordRule(("idade", "25-34"), "age_25_34"),
    KeywordRule(("idade", "35-44"), "age_35_44"),
    KeywordRule(("idade", "45-54"), "age_45_54"),
    KeywordRule(("idade", "55-64"), "age_55_64"),
    KeywordRule(("idade", "14-24"), "age_14_24"),
    KeywordRule(("idade",), "age_14_24"),
)


def select_curve(table_name: str | None, explicit_key: str | None = None) -> ReferenceCurve | None:
    """Explicit tag first, then the keyword rules; None when nothing applies."""
    if explicit_key and explicit_key in REFERENCE_CURVES:
        return REFERENCE_CURVES[explicit_key]
    key = first_match(table_name, CURVE_RULES)
    return REFERENCE_CURVES.get(key) if key else None
