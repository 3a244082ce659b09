from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from psychnorm.models.enums import TestType

__all__ = [
    "ScoreStatus",
    "ComponentScore",
    "ScoreResult",
    "TableRef",
]


class ScoreStatus(str, enum.Enum):
    ok = "ok"
    out_of_range = "out_of_range"
    invalid = "invalid"
    interpolated = "interpolated"


@dataclass(frozen=True, slots=True)
class TableRef:
    """The chosen table as seen by a scorer; name drives keyword classifiers."""

    id: int
    name: str
    reference_curve: str | None = None
    evaluation_subtype: str | None = None


@dataclass(slots=True)
class ComponentScore:
    """Per-modality or per-route partial score."""

    raw_score: float | None
    percentile: float | None
    classification: str
    counts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = dict(self.counts)
        payload.update(
            {
                "raw_score": self.raw_score,
                "percentile": self.percentile,
                "classification": self.classification,
            }
        )
        return payload


@dataclass(slots=True)
class ScoreResult:
    test_type: TestType
    raw_score: float | None
    percentile: float | None
    classification: str
    status: ScoreStatus = ScoreStatus.ok
    components: Dict[str, ComponentScore] = field(default_factory=dict)
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def resolved(self) -> bool:
        return self.percentile is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "test_type": self.test_type.value,
            "raw_score": self.raw_score,
            "percentile": self.percentile,
            "classification": self.classification,
            "status": self.status.value,
            "components": {name: comp.to_dict() for name, comp in self.components.items()},
            "extras": dict(self.extras),
        }

    def components_payload(self) -> Optional[Dict[str, Any]]:
        """Breakdown stored alongside the headline score; None when there is nothing to add."""
        if not self.components and not self.extras:
            return None
        return {
            "components": {name: comp.to_dict() for name, comp in self.components.items()},
            "extras": dict(self.extras),
            "status": self.status.value,
        }
