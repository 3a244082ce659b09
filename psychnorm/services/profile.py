from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from psychnorm.scoring.keywords import education_tier, normalize_text

__all__ = ["ExamineeProfile", "age_on"]

TRANSIT_CONTEXT = "transito"
UNSCHOOLED = "nao escolarizado"


def age_on(birth_date: date, reference: date) -> int:
    """Completed years at ``reference``; the birthday itself counts."""
    years = reference.year - birth_date.year
    if (reference.month, reference.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


@dataclass(frozen=True, slots=True)
class ExamineeProfile:
    """Who is being assessed, as far as table selection is concerned. Not persisted."""

    age: Optional[int] = None
    birth_date: Optional[date] = None
    education: Optional[str] = None
    region: Optional[str] = None
    context: Optional[str] = None
    transit_type: Optional[str] = None

    def resolved_age(self, today: date | None = None) -> Optional[int]:
        if self.age is not None:
            return self.age
        if self.birth_date is not None:
            return age_on(self.birth_date, today or date.today())
        return None

    @property
    def education_tier(self) -> Optional[str]:
        return education_tier(self.education)

    @property
    def is_transit(self) -> bool:
        return normalize_text(self.context) == TRANSIT_CONTEXT

    @property
    def is_unschooled(self) -> bool:
        return normalize_text(self.education) == UNSCHOOLED
