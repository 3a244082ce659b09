from __future__ import annotations

import enum

__all__ = [
    "TestType",
    "LinkageMode",
    "MovementType",
    "EvaluationCategory",
]


class TestType(str, enum.Enum):
    """Closed catalog of scorable tests; values match ``normative_tables.test_type``."""

    __test__ = False

    memore = "memore"
    mig = "mig"
    r1 = "r1"
    ac = "ac"
    beta_iii = "beta-iii"
    bpa2 = "bpa2"
    mvt = "mvt"
    rotas = "rotas"

    @classmethod
    def parse(cls, value: str) -> "TestType":
        normalized = (value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unknown test type: {value!r}")


class LinkageMode(str, enum.Enum):
    linked = "linked"
    anonymous = "anonymous"
    unlinked = "unlinked"


class MovementType(str, enum.Enum):
    outbound = "outbound"
    inbound = "inbound"


class EvaluationCategory(str, enum.Enum):
    psychological = "Psicológica"
    anonymous = "Anônima"
