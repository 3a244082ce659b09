from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from psychnorm.core.metrics import count_calls
from psychnorm.db.repositories import NormativeRepository
from psychnorm.scoring.types import TableRef

__all__ = ["LookupHit", "NormLookup", "RepositoryNormLookup"]


@dataclass(frozen=True, slots=True)
class LookupHit:
    percentile: float | None
    classification: str
    iq: int | None = None


class NormLookup(Protocol):
    """Read side the scorers depend on."""

    def find(self, table_id: int, value: float, *, category: str | None = None) -> Optional[LookupHit]: ...

    def find_table_by_name(self, test_type: str, fragment: str) -> Optional[TableRef]: ...


@dataclass(slots=True)
class RepositoryNormLookup:
    """NormLookup backed by the normative repository of a live session."""

    db: Session

    @count_calls("scoring.lookup.calls")
    def find(self, table_id: int, value: float, *, category: str | None = None) -> Optional[LookupHit]:
        row = NormativeRepository(self.db).find_row(table_id, value, category=category)
        if row is None:
            return None
        return LookupHit(
            percentile=float(row.percentile) if row.percentile is not None else None,
            classification=row.classification,
            iq=row.iq,
        )

    def find_table_by_name(self, test_type: str, fragment: str) -> Optional[TableRef]:
        table = NormativeRepository(self.db).find_active_table_by_name(test_type, fragment)
        if table is None:
            return None
        return TableRef(id=table.id, name=table.name)
