from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from psychnorm.db.repositories.base import Repository
from psychnorm.models import NormativeRow, NormativeTable


@dataclass(frozen=True, slots=True)
class TableSummary:
    id: int
    test_type: str
    name: str
    version: str
    criterion: str | None


@dataclass
class NormativeRepository(Repository[Session]):
    """Normative tables and their rows; writes only happen through CSV imports."""

    def list_active_tables(self, test_type: str) -> List[NormativeTable]:
        """Active tables of a test type in deterministic (name, id) order."""
        stmt = (
            select(NormativeTable)
            .where(NormativeTable.test_type == test_type)
            .where(NormativeTable.active.is_(True))
            .order_by(NormativeTable.name, NormativeTable.id)
        )
        return list(self.db.execute(stmt).scalars())

    def list_active_with_rows(self, test_type: str) -> List[NormativeTable]:
        stmt = (
            select(NormativeTable)
            .options(selectinload(NormativeTable.rows))
            .where(NormativeTable.test_type == test_type)
            .where(NormativeTable.active.is_(True))
            .order_by(NormativeTable.name, NormativeTable.id)
        )
        return list(self.db.execute(stmt).scalars())

    def list_all_active(self) -> List[TableSummary]:
        stmt = (
            select(
                NormativeTable.id,
                NormativeTable.test_type,
                NormativeTable.name,
                NormativeTable.version,
                NormativeTable.criterion,
            )
            .where(NormativeTable.active.is_(True))
            .order_by(NormativeTable.test_type, NormativeTable.name, NormativeTable.id)
        )
        return [
            TableSummary(
                id=int(row[0]),
                test_type=str(row[1]),
                name=str(row[2]),
                version=str(row[3]),
                criterion=row[4],
            )
            for row in self.db.execute(stmt).all()
        ]

    def get_active_table(self, table_id: int, test_type: str) -> Optional[NormativeTable]:
        stmt = (
            select(NormativeTable)
            .where(NormativeTable.id == table_id)
            .where(NormativeTable.test_type == test_type)
            .where(NormativeTable.active.is_(True))
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def find_active_table_by_name(self, test_type: str, fragment: str) -> Optional[NormativeTable]:
        stmt = (
            select(NormativeTable)
            .where(NormativeTable.test_type == test_type)
            .where(NormativeTable.active.is_(True))
            .where(NormativeTable.name.contains(fragment, autoescape=True))
            .order_by(NormativeTable.id)
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def find_row(
        self,
        table_id: int,
        value: float,
        *,
        category: str | None = None,
    ) -> Optional[NormativeRow]:
        """Row whose closed range contains ``value``; the highest percentile wins on overlap."""
        stmt = (
            select(NormativeRow)
            .where(NormativeRow.table_id == table_id)
            .where(NormativeRow.min_value <= value)
            .where(NormativeRow.max_value >= value)
        )
        if category is not None:
            stmt = stmt.where(NormativeRow.category == category)
        stmt = stmt.order_by(
            func.coalesce(NormativeRow.percentile, -1.0).desc(),
            NormativeRow.id,
        ).limit(1)
        return self.db.execute(stmt).scalar_one_or_none()

    def find_active_version(self, test_type: str, name: str, version: str) -> Optional[NormativeTable]:
        stmt = (
            select(NormativeTable)
            .where(NormativeTable.test_type == test_type)
            .where(NormativeTable.name == name)
            .where(NormativeTable.version == version)
            .where(NormativeTable.active.is_(True))
        )
        return self.db.execute(stmt).scalars().first()

    def add_table(self, table: NormativeTable, rows: Iterable[Mapping[str, Any]]) -> NormativeTable:
        table.rows = [NormativeRow(**values) for values in rows]
        self.db.add(table)
        self.db.flush()
        return table

    def deactivate(self, table_id: int) -> None:
        self.db.execute(update(NormativeTable).where(NormativeTable.id == table_id).values(active=False))
