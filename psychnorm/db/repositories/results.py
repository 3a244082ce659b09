from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Mapping

from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from psychnorm.db.repositories.base import Repository
from psychnorm.models import NormativeTable, TestResult


@dataclass(frozen=True, slots=True)
class StoredResultRow:
    id: int
    evaluation_id: int
    test_type: str
    raw_score: float | None
    percentile: float | None
    classification: str | None
    raw_input: dict | None
    components: dict | None
    normative_table_id: int | None
    normative_table_name: str | None
    created_at: datetime | None


@dataclass
class TestResultRepository(Repository[Session]):
    """Replace-semantics storage for per-evaluation test results."""

    __test__ = False

    def delete_for(self, evaluation_id: int, test_type: str) -> int:
        result = self.db.execute(
            delete(TestResult)
            .where(TestResult.evaluation_id == evaluation_id)
            .where(TestResult.test_type == test_type)
        )
        return int(result.rowcount or 0)

    def insert(self, values: Mapping[str, Any]) -> int:
        """Insert through Core so optional columns can be left out of the statement."""
        result = self.db.execute(insert(TestResult.__table__).values(**values))
        primary_key = result.inserted_primary_key
        return int(primary_key[0]) if primary_key else 0

    def list_for_evaluation(self, evaluation_id: int, *, with_table: bool = True) -> List[StoredResultRow]:
        if with_table:
            stmt = (
                select(
                    TestResult.id,
                    TestResult.evaluation_id,
                    TestResult.test_type,
                    TestResult.raw_score,
                    TestResult.percentile,
                    TestResult.classification,
                    TestResult.raw_input,
                    TestResult.components,
                    TestResult.normative_table_id,
                    NormativeTable.name,
                    TestResult.created_at,
                )
                .outerjoin(NormativeTable, NormativeTable.id == TestResult.normative_table_id)
            )
        else:
            stmt = select(
                TestResult.id,
                TestResult.evaluation_id,
                TestResult.test_type,
                TestResult.raw_score,
                TestResult.percentile,
                TestResult.classification,
                TestResult.raw_input,
                TestResult.components,
            )
        stmt = stmt.where(TestResult.evaluation_id == evaluation_id).order_by(TestResult.created_at, TestResult.id)
        rows = self.db.execute(stmt).all()
        return [
            StoredResultRow(
                id=int(row[0]),
                evaluation_id=int(row[1]),
                test_type=str(row[2]),
                raw_score=row[3],
                percentile=row[4],
                classification=row[5],
                raw_input=row[6],
                components=row[7],
                normative_table_id=row[8] if with_table else None,
                normative_table_name=row[9] if with_table else None,
                created_at=row[10] if with_table else None,
            )
            for row in rows
        ]
