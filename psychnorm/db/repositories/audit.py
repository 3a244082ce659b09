from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy.orm import Session

from psychnorm.db.repositories.base import Repository
from psychnorm.models import CalculationLog


@dataclass
class CalculationLogRepository(Repository[Session]):
    def add(
        self,
        *,
        owner_id: int | None,
        test_type: str,
        raw_input: Mapping[str, Any],
        result: Mapping[str, Any],
        normative_table_id: int | None,
        client_address: str | None,
    ) -> CalculationLog:
        entry = CalculationLog(
            owner_id=owner_id,
            test_type=test_type,
            raw_input=dict(raw_input),
            result=dict(result),
            normative_table_id=normative_table_id,
            client_address=client_address,
        )
        self.db.add(entry)
        self.db.flush()
        return entry
