"""Load a normative table from CSV.

Header: ``min_value,max_value,percentile,classification`` plus the optional
``category`` and ``iq`` columns. An empty percentile marks an out-of-range
band.
"""

from __future__ import annotations

import csv
from hashlib import sha256
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from psychnorm.core.errors import ValidationError
from psychnorm.core.logging import get_logger
from psychnorm.db.repositories import NormativeRepository
from psychnorm.i18n.pt_messages import ImportMessages
from psychnorm.models import NormativeTable, TestType

__all__ = ["REQUIRED_COLUMNS", "OPTIONAL_COLUMNS", "parse_rows", "import_table"]

logger = get_logger("psychnorm.norm_import", component="norm_import")

REQUIRED_COLUMNS = ("min_value", "max_value", "percentile", "classification")
OPTIONAL_COLUMNS = ("category", "iq")


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _parse_row(line: int, record: Dict[str, str]) -> Dict[str, Any]:
    try:
        min_value = float(record["min_value"])
        max_value = float(record["max_value"])
        percentile = None if _blank(record["percentile"]) else float(record["percentile"])
        iq = None if _blank(record.get("iq")) else int(record["iq"])
    except ValueError as exc:
        raise ValidationError(ImportMessages.INVALID_ROW.format(line=line, reason=exc)) from exc
    if min_value > max_value:
        raise ValidationError(ImportMessages.INVALID_ROW.format(line=line, reason="min_value > max_value"))
    classification = (record["classification"] or "").strip()
    if not classification:
        raise ValidationError(ImportMessages.INVALID_ROW.format(line=line, reason="classification"))
    category = record.get("category")
    return {
        "min_value": min_value,
        "max_value": max_value,
        "percentile": percentile,
        "classification": classification,
        "category": None if _blank(category) else category.strip(),
        "iq": iq,
    }


def parse_rows(content: str) -> List[Dict[str, Any]]:
    reader = csv.DictReader(content.splitlines())
    if not reader.fieldnames or not set(REQUIRED_COLUMNS) <= set(reader.fieldnames):
        raise ValidationError(ImportMessages.INVALID_HEADER.format(required=",".join(REQUIRED_COLUMNS)))
    # line 1 is the header
    rows = [_parse_row(line, record) for line, record in enumerate(reader, start=2)]
    if not rows:
        raise ValidationError(ImportMessages.EMPTY_FILE)
    return rows


def import_table(
    db: Session,
    test_type: TestType,
    name: str,
    content: str,
    *,
    version: str = "1.0",
    criterion: str | None = None,
    reference_curve: str | None = None,
    evaluation_subtype: str | None = None,
    replace: bool = False,
) -> NormativeTable:
    """Create a table with the CSV rows; ``replace`` deactivates an active table of the same version."""
    rows = parse_rows(content)
    repo = NormativeRepository(db)
    existing = repo.find_active_version(test_type.value, name, version)
    if existing is not None:
        if not replace:
            raise ValidationError(
                ImportMessages.DUPLICATE_TABLE.format(name=name, version=version, test_type=test_type.value),
                detail={"table_id": existing.id},
            )
        repo.deactivate(existing.id)

    table = repo.add_table(
        NormativeTable(
            test_type=test_type.value,
            name=name,
            version=version,
            criterion=criterion,
            reference_curve=reference_curve,
            evaluation_subtype=evaluation_subtype,
            active=True,
        ),
        rows,
    )
    logger.info(
        "norm_table_imported",
        extra={
            "structured_data": {
                "table_id": table.id,
                "test_type": test_type.value,
                "version": version,
                "rows": len(rows),
                "replaced_table_id": existing.id if existing is not None else None,
                "sha256": sha256(content.encode("utf-8")).hexdigest(),
            }
        },
    )
    return table
