"""Evaluation resolution, result persistence and the unlinked audit trail."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, List, Mapping, Optional

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from psychnorm.core.config import settings
from psychnorm.core.errors import EvaluationNotFoundError, NotFoundError, ValidationError
from psychnorm.core.logging import get_logger
from psychnorm.core.metrics import inc_counter, timer
from psychnorm.db.database import schema_capabilities
from psychnorm.db.repositories import (
    CalculationLogRepository,
    EvaluationRepository,
    ExamineeRepository,
    StoredResultRow,
    TestResultRepository,
    UserRepository,
)
from psychnorm.i18n.pt_messages import EvaluationMessages, InventoryMessages
from psychnorm.models import Evaluation, EvaluationCategory, LinkageMode, TestType
from psychnorm.scoring.types import ScoreResult
from psychnorm.services.inventory import DeductionOutcome, deduct

__all__ = [
    "PersistOutcome",
    "linked_report_number",
    "anonymous_report_number",
    "resolve_evaluation",
    "persist_result",
    "record_calculation",
    "list_results",
]

logger = get_logger("psychnorm.evaluations", component="evaluations")

RESULTS_TABLE = "test_results"
TABLE_USED_COLUMN = "normative_table_id"
# Postgres "undefined_column"
_UNDEFINED_COLUMN_SQLSTATE = "42703"

Clock = Callable[[], int]


def _epoch_ms() -> int:
    return time.time_ns() // 1_000_000


def linked_report_number(examinee_id: int, *, today: date | None = None, clock: Clock = _epoch_ms) -> str:
    """``LAU-2025-0042-1234``: prefix, year, zero-padded examinee id, last 4 digits of the ms clock."""
    year = (today or date.today()).year
    return f"{settings.report_number_prefix}-{year}-{examinee_id:04d}-{str(clock())[-4:]}"


def anonymous_report_number(*, today: date | None = None, clock: Clock = _epoch_ms) -> str:
    year = (today or date.today()).year
    return f"{settings.anonymous_report_prefix}-{year}-{str(clock())[-6:]}"


@dataclass(slots=True)
class PersistOutcome:
    result_id: int
    stock_exempt: bool
    inventory: Optional[DeductionOutcome]


def _create_or_fetch(
    db: Session,
    repo: EvaluationRepository,
    *,
    examinee_id: int,
    owner_id: int | None,
    report_number: str,
    application_date: date,
) -> Evaluation:
    """Insert under the (examinee, report number) constraint; a concurrent winner is re-read."""
    try:
        with db.begin_nested():
            return repo.create(
                examinee_id=examinee_id,
                owner_id=owner_id,
                report_number=report_number,
                application_date=application_date,
                category=EvaluationCategory.psychological.value,
            )
    except IntegrityError:
        existing = repo.find_by_report(examinee_id, report_number)
        if existing is None:
            raise
        logger.info(
            "evaluation_create_race_resolved",
            extra={"structured_data": {"evaluation_id": existing.id, "report_number": report_number}},
        )
        existing.application_date = application_date
        db.flush()
        return existing


def resolve_evaluation(
    db: Session,
    mode: LinkageMode,
    *,
    examinee_id: int | None,
    owner_id: int | None,
    report_number: str | None = None,
    application_date: date | None = None,
    clock: Clock = _epoch_ms,
) -> Optional[Evaluation]:
    """Find or create the evaluation a result belongs to.

    ``linked`` reuses the evaluation for (examinee, report number), or the
    examinee's most recent one when no number is given, refreshing its date.
    ``anonymous`` always creates a new evaluation. ``unlinked`` returns None.
    """
    applied_on = application_date or date.today()
    repo = EvaluationRepository(db)

    if mode is LinkageMode.unlinked:
        return None

    if mode is LinkageMode.anonymous:
        evaluation = repo.create(
            examinee_id=None,
            owner_id=owner_id,
            report_number=anonymous_report_number(today=applied_on, clock=clock),
            application_date=applied_on,
            category=EvaluationCategory.anonymous.value,
        )
        logger.info(
            "evaluation_created",
            extra={"structured_data": {"evaluation_id": evaluation.id, "mode": mode.value}},
        )
        return evaluation

    if examinee_id is None:
        raise ValidationError(EvaluationMessages.EXAMINEE_REQUIRED)
    if ExamineeRepository(db).get(examinee_id) is None:
        raise NotFoundError(EvaluationMessages.EXAMINEE_NOT_FOUND.format(examinee_id=examinee_id))

    existing = (
        repo.find_by_report(examinee_id, report_number)
        if report_number
        else repo.latest_for_examinee(examinee_id)
    )
    if existing is not None:
        existing.application_date = applied_on
        db.flush()
        logger.info(
            "evaluation_reused",
            extra={"structured_data": {"evaluation_id": existing.id, "report_number": existing.report_number}},
        )
        return existing

    number = report_number or linked_report_number(examinee_id, today=applied_on, clock=clock)
    evaluation = _create_or_fetch(
        db,
        repo,
        examinee_id=examinee_id,
        owner_id=owner_id,
        report_number=number,
        application_date=applied_on,
    )
    logger.info(
        "evaluation_created",
        extra={"structured_data": {"evaluation_id": evaluation.id, "mode": mode.value, "report_number": number}},
    )
    return evaluation


def _is_unknown_column(exc: DBAPIError, column: str) -> bool:
    if getattr(exc.orig, "pgcode", None) == _UNDEFINED_COLUMN_SQLSTATE:
        return column in str(exc.orig)
    message = str(exc.orig).lower()
    return column in message and ("no column named" in message or "unknown column" in message or "no such column" in message)


def _insert_result(db: Session, values: dict[str, Any]) -> int:
    repo = TestResultRepository(db)
    bind = db.connection()
    if not schema_capabilities.has_column(bind, RESULTS_TABLE, TABLE_USED_COLUMN):
        values.pop(TABLE_USED_COLUMN, None)
    try:
        with db.begin_nested():
            return repo.insert(values)
    except DBAPIError as exc:
        if TABLE_USED_COLUMN not in values or not _is_unknown_column(exc, TABLE_USED_COLUMN):
            raise
        logger.warning(
            "result_insert_column_missing",
            extra={"structured_data": {"column": TABLE_USED_COLUMN, "error": str(exc.orig)}},
        )
        schema_capabilities.mark_missing(bind, RESULTS_TABLE, TABLE_USED_COLUMN)
        values.pop(TABLE_USED_COLUMN)
        with db.begin_nested():
            return repo.insert(values)


def persist_result(
    db: Session,
    *,
    test_type: TestType,
    evaluation_id: int,
    raw_input: Mapping[str, Any],
    result: ScoreResult,
    should_deduct_stock: bool,
    owner_id: int | None,
    table_id: int | None,
) -> PersistOutcome:
    """Replace the stored result for (evaluation, test type) and settle stock.

    Owners whose role is listed in ``stock_exempt_roles`` never consume stock,
    whatever the caller asked for, and nothing is deducted without an owner.
    Inventory shortfalls are reported, not raised.
    """
    with timer("evaluations.persist_result"):
        results = TestResultRepository(db)
        replaced = results.delete_for(evaluation_id, test_type.value)
        result_id = _insert_result(
            db,
            {
                "evaluation_id": evaluation_id,
                "test_type": test_type.value,
                "raw_input": dict(raw_input),
                "raw_score": result.raw_score,
                "percentile": result.percentile,
                "classification": result.classification,
                "components": result.components_payload(),
                TABLE_USED_COLUMN: table_id,
            },
        )

        owner = UserRepository(db).get(owner_id) if owner_id is not None else None
        exempt = owner is not None and owner.role in settings.stock_exempt_roles
        inventory: DeductionOutcome | None = None
        if exempt:
            logger.info(
                "stock_deduction_exempt",
                extra={"structured_data": {"owner_id": owner_id, "role": owner.role if owner else None}},
            )
            inventory = DeductionOutcome(success=False, message=InventoryMessages.EXEMPT_ROLE)
        elif should_deduct_stock and owner_id is not None:
            inventory = deduct(db, test_type, evaluation_id, owner_id)

    logger.info(
        "result_persisted",
        extra={
            "structured_data": {
                "evaluation_id": evaluation_id,
                "test_type": test_type.value,
                "result_id": result_id,
                "replaced": replaced,
                "stock_deducted": bool(inventory and inventory.success),
            }
        },
    )
    return PersistOutcome(result_id=result_id, stock_exempt=exempt, inventory=inventory)


def record_calculation(
    db: Session,
    *,
    owner_id: int | None,
    test_type: TestType,
    raw_input: Mapping[str, Any],
    result: ScoreResult,
    table_id: int | None,
    client_address: str | None,
) -> bool:
    """Best-effort audit entry for an unlinked calculation; failures are logged and counted."""
    try:
        with db.begin_nested():
            CalculationLogRepository(db).add(
                owner_id=owner_id,
                test_type=test_type.value,
                raw_input=raw_input,
                result=result.to_dict(),
                normative_table_id=table_id,
                client_address=client_address,
            )
        return True
    except SQLAlchemyError as exc:
        inc_counter("calculation.audit.failures")
        logger.warning(
            "calculation_audit_failed",
            extra={"structured_data": {"test_type": test_type.value, "error": str(exc)}},
        )
        return False


def list_results(db: Session, evaluation_id: int) -> List[StoredResultRow]:
    if EvaluationRepository(db).get(evaluation_id) is None:
        raise EvaluationNotFoundError(EvaluationMessages.EVALUATION_NOT_FOUND.format(evaluation_id=evaluation_id))
    with_table = schema_capabilities.has_column(db.connection(), RESULTS_TABLE, TABLE_USED_COLUMN)
    return TestResultRepository(db).list_for_evaluation(evaluation_id, with_table=with_table)
