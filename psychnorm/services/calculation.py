"""End-to-end calculation: choose a table, score, then link and persist.

Linked saves are all-or-nothing: the evaluation upsert, the result replace
and the stock movement share one savepoint and commit together. When that
fails the caller still receives the computed score inside the
``PersistenceError`` detail. Anonymous saves degrade to ``saved=False``;
unlinked calculations only leave a best-effort audit entry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from psychnorm.core.errors import NormativeTableNotFoundError, PersistenceError
from psychnorm.core.logging import correlation_context, get_logger
from psychnorm.core.metrics import inc_counter, measure_time, timer
from psychnorm.db.repositories import NormativeRepository
from psychnorm.i18n.pt_messages import EvaluationMessages, SelectionMessages
from psychnorm.models import LinkageMode, TestType
from psychnorm.scoring.lookup import RepositoryNormLookup
from psychnorm.scoring.registry import get_scorer
from psychnorm.scoring.scorers.base import ScoringContext
from psychnorm.scoring.types import ScoreResult, TableRef
from psychnorm.services.evaluations import persist_result, record_calculation, resolve_evaluation
from psychnorm.services.inventory import DeductionOutcome
from psychnorm.services.profile import ExamineeProfile
from psychnorm.services.security import OwnerContext
from psychnorm.services.selector import Candidate, SelectionWarning, select_table, selection_warnings

__all__ = ["EvaluationContext", "CalculationRequest", "CalculationOutcome", "calculate"]

logger = get_logger("psychnorm.calculation", component="calculation")


@dataclass(frozen=True, slots=True)
class EvaluationContext:
    examinee_id: Optional[int] = None
    report_number: Optional[str] = None
    application_date: Optional[date] = None


@dataclass(slots=True)
class CalculationRequest:
    raw_input: Mapping[str, Any]
    profile: Optional[ExamineeProfile] = None
    table_id: Optional[int] = None
    linkage_mode: LinkageMode = LinkageMode.unlinked
    evaluation: EvaluationContext = field(default_factory=EvaluationContext)
    deduct_stock: bool = True
    client_address: Optional[str] = None


@dataclass(slots=True)
class CalculationOutcome:
    result: ScoreResult
    table_used: str
    table_id: int
    suggestions: List[Candidate] = field(default_factory=list)
    warnings: List[SelectionWarning] = field(default_factory=list)
    evaluation_id: Optional[int] = None
    report_number: Optional[str] = None
    saved: bool = False
    anonymous: bool = False
    inventory: Optional[DeductionOutcome] = None
    stock_exempt: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "result": self.result.to_dict(),
            "table_used": self.table_used,
            "table_id": self.table_id,
            "suggestions": [c.to_dict() for c in self.suggestions],
            "warnings": [w.to_dict() for w in self.warnings],
            "evaluation_id": self.evaluation_id,
            "report_number": self.report_number,
            "saved": self.saved,
            "anonymous": self.anonymous,
            "inventory": self.inventory.to_dict() if self.inventory else None,
            "stock_exempt": self.stock_exempt,
        }


def _resolve_table(
    db: Session,
    test_type: TestType,
    request: CalculationRequest,
) -> tuple[TableRef, List[Candidate], List[SelectionWarning]]:
    profile = request.profile or ExamineeProfile()
    if request.table_id is not None:
        table = NormativeRepository(db).get_active_table(request.table_id, test_type.value)
        if table is None:
            raise NormativeTableNotFoundError(
                SelectionMessages.TABLE_NOT_FOUND.format(table_id=request.table_id, test_type=test_type.value),
                detail={"table_id": request.table_id, "test_type": test_type.value},
            )
        return _table_ref(table), [], selection_warnings(profile)

    selection = select_table(db, test_type, profile)
    table = NormativeRepository(db).get_active_table(selection.table_id, test_type.value)
    return _table_ref(table), selection.candidates, selection.warnings


def _table_ref(table) -> TableRef:
    return TableRef(
        id=table.id,
        name=table.name,
        reference_curve=table.reference_curve,
        evaluation_subtype=table.evaluation_subtype,
    )


def _score(db: Session, test_type: TestType, table: TableRef, request: CalculationRequest) -> ScoreResult:
    scorer = get_scorer(test_type)
    context = ScoringContext(
        lookup=RepositoryNormLookup(db),
        table=table,
        education=request.profile.education if request.profile else None,
    )
    with timer(f"scoring.{test_type.value}"):
        return scorer.score(context, request.raw_input)


def _save(
    db: Session,
    test_type: TestType,
    request: CalculationRequest,
    result: ScoreResult,
    table: TableRef,
    owner: Optional[OwnerContext],
    outcome: CalculationOutcome,
) -> None:
    owner_id = owner.owner_id if owner else None
    with db.begin_nested():
        evaluation = resolve_evaluation(
            db,
            request.linkage_mode,
            examinee_id=request.evaluation.examinee_id,
            owner_id=owner_id,
            report_number=request.evaluation.report_number,
            application_date=request.evaluation.application_date,
        )
        persisted = persist_result(
            db,
            test_type=test_type,
            evaluation_id=evaluation.id,
            raw_input=request.raw_input,
            result=result,
            should_deduct_stock=request.deduct_stock and request.linkage_mode is LinkageMode.linked,
            owner_id=owner_id,
            table_id=table.id,
        )
    db.commit()
    outcome.evaluation_id = evaluation.id
    outcome.report_number = evaluation.report_number
    outcome.inventory = persisted.inventory
    outcome.stock_exempt = persisted.stock_exempt
    outcome.saved = True


@measure_time("calculation.calculate", histogram=True)
def calculate(
    db: Session,
    test_type: TestType,
    request: CalculationRequest,
    owner: Optional[OwnerContext] = None,
) -> CalculationOutcome:
    with correlation_context():
        return _calculate(db, test_type, request, owner)


def _calculate(
    db: Session,
    test_type: TestType,
    request: CalculationRequest,
    owner: Optional[OwnerContext],
) -> CalculationOutcome:
    table, suggestions, warnings = _resolve_table(db, test_type, request)
    result = _score(db, test_type, table, request)
    outcome = CalculationOutcome(
        result=result,
        table_used=table.name,
        table_id=table.id,
        suggestions=suggestions,
        warnings=warnings,
        anonymous=request.linkage_mode is LinkageMode.anonymous,
    )
    log_fields = {
        "test_type": test_type.value,
        "table_id": table.id,
        "mode": request.linkage_mode.value,
        "owner_id": owner.owner_id if owner else None,
    }

    if request.linkage_mode is LinkageMode.unlinked:
        record_calculation(
            db,
            owner_id=owner.owner_id if owner else None,
            test_type=test_type,
            raw_input=request.raw_input,
            result=result,
            table_id=table.id,
            client_address=request.client_address,
        )
        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            inc_counter("calculation.audit.failures")
            logger.warning("calculation_audit_failed", extra={"structured_data": {**log_fields, "error": str(exc)}})
        logger.info("calculation_completed", extra={"structured_data": {**log_fields, "saved": False}})
        return outcome

    try:
        _save(db, test_type, request, result, table, owner, outcome)
    except SQLAlchemyError as exc:
        db.rollback()
        inc_counter("calculation.save.failures")
        logger.exception("calculation_save_failed", extra={"structured_data": {**log_fields, "error": str(exc)}})
        if request.linkage_mode is LinkageMode.linked:
            raise PersistenceError(
                EvaluationMessages.SAVE_FAILED,
                detail={
                    "result": result.to_dict(),
                    "table_used": table.name,
                    "table_id": table.id,
                    "saved": False,
                },
            ) from exc
        return outcome

    logger.info(
        "calculation_completed",
        extra={"structured_data": {**log_fields, "saved": True, "evaluation_id": outcome.evaluation_id}},
    )
    return outcome
