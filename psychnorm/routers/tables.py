from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from psychnorm.core.errors import UnsupportedTestTypeError
from psychnorm.db.database import RepositoryProvider, get_db
from psychnorm.i18n.pt_messages import ScoringMessages
from psychnorm.models import TestType
from psychnorm.schemas.calculation import CalculateRequest, CalculateResponse
from psychnorm.schemas.tables import (
    NormativeTableOut,
    ProfileIn,
    SuggestionsOut,
    TableSummaryOut,
)
from psychnorm.services.calculation import calculate
from psychnorm.services.security import get_owner
from psychnorm.services.selector import suggest_tables

router = APIRouter(prefix="/tables", tags=["tables"])


def parse_test_type(value: str) -> TestType:
    try:
        return TestType.parse(value)
    except ValueError:
        raise UnsupportedTestTypeError(
            ScoringMessages.UNSUPPORTED_TEST_TYPE.format(test_type=value),
            detail={"available": [t.value for t in TestType]},
        )


@router.get("", response_model=list[TableSummaryOut])
def list_tables(db: Session = Depends(get_db)):
    return RepositoryProvider(db).norms.list_all_active()


@router.get("/{test_type}", response_model=list[NormativeTableOut])
def list_tables_for_type(test_type: str, db: Session = Depends(get_db)):
    return RepositoryProvider(db).norms.list_active_with_rows(parse_test_type(test_type).value)


@router.post("/suggestions/{test_type}", response_model=SuggestionsOut)
def suggestions(test_type: str, profile: ProfileIn, db: Session = Depends(get_db)):
    kind = parse_test_type(test_type)
    candidates, warnings = suggest_tables(db, kind, profile.to_profile())
    return {
        "test_type": kind.value,
        "suggestions": [c.to_dict() for c in candidates],
        "warnings": [w.to_dict() for w in warnings],
    }


@router.post("/{test_type}/calculate", response_model=CalculateResponse)
def calculate_result(
    test_type: str,
    payload: CalculateRequest,
    request: Request,
    db: Session = Depends(get_db),
    authorization: str | None = Header(default=None),
):
    owner = get_owner(authorization, db)
    kind = parse_test_type(test_type)
    client_address = request.client.host if request.client else None
    try:
        outcome = calculate(db, kind, payload.to_request(client_address), owner)
    except Exception:
        db.rollback()
        raise
    return outcome.to_dict()
