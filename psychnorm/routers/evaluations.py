from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from psychnorm.db.database import get_db
from psychnorm.schemas.evaluation import StoredResultOut
from psychnorm.services.evaluations import list_results
from psychnorm.services.security import get_current_user

router = APIRouter(prefix="/evaluations", tags=["evaluations"])


@router.get("/{evaluation_id}/results", response_model=list[StoredResultOut])
def evaluation_results(
    evaluation_id: int,
    db: Session = Depends(get_db),
    authorization: str | None = Header(default=None),
):
    get_current_user(authorization, db)
    return list_results(db, evaluation_id)
