from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from psychnorm.db.database import RepositoryProvider, get_db
from psychnorm.schemas.stock import StockItemOut
from psychnorm.services.security import get_current_user

router = APIRouter(prefix="/stock", tags=["stock"])


@router.get("", response_model=list[StockItemOut])
def list_stock(db: Session = Depends(get_db), authorization: str | None = Header(default=None)):
    get_current_user(authorization, db)
    return RepositoryProvider(db).stock.list_active()


@router.get("/low", response_model=list[StockItemOut])
def list_low_stock(db: Session = Depends(get_db), authorization: str | None = Header(default=None)):
    """Active items at or below their minimum quantity."""
    get_current_user(authorization, db)
    return RepositoryProvider(db).stock.list_low_stock()
