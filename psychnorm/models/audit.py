from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from psychnorm.db.database import Base

__all__ = ["CalculationLog"]


class CalculationLog(Base):
    """Audit trail for calculations that were not attached to an evaluation."""

    __tablename__ = "calculation_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    test_type: Mapped[str] = mapped_column(String(20))
    raw_input: Mapped[dict | None] = mapped_column(JSON)
    result: Mapped[dict | None] = mapped_column(JSON)
    normative_table_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    client_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))
