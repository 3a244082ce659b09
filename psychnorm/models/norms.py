from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from psychnorm.db.database import Base

__all__ = ["NormativeTable", "NormativeRow"]


class NormativeTable(Base):
    """Versioned reference table; the name encodes region, age band, education and context."""

    __tablename__ = "normative_tables"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    test_type: Mapped[str] = mapped_column(String(20), index=True)
    name: Mapped[str] = mapped_column(String(255))
    version: Mapped[str] = mapped_column(String(40), default="1.0")
    criterion: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Explicit tags; when null the scorers fall back to keywords in ``name``
    reference_curve: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    evaluation_subtype: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))

    rows: Mapped[list["NormativeRow"]] = relationship(
        back_populates="table",
        cascade="all, delete-orphan",
        order_by="NormativeRow.min_value",
    )


class NormativeRow(Base):
    """Closed raw-score interval ``[min_value, max_value]`` mapped to a percentile.

    ``category`` scopes the row to an education tier, attention modality,
    route, evaluation sub-type or licence context depending on the test.
    """

    __tablename__ = "normative_rows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    table_id: Mapped[int] = mapped_column(ForeignKey("normative_tables.id", ondelete="CASCADE"))
    category: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    min_value: Mapped[float] = mapped_column(Float)
    max_value: Mapped[float] = mapped_column(Float)
    percentile: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    classification: Mapped[str] = mapped_column(String(60))
    iq: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    table: Mapped[NormativeTable] = relationship(back_populates="rows")

    __table_args__ = (
        Index("ix_normative_rows_table_category", "table_id", "category"),
    )
