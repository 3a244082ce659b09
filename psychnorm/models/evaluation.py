from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Date, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from psychnorm.db.database import Base
from psychnorm.models.enums import EvaluationCategory

__all__ = ["Examinee", "Evaluation", "TestResult"]


class Examinee(Base):
    __tablename__ = "examinees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    birth_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    education: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))

    evaluations: Mapped[list["Evaluation"]] = relationship(back_populates="examinee")


class Evaluation(Base):
    """Container for the test results of one assessment; anonymous when ``examinee_id`` is null."""

    __tablename__ = "evaluations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    examinee_id: Mapped[Optional[int]] = mapped_column(ForeignKey("examinees.id"), nullable=True, index=True)
    owner_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    report_number: Mapped[str] = mapped_column(String(40))
    application_date: Mapped[date] = mapped_column(Date)
    application_mode: Mapped[str] = mapped_column(String(30), default="Individual")
    category: Mapped[str] = mapped_column(String(30), default=EvaluationCategory.psychological.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    examinee: Mapped[Optional[Examinee]] = relationship(back_populates="evaluations")
    results: Mapped[list["TestResult"]] = relationship(
        back_populates="evaluation",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("examinee_id", "report_number", name="uq_evaluation_examinee_report"),
    )

    @property
    def is_anonymous(self) -> bool:
        return self.category == EvaluationCategory.anonymous.value


class TestResult(Base):
    """One stored score per (evaluation, test type); re-scoring replaces it."""

    __test__ = False
    __tablename__ = "test_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    evaluation_id: Mapped[int] = mapped_column(ForeignKey("evaluations.id", ondelete="CASCADE"))
    test_type: Mapped[str] = mapped_column(String(20))
    raw_input: Mapped[dict | None] = mapped_column(JSON)
    raw_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    percentile: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    classification: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    components: Mapped[dict | None] = mapped_column(JSON)
    normative_table_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("normative_tables.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))

    evaluation: Mapped[Evaluation] = relationship(back_populates="results")

    __table_args__ = (
        UniqueConstraint("evaluation_id", "test_type", name="uq_test_result_evaluation_type"),
    )
