from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from psychnorm.db.repositories.base import Repository
from psychnorm.models import Evaluation, Examinee, User


@dataclass
class ExamineeRepository(Repository[Session]):
    def get(self, examinee_id: int) -> Optional[Examinee]:
        return self.db.get(Examinee, examinee_id)


@dataclass
class UserRepository(Repository[Session]):
    def get(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.execute(select(User).where(User.email == email)).scalar_one_or_none()


@dataclass
class EvaluationRepository(Repository[Session]):
    """Evaluation lookups keyed by examinee and report number."""

    def get(self, evaluation_id: int) -> Optional[Evaluation]:
        return self.db.get(Evaluation, evaluation_id)

    def find_by_report(self, examinee_id: int, report_number: str) -> Optional[Evaluation]:
        stmt = (
            select(Evaluation)
            .where(Evaluation.examinee_id == examinee_id)
            .where(Evaluation.report_number == report_number)
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def latest_for_examinee(self, examinee_id: int) -> Optional[Evaluation]:
        stmt = (
            select(Evaluation)
            .where(Evaluation.examinee_id == examinee_id)
            .order_by(Evaluation.created_at.desc(), Evaluation.id.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def create(
        self,
        *,
        examinee_id: int | None,
        owner_id: int | None,
        report_number: str,
        application_date: date,
        category: str,
        application_mode: str = "Individual",
    ) -> Evaluation:
        evaluation = Evaluation(
            examinee_id=examinee_id,
            owner_id=owner_id,
            report_number=report_number,
            application_date=application_date,
            application_mode=application_mode,
            category=category,
        )
        self.db.add(evaluation)
        self.db.flush()
        return evaluation
