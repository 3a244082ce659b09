import os

os.environ.setdefault("JWT_SECRET_KEY", "psychnorm-test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from psychnorm.core.metrics import metrics_registry
from psychnorm.db.database import Base, build_engine, get_db, schema_capabilities
from psychnorm.models import Examinee, NormativeRow, NormativeTable, StockItem, User
from psychnorm.services.security import create_access_token


@dataclass
class Seeder:
    db: Session

    @staticmethod
    def row(
        min_value: float,
        max_value: float,
        percentile: Optional[float],
        classification: str,
        category: Optional[str] = None,
        iq: Optional[int] = None,
    ) -> dict:
        return {
            "min_value": min_value,
            "max_value": max_value,
            "percentile": percentile,
            "classification": classification,
            "category": category,
            "iq": iq,
        }

    def user(self, *, role: str = "psicologo", email: str | None = None) -> User:
        count = self.db.query(User).count()
        user = User(name=f"Psicóloga {count + 1}", email=email or f"user{count + 1}@clinica.test", role=role)
        self.db.add(user)
        self.db.commit()
        return user

    def examinee(
        self,
        *,
        name: str = "Paciente Teste",
        birth_date: date | None = None,
        education: str | None = None,
    ) -> Examinee:
        examinee = Examinee(name=name, birth_date=birth_date, education=education)
        self.db.add(examinee)
        self.db.commit()
        return examinee

    def table(
        self,
        test_type: str,
        name: str,
        rows: Iterable[dict] = (),
        *,
        active: bool = True,
        reference_curve: str | None = None,
        evaluation_subtype: str | None = None,
    ) -> NormativeTable:
        table = NormativeTable(
            test_type=test_type,
            name=name,
            version="1.0",
            active=active,
            reference_curve=reference_curve,
            evaluation_subtype=evaluation_subtype,
        )
        table.rows = [NormativeRow(**values) for values in rows]
        self.db.add(table)
        self.db.commit()
        return table

    def stock_item(self, name: str, quantity: int, *, minimum_quantity: int = 0, active: bool = True) -> StockItem:
        item = StockItem(name=name, quantity=quantity, minimum_quantity=minimum_quantity, active=active)
        self.db.add(item)
        self.db.commit()
        return item


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics_registry.reset()
    yield


@pytest.fixture()
def engine():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    schema_capabilities.refresh()
    yield engine
    schema_capabilities.refresh()
    engine.dispose()


@pytest.fixture()
def db(engine):
    factory = sessionmaker(bind=engine, autoflush=False, future=True)
    session = factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def seed(db) -> Seeder:
    return Seeder(db)


@pytest.fixture()
def client(db):
    from psychnorm.main import app

    app.dependency_overrides[get_db] = lambda: db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_header(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


@pytest.fixture()
def auth():
    return auth_header
