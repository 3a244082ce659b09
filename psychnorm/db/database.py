from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import RLock
from time import perf_counter
from typing import TYPE_CHECKING, Iterator

from sqlalchemy import Engine, create_engine, inspect
from sqlalchemy.engine import Connection, URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from psychnorm.core.config import settings
from psychnorm.core.metrics import inc_counter, metrics_registry, observe_histogram

logger = logging.getLogger(__name__)

if TYPE_CHECKING:  # pragma: no cover - type checking helpers only
    from psychnorm.db.repositories import (
        CalculationLogRepository,
        EvaluationRepository,
        ExamineeRepository,
        NormativeRepository,
        StockRepository,
        TestResultRepository,
        UserRepository,
    )


class Base(DeclarativeBase):
    pass


SESSION_DURATION_BUCKETS: tuple[float, ...] = (2.0, 5.0, 10.0, 25.0, 50.0, 100.0)
TRANSACTION_DURATION_BUCKETS: tuple[float, ...] = (5.0, 10.0, 25.0, 50.0, 100.0, 250.0, 500.0)


@dataclass(frozen=True, slots=True)
class DatabaseGateway:
    """Encapsulates engine and session factory lifecycle."""

    engine: Engine
    session_factory: sessionmaker[Session]

    @contextmanager
    def session(self) -> Iterator[Session]:
        started = perf_counter()
        inc_counter("db.session.opens")
        session: Session = self.session_factory()
        try:
            yield session
        finally:
            elapsed_ms = (perf_counter() - started) * 1000.0
            metrics_registry.record("db.session.duration", elapsed_ms)
            observe_histogram("db.session.duration", elapsed_ms, buckets=SESSION_DURATION_BUCKETS)
            session.close()

    @contextmanager
    def transactional(self) -> Iterator[Session]:
        session: Session = self.session_factory()
        started = perf_counter()
        inc_counter("db.transaction.opens")
        try:
            yield session
            session.commit()
            inc_counter("db.transaction.commits")
        except SQLAlchemyError as e:
            session.rollback()
            inc_counter("db.transaction.rollbacks")
            logger.error("transaction_rollback", extra={"structured_data": {"error": str(e)}})
            raise
        finally:
            elapsed_ms = (perf_counter() - started) * 1000.0
            metrics_registry.record("db.transaction.duration", elapsed_ms)
            observe_histogram("db.transaction.duration", elapsed_ms, buckets=TRANSACTION_DURATION_BUCKETS)
            session.close()


def build_engine(database_url: str) -> Engine:
    """Create an engine with pool settings appropriate to the backend.

    In-memory SQLite gets a ``StaticPool`` so every session shares the one
    connection holding the data.
    """
    url: URL = make_url(database_url)
    kwargs: dict[str, object] = {"echo": False, "future": True}
    pool_kwargs: dict[str, object] = {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout,
        "pool_recycle": settings.db_pool_recycle,
        "pool_pre_ping": settings.db_pool_pre_ping,
    }

    if url.get_backend_name() == "sqlite":
        connect_args: dict[str, object] = {"check_same_thread": False}
        database = url.database or ""
        if database.startswith("file:"):
            connect_args["uri"] = True
        kwargs["connect_args"] = connect_args
        if database in ("", ":memory:", "file::memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            kwargs["poolclass"] = QueuePool
            kwargs.update(pool_kwargs)
    else:
        kwargs.update(pool_kwargs)

    return create_engine(database_url, **kwargs)


engine: Engine = build_engine(settings.database_url)
SessionLocal: sessionmaker[Session] = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
database_gateway = DatabaseGateway(engine=engine, session_factory=SessionLocal)


def get_db():
    with database_gateway.session() as session:
        yield session


@contextmanager
def transactional_session() -> Iterator[Session]:
    """Context manager that manages commit/rollback for explicit transactions."""

    with database_gateway.transactional() as session:
        yield session


@dataclass(slots=True)
class SchemaCapabilities:
    """Optional columns discovered on the live schema, resolved once per engine.

    Deployments that predate the "normative table used" column on
    ``test_results`` keep working: inserts omit the column until a refresh
    observes it.
    """

    _columns: dict[tuple[int, str], frozenset[str]] = field(default_factory=dict)
    _lock: RLock = field(default_factory=RLock)

    def _key(self, bind: Engine | Connection, table_name: str) -> tuple[int, str]:
        target = bind.engine if isinstance(bind, Connection) else bind
        return id(target), table_name

    def columns(self, bind: Engine | Connection, table_name: str) -> frozenset[str]:
        key = self._key(bind, table_name)
        with self._lock:
            cached = self._columns.get(key)
            if cached is not None:
                return cached
        names = frozenset(col["name"] for col in inspect(bind).get_columns(table_name))
        with self._lock:
            self._columns[key] = names
        logger.info(
            "schema_capabilities_resolved",
            extra={"structured_data": {"table": table_name, "columns": sorted(names)}},
        )
        return names

    def has_column(self, bind: Engine | Connection, table_name: str, column: str) -> bool:
        return column in self.columns(bind, table_name)

    def mark_missing(self, bind: Engine | Connection, table_name: str, column: str) -> None:
        key = self._key(bind, table_name)
        current = self.columns(bind, table_name)
        with self._lock:
            self._columns[key] = frozenset(name for name in current if name != column)

    def refresh(self, bind: Engine | Connection | None = None) -> None:
        with self._lock:
            if bind is None:
                self._columns.clear()
                return
            target = id(bind.engine if isinstance(bind, Connection) else bind)
            for key in [k for k in self._columns if k[0] == target]:
                del self._columns[key]


schema_capabilities = SchemaCapabilities()


@dataclass(slots=True)
class RepositoryProvider:
    """Factory for repository instances bound to a specific session."""

    db: Session

    @property
    def norms(self) -> "NormativeRepository":
        from psychnorm.db.repositories import NormativeRepository

        return NormativeRepository(self.db)

    @property
    def evaluations(self) -> "EvaluationRepository":
        from psychnorm.db.repositories import EvaluationRepository

        return EvaluationRepository(self.db)

    @property
    def results(self) -> "TestResultRepository":
        from psychnorm.db.repositories import TestResultRepository

        return TestResultRepository(self.db)

    @property
    def stock(self) -> "StockRepository":
        from psychnorm.db.repositories import StockRepository

        return StockRepository(self.db)

    @property
    def examinees(self) -> "ExamineeRepository":
        from psychnorm.db.repositories import ExamineeRepository

        return ExamineeRepository(self.db)

    @property
    def users(self) -> "UserRepository":
        from psychnorm.db.repositories import UserRepository

        return UserRepository(self.db)

    @property
    def calculation_logs(self) -> "CalculationLogRepository":
        from psychnorm.db.repositories import CalculationLogRepository

        return CalculationLogRepository(self.db)


__all__ = [
    "Base",
    "build_engine",
    "database_gateway",
    "engine",
    "SessionLocal",
    "get_db",
    "transactional_session",
    "SchemaCapabilities",
    "schema_capabilities",
    "RepositoryProvider",
]
