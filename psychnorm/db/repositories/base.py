from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from sqlalchemy.orm import Session


TSession = TypeVar("TSession", bound=Session)


@dataclass
class Repository(Generic[TSession]):
    """Thin base binding a repository to a SQLAlchemy session."""

    db: TSession

    @property
    def session(self) -> TSession:
        return self.db
