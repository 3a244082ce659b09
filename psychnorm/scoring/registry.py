"""Thread-safe lookup table from test type to scorer."""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from threading import RLock
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, Mapping

from psychnorm.core.errors import UnsupportedTestTypeError
from psychnorm.i18n.pt_messages import ScoringMessages
from psychnorm.models.enums import TestType

if TYPE_CHECKING:  # pragma: no cover - typing only
    from psychnorm.scoring.scorers.base import Scorer

__all__ = [
    "ScorerRegistry",
    "register_scorer",
    "get_scorer",
    "list_scorers",
    "snapshot_scorers",
    "ensure_default_scorers_loaded",
]

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ScorerRegistry:
    _scorers: Dict[TestType, "Scorer"] = field(default_factory=dict)
    _lock: RLock = field(default_factory=RLock)

    def register(self, scorer: "Scorer", *, allow_replace: bool = False) -> None:
        with self._lock:
            if not allow_replace and scorer.test_type in self._scorers:
                raise ValueError(
                    f"Scorer for '{scorer.test_type.value}' already registered; "
                    "set allow_replace=True to override"
                )
            self._scorers[scorer.test_type] = scorer

    def get(self, test_type: TestType) -> "Scorer":
        with self._lock:
            scorer = self._scorers.get(test_type)
        if scorer is None:
            raise UnsupportedTestTypeError(
                ScoringMessages.SCORER_NOT_REGISTERED.format(code=test_type.value),
                detail={"available": self.list()},
            )
        return scorer

    def list(self) -> list[str]:
        with self._lock:
            return sorted(t.value for t in self._scorers)

    def snapshot(self) -> Mapping[TestType, "Scorer"]:
        with self._lock:
            return MappingProxyType(dict(self._scorers))


_REGISTRY = ScorerRegistry()
_DEFAULTS_LOADED = False


def ensure_default_scorers_loaded() -> None:
    """Import the built-in scorers, which register themselves on import."""

    global _DEFAULTS_LOADED
    if _DEFAULTS_LOADED:
        return
    importlib.import_module("psychnorm.scoring.scorers")
    _DEFAULTS_LOADED = True
    logger.debug("default scorers loaded: %s", ", ".join(_REGISTRY.list()))


def register_scorer(scorer: "Scorer", *, allow_replace: bool = False) -> None:
    _REGISTRY.register(scorer, allow_replace=allow_replace)


def get_scorer(test_type: TestType) -> "Scorer":
    ensure_default_scorers_loaded()
    return _REGISTRY.get(test_type)


def list_scorers() -> list[str]:
    ensure_default_scorers_loaded()
    return _REGISTRY.list()


def snapshot_scorers() -> Mapping[TestType, "Scorer"]:
    ensure_default_scorers_loaded()
    return _REGISTRY.snapshot()
