from __future__ import annotations

from .audit import CalculationLog
from .enums import EvaluationCategory, LinkageMode, MovementType, TestType
from .evaluation import Evaluation, Examinee, TestResult
from .norms import NormativeRow, NormativeTable
from .stock import StockItem, StockMovement
from .user import User

__all__ = [
    "TestType",
    "LinkageMode",
    "MovementType",
    "EvaluationCategory",
    "NormativeTable",
    "NormativeRow",
    "Examinee",
    "Evaluation",
    "TestResult",
    "StockItem",
    "StockMovement",
    "User",
    "CalculationLog",
]
