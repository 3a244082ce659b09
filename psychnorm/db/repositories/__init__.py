from psychnorm.db.repositories.audit import CalculationLogRepository
from psychnorm.db.repositories.evaluations import (
    EvaluationRepository,
    ExamineeRepository,
    UserRepository,
)
from psychnorm.db.repositories.normative import NormativeRepository, TableSummary
from psychnorm.db.repositories.results import StoredResultRow, TestResultRepository
from psychnorm.db.repositories.stock import StockRepository

__all__ = [
    "CalculationLogRepository",
    "EvaluationRepository",
    "ExamineeRepository",
    "UserRepository",
    "NormativeRepository",
    "TableSummary",
    "StoredResultRow",
    "TestResultRepository",
    "StockRepository",
]
