from __future__ import annotations

"""Domain-specific exception hierarchy for the scoring service."""

from typing import Any

__all__ = [
    "DomainError",
    "ValidationError",
    "UnsupportedTestTypeError",
    "NotFoundError",
    "NormativeTableNotFoundError",
    "EvaluationNotFoundError",
    "TableSelectionError",
    "PersistenceError",
    "ConfigurationError",
]


class DomainError(Exception):
    """Base class for recoverable domain-level errors."""

    status_code: int = 400
    error_code: str = "domain_error"
    default_message: str = "Domain error"

    def __init__(
        self,
        message: str | None = None,
        *,
        detail: Any | None = None,
        status_code: int | None = None,
    ) -> None:
        final_message = message or self.default_message
        super().__init__(final_message)
        self.message = final_message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class ValidationError(DomainError, ValueError):
    """Raised when caller-provided data fails validation."""

    error_code = "validation_error"
    default_message = "Dados inválidos"
    status_code = 400


class UnsupportedTestTypeError(ValidationError):
    """Raised when a test type has no scorer registered."""

    error_code = "unsupported_test_type"
    default_message = "Tipo de teste não suportado"


class NotFoundError(DomainError):
    """Base class for missing domain resources."""

    error_code = "not_found"
    status_code = 404
    default_message = "Recurso não encontrado"


class NormativeTableNotFoundError(NotFoundError):
    """Raised when a requested normative table is missing, inactive or of another type."""

    error_code = "normative_table_not_found"
    default_message = "Tabela normativa não encontrada"


class EvaluationNotFoundError(NotFoundError):
    error_code = "evaluation_not_found"
    default_message = "Avaliação não encontrada"


class TableSelectionError(NotFoundError):
    """Raised when no active table can be selected; ``detail`` carries the suggestions."""

    error_code = "no_suitable_table"
    default_message = "Nenhuma tabela normativa adequada encontrada"


class PersistenceError(DomainError):
    """Raised when a linked result cannot be saved.

    ``detail`` carries the computed result and ``saved: False`` so callers
    still receive the score.
    """

    error_code = "persistence_failed"
    status_code = 500
    default_message = "Erro ao salvar resultado"


class ConfigurationError(DomainError):
    """Raised when server-side configuration is invalid or incomplete."""

    error_code = "configuration_error"
    status_code = 500
    default_message = "Configuração do sistema inválida"
