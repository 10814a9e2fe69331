"""
SafeCfg — Canonical Exceptions (v1)

Este módulo define as exceções tipadas do SafeCfg.

Objetivo:
- Separar falhas de uso/estrutura (exceções) de falhas de conteúdo
  (issues agregados em ValidationResult)
- Carregar sempre um `code` estável e `details` estruturados
- Evitar ValueError/RuntimeError genéricos em pontos críticos

Regras:
- Erros de schema são levantados antes de qualquer validação.
- Falhas de conteúdo de configuração nunca viram exceção aqui; elas são
  coletadas pelo engine de validação.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .errors import ValidationIssue


class SafeCfgError(Exception):
    """Base class para exceções do SafeCfg.

    Importante:
    - `code` é um identificador estável (não é texto livre)
    - `details` deve conter apenas dados serializáveis
    """

    def __init__(
        self,
        message: str,
        code: str = "SAFECFG_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details: Dict[str, Any] = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": dict(self.details),
        }


# ---------------------------------------------------------------------------
# Compile-time
# ---------------------------------------------------------------------------

class SchemaError(SafeCfgError):
    """Schema malformado, dependência circular ou profundidade excedida.

    Sempre fatal: nenhuma validação roda com um schema inválido.
    """

    def __init__(
        self,
        message: str,
        code: str = "INVALID_SCHEMA",
        details: Optional[Dict[str, Any]] = None,
        path: Optional[str] = None,
    ) -> None:
        merged = dict(details or {})
        if path is not None:
            merged.setdefault("path", path)
        super().__init__(message, code, merged)
        self.path = path


# ---------------------------------------------------------------------------
# Fontes
# ---------------------------------------------------------------------------

class SourceLoadError(SafeCfgError):
    """Falha de um loader de fonte, com o nome da fonte preservado.

    Fatal apenas quando a fonte foi declarada `required`.
    """

    def __init__(self, source: str, original: BaseException) -> None:
        super().__init__(
            f"Failed to load configuration from source: {source}",
            "SOURCE_LOAD_FAILED",
            {
                "source": source,
                "original_error": str(original) or original.__class__.__name__,
                "exception_class": original.__class__.__name__,
            },
        )
        self.source = source
        self.original = original


# ---------------------------------------------------------------------------
# Validação (opt-in)
# ---------------------------------------------------------------------------

class SafeCfgValidationError(SafeCfgError):
    """Levantada explicitamente via `ConfigResult.raise_for_errors()`."""

    def __init__(self, errors: "List[ValidationIssue]", message: Optional[str] = None) -> None:
        super().__init__(
            message or f"Configuration validation failed with {len(errors)} error(s)",
            "VALIDATION_FAILED",
            {"errors": [e.to_dict() for e in errors]},
        )
        self.errors = list(errors)
