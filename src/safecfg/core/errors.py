"""
SafeCfg — Canonical Issue Structures (v1)

Este módulo define o padrão canônico de erros e avisos de validação do SafeCfg.
Issues são artefatos de domínio e fazem parte do contrato operacional do
sistema, devendo ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis

Nenhum issue carrega o valor literal de um campo marcado como `secret`.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Severidades
# ---------------------------------------------------------------------------

SEVERITY_ERROR = "error"
SEVERITY_FATAL = "fatal"

WARNING_LOW = "low"
WARNING_MEDIUM = "medium"
WARNING_HIGH = "high"

BLOCKING_SEVERITIES = frozenset({SEVERITY_ERROR, SEVERITY_FATAL})
WARNING_SEVERITIES = frozenset({WARNING_LOW, WARNING_MEDIUM, WARNING_HIGH})


# ---------------------------------------------------------------------------
# Payloads canônicos
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ValidationIssue:
    """
    Erro de validação de um campo.

    Campos:
    - path: caminho pontuado do campo (ou "" para issues globais)
    - type: categoria do erro (required, type, enum, pattern, range, ...)
    - message: mensagem curta, humana e objetiva
    - code: código estável do erro (não é texto livre)
    - severity: "error" (a run continua) ou "fatal" (valor inutilizável
      para dependentes)
    - details: dados estruturados relevantes para diagnóstico
    - suggested_fix: ação sugerida ao operador
    - source: origem do issue (engine, rule, contextual:<env>, ...)
    """

    path: str
    type: str
    message: str
    code: str
    severity: str = SEVERITY_ERROR
    details: Dict[str, Any] = field(default_factory=dict)
    suggested_fix: Optional[str] = None
    source: Optional[str] = None

    @property
    def is_fatal(self) -> bool:
        return self.severity == SEVERITY_FATAL

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


@dataclass(frozen=True)
class ValidationWarning:
    """Aviso não bloqueante (ex.: debug habilitado em produção)."""

    path: str
    type: str
    message: str
    code: str
    severity: str = WARNING_MEDIUM
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de códigos (v1)
# ---------------------------------------------------------------------------

# Presença / dependências
REQUIRED_FIELD_MISSING = "REQUIRED_FIELD_MISSING"
MISSING_DEPENDENCY = "MISSING_DEPENDENCY"
CONFLICTING_FIELDS = "CONFLICTING_FIELDS"
UNKNOWN_FIELD = "UNKNOWN_FIELD"

# Regras por campo
INVALID_TYPE = "INVALID_TYPE"
INVALID_ENUM_VALUE = "INVALID_ENUM_VALUE"
PATTERN_MISMATCH = "PATTERN_MISMATCH"
VALUE_TOO_SMALL = "VALUE_TOO_SMALL"
VALUE_TOO_LARGE = "VALUE_TOO_LARGE"
LENGTH_TOO_SHORT = "LENGTH_TOO_SHORT"
LENGTH_TOO_LONG = "LENGTH_TOO_LONG"
CUSTOM_VALIDATION_FAILED = "CUSTOM_VALIDATION_FAILED"
VALIDATOR_FAILED = "VALIDATOR_FAILED"

# Segurança
DISALLOWED_PROTOCOL = "DISALLOWED_PROTOCOL"

# Avisos
DEPRECATED_FIELD = "DEPRECATED_FIELD"
DEBUG_MODE_ENABLED = "DEBUG_MODE_ENABLED"
SECRET_FROM_DEFAULT = "SECRET_FROM_DEFAULT"
CUSTOM_VALIDATION_WARNING = "CUSTOM_VALIDATION_WARNING"

# Engine / execução
INTERNAL_ERROR = "INTERNAL_ERROR"
MERGE_CONFLICT = "MERGE_CONFLICT"


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def required_field_missing(*, path: str, reason: str = "required") -> ValidationIssue:
    return ValidationIssue(
        path=path,
        type="required",
        message=f"Required field '{path}' is missing",
        code=REQUIRED_FIELD_MISSING,
        severity=SEVERITY_FATAL,
        details={"reason": reason},
        suggested_fix=f"Provide a value for '{path}' or declare a default in the schema.",
        source="engine",
    )


def invalid_container(*, path: str) -> ValidationIssue:
    return ValidationIssue(
        path=path,
        type="type",
        message=f"Expected object at '{path}'",
        code=INVALID_TYPE,
        severity=SEVERITY_FATAL,
        details={"expected": "object"},
        suggested_fix=f"Replace the value at '{path}' with a mapping of its fields.",
        source="engine",
    )


def missing_dependency(*, path: str, missing: List[str]) -> ValidationIssue:
    return ValidationIssue(
        path=path,
        type="dependency",
        message=f"Field '{path}' requires {', '.join(repr(m) for m in missing)} to be set",
        code=MISSING_DEPENDENCY,
        details={"missing": list(missing)},
        suggested_fix="Set the required fields or remove the dependent value.",
        source="engine",
    )


def conflicting_fields(*, path: str, other: str) -> ValidationIssue:
    return ValidationIssue(
        path=path,
        type="conflict",
        message=f"Fields '{path}' and '{other}' cannot be set together",
        code=CONFLICTING_FIELDS,
        details={"paths": [path, other]},
        suggested_fix=f"Remove either '{path}' or '{other}'.",
        source="engine",
    )


def unknown_field_error(*, path: str) -> ValidationIssue:
    return ValidationIssue(
        path=path,
        type="unknown",
        message=f"Unknown field '{path}' is not declared in the schema",
        code=UNKNOWN_FIELD,
        suggested_fix="Remove the field or declare it in the schema.",
        source="engine",
    )


def unknown_field_warning(*, path: str) -> ValidationWarning:
    return ValidationWarning(
        path=path,
        type="unknown",
        message=f"Unknown field '{path}' is not declared in the schema",
        code=UNKNOWN_FIELD,
        severity=WARNING_LOW,
    )


def deprecated_field(*, path: str, note: Any) -> ValidationWarning:
    message = f"Field '{path}' is deprecated"
    if isinstance(note, str) and note.strip():
        message = f"{message}: {note}"
    return ValidationWarning(
        path=path,
        type="deprecated",
        message=message,
        code=DEPRECATED_FIELD,
        severity=WARNING_MEDIUM,
    )


def disallowed_protocol(*, path: str, scheme: str, allowed: List[str]) -> ValidationIssue:
    return ValidationIssue(
        path=path,
        type="security",
        message=f"Protocol '{scheme}' is not allowed for '{path}'",
        code=DISALLOWED_PROTOCOL,
        details={"scheme": scheme, "allowed": list(allowed)},
        suggested_fix=f"Use one of: {', '.join(allowed)}",
        source="security",
    )


def internal_error(*, exc: BaseException) -> ValidationIssue:
    return ValidationIssue(
        path="",
        type="internal",
        message=str(exc) or "Unexpected failure during validation",
        code=INTERNAL_ERROR,
        details={"exception_class": exc.__class__.__name__},
        suggested_fix="Check the technical log and the schema definition.",
        source="engine",
    )


def merge_conflict(*, message: str) -> ValidationIssue:
    return ValidationIssue(
        path="",
        type="merge",
        message=message,
        code=MERGE_CONFLICT,
        details={},
        suggested_fix="Align the value types across sources for the conflicting key.",
        source="merge",
    )
