# src/safecfg/core/validation/types.py
"""
Tipos canônicos da validação do SafeCfg.

Componentes principais:
    - ValidatorResult       → resultado de um validador individual
    - Validator (Protocol)  → contrato mínimo de um validador nomeado
    - ValidationSummary     → contagens e duração de uma run
    - ValidationResult      → resultado imutável de uma run completa

Princípios fundamentais:
    - Resultados são imutáveis e serializáveis
    - Validadores são definidos por contrato estrutural, não por herança
    - `validate` pode ser síncrono ou corrotina; o engine aguarda ambos

Invariantes:
    - `ValidationResult.valid` é falso sse existir issue `error` ou `fatal`
    - Um ValidationResult nunca é alterado após construído
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, Optional, Protocol, Tuple, Union, runtime_checkable, TYPE_CHECKING

from safecfg.core.errors import BLOCKING_SEVERITIES, ValidationIssue, ValidationWarning

if TYPE_CHECKING:  # pragma: no cover
    from .context import ValidationContext


@dataclass(frozen=True)
class ValidatorResult:
    """
    Resultado de um validador.

    - valid=False produz um erro (ou fatal, se `fatal=True`)
    - `warning` (texto) produz um aviso mesmo quando valid=True
    """

    valid: bool
    type: Optional[str] = None
    message: Optional[str] = None
    code: Optional[str] = None
    fatal: bool = False
    warning: Optional[str] = None
    severity: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    suggested_fix: Optional[str] = None


VALID = ValidatorResult(valid=True)


@runtime_checkable
class Validator(Protocol):
    """
    Contrato canônico de um validador.

    Atributos obrigatórios:
        - name: identificador estável, usado para registro e referência
          a partir do schema (`validate: "port_available"`)

    `validate` recebe o valor já resolvido (default/env/transform aplicados),
    o caminho pontuado e o ValidationContext da run.
    """

    name: str

    def validate(
        self, value: Any, path: str, context: "ValidationContext"
    ) -> Union[ValidatorResult, Awaitable[ValidatorResult]]:
        ...


@dataclass(frozen=True)
class ValidationSummary:
    total_fields: int = 0
    validated_fields: int = 0
    error_count: int = 0
    warning_count: int = 0
    duration_ms: float = 0.0


@dataclass(frozen=True)
class ValidationResult:
    """
    Resultado agregado de uma run de validação.

    Campos:
        - valid: falso se houver qualquer erro `error` ou `fatal`
        - errors / warnings: na ordem em que foram registrados
        - summary: contagens de campos e duração
        - data: configuração resultante (defaults e transforms aplicados;
          os defaults são completos mesmo sob `stop_on_first_error`)
    """

    valid: bool
    errors: Tuple[ValidationIssue, ...] = ()
    warnings: Tuple[ValidationWarning, ...] = ()
    summary: ValidationSummary = field(default_factory=ValidationSummary)
    data: Optional[Dict[str, Any]] = None

    @classmethod
    def build(
        cls,
        errors,
        warnings,
        *,
        total_fields: int,
        validated_fields: int,
        duration_ms: float,
        data: Optional[Dict[str, Any]] = None,
    ) -> "ValidationResult":
        errors = tuple(errors)
        warnings = tuple(warnings)
        return cls(
            valid=not any(e.severity in BLOCKING_SEVERITIES for e in errors),
            errors=errors,
            warnings=warnings,
            summary=ValidationSummary(
                total_fields=total_fields,
                validated_fields=validated_fields,
                error_count=len(errors),
                warning_count=len(warnings),
                duration_ms=duration_ms,
            ),
            data=data,
        )

    def errors_for(self, path: str) -> Tuple[ValidationIssue, ...]:
        return tuple(e for e in self.errors if e.path == path)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "summary": {
                "total_fields": self.summary.total_fields,
                "validated_fields": self.summary.validated_fields,
                "error_count": self.summary.error_count,
                "warning_count": self.summary.warning_count,
                "duration_ms": self.summary.duration_ms,
            },
        }
