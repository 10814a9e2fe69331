# src/safecfg/core/validation/validators.py
"""
Validadores embutidos e adaptadores de validadores do host.

Cada regra de um CompiledPath é um objeto que satisfaz o protocolo
`Validator`. O compilador monta a lista na ordem fixa:

    type → enum → pattern → bounds (numérico / comprimento) → custom

Decisões arquiteturais:
    - Falha de tipo é `fatal`: as regras seguintes não fazem sentido
      sobre um valor de tipo errado
    - Demais regras produzem `error` e não interrompem o campo
    - Mensagens nunca incluem o valor do campo; o engine decide se o
      valor pode aparecer em `details` (campos secretos não aparecem)
"""

from __future__ import annotations

import inspect
import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Tuple

from safecfg.core import errors as codes
from safecfg.core.schema.types import FieldType

from .context import ValidationContext
from .types import VALID, ValidatorResult


def check_type(value: Any, expected: FieldType) -> bool:
    if expected is FieldType.STRING:
        return isinstance(value, str)
    if expected is FieldType.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected is FieldType.BOOLEAN:
        return isinstance(value, bool)
    if expected is FieldType.ARRAY:
        return isinstance(value, (list, tuple))
    if expected is FieldType.OBJECT:
        return isinstance(value, Mapping)
    return False


def describe_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


@dataclass(frozen=True)
class TypeValidator:
    expected: FieldType
    name: str = "type"

    def validate(self, value: Any, path: str, context: ValidationContext) -> ValidatorResult:
        if check_type(value, self.expected):
            return VALID
        return ValidatorResult(
            valid=False,
            type="type",
            code=codes.INVALID_TYPE,
            message=f"Expected {self.expected.value} at '{path}', got {describe_type(value)}",
            fatal=True,
            details={"expected": self.expected.value, "actual": describe_type(value)},
        )


@dataclass(frozen=True)
class EnumValidator:
    allowed: Tuple[Any, ...]
    name: str = "enum"

    def validate(self, value: Any, path: str, context: ValidationContext) -> ValidatorResult:
        if value in self.allowed:
            return VALID
        return ValidatorResult(
            valid=False,
            type="enum",
            code=codes.INVALID_ENUM_VALUE,
            message=f"Value at '{path}' is not one of the allowed values",
            details={"allowed": list(self.allowed)},
            suggested_fix=f"Use one of: {', '.join(repr(a) for a in self.allowed)}",
        )


@dataclass(frozen=True)
class PatternValidator:
    pattern: "re.Pattern[str]"
    name: str = "pattern"

    def validate(self, value: Any, path: str, context: ValidationContext) -> ValidatorResult:
        if self.pattern.search(value) is not None:
            return VALID
        return ValidatorResult(
            valid=False,
            type="pattern",
            code=codes.PATTERN_MISMATCH,
            message=f"Value at '{path}' does not match pattern {self.pattern.pattern!r}",
            details={"pattern": self.pattern.pattern},
        )


@dataclass(frozen=True)
class RangeValidator:
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    name: str = "range"

    def validate(self, value: Any, path: str, context: ValidationContext) -> ValidatorResult:
        if self.minimum is not None and value < self.minimum:
            return ValidatorResult(
                valid=False,
                type="range",
                code=codes.VALUE_TOO_SMALL,
                message=f"Value at '{path}' must be >= {self.minimum}",
                details={"min": self.minimum},
            )
        if self.maximum is not None and value > self.maximum:
            return ValidatorResult(
                valid=False,
                type="range",
                code=codes.VALUE_TOO_LARGE,
                message=f"Value at '{path}' must be <= {self.maximum}",
                details={"max": self.maximum},
            )
        return VALID


@dataclass(frozen=True)
class LengthValidator:
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    name: str = "length"

    def validate(self, value: Any, path: str, context: ValidationContext) -> ValidatorResult:
        size = len(value)
        if self.min_length is not None and size < self.min_length:
            return ValidatorResult(
                valid=False,
                type="length",
                code=codes.LENGTH_TOO_SHORT,
                message=f"Length of '{path}' must be >= {self.min_length}",
                details={"min_length": self.min_length, "length": size},
            )
        if self.max_length is not None and size > self.max_length:
            return ValidatorResult(
                valid=False,
                type="length",
                code=codes.LENGTH_TOO_LONG,
                message=f"Length of '{path}' must be <= {self.max_length}",
                details={"max_length": self.max_length, "length": size},
            )
        return VALID


class FunctionValidator:
    """Adapta um callable do host ao protocolo `Validator`.

    O callable recebe `(value, context)` e pode retornar `bool`,
    `ValidatorResult` ou uma corrotina que resolva para um desses.
    """

    def __init__(self, func: Callable[..., Any], name: Optional[str] = None) -> None:
        self.func = func
        self.name = name or getattr(func, "__name__", "custom")

    async def validate(self, value: Any, path: str, context: ValidationContext) -> ValidatorResult:
        outcome = self.func(value, context)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return normalize_outcome(outcome, path=path, name=self.name)

    def __repr__(self) -> str:  # pragma: no cover
        return f"FunctionValidator({self.name!r})"


def normalize_outcome(outcome: Any, *, path: str, name: str) -> ValidatorResult:
    """Converte o retorno de um validador customizado em ValidatorResult."""
    if isinstance(outcome, ValidatorResult):
        if outcome.valid or outcome.code:
            return outcome
        return ValidatorResult(
            valid=False,
            type=outcome.type or "custom",
            message=outcome.message or f"Custom validation '{name}' failed for '{path}'",
            code=codes.CUSTOM_VALIDATION_FAILED,
            fatal=outcome.fatal,
            warning=outcome.warning,
            severity=outcome.severity,
            details=dict(outcome.details),
            suggested_fix=outcome.suggested_fix,
        )
    if outcome is True or outcome is None:
        return VALID
    if outcome is False:
        return ValidatorResult(
            valid=False,
            type="custom",
            code=codes.CUSTOM_VALIDATION_FAILED,
            message=f"Custom validation '{name}' failed for '{path}'",
            details={"validator": name},
        )
    raise TypeError(
        f"Validator '{name}' must return bool or ValidatorResult, got {type(outcome).__name__}"
    )
