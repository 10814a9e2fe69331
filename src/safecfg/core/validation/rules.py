# src/safecfg/core/validation/rules.py
"""
Regras contextuais do SafeCfg.

Regras contextuais são verificações cujo resultado depende do ambiente
(`development`, `production`, ...) e não apenas do valor de um campo.
Elas rodam após a validação campo a campo, sobre a configuração já
resolvida (defaults, env e transforms aplicados).

Conjunto embutido (`production`):
    - DebugModeRule        → `debug: true` gera aviso DEBUG_MODE_ENABLED (high)
    - SecretFromDefaultRule → segredo resolvido pelo default do schema gera
                              aviso SECRET_FROM_DEFAULT (medium)

O host registra regras adicionais por ambiente via
`SafeCfg.register_contextual_rule(environment, rule)`.

Decisões arquiteturais:
    - Regras são objetos nomeados (protocolo `ContextualRule`) ou callables
      `(data, context) -> issues`, adaptados por `FunctionRule`
    - Regras produzem `ValidationIssue` (bloqueante) ou `ValidationWarning`
    - Regras nunca alteram a configuração
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Union, runtime_checkable

from safecfg.core import errors as codes
from safecfg.core.errors import ValidationIssue, ValidationWarning
from safecfg.core.paths import get_in
from safecfg.core.schema.types import CompiledSchema

from .context import ValidationContext


ORIGIN_EXPLICIT = "explicit"
ORIGIN_ENV = "env"
ORIGIN_DEFAULT = "default"

RuleOutput = Union[ValidationIssue, ValidationWarning]


@dataclass(frozen=True)
class RuleInput:
    """Visão somente-leitura da run entregue às regras contextuais."""

    data: Mapping[str, Any]
    context: ValidationContext
    compiled: CompiledSchema
    origins: Mapping[str, str] = field(default_factory=dict)


@runtime_checkable
class ContextualRule(Protocol):
    name: str

    def evaluate(self, run: RuleInput) -> Any:
        """Retorna um iterável de issues/avisos (ou corrotina que o resolva)."""
        ...


class FunctionRule:
    """Adapta um callable `(data, context)` ao protocolo `ContextualRule`."""

    def __init__(self, func: Callable[..., Any], name: Optional[str] = None) -> None:
        self.func = func
        self.name = name or getattr(func, "__name__", "rule")

    async def evaluate(self, run: RuleInput) -> List[RuleOutput]:
        outcome = self.func(run.data, run.context)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return list(outcome or ())


class DebugModeRule:
    name = "debug_mode"

    def __init__(self, path: str = "debug") -> None:
        self.path = path

    def evaluate(self, run: RuleInput) -> List[RuleOutput]:
        if get_in(run.data, self.path) is not True:
            return []
        return [
            ValidationWarning(
                path=self.path,
                type="contextual",
                message=f"Debug mode is enabled in {run.context.environment} environment",
                code=codes.DEBUG_MODE_ENABLED,
                severity=codes.WARNING_HIGH,
                context={"environment": run.context.environment},
            )
        ]


class SecretFromDefaultRule:
    name = "secret_from_default"

    def evaluate(self, run: RuleInput) -> List[RuleOutput]:
        out: List[RuleOutput] = []
        for path in run.compiled.secret_paths:
            if run.origins.get(path) == ORIGIN_DEFAULT:
                out.append(
                    ValidationWarning(
                        path=path,
                        type="contextual",
                        message=f"Secret field '{path}' is using its schema default",
                        code=codes.SECRET_FROM_DEFAULT,
                        severity=codes.WARNING_MEDIUM,
                        context={"environment": run.context.environment},
                    )
                )
        return out


def as_rule(rule: Any) -> Any:
    if hasattr(rule, "evaluate") and isinstance(getattr(rule, "name", None), str):
        return rule
    if callable(rule):
        return FunctionRule(rule)
    raise TypeError(f"Contextual rule must define 'evaluate' or be callable, got {type(rule).__name__}")


def default_contextual_rules() -> Dict[str, List[Any]]:
    return {"production": [DebugModeRule(), SecretFromDefaultRule()]}


async def run_rule(rule: Any, run: RuleInput) -> List[RuleOutput]:
    outcome = rule.evaluate(run)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    items: Iterable[Any] = outcome or ()
    out: List[RuleOutput] = []
    for item in items:
        if not isinstance(item, (ValidationIssue, ValidationWarning)):
            raise TypeError(
                f"Contextual rule '{rule.name}' must yield ValidationIssue or ValidationWarning, "
                f"got {type(item).__name__}"
            )
        out.append(item)
    return out
