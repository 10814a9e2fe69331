# src/safecfg/core/validation/engine.py
"""
Engine de validação do SafeCfg.

Antes de qualquer regra, o engine resolve o valor de todos os campos
(config explícita > variável de ambiente > default) e verifica que cada
prefixo contêiner recebeu um mapa. Em seguida percorre os caminhos
compilados em ordem topológica e, para cada campo:

    1. lê o valor já resolvido
    2. aplica regras de presença (`required`, `required_when`)
    3. executa as regras na ordem compilada; uma falha `fatal`
       interrompe as regras restantes do campo
    4. verifica `depends_on`, depreciação e protocolos permitidos

Após o passe por campo:
    - conflitos (`conflicts_with`), reportados uma vez por par
    - campos desconhecidos, segundo `validation.unknown_fields`
    - regras contextuais do ambiente da run

Decisões arquiteturais:
    - Issues são coletados, nunca levantados (diagnóstico completo)
    - Validadores podem ser corrotinas; cada um é aguardado antes do
      próximo campo, preservando a ordem de dependências
    - Um validador que levanta exceção vira VALIDATOR_FAILED no campo
    - Qualquer outra exceção inesperada vira um único INTERNAL_ERROR
    - O provedor de ambiente é injetado (nenhum acesso implícito a
      `os.environ` neste módulo)

Invariantes:
    - `valid` é falso sse houver issue `error` ou `fatal`
    - Mensagens e details nunca carregam o valor literal de um segredo
    - O input nunca é mutado
    - Predicados `required_when` sempre veem valores já resolvidos,
      independentemente da ordem de declaração
    - `data` sai com todos os defaults aplicados, mesmo quando
      `stop_on_first_error` interrompe a run
    - Um escalar onde o schema espera um contêiner é INVALID_TYPE
      fatal sob qualquer política de campos desconhecidos e é
      preservado em `data`
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
import time
from copy import deepcopy
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from safecfg.core import errors as codes
from safecfg.core.errors import (
    SEVERITY_ERROR,
    SEVERITY_FATAL,
    ValidationIssue,
    ValidationWarning,
    conflicting_fields,
    deprecated_field,
    disallowed_protocol,
    internal_error,
    invalid_container,
    missing_dependency,
    required_field_missing,
    unknown_field_error,
    unknown_field_warning,
)
from safecfg.core.config.transform import coerce_value
from safecfg.core.options import SafeCfgOptions
from safecfg.core.paths import MISSING, get_in, join_path, set_in
from safecfg.core.schema.types import CompiledPath, CompiledSchema

from .context import ValidationContext
from .rules import ORIGIN_DEFAULT, ORIGIN_ENV, ORIGIN_EXPLICIT, RuleInput, as_rule, default_contextual_rules, run_rule
from .types import ValidationResult, ValidatorResult
from .validators import normalize_outcome


logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*)://")


class _StopRun(Exception):
    """Interrompe a run quando `stop_on_first_error` está ativo."""


class _Run:
    """Estado mutável de uma única run (nunca compartilhado)."""

    def __init__(self, data: Dict[str, Any], scope: Optional[Set[str]], stop_on_first_error: bool) -> None:
        self.data = data
        self.scope = scope
        self.stop_on_first_error = stop_on_first_error
        self.errors: List[ValidationIssue] = []
        self.warnings: List[ValidationWarning] = []
        self.origins: Dict[str, str] = {}
        self.values: Dict[str, Any] = {}
        self.unreachable: Set[str] = set()
        self.fatal: Set[str] = set()
        self.validated = 0

    def in_scope(self, *paths: str) -> bool:
        return self.scope is None or any(p in self.scope for p in paths)

    def error(self, issue: ValidationIssue) -> None:
        self.errors.append(issue)
        if issue.severity == SEVERITY_FATAL and issue.path:
            self.fatal.add(issue.path)
        if self.stop_on_first_error:
            raise _StopRun()

    def warn(self, warning: ValidationWarning) -> None:
        self.warnings.append(warning)


class ValidationEngine:
    """
    Engine canônico de validação (uma instância por schema compilado).

    Args:
        compiled: Schema compilado (imutável, compartilhável).
        options: Opções do SafeCfg (validação e segurança).
        env: Provedor de variáveis de ambiente (mapa nome → string).
        contextual_rules: Regras por ambiente; default: conjunto embutido.
        host_logger: Logger do host (protocolo `Logger`), opcional.
    """

    def __init__(
        self,
        compiled: CompiledSchema,
        options: Optional[SafeCfgOptions] = None,
        *,
        env: Optional[Mapping[str, str]] = None,
        contextual_rules: Optional[Mapping[str, Iterable[Any]]] = None,
        host_logger: Any = None,
    ) -> None:
        self.compiled = compiled
        self.options = options or SafeCfgOptions()
        self.env: Mapping[str, str] = env if env is not None else {}
        rules = default_contextual_rules() if contextual_rules is None else contextual_rules
        self.contextual_rules: Dict[str, List[Any]] = {k: [as_rule(r) for r in v] for k, v in rules.items()}
        self.host_logger = host_logger

    def register_contextual_rule(self, environment: str, rule: Any) -> None:
        self.contextual_rules.setdefault(environment, []).append(as_rule(rule))

    # ------------------------------------------------------------------
    # API
    # ------------------------------------------------------------------
    async def validate(
        self,
        config: Optional[Mapping[str, Any]],
        context: Optional[ValidationContext] = None,
        *,
        only_paths: Optional[Iterable[str]] = None,
    ) -> ValidationResult:
        """
        Valida `config` contra o schema compilado.

        Args:
            config: Configuração mesclada e transformada.
            context: Contexto da run (default: ambiente das opções).
            only_paths: Restringe a run a estes caminhos (revalidação
                parcial usada por `ConfigResult.set`).

        Returns:
            ValidationResult: Resultado agregado, com `data` defaultado.
        """
        started = time.perf_counter()
        context = context or ValidationContext(
            environment=self.options.environment,
            region=self.options.region,
            stage=self.options.stage,
        )
        source: Dict[str, Any] = deepcopy(dict(config or {}))
        scope = set(only_paths) if only_paths is not None else None
        run = _Run(deepcopy(source), scope, self.options.validation.stop_on_first_error)

        try:
            await self._run(run, source, context)
        except _StopRun:
            logger.debug("validation halted at first error")
        except Exception as exc:
            logger.exception("unexpected failure during validation")
            run.errors.append(internal_error(exc=exc))

        result = ValidationResult.build(
            run.errors,
            run.warnings,
            total_fields=len(self.compiled),
            validated_fields=run.validated,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            data=run.data,
        )
        if self.host_logger is not None:
            self.host_logger.debug(
                "Validation finished",
                {
                    "environment": context.environment,
                    "valid": result.valid,
                    "errors": result.summary.error_count,
                    "warnings": result.summary.warning_count,
                },
            )
        return result

    def validate_sync(
        self,
        config: Optional[Mapping[str, Any]],
        context: Optional[ValidationContext] = None,
        *,
        only_paths: Optional[Iterable[str]] = None,
    ) -> ValidationResult:
        return asyncio.run(self.validate(config, context, only_paths=only_paths))

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------
    async def _run(self, run: _Run, source: Dict[str, Any], context: ValidationContext) -> None:
        for issue in self._resolve_all(run):
            run.error(issue)

        for field in self.compiled.ordered():
            if run.in_scope(field.path) and field.path not in run.unreachable:
                await self._validate_field(run, field, context)

        self._check_conflicts(run)
        if run.scope is None or run.scope - set(self.compiled.paths):
            self._check_unknown(run, source)
        await self._run_contextual(run, context)

    def _resolve_all(self, run: _Run) -> List[ValidationIssue]:
        """
        Resolve todos os campos em `run.data` antes de qualquer regra.

        Campos cujo contêiner recebeu um valor não-mapa ficam inalcançáveis:
        não são resolvidos, não recebem default e entram no conjunto fatal.
        Os issues de contêiner são devolvidos (um por prefixo) para que
        `stop_on_first_error` só interrompa depois da resolução completa.
        """
        issues: List[ValidationIssue] = []
        reported: Set[str] = set()
        for field in self.compiled.ordered():
            blocker = self._non_mapping_ancestor(run.data, field)
            if blocker is None:
                run.values[field.path] = self._resolve(run, field)
                continue
            run.unreachable.add(field.path)
            run.fatal.add(field.path)
            if blocker not in reported and run.in_scope(blocker, field.path):
                reported.add(blocker)
                issues.append(invalid_container(path=blocker))
        return issues

    @staticmethod
    def _non_mapping_ancestor(data: Mapping[str, Any], field: CompiledPath) -> Optional[str]:
        current: Any = data
        for depth, segment in enumerate(field.segments[:-1], start=1):
            current = current.get(segment, MISSING)
            if current is MISSING or current is None:
                return None
            if not isinstance(current, Mapping):
                return join_path(field.segments[:depth])
        return None

    def _resolve(self, run: _Run, field: CompiledPath) -> Any:
        """Resolve o valor do campo em `run.data`, registrando sua origem."""
        value = get_in(run.data, field.segments)
        if value is not MISSING and value is not None:
            run.origins[field.path] = ORIGIN_EXPLICIT
            return value

        if field.env_var and field.env_var in self.env:
            value = coerce_value(self.env[field.env_var], field.type)
            set_in(run.data, field.segments, value)
            run.origins[field.path] = ORIGIN_ENV
            return value

        if field.has_default:
            value = deepcopy(field.default_value)
            set_in(run.data, field.segments, value)
            run.origins[field.path] = ORIGIN_DEFAULT
            return value

        return MISSING

    async def _validate_field(self, run: _Run, field: CompiledPath, context: ValidationContext) -> None:
        value = run.values.get(field.path, MISSING)

        if value is MISSING or value is None:
            if field.required:
                run.error(required_field_missing(path=field.path))
            elif field.required_when is not None and self._condition_holds(run, field):
                run.error(required_field_missing(path=field.path, reason="required_when"))
            return

        blocked = [d for d in self.compiled.dependencies.get_dependencies(field.path) if d in run.fatal]
        if blocked:
            logger.debug("skipping rules for %s: unusable dependencies %s", field.path, blocked)
            return

        run.validated += 1
        for rule in field.rules:
            try:
                outcome = rule.validate(value, field.path, context)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
                if not isinstance(outcome, ValidatorResult):
                    outcome = normalize_outcome(outcome, path=field.path, name=getattr(rule, "name", "custom"))
            except _StopRun:
                raise
            except Exception as exc:
                logger.warning("validator %r failed on %s: %s", getattr(rule, "name", rule), field.path, exc)
                run.error(self._validator_failed(field, rule, exc, value))
                break

            if outcome.warning:
                run.warn(
                    ValidationWarning(
                        path=field.path,
                        type=outcome.type or "custom",
                        message=self._scrub(field, outcome.warning, value),
                        code=codes.CUSTOM_VALIDATION_WARNING,
                        severity=outcome.severity if outcome.severity in codes.WARNING_SEVERITIES else codes.WARNING_MEDIUM,
                        context={"validator": getattr(rule, "name", "custom")},
                    )
                )
            if not outcome.valid:
                run.error(self._issue_from(field, rule, outcome, value))
                if outcome.fatal:
                    break

        if field.path in run.fatal:
            return

        if field.depends_on:
            missing = [d for d in field.depends_on if get_in(run.data, d) in (MISSING, None)]
            if missing:
                run.error(missing_dependency(path=field.path, missing=missing))

        if field.metadata.is_deprecated and run.origins.get(field.path) != ORIGIN_DEFAULT:
            run.warn(deprecated_field(path=field.path, note=field.metadata.deprecated))

        allowed = self.options.security.allowed_protocols
        if allowed is not None and isinstance(value, str):
            match = _SCHEME_RE.match(value)
            if match and match.group(1).lower() not in allowed:
                run.error(disallowed_protocol(path=field.path, scheme=match.group(1).lower(), allowed=list(allowed)))

    def _condition_holds(self, run: _Run, field: CompiledPath) -> bool:
        try:
            return bool(field.required_when(run.data))  # type: ignore[misc]
        except Exception as exc:
            logger.warning("required_when failed on %s: %s", field.path, exc)
            run.error(
                ValidationIssue(
                    path=field.path,
                    type="required",
                    message=f"Condition 'required_when' failed for '{field.path}'",
                    code=codes.VALIDATOR_FAILED,
                    details={"exception_class": exc.__class__.__name__},
                    source="engine",
                )
            )
            return False

    # ------------------------------------------------------------------
    # Passes globais
    # ------------------------------------------------------------------
    def _check_conflicts(self, run: _Run) -> None:
        seen: Set[Tuple[str, str]] = set()
        graph = self.compiled.dependencies
        for path in self.compiled.order:
            for other in sorted(graph.get_conflicts(path), key=lambda p: self.compiled.paths[p].index):
                pair = tuple(sorted((path, other)))
                if pair in seen:
                    continue
                seen.add(pair)  # type: ignore[arg-type]
                if not run.in_scope(path, other):
                    continue
                if self._is_supplied(run, path) and self._is_supplied(run, other):
                    run.error(conflicting_fields(path=path, other=other))

    def _is_supplied(self, run: _Run, path: str) -> bool:
        """Valor presente, fornecido (não default) e diferente do default."""
        if run.origins.get(path) not in (ORIGIN_EXPLICIT, ORIGIN_ENV):
            return False
        field = self.compiled.paths[path]
        if field.has_default and get_in(run.data, path) == field.default_value:
            return False
        return True

    def _check_unknown(self, run: _Run, source: Mapping[str, Any]) -> None:
        policy = self.options.validation.unknown_field_policy
        if policy == "ignore":
            return

        def walk(node: Mapping[str, Any], prefix: Tuple[str, ...]) -> None:
            for key, value in node.items():
                segments = prefix + (str(key),)
                path = join_path(segments)
                if path in self.compiled.paths:
                    continue
                if self.compiled.is_container(path):
                    # não-mapas já reportados na resolução
                    if isinstance(value, Mapping):
                        walk(value, segments)
                    continue
                if not run.in_scope(path):
                    continue
                if policy == "error":
                    run.error(unknown_field_error(path=path))
                else:
                    run.warn(unknown_field_warning(path=path))

        walk(source, ())

    async def _run_contextual(self, run: _Run, context: ValidationContext) -> None:
        rules = self.contextual_rules.get(context.environment, [])
        if not rules:
            return
        view = RuleInput(data=run.data, context=context, compiled=self.compiled, origins=dict(run.origins))
        for rule in rules:
            try:
                outputs = await run_rule(rule, view)
            except _StopRun:
                raise
            except Exception as exc:
                logger.warning("contextual rule %r failed: %s", rule.name, exc)
                run.error(
                    ValidationIssue(
                        path="",
                        type="contextual",
                        message=f"Contextual rule '{rule.name}' failed",
                        code=codes.VALIDATOR_FAILED,
                        details={"rule": rule.name, "exception_class": exc.__class__.__name__},
                        source=f"contextual:{context.environment}",
                    )
                )
                continue
            for item in outputs:
                if not run.in_scope(item.path):
                    continue
                if isinstance(item, ValidationWarning):
                    run.warn(item)
                else:
                    run.error(item)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _scrub(self, field: CompiledPath, text: Optional[str], value: Any) -> str:
        text = text or ""
        if field.is_secret and isinstance(value, str) and value and value in text:
            return text.replace(value, REDACTED)
        return text

    def _issue_from(self, field: CompiledPath, rule: Any, outcome: ValidatorResult, value: Any) -> ValidationIssue:
        details = dict(outcome.details)
        if field.is_secret:
            details = {k: (REDACTED if v == value else v) for k, v in details.items()}
        return ValidationIssue(
            path=field.path,
            type=outcome.type or getattr(rule, "name", "custom"),
            message=self._scrub(field, outcome.message, value) or f"Validation failed for '{field.path}'",
            code=outcome.code or codes.CUSTOM_VALIDATION_FAILED,
            severity=SEVERITY_FATAL if outcome.fatal else SEVERITY_ERROR,
            details=details,
            suggested_fix=outcome.suggested_fix,
            source="rule",
        )

    def _validator_failed(self, field: CompiledPath, rule: Any, exc: Exception, value: Any) -> ValidationIssue:
        name = getattr(rule, "name", "custom")
        return ValidationIssue(
            path=field.path,
            type="custom",
            message=self._scrub(field, f"Validator '{name}' raised {exc.__class__.__name__}: {exc}", value),
            code=codes.VALIDATOR_FAILED,
            details={"validator": name, "exception_class": exc.__class__.__name__},
            suggested_fix="Check the validator implementation.",
            source="rule",
        )
