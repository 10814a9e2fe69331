# src/safecfg/core/options.py
"""
Opções do SafeCfg.

Este módulo define as opções de comportamento de uma instância SafeCfg,
agrupadas em seções imutáveis:

    validation   → strict, stop_on_first_error, unknown_fields
    sources      → merge_strategy, cache_enabled, default_cache_ttl,
                   parallel_loading
    security     → mask_secrets, allowed_protocols
    performance  → max_recursion_depth
    logging      → level
    hooks        → before_transform, after_transform,
                   before_validation, after_validation

Além das seções, `environment`, `region` e `stage` alimentam o
ValidationContext de cada `load`.

Decisões arquiteturais:
    - Opções são construídas a partir de mapas (ex.: YAML) via `from_dict`
    - Chaves em camelCase são aceitas e normalizadas para snake_case
    - Chave desconhecida ou valor fora do domínio é erro explícito
      (`InvalidOptionsError`), nunca ignorado

Limites explícitos:
    - Não lê variáveis de ambiente
    - Não valida schemas
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from safecfg.core.config.errors import InvalidOptionsError
from safecfg.core.config.loader import load_file
from safecfg.core.config.merge import MERGE_CUSTOM, MERGE_DEEP, MERGE_STRATEGIES
from safecfg.core.log import DEFAULT_LOG_LEVEL, LOG_LEVELS
from safecfg.core.validation.context import DEFAULT_ENVIRONMENT


UNKNOWN_FIELD_POLICIES = ("error", "warning", "ignore")
HOOK_STAGES = ("before_transform", "after_transform", "before_validation", "after_validation")

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


@dataclass(frozen=True)
class ValidationOptions:
    strict: bool = False
    stop_on_first_error: bool = False
    unknown_fields: str = "warning"

    @property
    def unknown_field_policy(self) -> str:
        return "error" if self.strict else self.unknown_fields


@dataclass(frozen=True)
class SourceOptions:
    merge_strategy: str = MERGE_DEEP
    cache_enabled: bool = False
    default_cache_ttl: float = 300.0
    parallel_loading: bool = False


@dataclass(frozen=True)
class SecurityOptions:
    mask_secrets: bool = True
    allowed_protocols: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class PerformanceOptions:
    max_recursion_depth: int = 32


@dataclass(frozen=True)
class LoggingOptions:
    level: str = DEFAULT_LOG_LEVEL


@dataclass(frozen=True)
class HookOptions:
    before_transform: Optional[Callable[..., Any]] = None
    after_transform: Optional[Callable[..., Any]] = None
    before_validation: Optional[Callable[..., Any]] = None
    after_validation: Optional[Callable[..., Any]] = None

    def get(self, stage: str) -> Optional[Callable[..., Any]]:
        return getattr(self, stage)


@dataclass(frozen=True)
class SafeCfgOptions:
    """
    Opções completas de uma instância SafeCfg.

    Invariantes:
        - Todas as seções estão sempre presentes (defaults explícitos)
        - Valores enumerados pertencem aos seus domínios
    """

    environment: str = DEFAULT_ENVIRONMENT
    region: Optional[str] = None
    stage: Optional[str] = None
    validation: ValidationOptions = field(default_factory=ValidationOptions)
    sources: SourceOptions = field(default_factory=SourceOptions)
    security: SecurityOptions = field(default_factory=SecurityOptions)
    performance: PerformanceOptions = field(default_factory=PerformanceOptions)
    logging: LoggingOptions = field(default_factory=LoggingOptions)
    hooks: HookOptions = field(default_factory=HookOptions)
    custom_merge: Optional[Callable[[Dict[str, Any], Dict[str, Any]], Dict[str, Any]]] = None

    def __post_init__(self) -> None:
        _check_domains(self)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]] = None) -> "SafeCfgOptions":
        """
        Constrói opções a partir de um mapa aninhado.

        Raises:
            InvalidOptionsError: chave desconhecida, seção que não é mapa
                ou valor fora do domínio.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise InvalidOptionsError(f"Options must be a mapping, got {type(data).__name__}")

        sections = {
            "validation": ValidationOptions,
            "sources": SourceOptions,
            "security": SecurityOptions,
            "performance": PerformanceOptions,
            "logging": LoggingOptions,
            "hooks": HookOptions,
        }
        top_level = {f.name for f in fields(cls)}

        kwargs: Dict[str, Any] = {}
        for raw_key, value in data.items():
            key = _snake(str(raw_key))
            if key not in top_level:
                raise InvalidOptionsError(f"Unknown option: {raw_key!r}", {"option": str(raw_key)})
            if key in sections:
                kwargs[key] = _build_section(key, sections[key], value)
            else:
                kwargs[key] = value
        return cls(**kwargs)

    def with_overrides(self, **changes: Any) -> "SafeCfgOptions":
        return replace(self, **changes)


def _build_section(name: str, section_cls: Any, value: Any) -> Any:
    if value is None:
        return section_cls()
    if isinstance(value, section_cls):
        return value
    if not isinstance(value, Mapping):
        raise InvalidOptionsError(f"Option section '{name}' must be a mapping", {"section": name})

    allowed = {f.name for f in fields(section_cls)}
    kwargs: Dict[str, Any] = {}
    for raw_key, item in value.items():
        key = _snake(str(raw_key))
        if key not in allowed:
            raise InvalidOptionsError(
                f"Unknown option: '{name}.{raw_key}'",
                {"option": f"{name}.{raw_key}"},
            )
        kwargs[key] = item

    if section_cls is SecurityOptions and kwargs.get("allowed_protocols") is not None:
        kwargs["allowed_protocols"] = tuple(str(p).lower() for p in kwargs["allowed_protocols"])
    return section_cls(**kwargs)


def _check_domains(options: SafeCfgOptions) -> None:
    if not isinstance(options.environment, str) or not options.environment.strip():
        raise InvalidOptionsError("environment must be a non-empty string")

    policy = options.validation.unknown_fields
    if policy not in UNKNOWN_FIELD_POLICIES:
        raise InvalidOptionsError(
            f"Invalid validation.unknown_fields: {policy!r}",
            {"allowed": list(UNKNOWN_FIELD_POLICIES)},
        )

    strategy = options.sources.merge_strategy
    if strategy not in MERGE_STRATEGIES:
        raise InvalidOptionsError(
            f"Invalid sources.merge_strategy: {strategy!r}",
            {"allowed": list(MERGE_STRATEGIES)},
        )

    if strategy == MERGE_CUSTOM and options.custom_merge is None:
        raise InvalidOptionsError("sources.merge_strategy 'custom' requires a custom_merge function")
    if options.custom_merge is not None and not callable(options.custom_merge):
        raise InvalidOptionsError("custom_merge must be callable")

    ttl = options.sources.default_cache_ttl
    if isinstance(ttl, bool) or not isinstance(ttl, (int, float)) or ttl < 0:
        raise InvalidOptionsError("sources.default_cache_ttl must be a non-negative number")

    depth = options.performance.max_recursion_depth
    if isinstance(depth, bool) or not isinstance(depth, int) or depth < 1:
        raise InvalidOptionsError("performance.max_recursion_depth must be a positive integer")

    if options.logging.level not in LOG_LEVELS:
        raise InvalidOptionsError(
            f"Invalid logging.level: {options.logging.level!r}",
            {"allowed": list(LOG_LEVELS)},
        )

    for stage in HOOK_STAGES:
        hook = options.hooks.get(stage)
        if hook is not None and not callable(hook):
            raise InvalidOptionsError(f"hooks.{stage} must be callable", {"hook": stage})


def load_options_file(path: Union[str, Path]) -> SafeCfgOptions:
    """Lê opções de um arquivo YAML/JSON."""
    return SafeCfgOptions.from_dict(load_file(path))
