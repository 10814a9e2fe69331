# src/safecfg/core/sources/base.py
"""
Tipos canônicos de fontes de configuração.

Componentes principais:
    - SourceDefinition   → declaração de uma fonte (loader, opções, prioridade)
    - RawConfig          → dados crus carregados de uma fonte
    - SourceLoadResult   → resultado operacional do carregamento de uma fonte
    - SourceChange       → mudança emitida por `watch` de um loader
    - SourceLoader       → contrato de um loader nomeado

Princípios fundamentais:
    - Loaders são objetos nomeados registrados no SafeCfg; a definição de
      fonte referencia o loader por `type`
    - `load(options)` pode ser síncrono ou corrotina
    - `watch(callback)` é opcional e retorna uma função de cancelamento

Limites explícitos:
    - Não implementa transporte de watch (polling, inotify, ...)
    - Não faz merge de fontes
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol, Union, runtime_checkable

from safecfg.core.config.errors import InvalidOptionsError


CHANGE_ADD = "add"
CHANGE_UPDATE = "update"
CHANGE_DELETE = "delete"
CHANGE_TYPES = (CHANGE_ADD, CHANGE_UPDATE, CHANGE_DELETE)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SourceDefinition:
    """
    Declaração de uma fonte de configuração.

    Campos:
        - name: identificador único da fonte (aparece em erros e resultados)
        - type: nome do loader registrado (`dict`, `file`, ...)
        - options: opções repassadas a `loader.load(options)`
        - priority: usado pela estratégia `priority-based` (maior vence)
        - required: falha da fonte aborta o `load` (SourceLoadError)
        - enabled: fontes desabilitadas não são carregadas
        - cache: força/desliga cache (None segue `sources.cache_enabled`)
        - ttl: TTL do cache em segundos (None usa `default_cache_ttl`)
    """

    name: str
    type: str
    options: Mapping[str, Any] = field(default_factory=dict)
    priority: int = 0
    required: bool = False
    enabled: bool = True
    cache: Optional[bool] = None
    ttl: Optional[float] = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidOptionsError("source.name must be a non-empty string")
        if not isinstance(self.type, str) or not self.type.strip():
            raise InvalidOptionsError(f"source '{self.name}' must declare a loader type")

    @property
    def optional(self) -> bool:
        return not self.required

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SourceDefinition":
        allowed = set(cls.__dataclass_fields__) | {"optional"}
        unknown = sorted(set(data) - allowed)
        if unknown:
            raise InvalidOptionsError(f"Unknown source attribute(s): {unknown}", {"attributes": unknown})
        kwargs = {k: v for k, v in data.items() if k != "optional"}
        if "optional" in data and "required" not in data:
            kwargs["required"] = not bool(data["optional"])
        return cls(**kwargs)


@dataclass(frozen=True)
class RawConfig:
    source: str
    data: Dict[str, Any]
    priority: int = 0
    timestamp: datetime = field(default_factory=_utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SourceLoadResult:
    source: str
    success: bool
    duration: float = 0.0
    data_count: int = 0
    error: Optional[str] = None
    cached: bool = False


@dataclass(frozen=True)
class SourceChange:
    type: str
    path: str
    old_value: Any = None
    new_value: Any = None
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.type not in CHANGE_TYPES:
            raise ValueError(f"Unknown change type: {self.type!r}")


@runtime_checkable
class SourceLoader(Protocol):
    """
    Contrato canônico de um loader de fonte.

    Atributos obrigatórios:
        - name: nome referenciado por `SourceDefinition.type`

    `watch` é opcional e não faz parte do protocolo verificável.
    """

    name: str

    def load(self, options: Mapping[str, Any]) -> Union[Mapping[str, Any], Awaitable[Mapping[str, Any]]]:
        ...


Unsubscribe = Callable[[], None]
