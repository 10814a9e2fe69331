# src/safecfg/core/schema/types.py
"""
Tipos canônicos do schema compilado do SafeCfg.

Este módulo define as estruturas produzidas pelo compilador de schema e
consumidas pelo engine de validação e pela camada de transformação.

Componentes principais:
    - FieldType      → enum dos tipos de folha suportados
    - PathMetadata   → metadados descritivos de um campo
    - SchemaMetadata → metadados do schema como um todo
    - CompiledPath   → um campo folha achatado e totalmente resolvido
    - CompiledSchema → tabela ordenada de CompiledPath + grafo de dependências

Princípios fundamentais:
    - Tipos compilados são imutáveis (frozen)
    - Um schema compilado é reutilizável entre múltiplos `load`
    - Nenhuma lógica de validação vive neste módulo

Invariantes:
    - Existe exatamente um CompiledPath por folha alcançável do schema
    - Caminhos (`path`) são únicos na tabela
    - A ordem da tabela é a ordem de declaração do schema

Limites explícitos:
    - Não compila schemas
    - Não valida valores
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from safecfg.core.schema.graph import DependencyGraph
    from safecfg.core.validation.types import Validator


class FieldType(str, Enum):
    """
    Tipos de folha suportados pelo schema.

    Os valores são strings para facilitar:
        - declaração de schemas em YAML/JSON
        - serialização de issues e metadados
    """
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


FIELD_TYPES = frozenset(t.value for t in FieldType)

RequiredWhen = Union[Callable[[Dict[str, Any]], bool], Mapping[str, Any]]


@dataclass(frozen=True)
class PathMetadata:
    """Metadados descritivos de um campo (não afetam validação, exceto `deprecated`)."""

    description: Optional[str] = None
    examples: Tuple[Any, ...] = ()
    deprecated: Union[bool, str] = False
    since: Optional[str] = None
    category: Optional[str] = None

    @property
    def is_deprecated(self) -> bool:
        return bool(self.deprecated)


@dataclass(frozen=True)
class SchemaMetadata:
    """Identidade do schema; `version` é exposto em `ConfigResult.metadata`."""

    version: str = "1.0.0"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    author: Optional[str] = None
    description: Optional[str] = None
    tags: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "SchemaMetadata":
        if not data:
            return cls()
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if "tags" in known:
            known["tags"] = tuple(known["tags"] or ())
        if "version" in known:
            known["version"] = str(known["version"])
        return cls(**known)


@dataclass(frozen=True)
class CompiledPath:
    """
    Um campo folha achatado e totalmente resolvido.

    Campos:
        - path: caminho pontuado (`db.host`)
        - segments: segmentos do caminho, usados para acesso aos dados
        - type: tipo resolvido (FieldType)
        - rules: validadores na ordem fixa type → enum → pattern → bounds → custom
        - required / required_when: regras de presença
        - default_value / has_default: default declarado (distingue `None`)
        - is_secret: campo sujeito a mascaramento
        - env_var: variável externa vinculada
        - depends_on / conflicts_with: relações declaradas
        - transform / coerce: pré-processamento antes da validação
        - metadata: descrição, exemplos, depreciação
        - index: ordem de declaração no schema

    Invariantes:
        - Uma instância nunca é alterada após compilada
        - `rules` sempre começa pelo validador de tipo
    """

    path: str
    segments: Tuple[str, ...]
    type: FieldType
    rules: Tuple["Validator", ...] = ()
    required: bool = False
    required_when: Optional[RequiredWhen] = None
    default_value: Any = None
    has_default: bool = False
    is_secret: bool = False
    env_var: Optional[str] = None
    depends_on: Tuple[str, ...] = ()
    conflicts_with: Tuple[str, ...] = ()
    transform: Optional[Any] = None
    coerce: bool = False
    metadata: PathMetadata = field(default_factory=PathMetadata)
    index: int = 0


@dataclass(frozen=True)
class CompiledSchema:
    """
    Resultado imutável da compilação de um schema.

    Campos:
        - paths: mapa somente-leitura path → CompiledPath (ordem de declaração)
        - dependencies: grafo de dependências/conflitos
        - order: ordem topológica de avaliação (dependências antes de dependentes)
        - metadata: metadados do schema
    """

    paths: Mapping[str, CompiledPath]
    dependencies: "DependencyGraph"
    order: Tuple[str, ...]
    metadata: SchemaMetadata = field(default_factory=SchemaMetadata)
    prefixes: frozenset = frozenset()

    def __post_init__(self) -> None:
        if not isinstance(self.paths, MappingProxyType):
            object.__setattr__(self, "paths", MappingProxyType(dict(self.paths)))

    def __contains__(self, path: object) -> bool:
        return path in self.paths

    def __len__(self) -> int:
        return len(self.paths)

    def get(self, path: str) -> Optional[CompiledPath]:
        return self.paths.get(path)

    def ordered(self) -> Tuple[CompiledPath, ...]:
        return tuple(self.paths[p] for p in self.order)

    @property
    def secret_paths(self) -> Tuple[str, ...]:
        return tuple(p for p, cp in self.paths.items() if cp.is_secret)

    def is_container(self, path: str) -> bool:
        """True se `path` é um prefixo de container declarado no schema."""
        return path in self.prefixes
