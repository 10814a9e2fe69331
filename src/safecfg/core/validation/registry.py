# src/safecfg/core/validation/registry.py
"""
Registro de componentes nomeados (validadores, transformers, loaders).

Este módulo define o `NamedRegistry`, responsável por registrar
componentes do host que são referenciados por nome a partir do schema
ou das definições de fonte, em vez de closures embutidas nos dados.

O registry garante que:
    - cada componente possua um `name` válido
    - não existam nomes duplicados
    - a ordem de registro seja preservada

Decisões arquiteturais:
    - A validação ocorre no registro, antes de qualquer compilação
    - Duplicidade é erro fatal de configuração (sem sobrescrita silenciosa)
    - `replace=True` é a única forma explícita de substituir um componente

Invariantes:
    - Cada nome registrado é único no registry
    - `list()` reflete exatamente a ordem de registro
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Generic, Iterable, List, TypeVar

from safecfg.core.exceptions import SafeCfgError


T = TypeVar("T")


class DuplicateComponentError(SafeCfgError):
    """Tentativa de registrar dois componentes com o mesmo nome."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"Duplicate {kind} name: {name}", "DUPLICATE_COMPONENT", {"kind": kind, "name": name})


@dataclass
class NamedRegistry(Generic[T]):
    """Registro ordenado de componentes por `name`."""

    kind: str = "component"
    _items: Dict[str, T] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)

    def add(self, item: T, *, replace: bool = False) -> None:
        name = getattr(item, "name", None)
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"{self.kind}.name must be a non-empty string")

        if name in self._items:
            if not replace:
                raise DuplicateComponentError(self.kind, name)
        else:
            self._order.append(name)
        self._items[name] = item

    def extend(self, items: Iterable[T]) -> None:
        for item in items:
            self.add(item)

    def get(self, name: str) -> T:
        return self._items[name]

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def list(self) -> List[T]:
        return [self._items[n] for n in self._order]

    def names(self) -> List[str]:
        return list(self._order)
