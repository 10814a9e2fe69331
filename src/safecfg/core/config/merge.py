# src/safecfg/core/config/merge.py
"""
Utilitários canônicos de merge de configuração.

Este módulo implementa as políticas oficiais utilizadas pelo SafeCfg para
combinar múltiplas fontes (`RawConfig`) em um único objeto de configuração
antes da etapa de transformação e validação.

Estratégias (v1):
    - overwrite       → chaves de topo sobrescritas na ordem das fontes
    - shallow-merge   → idem, com checagem estrutural (mapa vs não-mapa)
    - deep-merge      → merge recursivo por chave, listas sobrescritas
    - priority-based  → ordena por `priority` (estável) e aplica deep-merge
    - custom          → função fornecida pelo host, aplicada em fold

Princípios fundamentais:
    - O merge é determinístico e puramente funcional
    - Nenhum input é mutado durante o processo
    - Listas nunca são concatenadas (ordem ambígua)

Invariantes:
    - A mesma entrada sempre produz a mesma saída
    - Chaves não sobrescritas são preservadas
    - Conflitos estruturais interrompem o merge
    - deep-merge é associativo para fontes compostas apenas de mapas

Limites explícitos:
    - Não carrega arquivos de configuração
    - Não valida semântica de campos
    - Não realiza coerção de tipos
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .errors import ConfigError, ConfigTypeConflictError


MERGE_OVERWRITE = "overwrite"
MERGE_SHALLOW = "shallow-merge"
MERGE_DEEP = "deep-merge"
MERGE_PRIORITY = "priority-based"
MERGE_CUSTOM = "custom"

MERGE_STRATEGIES = (MERGE_OVERWRITE, MERGE_SHALLOW, MERGE_DEEP, MERGE_PRIORITY, MERGE_CUSTOM)

CustomMerge = Callable[[Dict[str, Any], Dict[str, Any]], Dict[str, Any]]


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any], _path: str = "") -> Dict[str, Any]:
    """
    Realiza um deep-merge determinístico entre dois dicionários de configuração.

    Política de merge (v1):
        - dict + dict        → merge recursivo por chave
        - list               → sobrescrita total (sem merge elemento a elemento)
        - escalar            → sobrescrita direta pelo override
        - dict vs não-dict   → erro estrutural explícito

    Decisões arquiteturais:
        - O merge é puramente funcional (inputs não são mutados)
        - Escalares de tipos diferentes não são conflito: fontes como
          variáveis de ambiente entregam strings para campos numéricos e a
          coerção é responsabilidade da camada de transformação

    Args:
        base: Configuração acumulada (fontes de menor precedência).
        override: Fonte de maior precedência.

    Returns:
        Dict[str, Any]: Nova configuração resultante do deep-merge.

    Raises:
        ConfigTypeConflictError: Se um mapa colidir com um não-mapa.
    """

    if not isinstance(base, Mapping) or not isinstance(override, Mapping):
        raise ConfigTypeConflictError(
            f"Deep-merge requires mappings at the root, got "
            f"{type(base).__name__} vs {type(override).__name__}"
        )

    result: Dict[str, Any] = deepcopy(dict(base))

    for key, override_value in override.items():
        key_path = f"{_path}.{key}" if _path else str(key)

        if key not in result:
            result[key] = deepcopy(override_value)
            continue

        base_value = result[key]

        # dict -> merge recursivo
        if isinstance(base_value, Mapping) and isinstance(override_value, Mapping):
            result[key] = deep_merge(base_value, override_value, key_path)
            continue

        # conflito estrutural
        if isinstance(base_value, Mapping) != isinstance(override_value, Mapping):
            raise ConfigTypeConflictError(
                f"Type conflict at key '{key_path}': "
                f"{type(base_value).__name__} vs {type(override_value).__name__}",
                {"path": key_path},
            )

        # list / escalar -> sobrescrita
        result[key] = deepcopy(override_value)

    return result


def _shallow_merge(base: Mapping[str, Any], override: Mapping[str, Any], *, strict: bool) -> Dict[str, Any]:
    result: Dict[str, Any] = deepcopy(dict(base))
    for key, value in override.items():
        if strict and key in result:
            if isinstance(result[key], Mapping) != isinstance(value, Mapping):
                raise ConfigTypeConflictError(
                    f"Type conflict at key '{key}': "
                    f"{type(result[key]).__name__} vs {type(value).__name__}",
                    {"path": str(key)},
                )
        result[key] = deepcopy(value)
    return result


def order_sources(sources: Sequence[Any], strategy: str) -> List[Any]:
    """Ordem de aplicação das fontes: a última aplicada vence.

    Para `priority-based`, a ordenação é estável: empates preservam a
    ordem de declaração das fontes.
    """
    indexed = list(enumerate(sources))
    if strategy == MERGE_PRIORITY:
        indexed.sort(key=lambda item: (getattr(item[1], "priority", 0), item[0]))
    return [s for _, s in indexed]


def merge_sources(
    sources: Sequence[Any],
    strategy: str = MERGE_DEEP,
    *,
    custom_merge: Optional[CustomMerge] = None,
) -> Dict[str, Any]:
    """
    Combina uma sequência de `RawConfig` segundo a estratégia informada.

    Args:
        sources: Fontes carregadas (objetos com `.data` e `.priority`).
        strategy: Uma das estratégias em `MERGE_STRATEGIES`.
        custom_merge: Função `(base, override) -> dict` para `custom`.

    Returns:
        Dict[str, Any]: Configuração combinada (nova estrutura).

    Raises:
        ConfigError: Estratégia desconhecida ou `custom` sem função.
        ConfigTypeConflictError: Conflito estrutural entre fontes.
    """
    if strategy not in MERGE_STRATEGIES:
        raise ConfigError(f"Unknown merge strategy: {strategy!r}", {"allowed": list(MERGE_STRATEGIES)})
    if strategy == MERGE_CUSTOM and custom_merge is None:
        raise ConfigError("Merge strategy 'custom' requires a custom_merge function")

    result: Dict[str, Any] = {}
    for source in order_sources(sources, strategy):
        data = getattr(source, "data", source)
        if not isinstance(data, Mapping):
            raise ConfigTypeConflictError(
                f"Source data must be a mapping, got {type(data).__name__}",
                {"source": getattr(source, "source", None)},
            )

        if strategy == MERGE_OVERWRITE:
            result = _shallow_merge(result, data, strict=False)
        elif strategy == MERGE_SHALLOW:
            result = _shallow_merge(result, data, strict=True)
        elif strategy == MERGE_CUSTOM:
            result = dict(custom_merge(deepcopy(result), deepcopy(dict(data))))  # type: ignore[misc]
        else:
            result = deep_merge(result, data)

    return result
