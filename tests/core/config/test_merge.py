# tests/core/config/test_merge.py
"""
Testes das políticas de merge de fontes de configuração.

Este módulo valida `deep_merge` e `merge_sources`, responsáveis por
combinar múltiplas fontes (`RawConfig`) em uma única configuração antes da
transformação e validação.

Os testes asseguram que:
- valores escalares são sobrescritos corretamente
- dicionários são mesclados de forma recursiva
- listas são sobrescritas integralmente
- conflitos estruturais são rejeitados explicitamente
- cada estratégia (overwrite, shallow, deep, priority, custom) respeita
  sua política
- o deep-merge é associativo para fontes compostas apenas de mapas
- objetos de entrada não são mutados

Limites explícitos:
    - Não valida carregamento de arquivos
    - Não valida integração com o engine de validação
"""

import pytest

try:
    from safecfg.core.config.merge import (
        MERGE_CUSTOM,
        MERGE_DEEP,
        MERGE_OVERWRITE,
        MERGE_PRIORITY,
        MERGE_SHALLOW,
        deep_merge,
        merge_sources,
    )
    from safecfg.core.config.errors import ConfigError, ConfigTypeConflictError
    from safecfg.core.sources.base import RawConfig
except Exception as e:  # noqa: BLE001
    deep_merge = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    """
    Garante que os módulos de merge estejam disponíveis para os testes.

    Falha explicitamente com uma mensagem orientada quando `merge.py`
    ou `errors.py` não podem ser importados.
    """
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing config merge modules. Implement:\n"
            "- src/safecfg/core/config/merge.py (deep_merge, merge_sources)\n"
            "- src/safecfg/core/config/errors.py (ConfigTypeConflictError)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def test_merge_simple_override():
    """
    Verifica o override básico de escalares sem mutar as entradas.

    Invariantes:
        - O valor sobrescrito reflete exatamente o override
        - `base` e `override` não sofrem mutação
    """
    _require_imports()
    base = {"a": 1, "b": 2}
    override = {"b": 99}
    out = deep_merge(base, override)
    assert out == {"a": 1, "b": 99}
    assert base == {"a": 1, "b": 2}
    assert override == {"b": 99}


def test_merge_nested_dict():
    """
    Verifica que dicionários aninhados são mesclados recursivamente,
    preservando chaves não sobrescritas.
    """
    _require_imports()
    base = {"db": {"host": "localhost", "port": 5432}}
    override = {"db": {"port": 6543}}
    out = deep_merge(base, override)
    assert out == {"db": {"host": "localhost", "port": 6543}}


def test_merge_list_is_replaced_not_concatenated():
    """
    Verifica que listas são substituídas integralmente pelo override.

    Decisão arquitetural:
        - Concatenação teria ordem ambígua; a lista do override vence
    """
    _require_imports()
    base = {"hosts": ["a", "b"]}
    override = {"hosts": ["c"]}
    assert deep_merge(base, override) == {"hosts": ["c"]}


def test_merge_type_conflict_raises():
    """
    Verifica que um mapa sobrescrito por um escalar é rejeitado com
    `ConfigTypeConflictError`, incluindo o caminho do conflito.
    """
    _require_imports()
    base = {"db": {"host": "localhost"}}
    override = {"db": "postgres://x"}
    with pytest.raises(ConfigTypeConflictError) as exc:
        deep_merge(base, override)
    assert exc.value.details["path"] == "db"


def test_merge_scalar_type_change_is_not_a_conflict():
    """
    Verifica que escalares de tipos diferentes são substituídos (fontes
    textuais entregam strings; a coerção acontece depois).
    """
    _require_imports()
    assert deep_merge({"port": 5432}, {"port": "6543"}) == {"port": "6543"}


def test_deep_merge_is_associative_for_object_sources():
    """
    Verifica a associatividade: merge([A, B, C]) == merge([merge(A, B), C]).
    """
    _require_imports()
    a = {"db": {"host": "a", "pool": {"min": 1}}, "x": 1}
    b = {"db": {"pool": {"max": 10}}, "y": [1, 2]}
    c = {"db": {"host": "c"}, "y": [3]}

    left = merge_sources([a, b, c], MERGE_DEEP)
    right = merge_sources([deep_merge(a, b), c], MERGE_DEEP)
    assert left == right
    assert left == {"db": {"host": "c", "pool": {"min": 1, "max": 10}}, "x": 1, "y": [3]}


def test_overwrite_replaces_top_level_keys_wholesale():
    """
    Verifica que `overwrite` substitui chaves de topo inteiras, sem
    checagem estrutural.
    """
    _require_imports()
    sources = [RawConfig("a", {"db": {"host": "a", "port": 1}}), RawConfig("b", {"db": "url"})]
    assert merge_sources(sources, MERGE_OVERWRITE) == {"db": "url"}


def test_shallow_merge_replaces_nested_objects_and_checks_structure():
    """
    Verifica que `shallow-merge` substitui objetos aninhados inteiros e
    rejeita troca mapa ↔ não-mapa.
    """
    _require_imports()
    sources = [RawConfig("a", {"db": {"host": "a", "port": 1}}), RawConfig("b", {"db": {"host": "b"}})]
    assert merge_sources(sources, MERGE_SHALLOW) == {"db": {"host": "b"}}

    with pytest.raises(ConfigTypeConflictError):
        merge_sources([RawConfig("a", {"db": {"host": "a"}}), RawConfig("b", {"db": 1})], MERGE_SHALLOW)


def test_priority_based_orders_by_priority_then_declaration():
    """
    Verifica que `priority-based` aplica fontes por prioridade crescente
    (maior vence) e preserva a ordem de declaração em empates.
    """
    _require_imports()
    sources = [
        RawConfig("high", {"v": "high"}, priority=10),
        RawConfig("low", {"v": "low", "only_low": True}, priority=1),
        RawConfig("tie-1", {"t": 1}, priority=5),
        RawConfig("tie-2", {"t": 2}, priority=5),
    ]
    out = merge_sources(sources, MERGE_PRIORITY)
    assert out == {"v": "high", "only_low": True, "t": 2}


def test_custom_strategy_folds_host_function():
    """
    Verifica que `custom` aplica a função do host em fold, na ordem das
    fontes, e exige a função.
    """
    _require_imports()

    def concat_lists(base, override):
        out = dict(base)
        for key, value in override.items():
            if isinstance(value, list) and isinstance(out.get(key), list):
                out[key] = out[key] + value
            else:
                out[key] = value
        return out

    sources = [RawConfig("a", {"tags": ["a"]}), RawConfig("b", {"tags": ["b"]})]
    assert merge_sources(sources, MERGE_CUSTOM, custom_merge=concat_lists) == {"tags": ["a", "b"]}

    with pytest.raises(ConfigError):
        merge_sources(sources, MERGE_CUSTOM)


def test_unknown_strategy_raises():
    _require_imports()
    with pytest.raises(ConfigError):
        merge_sources([{"a": 1}], "zip-merge")


def test_merge_sources_does_not_mutate_inputs():
    _require_imports()
    a = {"db": {"host": "a"}}
    b = {"db": {"port": 1}}
    out = merge_sources([a, b], MERGE_DEEP)
    out["db"]["host"] = "changed"
    assert a == {"db": {"host": "a"}}
    assert b == {"db": {"port": 1}}
