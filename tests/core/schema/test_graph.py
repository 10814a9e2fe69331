# tests/core/schema/test_graph.py
"""
Testes do grafo de dependências entre campos.

Este módulo valida ordenação topológica determinística, detecção de
ciclos e consultas de dependências/dependentes/conflitos.

Invariantes verificadas:
    - Nenhum caminho aparece antes de suas dependências
    - Empates seguem a ordem de inserção dos nós
    - Arestas `conflicts` nunca restringem a ordem
    - Ciclos levantam SchemaError(CIRCULAR_DEPENDENCY)
"""

import itertools
import random

import pytest

try:
    from safecfg.core.exceptions import SchemaError
    from safecfg.core.schema.graph import CONFLICTS, REQUIRES, DependencyGraph
except Exception as e:  # noqa: BLE001
    DependencyGraph = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"""Missing dependency graph. Implement:
- src/safecfg/core/schema/graph.py (DependencyGraph)
Import error: {_IMPORT_ERR}
""")


def _graph(nodes, edges):
    g = DependencyGraph()
    for n in nodes:
        g.add_node(n)
    for src, dst in edges:
        g.add_dependency(src, dst, REQUIRES)
    return g


def test_topological_order_respects_dependencies_and_declaration_ties():
    """
    Verifica dependências antes de dependentes e desempate pela ordem de
    declaração dos nós.
    """
    _require_imports()
    g = _graph(["c", "b", "a", "d"], [("c", "a"), ("b", "a")])
    assert g.get_topological_order() == ["a", "c", "b", "d"]


def test_topological_order_property_on_random_dags():
    """
    Para DAGs aleatórios (arestas só de índice maior para menor), toda
    dependência precede seu dependente.
    """
    _require_imports()
    rng = random.Random(7)
    for _ in range(25):
        nodes = [f"f{i}" for i in range(12)]
        shuffled = nodes[:]
        rng.shuffle(shuffled)
        edges = [(b, a) for a, b in itertools.combinations(nodes, 2) if rng.random() < 0.2]
        g = _graph(shuffled, edges)
        order = g.get_topological_order()
        assert sorted(order) == sorted(nodes)
        pos = {n: i for i, n in enumerate(order)}
        for src, dst in edges:
            assert pos[dst] < pos[src]


def test_cycle_detection_and_error():
    _require_imports()
    g = _graph(["a", "b", "c"], [("a", "b"), ("b", "c"), ("c", "a")])
    assert g.has_circular_dependency()
    cycle = g.find_cycle()
    assert cycle[0] == cycle[-1]
    assert set(cycle) == {"a", "b", "c"}

    with pytest.raises(SchemaError) as exc:
        g.get_topological_order()
    assert exc.value.code == "CIRCULAR_DEPENDENCY"


def test_self_loop_is_a_cycle():
    _require_imports()
    g = _graph(["a"], [("a", "a")])
    assert g.find_cycle() == ["a", "a"]


def test_conflicts_are_symmetric_and_do_not_constrain_order():
    _require_imports()
    g = _graph(["a", "b"], [])
    g.add_dependency("b", "a", CONFLICTS)
    g.add_dependency("a", "b", CONFLICTS)
    assert g.get_conflicts("a") == {"b"}
    assert g.get_conflicts("b") == {"a"}
    assert not g.has_circular_dependency()
    assert g.get_topological_order() == ["a", "b"]


def test_duplicate_edges_are_ignored_and_queries():
    _require_imports()
    g = _graph(["a", "b", "c"], [("b", "a"), ("b", "a"), ("c", "b")])
    assert g.get_dependencies("b") == ["a"]
    assert g.get_dependents("a") == ["b"]
    assert g.get_transitive_dependents("a") == ["b", "c"]
    assert len([e for e in g.edges() if e[2] == REQUIRES]) == 2


def test_unknown_edge_kind_raises():
    _require_imports()
    with pytest.raises(ValueError):
        DependencyGraph().add_dependency("a", "b", "likes")


def test_add_node_is_idempotent_and_queries_tolerate_unknown_paths():
    _require_imports()
    g = _graph(["a", "b"], [("a", "b")])
    g.add_node("a")
    assert g.nodes == ["a", "b"]
    assert g.get_topological_order() == ["b", "a"]
    assert g.get_conflicts("zzz") == set()
    assert g.get_dependencies("zzz") == []
    assert g.get_transitive_dependents("zzz") == []
    g.add_dependency("a", "b", CONFLICTS)
    assert g.edges() == [("a", "b", REQUIRES), ("a", "b", CONFLICTS), ("b", "a", CONFLICTS)]
