# src/safecfg/core/schema/graph.py
"""
Grafo de dependências entre campos do schema.

Este módulo mantém as relações declaradas entre caminhos de campos e
produz a ordem de avaliação usada pelo engine de validação.

Tipos de aresta:
    - requires  → `from` depende de `to`; define ordem de avaliação
    - conflicts → `from` e `to` são mutuamente exclusivos; simétrica,
                  apenas consultiva, nunca restringe a ordem

Princípios fundamentais:
    - O subgrafo `requires` deve formar um DAG
    - A ordenação é determinística para a mesma entrada
    - Empates são resolvidos pela ordem de declaração dos campos

Decisões arquiteturais:
    - Detecção de ciclos via DFS com marcação cinza/preto
    - Ordenação topológica via algoritmo de Kahn com fila por índice
      de declaração (heap)
    - Ciclos são tratados como erro de schema fatal

Invariantes:
    - Nenhum caminho aparece antes de suas dependências
    - Todos os caminhos aparecem exatamente uma vez na ordem
    - Arestas idênticas duplicadas são ignoradas

Limites explícitos:
    - Não valida valores
    - Não conhece tipos de campo
"""

from __future__ import annotations

import heapq
from typing import Dict, List, Optional, Set, Tuple

from safecfg.core.exceptions import SchemaError


REQUIRES = "requires"
CONFLICTS = "conflicts"
EDGE_KINDS = (REQUIRES, CONFLICTS)

CIRCULAR_DEPENDENCY = "CIRCULAR_DEPENDENCY"

_WHITE, _GRAY, _BLACK = 0, 1, 2


class DependencyGraph:
    """Grafo dirigido de arestas `requires`/`conflicts` entre caminhos."""

    def __init__(self) -> None:
        self._index: Dict[str, int] = {}
        self._requires: Dict[str, List[str]] = {}
        self._dependents: Dict[str, List[str]] = {}
        self._conflicts: Dict[str, Set[str]] = {}

    # -----------------------------
    # Construção
    # -----------------------------
    def add_node(self, path: str) -> None:
        """Registra `path` como nó; idempotente, preserva o índice de declaração."""
        if path not in self._index:
            self._index[path] = len(self._index)
            self._requires[path] = []
            self._dependents[path] = []
            self._conflicts[path] = set()

    def add_dependency(self, from_path: str, to_path: str, kind: str = REQUIRES) -> None:
        """
        Adiciona uma aresta entre dois caminhos, registrando os nós se preciso.

        Args:
            from_path: Caminho dependente (ou um dos lados do conflito).
            to_path: Caminho do qual `from_path` depende.
            kind: `requires` (ordena a avaliação) ou `conflicts`
                (simétrica, não afeta a ordem).

        Invariantes:
            - Arestas `requires` duplicadas são ignoradas
            - Uma aresta `conflicts` é registrada nos dois sentidos

        Raises:
            ValueError: Se `kind` não for um tipo de aresta conhecido.
        """
        if kind not in EDGE_KINDS:
            raise ValueError(f"Unknown edge kind: {kind!r}")
        self.add_node(from_path)
        self.add_node(to_path)

        if kind == CONFLICTS:
            self._conflicts[from_path].add(to_path)
            self._conflicts[to_path].add(from_path)
            return

        if to_path not in self._requires[from_path]:
            self._requires[from_path].append(to_path)
            self._dependents[to_path].append(from_path)

    # -----------------------------
    # Consulta
    # -----------------------------
    @property
    def nodes(self) -> List[str]:
        return sorted(self._index, key=self._index.__getitem__)

    def __contains__(self, path: object) -> bool:
        return path in self._index

    def get_dependencies(self, path: str) -> List[str]:
        """Dependências diretas (`requires`) de `path`, na ordem de declaração das arestas."""
        return list(self._requires.get(path, []))

    def get_dependents(self, path: str) -> List[str]:
        """Caminhos que dependem diretamente de `path`."""
        return list(self._dependents.get(path, []))

    def get_transitive_dependents(self, path: str) -> List[str]:
        """
        Todos os caminhos alcançáveis a partir de `path` pelas arestas
        `requires` invertidas, ordenados pelo índice de declaração.

        Usado na revalidação parcial: alterar `path` invalida o resultado
        de todos os seus dependentes. `path` não faz parte do retorno.
        """
        seen: Set[str] = set()
        stack = [path]
        out: List[str] = []
        while stack:
            current = stack.pop()
            for child in self._dependents.get(current, []):
                if child not in seen:
                    seen.add(child)
                    out.append(child)
                    stack.append(child)
        return sorted(out, key=self._index.__getitem__)

    def get_conflicts(self, path: str) -> Set[str]:
        """Caminhos em conflito com `path` (cópia; vazio para nós desconhecidos)."""
        return set(self._conflicts.get(path, set()))

    def edges(self) -> List[Tuple[str, str, str]]:
        """
        Lista `(from, to, kind)`: primeiro todas as arestas `requires`, depois
        as `conflicts` (cada par aparece nos dois sentidos).
        """
        out: List[Tuple[str, str, str]] = []
        for src in self.nodes:
            out.extend((src, dst, REQUIRES) for dst in self._requires[src])
        for src in self.nodes:
            out.extend((src, dst, CONFLICTS) for dst in sorted(self._conflicts[src], key=self._index.__getitem__))
        return out

    # -----------------------------
    # Ciclos
    # -----------------------------
    def find_cycle(self) -> Optional[List[str]]:
        """Retorna um ciclo do subgrafo `requires` (ex.: [a, b, a]) ou None."""
        color: Dict[str, int] = {n: _WHITE for n in self._index}
        parent: Dict[str, Optional[str]] = {}

        for root in self.nodes:
            if color[root] != _WHITE:
                continue
            color[root] = _GRAY
            parent[root] = None
            stack: List[Tuple[str, int]] = [(root, 0)]
            while stack:
                node, i = stack[-1]
                deps = self._requires[node]
                if i < len(deps):
                    stack[-1] = (node, i + 1)
                    nxt = deps[i]
                    if color[nxt] == _GRAY:
                        cycle = [nxt]
                        cur: Optional[str] = node
                        while cur is not None and cur != nxt:
                            cycle.append(cur)
                            cur = parent[cur]
                        cycle.append(nxt)
                        cycle.reverse()
                        return cycle
                    if color[nxt] == _WHITE:
                        color[nxt] = _GRAY
                        parent[nxt] = node
                        stack.append((nxt, 0))
                else:
                    color[node] = _BLACK
                    stack.pop()
        return None

    def has_circular_dependency(self) -> bool:
        """Indica se o subgrafo `requires` contém ciclo; arestas `conflicts` não contam."""
        return self.find_cycle() is not None

    # -----------------------------
    # Ordenação
    # -----------------------------
    def get_topological_order(self) -> List[str]:
        """
        Ordem topológica determinística do subgrafo `requires`.

        Sempre que múltiplos caminhos estiverem prontos, o de menor índice
        de declaração é escolhido primeiro.

        Raises:
            SchemaError: (CIRCULAR_DEPENDENCY) se houver ciclo.
        """
        incoming: Dict[str, int] = {n: len(self._requires[n]) for n in self._index}
        ready: List[Tuple[int, str]] = [(self._index[n], n) for n, c in incoming.items() if c == 0]
        heapq.heapify(ready)

        order: List[str] = []
        while ready:
            _, node = heapq.heappop(ready)
            order.append(node)
            for child in self._dependents[node]:
                incoming[child] -= 1
                if incoming[child] == 0:
                    heapq.heappush(ready, (self._index[child], child))

        if len(order) != len(self._index):
            cycle = self.find_cycle() or [n for n in self.nodes if n not in set(order)]
            raise SchemaError(
                f"Circular dependency detected involving '{cycle[0]}'",
                CIRCULAR_DEPENDENCY,
                {"cycle": cycle},
                path=cycle[0],
            )
        return order
