# src/safecfg/core/paths.py
"""Acesso a valores aninhados por caminho pontuado (`db.host`).

Caminhos são manipulados como tuplas de segmentos; a forma textual
pontuada existe apenas para exibição e chaves de tabela.
"""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping, Sequence, Tuple, Union


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:  # pragma: no cover
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

PathLike = Union[str, Sequence[str]]


def split_path(path: PathLike) -> Tuple[str, ...]:
    """Normaliza `path` em tupla de segmentos; segmentos vazios são descartados."""
    if isinstance(path, str):
        return tuple(p for p in path.split(".") if p != "")
    return tuple(path)


def join_path(segments: Sequence[str]) -> str:
    return ".".join(segments)


def get_in(data: Any, path: PathLike, default: Any = MISSING) -> Any:
    """
    Lê o valor em `path`.

    Retorna `default` (por padrão `MISSING`) quando algum segmento não
    existe ou atravessa um valor não-mapa; um `None` presente é devolvido
    como `None`, o que permite distinguir ausência de nulo explícito.
    """
    current = data
    for segment in split_path(path):
        if isinstance(current, Mapping) and segment in current:
            current = current[segment]
        else:
            return default
    return current


def set_in(data: MutableMapping[str, Any], path: PathLike, value: Any) -> None:
    """Atribui `value` no caminho, criando mapas intermediários.

    Um valor não-mapa no meio do caminho é substituído por um mapa; quem
    precisa preservar esse valor deve checar os ancestrais antes.

    Raises:
        ValueError: Se `path` for vazio.
    """
    segments = split_path(path)
    if not segments:
        raise ValueError("path must not be empty")
    current = data
    for segment in segments[:-1]:
        nxt = current.get(segment)
        if not isinstance(nxt, MutableMapping):
            nxt = {}
            current[segment] = nxt
        current = nxt
    current[segments[-1]] = value


def delete_in(data: MutableMapping[str, Any], path: PathLike) -> bool:
    """Remove a chave em `path`; retorna False se ela não existir."""
    segments = split_path(path)
    if not segments:
        return False
    parent = get_in(data, segments[:-1]) if len(segments) > 1 else data
    if isinstance(parent, MutableMapping) and segments[-1] in parent:
        del parent[segments[-1]]
        return True
    return False
