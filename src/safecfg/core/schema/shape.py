# src/safecfg/core/schema/shape.py
"""
Verificação estrutural de um mapa de configuração contra o schema compilado.

Diferente do engine de validação, `check_shape` não aplica defaults,
variáveis de ambiente, transforms nem regras: responde apenas se os dados
têm a forma que o schema descreve.

Tipos de divergência:
    - missing → folha `required` sem default ausente
    - type    → valor presente com tipo diferente do declarado
    - unknown → chave sem correspondência no schema
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from safecfg.core.paths import MISSING, get_in, join_path
from safecfg.core.validation.validators import check_type, describe_type

from .types import CompiledSchema


MISSING_LEAF = "missing"
WRONG_TYPE = "type"
UNKNOWN_LEAF = "unknown"


@dataclass(frozen=True)
class ShapeMismatch:
    path: str
    kind: str
    expected: Optional[str] = None
    actual: Optional[str] = None


def check_shape(data: Mapping[str, Any], compiled: CompiledSchema) -> List[ShapeMismatch]:
    out: List[ShapeMismatch] = []

    for field in compiled.ordered():
        value = get_in(data, field.segments)
        if value is MISSING or value is None:
            if field.required and not field.has_default:
                out.append(ShapeMismatch(field.path, MISSING_LEAF, expected=field.type.value))
            continue
        if not check_type(value, field.type):
            out.append(ShapeMismatch(field.path, WRONG_TYPE, expected=field.type.value, actual=describe_type(value)))

    def walk(node: Mapping[str, Any], prefix: Tuple[str, ...]) -> None:
        for key, value in node.items():
            segments = prefix + (str(key),)
            path = join_path(segments)
            if path in compiled.paths:
                continue
            if compiled.is_container(path):
                if isinstance(value, Mapping):
                    walk(value, segments)
                else:
                    out.append(ShapeMismatch(path, WRONG_TYPE, expected="object", actual=describe_type(value)))
                continue
            out.append(ShapeMismatch(path, UNKNOWN_LEAF, actual=describe_type(value)))

    walk(data, ())
    return out
