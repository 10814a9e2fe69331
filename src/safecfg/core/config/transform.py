# src/safecfg/core/config/transform.py
"""
Camada de transformação e coerção de valores.

Após o merge das fontes e antes da validação, cada campo compilado
presente na configuração passa por:

    1. coerção best-effort para o tipo declarado (`coerce: true`)
    2. transformação declarada (`transform`), se `can_transform(value)`

Política de coerção (v1):
    - string → number   ("5432" → 5432, "0.5" → 0.5)
    - string → boolean  (true/false, yes/no, on/off, 1/0)
    - number/boolean → string
    - number → boolean  (apenas 0 e 1)
    - string → array    (JSON "[...]" ou lista separada por vírgulas)
    - string → object   (JSON "{...}")

Decisões arquiteturais:
    - Coerção não representável mantém o valor original; a regra de tipo
      do engine reporta a falha
    - Transformers são objetos nomeados (protocolo `Transformer`); o
      schema os referencia por nome ou por callable
    - O input nunca é mutado

Limites explícitos:
    - Não valida valores
    - Não resolve defaults nem variáveis de ambiente
"""

from __future__ import annotations

import inspect
import json
import math
import re
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol, Union, runtime_checkable

from safecfg.core.paths import MISSING, get_in, set_in
from safecfg.core.schema.types import CompiledPath, CompiledSchema, FieldType


_INT_RE = re.compile(r"^[+-]?\d+$")
_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


@dataclass(frozen=True)
class TransformContext:
    path: str
    schema: CompiledPath
    parent: Optional[Mapping[str, Any]] = None


@runtime_checkable
class Transformer(Protocol):
    """Contrato canônico de um transformer nomeado."""

    name: str

    def can_transform(self, value: Any) -> bool:
        ...

    def transform(self, value: Any, context: Optional[TransformContext] = None) -> Union[Any, Awaitable[Any]]:
        ...


class FunctionTransformer:
    """Adapta um callable `(value) -> value` ao protocolo `Transformer`."""

    def __init__(self, func: Callable[[Any], Any], name: Optional[str] = None) -> None:
        self.func = func
        self.name = name or getattr(func, "__name__", "transform")

    def can_transform(self, value: Any) -> bool:
        return True

    def transform(self, value: Any, context: Optional[TransformContext] = None) -> Any:
        return self.func(value)


class _StringTransformer:
    def __init__(self, name: str, func: Callable[[str], str]) -> None:
        self.name = name
        self._func = func

    def can_transform(self, value: Any) -> bool:
        return isinstance(value, str)

    def transform(self, value: Any, context: Optional[TransformContext] = None) -> Any:
        return self._func(value)


BUILTIN_TRANSFORMERS = (
    _StringTransformer("trim", str.strip),
    _StringTransformer("lowercase", str.lower),
    _StringTransformer("uppercase", str.upper),
)


# ---------------------------------------------------------------------------
# Coerção
# ---------------------------------------------------------------------------

def _to_number(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if _INT_RE.match(text):
            return int(text)
        try:
            number = float(text)
        except ValueError:
            return value
        return number if math.isfinite(number) else value
    return value


def _to_boolean(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    return value


def _to_string(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


def _to_array(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except ValueError:
                return value
            return parsed if isinstance(parsed, list) else value
        if not text:
            return []
        return [part.strip() for part in text.split(",")]
    return value


def _to_object(value: Any) -> Any:
    if isinstance(value, str) and value.strip().startswith("{"):
        try:
            parsed = json.loads(value)
        except ValueError:
            return value
        return parsed if isinstance(parsed, dict) else value
    return value


_COERCERS: Dict[FieldType, Callable[[Any], Any]] = {
    FieldType.NUMBER: _to_number,
    FieldType.BOOLEAN: _to_boolean,
    FieldType.STRING: _to_string,
    FieldType.ARRAY: _to_array,
    FieldType.OBJECT: _to_object,
}


def coerce_value(value: Any, target: FieldType) -> Any:
    """Coerção best-effort; devolve o valor original se não representável."""
    if value is None:
        return value
    return _COERCERS[FieldType(target)](value)


# ---------------------------------------------------------------------------
# Aplicação
# ---------------------------------------------------------------------------

def resolve_transformer(spec: Any, registry: Any = None) -> Optional[Any]:
    """Resolve `transform` do schema: nome registrado, Transformer ou callable."""
    if spec is None:
        return None
    if isinstance(spec, str):
        if registry is None or spec not in registry:
            raise KeyError(spec)
        return registry.get(spec)
    if hasattr(spec, "transform") and hasattr(spec, "can_transform"):
        return spec
    if callable(spec):
        return FunctionTransformer(spec)
    raise TypeError(f"transform must be a name, a Transformer or a callable, got {type(spec).__name__}")


async def transform_value(value: Any, field: CompiledPath, *, parent: Optional[Mapping[str, Any]] = None) -> Any:
    if field.coerce:
        value = coerce_value(value, field.type)

    transformer = field.transform
    if transformer is not None and transformer.can_transform(value):
        ctx = TransformContext(path=field.path, schema=field, parent=parent)
        outcome = transformer.transform(value, ctx)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        value = outcome
    return value


async def apply_transforms(data: Mapping[str, Any], compiled: CompiledSchema) -> Dict[str, Any]:
    """
    Aplica coerção e transforms a todos os campos presentes em `data`.

    Campos ausentes são ignorados: defaults e bindings de ambiente são
    resolvidos pelo engine de validação.

    Returns:
        Dict[str, Any]: Nova estrutura com os valores transformados.
    """
    result: Dict[str, Any] = deepcopy(dict(data))
    for field in compiled.ordered():
        if not field.coerce and field.transform is None:
            continue
        current = get_in(result, field.segments)
        if current is MISSING:
            continue
        parent = get_in(result, field.segments[:-1]) if len(field.segments) > 1 else result
        new_value = await transform_value(current, field, parent=parent)
        set_in(result, field.segments, new_value)
    return result
