# src/safecfg/core/schema/builder.py
"""
Construção fluente de schemas.

Exemplo:

    schema = (
        SchemaBuilder()
        .field("db.host", string().required())
        .field("db.port", number().default(5432).min(1).max(65535))
        .field("db.password", string().secret().env("DB_PASSWORD"))
        .build()
    )

O resultado é um mapa de schema comum, aceito por `compile_schema` e
`SafeCfg`; nenhuma validação semântica acontece aqui além de colisões
de caminho.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Dict, Mapping, Union

from safecfg.core.exceptions import SchemaError
from safecfg.core.paths import split_path


class FieldBuilder:
    def __init__(self, type_name: str) -> None:
        self._node: Dict[str, Any] = {"type": type_name}

    def _with(self, key: str, value: Any) -> "FieldBuilder":
        self._node[key] = value
        return self

    def required(self, flag: bool = True) -> "FieldBuilder":
        return self._with("required", flag)

    def default(self, value: Any) -> "FieldBuilder":
        return self._with("default", value)

    def description(self, text: str) -> "FieldBuilder":
        return self._with("description", text)

    def env(self, name: str) -> "FieldBuilder":
        return self._with("env", name)

    def secret(self, flag: bool = True) -> "FieldBuilder":
        return self._with("secret", flag)

    def pattern(self, regex: Any) -> "FieldBuilder":
        return self._with("pattern", regex)

    def enum(self, *values: Any) -> "FieldBuilder":
        return self._with("enum", list(values))

    def min(self, value: float) -> "FieldBuilder":
        return self._with("min", value)

    def max(self, value: float) -> "FieldBuilder":
        return self._with("max", value)

    def min_length(self, value: int) -> "FieldBuilder":
        return self._with("min_length", value)

    def max_length(self, value: int) -> "FieldBuilder":
        return self._with("max_length", value)

    def required_when(self, condition: Any) -> "FieldBuilder":
        return self._with("required_when", condition)

    def depends_on(self, *paths: str) -> "FieldBuilder":
        return self._with("depends_on", list(paths))

    def conflicts_with(self, *paths: str) -> "FieldBuilder":
        return self._with("conflicts_with", list(paths))

    def validate(self, *validators: Any) -> "FieldBuilder":
        return self._with("validate", list(validators))

    def transform(self, transformer: Any) -> "FieldBuilder":
        return self._with("transform", transformer)

    def coerce(self, flag: bool = True) -> "FieldBuilder":
        return self._with("coerce", flag)

    def deprecated(self, note: Union[bool, str] = True) -> "FieldBuilder":
        return self._with("deprecated", note)

    def examples(self, *values: Any) -> "FieldBuilder":
        return self._with("examples", list(values))

    def build(self) -> Dict[str, Any]:
        return dict(self._node)


def string() -> FieldBuilder:
    return FieldBuilder("string")


def number() -> FieldBuilder:
    return FieldBuilder("number")


def boolean() -> FieldBuilder:
    return FieldBuilder("boolean")


def array() -> FieldBuilder:
    return FieldBuilder("array")


def obj() -> FieldBuilder:
    return FieldBuilder("object")


class SchemaBuilder:
    def __init__(self) -> None:
        self._schema: Dict[str, Any] = {}

    def field(self, path: str, node: Union[FieldBuilder, Mapping[str, Any]]) -> "SchemaBuilder":
        leaf = node.build() if isinstance(node, FieldBuilder) else dict(node)
        segments = split_path(path)
        if not segments:
            raise SchemaError("Field path must not be empty", "INVALID_NODE")

        current = self._schema
        for i, segment in enumerate(segments[:-1]):
            child = current.setdefault(segment, {})
            if isinstance(child.get("type"), str):
                raise SchemaError(
                    f"Cannot nest '{path}' under field '{'.'.join(segments[:i + 1])}'",
                    "DUPLICATE_PATH",
                    path=path,
                )
            current = child

        if segments[-1] in current:
            raise SchemaError(f"Field '{path}' is already declared", "DUPLICATE_PATH", path=path)
        current[segments[-1]] = leaf
        return self

    def build(self) -> Dict[str, Any]:
        return deepcopy(self._schema)
