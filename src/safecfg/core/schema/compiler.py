# src/safecfg/core/schema/compiler.py
"""
Compilador de schema do SafeCfg.

Este módulo transforma um schema declarativo aninhado em uma tabela plana
de `CompiledPath`, com regras de validação resolvidas, defaults, flags de
obrigatoriedade/segredo e metadados, além de popular o grafo de
dependências entre campos.

Estrutura de um schema:
    - Folha: mapa cujo `type` é uma string (string, number, boolean,
      array, object)
    - Container: mapa sem `type` string cujos valores são todos mapas
    - Um nó nunca é as duas coisas

Ordem fixa das regras por folha:
    type → enum → pattern → bounds (numérico / comprimento) → custom

Decisões arquiteturais:
    - Compilação ocorre uma única vez por instância de SafeCfg
    - Todas as inconsistências estruturais são `SchemaError` com código
      estável, levantadas antes de qualquer validação
    - Validadores e transformers customizados são referenciados por nome
      (registry) ou por callable, e resolvidos aqui
    - Chaves com ponto (`"db.host"`) são atalho para aninhamento

Invariantes:
    - Exatamente um CompiledPath por folha alcançável
    - Caminhos são únicos e nenhuma folha é prefixo de outra
    - O subgrafo `requires` resultante é acíclico

Limites explícitos:
    - Não valida valores de configuração
    - Não lê variáveis de ambiente
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from safecfg.core.exceptions import SchemaError
from safecfg.core.paths import MISSING, get_in, join_path
from safecfg.core.config.transform import BUILTIN_TRANSFORMERS, resolve_transformer
from safecfg.core.validation.registry import NamedRegistry
from safecfg.core.validation.validators import (
    EnumValidator,
    FunctionValidator,
    LengthValidator,
    PatternValidator,
    RangeValidator,
    TypeValidator,
    check_type,
)

from .graph import CONFLICTS, REQUIRES, DependencyGraph
from .types import FIELD_TYPES, CompiledPath, CompiledSchema, FieldType, PathMetadata, SchemaMetadata


logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 32

# Códigos de SchemaError
UNKNOWN_TYPE = "UNKNOWN_TYPE"
INVALID_CONSTRAINT = "INVALID_CONSTRAINT"
INVALID_PATTERN = "INVALID_PATTERN"
INVALID_NODE = "INVALID_NODE"
INVALID_DEFAULT = "INVALID_DEFAULT"
DUPLICATE_PATH = "DUPLICATE_PATH"
UNKNOWN_VALIDATOR = "UNKNOWN_VALIDATOR"
UNKNOWN_TRANSFORMER = "UNKNOWN_TRANSFORMER"
UNKNOWN_DEPENDENCY = "UNKNOWN_DEPENDENCY"
MAX_DEPTH_EXCEEDED = "MAX_DEPTH_EXCEEDED"

LEAF_KEYS = frozenset({
    "type", "required", "default", "description", "env", "secret",
    "pattern", "enum", "min", "max", "min_length", "max_length",
    "required_when", "depends_on", "conflicts_with",
    "validate", "transform", "coerce",
    "examples", "deprecated", "since", "category",
})

KEY_ALIASES = {
    "requiredWhen": "required_when",
    "dependsOn": "depends_on",
    "conflictsWith": "conflicts_with",
    "minLength": "min_length",
    "maxLength": "max_length",
}

CONDITION_OPERATORS = ("equals", "not_equals", "in", "present")


def default_transformers() -> NamedRegistry:
    registry: NamedRegistry = NamedRegistry(kind="transformer")
    registry.extend(BUILTIN_TRANSFORMERS)
    return registry


# ---------------------------------------------------------------------------
# Helpers de normalização
# ---------------------------------------------------------------------------

def _is_leaf(node: Mapping[str, Any]) -> bool:
    return isinstance(node.get("type"), str)


def _normalize_leaf(node: Mapping[str, Any], path: str) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in node.items():
        canonical = KEY_ALIASES.get(key, key)
        if canonical not in LEAF_KEYS:
            raise SchemaError(f"Unknown attribute '{key}' on field '{path}'", INVALID_NODE, path=path)
        if canonical in out:
            raise SchemaError(f"Attribute '{canonical}' declared twice on field '{path}'", INVALID_NODE, path=path)
        out[canonical] = value
    return out


def _as_path_list(value: Any, attr: str, path: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) and v.strip() for v in value):
        raise SchemaError(f"'{attr}' on '{path}' must be a path or a list of paths", INVALID_NODE, path=path)
    return tuple(dict.fromkeys(value))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _make_condition(spec: Mapping[str, Any], path: str) -> Tuple[Callable[[Dict[str, Any]], bool], str]:
    """Converte `required_when` declarativo em predicado sobre os valores."""
    target = spec.get("path")
    if not isinstance(target, str) or not target.strip():
        raise SchemaError(f"'required_when' on '{path}' must declare a 'path'", INVALID_NODE, path=path)
    ops = [op for op in CONDITION_OPERATORS if op in spec]
    extra = set(spec) - set(CONDITION_OPERATORS) - {"path"}
    if len(ops) != 1 or extra:
        raise SchemaError(
            f"'required_when' on '{path}' must declare exactly one of {', '.join(CONDITION_OPERATORS)}",
            INVALID_NODE,
            path=path,
        )
    op = ops[0]
    expected = spec[op]

    def condition(values: Dict[str, Any]) -> bool:
        current = get_in(values, target)
        if op == "present":
            return (current is not MISSING) == bool(expected)
        if current is MISSING:
            return False
        if op == "equals":
            return current == expected
        if op == "not_equals":
            return current != expected
        return current in expected

    condition.__name__ = f"required_when_{op}"
    return condition, target


# ---------------------------------------------------------------------------
# Compilação de folha
# ---------------------------------------------------------------------------

def _compile_rules(spec: Dict[str, Any], ftype: FieldType, path: str, validators: Optional[NamedRegistry]) -> Tuple[Any, ...]:
    rules: List[Any] = [TypeValidator(ftype)]

    if "enum" in spec and spec["enum"] is not None:
        allowed = spec["enum"]
        if not isinstance(allowed, (list, tuple)) or not allowed:
            raise SchemaError(f"'enum' on '{path}' must be a non-empty list", INVALID_CONSTRAINT, path=path)
        rules.append(EnumValidator(tuple(allowed)))

    if spec.get("pattern") is not None:
        if ftype is not FieldType.STRING:
            raise SchemaError(
                f"'pattern' is only valid for string fields ('{path}' is {ftype.value})",
                INVALID_CONSTRAINT,
                path=path,
            )
        raw = spec["pattern"]
        if isinstance(raw, re.Pattern):
            compiled = raw
        elif isinstance(raw, str):
            try:
                compiled = re.compile(raw)
            except re.error as e:
                raise SchemaError(f"Invalid pattern on '{path}': {e}", INVALID_PATTERN, {"pattern": raw}, path=path) from e
        else:
            raise SchemaError(f"'pattern' on '{path}' must be a string or compiled regex", INVALID_PATTERN, path=path)
        rules.append(PatternValidator(compiled))

    minimum, maximum = spec.get("min"), spec.get("max")
    if minimum is not None or maximum is not None:
        if ftype is not FieldType.NUMBER:
            raise SchemaError(
                f"'min'/'max' are only valid for number fields ('{path}' is {ftype.value})",
                INVALID_CONSTRAINT,
                path=path,
            )
        for name, bound in (("min", minimum), ("max", maximum)):
            if bound is not None and not _is_number(bound):
                raise SchemaError(f"'{name}' on '{path}' must be a number", INVALID_CONSTRAINT, path=path)
        if minimum is not None and maximum is not None and minimum > maximum:
            raise SchemaError(
                f"Constraint inconsistent on '{path}': min ({minimum}) > max ({maximum})",
                INVALID_CONSTRAINT,
                {"min": minimum, "max": maximum},
                path=path,
            )
        rules.append(RangeValidator(minimum, maximum))

    min_len, max_len = spec.get("min_length"), spec.get("max_length")
    if min_len is not None or max_len is not None:
        if ftype not in (FieldType.STRING, FieldType.ARRAY):
            raise SchemaError(
                f"Length bounds are only valid for string/array fields ('{path}' is {ftype.value})",
                INVALID_CONSTRAINT,
                path=path,
            )
        for name, bound in (("min_length", min_len), ("max_length", max_len)):
            if bound is not None and (not isinstance(bound, int) or isinstance(bound, bool) or bound < 0):
                raise SchemaError(f"'{name}' on '{path}' must be a non-negative integer", INVALID_CONSTRAINT, path=path)
        if min_len is not None and max_len is not None and min_len > max_len:
            raise SchemaError(
                f"Constraint inconsistent on '{path}': min_length ({min_len}) > max_length ({max_len})",
                INVALID_CONSTRAINT,
                path=path,
            )
        rules.append(LengthValidator(min_len, max_len))

    custom = spec.get("validate")
    if custom is not None:
        entries = custom if isinstance(custom, (list, tuple)) else [custom]
        for entry in entries:
            rules.append(_resolve_validator(entry, path, validators))

    return tuple(rules)


def _resolve_validator(entry: Any, path: str, validators: Optional[NamedRegistry]) -> Any:
    if isinstance(entry, str):
        if validators is None or entry not in validators:
            raise SchemaError(
                f"Unknown validator '{entry}' referenced by '{path}'",
                UNKNOWN_VALIDATOR,
                {"validator": entry},
                path=path,
            )
        return validators.get(entry)
    if hasattr(entry, "validate") and isinstance(getattr(entry, "name", None), str):
        return entry
    if callable(entry):
        return FunctionValidator(entry)
    raise SchemaError(f"'validate' on '{path}' must be a name, a Validator or a callable", INVALID_NODE, path=path)


def _compile_leaf(
    node: Mapping[str, Any],
    segments: Tuple[str, ...],
    index: int,
    validators: Optional[NamedRegistry],
    transformers: Optional[NamedRegistry],
) -> Tuple[CompiledPath, Optional[str]]:
    path = join_path(segments)
    spec = _normalize_leaf(node, path)

    type_name = spec["type"]
    if type_name not in FIELD_TYPES:
        raise SchemaError(
            f"Unknown type '{type_name}' on field '{path}'",
            UNKNOWN_TYPE,
            {"type": type_name, "allowed": sorted(FIELD_TYPES)},
            path=path,
        )
    ftype = FieldType(type_name)

    rules = _compile_rules(spec, ftype, path, validators)

    has_default = "default" in spec
    default_value = spec.get("default")
    if has_default and default_value is not None and not check_type(default_value, ftype):
        raise SchemaError(
            f"Default for '{path}' does not match type {ftype.value}",
            INVALID_DEFAULT,
            path=path,
        )

    env_var = spec.get("env")
    if env_var is not None and (not isinstance(env_var, str) or not env_var.strip()):
        raise SchemaError(f"'env' on '{path}' must be a non-empty string", INVALID_NODE, path=path)

    required_when = spec.get("required_when")
    condition_target: Optional[str] = None
    if required_when is not None:
        if isinstance(required_when, Mapping):
            required_when, condition_target = _make_condition(required_when, path)
        elif not callable(required_when):
            raise SchemaError(f"'required_when' on '{path}' must be a callable or a condition mapping", INVALID_NODE, path=path)

    transform = None
    if spec.get("transform") is not None:
        try:
            transform = resolve_transformer(spec["transform"], transformers)
        except KeyError:
            raise SchemaError(
                f"Unknown transformer '{spec['transform']}' referenced by '{path}'",
                UNKNOWN_TRANSFORMER,
                {"transformer": spec["transform"]},
                path=path,
            ) from None
        except TypeError as e:
            raise SchemaError(str(e), INVALID_NODE, path=path) from e

    examples = spec.get("examples") or ()
    metadata = PathMetadata(
        description=spec.get("description"),
        examples=tuple(examples) if isinstance(examples, (list, tuple)) else (examples,),
        deprecated=spec.get("deprecated", False),
        since=spec.get("since"),
        category=spec.get("category"),
    )

    compiled = CompiledPath(
        path=path,
        segments=segments,
        type=ftype,
        rules=rules,
        required=bool(spec.get("required", False)),
        required_when=required_when,
        default_value=default_value,
        has_default=has_default,
        is_secret=bool(spec.get("secret", False)),
        env_var=env_var,
        depends_on=_as_path_list(spec.get("depends_on"), "depends_on", path),
        conflicts_with=_as_path_list(spec.get("conflicts_with"), "conflicts_with", path),
        transform=transform,
        coerce=bool(spec.get("coerce", False)),
        metadata=metadata,
        index=index,
    )
    return compiled, condition_target


# ---------------------------------------------------------------------------
# API pública
# ---------------------------------------------------------------------------

def compile_schema(
    schema: Mapping[str, Any],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    validators: Optional[NamedRegistry] = None,
    transformers: Optional[NamedRegistry] = None,
    metadata: Optional[SchemaMetadata] = None,
) -> CompiledSchema:
    """
    Compila um schema declarativo em um `CompiledSchema` imutável.

    Args:
        schema: Definição aninhada de campos.
        max_depth: Profundidade máxima de aninhamento permitida.
        validators: Registry de validadores nomeados do host.
        transformers: Registry de transformers nomeados (default: embutidos).
        metadata: Metadados do schema (versão, autor, ...).

    Returns:
        CompiledSchema: Tabela de caminhos, grafo e ordem de avaliação.

    Raises:
        SchemaError: Para qualquer inconsistência estrutural (ver códigos
            neste módulo e `CIRCULAR_DEPENDENCY` do grafo).
    """
    if not isinstance(schema, Mapping):
        raise SchemaError(f"Schema root must be a mapping, got {type(schema).__name__}", INVALID_NODE)
    if transformers is None:
        transformers = default_transformers()

    paths: Dict[str, CompiledPath] = {}
    conditions: Dict[str, str] = {}
    prefixes: Set[str] = set()

    def walk(node: Mapping[str, Any], prefix: Tuple[str, ...]) -> None:
        for key, child in node.items():
            if not isinstance(key, str) or not key.strip():
                raise SchemaError(f"Schema keys must be non-empty strings (under '{join_path(prefix)}')", INVALID_NODE)
            segments = prefix + tuple(key.split("."))
            path = join_path(segments)

            if len(segments) > max_depth:
                raise SchemaError(
                    f"Schema nesting exceeds maximum depth of {max_depth} at '{path}'",
                    MAX_DEPTH_EXCEEDED,
                    {"max_depth": max_depth},
                    path=path,
                )
            if not isinstance(child, Mapping):
                raise SchemaError(
                    f"Field '{path}' must be a mapping, got {type(child).__name__}",
                    INVALID_NODE,
                    path=path,
                )

            if _is_leaf(child):
                if path in paths:
                    raise SchemaError(f"Duplicate path after flattening: '{path}'", DUPLICATE_PATH, path=path)
                compiled, target = _compile_leaf(child, segments, len(paths), validators, transformers)
                paths[path] = compiled
                if target is not None:
                    conditions[path] = target
                for i in range(1, len(segments)):
                    prefixes.add(join_path(segments[:i]))
                continue

            if "type" in child and child["type"] is not None and not isinstance(child["type"], Mapping):
                raise SchemaError(
                    f"'type' on '{path}' must be a string",
                    UNKNOWN_TYPE,
                    {"type": repr(child["type"])},
                    path=path,
                )
            stray = [k for k, v in child.items() if not isinstance(v, Mapping)]
            if stray:
                raise SchemaError(
                    f"Field '{path}' declares attributes {stray} but no 'type'",
                    INVALID_NODE,
                    {"attributes": stray},
                    path=path,
                )
            prefixes.add(path)
            walk(child, segments)

    walk(schema, ())

    overlapping = sorted(p for p in paths if p in prefixes)
    if overlapping:
        raise SchemaError(
            f"Path '{overlapping[0]}' is declared both as a field and as a container",
            DUPLICATE_PATH,
            {"paths": overlapping},
            path=overlapping[0],
        )

    graph = DependencyGraph()
    for path in paths:
        graph.add_node(path)

    for path, compiled in paths.items():
        for target in compiled.depends_on:
            _require_known(target, path, "depends_on", paths)
            graph.add_dependency(path, target, REQUIRES)
        if path in conditions:
            _require_known(conditions[path], path, "required_when", paths)
            graph.add_dependency(path, conditions[path], REQUIRES)
        for target in compiled.conflicts_with:
            _require_known(target, path, "conflicts_with", paths)
            graph.add_dependency(path, target, CONFLICTS)

    # levanta SchemaError(CIRCULAR_DEPENDENCY) em caso de ciclo
    order = graph.get_topological_order()

    result = CompiledSchema(
        paths=paths,
        dependencies=graph,
        order=tuple(order),
        metadata=metadata or SchemaMetadata(),
        prefixes=frozenset(prefixes),
    )
    logger.debug("compiled schema: %d fields, %d edges", len(paths), len(graph.edges()))
    return result


def _require_known(target: str, path: str, attr: str, paths: Mapping[str, CompiledPath]) -> None:
    if target == path:
        if attr == "conflicts_with":
            raise SchemaError(f"Field '{path}' cannot conflict with itself", INVALID_NODE, path=path)
        return
    if target not in paths:
        raise SchemaError(
            f"Field '{path}' references unknown path '{target}' in '{attr}'",
            UNKNOWN_DEPENDENCY,
            {"reference": target, "attribute": attr},
            path=path,
        )
