# tests/core/schema/test_builder_and_shape.py
"""
Testes do SchemaBuilder fluente e da verificação estrutural `check_shape`.

`check_shape` é o substituto em runtime de tipos estáticos derivados do
schema: os testes o usam para afirmar que a configuração efetiva de um
load tem a forma declarada.
"""

import pytest

try:
    from safecfg.core.exceptions import SchemaError
    from safecfg.core.schema.builder import SchemaBuilder, array, boolean, number, obj, string
    from safecfg.core.schema.compiler import compile_schema
    from safecfg.core.schema.shape import MISSING_LEAF, UNKNOWN_LEAF, WRONG_TYPE, check_shape
except Exception as e:  # noqa: BLE001
    SchemaBuilder = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing schema builder/shape modules. Implement:\n"
            "- src/safecfg/core/schema/builder.py\n"
            "- src/safecfg/core/schema/shape.py\n"
            f"Import error: {_IMPORT_ERR}"
        )


def test_builder_produces_nested_schema_mapping():
    _require_imports()
    schema = (
        SchemaBuilder()
        .field("db.host", string().required())
        .field("db.port", number().default(5432).min(1).max(65535))
        .field("db.password", string().secret().env("DB_PASSWORD"))
        .field("features", array().default([]))
        .field("labels", obj())
        .field("debug", boolean().default(False))
        .build()
    )
    assert schema == {
        "db": {
            "host": {"type": "string", "required": True},
            "port": {"type": "number", "default": 5432, "min": 1, "max": 65535},
            "password": {"type": "string", "secret": True, "env": "DB_PASSWORD"},
        },
        "features": {"type": "array", "default": []},
        "labels": {"type": "object"},
        "debug": {"type": "boolean", "default": False},
    }
    compiled = compile_schema(schema)
    assert len(compiled) == 6


def test_builder_rejects_collisions():
    _require_imports()
    builder = SchemaBuilder().field("db", string())
    with pytest.raises(SchemaError):
        builder.field("db.host", string())
    with pytest.raises(SchemaError):
        builder.field("db", number())


def test_check_shape_reports_missing_type_and_unknown():
    _require_imports()
    compiled = compile_schema(
        {
            "db": {
                "host": {"type": "string", "required": True},
                "port": {"type": "number", "default": 5432},
            },
            "meta": {"type": "object"},
        }
    )
    mismatches = check_shape({"db": {"port": "5432", "extra": 1}, "meta": {"free": "form"}}, compiled)
    kinds = {(m.path, m.kind) for m in mismatches}
    assert kinds == {
        ("db.host", MISSING_LEAF),
        ("db.port", WRONG_TYPE),
        ("db.extra", UNKNOWN_LEAF),
    }


def test_check_shape_accepts_conforming_data():
    _require_imports()
    compiled = compile_schema({"db": {"host": {"type": "string", "required": True}}})
    assert check_shape({"db": {"host": "localhost"}}, compiled) == []
