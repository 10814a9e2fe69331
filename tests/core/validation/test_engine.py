# tests/core/validation/test_engine.py
"""
Testes do engine de validação.

Este módulo valida o algoritmo de validação campo a campo e os passes
globais:

- precedência de valores: explícito > ambiente > default
- presença (`required`, `required_when`)
- regras em ordem, com curto-circuito em falha fatal
- validadores assíncronos e validadores que levantam exceção
- `depends_on`, `conflicts_with`, depreciação e protocolos permitidos
- política de campos desconhecidos e `stop_on_first_error`
- conversão de falhas inesperadas em INTERNAL_ERROR

Decisões arquiteturais:
    - O engine é exercitado diretamente via `validate_sync`, sem fontes
      nem transformação
    - O provedor de ambiente é sempre injetado
"""

import asyncio

import pytest

try:
    from safecfg.core.options import SafeCfgOptions
    from safecfg.core.schema.compiler import compile_schema
    from safecfg.core.validation.context import ValidationContext
    from safecfg.core.validation.engine import REDACTED, ValidationEngine
    from safecfg.core.validation.types import ValidatorResult
except Exception as e:  # noqa: BLE001
    ValidationEngine = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    """
    Garante que o engine de validação esteja disponível para os testes.
    """
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing validation engine. Implement:\n"
            "- src/safecfg/core/validation/engine.py (ValidationEngine)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _engine(schema, options=None, **kwargs):
    return ValidationEngine(compile_schema(schema), SafeCfgOptions.from_dict(options), **kwargs)


def _codes(result):
    return [(e.path, e.code) for e in result.errors]


def test_missing_field_with_default_takes_default(db_schema):
    """
    Para qualquer config sem um campo com default, o valor efetivo é o
    default e nenhum REQUIRED_FIELD_MISSING é registrado.
    """
    _require_imports()
    result = _engine(db_schema).validate_sync({"db": {"host": "localhost"}})
    assert result.valid
    assert result.data == {"db": {"host": "localhost", "port": 5432}}
    assert result.summary.total_fields == 2
    assert result.summary.validated_fields == 2


def test_required_missing_is_fatal(db_schema):
    _require_imports()
    result = _engine(db_schema).validate_sync({"db": {}})
    assert not result.valid
    assert _codes(result) == [("db.host", "REQUIRED_FIELD_MISSING")]
    assert result.errors[0].severity == "fatal"
    assert result.errors[0].is_fatal
    assert result.errors_for("db.port") == ()
    assert result.to_dict()["summary"]["error_count"] == 1


def test_defaults_are_deep_copied():
    _require_imports()
    engine = _engine({"tags": {"type": "array", "default": ["a"]}})
    first = engine.validate_sync({})
    first.data["tags"].append("mutated")
    assert engine.validate_sync({}).data == {"tags": ["a"]}


def test_env_binding_precedence_and_coercion():
    """
    Verifica explícito > env > default, com coerção do valor de ambiente
    para o tipo declarado.
    """
    _require_imports()
    schema = {"port": {"type": "number", "env": "APP_PORT", "default": 80}}
    engine = _engine(schema, env={"APP_PORT": "8080"})
    assert engine.validate_sync({}).data == {"port": 8080}
    assert engine.validate_sync({"port": 9000}).data == {"port": 9000}
    assert _engine(schema, env={}).validate_sync({}).data == {"port": 80}

    bad = _engine(schema, env={"APP_PORT": "eighty"}).validate_sync({})
    assert _codes(bad) == [("port", "INVALID_TYPE")]


def test_required_when_callable_sees_resolved_dependency_values():
    _require_imports()
    schema = {
        "tls": {
            "enabled": {"type": "boolean", "default": True},
            "cert": {
                "type": "string",
                "required_when": {"path": "tls.enabled", "equals": True},
            },
        },
        "proxy": {
            "type": "string",
            "required_when": lambda values: values.get("tls", {}).get("enabled") is False,
        },
    }
    engine = _engine(schema)
    missing = engine.validate_sync({})
    assert _codes(missing) == [("tls.cert", "REQUIRED_FIELD_MISSING")]
    assert missing.errors[0].details["reason"] == "required_when"

    disabled = engine.validate_sync({"tls": {"enabled": False}})
    assert _codes(disabled) == [("proxy", "REQUIRED_FIELD_MISSING")]


def test_required_when_callable_sees_later_declared_defaults():
    """
    O predicado roda contra valores já resolvidos, mesmo quando o campo
    lido é declarado depois e recebe valor por default ou ambiente.
    """
    _require_imports()
    schema = {
        "cert": {"type": "string", "required_when": lambda values: values.get("mode") == "tls"},
        "mode": {"type": "string", "default": "tls", "env": "APP_MODE"},
    }
    defaulted = _engine(schema).validate_sync({})
    assert _codes(defaulted) == [("cert", "REQUIRED_FIELD_MISSING")]
    assert defaulted.errors[0].details["reason"] == "required_when"

    from_env = _engine(schema, env={"APP_MODE": "plain"}).validate_sync({})
    assert from_env.valid
    assert from_env.data == {"mode": "plain"}

    assert _engine(schema).validate_sync({"cert": "/etc/tls.pem"}).valid


def test_resolution_keeps_env_and_default_origins():
    _require_imports()
    schema = {
        "old": {"type": "string", "deprecated": "use 'new'", "default": "x"},
        "a": {"type": "number", "conflicts_with": ["b"]},
        "b": {"type": "number", "env": "APP_B", "default": 2},
    }
    result = _engine(schema, env={"APP_B": "3"}).validate_sync({"a": 1})
    assert result.warnings == ()
    assert _codes(result) == [("a", "CONFLICTING_FIELDS")]


@pytest.mark.parametrize("policy", ["ignore", "warning", "error"])
def test_scalar_in_place_of_container_is_rejected_under_every_policy(policy):
    _require_imports()
    schema = {"db": {"port": {"type": "number", "default": 5432}, "host": {"type": "string", "required": True}}}
    result = _engine(schema, {"validation": {"unknown_fields": policy}}).validate_sync({"db": "oops"})
    assert result.valid is False
    assert _codes(result) == [("db", "INVALID_TYPE")]
    assert result.errors[0].details == {"expected": "object"}
    assert result.data == {"db": "oops"}
    assert result.warnings == ()


def test_scalar_container_blocks_dependent_rules():
    _require_imports()
    schema = {
        "db": {"host": {"type": "string"}},
        "pool": {"type": "number", "min": 10, "depends_on": ["db.host"]},
    }
    result = _engine(schema).validate_sync({"db": 7, "pool": 1})
    assert _codes(result) == [("db", "INVALID_TYPE")]


def test_null_container_takes_nested_defaults():
    _require_imports()
    schema = {"db": {"port": {"type": "number", "default": 5432}}}
    result = _engine(schema).validate_sync({"db": None})
    assert result.valid
    assert result.data == {"db": {"port": 5432}}


def test_fatal_rule_short_circuits_only_that_field():
    _require_imports()
    calls = []

    def spy(value, context):
        calls.append(value)
        return True

    schema = {
        "a": {"type": "number", "min": 10, "validate": spy},
        "b": {"type": "number", "min": 10},
    }
    result = _engine(schema).validate_sync({"a": "x", "b": 1})
    assert _codes(result) == [("a", "INVALID_TYPE"), ("b", "VALUE_TOO_SMALL")]
    assert calls == []


def test_non_fatal_errors_accumulate_on_a_field():
    _require_imports()
    schema = {"name": {"type": "string", "enum": ["abcdef"], "pattern": "^[0-9]+$", "max_length": 2}}
    result = _engine(schema).validate_sync({"name": "xyz"})
    assert [e.code for e in result.errors] == ["INVALID_ENUM_VALUE", "PATTERN_MISMATCH", "LENGTH_TOO_LONG"]


def test_async_validators_and_validator_results():
    _require_imports()

    async def reachable(value, context):
        await asyncio.sleep(0)
        return ValidatorResult(valid=True, warning="host resolved via fallback DNS", severity="low")

    class Quota:
        name = "quota"

        async def validate(self, value, path, context):
            return ValidatorResult(valid=value <= 5, code="QUOTA_EXCEEDED", message=f"{path} over quota")

    schema = {
        "host": {"type": "string", "validate": reachable},
        "workers": {"type": "number", "validate": Quota()},
    }
    result = _engine(schema).validate_sync({"host": "db", "workers": 9})
    assert _codes(result) == [("workers", "QUOTA_EXCEEDED")]
    assert [(w.path, w.code, w.severity) for w in result.warnings] == [
        ("host", "CUSTOM_VALIDATION_WARNING", "low")
    ]


def test_raising_validator_becomes_validator_failed():
    _require_imports()

    def broken(value, context):
        raise RuntimeError("lookup service down")

    result = _engine({"host": {"type": "string", "validate": broken}}).validate_sync({"host": "db"})
    assert _codes(result) == [("host", "VALIDATOR_FAILED")]
    assert result.errors[0].details["exception_class"] == "RuntimeError"


def test_secret_values_never_appear_in_issues():
    _require_imports()

    def echo(value, context):
        return ValidatorResult(valid=False, message=f"bad secret {value}", details={"value": value})

    schema = {"token": {"type": "string", "secret": True, "validate": echo}}
    result = _engine(schema).validate_sync({"token": "tok-123456"})
    issue = result.errors[0]
    assert "tok-123456" not in issue.message
    assert REDACTED in issue.message
    assert issue.details == {"value": REDACTED}


def test_depends_on_missing_dependency():
    _require_imports()
    schema = {
        "cache": {"host": {"type": "string"}},
        "cache_ttl": {"type": "number", "depends_on": ["cache.host"]},
    }
    engine = _engine(schema)
    assert _codes(engine.validate_sync({"cache_ttl": 30})) == [("cache_ttl", "MISSING_DEPENDENCY")]
    assert engine.validate_sync({"cache_ttl": 30, "cache": {"host": "redis"}}).valid
    assert engine.validate_sync({}).valid


def test_conflicting_fields_reported_once_per_pair():
    _require_imports()
    schema = {
        "a": {"type": "number", "conflicts_with": ["b"]},
        "b": {"type": "number", "conflicts_with": ["a"]},
    }
    result = _engine(schema).validate_sync({"a": 1, "b": 2})
    assert _codes(result) == [("a", "CONFLICTING_FIELDS")]
    assert result.errors[0].details["paths"] == ["a", "b"]


def test_conflicts_ignore_default_values():
    _require_imports()
    schema = {
        "a": {"type": "number", "conflicts_with": ["b"]},
        "b": {"type": "number", "default": 2},
    }
    engine = _engine(schema)
    assert engine.validate_sync({"a": 1}).valid
    assert engine.validate_sync({"a": 1, "b": 2}).valid
    assert not engine.validate_sync({"a": 1, "b": 3}).valid


def test_deprecated_field_warns_only_when_supplied():
    _require_imports()
    engine = _engine({"old": {"type": "string", "deprecated": "use 'new'", "default": "x"}})
    assert engine.validate_sync({}).warnings == ()
    warning = engine.validate_sync({"old": "y"}).warnings[0]
    assert warning.code == "DEPRECATED_FIELD" and warning.severity == "medium"
    assert "use 'new'" in warning.message


def test_disallowed_protocol():
    _require_imports()
    engine = _engine(
        {"url": {"type": "string"}, "name": {"type": "string"}},
        {"security": {"allowed_protocols": ["https"]}},
    )
    result = engine.validate_sync({"url": "http://example.com", "name": "plain"})
    assert _codes(result) == [("url", "DISALLOWED_PROTOCOL")]
    assert engine.validate_sync({"url": "HTTPS://example.com"}).valid


@pytest.mark.parametrize(
    "options,expect_valid,errors,warnings",
    [
        ({}, True, 0, 1),
        ({"validation": {"unknown_fields": "ignore"}}, True, 0, 0),
        ({"validation": {"unknown_fields": "error"}}, False, 1, 0),
        ({"validation": {"strict": True, "unknown_fields": "ignore"}}, False, 1, 0),
    ],
)
def test_unknown_field_policy(options, expect_valid, errors, warnings):
    _require_imports()
    schema = {"db": {"host": {"type": "string"}}, "meta": {"type": "object"}}
    result = _engine(schema, options).validate_sync(
        {"db": {"host": "h", "hots": "typo"}, "meta": {"anything": 1}}
    )
    assert result.valid is expect_valid
    assert len(result.errors) == errors
    assert len(result.warnings) == warnings
    for item in result.errors + result.warnings:
        assert item.path == "db.hots" and item.code == "UNKNOWN_FIELD"


def test_stop_on_first_error():
    _require_imports()
    schema = {"a": {"type": "string", "required": True}, "b": {"type": "string", "required": True}}
    assert len(_engine(schema).validate_sync({}).errors) == 2
    halted = _engine(schema, {"validation": {"stop_on_first_error": True}}).validate_sync({})
    assert _codes(halted) == [("a", "REQUIRED_FIELD_MISSING")]


def test_stop_on_first_error_still_returns_fully_defaulted_data():
    _require_imports()
    schema = {
        "a": {"type": "string", "required": True},
        "b": {"type": "number", "default": 7},
        "c": {"nested": {"type": "boolean", "default": False}},
    }
    halted = _engine(schema, {"validation": {"stop_on_first_error": True}}).validate_sync({})
    assert _codes(halted) == [("a", "REQUIRED_FIELD_MISSING")]
    assert halted.data == {"b": 7, "c": {"nested": False}}


def test_unexpected_failure_becomes_single_internal_error(monkeypatch):
    """
    Uma falha fora dos validadores (aqui, no passe de conflitos) vira um
    único INTERNAL_ERROR em vez de propagar.
    """
    _require_imports()
    engine = _engine({"a": {"type": "string"}})
    assert engine.validate_sync({"a": "x"}).valid

    def boom(run):
        raise RuntimeError("boom")

    monkeypatch.setattr(engine, "_check_conflicts", boom)
    bad = asyncio.run(engine.validate({"a": "x"}))
    assert not bad.valid
    assert _codes(bad) == [("", "INTERNAL_ERROR")]
    assert bad.errors[0].details["exception_class"] == "RuntimeError"


def test_only_paths_restricts_reported_issues():
    _require_imports()
    schema = {"a": {"type": "string", "required": True}, "b": {"type": "number", "min": 5}}
    result = _engine(schema).validate_sync({"b": 1}, only_paths=["b"])
    assert _codes(result) == [("b", "VALUE_TOO_SMALL")]


def test_context_environment_defaults_to_options():
    _require_imports()
    engine = _engine({"debug": {"type": "boolean"}}, {"environment": "production"})
    result = engine.validate_sync({"debug": True})
    assert [w.code for w in result.warnings] == ["DEBUG_MODE_ENABLED"]

    staging = engine.validate_sync({"debug": True}, ValidationContext(environment="staging"))
    assert staging.warnings == ()
