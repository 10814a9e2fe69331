"""
E2E — pipeline completo de `load`.

Valida, através da API pública:
- fontes em arquivo (YAML) + env injetado + config inline
- mascaramento de segredos em `safe_config` (e não em `raw_config`)
- metadados (hash, versão do schema)
- conflito estrutural de merge como issue MERGE_CONFLICT
- hooks de ciclo de vida
- mutação controlada (`set`, `apply_change`) e observadores
- `raise_for_errors` e erro de uso antes da compilação
"""

from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from safecfg import (
    SafeCfg,
    SafeCfgError,
    SafeCfgValidationError,
    SourceChange,
    SourceLoadError,
    ValidationIssue,
    check_shape,
)
from safecfg.core.config.hashing import compute_config_hash


def _sources(tmp_path: Path, defaults_yaml: str, local_yaml: str) -> list:
    defaults = tmp_path / "defaults.yaml"
    local = tmp_path / "local.yaml"
    defaults.write_text(defaults_yaml, encoding="utf-8")
    local.write_text(local_yaml, encoding="utf-8")
    return [
        {"name": "defaults", "type": "file", "options": {"path": str(defaults)}, "required": True},
        {"name": "local", "type": "file", "options": {"path": str(local)}, "priority": 1},
    ]


def test_file_sources_env_and_inline(tmp_path, server_schema, defaults_yaml, local_yaml, env) -> None:
    cfg = SafeCfg(server_schema, env=env, schema_metadata={"version": "3.0.0"})
    result = cfg.load({"server": {"mode": "https"}}, sources=_sources(tmp_path, defaults_yaml, local_yaml))

    assert result.valid, result.validation.errors
    assert result.config == {
        "server": {"host": "127.0.0.1", "port": 9090, "mode": "https"},
        "db": {"url": "postgres://localhost/app", "password": "s3cr3t-value"},
        "debug": True,
    }
    assert [s.source for s in result.sources] == ["defaults", "local"]
    assert all(s.success for s in result.sources)
    assert result.metadata.schema_version == "3.0.0"
    assert result.metadata.hash == compute_config_hash(result.config)
    assert check_shape(result.config, cfg.compiled) == []


def test_secrets_are_masked_only_in_safe_config(server_schema) -> None:
    cfg = SafeCfg(server_schema, env={})
    result = cfg.load({"db": {"url": "postgres://db/app", "password": "inline-secret-1"}})

    assert result.valid
    assert result.raw_config["db"]["password"] == "inline-secret-1"
    assert result.config["db"]["password"] == "inline-secret-1"
    assert result.safe_config["db"]["password"] == "[REDACTED]"
    assert "inline-secret-1" not in repr(result.safe_config)

    unmasked = SafeCfg(server_schema, {"security": {"mask_secrets": False}}, env={})
    assert unmasked.load({"db": {"url": "postgres://db/app", "password": "inline-secret-1"}}).safe_config[
        "db"
    ]["password"] == "inline-secret-1"


def test_short_secret_error_does_not_leak(server_schema) -> None:
    cfg = SafeCfg(server_schema, env={"DB_PASSWORD": "tiny"})
    result = cfg.load({"db": {"url": "postgres://db/app"}})

    assert not result.valid
    (error,) = result.validation.errors
    assert error.code == "LENGTH_TOO_SHORT"
    assert "tiny" not in error.message
    assert "tiny" not in repr(error.details)


def test_env_string_is_coerced(server_schema) -> None:
    schema = dict(server_schema)
    schema["workers"] = {"type": "number", "env": "APP_WORKERS", "default": 1}
    cfg = SafeCfg(schema, env={"APP_WORKERS": "4"})
    result = cfg.load({"db": {"url": "postgres://db/app"}, "server": {"port": "8081"}})

    assert result.valid
    assert result.config["workers"] == 4
    assert result.config["server"]["port"] == 8081


def test_merge_conflict_is_reported_not_raised(db_schema) -> None:
    cfg = SafeCfg(db_schema, env={})
    result = cfg.load(
        {"db": "localhost"},
        sources=[{"name": "base", "type": "dict", "options": {"data": {"db": {"host": "h"}}}}],
    )
    assert not result.valid
    assert [e.code for e in result.validation.errors] == ["MERGE_CONFLICT"]
    assert result.config == {}


def test_required_source_failure_raises(tmp_path, db_schema) -> None:
    cfg = SafeCfg(db_schema, env={})
    with pytest.raises(SourceLoadError) as exc:
        cfg.load(
            sources=[{"name": "defaults", "type": "file", "options": {"path": str(tmp_path / "x.yaml")}, "required": True}]
        )
    assert exc.value.source == "defaults"


def test_load_before_compile_is_a_usage_error() -> None:
    cfg = SafeCfg(env={})
    with pytest.raises(SafeCfgError) as exc:
        cfg.load({})
    assert exc.value.code == "NOT_COMPILED"


def test_hooks_run_in_order_and_receive_copies(db_schema) -> None:
    stages: List[str] = []

    def observe(ctx):
        stages.append(ctx.stage)
        if isinstance(ctx.data, dict):
            ctx.data.clear()

    async def after(ctx):
        stages.append(ctx.stage)

    cfg = SafeCfg(
        db_schema,
        {
            "hooks": {
                "before_transform": observe,
                "after_transform": observe,
                "before_validation": observe,
                "after_validation": after,
            }
        },
        env={},
    )
    result = cfg.load({"db": {"host": "h"}})

    assert stages == ["before_transform", "after_transform", "before_validation", "after_validation"]
    assert result.valid
    assert result.config["db"]["host"] == "h"


def test_failing_hook_becomes_internal_error(db_schema) -> None:
    def explode(ctx):
        raise RuntimeError("hook exploded")

    cfg = SafeCfg(db_schema, {"hooks": {"before_validation": explode}}, env={})
    result = cfg.load({"db": {"host": "h"}})
    assert not result.valid
    assert [e.code for e in result.validation.errors] == ["INTERNAL_ERROR"]


def test_set_revalidates_dependents_and_notifies_watchers() -> None:
    schema = {
        "cache": {
            "host": {"type": "string"},
            "ttl": {"type": "number", "min": 1, "depends_on": ["cache.host"]},
        },
        "name": {"type": "string", "required": True},
    }
    cfg = SafeCfg(schema, env={})
    result = cfg.load({"cache": {"host": "redis", "ttl": 30}})
    assert [(e.path, e.code) for e in result.validation.errors] == [("name", "REQUIRED_FIELD_MISSING")]

    seen = []
    unsubscribe = result.watch("cache.host", lambda new, old: seen.append((new, old)))

    validation = result.set("cache.host", None)
    assert seen == [(None, "redis")]
    assert {(e.path, e.code) for e in validation.errors} == {
        ("name", "REQUIRED_FIELD_MISSING"),
        ("cache.ttl", "MISSING_DEPENDENCY"),
    }

    validation = result.set("cache.host", "memcached")
    assert {(e.path, e.code) for e in validation.errors} == {("name", "REQUIRED_FIELD_MISSING")}
    assert result.metadata.hash == compute_config_hash(result.config)

    unsubscribe()
    result.set("cache.host", "other")
    assert len(seen) == 2


def test_set_applies_transforms_and_reports_new_errors() -> None:
    cfg = SafeCfg({"mode": {"type": "string", "enum": ["fast", "safe"], "transform": "lowercase"}}, env={})
    result = cfg.load({"mode": "fast"})
    assert result.set("mode", "SAFE").valid
    assert result.config["mode"] == "safe"

    validation = result.set("mode", "turbo")
    assert [e.code for e in validation.errors] == ["INVALID_ENUM_VALUE"]
    assert result.valid is False


def test_apply_change_from_a_watching_loader(db_schema) -> None:
    cfg = SafeCfg(db_schema, env={})
    result = cfg.load({"db": {"host": "h", "port": 5433}})

    result.apply_change(SourceChange(type="update", path="db.port", old_value=5433, new_value=6000))
    assert result.config["db"]["port"] == 6000

    validation = result.apply_change(SourceChange(type="delete", path="db.host", old_value="h"))
    assert [(e.path, e.code) for e in validation.errors] == [("db.host", "REQUIRED_FIELD_MISSING")]


def test_raise_for_errors(db_schema) -> None:
    cfg = SafeCfg(db_schema, env={})
    cfg.load({"db": {"host": "h"}}).raise_for_errors()

    with pytest.raises(SafeCfgValidationError) as exc:
        cfg.load({"db": {}}).raise_for_errors()
    assert exc.value.code == "VALIDATION_FAILED"
    assert [e.path for e in exc.value.errors] == ["db.host"]


def test_validate_without_sources(db_schema) -> None:
    cfg = SafeCfg(db_schema, env={})
    validation = cfg.validate({"db": {"host": "h"}})
    assert validation.valid
    assert validation.data == {"db": {"host": "h", "port": 5432}}


def test_register_contextual_rule_after_compile() -> None:
    def require_tls(data, context):
        if not data.get("tls"):
            return [
                ValidationIssue(
                    path="tls", type="contextual", message="TLS is mandatory in production", code="TLS_REQUIRED"
                )
            ]
        return []

    cfg = SafeCfg({"tls": {"type": "boolean", "default": False}}, {"environment": "production"}, env={})
    cfg.register_contextual_rule("production", require_tls)

    assert [e.code for e in cfg.load({}).validation.errors] == ["TLS_REQUIRED"]
    assert cfg.load({"tls": True}).valid
