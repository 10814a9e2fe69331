# tests/core/test_options.py
"""
Testes das opções do SafeCfg e do logger default.

Os testes asseguram que:
- defaults explícitos existem para todas as seções
- chaves camelCase são normalizadas
- chave desconhecida ou valor fora do domínio levanta InvalidOptionsError
- o StdlibLogger filtra pelo nível configurado
"""

import logging

import pytest

try:
    from safecfg.core.config.errors import InvalidOptionsError
    from safecfg.core.log import Logger, StdlibLogger
    from safecfg.core.options import SafeCfgOptions, load_options_file
except Exception as e:  # noqa: BLE001
    SafeCfgOptions = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing options/log modules. Implement:\n"
            "- src/safecfg/core/options.py\n"
            "- src/safecfg/core/log.py\n"
            f"Import error: {_IMPORT_ERR}"
        )


def test_defaults():
    _require_imports()
    options = SafeCfgOptions()
    assert options.environment == "development"
    assert options.validation.unknown_field_policy == "warning"
    assert options.sources.merge_strategy == "deep-merge"
    assert options.sources.cache_enabled is False
    assert options.security.mask_secrets is True
    assert options.security.allowed_protocols is None
    assert options.performance.max_recursion_depth == 32
    assert options.logging.level == "warn"


def test_from_dict_accepts_camel_case_and_normalizes_protocols():
    _require_imports()
    options = SafeCfgOptions.from_dict(
        {
            "environment": "production",
            "validation": {"stopOnFirstError": True, "unknownFields": "ignore"},
            "sources": {"mergeStrategy": "priority-based", "parallelLoading": True, "defaultCacheTtl": 10},
            "security": {"allowedProtocols": ["HTTPS", "postgres"]},
        }
    )
    assert options.validation.stop_on_first_error is True
    assert options.validation.unknown_field_policy == "ignore"
    assert options.sources.merge_strategy == "priority-based"
    assert options.sources.parallel_loading is True
    assert options.security.allowed_protocols == ("https", "postgres")


def test_strict_forces_error_policy():
    _require_imports()
    options = SafeCfgOptions.from_dict({"validation": {"strict": True, "unknown_fields": "warning"}})
    assert options.validation.unknown_field_policy == "error"


@pytest.mark.parametrize(
    "data",
    [
        {"colour": "blue"},
        {"validation": {"lenient": True}},
        {"validation": "strict"},
        {"validation": {"unknown_fields": "shout"}},
        {"sources": {"merge_strategy": "zip"}},
        {"sources": {"merge_strategy": "custom"}},
        {"sources": {"default_cache_ttl": -1}},
        {"performance": {"max_recursion_depth": 0}},
        {"logging": {"level": "verbose"}},
        {"hooks": {"before_validation": "not callable"}},
        {"environment": ""},
    ],
)
def test_invalid_options_raise(data):
    _require_imports()
    with pytest.raises(InvalidOptionsError) as exc:
        SafeCfgOptions.from_dict(data)
    assert exc.value.code == "INVALID_OPTIONS"


def test_custom_merge_requires_callable():
    _require_imports()
    options = SafeCfgOptions.from_dict(
        {"sources": {"merge_strategy": "custom"}, "custom_merge": lambda a, b: {**a, **b}}
    )
    assert callable(options.custom_merge)


def test_with_overrides_keeps_other_sections():
    _require_imports()
    base = SafeCfgOptions.from_dict({"validation": {"strict": True}})
    prod = base.with_overrides(environment="production")
    assert prod.environment == "production"
    assert prod.validation.strict is True
    assert base.environment == "development"


def test_load_options_file(tmp_path):
    _require_imports()
    path = tmp_path / "safecfg.yaml"
    path.write_text("environment: staging\nlogging:\n  level: debug\n", encoding="utf-8")
    options = load_options_file(path)
    assert options.environment == "staging"
    assert options.logging.level == "debug"


def test_stdlib_logger_filters_by_level(caplog):
    _require_imports()
    caplog.set_level(logging.DEBUG, logger="safecfg")
    log = StdlibLogger("info")
    assert isinstance(log, Logger)

    log.debug("hidden")
    log.info("Schema compiled", {"fields": 3})
    log.error("Source failed")

    messages = [r.getMessage() for r in caplog.records if r.name == "safecfg"]
    assert messages == ["Schema compiled {'fields': 3}", "Source failed"]

    with pytest.raises(ValueError):
        StdlibLogger("loud")


def test_silent_logger_emits_nothing(caplog):
    _require_imports()
    caplog.set_level(logging.DEBUG, logger="safecfg")
    StdlibLogger("silent").error("nope")
    assert [r for r in caplog.records if r.name == "safecfg"] == []
