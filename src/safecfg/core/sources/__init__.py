# src/safecfg/core/sources/__init__.py
"""
Fontes de configuração do SafeCfg.

Componentes:
    - base    → SourceDefinition, RawConfig, SourceLoadResult, SourceChange
    - loaders → loaders embutidos `dict` e `file`
    - cache   → cache por TTL de fontes carregadas
    - manager → carregamento sequencial/paralelo com política required/optional
"""
