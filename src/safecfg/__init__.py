# src/safecfg/__init__.py
"""
SafeCfg — validação declarativa de configuração.

Dado um schema que descreve os campos esperados (tipos, defaults,
variáveis de ambiente, segredos, dependências), o SafeCfg valida uma
configuração contra ele, produzindo erros e avisos estruturados,
aplicando defaults e transforms e suportando regras por ambiente
(verificações mais rígidas em produção).

Arquitetura em alto nível:
    - core.schema     → compilação do schema e grafo de dependências
    - core.validation → engine de validação, validadores e regras contextuais
    - core.config     → merge de fontes, transformação, loader e hashing
    - core.sources    → loaders de fonte, cache e gerenciador
    - core.facade     → `SafeCfg`, ponto de entrada público

Limites explícitos:
    - Não formata erros para exibição
    - Não faz parsing de variáveis de ambiente por prefixo
    - Não implementa transportes de watch
"""
from .core.errors import ValidationIssue, ValidationWarning
from .core.exceptions import SafeCfgError, SafeCfgValidationError, SchemaError, SourceLoadError
from .core.config.errors import ConfigError
from .core.facade import SafeCfg
from .core.options import SafeCfgOptions, load_options_file
from .core.result import ConfigMetadata, ConfigResult
from .core.schema.builder import SchemaBuilder, array, boolean, number, obj, string
from .core.schema.compiler import compile_schema
from .core.schema.shape import ShapeMismatch, check_shape
from .core.schema.types import CompiledPath, CompiledSchema, FieldType, SchemaMetadata
from .core.sources.base import RawConfig, SourceChange, SourceDefinition, SourceLoadResult
from .core.validation.context import ValidationContext
from .core.validation.types import ValidationResult, ValidatorResult

__version__ = "0.1.0"

__all__ = [
    "SafeCfg",
    "SafeCfgOptions",
    "load_options_file",
    "ConfigResult",
    "ConfigMetadata",
    "compile_schema",
    "CompiledPath",
    "CompiledSchema",
    "FieldType",
    "SchemaMetadata",
    "SchemaBuilder",
    "string",
    "number",
    "boolean",
    "array",
    "obj",
    "check_shape",
    "ShapeMismatch",
    "RawConfig",
    "SourceChange",
    "SourceDefinition",
    "SourceLoadResult",
    "ValidationContext",
    "ValidationResult",
    "ValidatorResult",
    "ValidationIssue",
    "ValidationWarning",
    "SafeCfgError",
    "SafeCfgValidationError",
    "SchemaError",
    "SourceLoadError",
    "ConfigError",
]
