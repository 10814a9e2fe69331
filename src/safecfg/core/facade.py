# src/safecfg/core/facade.py
"""
Ponto de entrada do SafeCfg.

Fluxo de um `load`:

    fontes → SourceManager → merge (estratégia) → raw_config
           → hooks/transform → engine de validação → ConfigResult

Decisões arquiteturais:
    - O schema é compilado uma vez por instância e reutilizado entre loads
    - A API assíncrona (`aload`, `avalidate`) é a primária; `load` e
      `validate` executam-na em um event loop novo (`asyncio.run`) e não
      devem ser chamados de dentro de um loop em execução
    - A config inline (`config=`) é aplicada por último, acima de todas
      as fontes declaradas
    - O provedor de ambiente é injetado (`env=`); `os.environ` é usado
      apenas quando o host não fornece nenhum

Propagação de erros:
    - `load` antes de `compile` → SafeCfgError(NOT_COMPILED)
    - fonte required que falha → SourceLoadError
    - conflito estrutural no merge → issue MERGE_CONFLICT no resultado
    - qualquer outra falha de conteúdo → issues no ValidationResult
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from safecfg.core.config.errors import ConfigTypeConflictError
from safecfg.core.config.hashing import compute_config_hash
from safecfg.core.config.merge import merge_sources
from safecfg.core.config.transform import apply_transforms
from safecfg.core.errors import internal_error, merge_conflict
from safecfg.core.exceptions import SafeCfgError
from safecfg.core.hooks import run_hook
from safecfg.core.log import StdlibLogger
from safecfg.core.options import SafeCfgOptions
from safecfg.core.result import ConfigMetadata, ConfigResult
from safecfg.core.schema.compiler import compile_schema, default_transformers
from safecfg.core.schema.types import CompiledSchema, SchemaMetadata
from safecfg.core.sources.base import RawConfig
from safecfg.core.sources.manager import SourceManager, SourceSpec
from safecfg.core.validation.context import ValidationContext
from safecfg.core.validation.engine import ValidationEngine
from safecfg.core.validation.registry import NamedRegistry
from safecfg.core.validation.rules import as_rule, default_contextual_rules
from safecfg.core.validation.types import ValidationResult
from safecfg.core.validation.validators import FunctionValidator


logger = logging.getLogger(__name__)

INLINE_SOURCE = "inline"
NOT_COMPILED = "NOT_COMPILED"


class SafeCfg:
    """
    Instância de validação de configuração ligada a um schema.

    Args:
        schema: Schema declarativo (compilado imediatamente se fornecido).
        options: `SafeCfgOptions` ou mapa aceito por `SafeCfgOptions.from_dict`.
        env: Provedor de variáveis de ambiente (default: `os.environ`).
        logger: Logger do host (protocolo `Logger`).
        validators: Validadores nomeados referenciáveis no schema.
        transformers: Transformers nomeados adicionais aos embutidos.
        loaders: Loaders de fonte adicionais aos embutidos (`dict`, `file`).
        schema_metadata: `SchemaMetadata` ou mapa (versão, autor, ...).
    """

    def __init__(
        self,
        schema: Optional[Mapping[str, Any]] = None,
        options: Union[SafeCfgOptions, Mapping[str, Any], None] = None,
        *,
        env: Optional[Mapping[str, str]] = None,
        logger: Any = None,
        validators: Sequence[Any] = (),
        transformers: Sequence[Any] = (),
        loaders: Sequence[Any] = (),
        schema_metadata: Union[SchemaMetadata, Mapping[str, Any], None] = None,
    ) -> None:
        self.options = options if isinstance(options, SafeCfgOptions) else SafeCfgOptions.from_dict(options)
        self.env: Mapping[str, str] = env if env is not None else os.environ
        self.logger = logger or StdlibLogger(self.options.logging.level)

        self.validators: NamedRegistry = NamedRegistry(kind="validator")
        for validator in validators:
            self.validators.add(validator if hasattr(validator, "validate") else FunctionValidator(validator))
        self.transformers: NamedRegistry = default_transformers()
        self.transformers.extend(transformers)

        self.contextual_rules = default_contextual_rules()
        self.sources = SourceManager(self.options.sources, loaders=loaders, host_logger=self.logger)

        if schema_metadata is None or isinstance(schema_metadata, SchemaMetadata):
            self.schema_metadata = schema_metadata
        else:
            self.schema_metadata = SchemaMetadata.from_dict(schema_metadata)

        self._compiled: Optional[CompiledSchema] = None
        self._engine: Optional[ValidationEngine] = None
        if schema is not None:
            self.compile(schema)

    # -----------------------------
    # Schema
    # -----------------------------
    @property
    def compiled(self) -> Optional[CompiledSchema]:
        return self._compiled

    def compile(self, schema: Mapping[str, Any]) -> CompiledSchema:
        """Compila (ou recompila) o schema da instância.

        Raises:
            SchemaError: schema malformado, ciclo ou profundidade excedida.
        """
        compiled = compile_schema(
            schema,
            max_depth=self.options.performance.max_recursion_depth,
            validators=self.validators,
            transformers=self.transformers,
            metadata=self.schema_metadata,
        )
        self._compiled = compiled
        self._engine = ValidationEngine(
            compiled,
            self.options,
            env=self.env,
            contextual_rules=self.contextual_rules,
            host_logger=self.logger,
        )
        self.logger.info(
            "Schema compiled",
            {"fields": len(compiled), "version": compiled.metadata.version},
        )
        return compiled

    def register_contextual_rule(self, environment: str, rule: Any) -> None:
        rule = as_rule(rule)
        self.contextual_rules.setdefault(environment, []).append(rule)
        if self._engine is not None:
            self._engine.contextual_rules.setdefault(environment, []).append(rule)

    def _require_engine(self) -> ValidationEngine:
        if self._engine is None:
            raise SafeCfgError("Schema must be compiled before loading configuration", NOT_COMPILED)
        return self._engine

    def _context(self) -> ValidationContext:
        return ValidationContext(
            environment=self.options.environment,
            region=self.options.region,
            stage=self.options.stage,
        )

    # -----------------------------
    # Load
    # -----------------------------
    async def aload(
        self,
        config: Optional[Mapping[str, Any]] = None,
        *,
        sources: Optional[Iterable[SourceSpec]] = None,
        context: Optional[ValidationContext] = None,
    ) -> ConfigResult:
        """
        Carrega, mescla, transforma e valida a configuração.

        Args:
            config: Configuração inline (aplicada acima das fontes).
            sources: Definições de fonte (`SourceDefinition` ou mapas).
            context: Contexto da run (default: derivado das opções).

        Returns:
            ConfigResult: Resultado com config, safe_config, raw_config e validação.

        Raises:
            SafeCfgError: (NOT_COMPILED) se nenhum schema foi compilado.
            SourceLoadError: Se uma fonte `required` falhar.
        """
        engine = self._require_engine()
        context = context or self._context()
        started = time.perf_counter()

        raws: List[RawConfig] = []
        load_results = []
        if sources is not None:
            raws, load_results = await self.sources.load_all(sources)
        if config is not None:
            top = max((r.priority for r in raws), default=0)
            raws.append(RawConfig(source=INLINE_SOURCE, data=dict(config), priority=top + 1))

        try:
            raw_config = merge_sources(
                raws,
                self.options.sources.merge_strategy,
                custom_merge=self.options.custom_merge,
            )
        except ConfigTypeConflictError as exc:
            self.logger.error("Merge conflict", {"error": exc.message})
            validation = ValidationResult.build(
                [merge_conflict(message=exc.message)],
                [],
                total_fields=len(engine.compiled),
                validated_fields=0,
                duration_ms=(time.perf_counter() - started) * 1000.0,
                data={},
            )
            return self._result({}, {}, validation, load_results, engine, context)

        hooks = self.options.hooks
        try:
            await run_hook(hooks, "before_transform", raw_config, self.logger)
            transformed = await apply_transforms(raw_config, engine.compiled)
            await run_hook(hooks, "after_transform", transformed, self.logger)
            await run_hook(hooks, "before_validation", transformed, self.logger)
            validation = await engine.validate(transformed, context)
            await run_hook(hooks, "after_validation", validation, self.logger)
        except Exception as exc:
            logger.exception("load failed outside of field validation")
            validation = ValidationResult.build(
                [internal_error(exc=exc)],
                [],
                total_fields=len(engine.compiled),
                validated_fields=0,
                duration_ms=(time.perf_counter() - started) * 1000.0,
                data=dict(raw_config),
            )

        result = self._result(validation.data or {}, raw_config, validation, load_results, engine, context)
        self.logger.info(
            "Configuration loaded",
            {
                "environment": context.environment,
                "valid": validation.valid,
                "errors": validation.summary.error_count,
                "warnings": validation.summary.warning_count,
                "sources": len(load_results),
            },
        )
        return result

    def load(
        self,
        config: Optional[Mapping[str, Any]] = None,
        *,
        sources: Optional[Iterable[SourceSpec]] = None,
        context: Optional[ValidationContext] = None,
    ) -> ConfigResult:
        return asyncio.run(self.aload(config, sources=sources, context=context))

    async def avalidate(
        self, config: Mapping[str, Any], context: Optional[ValidationContext] = None
    ) -> ValidationResult:
        """Transforma e valida `config` sem fontes, retornando só o ValidationResult."""
        engine = self._require_engine()
        transformed = await apply_transforms(config, engine.compiled)
        return await engine.validate(transformed, context or self._context())

    def validate(self, config: Mapping[str, Any], context: Optional[ValidationContext] = None) -> ValidationResult:
        return asyncio.run(self.avalidate(config, context))

    def _result(self, config, raw_config, validation, load_results, engine, context) -> ConfigResult:
        metadata = ConfigMetadata(
            environment=context.environment,
            schema_version=engine.compiled.metadata.version,
            hash=compute_config_hash(config),
        )
        return ConfigResult(
            config=config,
            raw_config=raw_config,
            validation=validation,
            sources=load_results,
            metadata=metadata,
            engine=engine,
            context=context,
            mask=self.options.security.mask_secrets,
        )
