# src/safecfg/core/sources/manager.py
"""
Gerenciador de fontes de configuração.

Responsável por carregar as fontes habilitadas de um `load`, sequencial
ou concorrentemente (`sources.parallel_loading`), aplicando cache por TTL
e a política required/optional:

    - fonte required que falha → SourceLoadError (aborta o load)
    - fonte optional que falha → SourceLoadResult(success=False), o merge
      prossegue sem seus dados

Decisões arquiteturais:
    - Loaders síncronos rodam em thread (`asyncio.to_thread`) quando o
      carregamento é paralelo, para não bloquear o event loop
    - O merge só começa após todas as fontes terminarem
    - A ordem dos resultados é sempre a ordem de declaração

Limites explícitos:
    - Não faz merge (ver `safecfg.core.config.merge`)
    - Não valida conteúdo
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from safecfg.core.config.errors import ConfigError
from safecfg.core.exceptions import SourceLoadError
from safecfg.core.options import SourceOptions
from safecfg.core.validation.registry import NamedRegistry

from .base import RawConfig, SourceDefinition, SourceLoadResult
from .cache import SourceCache, source_cache_key
from .loaders import builtin_loaders


logger = logging.getLogger(__name__)

SourceSpec = Union[SourceDefinition, Mapping[str, Any]]


def as_definitions(sources: Iterable[SourceSpec]) -> List[SourceDefinition]:
    out: List[SourceDefinition] = []
    seen = set()
    for spec in sources:
        definition = spec if isinstance(spec, SourceDefinition) else SourceDefinition.from_dict(spec)
        if definition.name in seen:
            raise ConfigError(f"Duplicate source name: {definition.name}", {"source": definition.name})
        seen.add(definition.name)
        out.append(definition)
    return out


class SourceManager:
    def __init__(
        self,
        options: Optional[SourceOptions] = None,
        *,
        loaders: Sequence[Any] = (),
        cache: Optional[SourceCache] = None,
        host_logger: Any = None,
    ) -> None:
        self.options = options or SourceOptions()
        self.loaders: NamedRegistry = NamedRegistry(kind="loader")
        self.loaders.extend(builtin_loaders())
        for loader in loaders:
            self.loaders.add(loader, replace=True)
        self.cache = cache or SourceCache()
        self.host_logger = host_logger

    def loader_for(self, definition: SourceDefinition) -> Any:
        if definition.type not in self.loaders:
            raise ConfigError(
                f"Unknown source loader '{definition.type}' for source '{definition.name}'",
                {"source": definition.name, "loader": definition.type, "allowed": self.loaders.names()},
            )
        return self.loaders.get(definition.type)

    async def load_all(self, sources: Iterable[SourceSpec]) -> Tuple[List[RawConfig], List[SourceLoadResult]]:
        """
        Carrega todas as fontes habilitadas.

        Returns:
            (raws, results): dados das fontes bem-sucedidas e um
            SourceLoadResult por fonte habilitada, na ordem de declaração.

        Raises:
            SourceLoadError: Se uma fonte `required` falhar.
            ConfigError: Definição inválida ou loader desconhecido.
        """
        definitions = [d for d in as_definitions(sources) if d.enabled]
        for definition in definitions:
            self.loader_for(definition)

        if self.options.parallel_loading and len(definitions) > 1:
            outcomes = await asyncio.gather(*(self._load_one(d, threaded=True) for d in definitions))
        else:
            outcomes = [await self._load_one(d, threaded=False) for d in definitions]

        raws: List[RawConfig] = []
        results: List[SourceLoadResult] = []
        for definition, (raw, result, error) in zip(definitions, outcomes):
            results.append(result)
            if raw is not None:
                raws.append(raw)
                continue
            if definition.required:
                raise SourceLoadError(definition.name, error)  # type: ignore[arg-type]
            logger.warning("optional source %r failed: %s", definition.name, result.error)
            if self.host_logger is not None:
                self.host_logger.warn("Optional source failed", {"source": definition.name, "error": result.error})
        return raws, results

    def _cache_ttl(self, definition: SourceDefinition) -> Optional[float]:
        enabled = self.options.cache_enabled if definition.cache is None else definition.cache
        if not enabled:
            return None
        return float(definition.ttl if definition.ttl is not None else self.options.default_cache_ttl)

    async def _load_one(
        self, definition: SourceDefinition, *, threaded: bool
    ) -> Tuple[Optional[RawConfig], SourceLoadResult, Optional[BaseException]]:
        started = time.perf_counter()
        ttl = self._cache_ttl(definition)
        key = source_cache_key(definition)

        if ttl is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return (
                    self._raw(definition, cached, cached=True),
                    SourceLoadResult(
                        source=definition.name,
                        success=True,
                        duration=(time.perf_counter() - started) * 1000.0,
                        data_count=len(cached),
                        cached=True,
                    ),
                    None,
                )

        loader = self.loader_for(definition)
        try:
            if threaded and not inspect.iscoroutinefunction(loader.load):
                data = await asyncio.to_thread(loader.load, dict(definition.options))
            else:
                data = loader.load(dict(definition.options))
            if inspect.isawaitable(data):
                data = await data
            if not isinstance(data, Mapping):
                raise ConfigError(
                    f"Loader '{definition.type}' returned {type(data).__name__}, expected a mapping",
                    {"source": definition.name},
                )
            data = dict(data)
        except Exception as exc:
            return (
                None,
                SourceLoadResult(
                    source=definition.name,
                    success=False,
                    duration=(time.perf_counter() - started) * 1000.0,
                    error=str(exc) or exc.__class__.__name__,
                ),
                exc,
            )

        if ttl is not None:
            self.cache.set(key, data, ttl)
        return (
            self._raw(definition, data, cached=False),
            SourceLoadResult(
                source=definition.name,
                success=True,
                duration=(time.perf_counter() - started) * 1000.0,
                data_count=len(data),
            ),
            None,
        )

    @staticmethod
    def _raw(definition: SourceDefinition, data: dict, *, cached: bool) -> RawConfig:
        return RawConfig(
            source=definition.name,
            data=data,
            priority=definition.priority,
            metadata={"loader": definition.type, "cached": cached},
        )
