# src/safecfg/core/result.py
"""
Resultado de um `load` do SafeCfg.

O `ConfigResult` expõe três visões da configuração:
    - config       → configuração efetiva (defaults, env e transforms aplicados)
    - safe_config  → idem, com campos `secret` substituídos por "[REDACTED]"
    - raw_config   → configuração mesclada, antes de transformação

Além de `validation`, `sources` e `metadata` (timestamp, ambiente, versão
do schema e hash de conteúdo).

Mutação controlada:
    - `set(path, value)` / `aset` revalida o caminho, sua subárvore e os
      dependentes transitivos, e notifica os observadores afetados
    - `apply_change(SourceChange)` aplica uma mudança emitida por um loader
    - `watch(path, callback)` retorna uma função de cancelamento

Invariantes:
    - `safe_config` nunca contém o valor literal de um segredo
      (com `security.mask_secrets` ativo)
    - `metadata.hash` sempre corresponde ao `config` atual
"""

from __future__ import annotations

import asyncio
import logging
from copy import deepcopy
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from safecfg.core.config.hashing import compute_config_hash
from safecfg.core.config.transform import transform_value
from safecfg.core.errors import BLOCKING_SEVERITIES
from safecfg.core.exceptions import SafeCfgValidationError
from safecfg.core.paths import MISSING, delete_in, get_in, set_in, split_path, join_path
from safecfg.core.sources.base import CHANGE_DELETE, SourceChange, SourceLoadResult
from safecfg.core.validation.context import ValidationContext
from safecfg.core.validation.engine import REDACTED, ValidationEngine
from safecfg.core.validation.types import ValidationResult


logger = logging.getLogger(__name__)

WatchCallback = Callable[[Any, Any], Any]


@dataclass(frozen=True)
class ConfigMetadata:
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    environment: str = "development"
    schema_version: str = "1.0.0"
    hash: str = ""


def mask_secrets(config: Dict[str, Any], secret_paths: Tuple[str, ...]) -> Dict[str, Any]:
    masked = deepcopy(config)
    for path in secret_paths:
        if get_in(masked, path) is not MISSING:
            set_in(masked, path, REDACTED)
    return masked


def _overlaps(a: str, b: str) -> bool:
    return a == b or a.startswith(b + ".") or b.startswith(a + ".")


class ConfigResult:
    def __init__(
        self,
        *,
        config: Dict[str, Any],
        raw_config: Dict[str, Any],
        validation: ValidationResult,
        sources: Optional[List[SourceLoadResult]] = None,
        metadata: Optional[ConfigMetadata] = None,
        engine: Optional[ValidationEngine] = None,
        context: Optional[ValidationContext] = None,
        mask: bool = True,
    ) -> None:
        self._config = config
        self._raw_config = raw_config
        self._validation = validation
        self.sources: List[SourceLoadResult] = list(sources or [])
        self._metadata = metadata or ConfigMetadata(hash=compute_config_hash(config))
        self._engine = engine
        self._context = context
        self._mask = mask
        self._watchers: Dict[str, List[WatchCallback]] = {}

    # -----------------------------
    # Visões
    # -----------------------------
    @property
    def config(self) -> Dict[str, Any]:
        return self._config

    @property
    def raw_config(self) -> Dict[str, Any]:
        return self._raw_config

    @property
    def safe_config(self) -> Dict[str, Any]:
        if not self._mask or self._engine is None:
            return deepcopy(self._config)
        return mask_secrets(self._config, self._engine.compiled.secret_paths)

    @property
    def validation(self) -> ValidationResult:
        return self._validation

    @property
    def metadata(self) -> ConfigMetadata:
        return self._metadata

    @property
    def valid(self) -> bool:
        return self._validation.valid

    def get(self, path: str, default: Any = None) -> Any:
        value = get_in(self._config, path)
        return default if value is MISSING else value

    def raise_for_errors(self) -> None:
        blocking = [e for e in self._validation.errors if e.severity in BLOCKING_SEVERITIES]
        if blocking:
            raise SafeCfgValidationError(blocking)

    # -----------------------------
    # Observação
    # -----------------------------
    def watch(self, path: str, callback: WatchCallback) -> Callable[[], None]:
        """Registra `callback(new_value, old_value)` para mudanças em `path`."""
        key = join_path(split_path(path))
        self._watchers.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._watchers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    # -----------------------------
    # Mutação
    # -----------------------------
    async def aset(self, path: str, value: Any) -> ValidationResult:
        return await self._update(path, value, delete=False)

    def set(self, path: str, value: Any) -> ValidationResult:
        return asyncio.run(self.aset(path, value))

    async def aapply_change(self, change: SourceChange) -> ValidationResult:
        return await self._update(change.path, change.new_value, delete=change.type == CHANGE_DELETE)

    def apply_change(self, change: SourceChange) -> ValidationResult:
        return asyncio.run(self.aapply_change(change))

    def _affected(self, path: str) -> Set[str]:
        compiled = self._engine.compiled  # type: ignore[union-attr]
        roots = {p for p in compiled.paths if _overlaps(p, path)}
        affected = set(roots) | {path}
        for root in roots:
            affected.update(compiled.dependencies.get_transitive_dependents(root))
        return affected

    async def _update(self, path: str, value: Any, *, delete: bool) -> ValidationResult:
        if self._engine is None:
            raise RuntimeError("ConfigResult is detached from its validation engine")
        path = join_path(split_path(path))
        compiled = self._engine.compiled

        data = deepcopy(self._config)
        previous = deepcopy(data)
        if delete:
            delete_in(data, path)
        else:
            field_def = compiled.get(path)
            if field_def is not None:
                value = await transform_value(value, field_def, parent=get_in(data, field_def.segments[:-1], data))
            set_in(data, path, value)

        affected = self._affected(path)
        partial = await self._engine.validate(data, self._context, only_paths=affected)

        def stale(issue: Any) -> bool:
            paths = [issue.path] + list(getattr(issue, "details", {}).get("paths", []) or [])
            return any(p in affected for p in paths)

        errors = [e for e in self._validation.errors if not stale(e)] + list(partial.errors)
        warnings = [w for w in self._validation.warnings if w.path not in affected] + list(partial.warnings)
        self._validation = ValidationResult.build(
            errors,
            warnings,
            total_fields=partial.summary.total_fields,
            validated_fields=self._validation.summary.validated_fields,
            duration_ms=partial.summary.duration_ms,
            data=partial.data,
        )
        self._config = partial.data or {}
        self._metadata = replace(self._metadata, hash=compute_config_hash(self._config))
        logger.debug("updated %s (%d affected paths)", path, len(affected))

        self._notify(path, previous)
        return self._validation

    def _notify(self, path: str, previous: Dict[str, Any]) -> None:
        for watched, callbacks in list(self._watchers.items()):
            if not _overlaps(watched, path):
                continue
            new_value = self.get(watched)
            old_value = get_in(previous, watched, None)
            if new_value == old_value:
                continue
            for callback in list(callbacks):
                callback(new_value, old_value)

    def __repr__(self) -> str:  # pragma: no cover
        return f"ConfigResult(valid={self.valid}, errors={len(self._validation.errors)})"
