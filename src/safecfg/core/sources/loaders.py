# src/safecfg/core/sources/loaders.py
"""Loaders embutidos: `dict` (mapa estático) e `file` (YAML/JSON)."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Callable, Dict, List, Mapping

from safecfg.core.config.errors import ConfigError, InvalidConfigRootTypeError
from safecfg.core.config.loader import load_file

from .base import SourceChange, Unsubscribe


class DictSourceLoader:
    """
    Fonte estática: `options["data"]` é devolvido como está (cópia).

    Também serve de ponto de teste para `watch`: `emit(change)` notifica
    os callbacks registrados.
    """

    name = "dict"

    def __init__(self) -> None:
        self._callbacks: List[Callable[[SourceChange], Any]] = []

    def load(self, options: Mapping[str, Any]) -> Dict[str, Any]:
        data = options.get("data", {})
        if not isinstance(data, Mapping):
            raise InvalidConfigRootTypeError(f"dict source data must be a mapping, got {type(data).__name__}")
        return deepcopy(dict(data))

    def watch(self, callback: Callable[[SourceChange], Any]) -> Unsubscribe:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def emit(self, change: SourceChange) -> None:
        for callback in list(self._callbacks):
            callback(change)


class FileSourceLoader:
    """Fonte em arquivo YAML/JSON (`options["path"]`)."""

    name = "file"

    def load(self, options: Mapping[str, Any]) -> Dict[str, Any]:
        path = options.get("path")
        if not path:
            raise ConfigError("file source requires a 'path' option")
        return load_file(path)


def builtin_loaders() -> List[Any]:
    return [DictSourceLoader(), FileSourceLoader()]
