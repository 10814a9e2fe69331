# src/safecfg/core/sources/cache.py
"""
Cache de fontes carregadas, com expiração por TTL.

A identidade de uma entrada é (nome, loader, hash canônico das opções),
de modo que mudar as opções de uma fonte invalida a entrada anterior.

Invariantes:
    - Entradas expiradas nunca são servidas (re-fetch, nunca staleness)
    - Valores são copiados na entrada e na saída
    - Acesso é serializado por lock (único estado mutável compartilhado
      de um SafeCfg)
"""

from __future__ import annotations

import hashlib
import threading
import time
from copy import deepcopy
from typing import Any, Callable, Dict, Optional, Tuple

from safecfg.core.config.hashing import canonical_json

from .base import SourceDefinition


CacheKey = Tuple[str, str, str]


def source_cache_key(definition: SourceDefinition) -> CacheKey:
    options_hash = hashlib.sha256(canonical_json(dict(definition.options)).encode("utf-8")).hexdigest()
    return (definition.name, definition.type, options_hash)


class SourceCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[CacheKey, Tuple[float, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, data = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return deepcopy(data)

    def set(self, key: CacheKey, data: Dict[str, Any], ttl: float) -> None:
        if ttl <= 0:
            return
        with self._lock:
            self._entries[key] = (self._clock() + ttl, deepcopy(data))

    def invalidate(self, name: str) -> int:
        with self._lock:
            stale = [k for k in self._entries if k[0] == name]
            for k in stale:
                del self._entries[k]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
