# src/safecfg/core/log.py
"""
Colaborador de logging do SafeCfg.

O SafeCfg usa dois canais:
    - loggers do módulo `logging` por módulo (`logging.getLogger(__name__)`)
      para diagnóstico interno
    - um `Logger` injetado pelo host para diagnóstico voltado ao operador
      (resumo da compilação, falhas de fonte, resumo da validação)

O `StdlibLogger` é a implementação default do protocolo e adapta
`logging.getLogger("safecfg")`, filtrando pelo nível configurado em
`logging.level`.

Limites explícitos:
    - Logging nunca dirige fluxo de controle
    - Não configura handlers nem formatação (responsabilidade do host)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable


LOG_LEVELS: Dict[str, int] = {
    "silent": logging.CRITICAL + 10,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

DEFAULT_LOG_LEVEL = "warn"


@runtime_checkable
class Logger(Protocol):
    """Contrato mínimo do logger injetado pelo host."""

    def debug(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        ...

    def info(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        ...

    def warn(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        ...

    def error(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        ...


class StdlibLogger:
    """Adapta um `logging.Logger` ao protocolo `Logger`."""

    def __init__(self, level: str = DEFAULT_LOG_LEVEL, logger: Optional[logging.Logger] = None) -> None:
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {level!r}")
        self.level = level
        self._threshold = LOG_LEVELS[level]
        self._logger = logger or logging.getLogger("safecfg")

    def _log(self, levelno: int, message: str, meta: Optional[Mapping[str, Any]]) -> None:
        if levelno < self._threshold:
            return
        if meta:
            self._logger.log(levelno, "%s %s", message, dict(meta))
        else:
            self._logger.log(levelno, "%s", message)

    def debug(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.DEBUG, message, meta)

    def info(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.INFO, message, meta)

    def warn(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.WARNING, message, meta)

    def error(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.ERROR, message, meta)
