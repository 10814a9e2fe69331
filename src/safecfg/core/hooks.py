# src/safecfg/core/hooks.py
"""
Hooks de ciclo de vida de um `load`.

Estágios (na ordem):
    before_transform → after_transform → before_validation → after_validation

Hooks são observadores: recebem um `HookContext` com uma cópia dos dados
do estágio e não alteram o fluxo. Podem ser corrotinas.
"""

from __future__ import annotations

import inspect
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from safecfg.core.options import HookOptions


@dataclass(frozen=True)
class HookContext:
    stage: str
    data: Any
    logger: Any = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


async def run_hook(hooks: Optional[HookOptions], stage: str, data: Any, logger: Any = None) -> None:
    if hooks is None:
        return
    hook = hooks.get(stage)
    if hook is None:
        return
    outcome = hook(HookContext(stage=stage, data=deepcopy(data), logger=logger))
    if inspect.isawaitable(outcome):
        await outcome
