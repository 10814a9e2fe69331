# src/safecfg/core/validation/context.py
"""
Contexto de uma run de validação.

Este módulo define o `ValidationContext`, a estrutura passada por
referência a todo validador, transformer e regra contextual durante uma
run de validação.

O ValidationContext consolida:
    - ambiente (`development`, `production`, ...), região e estágio
    - timestamp da run
    - usuário (opcional)
    - fatos de runtime (versão do Python, plataforma)
    - fatos adicionais fornecidos pelo host

Princípios fundamentais:
    - Isolamento por run (cada `load` possui seu próprio contexto)
    - Imutabilidade: o contexto não muda durante a run
    - Ausência de estado global compartilhado

Limites explícitos:
    - Não executa validação
    - Não lê variáveis de ambiente do processo
"""

from __future__ import annotations

import platform
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


DEFAULT_ENVIRONMENT = "development"


def _runtime_facts() -> Dict[str, Any]:
    return {
        "python_version": platform.python_version(),
        "implementation": platform.python_implementation(),
        "platform": sys.platform,
    }


@dataclass(frozen=True)
class ValidationContext:
    """
    Contexto imutável de uma run de validação.

    Invariantes:
        - `environment` é sempre uma string não vazia
        - `timestamp` é timezone-aware (UTC)
        - `facts` é somente-leitura
    """

    environment: str = DEFAULT_ENVIRONMENT
    region: Optional[str] = None
    stage: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user: Optional[Mapping[str, Any]] = None
    runtime: Mapping[str, Any] = field(default_factory=_runtime_facts)
    facts: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.environment, str) or not self.environment.strip():
            raise ValueError("environment must be a non-empty string")
        object.__setattr__(self, "runtime", MappingProxyType(dict(self.runtime)))
        object.__setattr__(self, "facts", MappingProxyType(dict(self.facts)))

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get(self, key: str, default: Any = None) -> Any:
        return self.facts.get(key, default)
