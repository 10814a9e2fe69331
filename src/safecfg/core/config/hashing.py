# src/safecfg/core/config/hashing.py
"""
Hashing canônico de configuração do SafeCfg.

Este módulo implementa a geração de hash determinístico da configuração
efetiva resultante de um `load`, exposto em `ConfigResult.metadata.hash`
para detecção de mudanças.

Princípios fundamentais:
    - Hashing determinístico e reprodutível
    - Independente da ordem original das chaves
    - Baseado em serialização JSON canônica
    - Algoritmo criptográfico estável (SHA-256)

Invariantes:
    - Configurações estruturalmente equivalentes produzem o mesmo hash
    - O valor gerado é sempre uma string hexadecimal de 64 caracteres

Limites explícitos:
    - Não valida semântica de campos
    - Não carrega ou resolve configuração
"""


import json
import hashlib
from typing import Dict, Any


def canonical_json(data: Any) -> str:
    """Serialização JSON canônica (chaves ordenadas, separadores compactos).

    Valores não serializáveis em JSON (ex.: datetime) são convertidos via
    `str` para que a identidade permaneça estável.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Gera um hash determinístico da configuração efetiva.

    Política de hashing (v1):
        - Serialização JSON canônica
        - Ordenação estável de chaves
        - Separadores compactos (sem espaços supérfluos)
        - Codificação UTF-8
        - Algoritmo SHA-256

    Args:
        config (Dict[str, Any]): Configuração efetiva.

    Returns:
        str: Hash SHA-256 hexadecimal da configuração.

    Raises:
        TypeError: Se o objeto fornecido não for um dicionário.
    """

    if not isinstance(config, dict):
        raise TypeError(
            f"Config to hash must be a dict, got: {type(config).__name__}"
        )

    return hashlib.sha256(canonical_json(config).encode("utf-8")).hexdigest()
