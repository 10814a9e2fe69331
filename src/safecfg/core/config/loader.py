# src/safecfg/core/config/loader.py
"""
Loader canônico de arquivos de configuração do SafeCfg.

Este módulo é responsável por ler arquivos de configuração (YAML ou JSON)
e validar seus requisitos estruturais mínimos. Ele é utilizado:
    - pelo `FileSourceLoader` (fonte do tipo "file")
    - por `load_options_file` para opções do próprio SafeCfg

Princípios fundamentais:
    - Formatos explícitos, inferidos pela extensão
    - Erros estruturais são tratados como falhas fatais
    - Arquivos vazios são interpretados como dicionários vazios

Invariantes:
    - O retorno é sempre um dicionário puro (`dict`)

Limites explícitos:
    - Não realiza merge de fontes
    - Não valida campos contra schema
"""

from pathlib import Path
from typing import Any, Dict, Union
import json

import yaml  # PyYAML

from .errors import (
    ConfigFileNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)


YAML_SUFFIXES = {".yaml", ".yml"}
JSON_SUFFIXES = {".json"}


def load_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Carrega um arquivo de configuração e valida sua estrutura básica.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)

    Args:
        path: Caminho para o arquivo de configuração.

    Returns:
        Dict[str, Any]: Conteúdo do arquivo carregado como dicionário.

    Raises:
        ConfigFileNotFoundError: Se o arquivo não existir.
        UnsupportedConfigFormatError: Se o formato do arquivo não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo raiz não for um dicionário.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigFileNotFoundError(f"Configuration file not found: {path}", {"path": str(path)})

    suffix = path.suffix.lower()

    if suffix in YAML_SUFFIXES:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

    elif suffix in JSON_SUFFIXES:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)

    else:
        raise UnsupportedConfigFormatError(f"Unsupported format: {path.suffix}", {"path": str(path)})

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root must be a dict, got: {type(data).__name__}",
            {"path": str(path)},
        )

    return data
