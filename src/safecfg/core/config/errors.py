# src/safecfg/core/config/errors.py
"""
Exceções canônicas da camada de configuração do SafeCfg.

Este módulo define a hierarquia de exceções utilizadas durante o
carregamento de arquivos, o parsing de opções e a resolução (merge) de
fontes de configuração.

As exceções aqui definidas representam **violações estruturais
explícitas**, e não falhas de validação de campos (essas são coletadas
como issues pelo engine de validação).

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`
    - `ConfigError` herda de `SafeCfgError` e carrega um `code` estável

Limites explícitos:
    - Não representa erro de schema (ver `SchemaError`)
    - Não realiza fallback ou recovery
"""

from typing import Any, Dict, Optional

from safecfg.core.exceptions import SafeCfgError


class ConfigError(SafeCfgError):
    """
    Exceção base para erros estruturais de configuração.

    Permite:
        - captura genérica de erros de configuração
        - distinção clara entre falhas estruturais e issues de validação
    """

    default_code = "CONFIG_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, self.default_code, details)


class ConfigFileNotFoundError(ConfigError):
    """
    Exceção levantada quando um arquivo de configuração não existe
    no caminho especificado.

    Limites explícitos:
        - Não tenta inferir ou criar o arquivo automaticamente
    """

    default_code = "CONFIG_FILE_NOT_FOUND"


class UnsupportedConfigFormatError(ConfigError):
    """
    Exceção levantada quando o formato do arquivo de configuração
    não é suportado pelo loader.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)

    Limites explícitos:
        - Não tenta inferir formato por conteúdo
    """

    default_code = "UNSUPPORTED_CONFIG_FORMAT"


class InvalidConfigRootTypeError(ConfigError):
    """
    Exceção levantada quando o conteúdo raiz de uma fonte
    não é um dicionário (`dict`).

    Invariantes:
        - O loader só opera sobre estruturas do tipo dicionário
    """

    default_code = "INVALID_CONFIG_ROOT"


class ConfigTypeConflictError(ConfigError):
    """
    Exceção levantada quando ocorre conflito estrutural durante o merge.

    Este erro indica que uma mesma chave é um mapa em uma fonte e um
    valor não-mapa em outra.

    Exemplo de conflito:
        - base:     {"db": {"host": "localhost"}}
        - override: {"db": "postgres://..."}

    Invariantes:
        - Nenhum merge parcial é produzido em caso de conflito

    Limites explícitos:
        - Escalares de tipos distintos não são conflito (o override vence)
        - Não tenta resolver conflitos automaticamente
    """

    default_code = "CONFIG_TYPE_CONFLICT"


class InvalidOptionsError(ConfigError):
    """Opções do SafeCfg com chave desconhecida ou valor fora do domínio."""

    default_code = "INVALID_OPTIONS"
