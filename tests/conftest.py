# tests/conftest.py
"""
Fixtures compartilhados para testes do SafeCfg.

Este módulo define fixtures reutilizáveis que fornecem:
- schemas mínimos e determinísticos (db, servidor, flags)
- configurações YAML de defaults e overrides locais
- provedor de ambiente injetável (sem tocar `os.environ`)
- relógio controlável para testes de cache

Decisões arquiteturais:
    - Fixtures são mantidas simples e explícitas
    - Dados retornados são novos a cada teste (sem estado compartilhado)
    - Nenhuma fixture lê variáveis de ambiente do processo

Invariantes:
    - Nenhuma fixture executa validação
    - Nenhuma fixture realiza I/O (arquivos são criados via tmp_path nos testes)

Limites explícitos:
    - Não substituir testes de integração
    - Não conter lógica condicional complexa
"""

import pytest


@pytest.fixture
def db_schema() -> dict:
    """
    Schema canônico de banco de dados usado pelos exemplos de referência.

    Estrutura:
        - db.host: string obrigatória
        - db.port: number com default 5432
    """
    return {
        "db": {
            "host": {"type": "string", "required": True},
            "port": {"type": "number", "default": 5432},
        }
    }


@pytest.fixture
def server_schema() -> dict:
    """
    Schema mais rico, cobrindo env binding, segredo, enum, pattern,
    limites numéricos e de comprimento.
    """
    return {
        "server": {
            "host": {"type": "string", "default": "0.0.0.0"},
            "port": {"type": "number", "min": 1, "max": 65535, "default": 8080, "coerce": True},
            "mode": {"type": "string", "enum": ["http", "https"], "default": "http"},
        },
        "db": {
            "url": {"type": "string", "required": True, "pattern": r"^postgres://"},
            "password": {"type": "string", "secret": True, "env": "DB_PASSWORD", "min_length": 8},
        },
        "debug": {"type": "boolean", "default": False},
    }


@pytest.fixture
def defaults_yaml() -> str:
    """YAML de defaults (fonte base, menor precedência)."""
    return """\
server:
  host: 127.0.0.1
  port: 8080
db:
  url: postgres://localhost/app
"""


@pytest.fixture
def local_yaml() -> str:
    """YAML de override local (fonte de maior precedência)."""
    return """\
server:
  port: 9090
debug: true
"""


@pytest.fixture
def env() -> dict:
    """Provedor de ambiente injetável."""
    return {"DB_PASSWORD": "s3cr3t-value"}


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Relógio monotônico controlável (segundos)."""
    return FakeClock()
