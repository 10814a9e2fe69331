# src/safecfg/core/config/__init__.py

"""
Camada de configuração do SafeCfg.

Responsabilidades do pacote:
    - Carregamento de arquivos de configuração (YAML/JSON)
    - Merge de fontes segundo a estratégia configurada
    - Coerção e transformação de valores antes da validação
    - Geração de hash canônico da configuração efetiva

Invariantes:
    - A configuração final é um dicionário puro (dict)
    - Nenhum input é mutado
    - Conflitos estruturais são tratados como erro
"""
