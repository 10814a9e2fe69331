# src/safecfg/core/__init__.py
"""
Core do SafeCfg.

Componentes principais:
    - schema     → compilador, grafo de dependências, builder e shape check
    - validation → engine, validadores embutidos, contexto e regras contextuais
    - config     → merge de fontes, transformação/coerção, loader e hashing
    - sources    → definições de fonte, loaders embutidos, cache e gerenciador

Princípios fundamentais:
    - Schema compilado é imutável e reutilizável entre loads
    - Falhas de conteúdo são coletadas, nunca levantadas
    - Nenhum estado global: ambiente e logger são injetados
"""
