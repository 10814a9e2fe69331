# src/safecfg/core/schema/__init__.py
"""
Schema do SafeCfg.

Componentes:
    - types    → FieldType, CompiledPath, CompiledSchema, metadados
    - compiler → schema declarativo → tabela plana de CompiledPath
    - graph    → dependências/conflitos, ciclos e ordem topológica
    - builder  → construção fluente de schemas
    - shape    → verificação estrutural de dados contra o schema compilado
"""
