# src/safecfg/core/validation/__init__.py
"""
Validação do SafeCfg.

Componentes:
    - types      → ValidatorResult, Validator (Protocol), ValidationResult
    - context    → ValidationContext imutável por run
    - validators → validadores embutidos (type, enum, pattern, range, length)
    - registry   → registro de componentes nomeados
    - rules      → regras contextuais por ambiente
    - engine     → ValidationEngine
"""
