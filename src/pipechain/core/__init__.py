# src/pipechain/core/__init__.py
"""
Core do PipeChain.

Este pacote reúne a implementação canônica do orquestrador de pipelines
e de seus colaboradores.

Componentes principais:
    - config   → resolução de configuração (merge, validação estrutural, hashing)
    - pipeline → tipos canônicos (Command, Verdict, StageOutcome) e RunContext
    - engine   → canais, launcher, estado de encadeamento, barreira e Engine
    - popen    → stream de estágio único
    - sandbox  → supervisor com prazo

Princípios fundamentais:
    - Falhas de estágio são locais e só afetam o veredito
    - Todo processo criado é coletado; todo descritor criado é liberado
    - Nenhum estado global: eventos vivem no RunContext de cada run
"""
