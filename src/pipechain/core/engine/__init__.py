# src/pipechain/core/engine/__init__.py
"""
Engine do PipeChain.

Este pacote contém o orquestrador de pipelines de processos e seus
componentes, em ordem de dependência (folhas primeiro):

    - channels → alocação de um pipe por par de estágios adjacentes
    - launcher → fork/exec de um processo por comando e ligação de
                 descritores dentro do filho
    - chain    → estado de encadeamento (endpoint de leitura pendente)
    - barrier  → coleta de todos os filhos e veredito agregado
    - planner  → validação estrutural dos estágios
    - engine   → laço de lançamento + barreira

Invariantes:
    - Estágios são lançados na ordem do pipeline; podem terminar em
      qualquer ordem
    - Entre iterações o orquestrador mantém no máximo um endpoint aberto
      (o pendente) e nenhum endpoint de escrita
    - Todo processo criado é coletado antes do retorno

Limites explícitos:
    - Não interpreta gramática de shell
    - Não cancela estágios em execução
    - Não aplica timeout (isso é do sandbox)
"""

from .engine import PipelineEngine, run_pipeline  # noqa: F401
from .planner import PipelineValidationError, plan_pipeline, stages_from_config  # noqa: F401
