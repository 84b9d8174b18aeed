# src/pipechain/core/pipeline/__init__.py
"""
# Pipeline Core — PipeChain

Este pacote define os **tipos canônicos** e o **contexto de execução**
compartilhados por Engine, barreira de conclusão e colaboradores.

## Componentes

- **types**
  - `Command`: sequência imutável de tokens (argv)
  - `Verdict`: veredito agregado (SUCCESS, FAILURE, INTERNAL_ERROR)
  - `TerminationKind` / `StageOutcome`: término classificado de um estágio
  - `PipelineRun`: resultado de diagnóstico de uma execução

- **context**
  - `RunContext`: log estruturado de eventos e warnings por estágio

## Limites Explícitos

- Não cria processos nem canais
- Não decide políticas de execução
"""

from .context import RunContext, new_run_context, stage_id_for  # noqa: F401
from .types import (  # noqa: F401
    Command,
    PipelineRun,
    StageOutcome,
    TerminationKind,
    Verdict,
)
