# src/pipechain/__init__.py
"""
PipeChain — orquestração programática de pipelines de processos.

Este pacote raiz define o namespace público do PipeChain: dado uma lista
ordenada de comandos, lança um processo por comando, conecta cada saída à
entrada seguinte por pipes do kernel e reporta um único veredito depois
que todos os processos terminaram, como `cmd1 | cmd2 | … | cmdN`, mas sem
shell.

Arquitetura em alto nível:
    - core.config   → carregamento, merge e hashing de configuração
    - core.pipeline → tipos canônicos e contexto de execução (eventos)
    - core.engine   → canais, launcher, encadeamento, barreira e Engine
    - core.popen    → stream de estágio único (entrada OU saída de um processo)
    - core.sandbox  → supervisão de uma função com prazo

Limites explícitos:
    - Não interpreta gramática de shell (globbing, redirecionamento, variáveis)
    - Não cancela estágios quando um irmão falha
    - Não ajusta a capacidade dos pipes
"""
# src/pipechain/__init__.py
from .core.engine import PipelineEngine, PipelineValidationError, run_pipeline
from .core.pipeline.types import Verdict
from .core.popen import open_process
from .core.sandbox import SandboxVerdict, sandbox

__all__ = [
    "PipelineEngine",
    "PipelineValidationError",
    "run_pipeline",
    "Verdict",
    "open_process",
    "sandbox",
    "SandboxVerdict",
]
