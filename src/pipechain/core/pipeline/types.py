"""
Tipos canônicos do pipeline do PipeChain.

Este módulo define as estruturas e enums fundamentais que padronizam
a comunicação entre planner, Engine, barreira de conclusão e os
colaboradores (stream de estágio único e sandbox).

Componentes principais:
    - Command         → sequência imutável e não vazia de tokens
    - Verdict         → veredito agregado do pipeline
    - TerminationKind → forma de término de um processo (exit ou sinal)
    - StageOutcome    → término classificado de um estágio (diagnóstico)
    - PipelineRun     → resultado completo de uma execução (diagnóstico)

Invariantes:
    - Enums possuem valores textuais canônicos
    - Estruturas de resultado são imutáveis
    - Nenhuma lógica de processo vive neste módulo
"""

from __future__ import annotations

import signal
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


# Um comando é a sequência de tokens passada como argv ao programa invocado;
# argv[0] é resolvido via PATH.
Command = Tuple[str, ...]


class Verdict(str, Enum):
    """
    Veredito agregado de uma execução de pipeline.

    Estados definidos:
        - SUCCESS: todos os estágios terminaram normalmente com código 0
        - FAILURE: ao menos um estágio terminou com código != 0 ou por sinal
        - INTERNAL_ERROR: a construção do pipeline não pôde prosseguir
          (esgotamento de recursos ao criar canal ou processo)

    Decisões arquiteturais:
        - Não existe veredito parcial nem detalhamento por estágio
        - A posição do estágio que falhou é irrelevante para o veredito
    """
    SUCCESS = "success"
    FAILURE = "failure"
    INTERNAL_ERROR = "internal_error"

    @property
    def exit_code(self) -> int:
        """Código de saída no estilo de shell (0 para sucesso, 1 caso contrário)."""
        return 0 if self is Verdict.SUCCESS else 1


class TerminationKind(str, Enum):
    """Forma de término observada pela barreira de conclusão."""
    EXITED = "exited"
    SIGNALED = "signaled"
    # o kernel descartou o status (SIGCHLD ignorado no processo hospedeiro)
    UNCOLLECTED = "uncollected"


@dataclass(frozen=True)
class StageOutcome:
    """
    Término classificado de um processo de estágio.

    Campos:
        - index: posição do estágio no pipeline (0 para processos avulsos)
        - pid: identificador do processo já coletado
        - argv: comando executado
        - kind: EXITED, SIGNALED ou UNCOLLECTED
        - exit_code: código de saída (apenas quando EXITED)
        - signal: número do sinal fatal (apenas quando SIGNALED)

    Sinal fatal e código != 0 são distintos aqui, mas colapsam para o mesmo
    veredito FAILURE no agregado.
    """
    index: int
    pid: int
    argv: Command
    kind: TerminationKind
    exit_code: Optional[int] = None
    signal: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        if self.kind is TerminationKind.UNCOLLECTED:
            # sem status não há falha observável; mesma convenção do `subprocess`
            return True
        return self.kind is TerminationKind.EXITED and self.exit_code == 0

    def describe(self) -> str:
        if self.kind is TerminationKind.EXITED:
            return f"exited with code {self.exit_code}"
        if self.kind is TerminationKind.UNCOLLECTED:
            return "exit status unavailable (SIGCHLD ignored)"
        try:
            name = signal.Signals(self.signal).name
        except ValueError:
            name = str(self.signal)
        return f"killed by signal {name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "pid": self.pid,
            "argv": list(self.argv),
            "kind": self.kind.value,
            "exit_code": self.exit_code,
            "signal": self.signal,
        }


@dataclass(frozen=True)
class PipelineRun:
    """
    Resultado completo de uma execução de pipeline.

    O chamador de `run_pipeline` recebe apenas `verdict`; os demais campos
    existem para diagnóstico e testes.

    Campos:
        - verdict: veredito agregado
        - outcomes: términos classificados, na ordem em que foram coletados
        - launched: pids na ordem de lançamento
        - error: payload serializado da falha de construção (ou None)
    """
    verdict: Verdict
    outcomes: Tuple[StageOutcome, ...] = field(default_factory=tuple)
    launched: Tuple[int, ...] = field(default_factory=tuple)
    error: Optional[Dict[str, Any]] = None
