# src/pipechain/core/engine/engine.py
"""
Orquestrador de pipelines de processos do PipeChain.

Dado uma lista ordenada de comandos, o Engine lança um processo por
comando, conecta a saída de cada um à entrada do seguinte através de
pipes e reporta um único veredito depois que todos os processos
terminaram — o equivalente programático de `cmd1 | cmd2 | … | cmdN`.

Fluxo:
    1. planner valida os estágios (nenhum recurso é criado antes disso)
    2. para cada estágio, da esquerda para a direita:
         canal novo (exceto no último) → fork/exec → liberação no pai
    3. barreira de conclusão coleta todos os filhos e agrega o veredito

Política de erros:
    - falhas por estágio (exit != 0, sinal, programa inexistente) são
      locais: só afetam o veredito, nunca desenrolam o laço
    - esgotamento de recursos (pipe/fork) aborta a construção: nada mais é
      lançado, os endpoints abertos são liberados, os filhos já criados
      ainda são coletados e o veredito é INTERNAL_ERROR

Cancelamento: nenhum. Um estágio lançado roda até terminar, mesmo depois
que um irmão falhou.
"""

from __future__ import annotations

import sys
from typing import Any, Dict, List, Optional, Sequence

from pipechain.core.errors import ErrorPayload, engine_execution_error
from pipechain.core.exceptions import PipelineException
from pipechain.core.pipeline.context import (
    PIPELINE_STAGE_ID,
    RunContext,
    new_run_context,
    stage_id_for,
)
from pipechain.core.pipeline.types import Command, PipelineRun, Verdict

from .barrier import WAIT_AUTO, WAIT_STRATEGIES, SpawnedStage, aggregate, drain
from .chain import ChainState
from .channels import Channel, allocate_channel
from .launcher import launch_stage, pipeline_wiring
from .planner import PipelineValidationError, plan_pipeline, stages_from_config


def _checked(strategy: str) -> str:
    if strategy not in WAIT_STRATEGIES:
        raise PipelineValidationError(f"Unknown engine.wait_strategy: {strategy!r}")
    return strategy


def wait_strategy_from(config: Optional[Dict[str, Any]]) -> str:
    """Lê `engine.wait_strategy` (default `auto`) e valida o valor."""
    engine_cfg = (config or {}).get("engine", {}) or {}
    return _checked(str(engine_cfg.get("wait_strategy", WAIT_AUTO)))


class PipelineEngine:
    """Engine canônico do PipeChain (planner + laço de lançamento + barreira)."""

    def __init__(
        self,
        *,
        stages: Sequence[Sequence[str]],
        ctx: Optional[RunContext] = None,
        wait_strategy: Optional[str] = None,
    ):
        self.commands: List[Command] = plan_pipeline(stages)
        self.ctx: RunContext = ctx if ctx is not None else new_run_context()
        self.wait_strategy: str = (
            wait_strategy_from(self.ctx.config) if wait_strategy is None else _checked(wait_strategy)
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any], *, ctx: Optional[RunContext] = None) -> "PipelineEngine":
        """
        Constrói o Engine a partir da configuração resolvida.

        `pipeline.stages` e `engine.wait_strategy` vêm ambos de `config`,
        mesmo quando um `ctx` explícito (com outra config) é fornecido.
        """
        return cls(
            stages=stages_from_config(config),
            ctx=ctx if ctx is not None else new_run_context(config),
            wait_strategy=wait_strategy_from(config),
        )

    def _exception_to_error(self, exc: Exception) -> ErrorPayload:
        """Converte a falha de construção em ErrorPayload (serializável, acionável)."""
        if isinstance(exc, PipelineException):
            return exc.to_payload()
        return engine_execution_error(
            exc_type=exc.__class__.__name__,
            exc_message=str(exc),
        )

    def _launch_all(self, spawned: List[SpawnedStage]) -> Optional[PipelineException]:
        chain = ChainState()
        last = len(self.commands) - 1

        for index, command in enumerate(self.commands):
            channel: Optional[Channel] = None
            try:
                if index < last:
                    channel = allocate_channel(stage_index=index)
                pid = launch_stage(
                    command,
                    pipeline_wiring(chain.pending, channel),
                    stage_index=index,
                )
            except PipelineException as exc:
                if channel is not None:
                    channel.close()
                chain.release()
                return exc

            spawned.append(SpawnedStage(index=index, pid=pid, argv=command))
            self.ctx.log(
                stage_id=stage_id_for(index),
                level="INFO",
                message="stage launched",
                pid=pid,
                argv=list(command),
            )
            chain.advance(channel)

        return None

    def run(self) -> PipelineRun:
        self.ctx.log(
            stage_id=PIPELINE_STAGE_ID,
            level="INFO",
            message="pipeline started",
            stages=len(self.commands),
        )

        # saída do chamador ainda no buffer do Python precisa sair antes da dos estágios
        sys.stdout.flush()
        sys.stderr.flush()

        spawned: List[SpawnedStage] = []
        failure = self._launch_all(spawned)

        error: Optional[Dict[str, Any]] = None
        if failure is not None:
            error = self._exception_to_error(failure).to_dict()
            self.ctx.log(
                stage_id=PIPELINE_STAGE_ID,
                level="ERROR",
                message="construction aborted",
                error=error,
                launched=len(spawned),
            )

        outcomes = drain(spawned, ctx=self.ctx, strategy=self.wait_strategy)
        verdict = Verdict.INTERNAL_ERROR if failure is not None else aggregate(outcomes)

        self.ctx.log(
            stage_id=PIPELINE_STAGE_ID,
            level="INFO" if verdict is Verdict.SUCCESS else "ERROR",
            message="pipeline finished",
            verdict=verdict.value,
        )
        return PipelineRun(
            verdict=verdict,
            outcomes=tuple(outcomes),
            launched=tuple(s.pid for s in spawned),
            error=error,
        )


def run_pipeline(stages: Sequence[Sequence[str]], *, ctx: Optional[RunContext] = None) -> Verdict:
    """
    Executa `stages` como um pipeline de shell e devolve apenas o veredito.

    Raises:
        PipelineValidationError: Se não houver estágios ou algum for inválido.
    """
    return PipelineEngine(stages=stages, ctx=ctx).run().verdict
