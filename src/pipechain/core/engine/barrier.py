# src/pipechain/core/engine/barrier.py
"""
Barreira de conclusão do pipeline.

Depois que todos os estágios foram lançados (ou a construção foi
abortada), a barreira espera o término de **cada** processo efetivamente
criado, um por vez, na ordem em que o sistema operacional os entrega, e
agrega um único veredito.

Regras:
    - exit 0 não contribui falha
    - exit != 0 ou sinal fatal contribui FAILURE
    - uma falha nunca interrompe a coleta dos demais: a função só retorna
      depois que todo processo foi coletado (nenhum zumbi é deixado)
    - não há timeout nesta camada; um estágio que nunca termina bloqueia
      a barreira para sempre
    - com SIGCHLD ignorado no processo hospedeiro o status é descartado
      pelo kernel: o estágio vira UNCOLLECTED, gera warning e não conta
      como falha

Estratégias de espera (`engine.wait_strategy`):
    - auto: com `os.pidfd_open` (Linux), cada pid ganha um descritor de
      processo registrado num seletor; o primeiro a ficar legível é
      coletado com `waitpid(pid)`. Apenas os filhos do pipeline são
      coletados, nunca outros filhos do processo hospedeiro.
    - sequential: `waitpid` bloqueante na ordem de lançamento. O veredito
      é idêntico; só a ordem dos diagnósticos muda.
"""

from __future__ import annotations

import os
import selectors
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from pipechain.core.pipeline.context import RunContext, stage_id_for
from pipechain.core.pipeline.types import Command, StageOutcome, TerminationKind, Verdict


WAIT_AUTO = "auto"
WAIT_SEQUENTIAL = "sequential"
WAIT_STRATEGIES = (WAIT_AUTO, WAIT_SEQUENTIAL)


@dataclass(frozen=True)
class SpawnedStage:
    """O mínimo que a barreira precisa saber de um estágio lançado."""
    index: int
    pid: int
    argv: Command


def classify(stage: SpawnedStage, status: Optional[int]) -> StageOutcome:
    """Converte um status de `waitpid` em `StageOutcome` (None = status descartado)."""
    if status is None:
        return StageOutcome(
            index=stage.index,
            pid=stage.pid,
            argv=stage.argv,
            kind=TerminationKind.UNCOLLECTED,
        )
    code = os.waitstatus_to_exitcode(status)
    if code < 0:
        return StageOutcome(
            index=stage.index,
            pid=stage.pid,
            argv=stage.argv,
            kind=TerminationKind.SIGNALED,
            signal=-code,
        )
    return StageOutcome(
        index=stage.index,
        pid=stage.pid,
        argv=stage.argv,
        kind=TerminationKind.EXITED,
        exit_code=code,
    )


def aggregate(outcomes: Sequence[StageOutcome]) -> Verdict:
    if all(o.succeeded for o in outcomes):
        return Verdict.SUCCESS
    return Verdict.FAILURE


def reap(pid: int) -> Optional[int]:
    """
    Coleta `pid` e devolve o status bruto de `waitpid`.

    Com SIGCHLD ignorado o kernel coleta o filho sozinho e `waitpid`
    falha com ECHILD depois que ele termina; nesse caso devolve None.
    """
    try:
        _, status = os.waitpid(pid, 0)
    except ChildProcessError:
        return None
    return status


def _sequential(pids: Sequence[int]) -> Iterator[Tuple[int, Optional[int]]]:
    for pid in pids:
        yield pid, reap(pid)


def _by_pidfd(pids: Sequence[int]) -> Iterator[Tuple[int, Optional[int]]]:
    selector = selectors.DefaultSelector()
    unwatched: List[int] = []
    try:
        for pid in pids:
            try:
                pidfd = os.pidfd_open(pid)
            except OSError:
                # sem descritor de processo (ex.: EMFILE): coleta bloqueante no fim
                unwatched.append(pid)
                continue
            selector.register(pidfd, selectors.EVENT_READ, pid)

        while selector.get_map():
            for key, _ in selector.select():
                selector.unregister(key.fileobj)
                os.close(key.fd)
                yield key.data, reap(key.data)
    finally:
        for key in list(selector.get_map().values()):
            os.close(key.fd)
        selector.close()

    yield from _sequential(unwatched)


def terminations(pids: Sequence[int], *, strategy: str = WAIT_AUTO) -> Iterator[Tuple[int, Optional[int]]]:
    """Produz `(pid, status)` para cada pid, até que todos tenham sido coletados."""
    if strategy not in WAIT_STRATEGIES:
        raise ValueError(f"Unknown wait strategy: {strategy!r}")
    if strategy == WAIT_AUTO and hasattr(os, "pidfd_open"):
        return _by_pidfd(pids)
    return _sequential(pids)


def drain(
    spawned: Sequence[SpawnedStage],
    *,
    ctx: Optional[RunContext] = None,
    strategy: str = WAIT_AUTO,
) -> List[StageOutcome]:
    """
    Coleta todos os estágios lançados e classifica seus términos.

    Returns:
        List[StageOutcome]: Um resultado por estágio, na ordem de coleta.
    """
    by_pid = {s.pid: s for s in spawned}
    outcomes: List[StageOutcome] = []

    for pid, status in terminations([s.pid for s in spawned], strategy=strategy):
        outcome = classify(by_pid[pid], status)
        outcomes.append(outcome)

        if ctx is None:
            continue
        sid = stage_id_for(outcome.index)
        clean = outcome.kind is TerminationKind.EXITED and outcome.exit_code == 0
        ctx.log(
            stage_id=sid,
            level="INFO" if clean else "WARNING",
            message="stage terminated",
            pid=pid,
            outcome=outcome.describe(),
        )
        if not clean:
            ctx.add_warning(stage_id=sid, message=f"{outcome.argv[0]}: {outcome.describe()}")

    return outcomes
