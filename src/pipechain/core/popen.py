# src/pipechain/core/popen.py
"""
Stream de estágio único.

Conecta a entrada **ou** a saída padrão de um único processo externo a um
endpoint de pipe mantido pelo chamador, sem passar por shell:

    - modo "r": o stdout do processo vai para o pipe; o chamador lê
    - modo "w": o stdin do processo vem do pipe; o chamador escreve

Usa as mesmas primitivas do pipeline (canal, launcher, ligação,
classificação de término) e não faz encadeamento de múltiplos estágios.

Diferente de um popen mínimo, `ProcessStream.close()` também coleta o
filho, de modo que nenhum processo terminado fica sem dono.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import IO, Optional, Sequence

from pipechain.core.engine.barrier import SpawnedStage, classify, reap
from pipechain.core.engine.channels import allocate_channel
from pipechain.core.engine.launcher import Wiring, launch_stage
from pipechain.core.engine.planner import PipelineValidationError, plan_pipeline
from pipechain.core.pipeline.types import Command, StageOutcome


READ = "r"
WRITE = "w"


@dataclass
class ProcessStream:
    """Endpoint do chamador conectado a um processo externo."""

    fd: int
    pid: int
    mode: str
    argv: Command
    _file: Optional[IO[bytes]] = field(default=None, init=False, repr=False)
    _outcome: Optional[StageOutcome] = field(default=None, init=False, repr=False)

    def file(self) -> IO[bytes]:
        """Arquivo binário sobre `fd`; pertence ao stream e é fechado por `close()`."""
        if self._file is None:
            self._file = os.fdopen(self.fd, "rb" if self.mode == READ else "wb")
        return self._file

    @property
    def closed(self) -> bool:
        return self._outcome is not None

    def close(self) -> StageOutcome:
        """Libera o endpoint e espera o processo terminar."""
        if self._outcome is not None:
            return self._outcome
        try:
            if self._file is not None:
                self._file.close()
            else:
                os.close(self.fd)
        finally:
            self._outcome = classify(SpawnedStage(index=0, pid=self.pid, argv=self.argv), reap(self.pid))
        return self._outcome

    def __enter__(self) -> "ProcessStream":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def open_process(argv: Sequence[str], mode: str) -> ProcessStream:
    """
    Lança `argv` e devolve o endpoint do chamador.

    Raises:
        PipelineValidationError: Se `mode` não for "r"/"w" ou `argv` for inválido.
        ChannelAllocationError: Se o pipe não puder ser criado.
        StageSpawnError: Se o fork falhar (o pipe é liberado antes).
    """
    if mode not in (READ, WRITE):
        raise PipelineValidationError(f"mode must be 'r' or 'w', got {mode!r}")
    (command,) = plan_pipeline([argv])

    channel = allocate_channel()
    if mode == READ:
        wiring = Wiring(stdout=channel.write_fd, release=(channel.read_fd,))
    else:
        wiring = Wiring(stdin=channel.read_fd, release=(channel.write_fd,))

    try:
        pid = launch_stage(command, wiring)
    except BaseException:
        channel.close()
        raise

    if mode == READ:
        channel.close_write()
        return ProcessStream(fd=channel.read_fd, pid=pid, mode=mode, argv=command)
    channel.close_read()
    return ProcessStream(fd=channel.write_fd, pid=pid, mode=mode, argv=command)
