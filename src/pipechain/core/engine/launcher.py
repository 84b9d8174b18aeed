# src/pipechain/core/engine/launcher.py
"""
Lançador de estágios e ligação de descritores no processo filho.

Para cada estágio, o launcher cria um processo filho via `fork` — cópia
exata do orquestrador, herdando todos os descritores abertos — e a partir
daí dois caminhos divergem:

    - no filho: a ligação de descritores (`Wiring`) é aplicada e a imagem
      do processo é substituída pelo programa do comando (`execvp`)
    - no pai: o pid é devolvido ao Engine, que libera os endpoints que não
      precisa mais e avança o estado de encadeamento

Ordem da ligação no filho:
    1. stdin ← endpoint pendente do estágio anterior, e o original é fechado
    2. endpoints a liberar (ex.: leitura do canal novo) são fechados
    3. stdout → endpoint de escrita do canal novo, e o original é fechado

Todo descritor duplicado que não for religado a um stream padrão precisa
ser fechado antes do `exec`; uma cópia de escrita esquecida impede o
leitor de ver fim de stream.

Falhas no filho (ligação ou `exec`) nunca retornam ao código do chamador:
o filho termina com `os._exit` e um status não zero, indistinguível de um
programa que sai com erro.
"""

from __future__ import annotations

import contextlib
import os
import signal
from dataclasses import dataclass
from typing import Optional, Tuple

from pipechain.core.errors import stage_spawn_failed
from pipechain.core.exceptions import StageSpawnError
from pipechain.core.pipeline.types import Command

from .channels import Channel


EXIT_WIRING_FAILURE = 1
EXIT_EXEC_FAILURE = 127

STDIN_FILENO = 0
STDOUT_FILENO = 1
STDERR_FILENO = 2

# Disposições que o interpretador altera na inicialização e que seriam
# herdadas pelo programa invocado através do exec.
_RESTORED_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGPIPE", "SIGXFSZ") if hasattr(signal, name)
)


@dataclass(frozen=True)
class Wiring:
    """
    Plano de ligação de descritores aplicado dentro do filho.

    Campos:
        - stdin: descritor a religar como entrada padrão (None = herdar)
        - stdout: descritor a religar como saída padrão (None = herdar)
        - release: descritores a fechar sem religar
    """
    stdin: Optional[int] = None
    stdout: Optional[int] = None
    release: Tuple[int, ...] = ()


def pipeline_wiring(pending: Optional[int], channel: Optional[Channel]) -> Wiring:
    """Ligação de um estágio de pipeline: entrada pendente, saída no canal novo."""
    if channel is None:
        return Wiring(stdin=pending)
    return Wiring(stdin=pending, stdout=channel.write_fd, release=(channel.read_fd,))


def _rebind(source: int, target: int) -> None:
    if source == target:
        os.set_inheritable(target, True)
        return
    os.dup2(source, target)
    os.close(source)


def apply_wiring(wiring: Wiring) -> None:
    """Aplica a ligação no processo corrente. Só deve rodar no filho."""
    if wiring.stdin is not None:
        _rebind(wiring.stdin, STDIN_FILENO)
    for fd in wiring.release:
        os.close(fd)
    if wiring.stdout is not None:
        _rebind(wiring.stdout, STDOUT_FILENO)


def _report_exec_failure(program: str, exc: OSError) -> None:
    message = f"pipechain: {program}: {exc.strerror or exc}\n"
    with contextlib.suppress(OSError):
        os.write(STDERR_FILENO, message.encode("utf-8", "replace"))


def _exec_child(command: Command, wiring: Wiring) -> None:
    status = EXIT_WIRING_FAILURE
    try:
        apply_wiring(wiring)
        for signum in _RESTORED_SIGNALS:
            signal.signal(signum, signal.SIG_DFL)
        status = EXIT_EXEC_FAILURE
        try:
            os.execvp(command[0], list(command))
        except OSError as exc:
            _report_exec_failure(command[0], exc)
    finally:
        os._exit(status)


def launch_stage(command: Command, wiring: Wiring, *, stage_index: int = 0) -> int:
    """
    Cria o processo de um estágio e devolve seu pid ao orquestrador.

    Raises:
        StageSpawnError: Se o `fork` falhar (esgotamento de processos ou
            memória). Nenhum descritor é fechado aqui; a limpeza é do chamador.
    """
    try:
        pid = os.fork()
    except OSError as exc:
        payload = stage_spawn_failed(
            stage_index=stage_index,
            argv=list(command),
            errno=exc.errno,
            strerror=exc.strerror,
        )
        raise StageSpawnError.from_payload(payload) from exc

    if pid == 0:
        _exec_child(command, wiring)

    return pid
