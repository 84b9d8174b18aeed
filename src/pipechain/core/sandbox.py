# src/pipechain/core/sandbox.py
"""
Sandbox — supervisão de uma unidade de trabalho com prazo.

Executa uma função sem argumentos num processo filho e classifica como
ele terminou:

    - ACCEPTABLE: a função retornou normalmente (exit 0)
    - REJECTED: exit != 0, exceção não tratada, sinal fatal ou prazo
      estourado
    - SUPERVISOR_ERROR: o próprio supervisor não conseguiu operar
      (fork falhou, prazo inválido, espera falhou)

Mecanismo de prazo (espera cancelável):
    - `deadline()` arma um timer de intervalo (`ITIMER_REAL`) e instala um
      handler de SIGALRM sem estado, que apenas levanta `DeadlineExpired`
      e assim interrompe a espera bloqueante
    - a espera usa `waitid` com WNOWAIT: o término é observado sem coletar,
      e a coleta (`waitpid`) acontece depois, fora do prazo
    - ao expirar, o supervisor mata o filho (SIGKILL) e faz uma coleta
      final não cancelável, para não deixar zumbi
    - o handler e o timer anteriores são sempre restaurados; um
      `ITIMER_REAL` do chamador volta armado com o tempo que lhe restava
    - prazos não finitos ou grandes demais para o timer são recusados
      antes do fork

Não existe estado global: o pid supervisionado vive em `SupervisorState`,
passado explicitamente para quem espera e classifica.

Restrições:
    - sinais só podem ser instalados na thread principal; fora dela o
      veredito é SUPERVISOR_ERROR
"""

from __future__ import annotations

import contextlib
import math
import os
import signal
import sys
import time
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional

from pipechain.core.errors import supervisor_error
from pipechain.core.exceptions import SupervisorError
from pipechain.core.pipeline.context import RunContext


SANDBOX_STAGE_ID = "sandbox"

EXIT_UNCAUGHT_EXCEPTION = 1

# acima disso `setitimer` estoura o time_t da plataforma
MAX_TIMEOUT_SECONDS = 10 ** 8

_MIN_REARM_SECONDS = 1e-6


class SandboxVerdict(str, Enum):
    """Veredito do sandbox para uma unidade de trabalho."""
    ACCEPTABLE = "acceptable"
    REJECTED = "rejected"
    SUPERVISOR_ERROR = "supervisor_error"


class DeadlineExpired(Exception):
    """Levantada pelo handler de SIGALRM para interromper uma espera."""


@dataclass
class SupervisorState:
    """Estado explícito de uma supervisão em andamento."""
    pid: int
    timeout: float
    timed_out: bool = False
    status: Optional[int] = None


@dataclass(frozen=True)
class SandboxSettings:
    """Seção `sandbox` da configuração."""
    timeout_seconds: float = 10.0
    verbose: bool = False

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> "SandboxSettings":
        section = (config or {}).get("sandbox", {}) or {}
        return cls(
            timeout_seconds=float(section.get("timeout_seconds", cls.timeout_seconds)),
            verbose=bool(section.get("verbose", cls.verbose)),
        )


def _raise_deadline(signum: int, frame: Any) -> None:
    raise DeadlineExpired()


def _rearm(delay: float, interval: float, elapsed: float) -> None:
    if delay <= 0:
        return
    # um timer que venceu durante o prazo dispara logo em seguida
    signal.setitimer(signal.ITIMER_REAL, max(delay - elapsed, _MIN_REARM_SECONDS), interval)


@contextlib.contextmanager
def deadline(seconds: float) -> Iterator[None]:
    """
    Arma um prazo de `seconds` que interrompe a espera corrente com DeadlineExpired.

    O handler de SIGALRM e o `ITIMER_REAL` que o chamador já tinha armado
    são restaurados na saída, descontado o tempo decorrido.
    """
    previous = signal.signal(signal.SIGALRM, _raise_deadline)
    started = time.monotonic()
    old_delay, old_interval = signal.getitimer(signal.ITIMER_REAL)
    try:
        signal.setitimer(signal.ITIMER_REAL, seconds)
        yield
    finally:
        try:
            signal.setitimer(signal.ITIMER_REAL, 0)
        finally:
            signal.signal(signal.SIGALRM, previous)
            _rearm(old_delay, old_interval, time.monotonic() - started)


def valid_timeout(timeout: Any) -> bool:
    """Prazo aceito pelo supervisor: número finito em (0, MAX_TIMEOUT_SECONDS]."""
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        return False
    return math.isfinite(timeout) and 0 < timeout <= MAX_TIMEOUT_SECONDS


def _exit_code_of(exc: SystemExit) -> int:
    if exc.code is None:
        return 0
    if isinstance(exc.code, int):
        return exc.code & 0xFF
    return EXIT_UNCAUGHT_EXCEPTION


def _run_child(fn: Callable[[], Any]) -> None:
    status = EXIT_UNCAUGHT_EXCEPTION
    try:
        fn()
        status = 0
    except SystemExit as exc:
        status = _exit_code_of(exc)
    except BaseException:
        traceback.print_exc()
    finally:
        with contextlib.suppress(Exception):
            sys.stdout.flush()
            sys.stderr.flush()
        # nunca retornar ao código do supervisor a partir do filho
        os._exit(status)


def _spawn(fn: Callable[[], Any]) -> int:
    try:
        pid = os.fork()
    except OSError as exc:
        raise SupervisorError.from_payload(
            supervisor_error(reason="fork failed", details={"errno": exc.errno, "strerror": exc.strerror})
        ) from exc
    if pid == 0:
        _run_child(fn)
    return pid


def _has_exited(pid: int) -> bool:
    return os.waitid(os.P_PID, pid, os.WEXITED | os.WNOHANG | os.WNOWAIT) is not None


def _wait(state: SupervisorState) -> None:
    """
    Espera o filho sob prazo; ao expirar, mata. Coleta sempre fora do prazo.

    A espera cancelável usa WNOWAIT: o filho só é coletado pelo `waitpid`
    final, de modo que um alarme que chegue depois do término nunca perde
    o status nem mata um pid já coletado.
    """
    try:
        with deadline(state.timeout):
            os.waitid(os.P_PID, state.pid, os.WEXITED | os.WNOWAIT)
    except DeadlineExpired:
        if not _has_exited(state.pid):
            state.timed_out = True
            with contextlib.suppress(ProcessLookupError):
                os.kill(state.pid, signal.SIGKILL)
    _, state.status = os.waitpid(state.pid, 0)


def _abandon(state: SupervisorState) -> None:
    """Mata e coleta o filho quando a supervisão não pode continuar."""
    with contextlib.suppress(ProcessLookupError):
        os.kill(state.pid, signal.SIGKILL)
    with contextlib.suppress(ChildProcessError):
        os.waitpid(state.pid, 0)


def _classify(state: SupervisorState) -> "tuple[SandboxVerdict, str]":
    if state.timed_out:
        return SandboxVerdict.REJECTED, f"Bad function: timed out after {state.timeout:g} seconds"
    status = state.status
    if os.WIFEXITED(status):
        code = os.WEXITSTATUS(status)
        if code == 0:
            return SandboxVerdict.ACCEPTABLE, "Nice function!"
        return SandboxVerdict.REJECTED, f"Bad function: exited with code {code}"
    if os.WIFSIGNALED(status):
        sig = os.WTERMSIG(status)
        return SandboxVerdict.REJECTED, f"Bad function: {signal.strsignal(sig) or sig}"
    return SandboxVerdict.SUPERVISOR_ERROR, f"Unrecognized wait status: {status}"


def _report(ctx: Optional[RunContext], verdict: SandboxVerdict, message: str, **extra: Any) -> None:
    if ctx is None:
        return
    ctx.log(
        stage_id=SANDBOX_STAGE_ID,
        level="INFO" if verdict is SandboxVerdict.ACCEPTABLE else "WARNING",
        message=message,
        verdict=verdict.value,
        **extra,
    )


def sandbox(
    fn: Callable[[], Any],
    timeout: float,
    verbose: bool = False,
    *,
    ctx: Optional[RunContext] = None,
) -> SandboxVerdict:
    """
    Executa `fn` num processo filho com prazo de `timeout` segundos.

    Args:
        fn: Unidade de trabalho sem argumentos.
        timeout: Prazo em segundos, finito, em (0, MAX_TIMEOUT_SECONDS];
            frações são aceitas.
        verbose: Imprime o diagnóstico em stdout.
        ctx: RunContext opcional para registrar o evento.

    Returns:
        SandboxVerdict: ACCEPTABLE, REJECTED ou SUPERVISOR_ERROR.
    """
    if not valid_timeout(timeout):
        payload = supervisor_error(reason="invalid timeout", details={"timeout": timeout})
        _report(ctx, SandboxVerdict.SUPERVISOR_ERROR, payload.message, error=payload.to_dict())
        return SandboxVerdict.SUPERVISOR_ERROR

    sys.stdout.flush()
    sys.stderr.flush()

    try:
        state = SupervisorState(pid=_spawn(fn), timeout=float(timeout))
    except SupervisorError as exc:
        _report(ctx, SandboxVerdict.SUPERVISOR_ERROR, exc.message, error=exc.to_payload().to_dict())
        return SandboxVerdict.SUPERVISOR_ERROR

    try:
        _wait(state)
    except ValueError as exc:
        # signal.signal fora da thread principal
        _abandon(state)
        payload = supervisor_error(reason="deadline unavailable", details={"exc_message": str(exc)})
        _report(ctx, SandboxVerdict.SUPERVISOR_ERROR, payload.message, error=payload.to_dict())
        return SandboxVerdict.SUPERVISOR_ERROR
    except ChildProcessError as exc:
        payload = supervisor_error(reason="wait failed", details={"pid": state.pid, "strerror": exc.strerror})
        _report(ctx, SandboxVerdict.SUPERVISOR_ERROR, payload.message, error=payload.to_dict())
        return SandboxVerdict.SUPERVISOR_ERROR
    except BaseException:
        _abandon(state)
        raise

    verdict, message = _classify(state)
    if verbose:
        print(message)
    _report(ctx, verdict, message, pid=state.pid, timed_out=state.timed_out)
    return verdict


def sandbox_from_config(
    fn: Callable[[], Any],
    config: Optional[Dict[str, Any]],
    *,
    ctx: Optional[RunContext] = None,
) -> SandboxVerdict:
    """Executa o sandbox com timeout e verbosidade da seção `sandbox` da configuração."""
    settings = SandboxSettings.from_config(config)
    return sandbox(fn, settings.timeout_seconds, settings.verbose, ctx=ctx)
