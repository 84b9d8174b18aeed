# tests/core/popen/test_open_process.py
"""
Testes do stream de estágio único (`open_process`).

Os testes asseguram que:
- no modo "r" o chamador lê o stdout do processo
- no modo "w" o chamador escreve no stdin do processo
- `close()` libera o endpoint e coleta o filho
- modos e comandos inválidos são rejeitados antes de criar recursos
"""

import errno
import os

import pytest

from pipechain import open_process
from pipechain.core.engine.planner import PipelineValidationError
from pipechain.core.exceptions import StageSpawnError
from pipechain.core.pipeline.types import TerminationKind


def test_read_mode_streams_process_output(assert_reaped):
    stream = open_process(["echo", "from child"], "r")

    assert stream.file().read() == b"from child\n"
    outcome = stream.close()

    assert outcome.succeeded
    assert stream.closed
    assert_reaped([stream.pid])


def test_write_mode_feeds_process_input(python_exe):
    checker = [python_exe, "-c", "import sys; sys.exit(0 if sys.stdin.read() == 'ping' else 3)"]

    with open_process(checker, "w") as stream:
        stream.file().write(b"ping")

    assert stream.close().exit_code == 0


def test_write_mode_reports_consumer_failure(python_exe):
    checker = [python_exe, "-c", "import sys; sys.exit(0 if sys.stdin.read() == 'ping' else 3)"]

    stream = open_process(checker, "w")
    os.write(stream.fd, b"pong")
    outcome = stream.close()

    assert outcome.kind is TerminationKind.EXITED
    assert outcome.exit_code == 3


def test_close_without_file_and_idempotent():
    stream = open_process(["true"], "r")

    first = stream.close()
    second = stream.close()

    assert first is second
    assert first.succeeded


def test_no_descriptor_leak(open_fds):
    before = open_fds()

    with open_process(["echo", "x"], "r") as stream:
        stream.file().read()
    with open_process(["cat"], "w") as stream:
        stream.file().write(b"")

    assert open_fds() == before


def test_missing_program_is_a_failed_outcome():
    stream = open_process(["pipechain-no-such-program"], "r")

    assert stream.file().read() == b""
    assert stream.close().exit_code == 127


@pytest.mark.parametrize("mode", ["rw", "", "R", None])
def test_invalid_mode(mode):
    with pytest.raises(PipelineValidationError):
        open_process(["true"], mode)


def test_invalid_command():
    with pytest.raises(PipelineValidationError):
        open_process([], "r")


def test_spawn_failure_releases_channel(monkeypatch, open_fds):
    before = open_fds()

    def _eagain():
        raise OSError(errno.EAGAIN, "Resource temporarily unavailable")

    monkeypatch.setattr(os, "fork", _eagain)

    with pytest.raises(StageSpawnError):
        open_process(["cat"], "w")
    assert open_fds() == before
