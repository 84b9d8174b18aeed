# tests/core/engine/test_channels_and_chain.py
"""
Testes do alocador de canais e do estado de encadeamento.

Invariantes verificados:
    - endpoints são não herdáveis e liberados no máximo uma vez
    - depois de `advance`, o orquestrador não mantém endpoint de escrita
    - `release` fecha o endpoint pendente
"""

import errno
import os

import pytest

from pipechain.core.engine.chain import ChainState
from pipechain.core.engine.channels import Channel, allocate_channel
from pipechain.core.errors import CHANNEL_ALLOCATION_FAILED
from pipechain.core.exceptions import ChannelAllocationError, PipelineException


def test_allocate_channel_returns_connected_endpoints():
    channel = allocate_channel()
    try:
        os.write(channel.write_fd, b"ping")
        assert os.read(channel.read_fd, 4) == b"ping"
        assert not os.get_inheritable(channel.read_fd)
        assert not os.get_inheritable(channel.write_fd)
    finally:
        channel.close()


def test_channel_close_is_idempotent(open_fds):
    before = open_fds()
    channel = allocate_channel()

    channel.close_write()
    channel.close()
    channel.close()

    assert channel.closed
    assert open_fds() == before


def test_allocation_failure_is_typed(monkeypatch):
    def _emfile():
        raise OSError(errno.EMFILE, "Too many open files")

    monkeypatch.setattr(os, "pipe", _emfile)

    with pytest.raises(ChannelAllocationError) as excinfo:
        allocate_channel(stage_index=3)

    exc = excinfo.value
    assert isinstance(exc, PipelineException)
    assert isinstance(exc.__cause__, OSError)
    assert exc.details["stage_index"] == 3
    assert exc.details["errno"] == errno.EMFILE
    assert exc.to_payload().type == CHANNEL_ALLOCATION_FAILED


def test_advance_keeps_only_the_read_endpoint():
    chain = ChainState()
    channel = allocate_channel()

    chain.advance(channel)
    try:
        assert chain.pending == channel.read_fd
        assert not channel.write_open
        # o slot agora é dono do endpoint de leitura
        assert not channel.read_open
        # nenhuma cópia de escrita no orquestrador: leitura vê fim de stream
        assert os.read(chain.pending, 1) == b""
    finally:
        chain.release()

    assert chain.pending is None


def test_advance_releases_previous_pending(open_fds):
    before = open_fds()
    chain = ChainState()

    chain.advance(allocate_channel())
    chain.advance(allocate_channel())
    chain.advance(None)

    assert chain.pending is None
    assert open_fds() == before


def test_release_without_pending_is_noop():
    chain = ChainState()
    chain.release()
    assert chain.pending is None


def test_channel_dataclass_defaults():
    channel = Channel(read_fd=10, write_fd=11)
    assert channel.read_open and channel.write_open
    assert not channel.closed
