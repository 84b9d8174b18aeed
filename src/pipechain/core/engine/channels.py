# src/pipechain/core/engine/channels.py
"""
Alocador de canais entre estágios.

Um canal é um pipe do kernel: unidirecional, com dois endpoints
independentes (`read_fd`, `write_fd`). Escrever além da capacidade
bloqueia o escritor; ler de um canal vazio bloqueia o leitor; ler depois
que todos os endpoints de escrita foram fechados produz fim de stream.

Invariantes:
    - Cada endpoint é liberado no máximo uma vez (close idempotente)
    - Endpoints criados são não herdáveis (PEP 446); apenas o `dup2` no
      filho produz uma cópia que sobrevive ao `exec`

Limites explícitos:
    - Não decide quem é dono de cada endpoint (isso é do Engine e do launcher)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from pipechain.core.errors import channel_allocation_failed
from pipechain.core.exceptions import ChannelAllocationError


@dataclass
class Channel:
    """Pipe com endpoints liberáveis de forma independente."""

    read_fd: int
    write_fd: int
    read_open: bool = True
    write_open: bool = True

    def close_read(self) -> None:
        if self.read_open:
            self.read_open = False
            os.close(self.read_fd)

    def close_write(self) -> None:
        if self.write_open:
            self.write_open = False
            os.close(self.write_fd)

    def close(self) -> None:
        try:
            self.close_write()
        finally:
            self.close_read()

    @property
    def closed(self) -> bool:
        return not (self.read_open or self.write_open)


def allocate_channel(*, stage_index: Optional[int] = None) -> Channel:
    """
    Cria um canal para conectar o estágio `stage_index` ao seguinte.

    Raises:
        ChannelAllocationError: Se o kernel recusar o pipe
            (ex.: EMFILE/ENFILE por esgotamento de descritores).
    """
    try:
        read_fd, write_fd = os.pipe()
    except OSError as exc:
        payload = channel_allocation_failed(
            stage_index=stage_index,
            errno=exc.errno,
            strerror=exc.strerror,
        )
        raise ChannelAllocationError.from_payload(payload) from exc
    return Channel(read_fd=read_fd, write_fd=write_fd)
