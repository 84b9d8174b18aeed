# src/pipechain/core/engine/chain.py
"""
Rastreador do estado de encadeamento (chain state).

O único estado mutável do orquestrador durante a construção do pipeline:
o endpoint de leitura do canal mais recente, aguardando ser conectado ao
stdin do próximo estágio.

Invariantes (em toda fronteira de iteração):
    - o orquestrador mantém aberto no máximo um endpoint: o pendente
    - o orquestrador mantém aberto zero endpoints de escrita
    - um endpoint pendente é conectado a exatamente um estágio e liberado

Manter um endpoint de escrita aberto no orquestrador impede que o estágio
leitor receba fim de stream e trava o pipeline; isso é tratado como bug
de correção.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from .channels import Channel


@dataclass
class ChainState:
    """Slot único com o endpoint de leitura pendente (ou None)."""

    pending: Optional[int] = None

    def advance(self, channel: Optional[Channel]) -> None:
        """
        Libera o lado do orquestrador depois que um estágio foi lançado.

        - fecha o endpoint pendente anterior (o estágio já o herdou)
        - com canal novo: fecha o endpoint de escrita e torna o de leitura
          o novo pendente
        - sem canal (último estágio): limpa o pendente
        """
        self.release()
        if channel is None:
            return
        channel.close_write()
        self.pending = channel.read_fd
        # a partir daqui o slot é o dono do endpoint de leitura
        channel.read_open = False

    def release(self) -> None:
        """Fecha o endpoint pendente, se houver."""
        pending, self.pending = self.pending, None
        if pending is not None:
            os.close(pending)
