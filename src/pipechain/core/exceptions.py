"""
PipeChain — Canonical Exceptions (v1)

Este módulo define exceções tipadas internas do PipeChain.

Objetivo:
- Permitir que alocador, launcher e supervisor levantem exceções semânticas
- Facilitar o mapeamento determinístico para ErrorPayload
- Evitar OSError genérico atravessando a fronteira do Engine

Regras:
- Exceções carregam apenas dados estruturados (serializáveis).
- Exceções daqui nunca representam a falha de um estágio individual:
  essas são observadas apenas como status de término.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional

from .errors import (
    CHANNEL_ALLOCATION_FAILED,
    ENGINE_EXECUTION_ERROR,
    STAGE_SPAWN_FAILED,
    SUPERVISOR_ERROR,
    ErrorPayload,
)


@dataclass(frozen=True)
class PipelineException(Exception):
    """Base class para exceções internas do PipeChain.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Mensagem deve ser curta e humana
    - `code` é o tipo estável usado no ErrorPayload correspondente
    """

    code: ClassVar[str] = ENGINE_EXECUTION_ERROR

    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover
        return self.message

    @classmethod
    def from_payload(cls, payload: ErrorPayload) -> "PipelineException":
        return cls(message=payload.message, details=dict(payload.details), hint=payload.hint)

    def to_payload(self) -> ErrorPayload:
        return ErrorPayload(
            type=self.code,
            message=self.message,
            details=dict(self.details or {}),
            hint=self.hint,
        )


# ---------------------------------------------------------------------------
# Construção do pipeline (esgotamento de recursos)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChannelAllocationError(PipelineException):
    """Não foi possível criar o pipe entre dois estágios."""

    code: ClassVar[str] = CHANNEL_ALLOCATION_FAILED


@dataclass(frozen=True)
class StageSpawnError(PipelineException):
    """Não foi possível criar o processo de um estágio (fork)."""

    code: ClassVar[str] = STAGE_SPAWN_FAILED


# ---------------------------------------------------------------------------
# Supervisor
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SupervisorError(PipelineException):
    """O sandbox não conseguiu supervisionar a unidade de trabalho."""

    code: ClassVar[str] = SUPERVISOR_ERROR
