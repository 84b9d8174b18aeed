"""
PipeChain — Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros do PipeChain.
Erros de construção de pipeline são artefatos de domínio e fazem parte do
contrato operacional do sistema, devendo ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis

Falhas por estágio (exit != 0, sinal fatal) NÃO são erros neste sentido:
elas apenas contribuem para o veredito agregado do pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Payload canônico de erro do PipeChain.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

# Construção do pipeline (esgotamento de recursos)
CHANNEL_ALLOCATION_FAILED = "CHANNEL_ALLOCATION_FAILED"
STAGE_SPAWN_FAILED = "STAGE_SPAWN_FAILED"

# Supervisor (sandbox)
SUPERVISOR_ERROR = "SUPERVISOR_ERROR"

# Engine / Execução
ENGINE_EXECUTION_ERROR = "ENGINE_EXECUTION_ERROR"


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def channel_allocation_failed(
    *,
    stage_index: Optional[int] = None,
    errno: Optional[int] = None,
    strerror: Optional[str] = None,
    hint: str = "Libere descritores de arquivo (ulimit -n) ou reduza o número de estágios antes de reexecutar.",
) -> ErrorPayload:
    return ErrorPayload(
        type=CHANNEL_ALLOCATION_FAILED,
        message="Falha ao alocar canal entre estágios",
        details={
            "stage_index": stage_index,
            "errno": errno,
            "strerror": strerror,
        },
        hint=hint,
    )


def stage_spawn_failed(
    *,
    stage_index: Optional[int] = None,
    argv: Optional[List[str]] = None,
    errno: Optional[int] = None,
    strerror: Optional[str] = None,
    hint: str = "Verifique o limite de processos do usuário (ulimit -u) e a memória disponível.",
) -> ErrorPayload:
    return ErrorPayload(
        type=STAGE_SPAWN_FAILED,
        message="Falha ao criar processo para o estágio",
        details={
            "stage_index": stage_index,
            "argv": list(argv) if argv is not None else None,
            "errno": errno,
            "strerror": strerror,
        },
        hint=hint,
    )


def supervisor_error(
    *,
    reason: str,
    details: Optional[Dict[str, Any]] = None,
    hint: str = "O veredito do sandbox não é confiável; corrija a causa antes de reexecutar.",
) -> ErrorPayload:
    payload = {"reason": reason}
    payload.update(details or {})
    return ErrorPayload(
        type=SUPERVISOR_ERROR,
        message="Falha interna do supervisor",
        details=payload,
        hint=hint,
    )


def engine_execution_error(
    *,
    exc_type: Optional[str] = None,
    exc_message: Optional[str] = None,
    hint: str = "Verifique os eventos do run para diagnosticar a falha. Nenhum fallback é aplicado automaticamente.",
) -> ErrorPayload:
    return ErrorPayload(
        type=ENGINE_EXECUTION_ERROR,
        message="Falha inesperada durante a construção do pipeline",
        details={
            "exc_type": exc_type,
            "exc_message": exc_message,
        },
        hint=hint,
    )
