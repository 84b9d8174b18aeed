"""
Contexto de execução compartilhado de um run do PipeChain.

Este módulo define o `RunContext`, a estrutura canônica que acompanha uma
execução de pipeline (ou de sandbox) e concentra:
    - identidade da execução (run_id, created_at)
    - configuração resolvida
    - log estruturado de eventos
    - warnings não fatais agrupados por estágio

Princípios fundamentais:
    - Isolamento por execução (cada run possui seu próprio contexto)
    - Ausência de estado global compartilhado (nenhum logger global)
    - Eventos são dicionários estruturados, não texto livre

Invariantes:
    - Logs sempre incluem `run_id` e `stage_id`
    - Warnings são agrupados por `stage_id`

Limites explícitos:
    - Não cria processos
    - Não persiste eventos automaticamente
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pipechain.core.config.hashing import compute_config_hash


PIPELINE_STAGE_ID = "pipeline"


def stage_id_for(index: int) -> str:
    """Identificador canônico de um estágio nos eventos (ex.: `stage[2]`)."""
    return f"stage[{index}]"


@dataclass
class RunContext:
    """
    Contexto de execução compartilhado de um run.

    Decisões arquiteturais:
        - O Engine e o sandbox registram eventos apenas via `log`
        - Falhas de estágio viram warnings, nunca exceções
        - `meta` carrega metadados livres (ex.: config_hash)
    """
    run_id: str
    created_at: datetime
    config: Dict[str, Any]
    meta: Dict[str, Any] = field(default_factory=dict)

    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, stage_id: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "stage_id": stage_id,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, stage_id: str, message: str) -> None:
        if stage_id not in self.warnings:
            self.warnings[stage_id] = []
        self.warnings[stage_id].append(message)

    def events_for(self, stage_id: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e.get("stage_id") == stage_id]


def new_run_context(config: Optional[Dict[str, Any]] = None, **meta: Any) -> RunContext:
    """
    Cria um RunContext novo para uma execução.

    Gera `run_id` aleatório, `created_at` em UTC e registra o hash da
    configuração efetiva em `meta["config_hash"]`.
    """
    cfg = dict(config or {})
    ctx_meta: Dict[str, Any] = {"config_hash": compute_config_hash(cfg)}
    ctx_meta.update(meta)
    return RunContext(
        run_id=uuid4().hex,
        created_at=datetime.now(timezone.utc),
        config=cfg,
        meta=ctx_meta,
    )
