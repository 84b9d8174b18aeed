# src/pipechain/core/engine/planner.py
"""
Validação e normalização da definição de um pipeline.

Este módulo opera exclusivamente em nível estrutural, antes que qualquer
canal ou processo seja criado:
    - o pipeline possui ao menos um estágio
    - cada estágio é uma sequência não vazia de tokens `str`
    - cada comando é congelado em uma tupla imutável

A saída do planner é a lista de `Command` pronta para o laço de
lançamento do Engine, na ordem de fluxo de dados.

Decisões arquiteturais:
    - Sequências Python carregam o próprio comprimento, que faz o papel do
      sentinela de término da lista de estágios
    - Um pipeline vazio é erro de validação, nunca "sucesso vazio"
    - Erros estruturais são levantados antes de qualquer efeito colateral

Limites explícitos:
    - Não interpreta gramática de shell (`|`, redirecionamentos, globbing)
    - Não resolve programas no PATH (isso ocorre no `exec` do filho)
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence

from pipechain.core.pipeline.types import Command


class PipelineValidationError(ValueError):
    """
    Exceção levantada quando a definição do pipeline é estruturalmente inválida.

    Casos cobertos:
        - nenhum estágio
        - estágio `None`, vazio ou que não é uma sequência
        - token que não é `str` ou que contém byte nulo

    Nenhum recurso de sistema operacional é criado quando esta exceção
    é levantada.
    """


def _normalize_command(index: int, stage: Any) -> Command:
    if stage is None:
        raise PipelineValidationError(f"Stage {index} is None")
    if isinstance(stage, (str, bytes)) or not isinstance(stage, Sequence):
        raise PipelineValidationError(
            f"Stage {index} must be a sequence of tokens, got {type(stage).__name__}"
        )
    if len(stage) == 0:
        raise PipelineValidationError(f"Stage {index} is an empty command")

    tokens: List[str] = []
    for position, token in enumerate(stage):
        if not isinstance(token, str):
            raise PipelineValidationError(
                f"Stage {index} token {position} must be str, got {type(token).__name__}"
            )
        if "\x00" in token:
            raise PipelineValidationError(f"Stage {index} token {position} contains a NUL byte")
        tokens.append(token)

    if not tokens[0]:
        raise PipelineValidationError(f"Stage {index} has an empty program name")

    return tuple(tokens)


def plan_pipeline(stages: Iterable[Sequence[str]]) -> List[Command]:
    """
    Valida e congela os estágios de um pipeline.

    Args:
        stages: Sequência ordenada de comandos; cada comando é uma
            sequência de tokens (`argv`).

    Returns:
        List[Command]: Comandos imutáveis, na ordem de fluxo de dados.

    Raises:
        PipelineValidationError: Se não houver estágios ou algum estágio
            for inválido.
    """
    if stages is None or isinstance(stages, (str, bytes)):
        raise PipelineValidationError("stages must be a sequence of commands")

    commands = [_normalize_command(i, stage) for i, stage in enumerate(stages)]
    if not commands:
        raise PipelineValidationError("Pipeline must declare at least one stage")
    return commands


def stages_from_config(config: Dict[str, Any]) -> List[Command]:
    """Lê `pipeline.stages` da configuração resolvida e valida os comandos."""
    pipeline_cfg = (config or {}).get("pipeline", {}) or {}
    if not isinstance(pipeline_cfg, dict):
        raise PipelineValidationError("config 'pipeline' section must be a mapping")
    return plan_pipeline(pipeline_cfg.get("stages") or [])
