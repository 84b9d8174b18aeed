# tests/conftest.py
"""
Fixtures compartilhados para testes do PipeChain.

Este módulo define fixtures reutilizáveis que fornecem:
- configurações mínimas e determinísticas
- contexto de execução controlado (RunContext)
- inspeção dos descritores abertos pelo processo de teste
- o interpretador corrente, usado como estágio portátil

O objetivo destas fixtures é permitir testes do core
(config, pipeline, engine, popen e sandbox) sem depender de
arquivos de configuração reais nem de variáveis de ambiente.

Decisões arquiteturais:
    - Estágios que precisam gerar ou consumir bytes usam `sys.executable`
      em vez de utilitários com comportamento variável entre plataformas
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas

Invariantes:
    - Nenhuma fixture lança processos
    - Dados retornados são determinísticos e isolados

Limites explícitos:
    - Não substituir testes de integração
"""

import os
import sys
from datetime import datetime, timezone

import pytest


# =====================================================
# Config fixtures
# =====================================================

@pytest.fixture
def pipeline_config_defaults_yaml() -> str:
    """
    YAML de configuração padrão (defaults) semelhante ao uso real.

    Usado por:
        - Testes do loader de config
        - Testes de deep-merge (defaults + local)
    """
    return """\
engine:
  wait_strategy: auto
pipeline:
  stages:
    - [echo, hello]
    - [tr, a-z, A-Z]
sandbox:
  timeout_seconds: 10
  verbose: false
"""


@pytest.fixture
def pipeline_config_local_yaml() -> str:
    """YAML de overrides locais: troca a estratégia, o prazo e o pipeline inteiro."""
    return """\
engine:
  wait_strategy: sequential
pipeline:
  stages:
    - [cat]
sandbox:
  timeout_seconds: 0.5
"""


@pytest.fixture
def dummy_config() -> dict:
    """
    Configuração mínima e já resolvida para exercitar Engine e sandbox.

    Invariantes:
        - Estrutura determinística e estável
        - Não depende de filesystem, env vars ou defaults externos
    """
    return {
        "engine": {"wait_strategy": "auto"},
        "sandbox": {"timeout_seconds": 5, "verbose": False},
    }


# =====================================================
# Pipeline fixtures (RunContext)
# =====================================================

@pytest.fixture
def dummy_ctx(dummy_config):
    """
    Fixture que fornece um RunContext determinístico para testes.

    Decisões arquiteturais:
        - `run_id` e `created_at` fixos para asserções estáveis
        - O import de RunContext é feito de forma lazy para melhorar
          a mensagem de erro quando o core não pode ser importado

    Returns:
        RunContext: Contexto de execução isolado e previsível para testes.
    """
    from pipechain.core.pipeline.context import RunContext

    return RunContext(
        run_id="run-test-001",
        created_at=datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc),
        config=dummy_config,
        meta={"source": "pytest"},
    )


# =====================================================
# Process fixtures
# =====================================================

@pytest.fixture
def python_exe() -> str:
    return sys.executable


@pytest.fixture
def open_fds():
    """
    Devolve uma função que lista os descritores abertos do processo de teste.

    Comparar duas chamadas (antes/depois) detecta vazamento de endpoints
    de canal no orquestrador.
    """
    if not os.path.isdir("/proc/self/fd"):
        pytest.skip("/proc/self/fd indisponível nesta plataforma")

    def _snapshot():
        return sorted(int(fd) for fd in os.listdir("/proc/self/fd"))

    return _snapshot


@pytest.fixture
def assert_reaped():
    """Devolve uma função que falha se algum pid ainda puder ser coletado (zumbi)."""

    def _check(pids):
        for pid in pids:
            with pytest.raises(ChildProcessError):
                os.waitpid(pid, os.WNOHANG)

    return _check
