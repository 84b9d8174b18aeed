# tests/core/test_errors.py
"""
Testes do padrão canônico de erros (ErrorPayload) e das exceções tipadas.

Os testes asseguram que:
- payloads são serializáveis e carregam um `type` estável
- exceções internas convertem para o payload do seu próprio tipo
"""

import json

import pytest

from pipechain.core.errors import (
    CHANNEL_ALLOCATION_FAILED,
    ENGINE_EXECUTION_ERROR,
    STAGE_SPAWN_FAILED,
    SUPERVISOR_ERROR,
    channel_allocation_failed,
    engine_execution_error,
    stage_spawn_failed,
    supervisor_error,
)
from pipechain.core.exceptions import (
    ChannelAllocationError,
    PipelineException,
    StageSpawnError,
    SupervisorError,
)


@pytest.mark.parametrize(
    "payload, expected_type",
    [
        (channel_allocation_failed(stage_index=0, errno=24, strerror="Too many open files"), CHANNEL_ALLOCATION_FAILED),
        (stage_spawn_failed(stage_index=1, argv=["cat"], errno=11), STAGE_SPAWN_FAILED),
        (supervisor_error(reason="fork failed"), SUPERVISOR_ERROR),
        (engine_execution_error(exc_type="RuntimeError", exc_message="boom"), ENGINE_EXECUTION_ERROR),
    ],
)
def test_payload_is_serializable(payload, expected_type):
    data = payload.to_dict()

    assert data["type"] == expected_type
    assert data["message"]
    assert data["hint"]
    assert json.loads(json.dumps(data)) == data


def test_supervisor_error_merges_details():
    payload = supervisor_error(reason="wait failed", details={"pid": 123})
    assert payload.details == {"reason": "wait failed", "pid": 123}


@pytest.mark.parametrize(
    "exc_cls, factory",
    [
        (ChannelAllocationError, lambda: channel_allocation_failed(stage_index=2)),
        (StageSpawnError, lambda: stage_spawn_failed(stage_index=2, argv=["cat"])),
        (SupervisorError, lambda: supervisor_error(reason="fork failed")),
    ],
)
def test_exception_round_trips_to_its_payload(exc_cls, factory):
    payload = factory()
    exc = exc_cls.from_payload(payload)

    assert isinstance(exc, PipelineException)
    assert str(exc) == payload.message
    assert exc.to_payload() == payload


def test_base_exception_maps_to_engine_execution_error():
    exc = PipelineException(message="unexpected", details={})
    assert exc.to_payload().type == ENGINE_EXECUTION_ERROR
