# tests/core/config/test_merge.py
"""
Testes da política de deep-merge de configuração.

Os testes asseguram que:
- valores escalares são sobrescritos
- dicionários são mesclados de forma recursiva
- listas (incluindo `pipeline.stages`) são sobrescritas integralmente
- int e float podem se substituir (timeouts fracionários)
- conflitos de tipo são rejeitados explicitamente
- objetos de entrada não são mutados
"""

import copy

import pytest

from pipechain.core.config.errors import ConfigTypeConflictError
from pipechain.core.config.merge import deep_merge


def test_merge_simple_override():
    base = {"a": 1, "b": 2}
    override = {"b": 99}
    base_before, override_before = copy.deepcopy(base), copy.deepcopy(override)

    assert deep_merge(base, override) == {"a": 1, "b": 99}
    assert base == base_before
    assert override == override_before


def test_merge_nested_dicts():
    base = {"sandbox": {"timeout_seconds": 10, "verbose": False}}
    override = {"sandbox": {"verbose": True}}

    assert deep_merge(base, override) == {"sandbox": {"timeout_seconds": 10, "verbose": True}}


def test_merge_replaces_stage_list():
    base = {"pipeline": {"stages": [["echo", "a"], ["cat"], ["cat"]]}}
    override = {"pipeline": {"stages": [["true"]]}}

    assert deep_merge(base, override)["pipeline"]["stages"] == [["true"]]


def test_merge_accepts_int_float_mix():
    base = {"sandbox": {"timeout_seconds": 10}}
    override = {"sandbox": {"timeout_seconds": 0.5}}

    assert deep_merge(base, override)["sandbox"]["timeout_seconds"] == 0.5


def test_merge_none_base_is_replaced():
    assert deep_merge({"engine": None}, {"engine": {"wait_strategy": "auto"}}) == {
        "engine": {"wait_strategy": "auto"}
    }


@pytest.mark.parametrize(
    "base, override",
    [
        ({"sandbox": {"timeout_seconds": 10}}, {"sandbox": "fast"}),
        ({"pipeline": {"stages": []}}, {"pipeline": {"stages": "echo hi"}}),
        ({"sandbox": {"verbose": False}}, {"sandbox": {"verbose": 1}}),
    ],
)
def test_merge_type_conflict_raises(base, override):
    with pytest.raises(ConfigTypeConflictError):
        deep_merge(base, override)


def test_merge_requires_dict_roots():
    with pytest.raises(ConfigTypeConflictError):
        deep_merge({"a": 1}, ["a"])


def test_conflict_message_names_dotted_path():
    with pytest.raises(ConfigTypeConflictError, match=r"sandbox\.verbose"):
        deep_merge({"sandbox": {"verbose": False}}, {"sandbox": {"verbose": "yes"}})
