# src/pipechain/core/config/merge.py
"""
Deep-merge determinístico de configuração.

Regras por par (base, override):
    - chave ausente ou base None → override entra como está
    - dict + dict → merge recursivo
    - list + list → override substitui a lista inteira; `pipeline.stages`
      nunca é combinado estágio a estágio
    - número + número → override (int e float se substituem, bool não é número)
    - mesmo tipo → override
    - qualquer outra combinação → ConfigTypeConflictError

As entradas nunca são mutadas.
"""

from copy import deepcopy
from typing import Any, Dict

from .errors import ConfigTypeConflictError


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _merge_value(path: str, base: Any, override: Any) -> Any:
    if isinstance(base, dict) and isinstance(override, dict):
        return deep_merge(base, override, _path=path)
    if _is_number(base) and _is_number(override):
        return override
    if type(base) is not type(override):
        raise ConfigTypeConflictError(
            f"Conflito de tipo em '{path}': {type(base).__name__} vs {type(override).__name__}"
        )
    return deepcopy(override)


def deep_merge(base: Dict[str, Any], override: Dict[str, Any], *, _path: str = "") -> Dict[str, Any]:
    """
    Devolve um novo dict com `override` aplicado sobre `base`.

    Raises:
        ConfigTypeConflictError: Raízes que não são dict, ou tipos
            incompatíveis em alguma chave (a mensagem traz o caminho
            pontilhado, ex.: `sandbox.verbose`).
    """
    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requer dicts, recebido: {type(base).__name__} vs {type(override).__name__}"
        )

    merged = deepcopy(base)
    for key, value in override.items():
        path = f"{_path}.{key}" if _path else str(key)
        if merged.get(key) is None:
            merged[key] = deepcopy(value)
        else:
            merged[key] = _merge_value(path, merged[key], value)
    return merged
