# src/pipechain/core/config/hashing.py
"""
Identidade estrutural da configuração efetiva.

`new_run_context` grava o hash em `RunContext.meta["config_hash"]`, de
modo que cada run aponta para a configuração que o produziu. Dois dicts
com o mesmo conteúdo e ordem de chaves diferente têm o mesmo hash.
"""

import hashlib
import json
from typing import Any, Dict


def canonical_config_bytes(config: Dict[str, Any]) -> bytes:
    """JSON canônico (chaves ordenadas, separadores compactos) em UTF-8."""
    if not isinstance(config, dict):
        raise TypeError(f"Config para hashing deve ser dict, recebido: {type(config).__name__}")
    return json.dumps(config, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def compute_config_hash(config: Dict[str, Any]) -> str:
    """SHA-256 hexadecimal (64 caracteres) de `canonical_config_bytes(config)`."""
    return hashlib.sha256(canonical_config_bytes(config)).hexdigest()
