# src/pipechain/core/config/__init__.py
"""
Camada de configuração do PipeChain.

Seções consumidas pelo core:
    - engine.wait_strategy → estratégia da barreira de conclusão (auto | sequential)
    - pipeline.stages      → pipeline declarativo (lista de comandos)
    - sandbox.*            → timeout e verbosidade do supervisor

A camada só lê, mescla e identifica configuração; não cria processos
nem canais.
"""

from .errors import (  # noqa: F401
    ConfigError,
    ConfigTypeConflictError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    InvalidConfigSectionError,
    UnsupportedConfigFormatError,
)
from .hashing import canonical_config_bytes, compute_config_hash  # noqa: F401
from .loader import load_config, read_config_file  # noqa: F401
from .merge import deep_merge  # noqa: F401
