# src/pipechain/core/config/loader.py
"""
Leitura e resolução da configuração do PipeChain.

Fontes, em ordem de precedência crescente:
    1. arquivo de defaults (obrigatório)
    2. arquivo local de overrides (opcional; ignorado se ausente)

O parser é escolhido pela extensão do arquivo. Depois de carregado, cada
documento passa por uma checagem estrutural mínima: raiz mapeamento e
seções conhecidas também mapeamentos. O conteúdo das seções (comandos,
timeouts) é validado por quem o consome: planner, Engine e sandbox.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, IO, Optional, Union

import yaml  # PyYAML

from .errors import (
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    InvalidConfigSectionError,
    UnsupportedConfigFormatError,
)
from .merge import deep_merge


KNOWN_SECTIONS = ("engine", "pipeline", "sandbox")

_PARSERS: Dict[str, Callable[[IO[str]], Any]] = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.load,
}


def _check_structure(path: Path, data: Any) -> Dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"{path}: a raiz deve ser um mapeamento, recebido {type(data).__name__}"
        )
    for section in KNOWN_SECTIONS:
        value = data.get(section)
        if value is not None and not isinstance(value, dict):
            raise InvalidConfigSectionError(
                f"{path}: seção '{section}' deve ser um mapeamento, recebido {type(value).__name__}"
            )
    return data


def read_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Lê um único arquivo de configuração.

    Um arquivo vazio vale como `{}`.

    Raises:
        DefaultsNotFoundError: Arquivo inexistente.
        UnsupportedConfigFormatError: Extensão sem parser.
        InvalidConfigRootTypeError: Raiz que não é mapeamento.
        InvalidConfigSectionError: Seção conhecida que não é mapeamento.
    """
    path = Path(path)
    if not path.exists():
        raise DefaultsNotFoundError(f"Arquivo de configuração não encontrado: {path}")

    parser = _PARSERS.get(path.suffix.lower())
    if parser is None:
        raise UnsupportedConfigFormatError(f"Formato não suportado: {path.suffix or '(sem extensão)'}")

    with path.open("r", encoding="utf-8") as fh:
        return _check_structure(path, parser(fh))


def load_config(
    *,
    defaults_path: str,
    local_path: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Resolve a configuração efetiva: defaults com o arquivo local por cima.

    Args:
        defaults_path: Arquivo base, obrigatório.
        local_path: Overrides locais; ausente ou inexistente = sem overrides.

    Returns:
        Dict[str, Any]: Configuração final (novo dict; as fontes não são mutadas).

    Raises:
        ConfigError: Qualquer subclasse descrita em `read_config_file`, ou
            `ConfigTypeConflictError` durante o merge.
    """
    resolved = read_config_file(defaults_path)
    if local_path is not None and Path(local_path).exists():
        resolved = deep_merge(resolved, read_config_file(local_path))
    return resolved
