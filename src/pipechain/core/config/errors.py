# src/pipechain/core/config/errors.py
"""
Exceções da camada de configuração do PipeChain.

Todas herdam de `ConfigError` e descrevem arquivos ou estruturas de
configuração inválidos. Nenhuma delas representa falha de canal, de
processo ou de estágio: essas vivem em `pipechain.core.exceptions`.
"""


class ConfigError(Exception):
    """Base de todos os erros de configuração."""


class DefaultsNotFoundError(ConfigError):
    """O arquivo de defaults informado não existe."""


class UnsupportedConfigFormatError(ConfigError):
    """
    Extensão de arquivo sem parser registrado.

    Extensões aceitas: `.yaml`, `.yml`, `.json`.
    """


class InvalidConfigRootTypeError(ConfigError):
    """O documento carregado não é um mapeamento na raiz."""


class InvalidConfigSectionError(ConfigError):
    """
    Uma seção conhecida (`engine`, `pipeline`, `sandbox`) não é um mapeamento.

    Ex.: `sandbox: 10` em vez de `sandbox: {timeout_seconds: 10}`.
    """


class ConfigTypeConflictError(ConfigError):
    """
    Override com tipo incompatível com o valor base durante o deep-merge.

    Ex.: base `{"sandbox": {"verbose": false}}`, override `{"sandbox": {"verbose": 1}}`.
    Nenhum resultado parcial é devolvido.
    """
