from dataclasses import dataclass, field
from typing import Dict, Optional

import yaml

from pagemill.config.errors import ConfigurationError
from pagemill.config.logging import LogConfig, parse_logging_config
from pagemill.pdf_utils.settings import DEFAULT_PARSER_SETTINGS, ParserSettings

__all__ = ['CLIConfig', 'CLIRootConfig', 'parse_cli_config']


@dataclass
class CLIConfig:
    """
    CLI configuration settings.
    """

    parser_settings: ParserSettings = DEFAULT_PARSER_SETTINGS
    """
    Resource limits to apply when reading documents, from the ``parser``
    section of the configuration file. See :class:`.ParserSettings`.
    """

    raw_config: dict = field(default_factory=dict)
    """
    The raw config data parsed into a Python dictionary.
    """


@dataclass
class CLIRootConfig:
    """
    Config settings that are only relevant to the CLI root and are not
    exposed to subcommands.
    """

    config: CLIConfig
    """
    General CLI config.
    """

    log_config: Dict[Optional[str], LogConfig]
    """
    Per-module logging configuration. The keys in this dictionary are
    module names, the :class:`.LogConfig` values define the logging settings.

    The ``None`` key houses the configuration for the root logger, if any.
    """


TOP_LEVEL_KEYS = frozenset(('logging', 'parser'))


def parse_cli_config(yaml_str) -> CLIRootConfig:
    try:
        config_dict = yaml.safe_load(yaml_str) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse configuration file: {e}")
    if not isinstance(config_dict, dict):
        raise ConfigurationError("Configuration should be a dictionary")
    unexpected = set(config_dict.keys()) - TOP_LEVEL_KEYS
    if unexpected:
        raise ConfigurationError(
            f"Unexpected configuration "
            f"{'key' if len(unexpected) == 1 else 'keys'}: "
            f"{', '.join(sorted(map(str, unexpected)))}."
        )
    log_config = parse_logging_config(config_dict.get('logging', {}))
    parser_config = config_dict.get('parser')
    if parser_config is None:
        parser_settings = DEFAULT_PARSER_SETTINGS
    else:
        parser_settings = ParserSettings.from_config(parser_config)
    return CLIRootConfig(
        config=CLIConfig(
            parser_settings=parser_settings, raw_config=config_dict
        ),
        log_config=log_config,
    )
