"""
Logging configuration for the ``pagemill`` command line tool.

The configuration is read from the ``logging`` section of the YAML config
file, e.g.

.. code-block:: yaml

    logging:
        root-level: INFO
        root-output: stderr
        by-module:
            pagemill.pdf_utils.xref:
                level: DEBUG
                output: xref.log

Loggers listed under ``by-module`` must set a level. Their output defaults
to that of the root logger.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

from pagemill.config.errors import ConfigurationError
from pagemill.pdf_utils.config_utils import check_config_keys

__all__ = [
    'LogConfig', 'StdLogOutput', 'parse_logging_config',
    'DEFAULT_ROOT_LOGGER_LEVEL',
]

DEFAULT_ROOT_LOGGER_LEVEL = logging.INFO


class StdLogOutput(enum.Enum):
    STDERR = enum.auto()
    STDOUT = enum.auto()


LogOutput = Union[StdLogOutput, str]


@dataclass(frozen=True)
class LogConfig:
    level: Union[int, str]
    """
    Logging level, either numeric or the upper-case name of one of the
    levels in the :mod:`logging` module.
    """

    output: LogOutput
    """
    Name of the output file, or one of the standard streams.
    """

    @staticmethod
    def parse_output_spec(spec) -> LogOutput:
        if not isinstance(spec, str):
            raise ConfigurationError(
                "Log output must be specified as a string."
            )
        try:
            return StdLogOutput[spec.upper()]
        except KeyError:
            return spec


def _parse_level(level_spec) -> Union[int, str]:
    if isinstance(level_spec, bool) or not isinstance(level_spec, (int, str)):
        raise ConfigurationError(
            f"Log levels must be int or str, not {type(level_spec)}"
        )
    if isinstance(level_spec, str):
        level_spec = level_spec.upper()
        if not isinstance(logging.getLevelName(level_spec), int):
            raise ConfigurationError(f"Unknown log level '{level_spec}'")
    return level_spec


def _parse_logger(name: str, level_spec, output_spec,
                  default_output: LogOutput) -> LogConfig:
    if level_spec is None:
        raise ConfigurationError(
            f"Logging config for '{name}' does not define a log level."
        )
    output = default_output if output_spec is None \
        else LogConfig.parse_output_spec(output_spec)
    return LogConfig(level=_parse_level(level_spec), output=output)


def parse_logging_config(log_config_spec) -> Dict[Optional[str], LogConfig]:
    """
    Parse the ``logging`` section of the configuration file.

    :param log_config_spec:
        The contents of the ``logging`` section, as a dictionary.
    :return:
        A dictionary mapping logger names to :class:`.LogConfig` objects.
        The root logger's settings are stored under the ``None`` key.
    :raises ConfigurationError:
        If the logging settings are malformed.
    """
    if not isinstance(log_config_spec, dict):
        raise ConfigurationError('logging config should be a dictionary')
    check_config_keys(
        'logging', ('root-level', 'root-output', 'by-module'), log_config_spec
    )

    root = _parse_logger(
        'root-level',
        log_config_spec.get('root-level', DEFAULT_ROOT_LOGGER_LEVEL),
        log_config_spec.get('root-output'),
        default_output=StdLogOutput.STDERR,
    )
    log_config: Dict[Optional[str], LogConfig] = {None: root}

    by_module = log_config_spec.get('by-module', {})
    if not isinstance(by_module, dict):
        raise ConfigurationError('logging.by-module should be a dict')
    for module, settings in by_module.items():
        if not isinstance(module, str):
            raise ConfigurationError(
                "Keys in logging.by-module should be strings"
            )
        if not isinstance(settings, dict):
            raise ConfigurationError(
                f"Logging settings for '{module}' should be a dict"
            )
        check_config_keys(f"logger '{module}'", ('level', 'output'), settings)
        log_config[module] = _parse_logger(
            module, settings.get('level'), settings.get('output'),
            default_output=root.output,
        )
    return log_config
