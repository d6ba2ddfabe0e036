import logging

import pytest

from pagemill.cli.config import parse_cli_config
from pagemill.config.errors import ConfigurationError
from pagemill.config.logging import (
    DEFAULT_ROOT_LOGGER_LEVEL,
    LogConfig,
    StdLogOutput,
    parse_logging_config,
)
from pagemill.pdf_utils.settings import DEFAULT_PARSER_SETTINGS, ParserSettings


def test_parser_settings_from_config():
    settings = ParserSettings.from_config({
        'max-stream-length': 1024, 'max_reference_depth': 4
    })
    assert settings.max_stream_length == 1024
    assert settings.max_reference_depth == 4
    assert settings.max_name_length == DEFAULT_PARSER_SETTINGS.max_name_length


def test_parser_settings_defaults():
    assert ParserSettings.from_config({}) == DEFAULT_PARSER_SETTINGS


@pytest.mark.parametrize('config,msg', [
    ({'max-stream-length': 0}, 'must be a positive integer'),
    ({'max-string-length': -3}, 'must be a positive integer'),
    ({'max-name-length': 'big'}, 'must be a positive integer'),
    ({'max-reference-depth': True}, 'must be a positive integer'),
    ({'max-page-count': 10}, 'Unexpected key'),
    ([1, 2], 'requires a dictionary'),
])
def test_parser_settings_errors(config, msg):
    with pytest.raises(ConfigurationError, match=msg):
        ParserSettings.from_config(config)


def test_logging_defaults():
    log_config = parse_logging_config({})
    assert log_config == {
        None: LogConfig(DEFAULT_ROOT_LOGGER_LEVEL, StdLogOutput.STDERR)
    }


def test_logging_by_module():
    log_config = parse_logging_config({
        'root-level': 'warning',
        'root-output': 'stdout',
        'by-module': {
            'pagemill.pdf_utils.xref': {'level': 'DEBUG'},
            'pagemill.pdf_utils.parser': {
                'level': logging.INFO, 'output': 'parser.log'
            },
        },
    })
    assert log_config[None] == LogConfig('WARNING', StdLogOutput.STDOUT)
    assert log_config['pagemill.pdf_utils.xref'] == \
        LogConfig('DEBUG', StdLogOutput.STDOUT)
    assert log_config['pagemill.pdf_utils.parser'] == \
        LogConfig(logging.INFO, 'parser.log')


@pytest.mark.parametrize('config,msg', [
    ('not a dict', 'should be a dictionary'),
    ({'root-level': 'LOUD'}, "Unknown log level 'LOUD'"),
    ({'root-level': 1.5}, 'Log levels must be int or str'),
    ({'root-output': 12}, 'must be specified as a string'),
    ({'by-module': [1]}, 'by-module should be a dict'),
    ({'by-module': {'x': 'DEBUG'}}, "Logging settings for 'x'"),
    ({'by-module': {'x': {'output': 'stderr'}}}, 'does not define a log level'),
    ({'colour': True}, 'Unexpected key in configuration for logging: colour'),
    ({'by-module': {'x': {'level': 10, 'format': '%(message)s'}}},
     "configuration for logger 'x': format"),
])
def test_logging_errors(config, msg):
    with pytest.raises(ConfigurationError, match=msg):
        parse_logging_config(config)


def test_cli_config():
    root_config = parse_cli_config(
        'logging:\n'
        '  root-level: DEBUG\n'
        'parser:\n'
        '  max-stream-length: 2048\n'
    )
    assert root_config.log_config[None].level == 'DEBUG'
    assert root_config.config.parser_settings.max_stream_length == 2048
    assert 'parser' in root_config.config.raw_config


@pytest.mark.parametrize('yaml_str', ['', '# nothing here\n'])
def test_cli_config_empty(yaml_str):
    root_config = parse_cli_config(yaml_str)
    assert root_config.config.parser_settings == DEFAULT_PARSER_SETTINGS
    assert root_config.log_config[None].output == StdLogOutput.STDERR


@pytest.mark.parametrize('yaml_str,msg', [
    ('parser: [1\n', 'Could not parse configuration file'),
    ('- a\n- b\n', 'should be a dictionary'),
    ('signing: {}\nstamping: {}\n', 'Unexpected configuration keys: '
                                    'signing, stamping'),
    ('parser:\n  max-stream-length: 0\n', 'positive integer'),
])
def test_cli_config_errors(yaml_str, msg):
    with pytest.raises(ConfigurationError, match=msg):
        parse_cli_config(yaml_str)
