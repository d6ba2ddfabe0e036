import logging
from typing import Optional, TextIO, Tuple

import click

from pagemill import __version__
from pagemill.cli._ctx import CLIContext
from pagemill.cli.config import parse_cli_config
from pagemill.cli.runtime import (
    DEFAULT_CONFIG_FILE,
    logging_setup,
    pagemill_exception_manager,
)
from pagemill.config.logging import LogConfig, parse_logging_config

__all__ = ['cli_root']


def _read_config_text(config: Optional[TextIO]) \
        -> Tuple[Optional[str], Optional[str]]:
    """
    Return the configuration text and the name of the file it came from.
    Without ``--config``, the default file is optional.
    """
    if config is not None:
        try:
            return config.read(), config.name
        except IOError as e:
            raise click.ClickException(
                f"Failed to read configuration: {e}"
            )
    try:
        with open(DEFAULT_CONFIG_FILE, 'r') as f:
            return f.read(), DEFAULT_CONFIG_FILE
    except FileNotFoundError:
        return None, None
    except IOError as e:
        raise click.ClickException(
            f"Failed to read {DEFAULT_CONFIG_FILE}: {e}"
        )


@click.group()
@click.version_option(prog_name='pagemill', version=__version__)
@click.option(
    '--config',
    help=(
        'YAML file with parser limits and logging settings '
        f'[default: {DEFAULT_CONFIG_FILE}]'
    ),
    required=False,
    type=click.File('r'),
)
@click.option(
    '--verbose',
    help='Log debug output and stack traces',
    required=False,
    default=False,
    type=bool,
    is_flag=True,
)
@click.pass_context
def _root(ctx: click.Context, config, verbose):
    config_text, config_source = _read_config_text(config)

    ctx.ensure_object(CLIContext)
    ctx_obj: CLIContext = ctx.obj
    if config_text is not None:
        with pagemill_exception_manager():
            root_config = parse_cli_config(config_text)
        ctx_obj.config = root_config.config
        log_config = root_config.log_config
    else:
        log_config = parse_logging_config({})

    if verbose:
        # debug level for the root logger, same destination
        log_config[None] = LogConfig(
            level=logging.DEBUG, output=log_config[None].output
        )

    logging_setup(log_config, verbose)

    if verbose:
        logging.debug("Running with --verbose")
    if config_source is not None:
        logging.debug(f'Finished reading configuration from {config_source}.')
    else:
        logging.debug('No configuration file; using default parser limits.')


cli_root: click.Group = _root
