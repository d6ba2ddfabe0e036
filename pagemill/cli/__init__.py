from pagemill.cli._root import cli_root
from pagemill.cli.commands.inspect import *
from pagemill.cli.commands.rewrite import *

__all__ = ['launch', 'cli_root']


def launch():
    cli_root(prog_name='pagemill')
