import click

from pagemill.cli._root import cli_root
from pagemill.cli.runtime import pagemill_exception_manager
from pagemill.cli.utils import (
    format_object,
    format_object_by_number,
    format_reference,
    format_xref_entry,
    read_document,
)

__all__ = ['info', 'show', 'xref', 'trailers', 'shell']


def _version_str(doc) -> str:
    return '%d.%d' % doc.header_version


def _echo_trailers(doc):
    revisions = doc.trailer.revisions
    for ix, trailer_dict in enumerate(revisions):
        click.echo(f"Trailer {ix + 1} of {len(revisions)} (newest first):")
        click.echo(format_object(trailer_dict))


@cli_root.command(help='print summary information about a PDF file')
@click.argument('infile', type=click.File('rb'))
@click.pass_context
def info(ctx: click.Context, infile):
    with pagemill_exception_manager():
        doc = read_document(ctx, infile)
        click.echo(f"PDF version: {_version_str(doc)}")
        click.echo(f"Objects: {doc.object_count}")
        click.echo(f"Trailers: {len(doc.trailer.revisions)}")
        click.echo(f"Root: {format_reference(doc.root_ref)}")
        click.echo(f"Info: {format_reference(doc.info_ref)}")


@cli_root.command(help='print an object, or the document catalog')
@click.argument('infile', type=click.File('rb'))
@click.argument('idnum', type=click.IntRange(min=1), required=False)
@click.pass_context
def show(ctx: click.Context, infile, idnum):
    with pagemill_exception_manager():
        doc = read_document(ctx, infile)
        if idnum is None:
            click.echo(format_object(doc.root))
        else:
            click.echo(format_object_by_number(doc, idnum))


@cli_root.command(help='print the cross-reference entry of an object')
@click.argument('infile', type=click.File('rb'))
@click.argument('idnum', type=click.IntRange(min=0))
@click.pass_context
def xref(ctx: click.Context, infile, idnum):
    with pagemill_exception_manager():
        doc = read_document(ctx, infile)
        click.echo(format_xref_entry(doc, idnum))


@cli_root.command(help='print all trailer dictionaries, newest first')
@click.argument('infile', type=click.File('rb'))
@click.pass_context
def trailers(ctx: click.Context, infile):
    with pagemill_exception_manager():
        doc = read_document(ctx, infile)
        _echo_trailers(doc)


SHELL_HELP = """\
Commands:
  v     print the PDF version
  l     print the number of objects
  r     print the document catalog
  t     print the trailer dictionaries
  xN    print the cross-reference entry of object N
  N     print object N
  q     quit"""


def _shell_command(doc, command: str) -> bool:
    # returns False when the user wants to quit
    if command == 'q':
        return False
    elif command == 'v':
        click.echo(_version_str(doc))
    elif command == 'l':
        click.echo(str(doc.object_count))
    elif command == 'r':
        click.echo(format_object(doc.root))
    elif command == 't':
        _echo_trailers(doc)
    elif command.startswith('x') and command[1:].isdigit():
        click.echo(format_xref_entry(doc, int(command[1:])))
    elif command.isdigit():
        click.echo(format_object_by_number(doc, int(command)))
    else:
        click.echo(SHELL_HELP)
    return True


@cli_root.command(help='inspect a PDF file interactively')
@click.argument('infile', type=click.File('rb'))
@click.pass_context
def shell(ctx: click.Context, infile):
    with pagemill_exception_manager():
        doc = read_document(ctx, infile)
    click.echo(SHELL_HELP)
    while True:
        try:
            command = click.prompt('pagemill', prompt_suffix='> ')
        except click.Abort:
            # end of input
            break
        try:
            with pagemill_exception_manager():
                if not _shell_command(doc, command.strip()):
                    break
        except click.ClickException as e:
            click.echo(f"Error: {e.format_message()}", err=True)
