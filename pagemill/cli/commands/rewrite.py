import click

from pagemill.cli._root import cli_root
from pagemill.cli.runtime import pagemill_exception_manager
from pagemill.cli.utils import format_object, logger, read_document
from pagemill.pdf_utils.page_labels import build_page_labels
from pagemill.pdf_utils.writer import make_info_dict, write_document

__all__ = ['rewrite', 'labels']


@cli_root.command(help='write out a PDF file as a single revision')
@click.argument('infile', type=click.File('rb'))
@click.argument('outfile', type=click.File('wb'))
@click.option(
    '--page-labels', metavar='SPEC', required=False,
    help='page label specification to install, e.g. /C1/_2r8_4D'
)
@click.option(
    '--expand-objstreams', help='unpack object streams',
    type=bool, is_flag=True, default=False, show_default=True,
)
@click.option(
    '--compact', help='renumber objects to close gaps',
    type=bool, is_flag=True, default=False, show_default=True,
)
@click.option(
    '--no-info', help='do not update the document information dictionary',
    type=bool, is_flag=True, default=False, show_default=True,
)
@click.pass_context
def rewrite(ctx: click.Context, infile, outfile, page_labels,
            expand_objstreams, compact, no_info):
    with pagemill_exception_manager():
        # validate the label spec before doing any real work
        label_tree = None
        if page_labels is not None:
            label_tree = build_page_labels(page_labels)
        doc = read_document(ctx, infile)
        if expand_objstreams:
            count = doc.expand_object_streams()
            logger.info(f"Expanded {count} object stream(s)")
        if label_tree is not None:
            doc.set_page_labels(label_tree)
        if not no_info:
            doc.set_info(make_info_dict())
        if compact:
            doc.compact()
        write_document(doc, outfile)
        infile.close()
        outfile.close()


@cli_root.command(help='show the page label tree for a specification')
@click.argument('spec')
def labels(spec):
    with pagemill_exception_manager():
        click.echo(format_object(build_page_labels(spec)))
