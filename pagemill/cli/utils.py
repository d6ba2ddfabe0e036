import logging
from io import BytesIO

import click

from pagemill.pdf_utils import generic
from pagemill.pdf_utils.document import PdfDocument
from pagemill.pdf_utils.xref import XRefType

logger = logging.getLogger("cli")


def read_document(ctx: click.Context, infile) -> PdfDocument:
    settings = ctx.obj.parser_settings if ctx.obj is not None else None
    return PdfDocument(infile, settings=settings)


def format_object(obj: generic.PdfObject) -> str:
    """
    Render an object in PDF syntax for display.
    Stream data is summarised rather than printed.
    """
    out = BytesIO()
    if isinstance(obj, generic.StreamObject):
        generic.DictionaryObject(obj).write_to_stream(out)
        out.write(b'\nstream (%d bytes)' % len(obj.encoded_data))
    else:
        obj.write_to_stream(out)
    return out.getvalue().decode('latin1')


def format_reference(ref) -> str:
    if ref is None:
        return '(none)'
    return f'{ref.idnum} {ref.generation} R'


def format_xref_entry(doc: PdfDocument, idnum: int) -> str:
    entry = doc.xrefs[idnum]
    if entry is None:
        raise click.ClickException(
            f"Object {idnum} is not described by the cross-reference table."
        )
    if entry.xref_type == XRefType.FREE:
        state = 'free'
    elif entry.xref_type == XRefType.IN_OBJ_STREAM:
        state = (
            f'in object stream {entry.location.obj_stream_id} '
            f'at index {entry.location.ix_in_stream}'
        )
    elif entry.location is None:
        state = 'in use, not yet written'
    else:
        state = f'in use at offset {entry.location}'
    return f'{idnum}: generation {entry.generation}, {state}'


def format_object_by_number(doc: PdfDocument, idnum: int) -> str:
    obj = doc.get_object(idnum)
    if obj is None:
        raise click.ClickException(
            f"Object {idnum} is free or out of range."
        )
    return format_object(obj)
