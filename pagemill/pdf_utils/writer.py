"""
Serialisation of a :class:`~.document.PdfDocument`.

The output always consists of a single revision: incremental updates are
collapsed, object streams are written out as regular top-level objects
(if they were expanded) and a single classic cross-reference table covers
the whole object range.
"""

import logging
from typing import Optional

from pagemill import __version__

from . import generic
from .document import PdfDocument
from .xref import XRefType

__all__ = ['write_document', 'make_info_dict', 'PRODUCER_NAME']

logger = logging.getLogger(__name__)

PRODUCER_NAME = 'pagemill'

# a comment line with high-bit bytes, so that transfer tools treat the file
# as binary
BINARY_MARKER = b'%\xe2\xe3\xcf\xd3\n'


def make_info_dict(creator: Optional[str] = None) -> generic.DictionaryObject:
    """
    Build a document information dictionary identifying this library as the
    producer of the output.
    """
    return generic.DictionaryObject({
        '/Creator': generic.pdf_string(creator or PRODUCER_NAME),
        '/Producer': generic.pdf_string(f'{PRODUCER_NAME} {__version__}'),
    })


def write_xref_table(stream, positions, xrefs):
    size = xrefs.size
    stream.write(b'xref\n0 %d\n' % size)
    stream.write(b'0000000000 65535 f \n')
    for idnum in range(1, size):
        try:
            stream.write(b'%010d %05d n \n' % positions[idnum])
        except KeyError:
            entry = xrefs[idnum]
            generation = entry.generation if entry is not None else 0
            stream.write(b'0000000000 %05d f \n' % generation)


def write_document(document: PdfDocument, stream):
    """
    Write a document to an output stream.

    :param document:
        The document to write.
    :param stream:
        A writable binary stream. Offsets are computed relative to the
        stream's position when this function is called.
    """
    start = stream.tell()
    major, minor = document.header_version
    stream.write(b'%%PDF-%d.%d\n' % (major, minor))
    stream.write(BINARY_MARKER)

    positions = {}
    for entry in document.xrefs.live_entries():
        obj = document.get_object(entry.idnum)
        # unpacked objects are written at the top level with generation 0
        generation = (
            0 if entry.xref_type == XRefType.IN_OBJ_STREAM
            else entry.generation
        )
        positions[entry.idnum] = (stream.tell() - start, generation)
        stream.write(b'%d %d obj\n' % (entry.idnum, generation))
        obj.write_to_stream(stream)
        stream.write(b'\nendobj\n')

    xref_pos = stream.tell() - start
    write_xref_table(stream, positions, document.xrefs)

    trailer = document.trailer.flatten()
    trailer['/Size'] = generic.NumberObject(document.xrefs.size)
    stream.write(b'trailer\n')
    trailer.write_to_stream(stream)
    stream.write(b'\nstartxref\n%d\n%%%%EOF\n' % xref_pos)
    logger.debug(
        f"Wrote {len(positions)} objects; xref table at {xref_pos}"
    )
