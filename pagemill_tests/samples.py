"""
Synthetic PDF files, assembled in memory with correct byte offsets.
"""
import zlib
from io import BytesIO
from typing import Dict, Iterable, Optional, Tuple

_PREVIOUS = object()


def stream_body(data: bytes, extra_entries: bytes = b'') -> bytes:
    return b'<< /Length %d%b >>\nstream\n%b\nendstream' % (
        len(data), extra_entries, data
    )


def objstm_body(objects: Iterable[Tuple[int, bytes]], flate=False) -> bytes:
    """
    Assemble an object stream holding the given (object number, body) pairs.
    """
    header_parts = []
    bodies = []
    offset = 0
    for idnum, body in objects:
        header_parts.append(b'%d %d' % (idnum, offset))
        bodies.append(body)
        offset += len(body) + 1
    header = b' '.join(header_parts) + b'\n'
    data = header + b'\n'.join(bodies)
    extra = b' /Type /ObjStm /N %d /First %d' % (len(bodies), len(header))
    if flate:
        data = zlib.compress(data)
        extra += b' /Filter /FlateDecode'
    return stream_body(data, extra)


def fmt_xref_table(entries: Dict[int, bytes]) -> bytes:
    out = BytesIO()
    out.write(b'xref\n')
    idnums = sorted(entries)
    run_start = 0
    for ix in range(1, len(idnums) + 1):
        if ix == len(idnums) or idnums[ix] != idnums[ix - 1] + 1:
            run = idnums[run_start:ix]
            out.write(b'%d %d\n' % (run[0], len(run)))
            for idnum in run:
                out.write(entries[idnum] + b' \n')
            run_start = ix
    return out.getvalue()


class PdfBuilder:
    """
    Write a PDF file revision by revision. Offsets in the xref tables and
    in ``/Prev`` are computed relative to the ``%PDF-`` header, which may be
    preceded by arbitrary junk.
    """

    def __init__(self, version: bytes = b'1.7', preamble: bytes = b''):
        self.buf = BytesIO()
        self.buf.write(preamble)
        self.header_offset = len(preamble)
        self.buf.write(b'%PDF-' + version + b'\n%\xe2\xe3\xcf\xd3\n')
        self.prev_xref: Optional[int] = None
        self.size = 1
        self.positions: Dict[Tuple[int, int], int] = {}

    def tell(self) -> int:
        return self.buf.tell() - self.header_offset

    def write_raw(self, data: bytes):
        self.buf.write(data)

    def write_object(self, idnum: int, body: bytes, generation=0) -> int:
        pos = self.tell()
        self.positions[(idnum, generation)] = pos
        self.buf.write(b'%d %d obj\n%b\nendobj\n' % (idnum, generation, body))
        return pos

    def add_revision(self, objects=(), free=(), trailer=b'/Root 1 0 R',
                     size=None, prev=_PREVIOUS, entries=None) -> int:
        """
        Write the objects in a revision, followed by an xref table and a
        trailer.

        :param objects:
            Tuples ``(idnum, body)`` or ``(idnum, body, generation)``.
        :param free:
            Tuples ``(idnum, generation)`` for free entries.
        :param entries:
            Extra raw xref entries, keyed by object number.
        :return:
            The position of the xref table.
        """
        xref_entries = {}
        if self.prev_xref is None:
            xref_entries[0] = b'0000000000 65535 f'
        for obj in objects:
            idnum, body = obj[:2]
            generation = obj[2] if len(obj) > 2 else 0
            pos = self.write_object(idnum, body, generation)
            xref_entries[idnum] = b'%010d %05d n' % (pos, generation)
        for idnum, generation in free:
            xref_entries[idnum] = b'0000000000 %05d f' % generation
        xref_entries.update(entries or {})
        if size is None:
            size = max([self.size] + [idnum + 1 for idnum in xref_entries])
        self.size = size

        xref_pos = self.tell()
        self.buf.write(fmt_xref_table(xref_entries))
        if prev is _PREVIOUS:
            prev = self.prev_xref
        prev_entry = b'' if prev is None else b' /Prev %d' % prev
        self.buf.write(
            b'trailer\n<< /Size %d %b%b >>\nstartxref\n%d\n%%%%EOF\n' % (
                size, trailer, prev_entry, xref_pos
            )
        )
        self.prev_xref = xref_pos
        return xref_pos

    def getvalue(self) -> bytes:
        return self.buf.getvalue()


MINIMAL_CONTENT = b'BT /F1 12 Tf 72 720 Td (Hello) Tj ET'

MINIMAL_OBJECTS = [
    (1, b'<< /Type /Catalog /Pages 2 0 R >>'),
    (2, b'<< /Type /Pages /Kids [3 0 R] /Count 1 >>'),
    (3, b'<< /Type /Page /Parent 2 0 R /MediaBox [0 0 595.28 841.89] '
        b'/Contents 4 0 R >>'),
    (4, stream_body(MINIMAL_CONTENT)),
    (5, b'<< /Title (Minimal) /Producer (pagemill_tests) >>'),
]

MINIMAL_TRAILER = b'/Root 1 0 R /Info 5 0 R'


def minimal_builder(**kwargs) -> PdfBuilder:
    builder = PdfBuilder(**kwargs)
    builder.add_revision(MINIMAL_OBJECTS, trailer=MINIMAL_TRAILER)
    return builder


MINIMAL = minimal_builder().getvalue()


def _two_revisions() -> bytes:
    builder = minimal_builder()
    builder.add_revision(
        [(5, b'<< /Title (Updated) >>'),
         (6, b'<< /Note (added in an update) >>')],
        trailer=b'/Root 1 0 R'
    )
    return builder.getvalue()


MINIMAL_UPDATED = _two_revisions()
"""
:const:`MINIMAL` with one incremental update, which replaces the info
dictionary and adds object 6. The second trailer has no ``/Info`` entry.
"""


def _with_objstm() -> bytes:
    builder = PdfBuilder()
    builder.add_revision(
        MINIMAL_OBJECTS + [
            (8, objstm_body([
                (6, b'<< /Type /Example /Value 42 >>'),
                (7, b'[ 1 0 R (in a stream) 3.5 ]'),
            ], flate=True)),
        ],
        trailer=MINIMAL_TRAILER, size=9,
    )
    return builder.getvalue()


MINIMAL_OBJSTM = _with_objstm()
"""
:const:`MINIMAL` plus a compressed object stream (object 8) holding
objects 6 and 7, which are not described by the xref table.
"""
