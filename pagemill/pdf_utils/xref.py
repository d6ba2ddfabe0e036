"""
Internal utilities to handle the processing of cross-reference data and
document trailer data.

A document may have been updated incrementally any number of times. Each
update appends a new cross-reference section and a new trailer, which points
back to the previous section through its ``/Prev`` entry. Resolution starts
from the last trailer in the file and walks this chain backwards, so sections
are processed newest first.

This entire module is considered internal API.
"""

import enum
import logging
import os
from dataclasses import dataclass
from typing import Iterator, List, Optional, Set, Tuple, Union

from . import generic
from .lexer import TokenType
from .misc import (
    DEFAULT_CHUNK_SIZE,
    PDF_WHITESPACE,
    PdfParseError,
    PdfReadError,
)
from .parser import PdfParser

__all__ = [
    'XRefBuilder', 'XRefTable',
    'XRefType', 'XRefEntry', 'ObjStreamRef',
    'TrailerDictionary',
    'find_trailer', 'read_trailer', 'parse_xref_table',
]

logger = logging.getLogger(__name__)


@enum.unique
class XRefType(enum.Enum):
    """
    Different types of cross-reference entries.
    """

    FREE = enum.auto()
    """
    A freeing instruction.
    """

    STANDARD = enum.auto()
    """
    A regular top-level object.
    """

    IN_OBJ_STREAM = enum.auto()
    """
    An object that was unpacked from an object stream.
    """


@dataclass(frozen=True)
class ObjStreamRef:
    """
    Identifies an object that's part of an object stream.
    """

    obj_stream_id: int
    """
    The ID number of the object stream (its generation number is presumed zero).
    """

    ix_in_stream: int
    """
    The index of the object in the stream.
    """


@dataclass(frozen=True)
class XRefEntry:
    """
    Value type representing a single cross-reference entry.
    """

    xref_type: XRefType
    """
    The type of cross-reference entry.
    """

    location: Optional[Union[int, ObjStreamRef]]
    """
    Location the cross-reference points to. For standard entries, this is
    an offset relative to the document's header.
    """

    idnum: int
    """
    The ID of the object being referenced.
    """

    generation: int = 0
    """
    The generation number of the object being referenced.
    """

    @property
    def in_use(self) -> bool:
        return self.xref_type != XRefType.FREE


class XRefTable:
    """
    Merged cross-reference table with exactly one slot per object number,
    from ``0`` up to (but not including) :attr:`size`.

    Object number ``0`` is reserved, so the number of usable object numbers
    is ``size - 1``.

    :param size:
        The number of slots, as declared by the ``/Size`` trailer entry.
    """

    def __init__(self, size: int):
        if size < 1:
            raise ValueError("Cross-reference table size must be at least 1")
        self._entries: List[Optional[XRefEntry]] = [None] * size

    @property
    def size(self) -> int:
        return len(self._entries)

    @property
    def object_count(self) -> int:
        return len(self._entries) - 1

    def __getitem__(self, idnum: int) -> Optional[XRefEntry]:
        """
        Look up the entry for an object number. Object numbers outside the
        table, and numbers that no section described, map to ``None``.
        """
        if 0 <= idnum < len(self._entries):
            return self._entries[idnum]
        return None

    def __iter__(self) -> Iterator[XRefEntry]:
        for entry in self._entries:
            if entry is not None:
                yield entry

    def live_entries(self) -> Iterator[XRefEntry]:
        """
        Iterate over the in-use entries, in ascending object number order.
        """
        for entry in self._entries[1:]:
            if entry is not None and entry.in_use:
                yield entry

    def merge(self, entry: XRefEntry) -> bool:
        """
        Merge an entry read from a cross-reference section.

        Sections are merged newest first, so an entry only replaces the
        current one if it carries a strictly higher generation number.

        :return:
            ``True`` if the entry was stored.
        """
        if not 0 <= entry.idnum < len(self._entries):
            raise PdfParseError(
                f"Object number {entry.idnum} is out of range for "
                f"cross-reference table of size {len(self._entries)}"
            )
        current = self._entries[entry.idnum]
        if current is None or entry.generation > current.generation:
            self._entries[entry.idnum] = entry
            return True
        logger.debug(
            f"Entry {entry} superseded by {current}; ignoring."
        )
        return False

    def put(self, entry: XRefEntry):
        """
        Unconditionally replace the entry for an existing object number.
        """
        if not 1 <= entry.idnum < len(self._entries):
            raise KeyError(entry.idnum)
        self._entries[entry.idnum] = entry

    def append(self, entry: XRefEntry):
        """
        Add a slot at the end of the table.
        """
        if entry.idnum != len(self._entries):
            raise ValueError(
                f"Next object number is {len(self._entries)}, "
                f"not {entry.idnum}"
            )
        self._entries.append(entry)


def find_trailer(stream) -> int:
    """
    Scan backwards from the end of the stream, line by line, until a line
    starting with the ``trailer`` keyword (possibly indented) is found.

    Garbage after the last ``%%EOF`` marker is tolerated this way.

    :param stream:
        A seekable binary stream.
    :return:
        The offset of the ``trailer`` keyword.
    :raises PdfParseError:
        If there is no such line.
    """
    stream.seek(0, os.SEEK_END)
    buf_start = stream.tell()
    buf = b''
    while True:
        nl = buf.rfind(b'\n')
        if nl == -1 and buf_start > 0:
            chunk_start = max(0, buf_start - DEFAULT_CHUNK_SIZE)
            stream.seek(chunk_start)
            buf = stream.read(buf_start - chunk_start) + buf
            buf_start = chunk_start
            continue
        line = buf[nl + 1:]
        keyword = line.lstrip(PDF_WHITESPACE)
        if keyword.startswith(b'trailer'):
            return buf_start + nl + 1 + len(line) - len(keyword)
        if nl == -1:
            raise PdfParseError("Could not find trailer in file")
        buf = buf[:nl]


def read_trailer(parser: PdfParser) \
        -> Tuple[generic.DictionaryObject, int]:
    """
    Read ``trailer <dictionary> startxref <offset> %%EOF``, starting
    at the current position.

    :return:
        The trailer dictionary and the (header-relative) offset of the
        cross-reference section it belongs to.
    """
    lexer = parser.lexer
    parser.expect_keyword('trailer', "Expected 'trailer' keyword")
    dict_pos = lexer.tell()
    try:
        trailer_dict = parser.read_object()
    except PdfReadError as e:
        raise PdfParseError(
            "Could not read trailer dictionary", pos=dict_pos
        ) from e
    if not isinstance(trailer_dict, generic.DictionaryObject):
        raise PdfParseError("Could not read trailer dictionary", pos=dict_pos)
    parser.expect_keyword('startxref', "Expected 'startxref' keyword")
    startxref = parser.expect_integer(
        "Expected non-negative integer for startxref position",
        non_negative=True
    )
    token = lexer.next_token()
    if token.token_type != TokenType.EOF_MARKER:
        raise PdfParseError("Expected '%%EOF' marker", pos=token.pos)
    return trailer_dict, startxref


def parse_xref_table(parser: PdfParser, size: int) -> Iterator[XRefEntry]:
    """
    Parse a single cross-reference table and yield its entries one by one.
    When the generator is exhausted, the parser is positioned at the
    ``trailer`` keyword following the table.

    :param parser:
        A parser pointed to the ``xref`` keyword.
    :param size:
        The size of the table as declared by the document's trailer.
        Subsections extending beyond it are rejected.
    :return:
        A generator object yielding :class:`.XRefEntry` objects.
    """

    lexer = parser.lexer
    parser.expect_keyword('xref', "Expected 'xref' keyword")
    while lexer.peek_token().token_type == TokenType.INTEGER:
        subsection_pos = lexer.tell()
        first = _read_xref_integer(parser)
        count = _read_xref_integer(parser)
        if first + count > size:
            raise PdfParseError(
                f"Xref subsection does not fit in table: "
                f"{first} + {count} > {size}", pos=subsection_pos
            )
        for idnum in range(first, first + count):
            offset = _read_xref_integer(parser)
            generation = _read_xref_integer(parser)
            flag_pos = lexer.tell()
            flag = lexer.read_byte()
            if flag == b'n':
                yield XRefEntry(
                    xref_type=XRefType.STANDARD,
                    location=offset, idnum=idnum, generation=generation
                )
            elif flag == b'f':
                yield XRefEntry(
                    xref_type=XRefType.FREE,
                    location=None, idnum=idnum, generation=generation
                )
            else:
                raise PdfParseError(
                    "Expected 'f' or 'n' in xref table", pos=flag_pos
                )
    token = lexer.peek_token()
    if not token.is_keyword('trailer'):
        raise PdfParseError(
            "Expected 'trailer' keyword after xref table", pos=token.pos
        )


def _read_xref_integer(parser: PdfParser) -> int:
    token = parser.lexer.next_token()
    if token.token_type != TokenType.INTEGER:
        raise PdfParseError("Expected integer in xref table", pos=token.pos)
    if token.value < 0:
        raise PdfParseError(
            "Expected non-negative integer in xref table", pos=token.pos
        )
    return token.value


class XRefBuilder:
    """
    Locate the document's trailer, and resolve the chain of cross-reference
    sections it points to.

    :param parser:
        A parser over the document's stream.
    :param header_offset:
        Position of the ``%PDF-`` header in the stream. All offsets in the
        file are relative to it.
    """

    def __init__(self, parser: PdfParser, header_offset: int = 0):
        self.parser = parser
        self.header_offset = header_offset
        self.section_positions: List[int] = []
        """
        Absolute positions of the cross-reference sections that were read,
        newest first.
        """

    def _read_section(self, xref_pos: int, table: XRefTable):
        self.parser.lexer.seek(xref_pos)
        stored = total = 0
        for entry in parse_xref_table(self.parser, table.size):
            total += 1
            stored += table.merge(entry)
        self.section_positions.append(xref_pos)
        logger.debug(
            f"Read xref section at {xref_pos}: {total} entries, "
            f"{stored} retained"
        )

    def _prev_position(self, trailer_dict, xref_pos: int,
                       visited: Set[int]) -> Optional[int]:
        try:
            prev = trailer_dict.raw_get('/Prev')
        except KeyError:
            return None
        if not isinstance(prev, generic.NumberObject) or prev < 0:
            raise PdfParseError("Expected non-negative integer for /Prev")
        prev_pos = self.header_offset + prev
        if prev_pos in visited:
            raise PdfParseError(f"Cycle in /Prev chain at offset {prev}")
        if prev_pos >= xref_pos:
            raise PdfParseError(
                f"/Prev offset {prev} must point to earlier file content "
                f"than the section at {xref_pos - self.header_offset}"
            )
        return prev_pos

    def read_xrefs(self) -> Tuple[XRefTable, 'TrailerDictionary']:
        """
        Read all cross-reference sections and their trailers.

        :return:
            The merged cross-reference table and the trailer, with all
            revisions in newest-first order.
        """
        parser = self.parser
        trailer_pos = find_trailer(parser.stream)
        parser.lexer.seek(trailer_pos)
        trailer_dict, startxref = read_trailer(parser)
        size = trailer_dict.get_and_apply('/Size', lambda x: x, raw=True)
        if not isinstance(size, generic.NumberObject) or size < 1:
            raise PdfParseError(
                "Expected integer >= 1 for /Size in file trailer",
                pos=trailer_pos
            )
        max_size = parser.settings.max_object_count
        if size > max_size:
            raise PdfParseError(
                f"/Size {size} in file trailer exceeds the maximum of "
                f"{max_size}",
                pos=trailer_pos
            )

        table = XRefTable(size)
        trailer = TrailerDictionary()
        trailer.add_trailer_revision(trailer_dict)
        xref_pos = self.header_offset + startxref
        visited = {xref_pos}
        self._read_section(xref_pos, table)
        while True:
            prev_pos = self._prev_position(trailer_dict, xref_pos, visited)
            if prev_pos is None:
                break
            logger.debug(f"Following /Prev to xref section at {prev_pos}")
            visited.add(prev_pos)
            xref_pos = prev_pos
            self._read_section(xref_pos, table)
            trailer_dict, _ = read_trailer(parser)
            trailer.add_trailer_revision(trailer_dict)
        return table, trailer


class TrailerDictionary(generic.PdfObject):
    """
    The standard mandates that each trailer shall contain
    at least all keys used in the preceding trailer, even if unmodified.
    Of course, we cannot trust documents to actually follow this rule, so
    this class implements fallbacks.
    """

    # These keys shouldn't really be considered part of the trailer dictionary,
    # and in particular are not subject to inheritance rules.
    non_trailer_keys = {'/Prev', '/XRefStm'}

    def __init__(self):
        # trailer revisions, numbered backwards (i.e. in processing order)
        # The element at index 0 is the most recent one.
        self._trailer_revisions: List[generic.DictionaryObject] = []
        self._new_changes = generic.DictionaryObject()

    def add_trailer_revision(self, trailer_dict: generic.DictionaryObject):
        self._trailer_revisions.append(trailer_dict)

    @property
    def revisions(self) -> List[generic.DictionaryObject]:
        """
        The trailer dictionaries as they appear in the file, newest first.
        """
        return list(self._trailer_revisions)

    def __getitem__(self, item):
        return self.raw_get(item).get_object()

    def __contains__(self, item):
        try:
            self.raw_get(item)
            return True
        except KeyError:
            return False

    def raw_get(self, key, revision=None):
        """
        Look up a key, falling back to older revisions if the newest one
        doesn't have it.

        :param key:
            The key to look up.
        :param revision:
            Only consider revisions up to this one. Revisions are numbered
            chronologically, starting from ``0`` for the original document.
        """
        revisions = self._trailer_revisions
        if revision is None:
            try:
                return self._new_changes.raw_get(key)
            except KeyError:
                pass
        else:
            # xref sections are numbered backwards
            section = len(revisions) - 1 - revision
            revisions = revisions[section:]

        if key in self.non_trailer_keys:
            # These are not subject to trailer inheritance;
            # only look in the most recent revision
            return revisions[0].raw_get(key)

        for trailer_dict in revisions:
            try:
                return trailer_dict.raw_get(key)
            except KeyError:
                continue
        raise KeyError(key)

    def __setitem__(self, item, value):
        self._new_changes[item] = value

    def flatten(self, revision=None) -> generic.DictionaryObject:
        """
        Merge all revisions (and pending changes) into a single dictionary,
        with newer values taking precedence.
        """
        relevant_revisions = self._trailer_revisions
        if revision is not None:
            relevant_revisions = relevant_revisions[-revision - 1:]
        trailer = generic.DictionaryObject()
        for trailer_dict in reversed(relevant_revisions):
            for k, v in trailer_dict.raw_items():
                trailer[k] = v
        if revision is None:
            for k, v in self._new_changes.raw_items():
                trailer[k] = v

        for key in self.non_trailer_keys:
            if key in trailer:
                del trailer[key]
        return trailer

    def write_to_stream(self, stream):
        self.flatten().write_to_stream(stream)
