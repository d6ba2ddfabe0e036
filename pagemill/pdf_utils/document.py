"""
In-memory representation of a complete PDF document.

Parsing happens eagerly: once the cross-reference data has been resolved,
every live object is read from its recorded offset, so a
:class:`.PdfDocument` no longer needs its input stream afterwards.
"""

import logging
from io import BytesIO
from typing import Dict, List, Optional, Tuple, Union

from . import generic
from .lexer import TokenType
from .misc import DEFAULT_CHUNK_SIZE, PdfParseError
from .parser import PdfParser
from .rw_common import PdfHandler
from .settings import DEFAULT_PARSER_SETTINGS, ParserSettings
from .xref import (
    ObjStreamRef,
    TrailerDictionary,
    XRefBuilder,
    XRefEntry,
    XRefTable,
    XRefType,
)

__all__ = ['PdfDocument']

logger = logging.getLogger(__name__)

RefLike = Union[generic.Reference, generic.IndirectObject, int]


def _idnum(ref: RefLike) -> int:
    if isinstance(ref, (generic.Reference, generic.IndirectObject)):
        return ref.idnum
    return int(ref)


class PdfDocument(PdfHandler):
    """
    A parsed PDF document: the object table, the merged cross-reference
    table and the chain of trailers.

    :param stream:
        A readable and seekable binary stream containing the document.
    :param settings:
        Resource limits to apply while parsing.
    :raises PdfReadError:
        If the document could not be parsed. No partial result is kept.
    """

    def __init__(self, stream, settings: Optional[ParserSettings] = None):
        self.settings = settings or DEFAULT_PARSER_SETTINGS
        parser = PdfParser(stream, handler=self, settings=self.settings)
        self.header_offset, self.header_version = self._read_header(parser)

        builder = XRefBuilder(parser, header_offset=self.header_offset)
        xrefs, trailer = builder.read_xrefs()
        self.xrefs: XRefTable = xrefs
        self.trailer: TrailerDictionary = trailer
        self.xref_section_positions = builder.section_positions

        # slot i holds object number i + 1
        self._objects: List[Optional[generic.PdfObject]] = \
            [None] * xrefs.object_count
        self._read_objects(parser)

    @staticmethod
    def _read_header(parser: PdfParser) -> Tuple[int, Tuple[int, int]]:
        stream = parser.stream
        stream.seek(0)
        header_offset = stream.read(DEFAULT_CHUNK_SIZE).find(b'%PDF-')
        if header_offset == -1:
            raise PdfParseError("Could not find PDF header")
        parser.lexer.seek(header_offset)
        token = parser.lexer.next_token()
        if token.token_type != TokenType.VERSION_MARKER:
            raise PdfParseError("Invalid PDF version marker", pos=token.pos)
        return header_offset, token.value

    def _read_objects(self, parser: PdfParser):
        for entry in self.xrefs.live_entries():
            pos = self.header_offset + entry.location
            parser.lexer.seek(pos)
            idnum, generation, obj = parser.read_indirect_object()
            if (idnum, generation) != (entry.idnum, entry.generation):
                raise PdfParseError(
                    f"Expected object {entry.idnum} {entry.generation}, "
                    f"found {idnum} {generation}", pos=pos
                )
            self._objects[idnum - 1] = obj
        undescribed = sum(
            1 for idnum in range(1, self.xrefs.size)
            if self.xrefs[idnum] is None
        )
        if undescribed:
            logger.debug(
                f"{undescribed} object number(s) are not described by any "
                f"cross-reference section"
            )

    @property
    def object_count(self) -> int:
        """
        The number of usable object numbers, i.e. ``/Size - 1``.
        """
        return self.xrefs.object_count

    @property
    def trailer_view(self) -> generic.DictionaryObject:
        return self.trailer.flatten()

    def _trailer_ref(self, key) -> Optional[generic.Reference]:
        # the trailer must refer to the catalog and info dictionary indirectly
        return self.trailer_view.get_value_as_reference(key, optional=True)

    @property
    def root_ref(self) -> Optional[generic.Reference]:
        return self._trailer_ref('/Root')

    @property
    def info_ref(self) -> Optional[generic.Reference]:
        """
        :return:
            A reference to the document information dictionary, if there
            is one.
        """
        return self._trailer_ref('/Info')

    def get_object(self, ref: RefLike) -> Optional[generic.PdfObject]:
        """
        Look up an object by number. The generation number of a reference
        is not taken into account.

        :return:
            The object, or ``None`` for object numbers that are out of range,
            free or undescribed.
        """
        idnum = _idnum(ref)
        entry = self.xrefs[idnum]
        if idnum < 1 or entry is None or not entry.in_use:
            return None
        return self._objects[idnum - 1]

    def set_object(self, ref: RefLike, obj: generic.PdfObject):
        """
        Replace the object stored under an existing object number.
        If the object number was free, it becomes live again.

        :raises KeyError:
            If the object number is out of range.
        """
        idnum = _idnum(ref)
        if not 1 <= idnum <= self.object_count:
            raise KeyError(idnum)
        entry = self.xrefs[idnum]
        if entry is None or not entry.in_use:
            generation = entry.generation if entry is not None else 0
            self.xrefs.put(XRefEntry(
                XRefType.STANDARD, location=None,
                idnum=idnum, generation=generation
            ))
        self._objects[idnum - 1] = obj

    def insert_object(self, obj: generic.PdfObject) -> generic.Reference:
        """
        Add a new object under a fresh object number.

        :return:
            A reference to the new object.
        """
        idnum = self.xrefs.size
        self.xrefs.append(XRefEntry(
            XRefType.STANDARD, location=None, idnum=idnum, generation=0
        ))
        self._objects.append(obj)
        self.trailer['/Size'] = generic.NumberObject(self.xrefs.size)
        return generic.Reference(idnum, 0, self)

    def free_object(self, ref: RefLike):
        """
        Mark an object number as free. Its generation number is incremented,
        so that the number can be reused later.

        :raises KeyError:
            If the object number does not refer to a live object.
        """
        idnum = _idnum(ref)
        entry = self.xrefs[idnum]
        if idnum < 1 or entry is None or not entry.in_use:
            raise KeyError(idnum)
        self.xrefs.put(XRefEntry(
            XRefType.FREE, location=None,
            idnum=idnum, generation=entry.generation + 1
        ))
        self._objects[idnum - 1] = None

    def _rewrite_references(self, obj, renumber: Dict[int, Tuple[int, int]],
                            seen: set):
        # returns the object to store in place of obj
        if isinstance(obj, generic.IndirectObject):
            try:
                new_idnum, generation = renumber[obj.idnum]
            except KeyError:
                # references to dead objects are equivalent to null
                return generic.NullObject()
            return generic.IndirectObject(new_idnum, generation, self)
        if id(obj) in seen:
            return obj
        if isinstance(obj, generic.DictionaryObject):
            seen.add(id(obj))
            for key, value in list(obj.raw_items()):
                obj[key] = self._rewrite_references(value, renumber, seen)
        elif isinstance(obj, generic.ArrayObject):
            seen.add(id(obj))
            for ix in range(len(obj)):
                obj[ix] = self._rewrite_references(
                    obj.raw_get(ix), renumber, seen
                )
        return obj

    def compact(self) -> Dict[int, int]:
        """
        Renumber all live objects densely starting from ``1``, preserving
        their relative order, and rewrite every reference in the document
        (including the trailer) accordingly.

        :return:
            A mapping of old object numbers to new ones.
        """
        live = [
            (entry, self._objects[entry.idnum - 1])
            for entry in self.xrefs.live_entries()
        ]
        renumber = {
            entry.idnum: (new_idnum, entry.generation)
            for new_idnum, (entry, _) in enumerate(live, start=1)
        }

        seen = set()
        xrefs = XRefTable(len(live) + 1)
        xrefs.merge(XRefEntry(
            XRefType.FREE, location=None, idnum=0, generation=65535
        ))
        objects = []
        for entry, obj in live:
            new_idnum, generation = renumber[entry.idnum]
            xrefs.put(XRefEntry(
                XRefType.STANDARD, location=None,
                idnum=new_idnum, generation=generation
            ))
            objects.append(self._rewrite_references(obj, renumber, seen))

        trailer_dict = self._rewrite_references(
            self.trailer.flatten(), renumber, seen
        )
        trailer_dict['/Size'] = generic.NumberObject(xrefs.size)
        trailer = TrailerDictionary()
        trailer.add_trailer_revision(trailer_dict)

        self.xrefs, self._objects, self.trailer = xrefs, objects, trailer
        logger.debug(
            f"Compacted document to {len(objects)} objects"
        )
        return {old: new for old, (new, _) in renumber.items()}

    def set_info(self, info: generic.DictionaryObject) -> generic.Reference:
        """
        Install a document information dictionary, replacing the current one
        if there is one.

        :return:
            A reference to the information dictionary.
        """
        info_ref = self.info_ref
        if info_ref is not None and self.get_object(info_ref) is not None:
            self.set_object(info_ref, info)
            return info_ref
        info_ref = self.insert_object(info)
        self.trailer['/Info'] = generic.IndirectObject(
            info_ref.idnum, info_ref.generation, self
        )
        return info_ref

    def set_page_labels(self, number_tree: generic.DictionaryObject):
        """
        Install a page label number tree in the document catalog.

        :raises PdfReadError:
            If the document has no catalog.
        """
        self.root['/PageLabels'] = number_tree

    def expand_object_stream(self, ref: RefLike) -> List[int]:
        """
        Unpack the objects contained in an object stream (ISO 32000-1,
        § 7.5.7), and free the stream itself.

        An object is only installed if its number is not already in use by
        a top-level object.

        :return:
            The object numbers that were installed.
        """
        stream_idnum = _idnum(ref)
        stream_obj = self.get_object(stream_idnum)
        if not isinstance(stream_obj, generic.StreamObject) \
                or stream_obj.get('/Type') != '/ObjStm':
            raise PdfParseError(f"Object {stream_idnum} is not an object stream")
        count = stream_obj.get('/N')
        first = stream_obj.get('/First')
        if not isinstance(count, int) or not isinstance(first, int) \
                or count < 0 or first < 0:
            raise PdfParseError(
                f"Object stream {stream_idnum} must have non-negative /N "
                f"and /First entries"
            )

        parser = PdfParser(
            BytesIO(stream_obj.data), handler=self, settings=self.settings
        )
        header = []
        for _ in range(count):
            idnum = parser.expect_integer(
                "Expected object number in object stream header",
                non_negative=True
            )
            offset = parser.expect_integer(
                "Expected offset in object stream header", non_negative=True
            )
            header.append((idnum, offset))

        installed = []
        for ix, (idnum, offset) in enumerate(header):
            if not 1 <= idnum <= self.object_count:
                raise PdfParseError(
                    f"Object number {idnum} in object stream {stream_idnum} "
                    f"is out of range"
                )
            parser.lexer.seek(first + offset)
            obj = parser.read_object()
            if isinstance(obj, generic.StreamObject):
                raise PdfParseError(
                    f"Object stream {stream_idnum} contains a stream"
                )
            if isinstance(obj, generic.IndirectObject):
                raise PdfParseError(
                    f"Object {idnum} in object stream {stream_idnum} is "
                    f"a bare reference"
                )
            entry = self.xrefs[idnum]
            if entry is not None and entry.xref_type == XRefType.STANDARD:
                logger.debug(
                    f"Object {idnum} in object stream {stream_idnum} is "
                    f"shadowed by a top-level object; skipping"
                )
                continue
            self.xrefs.put(XRefEntry(
                XRefType.IN_OBJ_STREAM,
                location=ObjStreamRef(stream_idnum, ix),
                idnum=idnum, generation=0
            ))
            self._objects[idnum - 1] = obj
            installed.append(idnum)
        self.free_object(stream_idnum)
        logger.debug(
            f"Expanded object stream {stream_idnum}: "
            f"{len(installed)} objects installed"
        )
        return installed

    def expand_object_streams(self) -> int:
        """
        Expand all object streams in the document.

        :return:
            The number of object streams expanded.
        """
        stream_ids = [
            entry.idnum for entry in self.xrefs.live_entries()
            if isinstance(self._objects[entry.idnum - 1], generic.StreamObject)
            and self._objects[entry.idnum - 1].get('/Type') == '/ObjStm'
        ]
        for idnum in stream_ids:
            self.expand_object_stream(idnum)
        return len(stream_ids)
