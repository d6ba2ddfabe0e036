"""
Implementation of PDF object types and other generic functionality.

Every PDF value read from a file is represented by an instance of a
:class:`.PdfObject` subclass:

* ``null``: :class:`.NullObject`
* booleans: :class:`.BooleanObject`
* integers: :class:`.NumberObject` (a subclass of ``int``)
* reals: :class:`.FloatObject` (a subclass of ``decimal.Decimal``, so values
  survive a read/write cycle unchanged)
* names: :class:`.NameObject` (a subclass of ``str``, including the leading
  slash)
* strings: :class:`.ByteStringObject` (a subclass of ``bytes``; literal and
  hexadecimal strings are not distinguished)
* arrays: :class:`.ArrayObject` (a subclass of ``list``)
* dictionaries: :class:`.DictionaryObject`
* streams: :class:`.StreamObject`
* indirect references: :class:`.IndirectObject`
"""
import binascii
import decimal
import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional, Tuple, Union

from .misc import (
    IndirectObjectExpected,
    PdfReadError,
    PdfStreamError,
    PdfWriteError,
    is_regular_character,
)
from .nametable import NameTable
from .settings import DEFAULT_PARSER_SETTINGS

__all__ = [
    'Dereferenceable',
    'Reference',
    'PdfObject',
    'IndirectObject',
    'NullObject',
    'BooleanObject',
    'FloatObject',
    'NumberObject',
    'ByteStringObject',
    'NameObject',
    'ArrayObject',
    'DictionaryObject',
    'StreamObject',
    'read_object',
    'pdf_name',
    'pdf_string',
]

logger = logging.getLogger(__name__)


class Dereferenceable:
    """
    Represents an opaque reference to a PDF object associated with
    a PDF Handler (see :class:`PdfHandler <.rw_common.PdfHandler>`).
    """

    def get_object(self) -> 'PdfObject':
        """Retrieve the PDF object backing this dereferenceable.

        :return: A :class:`.PdfObject`.
        """
        raise NotImplementedError

    def get_pdf_handler(self):
        """Return the PDF handler associated with this dereferenceable.

        :return: a :class:`~.rw_common.PdfHandler`.
        """
        raise NotImplementedError


@dataclass(frozen=True)
class Reference(Dereferenceable):
    """
    A reference to an object with a certain ID and generation number, with
    a PDF handler attached to it.

    Only object numbers of at least ``1`` can ever resolve to an object.
    """

    idnum: int
    """
    The object's ID.
    """

    generation: int = 0
    """
    The object's generation number (usually `0`)
    """

    pdf: object = field(repr=False, hash=False, compare=False, default=None)
    """
    The PDF handler associated with this reference, an instance of
    :class:`~.rw_common.PdfHandler`.

    .. warning::
       This field is ignored when hashing or comparing :class:`.Reference`
       objects, so it is the API user's responsibility to not mix up
       references originating from unrelated PDF handlers.
    """

    def get_object(self) -> 'PdfObject':
        """
        Look up the object in the associated handler.
        Unknown or freed objects resolve to ``null``.
        """
        if self.pdf is None:
            return NullObject()
        obj = self.pdf.get_object(self)
        return NullObject() if obj is None else obj

    def get_pdf_handler(self):
        return self.pdf


def read_object(stream, handler=None, settings=None) -> 'PdfObject':
    """
    Read a single direct PDF object from an input stream, starting at the
    current position.

    :param stream:
        An input stream.
    :param handler:
        The :class:`~.rw_common.PdfHandler` that indirect references in the
        object should resolve against.
    :param settings:
        A :class:`~.settings.ParserSettings` instance.
    :return:
        A :class:`.PdfObject`.
    """
    from .parser import PdfParser

    return PdfParser(stream, handler=handler, settings=settings).read_object()


class PdfObject:
    """Superclass for all PDF objects."""

    def get_object(self):
        """Resolves indirect references.

        :return: `self`, unless an instance of :class:`.IndirectObject`.
        """
        return self

    def write_to_stream(self, stream):
        """
        Abstract method to render this object to an output stream.

        :param stream:
            An output stream.
        """
        raise NotImplementedError


class NullObject(PdfObject):
    """
    PDF `null` object.

    All instances are treated as equal and falsy.
    """

    def write_to_stream(self, stream):
        stream.write(b"null")

    def __eq__(self, other):
        return self is other or isinstance(other, NullObject)

    def __hash__(self):
        return hash(None)

    def __bool__(self):
        return False

    def __repr__(self):
        return "NullObject()"


class BooleanObject(PdfObject):
    """PDF boolean value."""

    def __init__(self, value):
        self.value = bool(value)

    def write_to_stream(self, stream):
        stream.write(b"true" if self.value else b"false")

    def __bool__(self):
        return self.value

    def __eq__(self, other):
        return isinstance(other, (BooleanObject, bool)) and bool(self) == bool(
            other
        )

    def __hash__(self):
        return hash(self.value)

    def __str__(self):
        return str(bool(self))

    def __repr__(self):
        return str(self)


class ArrayObject(list, PdfObject):
    """
    PDF array object. This class extends from Python's list class,
    and supports its interface.

    Entries are dereferenced transparently when accessed using
    :meth:`__getitem__` with an integer index, consistent with the behaviour
    of :class:`.DictionaryObject`. Use :meth:`raw_get` to get at the
    :class:`.IndirectObject` itself.
    """

    def __getitem__(self, index):
        if isinstance(index, slice):
            return ArrayObject(list.__getitem__(self, index))
        return self.raw_get(index).get_object()

    def raw_get(self, index):
        """
        Get a value from an array without dereferencing.

        :param index:
            Index to look up.
        :return:
            A :class:`.PdfObject`.
        """
        return list.__getitem__(self, index)

    def write_to_stream(self, stream):
        stream.write(b"[")
        for data in list.__iter__(self):
            stream.write(b" ")
            data.write_to_stream(stream)
        stream.write(b" ]")


class IndirectObject(PdfObject, Dereferenceable):
    """
    Thin wrapper around a :class:`.Reference`, implementing both the
    :class:`.Dereferenceable` and :class:`.PdfObject` interfaces.

    Once dereferenced, the target is remembered in :attr:`resolved`.
    That attribute is a convenience pointer into the handler's object table,
    and is refreshed on every call to :meth:`get_object`.
    """

    def __init__(self, idnum, generation, pdf):
        self.reference = Reference(idnum, generation, pdf)
        self.resolved: Optional[PdfObject] = None

    def get_object(self):
        """
        :return: The PDF object this reference points to.
        :raises PdfReadError:
            If the reference is part of a cycle of references, or the chain
            of references is too long.
        """
        handler = self.get_pdf_handler()
        settings = getattr(handler, 'settings', DEFAULT_PARSER_SETTINGS)
        max_depth = settings.max_reference_depth
        seen = {self.reference}
        obj = self.reference.get_object()
        # indirect references pointing to indirect references are rare,
        # but the standard doesn't forbid them
        while isinstance(obj, IndirectObject):
            if obj.reference in seen:
                raise PdfReadError(
                    f"Cycle of references involving {self.reference}"
                )
            if len(seen) >= max_depth:
                raise PdfReadError(
                    f"Chain of references starting at {self.reference} is "
                    f"longer than {max_depth}"
                )
            seen.add(obj.reference)
            obj = obj.reference.get_object()
        self.resolved = obj
        return obj

    def get_pdf_handler(self):
        return self.reference.get_pdf_handler()

    @property
    def idnum(self) -> int:
        """
        :return: the object ID of this reference.
        """
        return self.reference.idnum

    @property
    def generation(self):
        """
        :return: the generation number of this reference.
        """
        return self.reference.generation

    def __repr__(self):
        return "IndirectObject(%r, %r)" % (self.idnum, self.generation)

    def __hash__(self):
        return hash((self.idnum, self.generation))

    def __eq__(self, other):
        return (
            isinstance(other, IndirectObject)
            and self.reference == other.reference
        )

    def write_to_stream(self, stream):
        stream.write(b"%d %d R" % (self.idnum, self.generation))


class FloatObject(decimal.Decimal, PdfObject):
    """
    PDF Float object.

    Internally, these are treated as decimals (and therefore actually
    fixed-point objects, to be precise).
    """

    # noinspection PyArgumentList,PyTypeChecker
    def __new__(cls, value="0", context=None):
        try:
            return decimal.Decimal.__new__(cls, str(value), context)
        except (ValueError, decimal.DecimalException):
            return decimal.Decimal.__new__(cls, str(value))

    def __repr__(self):
        return f"FloatObject({str(self)!r})"

    def as_numeric(self):
        """
        :return: a Python ``float`` value for this object.
        """
        return float(self)

    def write_to_stream(self, stream):
        # the PDF syntax has no exponent notation, and a real without a
        # decimal point would be read back as an integer
        as_text = format(self, 'f')
        if '.' not in as_text:
            as_text += '.0'
        stream.write(as_text.encode('ascii'))


class NumberObject(int, PdfObject):
    """
    PDF number object. This is the PDF type for integer values.
    """

    # noinspection PyArgumentList
    def __new__(cls, value):
        return int.__new__(cls, int(value))

    def as_numeric(self):
        """
        :return: a Python ``int`` value for this object.
        """
        return int(self)

    def __repr__(self):
        return f"NumberObject({int(self)})"

    def write_to_stream(self, stream):
        stream.write(str(int(self)).encode('ascii'))


def pdf_string(string: Union[str, bytes, bytearray]) -> 'ByteStringObject':
    """
    Encode a string as a :class:`.ByteStringObject`.

    Python strings that are pure ASCII are encoded as such, other strings are
    encoded as UTF-16BE with a byte order mark, as the PDF standard requires
    for text strings.

    :param string:
        The string to encode.
    """
    if isinstance(string, (bytes, bytearray)):
        return ByteStringObject(string)
    try:
        return ByteStringObject(string.encode('ascii'))
    except UnicodeEncodeError:
        return ByteStringObject(b'\xfe\xff' + string.encode('utf-16be'))


_LITERAL_STRING_ESCAPES = {
    0x28: b'\\(', 0x29: b'\\)', 0x5c: b'\\\\',
}


class ByteStringObject(bytes, PdfObject):
    """
    PDF string object. No attempt is made to interpret the bytes as text.
    """

    def __repr__(self):
        return f"ByteStringObject({bytes(self)!r})"

    def write_to_stream(self, stream):
        if all(32 <= b <= 126 for b in self):
            stream.write(b"(")
            for b in self:
                stream.write(_LITERAL_STRING_ESCAPES.get(b, bytes((b,))))
            stream.write(b")")
        else:
            stream.write(b"<")
            stream.write(binascii.hexlify(self))
            stream.write(b">")


class NameObject(str, PdfObject):
    """
    PDF name object. These are valid Python strings, but names and strings
    are treated differently in the PDF specification, so proper care is
    required.

    The string value includes the leading slash, and all ``#XX`` escapes
    expanded.
    """

    def write_to_stream(self, stream):
        byte_iter = iter(self.encode('utf8'))
        if not next(byte_iter, None) == 0x2F:
            raise PdfWriteError(
                f"Could not serialise name object {repr(self)}, "
                f"must start with /"
            )
        stream.write(b'/')
        for cur_byte in byte_iter:
            if (
                cur_byte == 0x23
                or not (0x21 <= cur_byte <= 0x7E)
                or not is_regular_character(cur_byte)
            ):
                stream.write('#{:02X}'.format(cur_byte).encode('ascii'))
            else:
                stream.write(bytes((cur_byte,)))


def pdf_name(name: str) -> NameObject:
    """
    Create a name object, adding the leading slash if necessary.
    """
    return NameObject(name if name.startswith('/') else '/' + name)


def _normalise_key(key):
    if not isinstance(key, NameObject):
        if isinstance(key, str):
            return pdf_name(key)
        else:
            raise ValueError("key must be PdfName")
    return key


class DictionaryObject(MutableMapping, PdfObject):
    """
    A PDF dictionary object.

    Keys in a PDF dictionary are PDF names, and values are PDF objects.
    Plain strings are accepted as keys and converted to names.
    The entries are stored in a :class:`~.nametable.NameTable`, so iteration
    order is hash-slot order rather than insertion order.

    When accessing a key using the standard :meth:`__getitem__` syntax,
    :class:`.IndirectObject` references will be resolved.
    """

    def __init__(self, dict_data=None):
        self._table: NameTable[NameObject, PdfObject] = NameTable()
        if dict_data is None:
            return
        if isinstance(dict_data, DictionaryObject):
            entries = dict_data.raw_items()
        else:
            entries = dict_data.items()
        for key, value in entries:
            self[key] = value

    def raw_get(self, key: Union[NameObject, str]):
        """
        Get a value from a dictionary without dereferencing.
        In other words, if the value corresponding to the given key is of type
        :class:`.IndirectObject`, the indirect reference will not be resolved.

        :param key:
            Key to look up in the dictionary.
        :return:
            A :class:`.PdfObject`.
        :raises KeyError:
            If the key is not present.
        """
        return self._table.lookup(_normalise_key(key))

    def raw_items(self) -> Iterator[Tuple[NameObject, PdfObject]]:
        """
        Iterate over all entries without dereferencing values.
        """
        return self._table.items()

    def __getitem__(self, key):
        return self.raw_get(key).get_object()

    def __setitem__(self, key, value):
        key = _normalise_key(key)
        if not isinstance(value, PdfObject):
            raise ValueError("value must be PdfObject")
        self._table.insert(key, value)

    def __delitem__(self, key):
        self._table.remove(_normalise_key(key))

    def __contains__(self, key):
        try:
            return _normalise_key(key) in self._table
        except ValueError:
            return False

    def __iter__(self):
        return self._table.keys()

    def __len__(self):
        return len(self._table)

    def __eq__(self, other):
        if isinstance(other, DictionaryObject):
            return dict(self.raw_items()) == dict(other.raw_items())
        if isinstance(other, Mapping):
            return dict(self.raw_items()) == dict(other.items())
        return NotImplemented

    __hash__ = None

    def __repr__(self):
        return f"{type(self).__name__}({dict(self.raw_items())!r})"

    def get_and_apply(
        self,
        key,
        function: Callable[[PdfObject], Any],
        *,
        raw=False,
        default=None,
    ):
        try:
            value = self.raw_get(key) if raw else self[key]
        except KeyError:
            return default
        return function(value)

    def get_value_as_reference(self, key, optional=False) -> Reference:
        def as_ref(obj):
            if isinstance(obj, IndirectObject):
                return obj.reference
            raise IndirectObjectExpected

        value = self.get_and_apply(key, as_ref, raw=True)
        if value is None and not optional:
            raise KeyError(key)
        return value

    def write_to_stream(self, stream):
        stream.write(b"<<\n")
        for key, value in self.raw_items():
            key.write_to_stream(stream)
            stream.write(b" ")
            value.write_to_stream(stream)
            stream.write(b"\n")
        stream.write(b">>")


class StreamObject(DictionaryObject):
    """
    PDF stream object.

    Essentially, a PDF stream is a dictionary object with a binary blob of
    data attached. This data can be encoded by various filters (not all of which
    are currently supported, see :mod:`.filters`).

    A stream object can be initialised with encoded or decoded data.
    The former is used by the parser, which leaves decoding to be done
    on demand.

    :param dict_data:
        The dictionary data for this stream object.
    :param stream_data:
        The (unencoded) stream data.
    :param encoded_data:
        The encoded stream data.

        .. warning::
            If both `stream_data` and `encoded_data` are provided, the caller
            is responsible for making sure that both are compatible given the
            currently relevant filter configuration.
    """

    def __init__(
        self,
        dict_data=None,
        stream_data: Optional[bytes] = None,
        encoded_data: Optional[bytes] = None,
    ):
        super().__init__(dict_data)
        self._data = stream_data
        self._encoded_data = encoded_data

    def _filters(self) -> Iterator[Tuple[str, Optional[dict]]]:
        try:
            filter_arr = self['/Filter']
        except KeyError:
            return

        if isinstance(filter_arr, NameObject):
            # we have a single filter instance
            filter_arr = (filter_arr,)
        elif not isinstance(filter_arr, ArrayObject):
            raise PdfStreamError(
                '/Filter should be a name object or an array of names.'
            )

        try:
            decode_params = self['/DecodeParms']
            if isinstance(decode_params, DictionaryObject):
                decode_params = [decode_params]
            elif isinstance(decode_params, ArrayObject):
                decode_params = list(decode_params)
            else:
                decode_params = []
        except KeyError:
            decode_params = []
        # this should be zero, but let's be lenient
        lendiff = len(filter_arr) - len(decode_params)
        if lendiff > 0:
            decode_params += [NullObject()] * lendiff

        yield from zip(filter_arr, decode_params)

    def _stream_decoders(self):
        from . import filters

        for filter_type, params in self._filters():
            if params is None or isinstance(params, NullObject):
                params = {}
            yield filters.get_generic_decoder(filter_type), params

    @property
    def data(self) -> bytes:
        """
        Return the decoded stream data as bytes.
        If the stream hasn't been decoded yet, it will be decoded on-the-fly.

        :raises .misc.PdfStreamError:
            If the stream could not be decoded.
        """
        if self._data is None:
            data = self._encoded_data
            if data is None:
                raise PdfStreamError("No data available.")
            for decoder, decode_params in self._stream_decoders():
                data = decoder.decode(data, decode_params)
            self._data = bytes(data)
        return self._data

    @property
    def encoded_data(self) -> bytes:
        """
        Return the encoded stream data as bytes.
        If the stream hasn't been encoded yet, it will be encoded on-the-fly.

        :raises .misc.PdfStreamError:
            If the stream could not be encoded.
        """
        if self._encoded_data is None:
            data = self._data
            if data is None:
                raise PdfStreamError("No data available.")
            decoders = tuple(self._stream_decoders())
            for decoder, decode_params in reversed(decoders):
                data = decoder.encode(data, decode_params)
            self._encoded_data = data
        return self._encoded_data

    def __eq__(self, other):
        if isinstance(other, StreamObject):
            return super().__eq__(other) \
                and self.encoded_data == other.encoded_data
        return False

    __hash__ = None

    def write_to_stream(self, stream):
        data = self.encoded_data
        stream_dict = DictionaryObject(self)
        stream_dict['/Length'] = NumberObject(len(data))
        stream_dict.write_to_stream(stream)
        stream.write(b"\nstream\n")
        stream.write(data)
        stream.write(b"\nendstream")
