"""
Stream filters.

Only the general-purpose filters that show up in document structure are
supported: ``/FlateDecode`` (without predictors), ``/ASCIIHexDecode`` and
``/ASCII85Decode``. Image-specific filters and ``/LZWDecode`` are not.
"""
import base64
import binascii
import re
import zlib

from .misc import PdfStreamError, Singleton

__all__ = [
    'Decoder',
    'ASCII85Decode',
    'ASCIIHexDecode',
    'FlateDecode',
    'get_generic_decoder',
]


class Decoder:
    """
    General filter/decoder interface.
    """

    def decode(self, data: bytes, decode_params: dict) -> bytes:
        """
        Decode a stream.

        :param data:
            Data to decode.
        :param decode_params:
            Decoder parameters, sourced from the ``/DecodeParms`` entry
            associated with this filter.
        :return:
            Decoded data.
        :raises PdfStreamError:
            If the data is not valid input for this filter.
        """
        raise NotImplementedError

    def encode(self, data: bytes, decode_params: dict) -> bytes:
        """
        Encode a stream.

        :param data:
            Data to encode.
        :param decode_params:
            Encoder parameters, sourced from the ``/DecodeParms`` entry
            associated with this filter.
        :return:
            Encoded data.
        """
        raise NotImplementedError


class FlateDecode(Decoder, metaclass=Singleton):
    """
    Implementation of the ``/FlateDecode`` filter.
    """

    def decode(self, data: bytes, decode_params):
        predictor = 1
        if decode_params:
            try:
                predictor = decode_params.get('/Predictor', 1)
            except AttributeError:
                pass
        if predictor != 1:
            raise NotImplementedError(
                f"Flate predictor {predictor} is not supported"
            )
        try:
            return zlib.decompress(data)
        except zlib.error as e:
            raise PdfStreamError(f"Could not inflate stream data: {e}") from e

    def encode(self, data, decode_params=None):
        return zlib.compress(data)


WS_REGEX = re.compile(b'\\s+')
ASCII_HEX_EOD_MARKER = b'>'
ASCII_85_EOD_MARKER = b'~>'


class ASCIIHexDecode(Decoder, metaclass=Singleton):
    """
    Hexadecimal encoding, terminated by ``>``.
    A trailing odd digit is treated as if it were followed by ``0``.
    """

    def encode(self, data: bytes, decode_params=None) -> bytes:
        return binascii.hexlify(data) + ASCII_HEX_EOD_MARKER

    def decode(self, data, decode_params=None):
        data = WS_REGEX.sub(b'', data.split(ASCII_HEX_EOD_MARKER, 1)[0])
        if len(data) % 2:
            data += b'0'
        try:
            return binascii.unhexlify(data)
        except binascii.Error as e:
            raise PdfStreamError(f"Invalid ASCIIHex data: {e}") from e


class ASCII85Decode(Decoder, metaclass=Singleton):
    """
    The base 85 encoding scheme specified in ISO 32000-1, terminated by
    ``~>``.
    """

    def encode(self, data: bytes, decode_params=None) -> bytes:
        return base64.a85encode(data) + ASCII_85_EOD_MARKER

    def decode(self, data, decode_params=None):
        data = WS_REGEX.sub(b'', data.split(ASCII_85_EOD_MARKER, 1)[0])
        try:
            return base64.a85decode(data)
        except ValueError as e:
            raise PdfStreamError(f"Invalid ASCII85 data: {e}") from e


DECODERS = {
    '/FlateDecode': FlateDecode,
    '/Fl': FlateDecode,
    '/ASCIIHexDecode': ASCIIHexDecode,
    '/AHx': ASCIIHexDecode,
    '/ASCII85Decode': ASCII85Decode,
    '/A85': ASCII85Decode,
}


def get_generic_decoder(name: str) -> Decoder:
    """
    Instantiate a stream filter decoder by (PDF) name.
    Both the full names and the abbreviations (``/Fl``, ``/AHx``, ``/A85``)
    are recognised.

    :param name:
        Name of the decoder to instantiate.
    :raises NotImplementedError:
        For unsupported filters.
    """

    try:
        cls = DECODERS[name]
    except KeyError:
        raise NotImplementedError(f"Stream filter '{name}' is not supported.")
    return cls()
