"""
Utility functions and the exception hierarchy shared by the PDF parsing code.

Generally, all of these constitute internal API, except for the exception
classes.
"""

from typing import Callable, Optional

__all__ = [
    'PdfError', 'PdfReadError', 'PdfLexError', 'PdfParseError',
    'PdfStreamError', 'PdfWriteError', 'IndirectObjectExpected',
    'PDF_WHITESPACE', 'PDF_DELIMITERS', 'is_regular_character',
    'get_and_apply', 'Singleton', 'DEFAULT_CHUNK_SIZE',
]

DEFAULT_CHUNK_SIZE = 4096
"""
Default chunk size for stream I/O.
"""

PDF_WHITESPACE = b' \n\r\t\f\x00'
PDF_DELIMITERS = b'()<>[]{}/%'


def is_regular_character(byte_value: int):
    return byte_value not in PDF_WHITESPACE and byte_value not in PDF_DELIMITERS


def get_and_apply(dictionary, key, function: Callable, *, default=None):
    try:
        value = dictionary[key]
    except KeyError:
        return default
    return function(value)


class PdfError(Exception):
    """
    Base class for all errors raised while processing PDF data.

    :param msg:
        Human-readable error message.
    :param pos:
        Byte offset at which the problem was detected, if known.
    """

    def __init__(self, msg: str, *args, pos: Optional[int] = None):
        self.msg = msg
        self.pos = pos
        if pos is not None:
            msg = f"{msg} (at byte {pos})"
        super().__init__(msg, *args)


class PdfReadError(PdfError):
    pass


class PdfLexError(PdfReadError):
    """Malformed token in the input."""
    pass


class PdfParseError(PdfReadError):
    """Well-formed token in a position where the grammar does not allow it."""
    pass


class PdfStreamError(PdfReadError):
    """
    Failure of the underlying byte source, including input that ends in the
    middle of a token or structure.
    """
    pass


class IndirectObjectExpected(PdfReadError):
    def __init__(self, msg: Optional[str] = None):
        super().__init__(msg or "indirect object expected")


class PdfWriteError(PdfError):
    pass


class Singleton(type):

    def __new__(mcs, name, bases, dct):
        cls = type.__new__(mcs, name, bases, dct)
        instance = type.__call__(cls)
        cls.__new__ = lambda _: instance
        return cls
