"""
Recursive-descent parser turning the token stream produced by
:class:`~.lexer.PdfLexer` into :class:`~.generic.PdfObject` instances.

Integers are ambiguous in PDF syntax: ``12 0 R`` is an indirect reference,
while ``12 0`` followed by anything else is just the integer ``12`` followed
by another object. The parser resolves this by reading up to two tokens
ahead and rewinding the stream when they don't complete a reference.
"""

import logging
from contextlib import contextmanager
from typing import Optional, Tuple

from . import generic
from .lexer import PdfLexer, Token, TokenType
from .misc import PdfParseError, PdfReadError, PdfStreamError
from .settings import DEFAULT_PARSER_SETTINGS, ParserSettings

__all__ = ['PdfParser']

logger = logging.getLogger(__name__)

_SCALAR_KEYWORDS = {
    'true': lambda: generic.BooleanObject(True),
    'false': lambda: generic.BooleanObject(False),
    'null': generic.NullObject,
}


class PdfParser:
    """
    Parser for direct and indirect PDF objects.

    :param stream:
        A readable and seekable binary stream.
    :param handler:
        The :class:`~.rw_common.PdfHandler` that indirect references
        created by this parser will resolve against.
    :param settings:
        Resource limits to apply.
    """

    def __init__(self, stream, handler=None,
                 settings: Optional[ParserSettings] = None):
        self.settings = settings or DEFAULT_PARSER_SETTINGS
        self.lexer = PdfLexer(stream, settings=self.settings)
        self.handler = handler
        self._depth = 0

    @property
    def stream(self):
        return self.lexer.stream

    def expect_keyword(self, keyword: str, msg: str) -> Token:
        token = self.lexer.next_token()
        if not token.is_keyword(keyword):
            raise PdfParseError(msg, pos=token.pos)
        return token

    def expect_integer(self, msg: str, *, non_negative=False) -> int:
        token = self.lexer.next_token()
        if token.token_type != TokenType.INTEGER \
                or (non_negative and token.value < 0):
            raise PdfParseError(msg, pos=token.pos)
        return token.value

    def read_object(self) -> generic.PdfObject:
        """
        Read a single direct object (or indirect reference).

        :raises PdfReadError:
            On any error; nothing is returned on failure.
        """
        lexer = self.lexer
        while True:
            token = lexer.next_token()
            token_type = token.token_type
            if token_type in (TokenType.VERSION_MARKER, TokenType.EOF_MARKER):
                continue
            break

        if token_type == TokenType.INTEGER:
            return self._read_integer_or_reference(token)
        elif token_type == TokenType.REAL:
            return generic.FloatObject(token.value)
        elif token_type == TokenType.NAME:
            return generic.NameObject(token.value)
        elif token_type == TokenType.STRING:
            return generic.ByteStringObject(token.value)
        elif token_type == TokenType.ARRAY_START:
            with self._nested(token):
                return self._read_array()
        elif token_type == TokenType.DICT_START:
            with self._nested(token):
                return self._read_dictionary(token)
        elif token_type == TokenType.KEYWORD:
            try:
                return _SCALAR_KEYWORDS[token.value]()
            except KeyError:
                raise PdfParseError(
                    f"Expected direct object, got '{token.value}' keyword",
                    pos=token.pos
                )
        elif token_type in (TokenType.PROC_START, TokenType.PROC_END):
            # only meaningful in PostScript calculator functions
            raise PdfParseError(
                "PostScript procedure braces are not supported",
                pos=token.pos
            )
        elif token_type == TokenType.END_OF_INPUT:
            raise PdfStreamError(
                "Unexpected end of input while reading object",
                pos=token.pos
            )
        else:
            raise PdfParseError(
                f"Unexpected '{token.value}' while reading object",
                pos=token.pos
            )

    @contextmanager
    def _nested(self, start: Token):
        limit = self.settings.max_nesting_depth
        if self._depth >= limit:
            raise PdfParseError(
                f"Arrays and dictionaries nested more than {limit} "
                f"levels deep",
                pos=start.pos
            )
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    def _read_integer_or_reference(self, first: Token) -> generic.PdfObject:
        if first.value < 0:
            return generic.NumberObject(first.value)
        lexer = self.lexer
        mark = lexer.tell()
        try:
            second = lexer.next_token()
            if second.token_type == TokenType.INTEGER and second.value >= 0:
                third = lexer.next_token()
                if third.is_keyword('R'):
                    return generic.IndirectObject(
                        first.value, second.value, self.handler
                    )
        except PdfReadError:
            # whatever follows will be reported when it is actually read
            pass
        lexer.seek(mark)
        return generic.NumberObject(first.value)

    def _read_array(self) -> generic.ArrayObject:
        lexer = self.lexer
        arr = generic.ArrayObject()
        while True:
            token = lexer.peek_token()
            if token.token_type == TokenType.ARRAY_END:
                lexer.next_token()
                return arr
            elif token.token_type == TokenType.END_OF_INPUT:
                raise PdfStreamError(
                    "Unexpected end of input in array", pos=token.pos
                )
            arr.append(self.read_object())

    def _read_dictionary(self, start: Token) -> generic.DictionaryObject:
        lexer = self.lexer
        data = generic.DictionaryObject()
        while True:
            token = lexer.next_token()
            if token.token_type == TokenType.DICT_END:
                return data
            elif token.token_type == TokenType.END_OF_INPUT:
                raise PdfStreamError(
                    "Unexpected end of input in dictionary", pos=start.pos
                )
            elif token.token_type != TokenType.NAME:
                raise PdfParseError(
                    "Dictionary key must be a name", pos=token.pos
                )
            key = generic.NameObject(token.value)
            if lexer.peek_token().token_type == TokenType.DICT_END:
                raise PdfParseError(
                    f"Premature end of dictionary after key {key}",
                    pos=token.pos
                )
            value = self.read_object()
            if key in data:
                logger.warning(
                    f"Duplicate dictionary key {key} at byte {token.pos}; "
                    f"using the last value"
                )
            data[key] = value

    def read_object_header(self) -> Tuple[int, int]:
        """
        Read an ``<id> <gen> obj`` header.

        :return:
            The object number and generation number.
        """
        idnum = self.expect_integer(
            "Expected object number in object header", non_negative=True
        )
        generation = self.expect_integer(
            "Expected generation number in object header", non_negative=True
        )
        self.expect_keyword('obj', "Expected 'obj' keyword")
        return idnum, generation

    def read_indirect_object(self) -> Tuple[int, int, generic.PdfObject]:
        """
        Read a complete indirect object definition, starting at the current
        position: ``<id> <gen> obj <object> [stream ... endstream] endobj``.

        :return:
            A triple of the object number, the generation number and the
            object itself.
        """
        idnum, generation = self.read_object_header()
        obj = self.read_object()
        token = self.lexer.peek_token()
        if token.is_keyword('stream'):
            self.lexer.next_token()
            obj = self._read_stream_body(obj, token)
        self.expect_keyword('endobj', "Expected 'endobj' keyword")
        return idnum, generation, obj

    def _read_stream_body(self, obj, token: Token) -> generic.StreamObject:
        if not isinstance(obj, generic.DictionaryObject):
            raise PdfParseError("Stream with no dictionary", pos=token.pos)
        try:
            length = obj.raw_get('/Length')
        except KeyError:
            raise PdfParseError(
                "Stream dictionary must contain /Length key", pos=token.pos
            )
        # the length has to be known before the data can be read, so an
        # indirect reference is not acceptable here
        if not isinstance(length, generic.NumberObject) or length < 0:
            raise PdfParseError(
                "Stream length must be non-negative integer", pos=token.pos
            )
        max_len = self.settings.max_stream_length
        if length > max_len:
            raise PdfParseError(
                f"Stream length {length} exceeds the maximum of {max_len}",
                pos=token.pos
            )

        stream = self.stream
        eol = stream.read(1)
        if eol == b'\r':
            eol += stream.read(1)
        if eol not in (b'\n', b'\r\n'):
            raise PdfParseError(
                "Expected newline after 'stream' keyword",
                pos=stream.tell() - len(eol)
            )
        data_start = stream.tell()
        data = stream.read(length)
        if len(data) != length:
            raise PdfParseError(
                "Unexpected end of input inside stream data", pos=data_start
            )

        self.lexer.skip_whitespace()
        end_pos = stream.tell()
        if stream.read(9) != b'endstream':
            raise PdfParseError(
                "Expected 'endstream' keyword after stream data", pos=end_pos
            )
        return generic.StreamObject(obj, encoded_data=data)
