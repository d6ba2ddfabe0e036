"""
Tokenizer for PDF syntax.

The lexer reads directly from a seekable binary stream. Lookahead is
implemented by saving and restoring the stream position, so a token that was
peeked at or speculatively consumed can always be read again.
"""

import binascii
import enum
import os
from dataclasses import dataclass
from typing import Any, Optional

from .misc import (
    PDF_WHITESPACE,
    PdfLexError,
    PdfStreamError,
    is_regular_character,
)
from .settings import DEFAULT_PARSER_SETTINGS, ParserSettings

__all__ = ['TokenType', 'Token', 'PdfLexer', 'KEYWORDS']


@enum.unique
class TokenType(enum.Enum):
    INTEGER = enum.auto()
    REAL = enum.auto()
    NAME = enum.auto()
    STRING = enum.auto()
    KEYWORD = enum.auto()
    ARRAY_START = enum.auto()
    ARRAY_END = enum.auto()
    DICT_START = enum.auto()
    DICT_END = enum.auto()
    PROC_START = enum.auto()
    PROC_END = enum.auto()

    VERSION_MARKER = enum.auto()
    """
    A ``%PDF-M.N`` comment. The token value is a ``(major, minor)`` tuple.
    """

    EOF_MARKER = enum.auto()
    """
    A ``%%EOF`` comment.
    """

    END_OF_INPUT = enum.auto()
    """
    The underlying stream has no more data.
    """


@dataclass(frozen=True)
class Token:
    token_type: TokenType
    value: Any
    pos: int
    """
    Offset of the first byte of the token in the underlying stream.
    """

    def is_keyword(self, keyword: str) -> bool:
        return self.token_type == TokenType.KEYWORD and self.value == keyword


KEYWORDS = frozenset((
    'true', 'false', 'null', 'obj', 'endobj', 'stream', 'endstream',
    'xref', 'startxref', 'trailer', 'R',
))

SINGLE_CHAR_TOKENS = {
    b'[': TokenType.ARRAY_START,
    b']': TokenType.ARRAY_END,
    b'{': TokenType.PROC_START,
    b'}': TokenType.PROC_END,
}

STRING_ESCAPES = {
    b'n': b'\n', b'r': b'\r', b't': b'\t', b'b': b'\b', b'f': b'\f',
    b'(': b'(', b')': b')', b'\\': b'\\',
}

OCTAL_DIGITS = b'01234567'
HEX_DIGITS = b'0123456789abcdefABCDEF'
NUMBER_START = b'+-.0123456789'
NUMBER_BODY = b'.0123456789'


def _hex_value(digit: int) -> int:
    return int(chr(digit), 16)


class PdfLexer:
    """
    Turn a binary stream into a sequence of :class:`.Token` objects.

    :param stream:
        A readable and seekable binary stream.
    :param settings:
        Size limits to enforce on strings and names.
    """

    def __init__(self, stream, settings: Optional[ParserSettings] = None):
        self.stream = stream
        self.settings = settings or DEFAULT_PARSER_SETTINGS

    def tell(self) -> int:
        return self.stream.tell()

    def seek(self, pos: int):
        self.stream.seek(pos)

    def peek_token(self) -> Token:
        """
        Read the next token without advancing the stream position.
        """
        pos = self.stream.tell()
        try:
            return self.next_token()
        finally:
            self.stream.seek(pos)

    def skip_whitespace(self):
        stream = self.stream
        while True:
            c = stream.read(1)
            if not c:
                return
            if c not in PDF_WHITESPACE:
                stream.seek(-1, os.SEEK_CUR)
                return

    def read_byte(self) -> bytes:
        """
        Skip whitespace and read a single raw byte, bypassing tokenisation.
        Returns an empty byte string at the end of the input.
        """
        self.skip_whitespace()
        return self.stream.read(1)

    def next_token(self) -> Token:
        """
        Read one token, skipping any whitespace and ordinary comments in front
        of it.

        :raises PdfLexError:
            If the input does not form a valid token.
        :raises PdfStreamError:
            If the input ends in the middle of a token.
        """
        stream = self.stream
        while True:
            self.skip_whitespace()
            pos = stream.tell()
            c = stream.read(1)
            if not c:
                return Token(TokenType.END_OF_INPUT, None, pos)
            if c == b'%':
                token = self._read_comment(pos)
                if token is None:
                    continue
                return token
            return self._read_token(c, pos)

    def _read_token(self, c: bytes, pos: int) -> Token:
        stream = self.stream
        try:
            return Token(SINGLE_CHAR_TOKENS[c], c.decode('ascii'), pos)
        except KeyError:
            pass
        if c == b'/':
            return Token(TokenType.NAME, self._read_name(pos), pos)
        elif c == b'(':
            return Token(TokenType.STRING, self._read_literal_string(pos), pos)
        elif c == b'<':
            nxt = stream.read(1)
            if nxt == b'<':
                return Token(TokenType.DICT_START, '<<', pos)
            if nxt:
                stream.seek(-1, os.SEEK_CUR)
            return Token(TokenType.STRING, self._read_hex_string(pos), pos)
        elif c == b'>':
            if stream.read(1) == b'>':
                return Token(TokenType.DICT_END, '>>', pos)
            raise PdfLexError("Unmatched closing angle bracket", pos=pos)
        elif c == b')':
            raise PdfLexError("Unmatched closing parenthesis", pos=pos)
        elif c in NUMBER_START:
            return self._read_number(c, pos)
        else:
            word = c + self._read_regular_run()
            try:
                keyword = word.decode('ascii')
            except UnicodeDecodeError:
                keyword = None
            if keyword not in KEYWORDS:
                raise PdfLexError(
                    f"Unrecognized keyword {word!r}", pos=pos
                )
            return Token(TokenType.KEYWORD, keyword, pos)

    def _read_regular_run(self) -> bytes:
        stream = self.stream
        result = bytearray()
        while True:
            c = stream.read(1)
            if not c:
                break
            if not is_regular_character(c[0]):
                stream.seek(-1, os.SEEK_CUR)
                break
            result += c
        return bytes(result)

    def _read_comment(self, pos: int) -> Optional[Token]:
        stream = self.stream
        head = stream.read(8)
        stream.seek(-len(head), os.SEEK_CUR)
        if len(head) >= 7 and head[:4] == b'PDF-' \
                and head[4] in b'12' and head[5:6] == b'.' \
                and head[6] in OCTAL_DIGITS \
                and (len(head) == 7 or not is_regular_character(head[7])):
            stream.read(7)
            return Token(
                TokenType.VERSION_MARKER,
                (head[4] - 0x30, head[6] - 0x30), pos
            )
        if head[:4] == b'%EOF':
            stream.read(4)
            return Token(TokenType.EOF_MARKER, '%%EOF', pos)
        while True:
            c = stream.read(1)
            if not c or c in b'\r\n':
                return None

    def _read_name(self, pos: int) -> str:
        raw = self._read_regular_run()
        max_len = self.settings.max_name_length
        result = bytearray()
        ix = 0
        while ix < len(raw):
            b = raw[ix]
            if b == 0x23:  # '#' is the 2-digit escape prefix
                digits = raw[ix + 1:ix + 3]
                if len(digits) != 2 or \
                        any(d not in HEX_DIGITS for d in digits):
                    raise PdfLexError(
                        f"Invalid hex escape in name /{raw!r}", pos=pos
                    )
                result.append(_hex_value(digits[0]) * 16 + _hex_value(digits[1]))
                ix += 3
            else:
                result.append(b)
                ix += 1
        if len(result) > max_len:
            raise PdfLexError(
                f"Name exceeds maximal length of {max_len} bytes", pos=pos
            )
        # Names are just byte sequences, but in practice they're almost always
        # ASCII, so we try UTF-8 first
        try:
            return '/' + result.decode('utf8')
        except UnicodeDecodeError:
            return '/' + result.decode('latin1')

    def _read_literal_string(self, pos: int) -> bytes:
        stream = self.stream
        result = bytearray()
        depth = 1
        while True:
            c = stream.read(1)
            if not c:
                raise PdfLexError("EOF reached in string", pos=pos)
            if c == b'(':
                depth += 1
            elif c == b')':
                depth -= 1
                if not depth:
                    break
            elif c == b'\\':
                c = self._read_string_escape(pos)
            result += c
            if len(result) > self.settings.max_string_length:
                raise PdfLexError(
                    f"String exceeds maximal length of "
                    f"{self.settings.max_string_length} bytes", pos=pos
                )
        return bytes(result)

    def _read_string_escape(self, pos: int) -> bytes:
        stream = self.stream
        esc_pos = stream.tell() - 1
        c = stream.read(1)
        if not c:
            raise PdfLexError("EOF reached in string", pos=pos)
        try:
            return STRING_ESCAPES[c]
        except KeyError:
            pass
        if c in OCTAL_DIGITS:
            digits = c
            for _ in range(2):
                nxt = stream.read(1)
                if not nxt or nxt not in OCTAL_DIGITS:
                    if nxt:
                        stream.seek(-1, os.SEEK_CUR)
                    break
                digits += nxt
            return bytes((int(digits, 8) % 256,))
        if c == b'\r':
            # escaped line break: swallow it along with the LF of a CRLF
            if stream.read(1) != b'\n':
                stream.seek(-1, os.SEEK_CUR)
            return b''
        if c == b'\n':
            return b''
        raise PdfLexError(f"Invalid escape sequence \\{c!r}", pos=esc_pos)

    def _read_hex_string(self, pos: int) -> bytes:
        stream = self.stream
        digits = bytearray()
        while True:
            c = stream.read(1)
            if not c:
                raise PdfStreamError(
                    "Unexpected end of input in hex string", pos=pos
                )
            if c == b'>':
                break
            if c in PDF_WHITESPACE:
                continue
            if c not in HEX_DIGITS:
                raise PdfLexError(
                    f"Non-hexadecimal character {c!r} in hex string",
                    pos=stream.tell() - 1
                )
            digits += c
            if len(digits) > 2 * self.settings.max_string_length:
                raise PdfLexError(
                    f"String exceeds maximal length of "
                    f"{self.settings.max_string_length} bytes", pos=pos
                )
        if len(digits) % 2:
            digits += b'0'
        return binascii.unhexlify(digits)

    def _read_number(self, c: bytes, pos: int) -> Token:
        stream = self.stream
        text = bytearray(c)
        periods = 1 if c == b'.' else 0
        while True:
            c = stream.read(1)
            if not c:
                break
            if c not in NUMBER_BODY:
                stream.seek(-1, os.SEEK_CUR)
                break
            if c == b'.':
                periods += 1
                if periods > 1:
                    raise PdfLexError("Two periods in one number", pos=pos)
            text += c
        if not any(0x30 <= d <= 0x39 for d in text):
            raise PdfLexError(f"Malformed number {bytes(text)!r}", pos=pos)
        as_str = text.decode('ascii')
        if periods:
            return Token(TokenType.REAL, as_str, pos)
        return Token(TokenType.INTEGER, int(as_str), pos)
