"""
Compact textual specification of page labelling ranges.

A specification is a sequence of ranges separated by one or more
underscores. Each range consists of

* the index of the first page in the range (optional for the first range,
  which starts at page ``0`` by default),
* an optional prefix, written between slashes (``/A-/``),
* an optional numbering style: ``D`` (decimal), ``R``/``r`` (upper/lower
  case roman), ``A``/``a`` (upper/lower case letters),
* an optional starting value for the numbering.

The prefix may appear before or after the numbering style. A range that
consists of a prefix only labels its pages with just that prefix; any other
range is numbered in decimal unless another style is given.

For example, ``/C1/_2r8_4D_6D/A-/2`` labels the first two pages ``C1``,
pages 2 and 3 ``viii`` and ``ix``, pages 4 and 5 ``1`` and ``2``, and the
remaining pages ``A-2``, ``A-3``, and so on.
"""

import enum
from dataclasses import dataclass
from typing import Any, List, Optional

from . import generic
from .misc import PdfError

__all__ = [
    'PageLabelError', 'PageLabelRange', 'NUMBERING_STYLES',
    'MAX_PREFIX_LENGTH', 'parse_page_label_spec', 'page_labels_to_pdf',
    'build_page_labels',
]

NUMBERING_STYLES = frozenset('AaDRr')
MAX_PREFIX_LENGTH = 30


class PageLabelError(PdfError):
    """
    Error in a page label specification. The position is an offset into
    the specification string.
    """

    def __init__(self, msg: str, *args, pos: Optional[int] = None):
        super().__init__(msg, *args)
        self.pos = pos
        if pos is not None:
            self.args = (f"{msg} (at position {pos})",) + args


@dataclass(frozen=True)
class PageLabelRange:
    page_index: int
    """
    Zero-based index of the first page in the range.
    """

    prefix: Optional[str] = None

    style: Optional[str] = None
    """
    Numbering style letter, or ``None`` for a range that only sets a prefix.
    """

    start: Optional[int] = None
    """
    Value of the numbering for the first page in the range, if it was
    given and nonzero.
    """


class _TokenType(enum.Enum):
    PREFIX = enum.auto()
    NUMBER = enum.auto()
    NUMTYPE = enum.auto()
    UNDERSCORE = enum.auto()
    END = enum.auto()


@dataclass(frozen=True)
class _Token:
    token_type: _TokenType
    value: Any
    pos: int


def _tokenize(spec: str) -> List[_Token]:
    tokens = []
    ix = 0
    while ix < len(spec):
        c = spec[ix]
        start = ix
        if c == '/':
            end = spec.find('/', ix + 1)
            if end == -1:
                raise PageLabelError("Unterminated prefix", pos=start)
            prefix = spec[ix + 1:end]
            if not prefix:
                raise PageLabelError("Empty prefix", pos=start)
            if len(prefix) > MAX_PREFIX_LENGTH:
                raise PageLabelError(
                    f"Prefix longer than {MAX_PREFIX_LENGTH} characters",
                    pos=start
                )
            for offset, char in enumerate(prefix, start=ix + 1):
                if not 0x21 <= ord(char) <= 0x7e:
                    raise PageLabelError(
                        f"Non-graphic character {char!r} in prefix",
                        pos=offset
                    )
            tokens.append(_Token(_TokenType.PREFIX, prefix, start))
            ix = end + 1
        elif c.isascii() and c.isdigit():
            while ix < len(spec) and spec[ix].isascii() \
                    and spec[ix].isdigit():
                ix += 1
            tokens.append(
                _Token(_TokenType.NUMBER, int(spec[start:ix]), start)
            )
        elif c == '_':
            while ix < len(spec) and spec[ix] == '_':
                ix += 1
            tokens.append(_Token(_TokenType.UNDERSCORE, None, start))
        elif c in NUMBERING_STYLES:
            tokens.append(_Token(_TokenType.NUMTYPE, c, start))
            ix += 1
        else:
            raise PageLabelError(f"Unexpected character {c!r}", pos=start)
    tokens.append(_Token(_TokenType.END, None, len(spec)))
    return tokens


class _SpecParser:

    def __init__(self, tokens: List[_Token]):
        self.tokens = tokens
        self.ix = 0

    def peek(self) -> _Token:
        return self.tokens[self.ix]

    def accept(self, token_type: _TokenType) -> Optional[_Token]:
        token = self.tokens[self.ix]
        if token.token_type != token_type:
            return None
        self.ix += 1
        return token

    def parse(self) -> List[PageLabelRange]:
        ranges = []
        while True:
            ranges.append(self.parse_range(first=not ranges))
            token = self.peek()
            if self.accept(_TokenType.END):
                return ranges
            if not self.accept(_TokenType.UNDERSCORE):
                raise PageLabelError(
                    "Expected '_' or end of specification", pos=token.pos
                )

    def parse_range(self, first: bool) -> PageLabelRange:
        range_start = self.peek()
        index_token = self.accept(_TokenType.NUMBER)
        if index_token is None and not first:
            raise PageLabelError(
                "Expected page index at start of range", pos=range_start.pos
            )
        page_index = index_token.value if index_token is not None else 0

        prefix_token = self.accept(_TokenType.PREFIX)
        prefix = prefix_token.value if prefix_token is not None else None
        if prefix is not None and self.peek().token_type in \
                (_TokenType.UNDERSCORE, _TokenType.END):
            return PageLabelRange(page_index=page_index, prefix=prefix)

        style_token = self.accept(_TokenType.NUMTYPE)
        if prefix is None:
            prefix_token = self.accept(_TokenType.PREFIX)
            prefix = prefix_token.value if prefix_token is not None else None
        start_token = self.accept(_TokenType.NUMBER)

        if index_token is None and self.ix == 0:
            raise PageLabelError("Empty page range", pos=range_start.pos)
        start = start_token.value if start_token is not None else None
        return PageLabelRange(
            page_index=page_index, prefix=prefix,
            style=style_token.value if style_token is not None else 'D',
            start=start or None
        )


def parse_page_label_spec(spec: str) -> List[PageLabelRange]:
    """
    Parse a page label specification.

    :param spec:
        The specification string.
    :return:
        The list of ranges, in order.
    :raises PageLabelError:
        If the specification is malformed, or the page indices are not
        strictly increasing.
    """
    if not spec:
        raise PageLabelError("Empty page label specification", pos=0)
    ranges = _SpecParser(_tokenize(spec)).parse()
    for prev, cur in zip(ranges, ranges[1:]):
        if cur.page_index <= prev.page_index:
            raise PageLabelError(
                f"Page index {cur.page_index} does not follow "
                f"{prev.page_index}; indices must be strictly increasing"
            )
    return ranges


def page_labels_to_pdf(ranges: List[PageLabelRange]) \
        -> generic.DictionaryObject:
    """
    Turn a list of page label ranges into a number tree suitable for the
    ``/PageLabels`` entry of the document catalog.
    """
    nums = generic.ArrayObject()
    for label_range in ranges:
        label_dict = generic.DictionaryObject()
        if label_range.style is not None:
            label_dict['/S'] = generic.pdf_name(label_range.style)
        if label_range.prefix is not None:
            label_dict['/P'] = generic.pdf_string(label_range.prefix)
        if label_range.start:
            label_dict['/St'] = generic.NumberObject(label_range.start)
        nums.append(generic.NumberObject(label_range.page_index))
        nums.append(label_dict)
    return generic.DictionaryObject({'/Nums': nums})


def build_page_labels(spec: str) -> generic.DictionaryObject:
    """
    Parse a page label specification into a ``/PageLabels`` number tree.
    """
    return page_labels_to_pdf(parse_page_label_spec(spec))
