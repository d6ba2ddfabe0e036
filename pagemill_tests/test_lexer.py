from io import BytesIO

import pytest

from pagemill.pdf_utils.lexer import PdfLexer, TokenType
from pagemill.pdf_utils.misc import PdfLexError, PdfStreamError
from pagemill.pdf_utils.settings import ParserSettings


def _tokens(data: bytes, settings=None):
    lexer = PdfLexer(BytesIO(data), settings=settings)
    result = []
    while True:
        token = lexer.next_token()
        if token.token_type == TokenType.END_OF_INPUT:
            return result
        result.append((token.token_type, token.value))


def _single(data: bytes):
    tokens = _tokens(data)
    assert len(tokens) == 1
    return tokens[0]


@pytest.mark.parametrize('data,expected', [
    (b'12', (TokenType.INTEGER, 12)),
    (b'-3', (TokenType.INTEGER, -3)),
    (b'+4', (TokenType.INTEGER, 4)),
    (b'007', (TokenType.INTEGER, 7)),
    (b'.5', (TokenType.REAL, '.5')),
    (b'-.002', (TokenType.REAL, '-.002')),
    (b'3.', (TokenType.REAL, '3.')),
    (b'123.456', (TokenType.REAL, '123.456')),
])
def test_numbers(data, expected):
    assert _single(data) == expected


@pytest.mark.parametrize('data', [b'1.2.3', b'..1'])
def test_two_periods(data):
    with pytest.raises(PdfLexError, match='Two periods'):
        _tokens(data)


@pytest.mark.parametrize('data', [b'+', b'-', b'.', b'-.'])
def test_malformed_number(data):
    with pytest.raises(PdfLexError, match='Malformed number'):
        _tokens(data)


def test_number_followed_by_delimiter():
    assert _tokens(b'12/A[3]') == [
        (TokenType.INTEGER, 12), (TokenType.NAME, '/A'),
        (TokenType.ARRAY_START, '['), (TokenType.INTEGER, 3),
        (TokenType.ARRAY_END, ']'),
    ]


@pytest.mark.parametrize('data,expected', [
    (b'(abc)', b'abc'),
    (b'()', b''),
    (b'(a(b)c)', b'a(b)c'),
    (b'(a((b))c)', b'a((b))c'),
    (rb'(\n\r\t\b\f\(\)\\)', b'\n\r\t\b\f()\\'),
    (rb'(\101\0611\4)', b'A11\x04'),
    (rb'(\777)', b'\xff'),
    (rb'(\1234)', b'S4'),
    (b'(ab\\\ncd)', b'abcd'),
    (b'(ab\\\r\ncd)', b'abcd'),
    (b'(ab\\\rcd)', b'abcd'),
    (b'(a\nb)', b'a\nb'),
    (rb'(\(unbalanced)', b'(unbalanced'),
])
def test_literal_strings(data, expected):
    assert _single(data) == (TokenType.STRING, expected)


def test_invalid_escape():
    with pytest.raises(PdfLexError, match='Invalid escape sequence') as e:
        _tokens(rb'(ab\q)')
    assert e.value.pos == 3


@pytest.mark.parametrize('data', [b'(abc', b'(a(b)', b'(abc\\'])
def test_unterminated_string(data):
    with pytest.raises(PdfLexError, match='EOF reached in string') as e:
        _tokens(data)
    assert e.value.pos == 0


@pytest.mark.parametrize('data,expected', [
    (b'<48656C6C6F>', b'Hello'),
    (b'<48 65 6c\n6C 6F>', b'Hello'),
    (b'<414>', b'A@'),
    (b'<>', b''),
])
def test_hex_strings(data, expected):
    assert _single(data) == (TokenType.STRING, expected)


def test_hex_string_bad_char():
    with pytest.raises(PdfLexError, match='Non-hexadecimal') as e:
        _tokens(b'<41G2>')
    assert e.value.pos == 3


def test_hex_string_eof():
    with pytest.raises(PdfStreamError, match='end of input'):
        _tokens(b'<4142')


@pytest.mark.parametrize('data,expected', [
    (b'/Type', '/Type'),
    (b'/', '/'),
    (b'/A#20B', '/A B'),
    (b'/Hash#23Tag', '/Hash#Tag'),
    (b'/Caf#C3#A9', '/Caf\xe9'),
    (b'/Latin#E9', '/Latin\xe9'),
    (b'/a;b', '/a;b'),
])
def test_names(data, expected):
    assert _single(data) == (TokenType.NAME, expected)


def test_names_are_delimited():
    assert _tokens(b'/A/B(c)') == [
        (TokenType.NAME, '/A'), (TokenType.NAME, '/B'),
        (TokenType.STRING, b'c'),
    ]


@pytest.mark.parametrize('data', [b'/A#2', b'/A#ZZ', b'/A#'])
def test_bad_name_escape(data):
    with pytest.raises(PdfLexError, match='Invalid hex escape'):
        _tokens(data)


def test_keywords():
    data = b'true false null obj endobj stream endstream xref startxref ' \
           b'trailer R'
    tokens = _tokens(data)
    assert all(t == TokenType.KEYWORD for t, _ in tokens)
    assert [v for _, v in tokens] == data.decode('ascii').split()


@pytest.mark.parametrize('data', [b'foo', b'True', b'nul', b'Rx', b'\xff'])
def test_unrecognized_keyword(data):
    with pytest.raises(PdfLexError, match='Unrecognized keyword'):
        _tokens(data)


def test_delimiters():
    assert [t for t, _ in _tokens(b'[ ] << >> { } [<<>>]')] == [
        TokenType.ARRAY_START, TokenType.ARRAY_END,
        TokenType.DICT_START, TokenType.DICT_END,
        TokenType.PROC_START, TokenType.PROC_END,
        TokenType.ARRAY_START, TokenType.DICT_START, TokenType.DICT_END,
        TokenType.ARRAY_END,
    ]


def test_unmatched_angle_bracket():
    with pytest.raises(PdfLexError, match='Unmatched closing angle') as e:
        _tokens(b'12 > 3')
    assert e.value.pos == 3


def test_unmatched_parenthesis():
    with pytest.raises(PdfLexError, match='Unmatched closing paren'):
        _tokens(b'12 )')


def test_comments_skipped():
    assert _tokens(b'% a comment\n12 %another one\r13%trailing') == [
        (TokenType.INTEGER, 12), (TokenType.INTEGER, 13),
    ]


def test_whitespace_variants():
    assert _tokens(b'\x001\t2\n3\x0c4\r5 6') == [
        (TokenType.INTEGER, i) for i in range(1, 7)
    ]


@pytest.mark.parametrize('data,expected', [
    (b'%PDF-1.7\n', [(TokenType.VERSION_MARKER, (1, 7))]),
    (b'%PDF-2.0', [(TokenType.VERSION_MARKER, (2, 0))]),
    (b'%PDF-1.4 1', [
        (TokenType.VERSION_MARKER, (1, 4)), (TokenType.INTEGER, 1)
    ]),
    # not of the exact shape, so these are ordinary comments
    (b'%PDF-1.8\n', []),
    (b'%PDF-3.0\n', []),
    (b'%PDF-1.7x\n', []),
    (b'%PDF-1\n', []),
    (b'%%EOF', [(TokenType.EOF_MARKER, '%%EOF')]),
    (b'%%EOF\n1', [(TokenType.EOF_MARKER, '%%EOF'), (TokenType.INTEGER, 1)]),
    (b'%%comment\n', []),
])
def test_special_comments(data, expected):
    assert _tokens(data) == expected


def test_peek_does_not_advance():
    lexer = PdfLexer(BytesIO(b'  12 /A'))
    peeked = lexer.peek_token()
    assert lexer.tell() == 0
    token = lexer.next_token()
    assert token == peeked
    assert token.pos == 2
    assert lexer.next_token().value == '/A'


def test_peek_restores_position_on_error():
    lexer = PdfLexer(BytesIO(b'foo'))
    with pytest.raises(PdfLexError):
        lexer.peek_token()
    assert lexer.tell() == 0


def test_read_byte():
    lexer = PdfLexer(BytesIO(b'12  n\nf'))
    lexer.next_token()
    assert lexer.read_byte() == b'n'
    assert lexer.read_byte() == b'f'
    assert lexer.read_byte() == b''


def test_end_of_input_is_repeated():
    lexer = PdfLexer(BytesIO(b'1 '))
    lexer.next_token()
    assert lexer.next_token().token_type == TokenType.END_OF_INPUT
    assert lexer.next_token().token_type == TokenType.END_OF_INPUT


@pytest.mark.parametrize('too_long,just_right', [
    (b'(abcde)', b'(abcd)'),
    (b'<6162636465>', b'<61626364>'),
])
def test_string_length_limit(too_long, just_right):
    settings = ParserSettings(max_string_length=4)
    with pytest.raises(PdfLexError, match='maximal length'):
        _tokens(too_long, settings=settings)
    assert _tokens(just_right, settings=settings) == [
        (TokenType.STRING, b'abcd')
    ]


def test_name_length_limit():
    settings = ParserSettings(max_name_length=3)
    assert _tokens(b'/ABC', settings=settings) == [(TokenType.NAME, '/ABC')]
    with pytest.raises(PdfLexError, match='maximal length'):
        _tokens(b'/ABCD', settings=settings)
