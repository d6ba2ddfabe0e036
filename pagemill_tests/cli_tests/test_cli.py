import pytest

from pagemill import __version__
from pagemill.cli import cli_root
from pagemill.pdf_utils.xref import XRefType
from pagemill_tests.cli_tests.conftest import (
    INPUT_PATH,
    OUTPUT_PATH,
    _read_output,
    _write_config,
    _write_input,
)
from pagemill_tests.samples import (
    MINIMAL,
    MINIMAL_CONTENT,
    MINIMAL_OBJECTS,
    MINIMAL_OBJSTM,
    MINIMAL_TRAILER,
    MINIMAL_UPDATED,
    PdfBuilder,
    stream_body,
)


def test_version(cli_runner):
    result = cli_runner.invoke(cli_root, ['--version'])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_info(cli_runner):
    result = cli_runner.invoke(cli_root, ['info', INPUT_PATH])
    assert not result.exception, result.output
    assert result.output.splitlines() == [
        'PDF version: 1.7',
        'Objects: 5',
        'Trailers: 1',
        'Root: 1 0 R',
        'Info: 5 0 R',
    ]


def test_info_verbose(cli_runner):
    result = cli_runner.invoke(cli_root, ['--verbose', 'info', INPUT_PATH])
    assert not result.exception, result.output
    assert 'Objects: 5' in result.output


def test_info_updated(cli_runner):
    _write_input(MINIMAL_UPDATED)
    result = cli_runner.invoke(cli_root, ['info', INPUT_PATH])
    assert not result.exception, result.output
    assert 'Objects: 6' in result.output
    assert 'Trailers: 2' in result.output
    # inherited from the first trailer
    assert 'Info: 5 0 R' in result.output


def test_info_no_info_dict(cli_runner):
    builder = PdfBuilder()
    builder.add_revision(MINIMAL_OBJECTS[:4])
    _write_input(builder.getvalue())
    result = cli_runner.invoke(cli_root, ['info', INPUT_PATH])
    assert not result.exception, result.output
    assert 'Info: (none)' in result.output


def test_show_root(cli_runner):
    result = cli_runner.invoke(cli_root, ['show', INPUT_PATH])
    assert not result.exception, result.output
    assert '/Type /Catalog' in result.output
    assert '/Pages 2 0 R' in result.output


def test_show_object(cli_runner):
    result = cli_runner.invoke(cli_root, ['show', INPUT_PATH, '3'])
    assert not result.exception, result.output
    assert '/MediaBox [ 0 0 595.28 841.89 ]' in result.output


def test_show_stream(cli_runner):
    result = cli_runner.invoke(cli_root, ['show', INPUT_PATH, '4'])
    assert not result.exception, result.output
    assert f'/Length {len(MINIMAL_CONTENT)}' in result.output
    assert f'stream ({len(MINIMAL_CONTENT)} bytes)' in result.output


def test_show_missing_object(cli_runner):
    result = cli_runner.invoke(cli_root, ['show', INPUT_PATH, '9'])
    assert result.exit_code == 1
    assert 'Object 9 is free or out of range' in result.output


def test_show_object_zero(cli_runner):
    result = cli_runner.invoke(cli_root, ['show', INPUT_PATH, '0'])
    assert result.exit_code == 2


@pytest.mark.parametrize('idnum,expected', [
    ('0', '0: generation 65535, free'),
    ('1', f'1: generation 0, in use at offset {MINIMAL.index(b"1 0 obj")}'),
])
def test_xref(cli_runner, idnum, expected):
    result = cli_runner.invoke(cli_root, ['xref', INPUT_PATH, idnum])
    assert not result.exception, result.output
    assert result.output.strip() == expected


def test_xref_undescribed(cli_runner):
    result = cli_runner.invoke(cli_root, ['xref', INPUT_PATH, '9'])
    assert result.exit_code == 1
    assert 'not described by the cross-reference table' in result.output


def test_trailers(cli_runner):
    _write_input(MINIMAL_UPDATED)
    result = cli_runner.invoke(cli_root, ['trailers', INPUT_PATH])
    assert not result.exception, result.output
    output = result.output
    assert 'Trailer 1 of 2 (newest first):' in output
    assert 'Trailer 2 of 2 (newest first):' in output
    assert output.count('/Prev') == 1
    assert output.count('/Info 5 0 R') == 1


def test_malformed_input(cli_runner):
    _write_input(b'this is not a PDF file')
    result = cli_runner.invoke(cli_root, ['info', INPUT_PATH])
    assert result.exit_code == 1
    assert 'Failed to read PDF file: Could not find PDF header' \
        in result.output


def test_truncated_input(cli_runner):
    _write_input(MINIMAL[:len(MINIMAL) // 2])
    result = cli_runner.invoke(cli_root, ['info', INPUT_PATH])
    assert result.exit_code == 1
    assert 'Failed to read PDF file' in result.output


@pytest.mark.parametrize('objects,size,msg', [
    (MINIMAL_OBJECTS, 10 ** 12, 'exceeds the maximum of 8388607'),
    ([(1, b'[' * 5000 + b']' * 5000)], None, 'nested more than 256'),
])
def test_read_limits_exceeded(cli_runner, objects, size, msg):
    builder = PdfBuilder()
    builder.add_revision(objects, trailer=MINIMAL_TRAILER, size=size)
    _write_input(builder.getvalue())
    result = cli_runner.invoke(cli_root, ['info', INPUT_PATH])
    assert result.exit_code == 1
    assert 'Failed to read PDF file' in result.output
    assert msg in result.output


def test_rewrite(cli_runner):
    result = cli_runner.invoke(cli_root, ['rewrite', INPUT_PATH, OUTPUT_PATH])
    assert not result.exception, result.output
    doc = _read_output()
    assert doc.object_count == 5
    assert doc.get_object(5)['/Producer'] == \
        f'pagemill {__version__}'.encode('ascii')
    assert doc.root['/Pages']['/Count'] == 1


def test_rewrite_no_info(cli_runner):
    result = cli_runner.invoke(
        cli_root, ['rewrite', '--no-info', INPUT_PATH, OUTPUT_PATH]
    )
    assert not result.exception, result.output
    assert _read_output().get_object(5)['/Title'] == b'Minimal'


def test_rewrite_page_labels(cli_runner):
    result = cli_runner.invoke(
        cli_root,
        ['rewrite', '--page-labels', '/C1/_2r8', INPUT_PATH, OUTPUT_PATH]
    )
    assert not result.exception, result.output
    nums = _read_output().root['/PageLabels']['/Nums']
    assert nums[0] == 0
    assert nums[1]['/P'] == b'C1'
    assert nums[2] == 2
    assert nums[3]['/St'] == 8


def test_rewrite_bad_page_labels(cli_runner):
    result = cli_runner.invoke(
        cli_root,
        ['rewrite', '--page-labels', '0D_0R', INPUT_PATH, OUTPUT_PATH]
    )
    assert result.exit_code == 1
    assert 'Invalid page label specification' in result.output
    assert 'strictly increasing' in result.output


def test_rewrite_collapses_revisions(cli_runner):
    _write_input(MINIMAL_UPDATED)
    result = cli_runner.invoke(
        cli_root, ['rewrite', '--no-info', INPUT_PATH, OUTPUT_PATH]
    )
    assert not result.exception, result.output
    doc = _read_output()
    assert len(doc.trailer.revisions) == 1
    assert doc.object_count == 6
    assert doc.get_object(5)['/Title'] == b'Updated'


def test_rewrite_expand_and_compact(cli_runner):
    _write_input(MINIMAL_OBJSTM)
    result = cli_runner.invoke(
        cli_root,
        ['rewrite', '--expand-objstreams', '--compact', '--no-info',
         INPUT_PATH, OUTPUT_PATH]
    )
    assert not result.exception, result.output
    doc = _read_output()
    # object stream 8 is freed, so the expanded objects fill the gap
    assert doc.object_count == 7
    assert all(
        doc.xrefs[idnum].xref_type == XRefType.STANDARD
        for idnum in range(1, 8)
    )
    assert doc.get_object(6)['/Value'] == 42
    assert doc.get_object(7)[0]['/Type'] == '/Catalog'


def test_rewrite_unsupported_filter(cli_runner):
    builder = PdfBuilder()
    builder.add_revision(
        MINIMAL_OBJECTS + [
            (6, stream_body(
                b'7 0 1', b' /Type /ObjStm /N 1 /First 4 /Filter /LZWDecode'
            ))
        ], trailer=MINIMAL_TRAILER, size=8
    )
    _write_input(builder.getvalue())
    result = cli_runner.invoke(
        cli_root,
        ['rewrite', '--expand-objstreams', INPUT_PATH, OUTPUT_PATH]
    )
    assert result.exit_code == 1
    assert 'Unsupported feature' in result.output


def test_labels(cli_runner):
    result = cli_runner.invoke(cli_root, ['labels', '/C1/_2r8'])
    assert not result.exception, result.output
    output = result.output
    assert output.startswith('<<\n/Nums [ 0 <<')
    assert '/P (C1)' in output
    assert '/S /r' in output
    assert '/St 8' in output


def test_labels_error(cli_runner):
    result = cli_runner.invoke(cli_root, ['labels', '2x'])
    assert result.exit_code == 1
    assert "Unexpected character 'x' (at position 1)" in result.output


def test_shell(cli_runner):
    result = cli_runner.invoke(
        cli_root, ['shell', INPUT_PATH],
        input='v\nl\nx1\n2\n99\nbogus\nq\nl\n'
    )
    assert not result.exception, result.output
    output = result.output
    assert '1.7' in output
    assert '/Type /Pages' in output
    assert '1: generation 0, in use at offset' in output
    assert 'Error: Object 99 is free or out of range.' in output
    assert output.count('Commands:') == 2


def test_shell_end_of_input(cli_runner):
    result = cli_runner.invoke(
        cli_root, ['shell', INPUT_PATH], input='r\nt\n'
    )
    assert result.exit_code == 0
    assert '/Type /Catalog' in result.output
    assert 'Trailer 1 of 1 (newest first):' in result.output


def test_parser_limits_from_config(cli_runner):
    _write_config({'parser': {'max-stream-length': 10}})
    result = cli_runner.invoke(cli_root, ['info', INPUT_PATH])
    assert result.exit_code == 1
    assert 'exceeds the maximum of 10' in result.output


def test_explicit_config_file(cli_runner):
    _write_config({'parser': {'max-stream-length': 10}}, fname='limits.yml')
    result = cli_runner.invoke(cli_root, ['info', INPUT_PATH])
    assert not result.exception, result.output
    result = cli_runner.invoke(
        cli_root, ['--config', 'limits.yml', 'info', INPUT_PATH]
    )
    assert result.exit_code == 1
    assert 'exceeds the maximum of 10' in result.output


@pytest.mark.parametrize('config,msg', [
    ({'parser': {'max-stream-length': 0}}, 'positive integer'),
    ({'parser': {'max-objects': 10}}, 'Unexpected key'),
    ({'signing': {}}, 'Unexpected configuration key: signing'),
    ({'logging': {'root-level': 'LOUD'}}, 'Unknown log level'),
])
def test_bad_config(cli_runner, config, msg):
    _write_config(config)
    result = cli_runner.invoke(cli_root, ['info', INPUT_PATH])
    assert result.exit_code == 1
    assert 'Configuration problem' in result.output
    assert msg in result.output
