import pytest
import yaml
from click.testing import CliRunner

from pagemill.pdf_utils.document import PdfDocument
from pagemill_tests.samples import MINIMAL

INPUT_PATH = 'input.pdf'
OUTPUT_PATH = 'output.pdf'


# cli_runner is autouse to ensure it gets priority in the dependency graph
@pytest.fixture(scope="function", autouse=True)
def cli_runner():
    runner = CliRunner()
    with runner.isolated_filesystem():
        with open(INPUT_PATH, 'wb') as outf:
            outf.write(MINIMAL)
        yield runner


def _write_config(config: dict, fname: str = 'pagemill.yml'):
    with open(fname, 'w') as outf:
        yaml.dump(config, outf)


def _write_input(data: bytes, fname: str = INPUT_PATH):
    with open(fname, 'wb') as outf:
        outf.write(data)


def _read_output(fname: str = OUTPUT_PATH) -> PdfDocument:
    with open(fname, 'rb') as inf:
        return PdfDocument(inf)
