from dataclasses import dataclass
from typing import Optional

from pagemill.cli.config import CLIConfig
from pagemill.pdf_utils.settings import DEFAULT_PARSER_SETTINGS, ParserSettings


@dataclass
class CLIContext:
    """
    Context object that cobbles together the CLI settings gathered during
    the lifetime of a CLI invocation.
    This object is passed around as a ``click`` context object.
    """

    config: Optional[CLIConfig] = None
    """
    Values for CLI configuration settings.
    """

    @property
    def parser_settings(self) -> ParserSettings:
        if self.config is None:
            return DEFAULT_PARSER_SETTINGS
        return self.config.parser_settings
