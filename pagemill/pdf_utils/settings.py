"""
Resource limits applied while parsing untrusted input.
"""

from dataclasses import dataclass

from .config_utils import ConfigurableMixin, ConfigurationError

__all__ = ['ParserSettings', 'DEFAULT_PARSER_SETTINGS']


@dataclass(frozen=True)
class ParserSettings(ConfigurableMixin):
    """
    Limits that bound the amount of work a single (possibly adversarial)
    document can cause. Exceeding any of these is a fatal error for the
    parse in progress.

    In the CLI configuration file, these settings live under the ``parser``
    key, e.g.

    .. code-block:: yaml

        parser:
            max-stream-length: 1048576
            max-reference-depth: 8
    """

    max_stream_length: int = 256 * 1024 * 1024
    """
    Maximal value of a stream's ``/Length`` entry, in bytes.
    """

    max_string_length: int = 16 * 1024 * 1024
    """
    Maximal length of a decoded literal or hexadecimal string, in bytes.
    """

    max_name_length: int = 65535
    """
    Maximal length of a decoded name object, in bytes.
    """

    max_reference_depth: int = 32
    """
    Maximal number of hops when dereferencing a chain of indirect references
    pointing to other indirect references.
    """

    max_object_count: int = 8388607
    """
    Maximal value of the trailer's ``/Size`` entry. The default is the
    largest object number PDF implementations are expected to handle.
    """

    max_nesting_depth: int = 256
    """
    Maximal number of arrays and dictionaries nested inside one another.
    Each level costs two interpreter stack frames, so values much larger
    than the default run into Python's recursion limit.
    """

    @classmethod
    def process_entries(cls, config_dict):
        super().process_entries(config_dict)
        for key, value in config_dict.items():
            if isinstance(value, bool) or not isinstance(value, int) \
                    or value <= 0:
                raise ConfigurationError(
                    f"Parser setting '{key.replace('_', '-')}' must be a "
                    f"positive integer, not {value!r}."
                )


DEFAULT_PARSER_SETTINGS = ParserSettings()
