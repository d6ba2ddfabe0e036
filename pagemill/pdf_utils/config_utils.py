"""
Populate frozen dataclasses from user-provided configuration, such as the
``parser`` section of the CLI's YAML file.

Configuration keys are written with hyphens (``max-stream-length``) and
mapped onto the underscored field names of the dataclass.
"""

import dataclasses
from typing import Iterable

from pagemill.config.errors import ConfigurationError

__all__ = [
    'ConfigurationError', 'ConfigurableMixin', 'check_config_keys',
    'enforce_required_keys',
]


def _has_default(f: dataclasses.Field):
    return (
        f.default_factory is not dataclasses.MISSING
        or f.default is not dataclasses.MISSING
    )


def _plural(word: str, count: int) -> str:
    return word if count == 1 else word + 's'


@dataclasses.dataclass(frozen=True)
class ConfigurableMixin:
    """Mixin for dataclasses that can be instantiated from a config dict."""

    @classmethod
    def process_entries(cls, config_dict):
        """
        Hook to validate or convert values before the dataclass is
        instantiated. Keys have already been converted to field names.

        Subclasses that override this method should call
        ``super().process_entries()``.

        :param config_dict:
            A dictionary containing configuration values.
        :raises ConfigurationError:
            when there is a problem processing a relevant entry.
        """
        pass

    @classmethod
    def from_config(cls, config_dict):
        """
        Instantiate the class on which it is called from a configuration
        dictionary.

        Unknown keys are rejected, the remaining entries go through
        :meth:`process_entries`, and fields without a default must be
        present.

        :param config_dict:
            A dictionary containing configuration values.
        :return:
            An instance of the class on which it is called.
        :raises ConfigurationError:
            when an unexpected configuration key is encountered or left
            unfilled, or when there is a problem processing one of the config
            values.
        """
        fields = dataclasses.fields(cls)
        check_config_keys(cls.__name__, {f.name for f in fields}, config_dict)
        config_dict = {
            key.replace('-', '_'): v for key, v in config_dict.items()
        }
        cls.process_entries(config_dict)
        enforce_required_keys(
            cls.__name__, {f.name for f in fields if not _has_default(f)},
            config_dict
        )
        # noinspection PyArgumentList
        return cls(**config_dict)


def _key_difference(keys: Iterable[str], allowed: Iterable[str]):
    # compare in the hyphenated form users write in the config file
    return (
        {key.replace('_', '-') for key in keys}
        - {key.replace('_', '-') for key in allowed}
    )


def check_config_keys(config_name, expected_keys, config_dict):
    """
    Make sure that a configuration entry is a dictionary, and only
    contains keys from ``expected_keys``.

    :raises ConfigurationError:
        If the check fails.
    """
    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            f"{config_name} requires a dictionary to initialise."
        )
    unexpected_keys = _key_difference(config_dict.keys(), expected_keys)
    if unexpected_keys:
        raise ConfigurationError(
            f"Unexpected {_plural('key', len(unexpected_keys))} "
            f"in configuration for {config_name}: "
            f"{', '.join(sorted(unexpected_keys))}."
        )


def enforce_required_keys(config_name, required_keys, config_dict):
    missing_keys = _key_difference(required_keys, config_dict.keys())
    if missing_keys:
        raise ConfigurationError(
            f"Missing required {_plural('key', len(missing_keys))} "
            f"in configuration for {config_name}: "
            f"{', '.join(sorted(missing_keys))}."
        )
