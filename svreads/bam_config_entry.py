"""One line of the tab-separated library configuration file."""

from __future__ import annotations

import re
from enum import IntEnum
from typing import Any, Callable


class ConfigError(ValueError):
    """Raised for a missing or malformed configuration value."""


class Field(IntEnum):
    BAM_FILE = 0
    LIBRARY_NAME = 1
    READ_GROUP = 2
    INSERT_SIZE_MEAN = 3
    INSERT_SIZE_STDDEV = 4
    READ_LENGTH = 5
    INSERT_SIZE_UPPER_CUTOFF = 6
    INSERT_SIZE_LOWER_CUTOFF = 7
    MIN_MAP_QUAL = 8
    SAMPLE_NAME = 9
    UNKNOWN = 10


_TOKEN_NAMES = {
    Field.BAM_FILE: "map",
    Field.LIBRARY_NAME: "lib",
    Field.READ_GROUP: "group",
    Field.INSERT_SIZE_MEAN: "mean",
    Field.INSERT_SIZE_STDDEV: "std",
    Field.READ_LENGTH: "readlen",
    Field.INSERT_SIZE_UPPER_CUTOFF: "upper",
    Field.INSERT_SIZE_LOWER_CUTOFF: "low",
    Field.MIN_MAP_QUAL: "map",
    Field.SAMPLE_NAME: "sample",
}

# Keys may carry any prefix; only the ending is matched.
_TOKEN_PATTERNS = tuple(
    (re.compile(pattern, re.IGNORECASE | re.ASCII), field)
    for pattern, field in (
        (r"map$", Field.BAM_FILE),
        (r"lib\w*$", Field.LIBRARY_NAME),
        (r"group$", Field.READ_GROUP),
        (r"mean\w*$", Field.INSERT_SIZE_MEAN),
        (r"std\w*$", Field.INSERT_SIZE_STDDEV),
        (r"readlen\w*$", Field.READ_LENGTH),
        (r"upp\w*$", Field.INSERT_SIZE_UPPER_CUTOFF),
        (r"low\w*$", Field.INSERT_SIZE_LOWER_CUTOFF),
        (r"map\w*qual\w*$", Field.MIN_MAP_QUAL),
        (r"samp\w*$", Field.SAMPLE_NAME),
    )
)


def translate_token(tok: str) -> Field:
    """Map a configuration key to the field it names."""
    for pattern, field in _TOKEN_PATTERNS:
        if pattern.search(tok):
            return field
    return Field.UNKNOWN


def token_string(field: Field) -> str:
    return _TOKEN_NAMES.get(field, "")


class BamConfigEntry:
    """The recognised key:value directives of one configuration line."""

    def __init__(self, line: str) -> None:
        self.directives: dict[Field, str] = {}
        for item in line.rstrip("\r\n").split("\t"):
            key, sep, value = item.partition(":")
            if not sep:
                continue
            field = translate_token(key)
            if field is not Field.UNKNOWN:
                self.directives[field] = value

    def get(self, field: Field, convert: Callable[[str], Any] = str) -> Any:
        """Converted value of a field, or None when the line lacks it."""
        raw = self.directives.get(field)
        if raw is None:
            return None
        try:
            return convert(raw)
        except (ValueError, TypeError) as exc:
            raise ConfigError(
                f"Invalid value {raw!r} for field '{token_string(field)}'"
            ) from exc

    def require(self, field: Field, convert: Callable[[str], Any], line_num: int) -> Any:
        """Converted value of a field that must be present."""
        value = self.get(field, convert)
        if value is None:
            raise ConfigError(
                f"Required field '{token_string(field)}' not found in config at line {line_num}!"
            )
        return value