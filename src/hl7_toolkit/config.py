# src/hl7_toolkit/config.py
"""
Configuration utilities for hl7_toolkit.

Provides a dataclass-based configuration object and a loader that reads YAML
configuration files when present.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .codec import Delimiters

_TERMINATORS = {"cr": "\r", "lf": "\n", "crlf": "\r\n"}


def resolve_terminator(value: str) -> str:
    """
    Map a terminator name ("cr", "lf", "crlf") or literal to the literal.

    Raises
    ------
    ValueError
        If value is neither a known name nor a known literal.
    """
    if isinstance(value, str):
        if value.lower() in _TERMINATORS:
            return _TERMINATORS[value.lower()]
        if value in _TERMINATORS.values():
            return value
    raise ValueError(
        f"Unsupported segment terminator {value!r} (expected cr, lf or crlf)"
    )


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Attributes
    ----------
    segment_terminator : str
        Separator written between segments by build commands.
    field_separator : str
        MSH-1 for newly created messages.
    encoding_characters : str
        MSH-2 for newly created messages.
    """

    segment_terminator: str = "\r"
    field_separator: str = "|"
    encoding_characters: str = "^~\\&"

    def delimiters(self) -> Delimiters:
        """
        Delimiters for newly created messages.

        Raises
        ------
        DelimiterError
            If the configured characters do not form a valid delimiter set.
        """
        return Delimiters.from_encoding_characters(
            self.field_separator, self.encoding_characters
        )


def load_config(path: Optional[Path]) -> AppConfig:
    """
    Load application configuration from a YAML file.

    Parameters
    ----------
    path : Path or None
        Path to a YAML config file. If None, defaults are used.

    Returns
    -------
    AppConfig
        The loaded configuration.

    Raises
    ------
    TypeError
        If the YAML file does not parse to a mapping at the top level.
    ValueError
        If segment_terminator is not cr, lf or crlf.
    yaml.YAMLError
        If the file is not valid YAML.
    """
    if path is None:
        return AppConfig()

    data: Any = yaml.safe_load(path.read_text())

    if data is None:
        return AppConfig()

    if not isinstance(data, Mapping):
        raise TypeError(
            f"Config file must contain a mapping at top level, "
            f"got {type(data).__name__}. "
            f"Config file: {path}"
        )

    defaults = AppConfig()
    return AppConfig(
        segment_terminator=resolve_terminator(
            data.get("segment_terminator", defaults.segment_terminator)
        ),
        field_separator=str(data.get("field_separator", defaults.field_separator)),
        encoding_characters=str(
            data.get("encoding_characters", defaults.encoding_characters)
        ),
    )
