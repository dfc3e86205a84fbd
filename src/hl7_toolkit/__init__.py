# src/hl7_toolkit/__init__.py
"""
hl7_toolkit: build, parse and address HL7 v2 (ER7) messages.

This package provides:
- Message / Segment: a path-addressable message model with parse and build.
- Field paths such as "MSH.9.2" resolved to Coordinates.
- An escape-aware ER7 codec and a bridge to hl7apy.
- A CLI for inspecting and re-encoding message files.
"""

from __future__ import annotations

from .codec import DEFAULT_DELIMITERS, Delimiters, escape, unescape
from .exceptions import (
    DelimiterError,
    HL7ToolkitError,
    MalformedPathError,
    MalformedSegmentError,
    MissingHeaderError,
    ParseError,
    SegmentNotFoundError,
)
from .message import Message, TransformResult, parse_message
from .paths import Coordinate, resolve
from .segment import Segment

__version__ = "0.1.0"
__all__ = [
    "__version__",
    "Coordinate",
    "DEFAULT_DELIMITERS",
    "Delimiters",
    "DelimiterError",
    "HL7ToolkitError",
    "MalformedPathError",
    "MalformedSegmentError",
    "Message",
    "MissingHeaderError",
    "ParseError",
    "Segment",
    "SegmentNotFoundError",
    "TransformResult",
    "escape",
    "parse_message",
    "resolve",
    "unescape",
]
