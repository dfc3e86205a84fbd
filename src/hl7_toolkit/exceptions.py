"""
Custom exceptions for hl7_toolkit.

All exceptions inherit from HL7ToolkitError so that callers can catch
toolkit-specific errors without grabbing unrelated built-in exceptions.
"""

from __future__ import annotations

from typing import Optional


class HL7ToolkitError(Exception):
    """Base class for all hl7_toolkit exceptions."""

    pass


class MalformedPathError(HL7ToolkitError):
    """Raised when a field path such as ``MSH.9.2`` cannot be resolved."""

    def __init__(self, path: object, reason: str = "expected SEG[.F[.C[.S]]]"):
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed field path {path!r}: {reason}")


class SegmentNotFoundError(HL7ToolkitError):
    """Raised when a set/get addresses a segment the message does not hold."""

    def __init__(self, target: object):
        self.target = target
        super().__init__(f"Segment not found: {target!r}")


class ParseError(HL7ToolkitError):
    """Raised when raw HL7 v2 text cannot be parsed correctly."""

    pass


class MissingHeaderError(ParseError):
    """Raised when a message lacks a leading MSH segment or its encoding characters are unusable."""

    pass


class MalformedSegmentError(ParseError):
    """Raised when a segment line or segment name is not valid ER7."""

    def __init__(self, segment: str, reason: str, line: Optional[int] = None):
        self.segment = segment
        self.reason = reason
        self.line = line
        where = f" (line {line})" if line is not None else ""
        super().__init__(f"Malformed segment {segment!r}{where}: {reason}")


class DelimiterError(HL7ToolkitError):
    """Raised on an invalid or changed delimiter set and on unescaped delimiters in values."""

    pass
