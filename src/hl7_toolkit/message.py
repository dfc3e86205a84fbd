# src/hl7_toolkit/message.py
"""
HL7 v2 message model.

Provides:
- Message: ordered segments with create/set/get, parse, build and transform
- TransformResult: single-shot outcome of Message.transform
- parse_message: parse raw ER7 text into a Message
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from .codec import (
    DEFAULT_DELIMITERS,
    HEADER_SEGMENT,
    Delimiters,
    decode_segment,
    read_delimiters,
    split_lines,
)
from .exceptions import (
    DelimiterError,
    HL7ToolkitError,
    MalformedPathError,
    MissingHeaderError,
    SegmentNotFoundError,
)
from .paths import Coordinate, expand, resolve
from .segment import Segment

logger = logging.getLogger(__name__)

__all__ = ["Message", "TransformResult", "parse_message", "SEGMENT_TERMINATOR"]

# HL7 terminates segments with CR; LF and CRLF are accepted on input.
SEGMENT_TERMINATOR = "\r"

SegmentTarget = Union[str, int, Segment]
Transformed = Dict[str, List[Dict[str, Any]]]


@dataclass(frozen=True)
class TransformResult:
    """
    Outcome of Message.transform.

    Attributes
    ----------
    error : HL7ToolkitError or None
        The failure, or None on success.
    transformed : dict or None
        Segment name -> list of per-segment mappings, None on failure.
    """

    error: Optional[HL7ToolkitError]
    transformed: Optional[Transformed]

    @property
    def ok(self) -> bool:
        return self.error is None


class Message:
    """
    An HL7 v2 message: an ordered list of segments sharing one delimiter set.

    Build a message from scratch::

        msg = Message()
        msg.create_segment("MSH")
        msg.set("MSH", {"MSH.9": {"MSH.9.1": "ADT", "MSH.9.2": "A08"}})
        text = msg.build()

    or from raw text::

        msg = Message(raw)
        msg.transform(callback)
        for obr in msg.get_segments("OBR"):
            ...

    Parameters
    ----------
    raw : str or None
        Raw ER7 text, parsed by transform(). Use parse() or parse_message()
        to parse eagerly.
    delimiters : Delimiters or None
        Delimiters for a fresh message. Parsing replaces them with the ones
        the input declares.

    Raises
    ------
    TypeError
        If raw is given and is not a str.
    """

    def __init__(
        self, raw: Optional[str] = None, *, delimiters: Optional[Delimiters] = None
    ):
        if raw is not None and not isinstance(raw, str):
            raise TypeError(f"raw must be str, got {type(raw).__name__}")
        self.raw = raw
        self.transformed: Optional[Transformed] = None
        self._delimiters = delimiters or DEFAULT_DELIMITERS
        self._delimiters_from_input = False
        self._segments: List[Segment] = []

    @property
    def delimiters(self) -> Delimiters:
        return self._delimiters

    @property
    def segments(self) -> List[Segment]:
        return list(self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def __iter__(self) -> Iterator[Segment]:
        return iter(list(self._segments))

    def __str__(self) -> str:
        return self.build()

    def __repr__(self) -> str:
        names = ",".join(s.name for s in self._segments)
        return f"<Message [{names}]>"

    # --------------------------------------------------------------------------
    # segments
    # --------------------------------------------------------------------------

    def create_segment(self, name: str) -> None:
        """
        Append a new, empty segment.

        No ordering or cardinality rules are enforced. MSH segments start out
        holding the message's field separator and encoding characters.

        Raises
        ------
        MalformedSegmentError
            If name is not three uppercase letters or digits.
        """
        self._segments.append(Segment(name, self._delimiters))

    def remove_segment(self, target: SegmentTarget) -> None:
        """
        Remove a segment given as a Segment, a 0-based index or a name.

        Raises
        ------
        SegmentNotFoundError
            If the target is not part of this message.
        """
        seg = self._find(target)
        self._segments = [s for s in self._segments if s is not seg]

    def get_segments(self, name: Optional[str] = None) -> List[Segment]:
        """
        Return the segments in message order, optionally only those named name.

        A new list is returned on every call; an unknown name yields [].
        """
        if name is None:
            return list(self._segments)
        return [s for s in self._segments if s.name == name]

    def _find(self, target: SegmentTarget) -> Segment:
        if isinstance(target, Segment):
            if any(s is target for s in self._segments):
                return target
            raise SegmentNotFoundError(target)
        if isinstance(target, int) and not isinstance(target, bool):
            if -len(self._segments) <= target < len(self._segments):
                return self._segments[target]
            raise SegmentNotFoundError(target)
        if isinstance(target, str):
            coord = resolve(target)
            if coord.field is not None:
                raise MalformedPathError(target, "expected a segment, not a field path")
            return self._find_named(coord.segment, coord.occurrence)
        raise TypeError(
            f"segment target must be str, int or Segment, got {type(target).__name__}"
        )

    def _find_named(self, name: str, occurrence: Optional[int]) -> Segment:
        matches = self.get_segments(name)
        index = (occurrence or 1) - 1
        if index >= len(matches):
            label = name if occurrence is None else f"{name}[{occurrence}]"
            raise SegmentNotFoundError(label)
        return matches[index]

    def _occurrence_of(self, seg: Segment) -> int:
        same = self.get_segments(seg.name)
        return next(i for i, s in enumerate(same, start=1) if s is seg)

    # --------------------------------------------------------------------------
    # field access
    # --------------------------------------------------------------------------

    def set(self, target: SegmentTarget, mapping: Mapping[str, Any]) -> None:
        """
        Set fields of one segment from a flat or nested path mapping.

        Parameters
        ----------
        target : str, int or Segment
            Segment name ("PID", "NK1[2]"), 0-based index, or Segment.
        mapping : Mapping[str, Any]
            Either ``{"MSH.9.1": "ADT", "MSH.9.2": "A08"}`` or the nested
            ``{"MSH.9": {"MSH.9.1": "ADT", "MSH.9.2": "A08"}}``; lists set
            repetitions.

        Raises
        ------
        SegmentNotFoundError
            If the target segment does not exist.
        MalformedPathError
            If a key is malformed, lacks a field number, or names another
            segment.
        DelimiterError
            If MSH-1 or MSH-2 would change, or a value holds a delimiter its
            level cannot represent. Nothing is written when any entry fails.
        """
        seg = self._find(target)
        occurrence = self._occurrence_of(seg)
        assignments = expand(mapping)

        for coord, _ in assignments:
            if coord.segment != seg.name:
                raise MalformedPathError(str(coord), f"does not address segment {seg.name}")
            if coord.occurrence not in (None, occurrence):
                raise MalformedPathError(
                    str(coord), f"does not address {seg.name}[{occurrence}]"
                )
            if coord.field is None:
                raise MalformedPathError(str(coord), "a field number is required")

        seg.set_fields(assignments)

    def get(self, path: Union[str, Coordinate]) -> str:
        """
        Read the encoded value at a field path.

        A bare segment path ("PID") returns the whole segment line. Positions
        past the end of an existing segment read as "".

        Raises
        ------
        MalformedPathError
            If the path is malformed.
        SegmentNotFoundError
            If the addressed segment does not exist.
        """
        coord = resolve(path)
        seg = self._find_named(coord.segment, coord.occurrence)
        if coord.field is None:
            return seg.to_er7()
        return seg.get_field(
            coord.field,
            coord.component,
            coord.subcomponent,
            repetition=coord.repetition,
        )

    # --------------------------------------------------------------------------
    # parse / build
    # --------------------------------------------------------------------------

    def parse(self, raw: str) -> None:
        """
        Parse raw ER7 text, replacing the content of this message.

        Segments may be terminated by CR, LF or CRLF; blank lines are skipped.
        The delimiters are read from the leading MSH segment. A fresh message
        adopts them; once a parse has set them, later input must declare the
        same set.

        Raises
        ------
        TypeError
            If raw is not a str.
        MissingHeaderError
            If the first segment is absent, is not MSH, or declares malformed
            encoding characters.
        MalformedSegmentError
            If a segment line is not valid ER7.
        DelimiterError
            If the message already holds parsed delimiters and raw declares
            different ones.
        """
        if not isinstance(raw, str):
            raise TypeError(f"raw must be str, got {type(raw).__name__}")

        lines = split_lines(raw)
        if not lines:
            raise MissingHeaderError("Message is empty; expected a leading MSH segment")

        delimiters = read_delimiters(lines[0])
        if self._delimiters_from_input and delimiters != self._delimiters:
            old = self._delimiters.field + self._delimiters.encoding_characters
            new = delimiters.field + delimiters.encoding_characters
            raise DelimiterError(
                f"Message delimiters were read as {old!r}; input declares {new!r}"
            )
        segments = []
        for number, line in enumerate(lines, start=1):
            name, fields = decode_segment(line, delimiters, line_number=number)
            segments.append(Segment.from_fields(name, fields, delimiters))

        self._delimiters = delimiters
        self._segments = segments
        self._delimiters_from_input = True
        logger.debug("Parsed %d segments (%d chars)", len(segments), len(raw))

    def build(self, terminator: str = SEGMENT_TERMINATOR) -> str:
        """
        Serialize the message to ER7 text.

        Parameters
        ----------
        terminator : str, default "\\r"
            Segment separator. No terminator follows the last segment.

        Raises
        ------
        MissingHeaderError
            If the message does not start with an MSH segment.
        """
        if not self._segments or self._segments[0].name != HEADER_SEGMENT:
            raise MissingHeaderError(
                "Cannot build a message without a leading MSH segment"
            )
        text = terminator.join(seg.to_er7() for seg in self._segments)
        logger.debug("Built %d segments (%d chars)", len(self._segments), len(text))
        return text

    def transform(
        self, callback: Optional[Callable[[Optional[HL7ToolkitError]], None]] = None
    ) -> TransformResult:
        """
        Run the parse/normalize pipeline once and report a single outcome.

        A message constructed from raw text is parsed; a message that already
        holds segments is normalized through build and parse. On success
        ``transformed`` holds the structured result and the segments are
        available through get_segments().

        Parameters
        ----------
        callback : callable or None
            Called exactly once with the error, or None on success. Errors are
            passed to the callback and never raised from here.

        Returns
        -------
        TransformResult
        """
        error: Optional[HL7ToolkitError] = None
        try:
            if self._segments:
                source = self.build()
            elif self.raw is not None:
                source = self.raw
            else:
                raise MissingHeaderError("Nothing to transform: message is empty")
            self.parse(source)
            self.transformed = self._to_transformed()
        except HL7ToolkitError as e:
            logger.warning("Transform failed: %s", e)
            error = e
            self.transformed = None

        if callback is not None:
            callback(error)
        return TransformResult(error=error, transformed=self.transformed)

    def _to_transformed(self) -> Transformed:
        out: Transformed = {}
        for seg in self._segments:
            out.setdefault(seg.name, []).append(seg.to_dict())
        return out


def parse_message(raw: str) -> Message:
    """
    Parse raw ER7 text into a Message.

    Raises
    ------
    TypeError, MissingHeaderError, MalformedSegmentError
        As Message.parse.
    """
    msg = Message()
    msg.parse(raw)
    return msg
