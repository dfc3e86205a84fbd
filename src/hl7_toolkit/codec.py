# src/hl7_toolkit/codec.py
"""
ER7 (pipe-delimited) encoding and decoding for HL7 v2 messages.

Provides:
- Delimiters: the immutable delimiter set declared by MSH-1/MSH-2
- split / join: escape-aware splitting and its inverse
- decode_* / encode_*: field, repetition, component and segment codecs
- split_lines / read_delimiters: message-level tokenizing of raw text
- escape / unescape: HL7 escape sequences (\\F\\, \\S\\, \\T\\, \\R\\, \\E\\)

Escape policy
-------------
Values are stored exactly as they appear on the wire. Decoding never
unescapes and encoding never re-escapes, so parse followed by build is
lossless. Callers that hold free text containing delimiter characters must
run it through escape() before storing it, and may run stored values through
unescape() to obtain display text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .exceptions import DelimiterError, MalformedSegmentError, MissingHeaderError

__all__ = [
    "Component",
    "Repetition",
    "Field",
    "Delimiters",
    "DEFAULT_DELIMITERS",
    "HEADER_SEGMENT",
    "SEGMENT_NAME_RE",
    "split",
    "join",
    "decode_component",
    "encode_component",
    "decode_repetition",
    "encode_repetition",
    "decode_field",
    "encode_field",
    "empty_field",
    "atomic_field",
    "decode_segment",
    "encode_segment",
    "split_lines",
    "read_delimiters",
    "escape",
    "unescape",
]

# A component is an ordered list of sub-components, a repetition an ordered
# list of components, a field an ordered list of repetitions.
Component = List[str]
Repetition = List[Component]
Field = List[Repetition]

HEADER_SEGMENT = "MSH"
SEGMENT_NAME_RE = re.compile(r"^[A-Z][A-Z0-9]{2}$")

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class Delimiters:
    """
    Immutable delimiter set of one message.

    Attributes
    ----------
    field : str
        Field separator (MSH-1), ``|`` by default.
    component : str
        Component separator, ``^`` by default.
    repetition : str
        Repetition separator, ``~`` by default.
    escape : str
        Escape character, ``\\`` by default.
    subcomponent : str
        Sub-component separator, ``&`` by default.
    truncation : str or None
        Truncation character declared by v2.7+ headers (``#``), if any.

    Raises
    ------
    DelimiterError
        If any delimiter is not a single non-alphanumeric character, or if two
        delimiters collide.
    """

    field: str = "|"
    component: str = "^"
    repetition: str = "~"
    escape: str = "\\"
    subcomponent: str = "&"
    truncation: Optional[str] = None

    def __post_init__(self) -> None:
        chars = [
            self.field,
            self.component,
            self.repetition,
            self.escape,
            self.subcomponent,
        ]
        if self.truncation is not None:
            chars.append(self.truncation)
        for ch in chars:
            if not isinstance(ch, str) or len(ch) != 1:
                raise DelimiterError(f"Delimiters must be single characters, got {ch!r}")
            if ch.isalnum() or ch.isspace():
                raise DelimiterError(f"Delimiter {ch!r} must not be alphanumeric or whitespace")
        if len(set(chars)) != len(chars):
            raise DelimiterError(f"Delimiters must be distinct, got {''.join(chars)!r}")

    @property
    def encoding_characters(self) -> str:
        """The MSH-2 value: component, repetition, escape, sub-component (and truncation)."""
        enc = self.component + self.repetition + self.escape + self.subcomponent
        return enc + (self.truncation or "")

    @classmethod
    def from_encoding_characters(cls, field: str, encoding: str) -> "Delimiters":
        """
        Build a delimiter set from MSH-1 and MSH-2 values.

        Parameters
        ----------
        field : str
            Field separator.
        encoding : str
            Four (or five, with truncation) encoding characters in MSH-2 order.

        Returns
        -------
        Delimiters

        Raises
        ------
        DelimiterError
            If the encoding characters have the wrong length or are invalid.
        """
        if len(encoding) not in (4, 5):
            raise DelimiterError(
                f"Encoding characters must be 4 or 5 characters, got {encoding!r}"
            )
        return cls(
            field=field,
            component=encoding[0],
            repetition=encoding[1],
            escape=encoding[2],
            subcomponent=encoding[3],
            truncation=encoding[4] if len(encoding) == 5 else None,
        )


DEFAULT_DELIMITERS = Delimiters()


# ------------------------------------------------------------------------------
# split / join
# ------------------------------------------------------------------------------


def split(text: str, delimiter: str, escape_char: Optional[str] = None) -> List[str]:
    """
    Split text on a delimiter, never inside an escape sequence.

    An escape sequence runs from an escape character to the next escape
    character, provided no delimiter lies between them; well-formed
    sequences (\\F\\, \\S\\, \\X0D\\ ...) never contain one. Any other escape
    character, such as the backslash of a Windows path, is literal, so a
    stray escape character never merges neighbouring fields.

    Parameters
    ----------
    text : str
        Text to split.
    delimiter : str
        Single-character separator.
    escape_char : str or None
        Escape character; None disables escape awareness.

    Returns
    -------
    List[str]
        At least one element; ``join(split(t, d, e), d) == t`` always holds.
    """
    if not escape_char or escape_char not in text:
        return text.split(delimiter)

    parts: List[str] = []
    start = 0
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == escape_char:
            close = text.find(escape_char, i + 1)
            if close != -1 and delimiter not in text[i + 1 : close]:
                i = close + 1
                continue
        elif ch == delimiter:
            parts.append(text[start:i])
            start = i + 1
        i += 1
    parts.append(text[start:])
    return parts


def join(parts: Iterable[str], delimiter: str) -> str:
    """Inverse of split(). Parts are joined verbatim (no re-escaping)."""
    return delimiter.join(parts)


# ------------------------------------------------------------------------------
# field codecs
# ------------------------------------------------------------------------------


def decode_component(text: str, delimiters: Delimiters = DEFAULT_DELIMITERS) -> Component:
    return split(text, delimiters.subcomponent, delimiters.escape)


def encode_component(component: Sequence[str], delimiters: Delimiters = DEFAULT_DELIMITERS) -> str:
    return join(component, delimiters.subcomponent)


def decode_repetition(text: str, delimiters: Delimiters = DEFAULT_DELIMITERS) -> Repetition:
    return [
        decode_component(c, delimiters)
        for c in split(text, delimiters.component, delimiters.escape)
    ]


def encode_repetition(
    repetition: Sequence[Sequence[str]], delimiters: Delimiters = DEFAULT_DELIMITERS
) -> str:
    return join(
        (encode_component(c, delimiters) for c in repetition), delimiters.component
    )


def decode_field(text: str, delimiters: Delimiters = DEFAULT_DELIMITERS) -> Field:
    """Decode one field's text into repetitions, components and sub-components."""
    return [
        decode_repetition(r, delimiters)
        for r in split(text, delimiters.repetition, delimiters.escape)
    ]


def encode_field(field: Field, delimiters: Delimiters = DEFAULT_DELIMITERS) -> str:
    """Encode a decoded field back to its wire text."""
    return join(
        (encode_repetition(r, delimiters) for r in field), delimiters.repetition
    )


def empty_field() -> Field:
    """A field holding a single empty value."""
    return [[[""]]]


def atomic_field(value: str) -> Field:
    """A field that is never split (MSH-1 and MSH-2)."""
    return [[[value]]]


# ------------------------------------------------------------------------------
# segment codecs
# ------------------------------------------------------------------------------


def decode_segment(
    line: str, delimiters: Delimiters, line_number: Optional[int] = None
) -> Tuple[str, List[Field]]:
    """
    Decode one segment line.

    For MSH the character after the name is the field separator (MSH-1) and
    the text up to the next separator is MSH-2; both are kept atomic.

    Parameters
    ----------
    line : str
        One segment, without its terminator.
    delimiters : Delimiters
        Delimiters of the enclosing message.
    line_number : int or None
        1-based segment position, reported in errors.

    Returns
    -------
    Tuple[str, List[Field]]
        Segment name and its fields, where index 0 holds field 1.

    Raises
    ------
    MalformedSegmentError
        If the segment name is not three uppercase letters/digits, or an MSH
        line does not use the message's field separator.
    """
    if line[:3] == HEADER_SEGMENT:
        if len(line) > 3 and line[3] != delimiters.field:
            raise MalformedSegmentError(
                HEADER_SEGMENT,
                f"expected field separator {delimiters.field!r} after name",
                line_number,
            )
        if len(line) == 3:
            raise MalformedSegmentError(
                HEADER_SEGMENT, "missing field separator and encoding characters", line_number
            )
        encoding, sep, remainder = line[4:].partition(delimiters.field)
        fields = [atomic_field(delimiters.field), atomic_field(encoding)]
        if sep:
            fields.extend(
                decode_field(t, delimiters)
                for t in split(remainder, delimiters.field, delimiters.escape)
            )
        return HEADER_SEGMENT, fields

    tokens = split(line, delimiters.field, delimiters.escape)
    name = tokens[0]
    if not SEGMENT_NAME_RE.match(name):
        raise MalformedSegmentError(
            name, "segment names are three uppercase letters or digits", line_number
        )
    return name, [decode_field(t, delimiters) for t in tokens[1:]]


def encode_segment(name: str, fields: Sequence[Field], delimiters: Delimiters) -> str:
    """Encode a segment name and its fields into one ER7 line."""
    encoded = [encode_field(f, delimiters) for f in fields]
    if name == HEADER_SEGMENT and encoded:
        # MSH-1 is the separator itself, so it is not preceded by one.
        return name + encoded[0] + join(encoded[1:], delimiters.field)
    return join([name] + encoded, delimiters.field)


# ------------------------------------------------------------------------------
# message-level helpers
# ------------------------------------------------------------------------------


def split_lines(raw: str) -> List[str]:
    """
    Split raw message text into segment lines.

    Accepts CR, LF and CRLF terminators. Blank and whitespace-only lines are
    skipped and leading whitespace before a segment name is dropped; the rest
    of each line is kept verbatim.
    """
    out: List[str] = []
    for line in _LINE_BREAK_RE.split(raw):
        if not line.strip():
            continue
        out.append(line.lstrip())
    return out


def read_delimiters(header: str) -> Delimiters:
    """
    Read the delimiter set from an MSH line.

    Raises
    ------
    MissingHeaderError
        If the line is not an MSH segment or its encoding characters are
        malformed.
    """
    if header[:3] != HEADER_SEGMENT:
        raise MissingHeaderError(
            f"First segment must be {HEADER_SEGMENT}, got {header[:3]!r}"
        )
    if len(header) < 8:
        raise MissingHeaderError(f"MSH segment is too short to declare delimiters: {header!r}")
    field = header[3]
    encoding = header[4:].split(field, 1)[0]
    try:
        return Delimiters.from_encoding_characters(field, encoding)
    except DelimiterError as e:
        raise MissingHeaderError(f"Malformed MSH encoding characters: {e}") from e


# ------------------------------------------------------------------------------
# escape sequences
# ------------------------------------------------------------------------------


def _escape_table(delimiters: Delimiters) -> dict:
    table = {
        delimiters.escape: "E",
        delimiters.field: "F",
        delimiters.component: "S",
        delimiters.subcomponent: "T",
        delimiters.repetition: "R",
        "\r": "X0D",
        "\n": "X0A",
    }
    if delimiters.truncation is not None:
        table[delimiters.truncation] = "P"
    return table


def escape(text: str, delimiters: Delimiters = DEFAULT_DELIMITERS) -> str:
    """
    Replace delimiter characters in free text with HL7 escape sequences.

    Examples
    --------
    >>> escape("A|B^C")
    'A\\\\F\\\\B\\\\S\\\\C'
    """
    table = _escape_table(delimiters)
    e = delimiters.escape
    return "".join(f"{e}{table[ch]}{e}" if ch in table else ch for ch in text)


def _decode_hex(digits: str) -> Optional[str]:
    try:
        data = bytes.fromhex(digits)
    except ValueError:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def unescape(text: str, delimiters: Delimiters = DEFAULT_DELIMITERS) -> str:
    """
    Resolve HL7 escape sequences back to the characters they stand for.

    Sequences this toolkit does not interpret (highlighting ``\\H\\``,
    formatting commands, character set switches) are left verbatim.
    """
    e = delimiters.escape
    if e not in text:
        return text
    reverse = {code: ch for ch, code in _escape_table(delimiters).items() if len(code) == 1}
    pattern = re.compile(re.escape(e) + "([^" + re.escape(e) + "]*)" + re.escape(e))

    def _sub(m: "re.Match[str]") -> str:
        code = m.group(1)
        if code in reverse:
            return reverse[code]
        if code[:1] == "X" and len(code) > 1:
            decoded = _decode_hex(code[1:])
            if decoded is not None:
                return decoded
        return m.group(0)

    return pattern.sub(_sub, text)
