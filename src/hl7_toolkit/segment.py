# src/hl7_toolkit/segment.py
"""
Segment model: a named, ordered list of fields addressable by position.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .codec import (
    DEFAULT_DELIMITERS,
    HEADER_SEGMENT,
    SEGMENT_NAME_RE,
    Component,
    Delimiters,
    Field,
    Repetition,
    atomic_field,
    decode_component,
    decode_field,
    decode_repetition,
    empty_field,
    encode_component,
    encode_field,
    encode_repetition,
    encode_segment,
)
from .exceptions import DelimiterError, MalformedPathError, MalformedSegmentError
from .paths import Coordinate, as_text

__all__ = ["Segment"]


def _check_positions(name: str, **positions: Optional[int]) -> None:
    for label, value in positions.items():
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise MalformedPathError(
                f"{name} {label}={value!r}", f"{label} must be a positive int"
            )


def _grow(items: list, size: int, placeholder) -> None:
    while len(items) < size:
        items.append(placeholder())


class Segment:
    """
    One HL7 v2 segment.

    Fields are numbered from 1. Every position up to the last one set is
    materialized, with empty strings filling gaps, so the segment renders
    exactly the separators it holds.

    For MSH, field 1 is the field separator and field 2 the encoding
    characters. Both come from the segment's delimiters and cannot be changed.

    Parameters
    ----------
    name : str
        Three-character segment name, e.g. "PID".
    delimiters : Delimiters
        Delimiters of the owning message.

    Raises
    ------
    MalformedSegmentError
        If the name is not three uppercase letters or digits.
    """

    def __init__(self, name: str, delimiters: Delimiters = DEFAULT_DELIMITERS):
        if not isinstance(name, str) or not SEGMENT_NAME_RE.match(name):
            raise MalformedSegmentError(
                str(name), "segment names are three uppercase letters or digits"
            )
        self.name = name
        self.delimiters = delimiters
        self._fields: List[Field] = []
        if name == HEADER_SEGMENT:
            self._fields = [
                atomic_field(delimiters.field),
                atomic_field(delimiters.encoding_characters),
            ]

    @classmethod
    def from_fields(
        cls, name: str, fields: Sequence[Field], delimiters: Delimiters
    ) -> "Segment":
        """Build a segment from already-decoded fields (used by the parser)."""
        seg = cls(name, delimiters)
        seg._fields = [copy.deepcopy(f) for f in fields]
        return seg

    def get_name(self) -> str:
        return self.name

    @property
    def fields(self) -> List[Field]:
        """A deep copy of the decoded fields; index 0 holds field 1."""
        return copy.deepcopy(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"<Segment {self.name} ({len(self._fields)} fields)>"

    # --------------------------------------------------------------------------
    # writes
    # --------------------------------------------------------------------------

    def set_field(
        self,
        field: int,
        value: Any,
        component: Optional[int] = None,
        subcomponent: Optional[int] = None,
        *,
        repetition: Optional[int] = None,
    ) -> None:
        """
        Set a field, repetition, component or sub-component.

        Parameters
        ----------
        field : int
            1-based field number.
        value : str, int, float or None
            New value. Above sub-component level the value is decoded with the
            segment's delimiters, so "ADT^A08" written to a field yields two
            components.
        component, subcomponent : int or None
            1-based positions below the field.
        repetition : int or None
            1-based repetition. None replaces the whole field when no
            component is given, and means the first repetition otherwise.

        Raises
        ------
        MalformedPathError
            If a position is not a positive int.
        DelimiterError
            If MSH-1 or MSH-2 would change, or if the value holds a delimiter
            its level cannot represent (a field separator anywhere, a
            repetition separator inside one repetition). Run such text
            through codec.escape() first.
        TypeError
            If value is not a str, number or None.
        """
        _check_positions(
            self.name,
            field=field,
            component=component,
            subcomponent=subcomponent,
            repetition=repetition,
        )
        text = as_text(value)
        if subcomponent is not None and component is None:
            component = 1

        if self.name == HEADER_SEGMENT and field in (1, 2):
            self._check_header_field(field, text, component, repetition)
            return

        d = self.delimiters
        self._check_value(field, text, component, subcomponent, repetition)
        _grow(self._fields, field, empty_field)

        if component is None:
            if repetition is None:
                self._fields[field - 1] = decode_field(text, d)
            else:
                reps = self._fields[field - 1]
                _grow(reps, repetition, lambda: [[""]])
                reps[repetition - 1] = decode_repetition(text, d)
            return

        reps = self._fields[field - 1]
        _grow(reps, repetition or 1, lambda: [[""]])
        rep: Repetition = reps[(repetition or 1) - 1]
        _grow(rep, component, lambda: [""])
        if subcomponent is None:
            rep[component - 1] = decode_component(text, d)
            return

        comp: Component = rep[component - 1]
        _grow(comp, subcomponent, str)
        comp[subcomponent - 1] = text

    def set_fields(self, assignments: Iterable[Tuple[Coordinate, Any]]) -> None:
        """
        Apply (Coordinate, value) assignments in order, all or nothing.

        If any assignment fails the segment is left exactly as it was.
        """
        saved = copy.deepcopy(self._fields)
        try:
            for coord, value in assignments:
                self.set_field(
                    coord.field,
                    value,
                    coord.component,
                    coord.subcomponent,
                    repetition=coord.repetition,
                )
        except Exception:
            self._fields = saved
            raise

    def _check_value(
        self,
        field: int,
        text: str,
        component: Optional[int],
        subcomponent: Optional[int],
        repetition: Optional[int],
    ) -> None:
        d = self.delimiters
        reserved = [d.field]
        if component is not None or repetition is not None:
            reserved.append(d.repetition)
        if component is not None:
            reserved.append(d.component)
        if subcomponent is not None:
            reserved.append(d.subcomponent)
        for ch in reserved:
            if ch in text:
                raise DelimiterError(
                    f"{self.name}-{field} value {text!r} contains delimiter {ch!r}; "
                    f"escape it first"
                )

    def _check_header_field(
        self,
        field: int,
        text: str,
        component: Optional[int],
        repetition: Optional[int],
    ) -> None:
        expected = (
            self.delimiters.field if field == 1 else self.delimiters.encoding_characters
        )
        if component is not None or repetition not in (None, 1):
            raise DelimiterError(f"MSH-{field} cannot be addressed below field level")
        if text != expected:
            raise DelimiterError(
                f"MSH-{field} is fixed to {expected!r} for this message, got {text!r}"
            )

    # --------------------------------------------------------------------------
    # reads
    # --------------------------------------------------------------------------

    def get_field(
        self,
        field: int,
        component: Optional[int] = None,
        subcomponent: Optional[int] = None,
        *,
        repetition: Optional[int] = None,
    ) -> str:
        """
        Return the encoded text at a position, or "" when it is out of range.

        Reading a field without a repetition returns every repetition joined by
        the repetition separator.
        """
        _check_positions(
            self.name,
            field=field,
            component=component,
            subcomponent=subcomponent,
            repetition=repetition,
        )
        if subcomponent is not None and component is None:
            component = 1
        if field > len(self._fields):
            return ""

        d = self.delimiters
        reps = self._fields[field - 1]
        if component is None and repetition is None:
            return encode_field(reps, d)

        r = repetition or 1
        if r > len(reps):
            return ""
        rep = reps[r - 1]
        if component is None:
            return encode_repetition(rep, d)
        if component > len(rep):
            return ""
        comp = rep[component - 1]
        if subcomponent is None:
            return encode_component(comp, d)
        if subcomponent > len(comp):
            return ""
        return comp[subcomponent - 1]

    def to_er7(self) -> str:
        """Render this segment as one ER7 line."""
        return encode_segment(self.name, self._fields, self.delimiters)

    def to_dict(self) -> Dict[str, Any]:
        """
        Return the segment as a path-keyed mapping.

        Simple values map to strings, multi-component values to nested
        mappings keyed by component (and sub-component) paths, and repeated
        fields to lists. The result can be passed back to ``Message.set``.

        Examples
        --------
        >>> seg = Segment("PID")
        >>> seg.set_field(5, "DOE^JOHN")
        >>> seg.to_dict()["PID.5"]
        {'PID.5.1': 'DOE', 'PID.5.2': 'JOHN'}
        """
        out: Dict[str, Any] = {}
        for number, reps in enumerate(self._fields, start=1):
            key = f"{self.name}.{number}"
            if len(reps) > 1:
                out[key] = [_repetition_value(key, rep) for rep in reps]
            else:
                out[key] = _repetition_value(key, reps[0])
        return out


def _repetition_value(key: str, rep: Repetition) -> Any:
    if len(rep) == 1 and len(rep[0]) == 1:
        return rep[0][0]
    out: Dict[str, Any] = {}
    for c, comp in enumerate(rep, start=1):
        ckey = f"{key}.{c}"
        if len(comp) == 1:
            out[ckey] = comp[0]
        else:
            out[ckey] = {f"{ckey}.{s}": sub for s, sub in enumerate(comp, start=1)}
    return out
