# src/hl7_toolkit/paths.py
"""
Field addressing for HL7 v2 messages.

A field path names a position inside a message, e.g. ``MSH.9.2`` (segment
MSH, field 9, component 2). The grammar is::

    SEG[n]? ( .F[r]? ( .C ( .S )? )? )?

where ``[n]`` picks the n-th segment with that name and ``[r]`` a field
repetition. All numbers are 1-based.

Mappings passed to ``Message.set`` are turned into a small tagged tree
(``Scalar`` or ``Composite``) and flattened into ``(Coordinate, str)``
assignments, so the flat form ``{"MSH.9.1": "ADT", "MSH.9.2": "A08"}`` and the
nested form ``{"MSH.9": {"MSH.9.1": "ADT", "MSH.9.2": "A08"}}`` expand to the
same assignments.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any, List, Mapping, Optional, Tuple, Union

from .exceptions import MalformedPathError

__all__ = [
    "Coordinate",
    "Scalar",
    "Composite",
    "PathValue",
    "resolve",
    "as_text",
    "to_path_value",
    "expand",
]

_NUM = r"[0-9]+"
_PATH_RE = re.compile(
    r"^(?P<segment>[A-Z][A-Z0-9]{2})(?:\[(?P<occurrence>" + _NUM + r")\])?"
    r"(?:\.(?P<field>" + _NUM + r")(?:\[(?P<repetition>" + _NUM + r")\])?"
    r"(?:\.(?P<component>" + _NUM + r")"
    r"(?:\.(?P<subcomponent>" + _NUM + r"))?)?)?$"
)


@dataclass(frozen=True)
class Coordinate:
    """
    A resolved field path.

    Attributes
    ----------
    segment : str
        Segment name, e.g. "PID".
    field, component, subcomponent : int or None
        1-based positions; a deeper level requires the shallower ones.
    repetition : int or None
        1-based field repetition; None means "the whole field" for reads and
        whole-field writes, and the first repetition below field level.
    occurrence : int or None
        1-based index among segments sharing the name; None means the first.
    """

    segment: str
    field: Optional[int] = None
    component: Optional[int] = None
    subcomponent: Optional[int] = None
    repetition: Optional[int] = None
    occurrence: Optional[int] = None

    def __post_init__(self) -> None:
        for label, value in (
            ("field", self.field),
            ("component", self.component),
            ("subcomponent", self.subcomponent),
            ("repetition", self.repetition),
            ("occurrence", self.occurrence),
        ):
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise MalformedPathError(self._describe(), f"{label} must be an int")
            if value < 1:
                raise MalformedPathError(self._describe(), f"{label} must be positive")
        if self.component is not None and self.field is None:
            raise MalformedPathError(self._describe(), "component given without field")
        if self.subcomponent is not None and self.component is None:
            raise MalformedPathError(self._describe(), "subcomponent given without component")
        if self.repetition is not None and self.field is None:
            raise MalformedPathError(self._describe(), "repetition given without field")

    def _describe(self) -> str:
        parts = [f"{k}={v}" for k, v in self.__dict__.items() if v is not None]
        return "Coordinate(" + ", ".join(parts) + ")"

    def __str__(self) -> str:
        out = self.segment
        if self.occurrence is not None:
            out += f"[{self.occurrence}]"
        if self.field is not None:
            out += f".{self.field}"
            if self.repetition is not None:
                out += f"[{self.repetition}]"
        if self.component is not None:
            out += f".{self.component}"
        if self.subcomponent is not None:
            out += f".{self.subcomponent}"
        return out

    def contains(self, other: "Coordinate") -> bool:
        """Return True if other addresses this position or one below it."""
        if other.segment != self.segment or other.occurrence != self.occurrence:
            return False
        if self.field is None:
            return True
        if other.field != self.field:
            return False
        if self.repetition is not None and other.repetition != self.repetition:
            return False
        if self.component is None:
            return True
        if other.component != self.component:
            return False
        return self.subcomponent is None or other.subcomponent == self.subcomponent

    def inherit(self, parent: "Coordinate") -> "Coordinate":
        """Fill in the occurrence and repetition a nested key leaves out."""
        out = self
        if out.occurrence is None and parent.occurrence is not None:
            out = replace(out, occurrence=parent.occurrence)
        if (
            out.repetition is None
            and parent.repetition is not None
            and out.field == parent.field
        ):
            out = replace(out, repetition=parent.repetition)
        return out


def resolve(path: Union[str, Coordinate]) -> Coordinate:
    """
    Parse a dotted field path into a Coordinate.

    Parameters
    ----------
    path : str or Coordinate
        A path such as "MSH.9.2", "PID.13[2].1" or "NK1[2]". A Coordinate is
        returned unchanged.

    Returns
    -------
    Coordinate

    Raises
    ------
    MalformedPathError
        If the path does not match the grammar, a number is zero, or a number
        has leading zeros.
    """
    if isinstance(path, Coordinate):
        return path
    if not isinstance(path, str):
        raise MalformedPathError(path, f"expected str, got {type(path).__name__}")

    m = _PATH_RE.match(path)
    if not m:
        raise MalformedPathError(path)

    numbers = {}
    for key in ("field", "component", "subcomponent", "repetition", "occurrence"):
        raw = m.group(key)
        if raw is None:
            continue
        if raw.startswith("0"):
            reason = "positions are 1-based" if int(raw) == 0 else "leading zeros"
            raise MalformedPathError(path, reason)
        numbers[key] = int(raw)
    return Coordinate(segment=m.group("segment"), **numbers)


# ------------------------------------------------------------------------------
# Path-value trees
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class Scalar:
    value: str


@dataclass(frozen=True)
class Composite:
    children: Tuple[Tuple[Coordinate, "PathValue"], ...]


PathValue = Union[Scalar, Composite]


def as_text(value: Any) -> str:
    """Coerce a scalar value to the string stored in a message."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise TypeError(
        f"HL7 values must be str, int, float or None, got {type(value).__name__}"
    )


def to_path_value(path: Coordinate, value: Any) -> PathValue:
    """
    Build the Scalar/Composite tree for one mapping entry.

    Mapping values become Composite nodes whose keys are full paths lying
    under ``path``; list values at field level become one child per
    repetition.

    Raises
    ------
    MalformedPathError
        If a nested key is not under its parent, or a list is given below
        field level.
    TypeError
        If a leaf value is not a str, number or None.
    """
    if isinstance(value, Mapping):
        children = []
        for key, sub in value.items():
            child = resolve(key).inherit(path)
            if not path.contains(child):
                raise MalformedPathError(key, f"nested key is not under {path}")
            children.append((child, to_path_value(child, sub)))
        return Composite(tuple(children))

    if isinstance(value, (list, tuple)):
        if path.field is None or path.component is not None or path.repetition is not None:
            raise MalformedPathError(
                str(path), "repeated values are only accepted at field level"
            )
        children = []
        for index, item in enumerate(value, start=1):
            child = replace(path, repetition=index)
            children.append((child, to_path_value(child, item)))
        return Composite(tuple(children))

    return Scalar(as_text(value))


def _walk(path: Coordinate, node: PathValue, out: List[Tuple[Coordinate, str]]) -> None:
    if isinstance(node, Scalar):
        out.append((path, node.value))
        return
    for child_path, child in node.children:
        _walk(child_path, child, out)


def expand(mapping: Mapping[str, Any]) -> List[Tuple[Coordinate, str]]:
    """
    Flatten a flat or nested mapping into ordered (Coordinate, value) pairs.

    Parameters
    ----------
    mapping : Mapping[str, Any]
        Keys are field paths; values are scalars, nested mappings or lists of
        repetitions.

    Returns
    -------
    List[Tuple[Coordinate, str]]
        Assignments in mapping insertion order.
    """
    if not isinstance(mapping, Mapping):
        raise TypeError(f"mapping must be a Mapping, got {type(mapping).__name__}")
    out: List[Tuple[Coordinate, str]] = []
    for key, value in mapping.items():
        path = resolve(key)
        _walk(path, to_path_value(path, value), out)
    return out
