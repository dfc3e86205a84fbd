# src/hl7_toolkit/interop.py
"""
Bridge between hl7_toolkit messages and hl7apy.

Provides:
- to_hl7apy: hand a Message to hl7apy (tolerant or strict validation)
- from_hl7apy: read an hl7apy Message back into a Message
"""

from __future__ import annotations

from hl7apy.consts import VALIDATION_LEVEL
from hl7apy.core import Message as HL7apyMessage
from hl7apy.exceptions import HL7apyException
from hl7apy.parser import parse_message as hl7apy_parse_message

from .exceptions import ParseError
from .message import Message, parse_message

__all__ = ["to_hl7apy", "from_hl7apy"]


def to_hl7apy(message: Message, *, strict: bool = False) -> HL7apyMessage:
    """
    Convert a Message into an hl7apy Message.

    Parameters
    ----------
    message : Message
        Message with a leading MSH segment.
    strict : bool, default False
        If True, uses hl7apy STRICT validation. If False, uses TOLERANT validation.

    Returns
    -------
    hl7apy.core.Message

    Raises
    ------
    TypeError
        If message is not an hl7_toolkit Message.
    ParseError
        If hl7apy rejects the message.
    """
    if not isinstance(message, Message):
        raise TypeError(f"message must be hl7_toolkit Message, got {type(message).__name__}")

    # hl7apy expects CR-terminated segments
    text = message.build("\r") + "\r"
    vlevel = VALIDATION_LEVEL.STRICT if strict else VALIDATION_LEVEL.TOLERANT
    try:
        return hl7apy_parse_message(text, find_groups=False, validation_level=vlevel)
    except HL7apyException as e:
        raise ParseError(f"hl7apy rejected the message: {e}") from e


def from_hl7apy(msg: HL7apyMessage) -> Message:
    """
    Convert an hl7apy Message into a Message.

    Raises
    ------
    TypeError
        If msg is not an hl7apy.core.Message.
    """
    if not isinstance(msg, HL7apyMessage):
        raise TypeError(f"msg must be hl7apy.core.Message, got {type(msg).__name__}")
    return parse_message(msg.to_er7())
