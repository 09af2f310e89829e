"""
private_formats.py - Vendor-private container formats for fields 48/121

Two independent layouts are supported:

LTV (Length-Tag-Value), all lengths decimal:
    LL TT VV..VV     LL counts the tag byte plus the value bytes

TLV (Tag-Length-Value), every part hex-encoded text:
    TTTT LLLL VV..VV  tag is 2 characters, LLLL decodes to 2 hex digits
                      giving the value length in bytes

Both loops consume the sub-buffer until it is exactly exhausted.
"""

from dataclasses import dataclass
from typing import Any, Dict, List

from iso_cursor import HexCursor, decode_as_text, parse_hex_number
from iso_errors import DecodeError, InvalidLength, InvalidLengthPrefix


@dataclass(frozen=True)
class LtvEntry:
    """One private LTV record."""
    length: int
    tag: int
    raw_value: str

    @property
    def text(self) -> str:
        """Value converted from hex to text."""
        return decode_as_text(self.raw_value)

    def render(self) -> str:
        try:
            shown = f"-> {self.text}"
        except DecodeError as e:
            shown = str(e)
        return f"\tLen: {self.length:3} | Tag: {self.tag:3} | Val: {self.raw_value} {shown}"

    def to_dict(self) -> Dict[str, Any]:
        return {'length': self.length, 'tag': self.tag, 'value': self.raw_value}


@dataclass(frozen=True)
class PrivateTlvEntry:
    """One private TLV record (tag and value already converted to text)."""
    tag: str
    length: int
    raw_value: str

    def render(self) -> str:
        return f"\tTag: {self.tag:3} | Len: {self.length:3} | Val: {self.raw_value}"

    def to_dict(self) -> Dict[str, Any]:
        return {'tag': self.tag, 'length': self.length, 'value': self.raw_value}


def decode_private_ltv(hex_text: str) -> List[LtvEntry]:
    """
    Decode a private LTV container.

    Raises InvalidLengthPrefix on non-decimal length/tag digits,
    InvalidLength for a zero length (the record cannot hold its own tag)
    and InsufficientData when a record runs past the end.
    """
    cursor = HexCursor(hex_text)
    entries = []
    while not cursor.at_end():
        length = cursor.take_decimal(2, "LTV length")
        tag = cursor.take_decimal(2, "LTV tag")
        if length == 0:
            raise InvalidLength(f"LTV record with tag {tag} has zero length")
        raw_value = cursor.take((length - 1) * 2)
        entries.append(LtvEntry(length, tag, raw_value))
    return entries


def decode_private_tlv(hex_text: str) -> List[PrivateTlvEntry]:
    """
    Decode a private TLV container.

    Raises MalformedHex on bad hex, InvalidLengthPrefix when the decoded
    length is not two hex digits, InsufficientData on truncation.
    """
    cursor = HexCursor(hex_text)
    entries = []
    while not cursor.at_end():
        tag = cursor.take_text(4)
        length_text = cursor.take_text(4)
        try:
            length = parse_hex_number(length_text, "private TLV length")
        except DecodeError as e:
            raise InvalidLengthPrefix(str(e)) from e
        value = cursor.take_text(length * 2)
        entries.append(PrivateTlvEntry(tag, length, value))
    return entries
