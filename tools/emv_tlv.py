"""
emv_tlv.py - BER-TLV decoder for EMV chip data (ISO 8583 field 55)

Usage:
    from emv_tlv import decode_emv_tlv

    for entry in decode_emv_tlv("9F2608A1B2C3D4E5F60718"):
        print(entry.render())
"""

import string
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

# Common EMV data objects, enough to make field 55 dumps readable
EMV_TAG_NAMES = {
    '4F': 'Application Identifier (AID)',
    '50': 'Application Label',
    '57': 'Track 2 Equivalent Data',
    '5A': 'Application PAN',
    '5F20': 'Cardholder Name',
    '5F24': 'Application Expiration Date',
    '5F25': 'Application Effective Date',
    '5F2A': 'Transaction Currency Code',
    '5F34': 'PAN Sequence Number',
    '70': 'Record Template',
    '71': 'Issuer Script Template 1',
    '72': 'Issuer Script Template 2',
    '77': 'Response Message Template Format 2',
    '82': 'Application Interchange Profile',
    '84': 'Dedicated File Name',
    '8A': 'Authorisation Response Code',
    '91': 'Issuer Authentication Data',
    '95': 'Terminal Verification Results',
    '9A': 'Transaction Date',
    '9C': 'Transaction Type',
    '9F02': 'Amount, Authorised',
    '9F03': 'Amount, Other',
    '9F06': 'Application Identifier (Terminal)',
    '9F09': 'Application Version Number',
    '9F10': 'Issuer Application Data',
    '9F1A': 'Terminal Country Code',
    '9F1E': 'Interface Device Serial Number',
    '9F26': 'Application Cryptogram',
    '9F27': 'Cryptogram Information Data',
    '9F33': 'Terminal Capabilities',
    '9F34': 'CVM Results',
    '9F35': 'Terminal Type',
    '9F36': 'Application Transaction Counter',
    '9F37': 'Unpredictable Number',
    '9F41': 'Transaction Sequence Counter',
    '9F53': 'Transaction Category Code',
    '9F6E': 'Form Factor Indicator',
}


MAX_NESTING = 16


class EmvTlvError(ValueError):
    """Field 55 content is not well-formed BER-TLV."""


@dataclass
class EmvTlvEntry:
    """A single BER-TLV data object."""
    tag: str
    length: int
    value: str
    children: List['EmvTlvEntry'] = field(default_factory=list)

    @property
    def name(self) -> str:
        return EMV_TAG_NAMES.get(self.tag, '')

    def render(self, indent: int = 1) -> str:
        prefix = '\t' * indent
        label = f"{prefix}Tag: {self.tag:4} | Len: {self.length:3} | {self.name}".rstrip(' |')
        if self.children:
            lines = [label]
            for child in self.children:
                lines.append(child.render(indent + 1))
            return '\n'.join(lines)
        return f"{label} | Val: {self.value}"

    def to_dict(self) -> Dict[str, Any]:
        d = {'tag': self.tag, 'length': self.length, 'value': self.value}
        if self.name:
            d['name'] = self.name
        if self.children:
            d['children'] = [c.to_dict() for c in self.children]
        return d


def _read_tag(data: bytes, pos: int) -> Tuple[bytes, int]:
    """Read a tag, following multi-byte continuation bits."""
    start = pos
    first = data[pos]
    pos += 1
    if (first & 0x1F) == 0x1F:
        while True:
            if pos >= len(data):
                raise EmvTlvError(f"Truncated tag at byte {start}")
            b = data[pos]
            pos += 1
            if not b & 0x80:
                break
    return data[start:pos], pos


def _read_length(data: bytes, pos: int) -> Tuple[int, int]:
    """Read a short- or long-form length."""
    if pos >= len(data):
        raise EmvTlvError(f"Missing length at byte {pos}")
    b = data[pos]
    pos += 1
    if b < 0x80:
        return b, pos
    num_bytes = b & 0x7F
    if num_bytes == 0 or pos + num_bytes > len(data):
        raise EmvTlvError(f"Invalid long-form length at byte {pos - 1}")
    length = int.from_bytes(data[pos:pos + num_bytes], 'big')
    return length, pos + num_bytes


def parse_tlv(data: bytes, depth: int = 0) -> List[EmvTlvEntry]:
    """Parse raw bytes into a list of TLV entries (constructed tags recurse)."""
    if depth > MAX_NESTING:
        raise EmvTlvError(f"Templates nested deeper than {MAX_NESTING} levels")
    entries = []
    pos = 0
    while pos < len(data):
        if data[pos] in (0x00, 0xFF):
            pos += 1
            continue
        tag, pos = _read_tag(data, pos)
        length, pos = _read_length(data, pos)
        if pos + length > len(data):
            raise EmvTlvError(
                f"Tag {tag.hex().upper()} declares {length} bytes, only {len(data) - pos} remain"
            )
        value = data[pos:pos + length]
        pos += length

        entry = EmvTlvEntry(tag.hex().upper(), length, value.hex().upper())
        if tag[0] & 0x20:
            entry.children = parse_tlv(value, depth + 1)
        entries.append(entry)
    return entries


def decode_emv_tlv(hex_text: str) -> List[EmvTlvEntry]:
    """Decode a hex string of EMV BER-TLV data."""
    if len(hex_text) % 2 or not all(c in string.hexdigits for c in hex_text):
        raise EmvTlvError(f"Invalid hex data for EMV TLV: {hex_text!r}")
    return parse_tlv(bytes.fromhex(hex_text))
