"""
iso_decoder.py - ISO 8583 message decoder

Decodes a hex-digit ISO 8583 message in one pass:
optional length/header frame -> MTI -> bitmap -> catalog fields -> tail.

Usage:
    from iso_decoder import decode

    result = decode(message_hex, include_header=True, private_ltv_mode=True)
    for line in result.render():
        print(line)

Structural problems raise a DecodeError subclass and no result is built.
Failures inside container fields (48, 55, 121) are recorded on the field
and decoding carries on.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from emv_tlv import decode_emv_tlv
from iso_bitmap import read_bitmap
from iso_cursor import HexCursor, decode_as_text, is_hex
from iso_errors import ContainerDecodeError, MalformedHex, MessageLengthMismatch, UnimplementedField
from iso_fields import DEFAULT_CATALOG, EMV, PRIVATE, FieldSpec
from private_formats import decode_private_ltv, decode_private_tlv

LOG = logging.getLogger(__name__)
LOG.addHandler(logging.NullHandler())

LENGTH_CHARS = 4
HEADER_CHARS = 10
MTI_CHARS = 4

_STRIP_RE = re.compile(r'["\'\s]')


def normalize(raw_text: str) -> str:
    """Drop quote and whitespace characters pasted along with a capture."""
    return _STRIP_RE.sub('', raw_text)


@dataclass(frozen=True)
class DecodeMode:
    """Per-call switches. Private TLV wins when both private modes are set."""
    include_header: bool = False
    private_tlv: bool = False
    private_ltv: bool = False


@dataclass(frozen=True)
class DecodedField:
    """One decoded data element."""
    number: int
    name: str
    length: int
    display_value: str
    raw_value: str
    consumed: int
    sub_entries: Tuple[Any, ...] = ()
    container_error: Optional[ContainerDecodeError] = None

    def render(self) -> List[str]:
        lines = [
            f"Field {self.number:3} | Length: {self.length:3} | "
            f"{self.name:25} | {self.display_value}"
        ]
        if self.container_error is not None:
            lines.append(str(self.container_error))
        lines.extend(entry.render() for entry in self.sub_entries)
        return lines

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'number': self.number,
            'name': self.name,
            'length': self.length,
            'value': self.display_value,
        }
        if self.sub_entries:
            d['entries'] = [e.to_dict() for e in self.sub_entries]
        if self.container_error is not None:
            d['error'] = str(self.container_error)
        return d


@dataclass(frozen=True)
class ParseResult:
    """Everything one decode call extracted from a message."""
    mti: str
    field_positions: Tuple[int, ...]
    fields: Tuple[DecodedField, ...]
    unparsed_tail: str
    consumed: int
    declared_length: Optional[int] = None
    header: Optional[str] = None

    def get_field(self, number: int) -> Optional[DecodedField]:
        for f in self.fields:
            if f.number == number:
                return f
        return None

    def render(self) -> List[str]:
        lines = []
        if self.declared_length is not None:
            lines.append(f"Length Of Message: {self.declared_length}")
        if self.header is not None:
            lines.append(f"Header: {self.header}")
        lines.append(f"MTI: {self.mti}")
        lines.append(f"First Bit Map: {list(self.field_positions)}")
        for f in self.fields:
            lines.extend(f.render())
        if self.unparsed_tail:
            lines.append(f"Not parsed Part: {self.unparsed_tail}")
        return lines

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {}
        if self.declared_length is not None:
            d['length'] = self.declared_length
        if self.header is not None:
            d['header'] = self.header
        d['mti'] = self.mti
        d['bitmap'] = list(self.field_positions)
        d['fields'] = [f.to_dict() for f in self.fields]
        d['unparsed'] = self.unparsed_tail
        return d


EmvDecoder = Callable[[str], Sequence[Any]]


class MessageDecoder:
    """
    Decoder bound to a field catalog and an EMV TLV sub-decoder.

    Instances hold no per-message state, so one decoder can serve any
    number of decode calls.
    """

    def __init__(self, catalog: Optional[Mapping[int, FieldSpec]] = None,
                 emv_decoder: EmvDecoder = decode_emv_tlv):
        self.catalog = DEFAULT_CATALOG if catalog is None else catalog
        self.emv_decoder = emv_decoder

    def decode(self, raw_text: str, mode: DecodeMode = DecodeMode()) -> ParseResult:
        cursor = HexCursor(normalize(raw_text))

        declared_length = None
        header = None
        if mode.include_header:
            declared_length, header = self._read_frame(cursor)

        mti = self._take_hex(cursor, MTI_CHARS, "MTI")
        LOG.debug("MTI %s", mti)

        positions = read_bitmap(cursor)
        LOG.debug("Bitmap positions %s", positions)

        fields = [self._decode_field(cursor, number, mode) for number in positions]

        consumed = cursor.offset
        tail = cursor.rest()
        if tail:
            LOG.debug("%d characters left unparsed", len(tail))

        return ParseResult(
            mti=mti,
            field_positions=tuple(positions),
            fields=tuple(fields),
            unparsed_tail=tail,
            consumed=consumed,
            declared_length=declared_length,
            header=header,
        )

    @staticmethod
    def _take_hex(cursor: HexCursor, n: int, what: str) -> str:
        chunk = cursor.take(n)
        if not is_hex(chunk):
            raise MalformedHex(f"Invalid {what}: {chunk!r}")
        return chunk

    def _read_frame(self, cursor: HexCursor) -> Tuple[int, str]:
        """Check the 2-byte length prefix against the buffer, then take the header."""
        declared = cursor.take_hex_number(LENGTH_CHARS, "message length") * 2
        if declared != cursor.remaining:
            raise MessageLengthMismatch(declared, cursor.remaining)
        header = self._take_hex(cursor, HEADER_CHARS, "header")
        LOG.debug("Frame length %d, header %s", declared, header)
        return declared, header

    def _decode_field(self, cursor: HexCursor, number: int, mode: DecodeMode) -> DecodedField:
        spec = self.catalog.get(number)
        if spec is None:
            raise UnimplementedField(number)

        start = cursor.offset
        length, count = spec.resolve(cursor)
        raw_value = cursor.take(count)
        value = decode_as_text(raw_value) if spec.text else raw_value
        LOG.debug("Field %d: length %d, consumed %d", number, length, count)

        sub_entries, error = self._decode_container(spec, value, mode)

        return DecodedField(
            number=number,
            name=spec.name,
            length=length,
            display_value=value[:length],
            raw_value=raw_value,
            consumed=cursor.offset - start,
            sub_entries=tuple(sub_entries),
            container_error=error,
        )

    def _decode_container(self, spec: FieldSpec, value: str,
                          mode: DecodeMode) -> Tuple[Sequence[Any], Optional[ContainerDecodeError]]:
        if spec.container == EMV:
            kind, sub_decoder = 'TLV', self.emv_decoder
        elif spec.container == PRIVATE and mode.private_tlv:
            kind, sub_decoder = 'private tlv', decode_private_tlv
        elif spec.container == PRIVATE and mode.private_ltv:
            kind, sub_decoder = 'LTV', decode_private_ltv
        else:
            return (), None

        try:
            return sub_decoder(value), None
        except ValueError as e:
            LOG.warning("Field %d: %s decode failed: %s", spec.number, kind, e)
            return (), ContainerDecodeError(kind, e)


def decode(raw_text: str, include_header: bool = False,
           private_tlv_mode: bool = False, private_ltv_mode: bool = False,
           catalog: Optional[Mapping[int, FieldSpec]] = None,
           emv_decoder: EmvDecoder = decode_emv_tlv) -> ParseResult:
    """
    Convenience function to decode one message.

    Args:
        raw_text: Hex digits, possibly wrapped in quotes/whitespace
        include_header: Message starts with a 2-byte length and 5-byte header
        private_tlv_mode: Decode fields 48/121 as private TLV
        private_ltv_mode: Decode fields 48/121 as private LTV
        catalog: Field catalog (defaults to DEFAULT_CATALOG)
        emv_decoder: Field 55 sub-decoder

    Returns:
        ParseResult
    """
    mode = DecodeMode(include_header, private_tlv_mode, private_ltv_mode)
    return MessageDecoder(catalog, emv_decoder).decode(raw_text, mode)
