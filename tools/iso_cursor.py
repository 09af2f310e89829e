"""
iso_cursor.py - Forward-only cursor over a hex-digit message buffer

The backing string never changes; reads advance an offset. A cursor is
owned by exactly one decode call.

Usage:
    from iso_cursor import HexCursor, decode_as_text

    cur = HexCursor("0200...")
    mti = cur.take(4)
    text = decode_as_text("48656C6C6F")  # 'Hello'
"""

import string

from iso_errors import InsufficientData, InvalidLengthPrefix, MalformedHex

HEX_DIGITS = frozenset(string.hexdigits)
DECIMAL_DIGITS = frozenset(string.digits)


def is_hex(text: str) -> bool:
    """True if every character is an ASCII hex digit."""
    return all(c in HEX_DIGITS for c in text)


def decode_as_text(hex_text: str) -> str:
    """
    Map each pair of hex digits to one character, byte value verbatim.

    This is deliberately not a charset decode: 0x80-0xFF come out as the
    matching code points so binary bytes survive display.
    """
    if len(hex_text) % 2:
        raise MalformedHex(f"Odd-length hex string ({len(hex_text)} characters)")
    if not is_hex(hex_text):
        raise MalformedHex(f"Invalid hex digits in {hex_text!r}")
    return ''.join(chr(b) for b in bytes.fromhex(hex_text))


def parse_decimal(text: str, what: str = "length prefix") -> int:
    """Parse an unsigned ASCII-decimal number, rejecting signs and separators."""
    if not text or not all(c in DECIMAL_DIGITS for c in text):
        raise InvalidLengthPrefix(f"Invalid {what}: {text!r}")
    return int(text)


def parse_hex_number(text: str, what: str = "hex value") -> int:
    """Parse an unsigned hex number, rejecting anything int(x, 16) would tolerate."""
    if not text or not is_hex(text):
        raise MalformedHex(f"Invalid {what}: {text!r}")
    return int(text, 16)


class HexCursor:
    """Immutable buffer plus an advancing read offset."""

    def __init__(self, buffer: str):
        self._buf = buffer
        self._pos = 0

    def __len__(self) -> int:
        return len(self._buf) - self._pos

    def __repr__(self) -> str:
        return f"HexCursor(offset={self._pos}, remaining={len(self)})"

    @property
    def offset(self) -> int:
        """Characters consumed so far."""
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self)

    def at_end(self) -> bool:
        return self._pos >= len(self._buf)

    def take(self, n: int) -> str:
        """Consume and return the next n characters; never truncates."""
        if n < 0:
            raise ValueError(f"Cannot take a negative count ({n})")
        if n > len(self):
            raise InsufficientData(n, len(self), self._pos)
        chunk = self._buf[self._pos:self._pos + n]
        self._pos += n
        return chunk

    def take_decimal(self, n: int, what: str = "length prefix") -> int:
        """Consume n characters and parse them as an unsigned decimal."""
        return parse_decimal(self.take(n), what)

    def take_hex_number(self, n: int, what: str = "hex value") -> int:
        """Consume n characters and parse them as an unsigned hex number."""
        return parse_hex_number(self.take(n), what)

    def take_text(self, n: int) -> str:
        """Consume n hex characters and return them converted to text."""
        return decode_as_text(self.take(n))

    def rest(self) -> str:
        """Consume and return everything that is left."""
        return self.take(len(self))
