"""
iso_bitmap.py - Primary/secondary bitmap decoding

Bit positions are numbered from 1 at the most significant bit. Position 1
of the primary bitmap flags a secondary bitmap; it is never a data field.
"""

from typing import List

from iso_cursor import HexCursor, parse_hex_number

BITMAP_CHARS = 16
BITMAP_BITS = 64
SECONDARY_FLAG = 1


def positions_of_set_bits(value: int) -> List[int]:
    """Ascending 1-based positions of the set bits in a 64-bit value."""
    return [
        pos for pos in range(1, BITMAP_BITS + 1)
        if (value >> (BITMAP_BITS - pos)) & 1
    ]


def bitmap_from_positions(positions) -> int:
    """Inverse of positions_of_set_bits for a single 64-bit segment."""
    value = 0
    for pos in positions:
        if not 1 <= pos <= BITMAP_BITS:
            raise ValueError(f"Bit position out of range: {pos}")
        value |= 1 << (BITMAP_BITS - pos)
    return value


def parse_bitmap_segment(hex_text: str) -> List[int]:
    """Positions set in one 16-hex-character bitmap segment."""
    if len(hex_text) != BITMAP_CHARS:
        raise ValueError(f"Bitmap segment must be {BITMAP_CHARS} characters, got {len(hex_text)}")
    return positions_of_set_bits(parse_hex_number(hex_text, "bitmap"))


def read_bitmap(cursor: HexCursor) -> List[int]:
    """
    Consume the primary bitmap and, when flagged, the secondary one.

    Secondary positions are offset by 64, so appending keeps the list
    ascending. The secondary flag itself is dropped from the result.
    """
    positions = parse_bitmap_segment(cursor.take(BITMAP_CHARS))
    if positions and positions[0] == SECONDARY_FLAG:
        secondary = parse_bitmap_segment(cursor.take(BITMAP_CHARS))
        positions = positions[1:] + [pos + BITMAP_BITS for pos in secondary]
    return positions
