"""
iso_errors.py - Error taxonomy for ISO 8583 decoding

Structural errors abort a decode outright. ContainerDecodeError is the one
non-fatal member: the message decoder attaches it to the owning field
instead of raising it.
"""


class DecodeError(ValueError):
    """Base class for every ISO 8583 decode failure."""


class MalformedHex(DecodeError):
    """Input that should be hex digits is not (or has odd length)."""


class InsufficientData(DecodeError):
    """Fewer characters remain than a read requires."""

    def __init__(self, needed: int, remaining: int, offset: int = 0):
        self.needed = needed
        self.remaining = remaining
        self.offset = offset
        super().__init__(
            f"Need {needed} characters at offset {offset}, only {remaining} remain"
        )


class InvalidLengthPrefix(DecodeError):
    """A length prefix is not a valid number."""


class InvalidLength(DecodeError):
    """A length parsed fine but its value is unusable (e.g. zero-length LTV)."""


class MessageLengthMismatch(DecodeError):
    """Declared frame length disagrees with the characters actually present."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Incorrect message len. The expected length is {expected} "
            f"but the actual is {actual}"
        )


class UnimplementedField(DecodeError):
    """The bitmap selects a field the catalog does not describe."""

    def __init__(self, field: int):
        self.field = field
        super().__init__(f"Field {field} is not implemented")


class ContainerDecodeError(DecodeError):
    """A nested container (EMV TLV, private TLV, private LTV) failed to decode."""

    def __init__(self, kind: str, cause: Exception):
        self.kind = kind
        self.cause = cause
        super().__init__(f"Error parsing {kind}: {cause}")
