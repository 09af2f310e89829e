"""
pytest configuration and fixtures for ISO 8583 decoder tests.

Provides:
- tools/ on sys.path so tests import the decoder modules directly
- Hypothesis profiles selected through HYPOTHESIS_PROFILE
- Message builders for hand-assembled test vectors
"""

import os
import sys
from pathlib import Path

import pytest

# Add project paths
sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from hypothesis import settings, Verbosity, Phase

# Default profile: balanced speed and coverage
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
)

# CI profile: more thorough testing
settings.register_profile(
    "ci",
    max_examples=500,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)

# Dev profile: fast iteration
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
)

# Debug profile: verbose output
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "default"))


def bitmap_hex(*positions):
    """Primary (and, if needed, secondary) bitmap hex for the given fields."""
    primary = 0
    secondary = 0
    for pos in positions:
        if pos > 64:
            secondary |= 1 << (128 - pos)
        else:
            primary |= 1 << (64 - pos)
    if secondary:
        primary |= 1 << 63
        return f"{primary:016X}{secondary:016X}"
    return f"{primary:016X}"


def text_hex(text):
    """Hex-encode text one byte per character."""
    return text.encode('latin-1').hex().upper()


@pytest.fixture
def build_message():
    """
    Assemble a message from MTI, field numbers and pre-encoded field bodies.

    Usage:
        msg = build_message('0200', {3: '000000', 4: '000000001000'})
    """
    def _build(mti, fields, tail=''):
        body = ''.join(fields[n] for n in sorted(fields))
        return mti + bitmap_hex(*fields) + body + tail
    return _build


# Markers for test categorization
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
