"""Parsing and clamping of free-text BPM and pitch fields."""

from __future__ import annotations
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

BPM_MIN = 40
BPM_MAX = 300
PITCH_MIN = Decimal("0")
PITCH_MAX = Decimal("50")

_INTEGER_PREFIX = re.compile(r"\s*([+-]?\d+)")
_DECIMAL_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def clamp(value, low, high):
    """Clamp value into [low, high]."""
    return min(max(value, low), high)


def parse_integer_input(text: Optional[str]) -> Optional[int]:
    """Parse the leading integer of a text field.

    Trailing garbage is ignored ("128bpm" -> 128). Blank or non-numeric
    text gives None so the caller can keep its last valid value.
    """
    if text is None or not text.strip():
        return None
    match = _INTEGER_PREFIX.match(text)
    if not match:
        return None
    return int(match.group(1))


def parse_decimal_input(text: Optional[str]) -> Optional[Decimal]:
    """Parse the leading decimal number of a text field, or None."""
    if text is None or not text.strip():
        return None
    match = _DECIMAL_PREFIX.match(text)
    if not match:
        return None
    try:
        return Decimal(match.group(1))
    except InvalidOperation:
        return None


def round_pitch(value) -> Decimal:
    """Round a pitch value to one decimal place, halves going up."""
    return Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def clamp_bpm(value: int) -> int:
    return clamp(value, BPM_MIN, BPM_MAX)


def clamp_pitch(value) -> Decimal:
    # Clamp before rounding; quantize fails on huge exponents like "1e99"
    return round_pitch(clamp(Decimal(str(value)), PITCH_MIN, PITCH_MAX))
