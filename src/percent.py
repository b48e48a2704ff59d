"""Percent engine for BPM pitch-shift values.

Converts a (source, destination) BPM pair into the percentage change
``(dest - src) / src * 100`` using exact rational arithmetic. Rounding is
round-half-away-from-zero at a configurable number of decimal places, so the
same primitive drives both the 1-decimal range test and the 2-decimal display.
"""

from __future__ import annotations
import math
import numbers
from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from typing import Optional

DISPLAY_DECIMALS = 2
RANGE_DECIMALS = 1


@dataclass(frozen=True)
class PercentResult:
    """Text renderings of a single percentage change."""
    value_text: str          # unsigned, e.g. "0.82"
    value_text_signed: str   # always signed, e.g. "+0.82"
    label: str               # e.g. "122 -> 123 = +0.82%"

    def to_dict(self) -> dict:
        return {
            "value_text": self.value_text,
            "value_text_signed": self.value_text_signed,
            "label": self.label,
        }


def _is_finite(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, numbers.Rational):
        return True  # math.isfinite overflows past float range
    if isinstance(value, Decimal):
        return value.is_finite()
    try:
        return math.isfinite(value)
    except (TypeError, ValueError):
        return False


def round_percent_scaled(src, dest, decimals: int) -> int:
    """Return the percent change scaled by ``10 ** decimals`` as a rounded integer.

    The ratio is held as an exact numerator/denominator pair. The rounding
    decision compares ``2 * |remainder|`` against the denominator, and ties
    move away from zero.

    Args:
        src: Source BPM (non-zero)
        dest: Destination BPM
        decimals: Number of decimal places kept in the scaled result

    Returns:
        The signed scaled percentage, or 0 when ``src`` is zero
    """
    if src == 0:
        return 0

    ratio = (Fraction(dest) - Fraction(src)) * 100 * 10 ** decimals / Fraction(src)
    num, den = ratio.numerator, ratio.denominator  # den is always positive

    quot, rem = divmod(abs(num), den)
    if rem and rem * 2 >= den:
        quot += 1

    return quot if num >= 0 else -quot


def format_scaled(scaled: int, decimals: int) -> str:
    """Render a scaled integer as a fixed-point decimal string."""
    negative = scaled < 0
    magnitude = -scaled if negative else scaled
    sign = "-" if negative else ""

    if decimals == 0:
        return f"{sign}{magnitude}"

    int_part, frac_part = divmod(magnitude, 10 ** decimals)
    return f"{sign}{int_part}.{str(frac_part).zfill(decimals)}"


def format_scaled_signed(scaled: int, decimals: int) -> str:
    """Like :func:`format_scaled` but always prefixed with '+' or '-'."""
    sign = "-" if scaled < 0 else "+"
    return f"{sign}{format_scaled(abs(scaled), decimals)}"


def _operand_text(value) -> str:
    """Render integral floats and Decimals without a trailing '.0'."""
    if not isinstance(value, int) and value == int(value):
        return str(int(value))
    return str(value)


def format_label(src, dest, signed_text: str) -> str:
    return f"{_operand_text(src)} -> {_operand_text(dest)} = {signed_text}%"


def compute_percent(src, dest) -> Optional[PercentResult]:
    """Compute the pitch change needed to go from ``src`` BPM to ``dest`` BPM.

    Returns None when either operand is not a finite number or ``src`` is not
    positive; callers should show a placeholder rather than an older result.
    """
    if not _is_finite(src) or not _is_finite(dest) or src <= 0:
        return None

    scaled = round_percent_scaled(src, dest, DISPLAY_DECIMALS)
    value_text = format_scaled(abs(scaled), DISPLAY_DECIMALS)
    value_text_signed = format_scaled_signed(scaled, DISPLAY_DECIMALS)

    return PercentResult(
        value_text=value_text,
        value_text_signed=value_text_signed,
        label=format_label(src, dest, value_text_signed),
    )
