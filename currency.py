"""Rupiah notation: dot for thousands, comma for decimals."""

import math
import re
from typing import Optional

_NON_NUMERIC = re.compile(r"[^\d.\-]")


def parse(display) -> float:
    """Parse a display string such as ``"Rp 15.000,75"`` into a float.

    Never raises; anything unparseable becomes 0.
    """
    if display is None:
        return 0.0
    if isinstance(display, (int, float)):
        value = float(display)
        return value if math.isfinite(value) else 0.0

    text = str(display).replace(".", "").replace(",", ".")
    text = _NON_NUMERIC.sub("", text)
    try:
        return float(text)
    except ValueError:
        return 0.0


def format(value: float, fraction_digits: int = 0) -> str:
    """Render ``value`` with dot grouping and ``fraction_digits`` decimals.

    Only the string is rounded; callers keep the unrounded value.
    """
    sign = "-" if value < 0 and round(abs(value), fraction_digits) != 0 else ""
    grouped = f"{abs(value):,.{fraction_digits}f}"
    # Swap the en-US separators for the Indonesian ones
    grouped = grouped.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}{grouped}"


def format_rupiah(amount: float) -> str:
    """Whole-rupiah label used in tables and summaries, e.g. ``Rp 14.000``."""
    return "Rp " + format(abs(amount), 0)


def input_text(value: float) -> str:
    """Text for an input box, keeping cents only when present."""
    return format(value, 2 if value % 1 else 0)


def edited_amount(text, current: float) -> Optional[float]:
    """Amount typed into a box showing ``input_text(current)``.

    Returns None when the text still parses to what the box displayed, so
    the unrounded stored value is kept.
    """
    value = parse(text)
    if value == parse(input_text(current)):
        return None
    return value
