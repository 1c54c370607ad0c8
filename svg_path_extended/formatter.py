"""Number formatting for path data.

Path data has no exponent notation, so the shortest round-trip form that
``repr`` produces is expanded into plain decimal digits when needed.
"""

from __future__ import annotations

import math
from decimal import Decimal


def _strip_negative_zero(text: str) -> str:
    if text.startswith("-") and not text.strip("-0."):
        return text[1:]
    return text


def format_num(value: float, precision: int | None = None) -> str:
    """Format a finite number as path-data text.

    With ``precision`` the result has exactly that many decimals; otherwise it
    is the shortest text that parses back to the same float.
    """
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"Cannot format non-finite number {value!r}")

    if precision is not None:
        return _strip_negative_zero(f"{value:.{precision}f}")

    text = repr(value)
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    if text.endswith(".0"):
        text = text[:-2]
    return _strip_negative_zero(text)
