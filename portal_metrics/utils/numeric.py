"""
Numeric coercion helpers.

Raw aggregate values arrive from two database drivers in unpredictable
shapes: ``None``, numeric strings, ``Decimal``, driver wrapper objects that
carry the number on a ``.value`` attribute. Every formula downstream goes
through these helpers, so a malformed value degrades a single figure to its
fallback instead of aborting the whole computation.

None of the functions in this module raise.
"""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any

# Wrapper objects may nest (a wrapper holding a wrapper); cap the unwrapping.
_MAX_UNWRAP_DEPTH = 5


def _finite_or(number: float, fallback: float) -> float:
    return number if math.isfinite(number) else fallback


def _parse_text(text: str, fallback: float) -> float:
    text = text.strip()
    if not text:
        return fallback
    try:
        return _finite_or(float(text), fallback)
    except (TypeError, ValueError, OverflowError):
        return fallback


def _coerce(value: Any, fallback: float, depth: int) -> float:
    if value is None:
        return fallback

    if isinstance(value, bool):
        return 1.0 if value else 0.0

    if isinstance(value, (int, float)):
        try:
            return _finite_or(float(value), fallback)
        except OverflowError:
            return fallback

    if isinstance(value, str):
        return _parse_text(value, fallback)

    if isinstance(value, bytes):
        try:
            return _parse_text(value.decode("utf-8"), fallback)
        except UnicodeDecodeError:
            return fallback

    if depth < _MAX_UNWRAP_DEPTH:
        try:
            inner = getattr(value, "value")
        except Exception:
            inner = None
        else:
            return _coerce(inner, fallback, depth + 1)

    try:
        text = str(value)
    except Exception:
        return fallback
    return _parse_text(text, fallback)


def to_number(value: Any, fallback: float = 0.0) -> float:
    """
    Convert a raw driver value into a finite float.

    Args:
        value: Anything a database driver may hand back
        fallback: Returned when the value is missing or not numeric

    Returns:
        The coerced float, or ``fallback``

    Example:
        >>> to_number("42.5")
        42.5
        >>> to_number(Decimal("7"))
        7.0
        >>> to_number("n/a", fallback=-1)
        -1
    """
    return _coerce(value, fallback, 0)


def to_int(value: Any, fallback: int = 0) -> int:
    """Coerce a count-like value to ``int`` (rounded to the nearest integer)."""
    number = to_number(value, float(fallback))
    try:
        return int(round(number))
    except (OverflowError, ValueError):
        return fallback


def to_fixed_text(value: Any, digits: int = 2, fallback_text: str = "0.00") -> str:
    """
    Render a value rounded to ``digits`` decimal places.

    Rounds half away from zero. Returns ``fallback_text`` when the value
    cannot be coerced to a number.

    Example:
        >>> to_fixed_text(0.125)
        '0.13'
        >>> to_fixed_text(None)
        '0.00'
    """
    sentinel = object()
    number = _coerce(value, sentinel, 0)  # type: ignore[arg-type]
    if number is sentinel:
        return fallback_text

    digits = max(0, int(digits))
    try:
        with localcontext() as ctx:
            # wide enough for any finite float
            ctx.prec = 400
            quantum = Decimal(1).scaleb(-digits)
            rounded = Decimal(repr(number)).quantize(quantum, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return fallback_text

    if rounded == 0:
        rounded = abs(rounded)
    return f"{rounded:f}"


def round_to(value: Any, digits: int = 2) -> float:
    """JSON-number form of :func:`to_fixed_text`."""
    return float(to_fixed_text(value, digits, fallback_text="0"))
