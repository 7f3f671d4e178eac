"""Utility functions for emotion timeline normalization."""

import math
import re
from collections.abc import Callable
from datetime import date
from typing import Any


# Leading numeric prefix accepted by parse_float, e.g. " -12.5e1abc" -> "-12.5e1"
_FLOAT_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INFINITY_PREFIX = re.compile(r"([+-]?)Infinity")


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round to ndigits decimals with halves rounded toward +infinity.
    
    Python's built-in round() rounds halves to even; stored analytics were
    produced with halves rounded up, so that rule is reproduced here.
    
    Args:
        value: Finite number to round.
        ndigits: Number of decimal places to keep.
    
    Returns:
        Rounded value as a float.
    
    Examples:
        >>> round_half_up(12.5)
        13.0
        >>> round_half_up(-12.5)
        -12.0
        >>> round_half_up(27.45, 1)
        27.5
    """
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def parse_float(text: str) -> float:
    """Parse the leading number of a string.
    
    Leading whitespace is skipped and trailing garbage is ignored, so
    "12abc" parses as 12.0. Returns NaN when no number can be read.
    
    Args:
        text: String to parse.
    
    Returns:
        Parsed value, possibly infinite or NaN.
    
    Examples:
        >>> parse_float(" 42.5 points")
        42.5
        >>> parse_float("-Infinity")
        -inf
        >>> math.isnan(parse_float("n/a"))
        True
    """
    stripped = text.lstrip()
    match = _FLOAT_PREFIX.match(stripped)
    if match:
        return float(match.group(0))
    
    match = _INFINITY_PREFIX.match(stripped)
    if match:
        return -math.inf if match.group(1) == "-" else math.inf
    
    return math.nan


def to_number(value: Any) -> float:
    """Coerce a loosely typed JSON value to a number.
    
    Booleans and containers are not numbers. Strings are parsed with
    parse_float, and a blank string is not a number.
    
    Args:
        value: Value to coerce.
    
    Returns:
        Numeric value, or NaN when the value is not numeric.
    """
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, float):
        return value
    if isinstance(value, int):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    if isinstance(value, str):
        if not value.strip():
            return math.nan
        return parse_float(value)
    return math.nan


def is_finite_number(value: Any) -> bool:
    """Return True for a finite int or float that is not a bool.

    Ints too large to convert to a float are not finite numbers.
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        try:
            float(value)
        except OverflowError:
            return False
        return True
    return isinstance(value, float) and math.isfinite(value)


def is_sequence(value: Any) -> bool:
    """Return True for JSON arrays (lists and tuples)."""
    return isinstance(value, (list, tuple))


def today_string(today: Callable[[], date] | None = None) -> str:
    """Return the current date as YYYY-MM-DD.
    
    Args:
        today: Optional clock returning a date; defaults to date.today.
    
    Returns:
        ISO formatted date string.
    """
    current = today() if today is not None else date.today()
    return current.strftime("%Y-%m-%d")
