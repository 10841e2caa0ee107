"""Numeric coercion for spreadsheet- and form-sourced money values."""

import math
import re
from decimal import Decimal

_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def to_number(value) -> float:
    """Coerce *value* to a float, returning 0.0 for anything unusable.

    Blank, ``None``, non-numeric and non-finite inputs all become 0.0.  Strings
    are read by their leading numeric prefix, so ``"1250.50 Rs"`` is 1250.5.
    Never raises.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value.strip())
        if not match:
            return 0.0
        number = float(match.group(0))
    else:
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number
