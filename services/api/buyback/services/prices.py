"""Price cell normalization.

Sheet cells arrive as display strings ("$1,234.50", "", "#REF!", "N/A").
parse_price() turns them into a float or None and never raises.
"""

import math
import re

# Sheet formula errors (#REF!, #N/A, #VALUE!, ...) mean "no price".
_ERROR_MARKERS = ("#REF", "#N/A", "#VALUE", "#DIV/0", "#ERROR", "#NAME")

_STRIP_CHARS = re.compile(r"[$€£,]")

# Leading numeric literal, parsed the way spreadsheet exports are read:
# "120", "120.5", ".5", "1e3", "120 est" -> 120
_NUMBER_PREFIX = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def parse_price(value: str | None) -> float | None:
    """Parse a raw price cell.

    Args:
        value: Raw cell string (may be None when the row is short).

    Returns:
        Non-negative float, or None when the cell is blank, an error marker,
        not a number, negative, or overflows to infinity.
    """
    if value is None:
        return None
    raw = value.strip()
    if not raw:
        return None
    upper = raw.upper()
    if any(marker in upper for marker in _ERROR_MARKERS):
        return None

    cleaned = _STRIP_CHARS.sub("", raw).strip()
    match = _NUMBER_PREFIX.match(cleaned)
    if not match:
        return None

    price = float(match.group(0))
    if price < 0 or not math.isfinite(price):
        return None
    return price
