import math
import re
from typing import Optional

# Leading decimal literal, e.g. "95", "-1.5e3", ".7" (trailing text is ignored)
_LEADING_NUMBER = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def parse_leading_float(raw: Optional[str]) -> float:
    """Parse the longest leading number in ``raw``; NaN when there is none.

    "95 mg" -> 95.0, " 4.5" -> 4.5, "<30" -> nan, "POS" -> nan.
    """
    if raw is None:
        return math.nan
    m = _LEADING_NUMBER.match(str(raw).strip())
    if not m:
        return math.nan
    try:
        return float(m.group(0))
    except (OverflowError, ValueError):
        return math.nan


def parse_finite_float(raw: Optional[str]) -> Optional[float]:
    num = parse_leading_float(raw)
    return num if math.isfinite(num) else None
