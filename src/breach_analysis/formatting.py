"""
Fixed-decimal formatting shared by the report sections.

Numbers that end up in report text go through these helpers so the text
is identical for identical input, independent of locale. Ties round half
away from zero on the exact binary value of the float.
"""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

NOT_AVAILABLE = "N/A"


def fixed(value: float, digits: int) -> str:
    """Format ``value`` with exactly ``digits`` decimals."""
    quantum = Decimal(1).scaleb(-digits)
    result = Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)
    if result == 0:
        result = abs(result)
    return f"{result:.{digits}f}"


def round_fixed(value: float, digits: int) -> float:
    """Round ``value`` the same way ``fixed`` does and return a float."""
    return float(fixed(value, digits))


def pct(part: int, total: int) -> str:
    """Percentage of ``part`` in ``total`` with one decimal."""
    if total <= 0:
        return fixed(0.0, 1)
    return fixed(part / total * 100, 1)


def iso(moment: Optional[datetime]) -> str:
    """ISO-8601 text in UTC with a ``Z`` suffix, or ``N/A``."""
    if moment is None:
        return NOT_AVAILABLE
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def join_or(values, empty: str = "none") -> str:
    """Comma-join ``values``, or return ``empty`` when there are none."""
    values = list(values)
    return ", ".join(values) if values else empty


def quoted(values, empty: str = "none") -> str:
    """Comma-join ``values`` wrapped in double quotes."""
    return join_or((f'"{v}"' for v in values), empty)
