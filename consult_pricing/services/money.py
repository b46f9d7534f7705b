"""Money / rounding helpers.

Only used at the presentation edge: pricing arithmetic stays unrounded so
conversion to the base currency is an exact identity.
"""

from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_money(value: float, currency: str) -> str:
    """Render ``value`` as e.g. ``'57,600.00 EUR'``."""
    return f"{round2(value):,.2f} {currency}"
