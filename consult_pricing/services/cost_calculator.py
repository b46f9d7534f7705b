"""Base-currency cost of consultant line items.

cost = rate * hours_per_week * weeks * allocation / 100

Totals are accumulated with ``math.fsum``: the result is the correctly rounded
sum of the exact item costs, so it does not depend on item order.
"""

from __future__ import annotations

import math
from typing import Callable, Iterable

from consult_pricing.core.errors import LineItemValidationError
from consult_pricing.models.line_item import LineItem

RateLookup = Callable[[str, str], float]


def _check_inputs(item: LineItem, rate: float) -> None:
    if rate < 0:
        raise LineItemValidationError(f"rate must be non-negative (got {rate})")
    if item.hours_per_week < 0:
        raise LineItemValidationError("hours_per_week must be non-negative")
    if item.weeks < 0:
        raise LineItemValidationError("weeks must be non-negative")
    if not 0 <= item.allocation <= 100:
        raise LineItemValidationError("allocation must be within [0, 100]")


def item_cost(item: LineItem, rate: float) -> float:
    _check_inputs(item, rate)
    return rate * item.hours_per_week * item.weeks * (item.allocation / 100)


def total_hours(item: LineItem) -> float:
    return item.hours_per_week * item.weeks


def aggregate(items: Iterable[LineItem], rate_lookup: RateLookup) -> float:
    return math.fsum(
        item_cost(item, rate_lookup(item.country, item.seniority)) for item in items
    )
