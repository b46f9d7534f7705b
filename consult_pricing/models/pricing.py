from __future__ import annotations

from typing import List

from pydantic import BaseModel

from .rates import RateStatus


class LineItemView(BaseModel):
    id: int
    name: str
    country: str
    seniority: str
    hours_per_week: float
    weeks: float
    allocation: float
    total_hours: float
    complete: bool
    # hourly rate applied, base and display currency
    rate_base: float
    rate_display: float
    cost_base: float
    cost_display: float


class PricingView(BaseModel):
    """Derived prices for the whole session; never stored, always recomputed."""

    base_currency: str
    display_currency: str
    exchange_rate: float
    items: List[LineItemView]
    total_base: float
    total_display: float
    incomplete: bool
    rates: RateStatus
