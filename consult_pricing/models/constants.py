"""Pricing constants: currencies, fallback exchange rates and the rate card.

MVP keeps these as plain mappings; the rate card and fallback table are
immutable for the lifetime of the process.
"""

from types import MappingProxyType
from typing import Dict, Mapping, Tuple

BASE_CURRENCY = "EUR"

# Rate per 1 unit of BASE_CURRENCY. Used before the first successful fetch and
# whenever the live provider fails.
FALLBACK_RATES: Mapping[str, float] = MappingProxyType(
    {
        "EUR": 1.0,
        "USD": 1.08,
        "GBP": 0.87,
        "SEK": 11.3,
    }
)

SUPPORTED_CURRENCIES: Tuple[str, ...] = tuple(FALLBACK_RATES)

DEFAULT_SOURCE = "European Central Bank"
FALLBACK_SUFFIX = " (fallback)"

# Hourly rates in BASE_CURRENCY, keyed country -> seniority.
RATE_CARD: Mapping[str, Mapping[str, float]] = MappingProxyType(
    {
        "Sweden": MappingProxyType({"Junior": 90, "Mid": 120, "Senior": 160}),
        "India": MappingProxyType({"Junior": 40, "Mid": 60, "Senior": 80}),
        "Germany": MappingProxyType({"Junior": 100, "Mid": 140, "Senior": 180}),
    }
)

# Line item defaults for newly added consultants.
DEFAULT_HOURS_PER_WEEK = 40.0
DEFAULT_WEEKS = 0.0
DEFAULT_ALLOCATION = 100.0

# The consultant a fresh session starts with.
DEFAULT_CONSULTANT: Dict[str, object] = {
    "name": "Consultant 1",
    "country": "Sweden",
    "seniority": "Mid",
    "hours_per_week": 40.0,
    "weeks": 12.0,
    "allocation": 100.0,
}
