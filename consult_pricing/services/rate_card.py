from __future__ import annotations

from typing import List, Mapping

from consult_pricing.models.constants import RATE_CARD


class RateCard:
    """Hourly rate lookup keyed by (country, seniority), in base currency."""

    def __init__(self, table: Mapping[str, Mapping[str, float]] = RATE_CARD):
        self._table = table

    def lookup(self, country: str, seniority: str) -> float:
        # Unknown or unset keys resolve to 0 so incomplete items stay priceable.
        return float(self._table.get(country, {}).get(seniority, 0))

    def countries(self) -> List[str]:
        return list(self._table)

    def seniorities(self) -> List[str]:
        first = next(iter(self._table.values()), {})
        return list(first)

    def as_dict(self) -> dict:
        return {c: dict(levels) for c, levels in self._table.items()}
