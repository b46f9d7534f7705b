from __future__ import annotations

"""Exchange rate source abstraction.

A source resolves base -> target rates into a complete ``RateSnapshot``. It
must not raise for provider trouble; failures come back as a fallback
snapshot carrying the error message.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional

from consult_pricing.models.constants import (
    DEFAULT_SOURCE,
    FALLBACK_RATES,
    FALLBACK_SUFFIX,
)
from consult_pricing.models.rates import RateSnapshot


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_fallback_snapshot(
    base_currency: str,
    targets: Iterable[str],
    *,
    label: str = DEFAULT_SOURCE,
    fallback_rates: Mapping[str, float] = FALLBACK_RATES,
    error: Optional[str] = None,
) -> RateSnapshot:
    now = utcnow()
    rates = {c: fallback_rates[c] for c in targets if c in fallback_rates}
    return RateSnapshot(
        base_currency=base_currency,
        rates=rates,
        source=f"{label}{FALLBACK_SUFFIX}",
        rate_timestamp=now,
        fetched_at=now,
        is_fallback=True,
        error=error,
    )


class ExchangeRateSource(ABC):
    label: str = DEFAULT_SOURCE

    @abstractmethod
    async def fetch_rates(
        self, base_currency: str, targets: Iterable[str]
    ) -> RateSnapshot:
        """Return a snapshot for ``targets`` (rate per 1 unit of base)."""
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
