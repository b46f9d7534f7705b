"""Test doubles: stub HTTP client, gated rate source, snapshot builder."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional

from consult_pricing.models.rates import RateSnapshot
from consult_pricing.services.rates.base import ExchangeRateSource


class StubResponse:
    def __init__(self, payload: object, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def json(self) -> object:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class StubClient:
    """Stands in for httpx.AsyncClient; replays queued responses in order."""

    def __init__(self, *responses: StubResponse, delay: float = 0.0) -> None:
        self._responses = list(responses)
        self.delay = delay
        self.calls: List[Dict[str, object]] = []
        self.closed = False

    async def get(self, url: str, params: dict, timeout: float) -> StubResponse:
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.delay:
            await asyncio.sleep(self.delay)
        if len(self._responses) > 1:
            return self._responses.pop(0)
        return self._responses[0]

    async def aclose(self) -> None:
        self.closed = True


class GatedSource(ExchangeRateSource):
    """Each fetch waits on its own gate, so tests control completion order."""

    label = "Gated"

    def __init__(self, *snapshots: RateSnapshot) -> None:
        self._snapshots = list(snapshots)
        self.gates: List[asyncio.Event] = []
        self.calls = 0

    async def fetch_rates(self, base_currency, targets):  # type: ignore[override]
        idx = self.calls
        self.calls += 1
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        return self._snapshots[idx]


def make_snapshot(
    usd: float = 1.08,
    *,
    source: str = "Test provider",
    is_fallback: bool = False,
    error: Optional[str] = None,
    fetched_at: Optional[datetime] = None,
) -> RateSnapshot:
    now = fetched_at or datetime.now(timezone.utc)
    return RateSnapshot(
        base_currency="EUR",
        rates={"EUR": 1.0, "USD": usd, "GBP": 0.85, "SEK": 11.0},
        source=source,
        rate_timestamp=now,
        fetched_at=now,
        is_fallback=is_fallback,
        error=error,
    )
