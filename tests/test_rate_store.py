from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from consult_pricing.models.constants import FALLBACK_RATES
from consult_pricing.services.rates.base import ExchangeRateSource
from consult_pricing.services.rates.providers import ExchangeRateHostSource
from consult_pricing.services.rates.store import RateStore

from helpers import GatedSource, StubClient, StubResponse, make_snapshot


class ExplodingSource(ExchangeRateSource):
    async def fetch_rates(self, base_currency, targets):  # type: ignore[override]
        raise RuntimeError("boom")


def test_initial_snapshot_is_complete_fallback():
    store = RateStore(GatedSource())
    snap = store.current()
    assert snap.is_fallback is True
    assert snap.rates == dict(FALLBACK_RATES)
    assert store.loading is False
    assert store.is_stale(3600) is True


@pytest.mark.asyncio
async def test_failed_fetch_commits_fallback_snapshot():
    client = StubClient(StubResponse({}, status_code=500))
    store = RateStore(ExchangeRateHostSource(client=client, retries=0))
    await store.refresh()

    assert store.is_fallback is True
    assert store.current().rates == dict(FALLBACK_RATES)
    assert "500" in store.error
    assert store.status().source.endswith("(fallback)")
    assert store.loading is False


@pytest.mark.asyncio
async def test_successful_fetch_replaces_snapshot():
    client = StubClient(StubResponse({"base": "EUR", "rates": {"USD": 1.1}}))
    store = RateStore(ExchangeRateHostSource(client=client, retries=0))
    snap = await store.refresh()

    assert store.current() is snap
    assert store.is_fallback is False
    assert store.error is None
    assert store.is_stale(3600) is False


@pytest.mark.asyncio
async def test_raising_source_is_contained():
    store = RateStore(ExplodingSource())
    snap = await store.refresh()
    assert snap.is_fallback is True
    assert snap.error == "boom"


@pytest.mark.asyncio
async def test_loading_flag_tracks_latest_refresh():
    source = GatedSource(make_snapshot())
    store = RateStore(source)
    task = asyncio.create_task(store.refresh())
    await asyncio.sleep(0)
    assert store.loading is True
    source.gates[0].set()
    await task
    assert store.loading is False


@pytest.mark.asyncio
async def test_stale_response_does_not_overwrite_newer_one():
    snap_a = make_snapshot(usd=1.01, source="A")
    snap_b = make_snapshot(usd=1.02, source="B")
    source = GatedSource(snap_a, snap_b)
    store = RateStore(source)

    task_a = asyncio.create_task(store.refresh())
    await asyncio.sleep(0)
    task_b = asyncio.create_task(store.refresh())
    await asyncio.sleep(0)

    source.gates[1].set()
    await task_b
    assert store.current() is snap_b

    source.gates[0].set()
    result_a = await task_a
    assert result_a is snap_b
    assert store.current() is snap_b
    assert store.loading is False


@pytest.mark.asyncio
async def test_only_latest_of_three_commits_even_if_first_lands_last():
    snaps = [make_snapshot(usd=1.0 + i / 10, source=str(i)) for i in range(3)]
    source = GatedSource(*snaps)
    store = RateStore(source)
    tasks = []
    for _ in range(3):
        tasks.append(asyncio.create_task(store.refresh()))
        await asyncio.sleep(0)

    source.gates[1].set()
    await tasks[1]
    assert store.current().is_fallback is True  # generation 1 was superseded
    source.gates[2].set()
    source.gates[0].set()
    await asyncio.gather(*tasks)
    assert store.current() is snaps[2]


@pytest.mark.asyncio
async def test_result_after_close_is_discarded():
    source = GatedSource(make_snapshot(source="late"))
    store = RateStore(source)
    before = store.current()
    task = asyncio.create_task(store.refresh())
    await asyncio.sleep(0)

    await store.aclose()
    source.gates[0].set()
    await task

    assert store.current() is before
    assert store.closed is True


@pytest.mark.asyncio
async def test_close_cancels_scheduled_refresh():
    source = GatedSource(make_snapshot())
    store = RateStore(source)
    task = store.schedule_refresh()
    await asyncio.sleep(0)
    await store.aclose()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert store.loading is False


@pytest.mark.asyncio
async def test_schedule_refresh_commits():
    source = GatedSource(make_snapshot(usd=1.3))
    store = RateStore(source)
    task = store.schedule_refresh()
    await asyncio.sleep(0)
    source.gates[0].set()
    await task
    assert store.current().rates["USD"] == 1.3


def test_is_stale_after_ttl():
    store = RateStore(GatedSource())
    old = datetime.now(timezone.utc) - timedelta(hours=2)
    store._snapshot = make_snapshot(fetched_at=old)
    assert store.is_stale(3600) is True
    assert store.is_stale(3 * 3600) is False


@pytest.mark.asyncio
async def test_refresh_after_close_does_not_fetch():
    source = GatedSource(make_snapshot())
    store = RateStore(source)
    before = store.current()
    await store.aclose()

    assert await store.refresh() is before
    assert source.calls == 0
    assert store.loading is False
