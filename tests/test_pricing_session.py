import asyncio

import pytest

from consult_pricing.core.errors import (
    IncompleteSelectionError,
    LineItemValidationError,
    UnsupportedCurrencyError,
)
from consult_pricing.models.constants import DEFAULT_CONSULTANT
from consult_pricing.services.pricing_session import PricingSession
from consult_pricing.services.rates.providers import StaticRateSource
from consult_pricing.services.rates.store import RateStore

from helpers import GatedSource, make_snapshot


def _session(store=None, **kw) -> PricingSession:
    return PricingSession(store or RateStore(StaticRateSource()), **kw)


def test_add_line_item_defaults_and_unique_ids():
    session = _session()
    a = session.add_line_item()
    b = session.add_line_item()
    assert a.id != b.id
    assert a.name == "Consultant 1"
    assert b.name == "Consultant 2"
    assert (a.country, a.seniority) == ("", "")
    assert (a.hours_per_week, a.weeks, a.allocation) == (40, 0, 100)


def test_ids_stay_unique_after_removal():
    session = _session()
    first = session.add_line_item()
    session.remove_line_item(first.id)
    assert session.add_line_item().id != first.id


def test_example_scenario_single_item():
    session = _session(initial_items=[DEFAULT_CONSULTANT])
    view = session.compute_view()
    assert view.total_base == 57600
    assert view.total_display == 57600
    assert view.items[0].rate_base == 120
    assert view.items[0].total_hours == 480
    assert view.incomplete is False


def test_incomplete_item_costs_zero_and_flags_session():
    session = _session(initial_items=[DEFAULT_CONSULTANT])
    item = session.add_line_item(country="", seniority="Mid", weeks=10)
    view = session.compute_view()
    assert session.is_incomplete() is True
    assert view.incomplete is True
    assert view.items[1].cost_base == 0
    assert view.total_base == 57600
    with pytest.raises(IncompleteSelectionError):
        session.calculate()
    session.update_line_item(item.id, "country", "India")
    assert session.is_incomplete() is False
    assert session.calculate().total_base == 57600 + 60 * 40 * 10


def test_update_replaces_only_named_field():
    session = _session(initial_items=[DEFAULT_CONSULTANT])
    item = session.line_items[0]
    updated = session.update_line_item(item.id, "weeks", 6)
    assert updated.weeks == 6
    assert updated.model_dump(exclude={"weeks"}) == item.model_dump(exclude={"weeks"})
    assert session.compute_view().total_base == 28800


def test_update_unknown_id_is_noop():
    session = _session(initial_items=[DEFAULT_CONSULTANT])
    before = session.line_items
    assert session.update_line_item(999, "weeks", 1) is None
    assert session.line_items == before


@pytest.mark.parametrize(
    "field,value",
    [("hours_per_week", -1), ("weeks", -0.5), ("allocation", 101), ("allocation", -3), ("id", 7), ("rate", 1)],
)
def test_update_rejects_invalid_values(field, value):
    session = _session(initial_items=[DEFAULT_CONSULTANT])
    item = session.line_items[0]
    with pytest.raises(LineItemValidationError):
        session.update_line_item(item.id, field, value)
    assert session.line_items[0] == item


def test_add_rejects_invalid_values():
    with pytest.raises(LineItemValidationError):
        _session().add_line_item(allocation=250)


def test_remove_line_item_updates_totals():
    session = _session(initial_items=[DEFAULT_CONSULTANT, DEFAULT_CONSULTANT])
    assert session.compute_view().total_base == 2 * 57600
    assert session.remove_line_item(session.line_items[0].id) is True
    assert session.remove_line_item(12345) is False
    assert session.compute_view().total_base == 57600


def test_unsupported_currency_rejected():
    session = _session()
    with pytest.raises(UnsupportedCurrencyError):
        session.set_selected_currency("JPY")
    assert session.selected_currency == "EUR"


def test_currency_change_without_loop_still_recomputes():
    session = _session(initial_items=[DEFAULT_CONSULTANT])
    assert session.set_selected_currency("usd") is None
    view = session.compute_view()
    assert view.display_currency == "USD"
    assert view.exchange_rate == 1.08
    assert view.total_display == pytest.approx(57600 * 1.08)
    assert view.items[0].rate_display == pytest.approx(120 * 1.08)


@pytest.mark.asyncio
async def test_currency_change_triggers_refresh_when_stale():
    source = GatedSource(make_snapshot(usd=1.2))
    session = _session(RateStore(source), initial_items=[DEFAULT_CONSULTANT])

    task = session.set_selected_currency("USD")
    assert task is not None
    await asyncio.sleep(0)
    assert session.compute_view().rates.loading is True
    assert session.compute_view().total_display == pytest.approx(57600 * 1.08)

    source.gates[0].set()
    await task
    view = session.compute_view()
    assert view.rates.loading is False
    assert view.rates.is_fallback is False
    assert view.total_display == pytest.approx(57600 * 1.2)


@pytest.mark.asyncio
async def test_currency_change_skips_refresh_when_fresh():
    source = GatedSource(make_snapshot(usd=1.2))
    store = RateStore(source)
    task = store.schedule_refresh()
    await asyncio.sleep(0)
    source.gates[0].set()
    await task

    session = _session(store)
    assert session.set_selected_currency("USD") is None
    assert session.set_selected_currency("EUR") is None
    assert source.calls == 1
