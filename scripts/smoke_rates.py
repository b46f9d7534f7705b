"""Smoke script for the live exchange rate source.

Fetches EUR-based rates once from exchangerate.host and prints the resulting
snapshot, plus the default consultant priced in every supported currency.
Falls back (and says so) when the provider is unreachable.

NOTE: This is a lightweight diagnostic and not a formal test.
"""

import asyncio
import json

from consult_pricing.core.config import get_settings
from consult_pricing.main import build_rate_store, build_session
from consult_pricing.services.money import format_money


async def run() -> None:
    settings = get_settings()
    store = build_rate_store(settings)
    session = build_session(settings, store)
    snapshot = await store.refresh()
    out = {
        "snapshot": json.loads(snapshot.model_dump_json()),
        "totals": {},
    }
    for currency in settings.supported_currencies:
        session.set_selected_currency(currency)
        view = session.compute_view()
        out["totals"][currency] = format_money(view.total_display, currency)
    await store.aclose()
    print(json.dumps(out, indent=2))


if __name__ == "__main__":
    asyncio.run(run())
