from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from consult_pricing.models.rates import RateStatus
from consult_pricing.services.money import format_money
from consult_pricing.services.rate_card import RateCard
from consult_pricing.services.rates.store import RateStore

"""Rates router: exchange rate status/refresh and the hourly rate card.

    - GET  /rates          -> current snapshot metadata (fallback advisory, timestamps)
    - POST /rates/refresh  -> fetch now and return the resulting status
    - GET  /rate-card      -> selectable countries / seniorities and hourly rates
"""

router = APIRouter(tags=["rates"])


def get_rate_store(request: Request) -> RateStore:
    return request.app.state.rate_store


def get_rate_card(request: Request) -> RateCard:
    return request.app.state.pricing_session.rate_card


@router.get("/rates", response_model=RateStatus, summary="Current exchange rates")
async def get_rates(store: RateStore = Depends(get_rate_store)):
    return store.status()


@router.post(
    "/rates/refresh", response_model=RateStatus, summary="Refresh exchange rates now"
)
async def refresh_rates(store: RateStore = Depends(get_rate_store)):
    await store.refresh()
    return store.status()


@router.get("/rate-card", summary="Hourly rates by country and seniority")
async def get_rate_card_table(
    card: RateCard = Depends(get_rate_card),
    store: RateStore = Depends(get_rate_store),
):
    base = store.base_currency
    return {
        "base_currency": base,
        "countries": card.countries(),
        "seniorities": card.seniorities(),
        "rates": card.as_dict(),
        "display": {
            country: {level: f"{format_money(rate, base)}/h" for level, rate in levels.items()}
            for country, levels in card.as_dict().items()
        },
    }
