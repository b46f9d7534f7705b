"""Pydantic domain models for the consulting pricing service."""

from .constants import (
    BASE_CURRENCY,
    FALLBACK_RATES,
    RATE_CARD,
    SUPPORTED_CURRENCIES,
)  # re-export
from .line_item import LineItem, LineItemIn, LineItemUpdateIn
from .pricing import LineItemView, PricingView
from .rates import ProviderPayload, RateSnapshot, RateStatus

__all__ = [
    "BASE_CURRENCY",
    "FALLBACK_RATES",
    "RATE_CARD",
    "SUPPORTED_CURRENCIES",
    "LineItem",
    "LineItemIn",
    "LineItemUpdateIn",
    "LineItemView",
    "PricingView",
    "ProviderPayload",
    "RateSnapshot",
    "RateStatus",
]
