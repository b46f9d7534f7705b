from __future__ import annotations

import logging
from dataclasses import dataclass

from consult_pricing.core.errors import MissingRateError
from consult_pricing.models.rates import RateSnapshot

"""Base -> display currency conversion.

Responsibilities:
    - Exact identity when the target is the snapshot's base currency.
    - amount * rate otherwise, using only the snapshot passed in.
    - A target missing from the snapshot degrades to rate 1.0 with a warning,
      or raises MissingRateError when strict=True.

No rounding happens here; presentation rounds via services.money.
"""

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionResult:
    original_amount: float
    base_currency: str
    currency: str
    rate: float
    converted: float


def rate_for(target_currency: str, snapshot: RateSnapshot, *, strict: bool = False) -> float:
    if target_currency == snapshot.base_currency:
        return 1.0
    rate = snapshot.rate_for(target_currency)
    if rate is None:
        if strict:
            raise MissingRateError(
                f"no {snapshot.base_currency}->{target_currency} rate in snapshot"
            )
        logger.warning(
            "no rate for %s in snapshot; converting 1:1",
            target_currency,
            extra={"currency": target_currency},
        )
        return 1.0
    return rate


def convert(
    amount: float, target_currency: str, snapshot: RateSnapshot, *, strict: bool = False
) -> float:
    if target_currency == snapshot.base_currency:
        return amount
    return amount * rate_for(target_currency, snapshot, strict=strict)


def convert_amount(
    amount: float, target_currency: str, snapshot: RateSnapshot, *, strict: bool = False
) -> ConversionResult:
    rate = rate_for(target_currency, snapshot, strict=strict)
    identity = target_currency == snapshot.base_currency
    return ConversionResult(
        original_amount=amount,
        base_currency=snapshot.base_currency,
        currency=target_currency,
        rate=rate,
        converted=amount if identity else amount * rate,
    )
