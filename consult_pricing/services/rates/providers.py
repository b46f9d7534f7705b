from __future__ import annotations

"""Concrete exchange rate sources and factory.

'static' always serves the fallback table; 'external-http' queries
exchangerate.host and degrades to the fallback table on any failure.
"""
import asyncio
import logging
from datetime import datetime, time, timezone
from typing import Any, Dict, Iterable, Mapping

from pydantic import ValidationError

from consult_pricing.models.constants import DEFAULT_SOURCE, FALLBACK_RATES
from consult_pricing.models.rates import ProviderPayload, RateSnapshot
from consult_pricing.services.http_client import HttpError, get_json
from .base import ExchangeRateSource, build_fallback_snapshot, utcnow

logger = logging.getLogger(__name__)

EXCHANGERATE_HOST_URL = "https://api.exchangerate.host/latest"


class StaticRateSource(ExchangeRateSource):
    """Serves the configured fallback table without touching the network."""

    def __init__(
        self,
        *,
        label: str = DEFAULT_SOURCE,
        fallback_rates: Mapping[str, float] = FALLBACK_RATES,
    ):
        self.label = label
        self._fallback_rates = fallback_rates

    async def fetch_rates(  # type: ignore[override]
        self, base_currency: str, targets: Iterable[str]
    ) -> RateSnapshot:
        return build_fallback_snapshot(
            base_currency, targets, label=self.label, fallback_rates=self._fallback_rates
        )


class ExchangeRateHostSource(ExchangeRateSource):
    """Live rates from exchangerate.host's ``/latest`` endpoint.

    One GET per call (plus retries), bounded overall by ``timeout`` seconds.
    Provider values override the fallback table only for requested targets
    with a positive rate; everything else keeps its fallback value.
    """

    def __init__(
        self,
        url: str = EXCHANGERATE_HOST_URL,
        *,
        label: str = DEFAULT_SOURCE,
        timeout: float = 10.0,
        retries: int = 1,
        backoff: float = 0.5,
        fallback_rates: Mapping[str, float] = FALLBACK_RATES,
        client: Any = None,
    ):
        self.label = label
        self._url = str(url)
        self._timeout = timeout
        self._retries = max(0, retries)
        self._backoff = backoff
        self._fallback_rates = fallback_rates
        self._client = client

    async def _get_payload(self, base_currency: str, targets: list) -> Dict[str, Any]:
        params = {"base": base_currency, "symbols": ",".join(targets)}
        per_attempt = self._timeout / (self._retries + 1)
        return await asyncio.wait_for(
            get_json(
                self._url,
                params=params,
                timeout=per_attempt,
                retries=self._retries,
                backoff=self._backoff,
                client=self._client,
            ),
            timeout=self._timeout,
        )

    def _build_snapshot(
        self, base_currency: str, targets: list, payload: ProviderPayload
    ) -> RateSnapshot:
        if payload.base and payload.base.upper() != base_currency:
            raise ValueError(
                f"provider answered for base {payload.base}, expected {base_currency}"
            )
        rates: Dict[str, float] = {
            c: self._fallback_rates[c] for c in targets if c in self._fallback_rates
        }
        for currency in targets:
            value = payload.rates.get(currency)
            if value is not None and value > 0:
                rates[currency] = value
            elif currency != base_currency:
                logger.warning(
                    "provider omitted %s; keeping fallback rate",
                    currency,
                    extra={"currency": currency},
                )
        now = utcnow()
        if payload.as_of is not None:
            rate_ts = datetime.combine(payload.as_of, time.min, tzinfo=timezone.utc)
        else:
            rate_ts = now
        return RateSnapshot(
            base_currency=base_currency,
            rates=rates,
            source=self.label,
            rate_timestamp=rate_ts,
            fetched_at=now,
            is_fallback=False,
        )

    async def fetch_rates(  # type: ignore[override]
        self, base_currency: str, targets: Iterable[str]
    ) -> RateSnapshot:
        wanted = list(dict.fromkeys(targets))
        try:
            data = await self._get_payload(base_currency, wanted)
            payload = ProviderPayload.model_validate(data)
            return self._build_snapshot(base_currency, wanted, payload)
        except asyncio.TimeoutError:
            error = f"Timed out after {self._timeout:g}s"
        except HttpError as e:
            error = str(e)
        except (ValidationError, ValueError) as e:
            error = f"Malformed provider payload: {e}"
        logger.warning(
            "exchange rate fetch failed, using fallback rates: %s",
            error,
            extra={"source": self.label},
        )
        return build_fallback_snapshot(
            base_currency,
            wanted,
            label=self.label,
            fallback_rates=self._fallback_rates,
            error=error,
        )

    async def aclose(self) -> None:
        if self._client is not None and hasattr(self._client, "aclose"):
            await self._client.aclose()


_SOURCE_REGISTRY = {
    "static": StaticRateSource,
    "external-http": ExchangeRateHostSource,
}


def make_rate_source(kind: str, **kwargs: Any) -> ExchangeRateSource:
    cls = _SOURCE_REGISTRY.get(kind)
    if not cls:
        raise ValueError(f"Unknown rate source kind '{kind}'")
    if cls is StaticRateSource:
        kwargs = {k: v for k, v in kwargs.items() if k in ("label", "fallback_rates")}
    return cls(**kwargs)
