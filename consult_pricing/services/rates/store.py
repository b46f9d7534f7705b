from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Iterable, Mapping, Optional, Set

from consult_pricing.models.constants import (
    BASE_CURRENCY,
    DEFAULT_SOURCE,
    FALLBACK_RATES,
    SUPPORTED_CURRENCIES,
)
from consult_pricing.models.rates import RateSnapshot, RateStatus
from .base import ExchangeRateSource, build_fallback_snapshot, utcnow

"""Owned holder of the current exchange rate snapshot.

Design:
    - Exactly one current RateSnapshot, initially the fallback table, so
      readers never see missing data.
    - Every refresh takes a generation number; only the newest generation may
      commit. A slow response that lands after a newer one is dropped.
    - After aclose() nothing is committed any more (late responses from a
      torn-down session are discarded).
    - Commit is a single reference swap of an immutable snapshot.
"""

logger = logging.getLogger(__name__)


class RateStore:
    def __init__(
        self,
        source: ExchangeRateSource,
        *,
        base_currency: str = BASE_CURRENCY,
        targets: Iterable[str] = SUPPORTED_CURRENCIES,
        fallback_rates: Mapping[str, float] = FALLBACK_RATES,
    ):
        self._source = source
        self._base = base_currency
        self._targets = tuple(targets)
        self._fallback_rates = fallback_rates
        self._snapshot = build_fallback_snapshot(
            base_currency,
            self._targets,
            label=getattr(source, "label", DEFAULT_SOURCE),
            fallback_rates=fallback_rates,
        )
        self._generation = 0
        self._pending_generation: Optional[int] = None
        self._closed = False
        self._tasks: Set[asyncio.Task] = set()

    # Read side -------------------------------------------------
    def current(self) -> RateSnapshot:
        return self._snapshot

    @property
    def base_currency(self) -> str:
        return self._base

    @property
    def targets(self) -> tuple:
        return self._targets

    @property
    def loading(self) -> bool:
        return self._pending_generation is not None

    @property
    def is_fallback(self) -> bool:
        return self._snapshot.is_fallback

    @property
    def error(self) -> Optional[str]:
        return self._snapshot.error

    @property
    def closed(self) -> bool:
        return self._closed

    def status(self) -> RateStatus:
        return RateStatus.from_snapshot(self._snapshot, loading=self.loading)

    def is_stale(self, ttl_seconds: float) -> bool:
        snap = self._snapshot
        if snap.is_fallback:
            return True
        return utcnow() - snap.fetched_at >= timedelta(seconds=ttl_seconds)

    # Write side ------------------------------------------------
    async def refresh(
        self, base_currency: Optional[str] = None, targets: Optional[Iterable[str]] = None
    ) -> RateSnapshot:
        """Fetch and commit a new snapshot unless superseded or closed.

        Returns whatever snapshot is current once this call settles.
        """
        if self._closed:
            logger.debug("store closed; refresh skipped")
            return self._snapshot
        base = base_currency or self._base
        # Always ask for every supported currency so a commit never drops one.
        wanted = tuple(dict.fromkeys((base,) + self._targets + tuple(targets or ())))
        self._generation += 1
        generation = self._generation
        self._pending_generation = generation
        try:
            try:
                snapshot = await self._source.fetch_rates(base, wanted)
            except Exception as e:  # noqa: BLE001
                logger.exception(
                    "rate source raised; using fallback rates",
                    extra={"generation": generation},
                )
                snapshot = build_fallback_snapshot(
                    base,
                    wanted,
                    label=getattr(self._source, "label", DEFAULT_SOURCE),
                    fallback_rates=self._fallback_rates,
                    error=str(e) or e.__class__.__name__,
                )
            if self._closed:
                logger.debug(
                    "store closed; discarding refresh result",
                    extra={"generation": generation},
                )
                return self._snapshot
            if generation != self._generation:
                logger.debug(
                    "refresh superseded by generation %d; discarding",
                    self._generation,
                    extra={"generation": generation},
                )
                return self._snapshot
            self._snapshot = snapshot
            logger.info(
                "rates updated from %s (fallback=%s)",
                snapshot.source,
                snapshot.is_fallback,
                extra={"generation": generation, "source": snapshot.source},
            )
            return snapshot
        finally:
            if self._pending_generation == generation:
                self._pending_generation = None

    def schedule_refresh(
        self, base_currency: Optional[str] = None, targets: Optional[Iterable[str]] = None
    ) -> asyncio.Task:
        """Start ``refresh`` on the running loop; the store keeps the task alive."""
        task = asyncio.get_running_loop().create_task(
            self.refresh(base_currency, targets)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def aclose(self) -> None:
        self._closed = True
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._pending_generation = None
        await self._source.aclose()
