"""Pricing session orchestrator.

Holds the consultant line items and the selected display currency, and
derives a PricingView from them on demand (CostCalculator for base-currency
costs, then the conversion engine with the RateStore's current snapshot).
Views are never cached, so every edit, currency change or rate refresh is
reflected by the next ``compute_view()``.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from consult_pricing.core.errors import (
    IncompleteSelectionError,
    LineItemValidationError,
    UnsupportedCurrencyError,
)
from consult_pricing.models.line_item import UPDATABLE_FIELDS, LineItem
from consult_pricing.models.pricing import LineItemView, PricingView
from consult_pricing.services import cost_calculator
from consult_pricing.services.rate_card import RateCard
from consult_pricing.services.rates.conversion import convert_amount
from consult_pricing.services.rates.store import RateStore

logger = logging.getLogger(__name__)


def _validation_message(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )


class PricingSession:
    def __init__(
        self,
        store: RateStore,
        rate_card: Optional[RateCard] = None,
        *,
        selected_currency: Optional[str] = None,
        rates_ttl_seconds: float = 3600,
        initial_items: Iterable[Mapping[str, Any]] = (),
    ):
        self._store = store
        self._rate_card = rate_card or RateCard()
        self._base = store.base_currency
        self._supported: Tuple[str, ...] = store.targets
        self._selected = self._check_currency(selected_currency or self._base)
        self._ttl = rates_ttl_seconds
        self._ids = itertools.count(1)
        self._items: List[LineItem] = []
        for fields in initial_items:
            self.add_line_item(**fields)

    # State -----------------------------------------------------
    @property
    def line_items(self) -> Tuple[LineItem, ...]:
        return tuple(self._items)

    @property
    def selected_currency(self) -> str:
        return self._selected

    @property
    def base_currency(self) -> str:
        return self._base

    @property
    def supported_currencies(self) -> Tuple[str, ...]:
        return self._supported

    @property
    def rate_store(self) -> RateStore:
        return self._store

    @property
    def rate_card(self) -> RateCard:
        return self._rate_card

    def get_line_item(self, item_id: int) -> Optional[LineItem]:
        return next((i for i in self._items if i.id == item_id), None)

    # Mutations -------------------------------------------------
    def add_line_item(self, **fields: Any) -> LineItem:
        """Append a consultant; omitted fields take the new-consultant defaults."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise LineItemValidationError(f"unknown line item fields: {sorted(unknown)}")
        values: Dict[str, Any] = {k: v for k, v in fields.items() if v is not None}
        values.setdefault("name", f"Consultant {len(self._items) + 1}")
        try:
            item = LineItem(id=next(self._ids), **values)
        except ValidationError as e:
            raise LineItemValidationError(_validation_message(e)) from e
        self._items.append(item)
        logger.debug("line item added", extra={"item_id": item.id})
        return item

    def update_line_item(self, item_id: int, field: str, value: Any) -> Optional[LineItem]:
        """Replace one field of an item.

        Updating a non-existent id is a no-op (returns None), not an error.
        An unknown field or out-of-range value raises LineItemValidationError
        and leaves the item unchanged.
        """
        if field not in UPDATABLE_FIELDS:
            raise LineItemValidationError(f"field '{field}' cannot be updated")
        for idx, item in enumerate(self._items):
            if item.id != item_id:
                continue
            try:
                updated = LineItem.model_validate({**item.model_dump(), field: value})
            except ValidationError as e:
                raise LineItemValidationError(_validation_message(e)) from e
            self._items[idx] = updated
            logger.debug(
                "line item updated", extra={"item_id": item_id, "field": field}
            )
            return updated
        logger.debug("update for unknown line item ignored", extra={"item_id": item_id})
        return None

    def remove_line_item(self, item_id: int) -> bool:
        before = len(self._items)
        self._items = [i for i in self._items if i.id != item_id]
        return len(self._items) != before

    def _check_currency(self, code: str) -> str:
        code = code.upper()
        if code not in self._supported:
            raise UnsupportedCurrencyError(
                f"unsupported currency '{code}'. Supported: {', '.join(self._supported)}"
            )
        return code

    def set_selected_currency(self, code: str) -> Optional[asyncio.Task]:
        """Select the display currency.

        Starts a background rate refresh when the target is not the base and
        the current snapshot is fallback, older than the TTL or lacks the
        target. Returns that task, or None when no refresh was needed or no
        event loop is running.
        """
        self._selected = self._check_currency(code)
        if self._selected == self._base or not self._needs_refresh(self._selected):
            return None
        try:
            return self._store.schedule_refresh()
        except RuntimeError:
            logger.warning(
                "no running event loop; rate refresh for %s skipped",
                self._selected,
                extra={"currency": self._selected},
            )
            return None

    def _needs_refresh(self, code: str) -> bool:
        if self._store.closed:
            return False
        if self._store.current().rate_for(code) is None:
            return True
        return self._store.is_stale(self._ttl)

    # Derivation ------------------------------------------------
    def is_incomplete(self) -> bool:
        return any(not item.is_complete for item in self._items)

    def compute_view(self) -> PricingView:
        snapshot = self._store.current()
        display = self._selected
        lookup = self._rate_card.lookup
        total_base = cost_calculator.aggregate(self._items, lookup)
        total = convert_amount(total_base, display, snapshot)
        identity = display == snapshot.base_currency

        def to_display(amount: float) -> float:
            return amount if identity else amount * total.rate

        items: List[LineItemView] = []
        for item in self._items:
            rate = lookup(item.country, item.seniority)
            cost = cost_calculator.item_cost(item, rate)
            items.append(
                LineItemView(
                    id=item.id,
                    name=item.name,
                    country=item.country,
                    seniority=item.seniority,
                    hours_per_week=item.hours_per_week,
                    weeks=item.weeks,
                    allocation=item.allocation,
                    total_hours=cost_calculator.total_hours(item),
                    complete=item.is_complete,
                    rate_base=rate,
                    rate_display=to_display(rate),
                    cost_base=cost,
                    cost_display=to_display(cost),
                )
            )
        return PricingView(
            base_currency=snapshot.base_currency,
            display_currency=display,
            exchange_rate=total.rate,
            items=items,
            total_base=total_base,
            total_display=total.converted,
            incomplete=self.is_incomplete(),
            rates=self._store.status(),
        )

    def calculate(self) -> PricingView:
        """The explicit "calculate project price" action; rejected while incomplete."""
        if self.is_incomplete():
            missing = [i.name for i in self._items if not i.is_complete]
            raise IncompleteSelectionError(
                "Complete required selections for every consultant to enable "
                f"calculation (missing: {', '.join(missing)})"
            )
        return self.compute_view()
