from __future__ import annotations

from datetime import date as Date
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    FiniteFloat,
    field_validator,
    model_validator,
)


class RateSnapshot(BaseModel):
    """Immutable bundle of base -> quote rates plus provenance.

    ``rates`` holds quote units per 1 unit of ``base_currency``; the base entry
    is forced to exactly 1.0. A snapshot is replaced wholesale, never patched.
    """

    model_config = ConfigDict(frozen=True)

    base_currency: str
    rates: Dict[str, FiniteFloat]
    source: str
    rate_timestamp: datetime
    fetched_at: datetime
    is_fallback: bool = False
    error: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def pin_base_rate(cls, values: Any) -> Any:
        if isinstance(values, dict) and "base_currency" in values:
            rates = dict(values.get("rates") or {})
            rates[values["base_currency"]] = 1.0
            values = {**values, "rates": rates}
        return values

    @field_validator("rates")
    @classmethod
    def positive_rates(cls, v: Dict[str, float]) -> Dict[str, float]:
        bad = [c for c, r in v.items() if r <= 0]
        if bad:
            raise ValueError(f"rates must be positive (got {', '.join(sorted(bad))})")
        return v

    def rate_for(self, currency: str) -> Optional[float]:
        return self.rates.get(currency)


class ProviderPayload(BaseModel):
    """Subset of the exchangerate.host ``/latest`` response we rely on."""

    success: Optional[bool] = None
    base: Optional[str] = None
    as_of: Optional[Date] = Field(None, alias="date")
    rates: Dict[str, FiniteFloat]

    @model_validator(mode="after")
    def not_an_error_body(self) -> "ProviderPayload":
        if self.success is False:
            raise ValueError("provider reported success=false")
        return self


class RateStatus(BaseModel):
    """Rate metadata rendered next to prices (advisories, timestamps)."""

    base_currency: str
    rates: Dict[str, FiniteFloat]
    source: str
    rate_timestamp: datetime
    fetched_at: datetime
    is_fallback: bool
    error: Optional[str] = None
    loading: bool = False

    @classmethod
    def from_snapshot(cls, snapshot: RateSnapshot, loading: bool) -> "RateStatus":
        return cls(
            base_currency=snapshot.base_currency,
            rates=dict(snapshot.rates),
            source=snapshot.source,
            rate_timestamp=snapshot.rate_timestamp,
            fetched_at=snapshot.fetched_at,
            is_fallback=snapshot.is_fallback,
            error=snapshot.error,
            loading=loading,
        )
