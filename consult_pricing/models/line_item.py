from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import DEFAULT_ALLOCATION, DEFAULT_HOURS_PER_WEEK, DEFAULT_WEEKS

# Fields a collaborator may change after creation; ``id`` is fixed for life.
UPDATABLE_FIELDS = frozenset(
    {"name", "country", "seniority", "hours_per_week", "weeks", "allocation"}
)


class LineItem(BaseModel):
    """One consultant's pricing inputs.

    Empty ``country`` or ``seniority`` is allowed: the rate resolves to 0 and
    the owning session reports itself as incomplete.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    country: str = ""
    seniority: str = ""
    hours_per_week: float = Field(DEFAULT_HOURS_PER_WEEK, ge=0)
    weeks: float = Field(DEFAULT_WEEKS, ge=0)
    allocation: float = Field(DEFAULT_ALLOCATION, ge=0, le=100)

    @field_validator("country", "seniority", mode="before")
    @classmethod
    def none_is_unset(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def is_complete(self) -> bool:
        return bool(self.country) and bool(self.seniority)


class LineItemIn(BaseModel):
    """Optional initial values for a new line item; omitted fields use defaults."""

    name: Optional[str] = None
    country: Optional[str] = None
    seniority: Optional[str] = None
    hours_per_week: Optional[float] = Field(None, ge=0)
    weeks: Optional[float] = Field(None, ge=0)
    allocation: Optional[float] = Field(None, ge=0, le=100)


class LineItemUpdateIn(BaseModel):
    field: str
    value: Any = None

    @field_validator("field")
    @classmethod
    def updatable(cls, v: str) -> str:
        if v not in UPDATABLE_FIELDS:
            raise ValueError(f"field must be one of {sorted(UPDATABLE_FIELDS)}")
        return v
