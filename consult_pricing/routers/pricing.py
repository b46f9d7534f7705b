from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Request
from pydantic import BaseModel, Field

from consult_pricing.models.line_item import LineItem, LineItemIn, LineItemUpdateIn
from consult_pricing.models.pricing import PricingView
from consult_pricing.services.pricing_session import PricingSession

"""Pricing router: the collaborator-facing surface of a PricingSession.

Endpoints:
    - GET    /pricing                       -> current PricingView
    - POST   /pricing/line-items            -> add consultant
    - PATCH  /pricing/line-items/{item_id}  -> {field, value}; unknown id is a no-op
    - DELETE /pricing/line-items/{item_id}  -> remove consultant
    - PUT    /pricing/currency              -> select display currency
    - POST   /pricing/calculate             -> 409 while any selection is incomplete
"""

router = APIRouter(prefix="/pricing", tags=["pricing"])


def get_session(request: Request) -> PricingSession:
    return request.app.state.pricing_session


class LineItemUpdateOut(BaseModel):
    updated: bool
    item: Optional[LineItem] = None
    view: PricingView


class CurrencySelectIn(BaseModel):
    currency: str = Field(..., description="Display currency code (e.g. USD)")


class CurrencySelectOut(BaseModel):
    currency: str
    refresh_started: bool
    view: PricingView


@router.get("", response_model=PricingView, summary="Current per-item and total prices")
async def get_view(session: PricingSession = Depends(get_session)):
    return session.compute_view()


@router.post(
    "/line-items",
    response_model=LineItem,
    status_code=201,
    summary="Add a consultant line item",
)
async def add_line_item(
    payload: Optional[LineItemIn] = None,
    session: PricingSession = Depends(get_session),
):
    fields = payload.model_dump(exclude_none=True) if payload else {}
    return session.add_line_item(**fields)


@router.patch(
    "/line-items/{item_id}",
    response_model=LineItemUpdateOut,
    summary="Update one field of a line item",
)
async def update_line_item(
    payload: LineItemUpdateIn,
    item_id: int = Path(..., description="Line item identifier"),
    session: PricingSession = Depends(get_session),
):
    item = session.update_line_item(item_id, payload.field, payload.value)
    return LineItemUpdateOut(
        updated=item is not None, item=item, view=session.compute_view()
    )


@router.delete("/line-items/{item_id}", summary="Remove a line item")
async def remove_line_item(
    item_id: int = Path(..., description="Line item identifier"),
    session: PricingSession = Depends(get_session),
):
    if not session.remove_line_item(item_id):
        raise HTTPException(status_code=404, detail="line item not found")
    return {"status": "deleted", "id": item_id}


@router.put(
    "/currency", response_model=CurrencySelectOut, summary="Select display currency"
)
async def select_currency(
    payload: CurrencySelectIn,
    session: PricingSession = Depends(get_session),
):
    task = session.set_selected_currency(payload.currency)
    return CurrencySelectOut(
        currency=session.selected_currency,
        refresh_started=task is not None,
        view=session.compute_view(),
    )


@router.post(
    "/calculate", response_model=PricingView, summary="Calculate project price"
)
async def calculate(session: PricingSession = Depends(get_session)):
    return session.calculate()
