from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health", summary="Liveness probe")
async def health(request: Request):
    store = request.app.state.rate_store
    return {"status": "ok", "rates_fallback": store.is_fallback, "rates_loading": store.loading}
