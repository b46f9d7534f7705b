import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .core import errors
from .models.constants import DEFAULT_CONSULTANT, FALLBACK_RATES
from .routers import health, pricing, rates
from .services.pricing_session import PricingSession
from .services.rate_card import RateCard
from .services.rates.providers import make_rate_source
from .services.rates.store import RateStore

logger = logging.getLogger("consult_pricing")


def build_rate_store(settings: Settings) -> RateStore:
    source = make_rate_source(
        settings.exchange_rate_provider,
        url=str(settings.exchange_api_url),
        label=settings.rates_source_label,
        timeout=settings.http_timeout_seconds,
        retries=settings.http_retries,
        fallback_rates=FALLBACK_RATES,
    )
    return RateStore(
        source,
        base_currency=settings.base_currency,
        targets=settings.supported_currencies,
        fallback_rates=FALLBACK_RATES,
    )


def build_session(settings: Settings, store: RateStore) -> PricingSession:
    seed = [DEFAULT_CONSULTANT] if settings.seed_default_consultant else []
    return PricingSession(
        store,
        RateCard(),
        selected_currency=settings.base_currency,
        rates_ttl_seconds=settings.rates_cache_ttl_seconds,
        initial_items=seed,
    )


def create_app(settings_override: Settings | None = None) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    (e.g., the 'static' provider to stay offline). Falls back to cached get_settings().
    """
    settings = settings_override or get_settings()
    if settings_override is not None:
        settings.init_post_load()
    # Initialize logging early
    init_logging(debug=settings.debug)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.refresh_rates_on_startup:
            await app.state.rate_store.refresh()
        yield
        await app.state.rate_store.aclose()

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        version=settings.version,
        lifespan=lifespan,
    )
    # One pricing session per process: single-user interactive tool.
    app.state.settings = settings
    app.state.rate_store = build_rate_store(settings)
    app.state.pricing_session = build_session(settings, app.state.rate_store)

    # Middleware (request id / structured logging)
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, errors.http_error_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(errors.PricingError, errors.pricing_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(health.router)
    app.include_router(pricing.router)
    app.include_router(rates.router)

    @app.get("/")
    async def root():
        return {"message": f"{settings.app_name} API", "version": settings.version}

    logger.debug(
        "app created (provider=%s, base=%s)",
        settings.exchange_rate_provider,
        settings.base_currency,
    )
    return app


app = create_app()
