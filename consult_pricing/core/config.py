from functools import lru_cache
from typing import List

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

from consult_pricing.models.constants import BASE_CURRENCY, FALLBACK_RATES


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., APP_NAME, DEBUG,
    EXCHANGE_RATE_PROVIDER, HTTP_TIMEOUT_SECONDS, RATES_CACHE_TTL_SECONDS).
    Only the bootstrap layer reads these; pricing services receive plain values.
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "Consulting Project Calculator"
    debug: bool = True
    version: str = "0.1.0"

    # Currencies
    base_currency: str = "EUR"
    supported_currencies: List[str] = ["EUR", "USD", "GBP", "SEK"]

    # Exchange rates
    # Allowed: 'static' (fallback table only), 'external-http' (exchangerate.host)
    exchange_rate_provider: str = "external-http"
    exchange_api_url: AnyHttpUrl = "https://api.exchangerate.host/latest"
    rates_source_label: str = "European Central Bank"
    http_timeout_seconds: float = 10.0
    http_retries: int = 1
    rates_cache_ttl_seconds: int = 3600  # 1 hour

    # Session bootstrap
    refresh_rates_on_startup: bool = True
    seed_default_consultant: bool = True

    def init_post_load(self) -> None:
        """Normalize and validate derived fields."""
        self.base_currency = self.base_currency.upper()
        self.supported_currencies = [c.upper() for c in self.supported_currencies]
        allowed = {"static", "external-http"}
        if self.exchange_rate_provider not in allowed:
            raise ValueError(
                f"Unsupported exchange_rate_provider '{self.exchange_rate_provider}'. Allowed: {allowed}"
            )
        if self.base_currency not in self.supported_currencies:
            raise ValueError(
                f"base_currency '{self.base_currency}' must be one of supported_currencies"
            )
        if self.base_currency != BASE_CURRENCY:
            raise ValueError(
                f"base_currency must be {BASE_CURRENCY}; fallback rates and the rate card are quoted in it"
            )
        uncovered = set(self.supported_currencies) - set(FALLBACK_RATES)
        if uncovered:
            raise ValueError(
                f"supported_currencies without a fallback rate: {', '.join(sorted(uncovered))}"
            )
        if self.http_timeout_seconds <= 0:
            raise ValueError("http_timeout_seconds must be positive")


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
