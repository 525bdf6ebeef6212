from functools import lru_cache
import logging
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from carintel.core.logger import setup_logger, init_sentry


class Settings(BaseSettings):
    # Application settings
    ENVIRONMENT: str = "development"  # Options: development, production, test
    APP_NAME: str = "Car Intel"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = """
Car Intel is a metered vehicle-data API.

## Capabilities

| Area | Description |
|------|-------------|
| **Lookup** | Specs, warranty, market values and maintenance by year/make/model/trim or by VIN. |
| **Catalog** | Makes, models, trims and model years available in the dataset. |
| **Manuals** | Owner's manuals available for download. |

## Authentication

Every request needs an API key sent as `Authorization: Bearer ci_live_...`
(or `ci_test_...`). Requests are rate limited per organization per minute and
counted against the organization's monthly quota.
"""
    DEBUG: bool = False
    API_PREFIX: str = "/v1"

    # CORS settings
    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    # Database settings
    DATABASE_URL: str
    TEST_DATABASE_URL: str = "sqlite+aiosqlite:///:memory:"
    DATABASE_POOL_TIMEOUT_SECONDS: float = 10.0
    DATABASE_COMMAND_TIMEOUT_SECONDS: float = 10.0

    # Redis settings
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_SOCKET_TIMEOUT_SECONDS: float = 0.5

    # Rate limiting settings
    RATE_LIMIT_BACKEND: Literal["memory", "redis"] = "memory"
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    # API key settings
    API_KEY_PREFIX: str = "ci"
    CLIENT_SOURCE_HEADER: str = "X-Client-Source"
    DEFAULT_CLIENT_SOURCE: str = "api"

    # VIN decoder settings
    VIN_DECODER_BASE_URL: str = "https://vpic.nhtsa.dot.gov/api"
    VIN_DECODER_TIMEOUT_SECONDS: float = 10.0

    # Usage recording settings
    USAGE_QUEUE_MAX_SIZE: int = 10000
    USAGE_SHUTDOWN_DRAIN_SECONDS: float = 5.0

    # Lookup result caps
    LOOKUP_MARKET_VALUE_LIMIT: int = 20
    LOOKUP_MAINTENANCE_LIMIT: int = 50
    SPECS_SEARCH_DEFAULT_LIMIT: int = 50
    SPECS_SEARCH_MAX_LIMIT: int = 100

    # Sentry settings
    SENTRY_DSN: str = ""
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    model_config: SettingsConfigDict = SettingsConfigDict(  # type: ignore
        env_file=".env",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _validate_production(self) -> "Settings":
        """Refuse debug mode in production."""
        if self.ENVIRONMENT == "production" and self.DEBUG:
            raise ValueError(
                "ENVIRONMENT is 'production' but DEBUG is enabled. "
                "Set DEBUG=false via environment variables or .env file."
            )
        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()  # type: ignore


settings = get_settings()

if not settings.DEBUG:
    init_sentry(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )

# One logger per component, each with its own file and Sentry tag
app_logger = setup_logger(
    name="app_logger",
    log_file="logs/app.log",
    level=logging.INFO,
    sentry_tag="app",
)
database_logger = setup_logger(
    name="database_logger",
    log_file="logs/database.log",
    level=logging.INFO,
    sentry_tag="database",
)
request_logger = setup_logger(
    name="request_logger",
    log_file="logs/requests.log",
    level=logging.INFO,
    sentry_tag="request",
)
auth_logger = setup_logger(
    name="auth_logger",
    log_file="logs/auth.log",
    level=logging.INFO,
    sentry_tag="auth",
)
redis_logger = setup_logger(
    name="redis_logger",
    log_file="logs/redis.log",
    level=logging.INFO,
    sentry_tag="redis",
)
rate_limit_logger = setup_logger(
    name="rate_limit_logger",
    log_file="logs/rate_limit.log",
    level=logging.INFO,
    sentry_tag="rate_limit",
)
usage_logger = setup_logger(
    name="usage_logger",
    log_file="logs/usage.log",
    level=logging.INFO,
    sentry_tag="usage",
)
vehicle_logger = setup_logger(
    name="vehicle_logger",
    log_file="logs/vehicle.log",
    level=logging.INFO,
    sentry_tag="vehicle",
)
vin_logger = setup_logger(
    name="vin_logger",
    log_file="logs/vin.log",
    level=logging.INFO,
    sentry_tag="vin",
)

__all__ = [
    "settings",
    "app_logger",
    "database_logger",
    "request_logger",
    "auth_logger",
    "redis_logger",
    "rate_limit_logger",
    "usage_logger",
    "vehicle_logger",
    "vin_logger",
]
