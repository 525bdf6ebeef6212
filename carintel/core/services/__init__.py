from carintel.core.services.auth import (
    AUTH_ERROR_MESSAGES,
    APIKeyAuthService,
    AuthResult,
    api_key_auth_service,
)
from carintel.core.services.base import SingletonService
from carintel.core.services.rate_limit import (
    MemoryBackend,
    RateLimitBackend,
    RateLimiter,
    RateLimitResult,
    RedisBackend,
    format_rate_limit_key,
)
from carintel.core.services.redis_service import RedisService
from carintel.core.services.usage import UsageEvent, UsageRecorder

__all__ = [
    # Authentication
    "AUTH_ERROR_MESSAGES",
    "APIKeyAuthService",
    "AuthResult",
    "api_key_auth_service",
    # Base
    "SingletonService",
    # Rate limiting
    "MemoryBackend",
    "RateLimitBackend",
    "RateLimiter",
    "RateLimitResult",
    "RedisBackend",
    "format_rate_limit_key",
    # Redis
    "RedisService",
    # Usage
    "UsageEvent",
    "UsageRecorder",
]
