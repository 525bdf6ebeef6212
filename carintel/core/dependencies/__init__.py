"""
Shared dependencies for FastAPI endpoints.

"""

from carintel.core.dependencies.db import get_async_session
from carintel.core.dependencies.gateway import (
    GatewayContext,
    GatewayRequest,
    get_rate_limiter,
    require_gateway_access,
)

__all__ = [
    "get_async_session",
    # Gateway
    "GatewayContext",
    "GatewayRequest",
    "get_rate_limiter",
    "require_gateway_access",
]
