"""
Gateway dependencies for metered API endpoints.

Every public route depends on ``require_gateway_access``, which runs the
credential check and then the rate limit check, in that order, before the
route body executes. On success the caller's principal is stored on
``request.state.gateway`` so the usage middleware can bill the request
whatever the route then returns.

Example usage:
    from carintel.core.dependencies.gateway import GatewayContext

    @router.get("/lookup")
    async def lookup(gateway: GatewayContext):
        return {"organization": str(gateway.organization_id)}
"""

from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from carintel.core.config import rate_limit_logger, settings
from carintel.core.dependencies.db import get_async_session
from carintel.core.enums import KeyEnvironment
from carintel.core.exceptions.types import (
    AuthenticationException,
    RateLimitExceededException,
)
from carintel.core.services.auth import api_key_auth_service
from carintel.core.services.rate_limit import RateLimiter


@dataclass
class GatewayRequest:
    """
    Authenticated, admitted caller of a gateway route.

    Attributes:
        endpoint: Route template used as the usage label, e.g.
            ``/v1/vehicles/{vehicle_id}/specs``.
        source: Client-declared attribution tag.
        tokens_remaining: Tokens left this month after this request, None
            for unlimited tiers.
    """

    api_key_id: UUID
    organization_id: UUID
    tier_id: str
    rate_limit: int
    monthly_limit: int | None
    environment: KeyEnvironment
    endpoint: str
    source: str
    tokens_used: int = 1
    tokens_remaining: int | None = None


def get_rate_limiter(request: Request) -> RateLimiter:
    """The process-wide limiter created at startup."""
    return request.app.state.rate_limiter


def _endpoint_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _tokens_remaining(monthly_limit: int | None, monthly_usage: int) -> int | None:
    if monthly_limit is None:
        return None
    return max(0, monthly_limit - (monthly_usage + 1))


async def require_gateway_access(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    authorization: Annotated[str | None, Header()] = None,
) -> GatewayRequest:
    """
    Authenticate the bearer key and charge the organization's rate limit.

    Args:
        request: The incoming request.
        session: The database session.
        limiter: The rate limiter.
        authorization: The raw Authorization header.

    Returns:
        GatewayRequest: The admitted caller.

    Raises:
        AuthenticationException: 401 with the rejection code.
        RateLimitExceededException: 429 with ``retry_after``.
        DatabaseException: If the credential store is unavailable.
    """
    auth = await api_key_auth_service.authenticate(session, authorization)
    if not auth.is_valid:
        assert auth.error_code is not None and auth.error is not None
        raise AuthenticationException(auth.error, code=auth.error_code.value)

    assert auth.organization_id is not None and auth.rate_limit is not None
    result = await limiter.check(auth.organization_id, auth.rate_limit)
    if not result.allowed:
        retry_after = result.retry_after or 1
        rate_limit_logger.warning(
            f"Organization {auth.organization_id} exceeded "
            f"{result.limit} requests per window"
        )
        raise RateLimitExceededException(
            f"Rate limit exceeded. Please retry after {retry_after} seconds.",
            retry_after=retry_after,
        )

    source = request.headers.get(settings.CLIENT_SOURCE_HEADER, "").strip()
    gateway = GatewayRequest(
        api_key_id=auth.api_key_id,  # type: ignore[arg-type]
        organization_id=auth.organization_id,
        tier_id=auth.tier_id,  # type: ignore[arg-type]
        rate_limit=auth.rate_limit,
        monthly_limit=auth.monthly_limit,
        environment=auth.environment,  # type: ignore[arg-type]
        endpoint=_endpoint_label(request),
        source=(source or settings.DEFAULT_CLIENT_SOURCE)[:50],
        tokens_remaining=_tokens_remaining(auth.monthly_limit, auth.monthly_usage),
    )
    request.state.gateway = gateway
    return gateway


# Type alias for gateway-protected routes
GatewayContext = Annotated[GatewayRequest, Depends(require_gateway_access)]


__all__ = [
    "GatewayRequest",
    "GatewayContext",
    "get_rate_limiter",
    "require_gateway_access",
]
