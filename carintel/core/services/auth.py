"""
API key authentication.

Turns an ``Authorization`` header into an authenticated principal (the
organization and its tier limits) by hashing the presented key and looking
the hash up. Rejections carry a stable error code; store faults propagate
as ``DatabaseException`` so they are never reported as a bad key.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from carintel.core.config import auth_logger
from carintel.core.db.crud import api_key_db, usage_daily_aggregate_db
from carintel.core.db.models import APIKey
from carintel.core.enums import AuthErrorCode, KeyEnvironment
from carintel.core.exceptions.types import DatabaseException
from carintel.core.utils import hash_api_key, month_start, parse_bearer_key


AUTH_ERROR_MESSAGES: dict[AuthErrorCode, str] = {
    AuthErrorCode.MISSING_AUTH: "Missing Authorization header",
    AuthErrorCode.INVALID_FORMAT: "Invalid API key format",
    AuthErrorCode.INVALID_KEY: "Invalid API key",
    AuthErrorCode.KEY_DISABLED: "API key has been disabled",
    AuthErrorCode.KEY_EXPIRED: "API key has expired",
    AuthErrorCode.SUBSCRIPTION_INACTIVE: "Subscription is not active",
    AuthErrorCode.QUOTA_EXCEEDED: "Monthly quota exceeded. Please upgrade your plan.",
}


@dataclass
class AuthResult:
    """Outcome of authenticating a request.

    On success every principal field is set and ``error_code`` is None; on
    failure only ``error_code`` and ``error`` are meaningful.
    """

    is_valid: bool
    api_key_id: UUID | None = None
    organization_id: UUID | None = None
    org_name: str | None = None
    tier_id: str | None = None
    rate_limit: int | None = None
    monthly_limit: int | None = None
    environment: KeyEnvironment | None = None
    monthly_usage: int = 0
    error_code: AuthErrorCode | None = None
    error: str | None = None

    @classmethod
    def rejected(cls, code: AuthErrorCode) -> "AuthResult":
        return cls(is_valid=False, error_code=code, error=AUTH_ERROR_MESSAGES[code])


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class APIKeyAuthService:
    """Service for validating bearer API keys."""

    async def authenticate(
        self,
        session: AsyncSession,
        authorization: str | None,
        now: datetime | None = None,
    ) -> AuthResult:
        """
        Authenticate an ``Authorization`` header.

        Checks run in a fixed order and the first failing one decides the
        error code: missing_auth, invalid_format, invalid_key, key_disabled,
        key_expired, subscription_inactive, quota_exceeded. A malformed
        header is rejected before the store is touched.

        Args:
            session: Database session.
            authorization: Raw header value, or None when absent.
            now: Current time, injectable for tests.

        Returns:
            AuthResult describing the principal or the rejection.

        Raises:
            DatabaseException: If the credential store is unavailable.
        """
        if not authorization:
            return AuthResult.rejected(AuthErrorCode.MISSING_AUTH)

        raw_key = parse_bearer_key(authorization)
        if raw_key is None:
            return AuthResult.rejected(AuthErrorCode.INVALID_FORMAT)

        now = now or datetime.now(timezone.utc)
        key_hash = hash_api_key(raw_key)

        try:
            api_key = await api_key_db.get_by_key_hash(session, key_hash)
        except DatabaseException as e:
            auth_logger.error(f"API key lookup failed: {str(e)}")
            raise

        if api_key is None:
            auth_logger.warning(f"Unknown API key: hash={key_hash[:12]}...")
            return AuthResult.rejected(AuthErrorCode.INVALID_KEY)

        rejection = self._check_key_state(api_key, now)
        if rejection is not None:
            auth_logger.warning(f"API key {api_key.key_prefix} rejected: {rejection.value}")
            return AuthResult.rejected(rejection)

        organization = api_key.organization
        tier = organization.tier

        if not organization.subscription_status.is_in_good_standing:
            auth_logger.warning(
                f"Organization {organization.id} subscription is "
                f"{organization.subscription_status.value}"
            )
            return AuthResult.rejected(AuthErrorCode.SUBSCRIPTION_INACTIVE)

        monthly_usage = await usage_daily_aggregate_db.sum_requests_since(
            session, organization.id, month_start(now.date())
        )
        if tier.monthly_limit is not None and monthly_usage >= tier.monthly_limit:
            auth_logger.warning(
                f"Organization {organization.id} reached monthly quota "
                f"({monthly_usage}/{tier.monthly_limit})"
            )
            return AuthResult.rejected(AuthErrorCode.QUOTA_EXCEEDED)

        result = AuthResult(
            is_valid=True,
            api_key_id=api_key.id,
            organization_id=organization.id,
            org_name=organization.name,
            tier_id=tier.id,
            rate_limit=tier.rate_limit_per_minute,
            monthly_limit=tier.monthly_limit,
            environment=api_key.environment,
            monthly_usage=monthly_usage,
        )
        # Principal is captured first; a rollback below expires loaded rows
        await self._touch_last_used(session, api_key.id, api_key.key_prefix)
        return result

    @staticmethod
    def _check_key_state(api_key: APIKey, now: datetime) -> AuthErrorCode | None:
        if not api_key.is_active or api_key.revoked_at is not None:
            return AuthErrorCode.KEY_DISABLED
        if api_key.expires_at is not None and _as_utc(api_key.expires_at) <= now:
            return AuthErrorCode.KEY_EXPIRED
        return None

    @staticmethod
    async def _touch_last_used(
        session: AsyncSession, api_key_id: UUID, key_prefix: str
    ) -> None:
        """Record key usage. Best-effort: a failed write never rejects the key."""
        try:
            await api_key_db.update_last_used(session, api_key_id)
        except DatabaseException as e:
            auth_logger.warning(
                f"Could not update last_used_at for key {key_prefix}: {str(e)}"
            )
            await session.rollback()


api_key_auth_service = APIKeyAuthService()


__all__ = [
    "AUTH_ERROR_MESSAGES",
    "AuthResult",
    "APIKeyAuthService",
    "api_key_auth_service",
]
