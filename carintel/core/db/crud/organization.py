"""
CRUD operations for tier, organization and API key models.

"""

from datetime import datetime, timezone
from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from carintel.core.db.crud.base import BaseDB
from carintel.core.db.models.organization import APIKey, Organization, SubscriptionTier


class SubscriptionTierDB(BaseDB[SubscriptionTier]):
    """CRUD operations for SubscriptionTier model."""

    def __init__(self):
        super().__init__(SubscriptionTier)


class OrganizationDB(BaseDB[Organization]):
    """CRUD operations for Organization model."""

    def __init__(self):
        super().__init__(Organization)


class APIKeyDB(BaseDB[APIKey]):
    """CRUD operations for APIKey model."""

    def __init__(self):
        super().__init__(APIKey)

    async def get_by_key_hash(
        self,
        session: AsyncSession,
        key_hash: str,
    ) -> APIKey | None:
        """
        Get API key by its hash, with its organization and tier loaded.

        Inactive, revoked and expired keys are returned too; the caller
        decides which rejection applies.

        Args:
            session: Database session.
            key_hash: SHA-256 hash of the API key.

        Returns:
            APIKey or None if not found.
        """
        return await self.get_one_by_filters(
            session,
            {"key_hash": key_hash, "is_deleted": False},
            options=[
                selectinload(APIKey.organization).selectinload(Organization.tier)
            ],
        )

    async def get_by_organization(
        self,
        session: AsyncSession,
        organization_id: UUID,
        include_inactive: bool = False,
    ) -> Sequence[APIKey]:
        filters: dict = {"organization_id": organization_id, "is_deleted": False}
        if not include_inactive:
            filters["is_active"] = True
        return await self.get_by_filters(
            session, filters, order_by=[APIKey.created_at]
        )

    async def update_last_used(
        self,
        session: AsyncSession,
        api_key_id: UUID,
        commit_self: bool = True,
    ) -> APIKey | None:
        """
        Update the last_used_at timestamp for an API key.

        Args:
            session: Database session.
            api_key_id: API key ID.
            commit_self: Whether to commit the transaction.

        Returns:
            Updated API key or None if not found.
        """
        return await self.update(
            session,
            api_key_id,
            {"last_used_at": datetime.now(timezone.utc)},
            commit_self=commit_self,
        )

    async def revoke(
        self,
        session: AsyncSession,
        api_key_id: UUID,
        commit_self: bool = True,
    ) -> APIKey | None:
        """
        Revoke an API key. Keys are never physically deleted.

        Args:
            session: Database session.
            api_key_id: API key ID.
            commit_self: Whether to commit the transaction.

        Returns:
            Updated API key or None if not found.
        """
        return await self.update(
            session,
            api_key_id,
            {
                "is_active": False,
                "revoked_at": datetime.now(timezone.utc),
            },
            commit_self=commit_self,
        )


# Global CRUD instances
subscription_tier_db = SubscriptionTierDB()
organization_db = OrganizationDB()
api_key_db = APIKeyDB()


__all__ = [
    "SubscriptionTierDB",
    "OrganizationDB",
    "APIKeyDB",
    "subscription_tier_db",
    "organization_db",
    "api_key_db",
]
