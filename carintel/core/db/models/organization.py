"""
Organization, tier and API key models.

An organization is the billing and quota identity. Its tier fixes the
per-minute rate limit and the monthly request quota; its API keys are the
credentials clients present as ``Authorization: Bearer ci_live_...``.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from carintel.core.db.config import Base
from carintel.core.db.models.base import BaseModel, TimestampMixin
from carintel.core.enums import KeyEnvironment, SubscriptionStatus


class SubscriptionTier(TimestampMixin, Base):
    """
    Model for subscription tiers.

    Attributes:
        id: Short identifier such as ``free``, ``starter`` or ``pro``.
        name: Display name.
        rate_limit_per_minute: Requests allowed per organization per minute.
        monthly_limit: Requests allowed per calendar month (null = unlimited).
    """

    __tablename__ = "subscription_tiers"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    name: Mapped[str] = mapped_column(String(64), nullable=False)

    rate_limit_per_minute: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Requests allowed per organization per minute",
    )

    monthly_limit: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Requests allowed per calendar month (null = unlimited)",
    )

    __table_args__ = (
        CheckConstraint(
            "rate_limit_per_minute > 0", name="ck_tiers_rate_limit_positive"
        ),
        CheckConstraint(
            "monthly_limit IS NULL OR monthly_limit > 0",
            name="ck_tiers_monthly_limit_positive",
        ),
    )

    def __str__(self) -> str:
        return self.name

    @validates("rate_limit_per_minute", "monthly_limit")
    def _validate_limits(self, key: str, value: Any) -> Any:
        """Reject non-positive limits when a tier is defined."""
        if key == "monthly_limit" and value is None:
            return value
        if value is None or int(value) <= 0:
            raise ValueError(f"{key} must be a positive integer, got {value!r}")
        return value


class Organization(BaseModel):
    """
    Model for organizations (billing and quota boundary).

    Attributes:
        name: Organization name.
        tier_id: The single active subscription tier.
        subscription_status: Billing status mirrored from Stripe.
        stripe_customer_id: Stripe customer reference, if billed.
    """

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    tier_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("subscription_tiers.id"),
        nullable=False,
        index=True,
    )

    subscription_status: Mapped[SubscriptionStatus] = mapped_column(
        Enum(SubscriptionStatus, native_enum=False, name="subscription_status"),
        nullable=False,
        default=SubscriptionStatus.ACTIVE,
    )

    stripe_customer_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
    )

    # Relationships
    tier: Mapped["SubscriptionTier"] = relationship("SubscriptionTier")

    api_keys: Mapped[list["APIKey"]] = relationship(
        "APIKey",
        back_populates="organization",
    )


class APIKey(BaseModel):
    """
    Model for API keys.

    Each key has a unique SHA-256 hash stored for lookup. The raw key is only
    shown once upon creation and cannot be retrieved afterwards. Keys are
    soft-revoked, never deleted.

    Key format: ci_live_{random_token}
    Display format: ci_live_xxxxx (prefix + first 5 chars of token)

    Attributes:
        organization_id: Foreign key to the owning organization.
        name: User-defined label for the key.
        key_hash: SHA-256 hash of the full API key for lookup.
        key_prefix: First portion of key for display.
        environment: ``live`` or ``test``.
        expires_at: When the key expires (null = never).
        revoked_at: When the key was revoked (null = not revoked).
        is_active: Whether the key is active and usable.
        last_used_at: Last time the key was used.
    """

    __tablename__ = "api_keys"

    organization_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        default="Default",
        comment="User-defined label for the API key",
    )

    key_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        unique=True,
        comment="SHA-256 hash of the API key for lookup",
    )

    key_prefix: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Display prefix: ci_live_ + first 5 chars of token",
    )

    environment: Mapped[KeyEnvironment] = mapped_column(
        Enum(KeyEnvironment, native_enum=False, name="key_environment"),
        nullable=False,
        default=KeyEnvironment.LIVE,
    )

    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the key expires (null = never expires)",
    )

    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the key was revoked (null = not revoked)",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
        comment="Whether the key is active and can be used",
    )

    last_used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last time the key was used for a request",
    )

    # Relationships
    organization: Mapped["Organization"] = relationship(
        "Organization",
        back_populates="api_keys",
    )


__all__ = ["SubscriptionTier", "Organization", "APIKey"]
