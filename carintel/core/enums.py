from enum import Enum


class KeyEnvironment(str, Enum):
    """Environment an API key belongs to, encoded in its prefix."""

    LIVE = "live"
    TEST = "test"


class SubscriptionStatus(str, Enum):
    """Billing status of an organization, mirrored from Stripe."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"

    @property
    def is_in_good_standing(self) -> bool:
        return self in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)


class AuthErrorCode(str, Enum):
    """Stable error codes returned when a credential is rejected."""

    MISSING_AUTH = "missing_auth"
    INVALID_FORMAT = "invalid_format"
    INVALID_KEY = "invalid_key"
    KEY_DISABLED = "key_disabled"
    KEY_EXPIRED = "key_expired"
    SUBSCRIPTION_INACTIVE = "subscription_inactive"
    QUOTA_EXCEEDED = "quota_exceeded"


class VehicleCondition(str, Enum):
    """Condition grades used for market valuations."""

    OUTSTANDING = "Outstanding"
    CLEAN = "Clean"
    AVERAGE = "Average"
    ROUGH = "Rough"


class ManualStatus(str, Enum):
    """Ingestion status of an owner's manual PDF."""

    DISCOVERED = "discovered"
    DOWNLOADING = "downloading"
    UPLOADED = "uploaded"
    FAILED = "failed"
    UNAVAILABLE = "unavailable"


__all__ = [
    "KeyEnvironment",
    "SubscriptionStatus",
    "AuthErrorCode",
    "VehicleCondition",
    "ManualStatus",
]
