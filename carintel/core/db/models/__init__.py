from carintel.core.db.models.base import BaseModel
from carintel.core.db.models.organization import APIKey, Organization, SubscriptionTier
from carintel.core.db.models.usage import UsageDailyAggregate, UsageLog

__all__ = [
    "APIKey",
    "BaseModel",
    "Organization",
    "SubscriptionTier",
    "UsageDailyAggregate",
    "UsageLog",
]
