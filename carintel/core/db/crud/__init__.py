from carintel.core.db.crud.base import BaseDB, dialect_insert
from carintel.core.db.crud.organization import (
    APIKeyDB,
    OrganizationDB,
    SubscriptionTierDB,
    api_key_db,
    organization_db,
    subscription_tier_db,
)
from carintel.core.db.crud.usage import (
    UsageDailyAggregateDB,
    UsageLogDB,
    usage_daily_aggregate_db,
    usage_log_db,
)

__all__ = [
    "BaseDB",
    "dialect_insert",
    "APIKeyDB",
    "OrganizationDB",
    "SubscriptionTierDB",
    "api_key_db",
    "organization_db",
    "subscription_tier_db",
    "UsageDailyAggregateDB",
    "UsageLogDB",
    "usage_daily_aggregate_db",
    "usage_log_db",
]
