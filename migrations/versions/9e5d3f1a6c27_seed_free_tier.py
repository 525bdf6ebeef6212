"""seed_free_tier

Revision ID: 9e5d3f1a6c27
Revises: 4c2a7e91d0b3
Create Date: 2026-10-12 09:30:00.000000

"""

from datetime import datetime, timezone
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "9e5d3f1a6c27"
down_revision: Union[str, Sequence[str], None] = "4c2a7e91d0b3"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Organizations fall back to this tier when a paid subscription ends
FREE_TIER = {
    "id": "free",
    "name": "Free",
    "rate_limit_per_minute": 10,
    "monthly_limit": 1000,
}


def upgrade() -> None:
    """Insert the free tier."""
    tiers = sa.table(
        "subscription_tiers",
        sa.column("id", sa.String),
        sa.column("name", sa.String),
        sa.column("rate_limit_per_minute", sa.Integer),
        sa.column("monthly_limit", sa.Integer),
        sa.column("created_at", sa.DateTime(timezone=True)),
        sa.column("updated_at", sa.DateTime(timezone=True)),
    )
    now = datetime.now(timezone.utc)
    op.bulk_insert(tiers, [{**FREE_TIER, "created_at": now, "updated_at": now}])


def downgrade() -> None:
    """Remove the free tier."""
    op.execute(
        sa.text("DELETE FROM subscription_tiers WHERE id = :id").bindparams(
            id=FREE_TIER["id"]
        )
    )
