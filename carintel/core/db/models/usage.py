"""
Usage accounting models.

``UsageLog`` is the append-only fact table, one row per served request.
``UsageDailyAggregate`` holds per-day counters used for billing and quota
checks; the sum of a period's aggregates equals its UsageLog row count.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import (
    JSON,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from carintel.core.db.models.base import BaseModel


class UsageLog(BaseModel):
    """
    Model for per-request usage facts.

    Attributes:
        api_key_id: Key that authenticated the request.
        organization_id: Organization billed for the request.
        endpoint: Route template, e.g. ``/v1/vehicles/lookup``.
        method: HTTP method.
        source: Client-declared source tag (``api`` by default).
        status_code: Status code returned to the caller.
        response_time_ms: Latency from request start to response ready.
        tokens_used: Tokens charged (one per request).
        request_params: Query and path parameters.
        ip_address: Caller IP.
        user_agent: Caller user agent.
    """

    __tablename__ = "usage_logs"

    __table_args__ = (
        Index("ix_usage_logs_organization_created", "organization_id", "created_at"),
        Index("ix_usage_logs_api_key_created", "api_key_id", "created_at"),
    )

    api_key_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("api_keys.id", ondelete="SET NULL"),
        nullable=True,
    )

    organization_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )

    endpoint: Mapped[str] = mapped_column(String(255), nullable=False)

    method: Mapped[str] = mapped_column(String(10), nullable=False)

    source: Mapped[str] = mapped_column(String(50), nullable=False, default="api")

    status_code: Mapped[int] = mapped_column(Integer, nullable=False)

    response_time_ms: Mapped[int] = mapped_column(Integer, nullable=False)

    tokens_used: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    request_params: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)

    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)


class UsageDailyAggregate(BaseModel):
    """
    Model for daily usage counters keyed by (organization, date, source, endpoint).

    Counters only ever increase, via an atomic upsert.
    """

    __tablename__ = "usage_daily_aggregates"

    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "usage_date",
            "source",
            "endpoint",
            name="uq_usage_daily_org_date_source_endpoint",
        ),
    )

    organization_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    usage_date: Mapped[date] = mapped_column(Date, nullable=False)

    source: Mapped[str] = mapped_column(String(50), nullable=False)

    endpoint: Mapped[str] = mapped_column(String(255), nullable=False)

    request_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    token_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


__all__ = ["UsageLog", "UsageDailyAggregate"]
