"""initial_schema

Revision ID: 4c2a7e91d0b3
Revises:
Create Date: 2026-10-12 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4c2a7e91d0b3"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    ]


def _ymmt_columns() -> list[sa.Column]:
    return [
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("make", sa.String(length=100), nullable=False),
        sa.Column("model", sa.String(length=100), nullable=False),
        sa.Column("trim", sa.String(length=200), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    # ------------------------------------------------------------------
    # Organizations, tiers and API keys
    # ------------------------------------------------------------------
    op.create_table(
        "subscription_tiers",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column(
            "rate_limit_per_minute",
            sa.Integer(),
            nullable=False,
            comment="Requests allowed per organization per minute",
        ),
        sa.Column(
            "monthly_limit",
            sa.Integer(),
            nullable=True,
            comment="Requests allowed per calendar month (null = unlimited)",
        ),
        *_timestamps(),
        sa.CheckConstraint(
            "rate_limit_per_minute > 0", name="ck_tiers_rate_limit_positive"
        ),
        sa.CheckConstraint(
            "monthly_limit IS NULL OR monthly_limit > 0",
            name="ck_tiers_monthly_limit_positive",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "organizations",
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("tier_id", sa.String(length=32), nullable=False),
        sa.Column(
            "subscription_status",
            sa.Enum(
                "ACTIVE",
                "TRIALING",
                "PAST_DUE",
                "CANCELED",
                name="subscription_status",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("stripe_customer_id", sa.String(length=255), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(["tier_id"], ["subscription_tiers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("stripe_customer_id"),
    )
    op.create_index(
        op.f("ix_organizations_tier_id"), "organizations", ["tier_id"], unique=False
    )

    op.create_table(
        "api_keys",
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column(
            "name",
            sa.String(length=128),
            nullable=False,
            comment="User-defined label for the API key",
        ),
        sa.Column(
            "key_hash",
            sa.String(length=64),
            nullable=False,
            comment="SHA-256 hash of the API key for lookup",
        ),
        sa.Column(
            "key_prefix",
            sa.String(length=20),
            nullable=False,
            comment="Display prefix: ci_live_ + first 5 chars of token",
        ),
        sa.Column(
            "environment",
            sa.Enum("LIVE", "TEST", name="key_environment", native_enum=False),
            nullable=False,
        ),
        sa.Column(
            "expires_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="When the key expires (null = never expires)",
        ),
        sa.Column(
            "revoked_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="When the key was revoked (null = not revoked)",
        ),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            comment="Whether the key is active and can be used",
        ),
        sa.Column(
            "last_used_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Last time the key was used for a request",
        ),
        *_base_columns(),
        sa.ForeignKeyConstraint(
            ["organization_id"], ["organizations.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_api_keys_key_hash"), "api_keys", ["key_hash"], unique=True)
    op.create_index(
        op.f("ix_api_keys_organization_id"), "api_keys", ["organization_id"], unique=False
    )
    op.create_index(op.f("ix_api_keys_is_active"), "api_keys", ["is_active"], unique=False)

    # ------------------------------------------------------------------
    # Usage
    # ------------------------------------------------------------------
    op.create_table(
        "usage_logs",
        sa.Column("api_key_id", sa.Uuid(), nullable=True),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("endpoint", sa.String(length=255), nullable=False),
        sa.Column("method", sa.String(length=10), nullable=False),
        sa.Column("source", sa.String(length=50), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=False),
        sa.Column("response_time_ms", sa.Integer(), nullable=False),
        sa.Column("tokens_used", sa.Integer(), nullable=False),
        sa.Column("request_params", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(["api_key_id"], ["api_keys.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["organization_id"], ["organizations.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_usage_logs_organization_created",
        "usage_logs",
        ["organization_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_usage_logs_api_key_created",
        "usage_logs",
        ["api_key_id", "created_at"],
        unique=False,
    )

    op.create_table(
        "usage_daily_aggregates",
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("usage_date", sa.Date(), nullable=False),
        sa.Column("source", sa.String(length=50), nullable=False),
        sa.Column("endpoint", sa.String(length=255), nullable=False),
        sa.Column("request_count", sa.Integer(), nullable=False),
        sa.Column("token_count", sa.Integer(), nullable=False),
        *_base_columns(),
        sa.ForeignKeyConstraint(
            ["organization_id"], ["organizations.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "organization_id",
            "usage_date",
            "source",
            "endpoint",
            name="uq_usage_daily_org_date_source_endpoint",
        ),
    )
    op.create_index(
        op.f("ix_usage_daily_aggregates_organization_id"),
        "usage_daily_aggregates",
        ["organization_id"],
        unique=False,
    )

    # ------------------------------------------------------------------
    # Vehicle data
    # ------------------------------------------------------------------
    op.create_table(
        "vehicle_specs",
        *_ymmt_columns(),
        sa.Column("body_type", sa.String(length=100), nullable=True),
        sa.Column("vehicle_type", sa.String(length=100), nullable=True),
        sa.Column("doors", sa.Integer(), nullable=True),
        sa.Column("engine", sa.String(length=200), nullable=True),
        sa.Column("cylinders", sa.Integer(), nullable=True),
        sa.Column("displacement_l", sa.Float(), nullable=True),
        sa.Column("horsepower", sa.Integer(), nullable=True),
        sa.Column("torque_lb_ft", sa.Integer(), nullable=True),
        sa.Column("fuel_type", sa.String(length=50), nullable=True),
        sa.Column("transmission", sa.String(length=100), nullable=True),
        sa.Column("drivetrain", sa.String(length=50), nullable=True),
        sa.Column("mpg_city", sa.Integer(), nullable=True),
        sa.Column("mpg_highway", sa.Integer(), nullable=True),
        sa.Column("mpg_combined", sa.Integer(), nullable=True),
        sa.Column("msrp_cents", sa.Integer(), nullable=True, comment="Base MSRP in cents"),
        sa.Column("extras", sa.JSON(), nullable=True),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("year", "make", "model", "trim", name="uq_vehicle_specs_ymmt"),
    )
    op.create_index("ix_vehicle_specs_ymm", "vehicle_specs", ["year", "make", "model"])
    op.create_index(op.f("ix_vehicle_specs_make"), "vehicle_specs", ["make"])

    op.create_table(
        "vehicle_warranties",
        sa.Column("vehicle_spec_id", sa.Uuid(), nullable=False),
        sa.Column("coverage_type", sa.String(length=50), nullable=False),
        sa.Column("months", sa.Integer(), nullable=True),
        sa.Column("miles", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(
            ["vehicle_spec_id"], ["vehicle_specs.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "vehicle_spec_id", "coverage_type", name="uq_vehicle_warranties_spec_type"
        ),
    )
    op.create_index(
        op.f("ix_vehicle_warranties_vehicle_spec_id"),
        "vehicle_warranties",
        ["vehicle_spec_id"],
    )

    op.create_table(
        "vehicle_market_values",
        sa.Column("vehicle_spec_id", sa.Uuid(), nullable=True),
        *_ymmt_columns(),
        sa.Column(
            "condition",
            sa.Enum(
                "Outstanding",
                "Clean",
                "Average",
                "Rough",
                name="vehicle_condition",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("trade_in_cents", sa.Integer(), nullable=True),
        sa.Column("private_party_cents", sa.Integer(), nullable=True),
        sa.Column("dealer_retail_cents", sa.Integer(), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(
            ["vehicle_spec_id"], ["vehicle_specs.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "year",
            "make",
            "model",
            "trim",
            "condition",
            name="uq_vehicle_market_values_ymmt_condition",
        ),
    )
    op.create_index(
        "ix_vehicle_market_values_ymmt",
        "vehicle_market_values",
        ["year", "make", "model", "trim"],
    )
    op.create_index(
        op.f("ix_vehicle_market_values_vehicle_spec_id"),
        "vehicle_market_values",
        ["vehicle_spec_id"],
    )
    op.create_index(
        op.f("ix_vehicle_market_values_condition"),
        "vehicle_market_values",
        ["condition"],
    )

    op.create_table(
        "vehicle_maintenance_schedules",
        sa.Column("vehicle_spec_id", sa.Uuid(), nullable=True),
        *_ymmt_columns(),
        sa.Column("mileage", sa.Integer(), nullable=False),
        sa.Column("service_items", sa.JSON(), nullable=False),
        *_base_columns(),
        sa.ForeignKeyConstraint(
            ["vehicle_spec_id"], ["vehicle_specs.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "year",
            "make",
            "model",
            "trim",
            "mileage",
            name="uq_vehicle_maintenance_ymmt_mileage",
        ),
    )
    op.create_index(
        "ix_vehicle_maintenance_ymmt",
        "vehicle_maintenance_schedules",
        ["year", "make", "model", "trim"],
    )
    op.create_index(
        op.f("ix_vehicle_maintenance_schedules_vehicle_spec_id"),
        "vehicle_maintenance_schedules",
        ["vehicle_spec_id"],
    )
    op.create_index(
        op.f("ix_vehicle_maintenance_schedules_mileage"),
        "vehicle_maintenance_schedules",
        ["mileage"],
    )

    op.create_table(
        "vehicle_manuals",
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("make", sa.String(length=100), nullable=False),
        sa.Column("model", sa.String(length=100), nullable=False),
        sa.Column("variant", sa.String(length=100), nullable=True),
        sa.Column("source_url", sa.Text(), nullable=False),
        sa.Column("source_mid", sa.String(length=64), nullable=True),
        sa.Column("pdf_url", sa.Text(), nullable=False),
        sa.Column("pdf_size_bytes", sa.BigInteger(), nullable=True),
        sa.Column("pdf_storage_path", sa.Text(), nullable=True),
        sa.Column(
            "pdf_year",
            sa.Integer(),
            nullable=True,
            comment="Year parsed from the PDF filename",
        ),
        sa.Column(
            "year_mismatch",
            sa.Boolean(),
            nullable=False,
            comment="True if pdf_year differs from the listed year",
        ),
        sa.Column(
            "status",
            sa.Enum(
                "discovered",
                "downloading",
                "uploaded",
                "failed",
                "unavailable",
                name="manual_status",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("last_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        *_base_columns(),
        sa.CheckConstraint(
            "year >= 1900 AND year <= 2100", name="ck_vehicle_manuals_year"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "year", "make", "model", "variant", name="uq_vehicle_manuals_ymm_variant"
        ),
    )
    op.create_index(
        "ix_vehicle_manuals_ymm", "vehicle_manuals", ["year", "make", "model"]
    )
    op.create_index(op.f("ix_vehicle_manuals_status"), "vehicle_manuals", ["status"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("vehicle_manuals")
    op.drop_table("vehicle_maintenance_schedules")
    op.drop_table("vehicle_market_values")
    op.drop_table("vehicle_warranties")
    op.drop_table("vehicle_specs")
    op.drop_table("usage_daily_aggregates")
    op.drop_table("usage_logs")
    op.drop_table("api_keys")
    op.drop_table("organizations")
    op.drop_table("subscription_tiers")
