"""
Vehicle data models.

Every record is keyed by year/make/model/trim (trim optional). These tables
are read-only to the gateway; the ingestion pipeline owns their writes.
Monetary amounts are stored as integer cents.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from carintel.core.db.models.base import BaseModel
from carintel.core.enums import ManualStatus, VehicleCondition


class VehicleSpec(BaseModel):
    """
    Model for vehicle specifications.

    Attributes:
        year, make, model, trim: Natural key.
        body_type: Body class, e.g. "Sedan/Saloon".
        msrp_cents: Manufacturer's suggested retail price in cents.
        extras: Free-form attributes (dimensions, features) from ingestion.
    """

    __tablename__ = "vehicle_specs"

    __table_args__ = (
        UniqueConstraint("year", "make", "model", "trim", name="uq_vehicle_specs_ymmt"),
        Index("ix_vehicle_specs_ymm", "year", "make", "model"),
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)
    make: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    trim: Mapped[str | None] = mapped_column(String(200), nullable=True)

    body_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    vehicle_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    doors: Mapped[int | None] = mapped_column(Integer, nullable=True)

    engine: Mapped[str | None] = mapped_column(String(200), nullable=True)
    cylinders: Mapped[int | None] = mapped_column(Integer, nullable=True)
    displacement_l: Mapped[float | None] = mapped_column(Float, nullable=True)
    horsepower: Mapped[int | None] = mapped_column(Integer, nullable=True)
    torque_lb_ft: Mapped[int | None] = mapped_column(Integer, nullable=True)
    fuel_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    transmission: Mapped[str | None] = mapped_column(String(100), nullable=True)
    drivetrain: Mapped[str | None] = mapped_column(String(50), nullable=True)

    mpg_city: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mpg_highway: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mpg_combined: Mapped[int | None] = mapped_column(Integer, nullable=True)

    msrp_cents: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Base MSRP in cents",
    )

    extras: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Relationships
    warranties: Mapped[list["VehicleWarranty"]] = relationship(
        "VehicleWarranty",
        back_populates="vehicle_spec",
    )


class VehicleWarranty(BaseModel):
    """
    Model for factory warranty coverage linked to a specification.

    Attributes:
        coverage_type: basic, powertrain, corrosion, roadside, hybrid...
        months: Coverage duration (null = unlimited).
        miles: Coverage distance (null = unlimited).
    """

    __tablename__ = "vehicle_warranties"

    __table_args__ = (
        UniqueConstraint(
            "vehicle_spec_id", "coverage_type", name="uq_vehicle_warranties_spec_type"
        ),
    )

    vehicle_spec_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("vehicle_specs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    coverage_type: Mapped[str] = mapped_column(String(50), nullable=False)
    months: Mapped[int | None] = mapped_column(Integer, nullable=True)
    miles: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    vehicle_spec: Mapped["VehicleSpec"] = relationship(
        "VehicleSpec",
        back_populates="warranties",
    )


class VehicleMarketValue(BaseModel):
    """
    Model for market valuations per condition.

    YMMT is denormalized so values exist for vehicles without a spec row.
    """

    __tablename__ = "vehicle_market_values"

    __table_args__ = (
        UniqueConstraint(
            "year",
            "make",
            "model",
            "trim",
            "condition",
            name="uq_vehicle_market_values_ymmt_condition",
        ),
        Index("ix_vehicle_market_values_ymmt", "year", "make", "model", "trim"),
    )

    vehicle_spec_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("vehicle_specs.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)
    make: Mapped[str] = mapped_column(String(100), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    trim: Mapped[str | None] = mapped_column(String(200), nullable=True)

    condition: Mapped[VehicleCondition] = mapped_column(
        Enum(
            VehicleCondition,
            native_enum=False,
            name="vehicle_condition",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        index=True,
    )

    trade_in_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    private_party_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    dealer_retail_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)


class VehicleMaintenanceSchedule(BaseModel):
    """
    Model for scheduled maintenance at a given odometer reading.

    Attributes:
        mileage: Odometer reading the services are due at.
        service_items: Names of the services due.
    """

    __tablename__ = "vehicle_maintenance_schedules"

    __table_args__ = (
        UniqueConstraint(
            "year",
            "make",
            "model",
            "trim",
            "mileage",
            name="uq_vehicle_maintenance_ymmt_mileage",
        ),
        Index("ix_vehicle_maintenance_ymmt", "year", "make", "model", "trim"),
    )

    vehicle_spec_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("vehicle_specs.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)
    make: Mapped[str] = mapped_column(String(100), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    trim: Mapped[str | None] = mapped_column(String(200), nullable=True)

    mileage: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    service_items: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )


class VehicleManual(BaseModel):
    """
    Model for owner's manual PDFs discovered by the scraper.

    Only ``uploaded`` manuals are served.
    """

    __tablename__ = "vehicle_manuals"

    __table_args__ = (
        UniqueConstraint(
            "year", "make", "model", "variant", name="uq_vehicle_manuals_ymm_variant"
        ),
        Index("ix_vehicle_manuals_ymm", "year", "make", "model"),
        CheckConstraint("year >= 1900 AND year <= 2100", name="ck_vehicle_manuals_year"),
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)
    make: Mapped[str] = mapped_column(String(100), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    variant: Mapped[str | None] = mapped_column(String(100), nullable=True)

    source_url: Mapped[str] = mapped_column(Text, nullable=False)
    source_mid: Mapped[str | None] = mapped_column(String(64), nullable=True)

    pdf_url: Mapped[str] = mapped_column(Text, nullable=False)
    pdf_size_bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    pdf_storage_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    pdf_year: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Year parsed from the PDF filename",
    )
    year_mismatch: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="True if pdf_year differs from the listed year",
    )

    status: Mapped[ManualStatus] = mapped_column(
        Enum(
            ManualStatus,
            native_enum=False,
            name="manual_status",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=ManualStatus.DISCOVERED,
        index=True,
    )
    last_verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)


__all__ = [
    "VehicleSpec",
    "VehicleWarranty",
    "VehicleMarketValue",
    "VehicleMaintenanceSchedule",
    "VehicleManual",
]
