"""
Pydantic schemas for vehicle endpoints.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from carintel.core.enums import VehicleCondition


# ============================================================================
# Record Schemas
# ============================================================================


class VehicleSpecResponse(BaseModel):
    """Schema for a vehicle specification."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    year: int
    make: str
    model: str
    trim: str | None = None
    body_type: str | None = None
    vehicle_type: str | None = None
    doors: int | None = None
    engine: str | None = None
    cylinders: int | None = None
    displacement_l: float | None = None
    horsepower: int | None = None
    torque_lb_ft: int | None = None
    fuel_type: str | None = None
    transmission: str | None = None
    drivetrain: str | None = None
    mpg_city: int | None = None
    mpg_highway: int | None = None
    mpg_combined: int | None = None
    msrp_cents: int | None = None
    extras: dict | None = None


class VehicleWarrantyResponse(BaseModel):
    """Schema for a warranty coverage entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    vehicle_spec_id: UUID
    coverage_type: str
    months: int | None = None
    miles: int | None = None
    description: str | None = None


class MarketValueEntry(BaseModel):
    """Valuation figures for one condition, in cents."""

    model_config = ConfigDict(from_attributes=True)

    condition: VehicleCondition
    trade_in_cents: int | None = None
    private_party_cents: int | None = None
    dealer_retail_cents: int | None = None


class MaintenanceScheduleResponse(BaseModel):
    """Schema for services due at a mileage."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    year: int
    make: str
    model: str
    trim: str | None = None
    mileage: int
    service_items: list[str] = Field(default_factory=list)


class VehicleManualResponse(BaseModel):
    """Schema for an available owner's manual."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    year: int
    make: str
    model: str
    variant: str | None = None
    pdf_url: str
    pdf_size_bytes: int | None = None
    pdf_storage_path: str | None = None
    year_mismatch: bool = False
    last_verified_at: datetime | None = None


# ============================================================================
# Lookup Schemas
# ============================================================================


MarketValues = dict[str, MarketValueEntry]


class VehicleLookupResponse(BaseModel):
    """Everything known about a year/make/model/trim."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "specs": {"year": 2024, "make": "Toyota", "model": "Camry", "trim": "XSE"},
                "warranty": [],
                "market_values": {
                    "Clean": {
                        "condition": "Clean",
                        "trade_in_cents": 2450000,
                        "private_party_cents": 2710000,
                        "dealer_retail_cents": 2990000,
                    }
                },
                "maintenance": [],
            }
        }
    )

    specs: VehicleSpecResponse | None = None
    warranty: list[VehicleWarrantyResponse] = Field(default_factory=list)
    market_values: MarketValues = Field(default_factory=dict)
    maintenance: list[MaintenanceScheduleResponse] = Field(default_factory=list)


__all__ = [
    "VehicleSpecResponse",
    "VehicleWarrantyResponse",
    "MarketValueEntry",
    "MarketValues",
    "MaintenanceScheduleResponse",
    "VehicleManualResponse",
    "VehicleLookupResponse",
]
