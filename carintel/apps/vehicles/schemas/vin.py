"""
Pydantic schemas for VIN decoding.
"""

from pydantic import BaseModel, Field

from carintel.apps.vehicles.schemas.vehicle import VehicleLookupResponse


class EngineInfo(BaseModel):
    cylinders: int | None = None
    displacement: str | None = None
    horsepower: int | None = None
    fuel_type: str | None = None


class DecodedVin(BaseModel):
    """Attributes reported by the VIN registry."""

    vin: str
    year: int | None = None
    make: str | None = None
    model: str | None = None
    trim: str | None = None
    body_type: str | None = None
    vehicle_type: str | None = None
    doors: int | None = None
    engine: EngineInfo = Field(default_factory=EngineInfo)
    drivetrain: str | None = None
    transmission: str | None = None
    manufacturer: str | None = None
    plant_country: str | None = None
    plant_city: str | None = None
    error_code: str | None = None
    error_text: str | None = None

    @property
    def has_registry_error(self) -> bool:
        # "0" means the registry decoded cleanly
        return bool(self.error_code) and self.error_code != "0"

    @property
    def primary_trim(self) -> str | None:
        """First trim of a "EX-L/EX-L Navi" style list, or None."""
        if not self.trim:
            return None
        primary = self.trim.split("/")[0].strip()
        return primary or None


class VinDecodeResponse(DecodedVin):
    warning: str | None = Field(
        default=None,
        description="Registry error text when the decode was only partial",
    )


class VinLookupResponse(VehicleLookupResponse):
    """Decoded VIN plus any local vehicle data."""

    vin_info: DecodedVin
    local_data_found: bool = Field(
        description="False when the VIN decoded but no local records matched"
    )


__all__ = ["EngineInfo", "DecodedVin", "VinDecodeResponse", "VinLookupResponse"]
