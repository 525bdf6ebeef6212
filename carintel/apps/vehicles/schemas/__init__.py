from carintel.apps.vehicles.schemas.vehicle import (
    MaintenanceScheduleResponse,
    MarketValueEntry,
    MarketValues,
    VehicleLookupResponse,
    VehicleManualResponse,
    VehicleSpecResponse,
    VehicleWarrantyResponse,
)
from carintel.apps.vehicles.schemas.vin import (
    DecodedVin,
    EngineInfo,
    VinDecodeResponse,
    VinLookupResponse,
)

__all__ = [
    "MaintenanceScheduleResponse",
    "MarketValueEntry",
    "MarketValues",
    "VehicleLookupResponse",
    "VehicleManualResponse",
    "VehicleSpecResponse",
    "VehicleWarrantyResponse",
    "DecodedVin",
    "EngineInfo",
    "VinDecodeResponse",
    "VinLookupResponse",
]
