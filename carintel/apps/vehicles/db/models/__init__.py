from carintel.apps.vehicles.db.models.vehicle import (
    VehicleMaintenanceSchedule,
    VehicleManual,
    VehicleMarketValue,
    VehicleSpec,
    VehicleWarranty,
)

__all__ = [
    "VehicleMaintenanceSchedule",
    "VehicleManual",
    "VehicleMarketValue",
    "VehicleSpec",
    "VehicleWarranty",
]
