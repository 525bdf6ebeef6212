from carintel.apps.vehicles.db.crud.vehicle import (
    VehicleMaintenanceScheduleDB,
    VehicleManualDB,
    VehicleMarketValueDB,
    VehicleSpecDB,
    VehicleWarrantyDB,
    vehicle_maintenance_schedule_db,
    vehicle_manual_db,
    vehicle_market_value_db,
    vehicle_spec_db,
    vehicle_warranty_db,
)

__all__ = [
    "VehicleMaintenanceScheduleDB",
    "VehicleManualDB",
    "VehicleMarketValueDB",
    "VehicleSpecDB",
    "VehicleWarrantyDB",
    "vehicle_maintenance_schedule_db",
    "vehicle_manual_db",
    "vehicle_market_value_db",
    "vehicle_spec_db",
    "vehicle_warranty_db",
]
