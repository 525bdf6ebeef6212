from carintel.apps.vehicles.services.lookup import (
    DEFAULT_STRATEGIES,
    AnyTrimStrategy,
    LookupResult,
    LookupStrategy,
    TrimPrefixStrategy,
    VehicleLookupService,
    VehicleQuery,
    VinLookupResult,
    apply_mileage_adjustment,
    format_market_values,
    mileage_adjustment_cents,
    validate_vin,
    vehicle_lookup_service,
)
from carintel.apps.vehicles.services.vin_decoder import (
    VinDecoderService,
    parse_decode_response,
)

__all__ = [
    "DEFAULT_STRATEGIES",
    "AnyTrimStrategy",
    "LookupResult",
    "LookupStrategy",
    "TrimPrefixStrategy",
    "VehicleLookupService",
    "VehicleQuery",
    "VinLookupResult",
    "apply_mileage_adjustment",
    "format_market_values",
    "mileage_adjustment_cents",
    "validate_vin",
    "vehicle_lookup_service",
    "VinDecoderService",
    "parse_decode_response",
]
