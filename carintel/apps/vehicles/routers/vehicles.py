"""
Vehicle data router.

This module provides the metered, read-only endpoints for:
- Vehicle lookup by year/make/model/trim or by VIN
- Specifications search and retrieval
- Warranty, market value and maintenance by vehicle id
- Make/model/trim/year enumeration
- Owner's manuals

Every endpoint depends on the gateway (authentication, then rate limiting)
and is billed one token per admitted request.
"""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from carintel.apps.vehicles.db.crud import (
    vehicle_manual_db,
    vehicle_spec_db,
    vehicle_warranty_db,
)
from carintel.apps.vehicles.schemas import (
    DecodedVin,
    MaintenanceScheduleResponse,
    MarketValues,
    VehicleLookupResponse,
    VehicleManualResponse,
    VehicleSpecResponse,
    VehicleWarrantyResponse,
    VinDecodeResponse,
    VinLookupResponse,
)
from carintel.apps.vehicles.services import (
    LookupResult,
    VehicleQuery,
    apply_mileage_adjustment,
    format_market_values,
    mileage_adjustment_cents,
    vehicle_lookup_service,
)
from carintel.core.config import request_logger, settings
from carintel.core.dependencies import GatewayContext, GatewayRequest, get_async_session
from carintel.core.enums import VehicleCondition
from carintel.core.exceptions.handlers import exception_schema
from carintel.core.exceptions.types import (
    BadRequestException,
    MethodNotAllowedException,
    NotFoundException,
)
from carintel.core.middleware import get_request_id
from carintel.core.schemas import ResponseMeta, SuccessResponse


router = APIRouter(prefix="/vehicles", responses=exception_schema)

# Mounted last: unknown paths and non-GET methods still pass the gateway
fallback_router = APIRouter(responses=exception_schema)

Session = Annotated[AsyncSession, Depends(get_async_session)]


# ============================================================================
# Helper Functions
# ============================================================================


def _envelope(request: Request, gateway: GatewayRequest, data: Any) -> dict:
    """Wrap route output in the success envelope."""
    return {
        "data": data,
        "meta": ResponseMeta(
            request_id=get_request_id(request),
            tokens_used=gateway.tokens_used,
            tokens_remaining=gateway.tokens_remaining,
        ),
    }


def _parse_vehicle_id(vehicle_id: str) -> UUID:
    try:
        return UUID(vehicle_id)
    except ValueError:
        raise BadRequestException("Vehicle ID must be a valid UUID") from None


def _build_lookup_response(result: LookupResult) -> dict:
    return {
        "specs": (
            VehicleSpecResponse.model_validate(result.specs) if result.specs else None
        ),
        "warranty": [
            VehicleWarrantyResponse.model_validate(w) for w in result.warranty
        ],
        "market_values": format_market_values(result.market_values),
        "maintenance": [
            MaintenanceScheduleResponse.model_validate(m) for m in result.maintenance
        ],
    }


# ============================================================================
# Lookup Endpoints
# ============================================================================


@router.get(
    "/lookup",
    response_model=SuccessResponse[VehicleLookupResponse],
    summary="Look up a vehicle",
    description="""
## Vehicle Lookup

Everything known about a vehicle: specifications, warranty, market values
and maintenance schedule.

### Query Parameters

| Parameter | Type | Required | Description |
|-----------|------|----------|-------------|
| `year` | integer | ✅ | Model year |
| `make` | string | ✅ | Manufacturer, case-insensitive |
| `model` | string | ✅ | Model; `CR-V` and `CR V` are equivalent |
| `trim` | string | ❌ | Trim prefix, e.g. `XSE` matches `XSE/XSE V6` |
| `current_mileage` | integer | ❌ | Only return maintenance due at or after this mileage |

### Notes

- An unmatched trim falls back to the first match for year/make/model
- Returns `404` only when no category has any data
""",
)
async def lookup_vehicle(
    request: Request,
    gateway: GatewayContext,
    session: Session,
    year: Annotated[int, Query()],
    make: Annotated[str, Query(min_length=1)],
    model: Annotated[str, Query(min_length=1)],
    trim: Annotated[str | None, Query()] = None,
    current_mileage: Annotated[int | None, Query(ge=0)] = None,
):
    request_logger.info(
        f"GET /vehicles/lookup - org={gateway.organization_id} "
        f"{year} {make} {model} {trim or ''}".rstrip()
    )
    result = await vehicle_lookup_service.lookup(
        session,
        VehicleQuery(year=year, make=make, model=model, trim=trim),
        current_mileage=current_mileage,
    )
    return _envelope(request, gateway, _build_lookup_response(result))


@router.get(
    "/vin/{vin}",
    response_model=SuccessResponse[VinLookupResponse],
    summary="Look up a vehicle by VIN",
    description="""
## VIN Lookup

Decodes the VIN through the vehicle registry, then resolves local data for
the decoded year/make/model and primary trim.

### Errors

| Code | Status | When |
|------|--------|------|
| `invalid_vin` | 400 | Not 17 characters, or contains I, O, Q or symbols |
| `decode_failed` | 400 | Registry could not determine year, make and model |

### Notes

- A VIN that decodes but has no local records returns `200` with
  `local_data_found: false`
""",
)
async def lookup_vin(
    request: Request,
    gateway: GatewayContext,
    session: Session,
    vin: str,
    current_mileage: Annotated[int | None, Query(ge=0)] = None,
):
    request_logger.info(f"GET /vehicles/vin - org={gateway.organization_id} vin={vin}")
    vin_result = await vehicle_lookup_service.lookup_vin(
        session, vin, current_mileage=current_mileage
    )
    data = _build_lookup_response(vin_result.result)
    data["vin_info"] = vin_result.vin_info
    data["local_data_found"] = vin_result.local_data_found
    return _envelope(request, gateway, data)


@router.get(
    "/decode/{vin}",
    response_model=SuccessResponse[VinDecodeResponse],
    summary="Decode a VIN",
)
async def decode_vin(request: Request, gateway: GatewayContext, vin: str):
    """Registry data only. A partial decode carries the registry's error text as ``warning``."""
    decoded: DecodedVin = await vehicle_lookup_service.decode_vin(vin)
    data = VinDecodeResponse(
        **decoded.model_dump(),
        warning=decoded.error_text if decoded.has_registry_error else None,
    )
    return _envelope(request, gateway, data)


# ============================================================================
# Specification Endpoints
# ============================================================================


@router.get(
    "/specs",
    response_model=SuccessResponse[list[VehicleSpecResponse]],
    summary="Search specifications",
)
async def search_specs(
    request: Request,
    gateway: GatewayContext,
    session: Session,
    year: Annotated[int | None, Query()] = None,
    make: Annotated[str | None, Query()] = None,
    model: Annotated[str | None, Query()] = None,
    trim: Annotated[str | None, Query()] = None,
    limit: Annotated[int, Query(ge=1)] = settings.SPECS_SEARCH_DEFAULT_LIMIT,
):
    specs = await vehicle_spec_db.search(
        session,
        year=year,
        make=make,
        model=model,
        trim=trim,
        limit=min(limit, settings.SPECS_SEARCH_MAX_LIMIT),
    )
    return _envelope(
        request, gateway, [VehicleSpecResponse.model_validate(s) for s in specs]
    )


@router.get(
    "/{vehicle_id}/specs",
    response_model=SuccessResponse[VehicleSpecResponse],
    summary="Get specifications by vehicle id",
)
async def get_specs(
    request: Request, gateway: GatewayContext, session: Session, vehicle_id: str
):
    spec = await vehicle_lookup_service.get_spec_or_404(
        session, _parse_vehicle_id(vehicle_id)
    )
    return _envelope(request, gateway, VehicleSpecResponse.model_validate(spec))


@router.get(
    "/{vehicle_id}/warranty",
    response_model=SuccessResponse[list[VehicleWarrantyResponse]],
    summary="Get warranty coverage by vehicle id",
)
async def get_warranty(
    request: Request, gateway: GatewayContext, session: Session, vehicle_id: str
):
    warranties = await vehicle_warranty_db.get_by_spec(
        session, _parse_vehicle_id(vehicle_id)
    )
    if not warranties:
        raise NotFoundException("No warranty information found for this vehicle")
    return _envelope(
        request,
        gateway,
        [VehicleWarrantyResponse.model_validate(w) for w in warranties],
    )


@router.get(
    "/{vehicle_id}/market-value",
    response_model=SuccessResponse[MarketValues],
    summary="Get market values by vehicle id",
    description="""
## Market Values

Trade-in, private party and dealer retail values in cents, keyed by
condition (`Outstanding`, `Clean`, `Average`, `Rough`).

### Query Parameters

| Parameter | Type | Required | Description |
|-----------|------|----------|-------------|
| `condition` | string | ❌ | Restrict to one condition |
| `mileage` | integer | ❌ | Odometer reading; applies a mileage adjustment |

### Mileage Adjustment

Expected mileage is 12,000 miles per year of age. Every mile above it
lowers each figure by $0.10, every mile below raises it by $0.10.
""",
)
async def get_market_value(
    request: Request,
    gateway: GatewayContext,
    session: Session,
    vehicle_id: str,
    condition: Annotated[VehicleCondition | None, Query()] = None,
    mileage: Annotated[int | None, Query(ge=0)] = None,
):
    spec = await vehicle_lookup_service.get_spec_or_404(
        session, _parse_vehicle_id(vehicle_id)
    )
    values = await vehicle_lookup_service.find_market_values(
        session, VehicleQuery.from_spec(spec), condition=condition
    )
    result = format_market_values(values)
    if mileage is not None:
        result = apply_mileage_adjustment(
            result, mileage_adjustment_cents(spec.year, mileage)
        )
    return _envelope(request, gateway, result)


@router.get(
    "/{vehicle_id}/maintenance",
    response_model=SuccessResponse[list[MaintenanceScheduleResponse]],
    summary="Get maintenance schedule by vehicle id",
)
async def get_maintenance(
    request: Request,
    gateway: GatewayContext,
    session: Session,
    vehicle_id: str,
    current_mileage: Annotated[int | None, Query(ge=0)] = None,
):
    """Ascending by mileage; with ``current_mileage``, upcoming services only."""
    spec = await vehicle_lookup_service.get_spec_or_404(
        session, _parse_vehicle_id(vehicle_id)
    )
    schedules = await vehicle_lookup_service.find_maintenance(
        session, VehicleQuery.from_spec(spec), current_mileage=current_mileage
    )
    return _envelope(
        request,
        gateway,
        [MaintenanceScheduleResponse.model_validate(s) for s in schedules],
    )


# ============================================================================
# Enumeration Endpoints
# ============================================================================


@router.get(
    "/makes",
    response_model=SuccessResponse[list[str]],
    summary="List makes",
)
async def list_makes(
    request: Request,
    gateway: GatewayContext,
    session: Session,
    year: Annotated[int | None, Query()] = None,
):
    makes = await vehicle_spec_db.list_makes(session, year=year)
    return _envelope(request, gateway, makes)


@router.get(
    "/makes/{make}/models",
    response_model=SuccessResponse[list[str]],
    summary="List models for a make",
)
async def list_models(
    request: Request,
    gateway: GatewayContext,
    session: Session,
    make: str,
    year: Annotated[int | None, Query()] = None,
):
    models = await vehicle_spec_db.list_models(session, make, year=year)
    return _envelope(request, gateway, models)


@router.get(
    "/makes/{make}/models/{model}/trims",
    response_model=SuccessResponse[list[str]],
    summary="List trims for a make and model",
)
async def list_trims(
    request: Request,
    gateway: GatewayContext,
    session: Session,
    make: str,
    model: str,
    year: Annotated[int | None, Query()] = None,
):
    trims = await vehicle_spec_db.list_trims(session, make, model, year=year)
    return _envelope(request, gateway, trims)


@router.get(
    "/years",
    response_model=SuccessResponse[list[int]],
    summary="List model years for a make",
)
async def list_years(
    request: Request,
    gateway: GatewayContext,
    session: Session,
    make: Annotated[str, Query(min_length=1)],
    model: Annotated[str | None, Query()] = None,
):
    years = await vehicle_spec_db.list_years(session, make, model=model)
    return _envelope(request, gateway, years)


# ============================================================================
# Manuals
# ============================================================================


@router.get(
    "/manuals",
    response_model=SuccessResponse[list[VehicleManualResponse]],
    summary="List available owner's manuals",
)
async def list_manuals(
    request: Request,
    gateway: GatewayContext,
    session: Session,
    year: Annotated[int | None, Query()] = None,
    make: Annotated[str | None, Query()] = None,
    model: Annotated[str | None, Query()] = None,
    limit: Annotated[int, Query(ge=1)] = settings.SPECS_SEARCH_DEFAULT_LIMIT,
):
    manuals = await vehicle_manual_db.get_available(
        session,
        year=year,
        make=make,
        model=model,
        limit=min(limit, settings.SPECS_SEARCH_MAX_LIMIT),
    )
    return _envelope(
        request, gateway, [VehicleManualResponse.model_validate(m) for m in manuals]
    )


# ============================================================================
# Fallback
# ============================================================================


@fallback_router.get("/{path:path}", include_in_schema=False)
async def unknown_endpoint(gateway: GatewayContext, path: str):
    raise NotFoundException("Unknown endpoint")


@fallback_router.api_route(
    "/{path:path}",
    methods=["POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def method_not_allowed(gateway: GatewayContext, path: str):
    raise MethodNotAllowedException()
