"""
Vehicle lookup resolver.

Resolves a year/make/model/trim (or a VIN) into specifications, warranty,
market values and maintenance. Matching degrades gracefully:

1. ``make`` and ``model`` match case-insensitively, and hyphens or spaces
   in the model match either spelling ("CR-V" finds "CR V").
2. A supplied trim is tried as a prefix first ("XSE" finds "XSE/XSE V6").
3. If the trimmed query finds nothing, the same query runs without trim.

Step 2 and 3 are an ordered list of ``LookupStrategy`` objects evaluated
until one returns rows. Store faults in any step propagate; an empty result
is the only thing that moves on to the next strategy.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
import re
from typing import Any, Awaitable, Callable, Sequence, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from carintel.apps.vehicles.db.crud import (
    vehicle_maintenance_schedule_db,
    vehicle_market_value_db,
    vehicle_spec_db,
    vehicle_warranty_db,
)
from carintel.apps.vehicles.db.models import (
    VehicleMaintenanceSchedule,
    VehicleMarketValue,
    VehicleSpec,
    VehicleWarranty,
)
from carintel.apps.vehicles.schemas import (
    DecodedVin,
    MarketValueEntry,
    MarketValues,
)
from carintel.apps.vehicles.services.vin_decoder import VinDecoderService
from carintel.core.config import settings, vehicle_logger
from carintel.core.enums import VehicleCondition
from carintel.core.exceptions.types import (
    DatabaseException,
    InvalidVINException,
    NotFoundException,
    VINDecodeFailedException,
)
from carintel.core.utils import VIN_LENGTH, is_valid_vin, normalize_vin

R = TypeVar("R")

EXPECTED_MILES_PER_YEAR = 12000
ADJUSTMENT_CENTS_PER_MILE = -10  # -$0.10 per mile over the expected mileage

_MODEL_SEPARATORS = re.compile(r"[-\s]+")


@dataclass(frozen=True)
class VehicleQuery:
    """A natural vehicle identifier."""

    year: int
    make: str
    model: str
    trim: str | None = None

    @property
    def model_pattern(self) -> str:
        """LIKE pattern where hyphens and spaces match each other."""
        return _MODEL_SEPARATORS.sub("%", self.model.strip())

    @classmethod
    def from_spec(cls, spec: VehicleSpec) -> "VehicleQuery":
        return cls(year=spec.year, make=spec.make, model=spec.model, trim=spec.trim)


class LookupStrategy(ABC):
    """One step of the matching fallback chain."""

    name: str = "strategy"

    @abstractmethod
    def applies(self, query: VehicleQuery) -> bool:
        """Whether this step should run for the query at all."""

    def conditions(self, model: Any, query: VehicleQuery) -> list[Any]:
        """Filter expressions against a YMMT-keyed model."""
        return [
            model.year == query.year,
            model.make.ilike(query.make.strip()),
            model.model.ilike(query.model_pattern),
        ]


class TrimPrefixStrategy(LookupStrategy):
    """Match the trim as a prefix, tolerating suffixes like "XSE/XSE V6"."""

    name = "trim_prefix"

    def applies(self, query: VehicleQuery) -> bool:
        return bool(query.trim and query.trim.strip())

    def conditions(self, model: Any, query: VehicleQuery) -> list[Any]:
        assert query.trim is not None
        return super().conditions(model, query) + [
            model.trim.ilike(f"{query.trim.strip()}%")
        ]


class AnyTrimStrategy(LookupStrategy):
    """Ignore trim entirely."""

    name = "any_trim"

    def applies(self, query: VehicleQuery) -> bool:
        return True


DEFAULT_STRATEGIES: tuple[LookupStrategy, ...] = (
    TrimPrefixStrategy(),
    AnyTrimStrategy(),
)


@dataclass
class LookupResult:
    specs: VehicleSpec | None = None
    warranty: Sequence[VehicleWarranty] = field(default_factory=list)
    market_values: Sequence[VehicleMarketValue] = field(default_factory=list)
    maintenance: Sequence[VehicleMaintenanceSchedule] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.specs or self.warranty or self.market_values or self.maintenance
        )


@dataclass
class VinLookupResult:
    vin_info: DecodedVin
    result: LookupResult

    @property
    def local_data_found(self) -> bool:
        return not self.result.is_empty


def format_market_values(values: Sequence[VehicleMarketValue]) -> MarketValues:
    """
    Key market values by condition.

    Later rows for the same condition replace earlier ones.
    """
    formatted: MarketValues = {}
    for value in values:
        condition = VehicleCondition(value.condition)
        formatted[condition.value] = MarketValueEntry.model_validate(value)
    return formatted


def mileage_adjustment_cents(
    year: int, mileage: int, today: date | None = None
) -> int:
    """
    Linear mileage adjustment, in cents.

    Expected mileage is 12,000 miles per year of age; every mile above it
    removes $0.10 and every mile below adds $0.10.

    Examples:
        >>> mileage_adjustment_cents(2020, 60000, date(2024, 6, 1))
        -120000
    """
    today = today or datetime.now(timezone.utc).date()
    expected = (today.year - year) * EXPECTED_MILES_PER_YEAR
    return (mileage - expected) * ADJUSTMENT_CENTS_PER_MILE


def apply_mileage_adjustment(
    values: MarketValues, adjustment_cents: int
) -> MarketValues:
    """Add the same adjustment to every figure present, in every condition."""
    adjusted: MarketValues = {}
    for condition, entry in values.items():
        adjusted[condition] = entry.model_copy(
            update={
                name: getattr(entry, name) + adjustment_cents
                for name in ("trade_in_cents", "private_party_cents", "dealer_retail_cents")
                if getattr(entry, name) is not None
            }
        )
    return adjusted


class VehicleLookupService:
    """
    Service resolving vehicle identifiers into vehicle records.

    Args:
        strategies: Ordered fallback chain. Defaults to trim prefix, then any trim.
    """

    def __init__(self, strategies: Sequence[LookupStrategy] = DEFAULT_STRATEGIES):
        self.strategies = tuple(strategies)

    async def _first_non_empty(
        self,
        query: VehicleQuery,
        fetch: Callable[[LookupStrategy], Awaitable[Sequence[R]]],
        what: str,
    ) -> Sequence[R]:
        for strategy in self.strategies:
            if not strategy.applies(query):
                continue
            try:
                rows = await fetch(strategy)
            except DatabaseException as e:
                vehicle_logger.error(
                    f"{what} query failed at step {strategy.name} for "
                    f"{query.year} {query.make} {query.model}: {str(e)}"
                )
                raise
            if rows:
                return rows
        return []

    async def find_specs(
        self, session: AsyncSession, query: VehicleQuery
    ) -> VehicleSpec | None:
        """First matching specification, oldest row first on ties."""
        rows = await self._first_non_empty(
            query,
            lambda strategy: vehicle_spec_db.get_by_conditions(
                session,
                strategy.conditions(VehicleSpec, query),
                order_by=[VehicleSpec.created_at, VehicleSpec.id],
                limit=1,
            ),
            "specs",
        )
        return rows[0] if rows else None

    async def find_market_values(
        self,
        session: AsyncSession,
        query: VehicleQuery,
        condition: VehicleCondition | None = None,
    ) -> Sequence[VehicleMarketValue]:
        """Market values for the vehicle, capped at LOOKUP_MARKET_VALUE_LIMIT rows."""

        def fetch(strategy: LookupStrategy):
            conditions = strategy.conditions(VehicleMarketValue, query)
            if condition is not None:
                conditions.append(VehicleMarketValue.condition == condition)
            return vehicle_market_value_db.get_by_conditions(
                session,
                conditions,
                order_by=[
                    VehicleMarketValue.trim,
                    VehicleMarketValue.created_at,
                    VehicleMarketValue.id,
                ],
                limit=settings.LOOKUP_MARKET_VALUE_LIMIT,
            )

        return await self._first_non_empty(query, fetch, "market values")

    async def find_maintenance(
        self,
        session: AsyncSession,
        query: VehicleQuery,
        current_mileage: int | None = None,
    ) -> Sequence[VehicleMaintenanceSchedule]:
        """
        Maintenance entries in ascending mileage order.

        With ``current_mileage`` only upcoming entries (mileage >= current)
        are returned. Capped at LOOKUP_MAINTENANCE_LIMIT rows.
        """

        def fetch(strategy: LookupStrategy):
            conditions = strategy.conditions(VehicleMaintenanceSchedule, query)
            if current_mileage is not None:
                conditions.append(VehicleMaintenanceSchedule.mileage >= current_mileage)
            return vehicle_maintenance_schedule_db.get_by_conditions(
                session,
                conditions,
                order_by=[
                    VehicleMaintenanceSchedule.mileage,
                    VehicleMaintenanceSchedule.trim,
                    VehicleMaintenanceSchedule.id,
                ],
                limit=settings.LOOKUP_MAINTENANCE_LIMIT,
            )

        return await self._first_non_empty(query, fetch, "maintenance")

    async def resolve(
        self,
        session: AsyncSession,
        query: VehicleQuery,
        current_mileage: int | None = None,
    ) -> LookupResult:
        """
        Gather every category for a vehicle. Categories are queried in order.

        Returns:
            LookupResult, possibly empty.
        """
        specs = await self.find_specs(session, query)
        warranty = (
            await vehicle_warranty_db.get_by_spec(session, specs.id) if specs else []
        )
        market_values = await self.find_market_values(session, query)
        maintenance = await self.find_maintenance(session, query, current_mileage)
        return LookupResult(
            specs=specs,
            warranty=warranty,
            market_values=market_values,
            maintenance=maintenance,
        )

    async def lookup(
        self,
        session: AsyncSession,
        query: VehicleQuery,
        current_mileage: int | None = None,
    ) -> LookupResult:
        """
        Resolve a vehicle, treating a completely empty result as not found.

        Raises:
            NotFoundException: If no category has any data.
        """
        result = await self.resolve(session, query, current_mileage)
        if result.is_empty:
            vehicle_logger.info(
                f"No vehicle data for {query.year} {query.make} {query.model} "
                f"{query.trim or ''}".rstrip()
            )
            raise NotFoundException(
                "No vehicle data found for the specified year, make, model"
            )
        return result

    async def lookup_vin(
        self, session: AsyncSession, vin: str, current_mileage: int | None = None
    ) -> VinLookupResult:
        """
        Decode a VIN and resolve its local vehicle data.

        A decoded VIN without local data is a successful, empty result.

        Raises:
            InvalidVINException: Wrong length or characters.
            VINDecodeFailedException: Registry did not yield year, make and model.
            UpstreamServiceException: Registry unavailable.
        """
        decoded = await self.decode_vin(vin)
        if not (decoded.year and decoded.make and decoded.model):
            raise VINDecodeFailedException()

        query = VehicleQuery(
            year=decoded.year,
            make=decoded.make,
            model=decoded.model,
            trim=decoded.primary_trim,
        )
        result = await self.resolve(session, query, current_mileage)
        return VinLookupResult(vin_info=decoded, result=result)

    async def decode_vin(self, vin: str) -> DecodedVin:
        vin = validate_vin(vin)
        return await VinDecoderService.decode(vin)

    async def get_spec_or_404(
        self, session: AsyncSession, vehicle_id: UUID
    ) -> VehicleSpec:
        spec = await vehicle_spec_db.get_by_id(session, vehicle_id)
        if spec is None:
            raise NotFoundException("Vehicle not found")
        return spec


def validate_vin(vin: str) -> str:
    """
    Normalise and validate a VIN.

    Raises:
        InvalidVINException: If the VIN is not 17 allowed characters.
    """
    normalized = normalize_vin(vin)
    if len(normalized) != VIN_LENGTH:
        raise InvalidVINException("VIN must be exactly 17 characters")
    if not is_valid_vin(normalized):
        raise InvalidVINException("VIN contains invalid characters")
    return normalized


vehicle_lookup_service = VehicleLookupService()


__all__ = [
    "VehicleQuery",
    "LookupStrategy",
    "TrimPrefixStrategy",
    "AnyTrimStrategy",
    "DEFAULT_STRATEGIES",
    "LookupResult",
    "VinLookupResult",
    "VehicleLookupService",
    "vehicle_lookup_service",
    "format_market_values",
    "mileage_adjustment_cents",
    "apply_mileage_adjustment",
    "validate_vin",
]
