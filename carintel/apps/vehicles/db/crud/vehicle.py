"""
CRUD operations for vehicle data models.

"""

from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from carintel.apps.vehicles.db.models import (
    VehicleMaintenanceSchedule,
    VehicleManual,
    VehicleMarketValue,
    VehicleSpec,
    VehicleWarranty,
)
from carintel.core.db.crud.base import BaseDB
from carintel.core.enums import ManualStatus


class VehicleSpecDB(BaseDB[VehicleSpec]):
    """CRUD operations for VehicleSpec model."""

    def __init__(self):
        super().__init__(VehicleSpec)

    async def search(
        self,
        session: AsyncSession,
        year: int | None = None,
        make: str | None = None,
        model: str | None = None,
        trim: str | None = None,
        limit: int = 50,
    ) -> Sequence[VehicleSpec]:
        """
        Search specifications by any combination of YMMT.

        Text filters are case-insensitive equality.

        Args:
            session: Database session.
            year, make, model, trim: Optional filters.
            limit: Maximum rows returned.

        Returns:
            Matching specifications ordered by year, make, model, trim.
        """
        conditions = []
        if year is not None:
            conditions.append(VehicleSpec.year == year)
        if make:
            conditions.append(VehicleSpec.make.ilike(make))
        if model:
            conditions.append(VehicleSpec.model.ilike(model))
        if trim:
            conditions.append(VehicleSpec.trim.ilike(trim))

        return await self.get_by_conditions(
            session,
            conditions,
            order_by=[
                VehicleSpec.year.desc(),
                VehicleSpec.make,
                VehicleSpec.model,
                VehicleSpec.trim,
                VehicleSpec.id,
            ],
            limit=limit,
        )

    async def list_makes(
        self, session: AsyncSession, year: int | None = None
    ) -> list[str]:
        conditions = [VehicleSpec.year == year] if year is not None else []
        return await self.get_distinct(session, VehicleSpec.make, conditions)

    async def list_models(
        self, session: AsyncSession, make: str, year: int | None = None
    ) -> list[str]:
        conditions = [VehicleSpec.make.ilike(make)]
        if year is not None:
            conditions.append(VehicleSpec.year == year)
        return await self.get_distinct(session, VehicleSpec.model, conditions)

    async def list_trims(
        self,
        session: AsyncSession,
        make: str,
        model: str,
        year: int | None = None,
    ) -> list[str]:
        conditions = [VehicleSpec.make.ilike(make), VehicleSpec.model.ilike(model)]
        if year is not None:
            conditions.append(VehicleSpec.year == year)
        return await self.get_distinct(session, VehicleSpec.trim, conditions)

    async def list_years(
        self, session: AsyncSession, make: str, model: str | None = None
    ) -> list[int]:
        """Distinct model years for a make, newest first."""
        conditions = [VehicleSpec.make.ilike(make)]
        if model:
            conditions.append(VehicleSpec.model.ilike(model))
        return await self.get_distinct(
            session, VehicleSpec.year, conditions, descending=True
        )


class VehicleWarrantyDB(BaseDB[VehicleWarranty]):
    """CRUD operations for VehicleWarranty model."""

    def __init__(self):
        super().__init__(VehicleWarranty)

    async def get_by_spec(
        self, session: AsyncSession, vehicle_spec_id: UUID
    ) -> Sequence[VehicleWarranty]:
        return await self.get_by_filters(
            session,
            {"vehicle_spec_id": vehicle_spec_id},
            order_by=[VehicleWarranty.coverage_type, VehicleWarranty.id],
        )


class VehicleMarketValueDB(BaseDB[VehicleMarketValue]):
    """CRUD operations for VehicleMarketValue model."""

    def __init__(self):
        super().__init__(VehicleMarketValue)


class VehicleMaintenanceScheduleDB(BaseDB[VehicleMaintenanceSchedule]):
    """CRUD operations for VehicleMaintenanceSchedule model."""

    def __init__(self):
        super().__init__(VehicleMaintenanceSchedule)


class VehicleManualDB(BaseDB[VehicleManual]):
    """CRUD operations for VehicleManual model."""

    def __init__(self):
        super().__init__(VehicleManual)

    async def get_available(
        self,
        session: AsyncSession,
        year: int | None = None,
        make: str | None = None,
        model: str | None = None,
        limit: int = 50,
    ) -> Sequence[VehicleManual]:
        """
        Manuals whose PDF has been uploaded and can be served.

        Args:
            session: Database session.
            year, make, model: Optional filters; make and model are case-insensitive.
            limit: Maximum rows returned.

        Returns:
            Manuals ordered newest year first.
        """
        conditions = [VehicleManual.status == ManualStatus.UPLOADED]
        if year is not None:
            conditions.append(VehicleManual.year == year)
        if make:
            conditions.append(VehicleManual.make.ilike(make))
        if model:
            conditions.append(VehicleManual.model.ilike(model))
        return await self.get_by_conditions(
            session,
            conditions,
            order_by=[
                VehicleManual.year.desc(),
                VehicleManual.make,
                VehicleManual.model,
                VehicleManual.variant,
            ],
            limit=limit,
        )


# Global CRUD instances
vehicle_spec_db = VehicleSpecDB()
vehicle_warranty_db = VehicleWarrantyDB()
vehicle_market_value_db = VehicleMarketValueDB()
vehicle_maintenance_schedule_db = VehicleMaintenanceScheduleDB()
vehicle_manual_db = VehicleManualDB()


__all__ = [
    "VehicleSpecDB",
    "VehicleWarrantyDB",
    "VehicleMarketValueDB",
    "VehicleMaintenanceScheduleDB",
    "VehicleManualDB",
    "vehicle_spec_db",
    "vehicle_warranty_db",
    "vehicle_market_value_db",
    "vehicle_maintenance_schedule_db",
    "vehicle_manual_db",
]
