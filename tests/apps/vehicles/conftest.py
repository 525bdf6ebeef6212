"""
Vehicle data fixtures.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession


@pytest.fixture
def make_spec(db_session: AsyncSession):
    async def _make(year=2024, make="Toyota", model="Camry", trim=None, **kwargs):
        from carintel.apps.vehicles.db.models import VehicleSpec

        spec = VehicleSpec(year=year, make=make, model=model, trim=trim, **kwargs)
        db_session.add(spec)
        await db_session.commit()
        return spec

    return _make


@pytest.fixture
def make_warranty(db_session: AsyncSession):
    async def _make(spec, coverage_type="basic", months=36, miles=36000, **kwargs):
        from carintel.apps.vehicles.db.models import VehicleWarranty

        warranty = VehicleWarranty(
            vehicle_spec_id=spec.id,
            coverage_type=coverage_type,
            months=months,
            miles=miles,
            **kwargs,
        )
        db_session.add(warranty)
        await db_session.commit()
        return warranty

    return _make


@pytest.fixture
def make_market_value(db_session: AsyncSession):
    async def _make(
        year=2024,
        make="Toyota",
        model="Camry",
        trim=None,
        condition="Clean",
        trade_in_cents=2_000_000,
        private_party_cents=2_300_000,
        dealer_retail_cents=2_600_000,
        **kwargs,
    ):
        from carintel.apps.vehicles.db.models import VehicleMarketValue
        from carintel.core.enums import VehicleCondition

        value = VehicleMarketValue(
            year=year,
            make=make,
            model=model,
            trim=trim,
            condition=VehicleCondition(condition),
            trade_in_cents=trade_in_cents,
            private_party_cents=private_party_cents,
            dealer_retail_cents=dealer_retail_cents,
            **kwargs,
        )
        db_session.add(value)
        await db_session.commit()
        return value

    return _make


@pytest.fixture
def make_maintenance(db_session: AsyncSession):
    async def _make(
        mileage,
        year=2024,
        make="Toyota",
        model="Camry",
        trim=None,
        service_items=None,
        **kwargs,
    ):
        from carintel.apps.vehicles.db.models import VehicleMaintenanceSchedule

        schedule = VehicleMaintenanceSchedule(
            year=year,
            make=make,
            model=model,
            trim=trim,
            mileage=mileage,
            service_items=service_items or ["Oil change"],
            **kwargs,
        )
        db_session.add(schedule)
        await db_session.commit()
        return schedule

    return _make


@pytest.fixture
def make_manual(db_session: AsyncSession):
    async def _make(year=2024, make="Toyota", model="Camry", status="uploaded", **kwargs):
        from carintel.apps.vehicles.db.models import VehicleManual
        from carintel.core.enums import ManualStatus

        manual = VehicleManual(
            year=year,
            make=make,
            model=model,
            status=ManualStatus(status),
            source_url=kwargs.pop("source_url", "https://example.com/manuals"),
            pdf_url=kwargs.pop("pdf_url", f"https://example.com/{year}-{model}.pdf"),
            **kwargs,
        )
        db_session.add(manual)
        await db_session.commit()
        return manual

    return _make


@pytest.fixture
async def camry(make_spec, make_warranty, make_market_value, make_maintenance):
    """2024 Toyota Camry XSE with one record in every category."""
    spec = await make_spec(trim="XSE/XSE V6", horsepower=301)
    await make_warranty(spec, coverage_type="basic", months=36, miles=36000)
    await make_warranty(spec, coverage_type="powertrain", months=60, miles=60000)
    await make_market_value(trim="XSE/XSE V6", condition="Clean")
    await make_market_value(
        trim="XSE/XSE V6",
        condition="Rough",
        trade_in_cents=1_500_000,
        private_party_cents=1_700_000,
        dealer_retail_cents=None,
    )
    await make_maintenance(5000, trim="XSE/XSE V6", service_items=["Tire rotation"])
    await make_maintenance(10000, trim="XSE/XSE V6", service_items=["Oil change"])
    return spec


@pytest.fixture
def decoded_camry():
    from carintel.apps.vehicles.schemas import DecodedVin

    return DecodedVin(
        vin="4T1K61AK5RU000001",
        year=2024,
        make="TOYOTA",
        model="Camry",
        trim="XSE/XSE V6",
        body_type="Sedan/Saloon",
        error_code="0",
    )
