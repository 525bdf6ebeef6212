"""
Tests for the vehicle data endpoints.

Run tests:
    pytest tests/apps/vehicles/routers/test_vehicles_router.py -v
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from httpx import AsyncClient


DECODE_TARGET = "carintel.apps.vehicles.services.lookup.VinDecoderService.decode"


# ============================================================================
# Lookup
# ============================================================================


class TestLookupEndpoint:

    @pytest.mark.asyncio
    async def test_full_lookup(self, authenticated_client: AsyncClient, camry):
        response = await authenticated_client.get(
            "/v1/vehicles/lookup",
            params={"year": 2024, "make": "toyota", "model": "CAMRY", "trim": "XSE"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["specs"]["id"] == str(camry.id)
        assert data["specs"]["trim"] == "XSE/XSE V6"
        assert data["specs"]["horsepower"] == 301
        assert sorted(w["coverage_type"] for w in data["warranty"]) == [
            "basic",
            "powertrain",
        ]
        assert set(data["market_values"]) == {"Clean", "Rough"}
        assert data["market_values"]["Rough"]["trade_in_cents"] == 1_500_000
        assert data["market_values"]["Rough"]["dealer_retail_cents"] is None
        assert [m["mileage"] for m in data["maintenance"]] == [5000, 10000]

    @pytest.mark.asyncio
    async def test_current_mileage_filters_maintenance(
        self, authenticated_client: AsyncClient, camry
    ):
        response = await authenticated_client.get(
            "/v1/vehicles/lookup",
            params={
                "year": 2024,
                "make": "Toyota",
                "model": "Camry",
                "current_mileage": 6000,
            },
        )

        assert [m["mileage"] for m in response.json()["data"]["maintenance"]] == [
            10000
        ]

    @pytest.mark.asyncio
    async def test_hyphenated_model(self, authenticated_client: AsyncClient, make_spec):
        await make_spec(year=2021, make="Honda", model="CR-V", trim="EX")

        response = await authenticated_client.get(
            "/v1/vehicles/lookup",
            params={"year": 2021, "make": "Honda", "model": "CR V"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["specs"]["model"] == "CR-V"

    @pytest.mark.asyncio
    async def test_not_found(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get(
            "/v1/vehicles/lookup",
            params={"year": 1999, "make": "Nope", "model": "Nothing"},
        )

        assert response.status_code == 404
        assert response.json() == {
            "error": {
                "code": "not_found",
                "message": "No vehicle data found for the specified year, make, model",
            }
        }

    @pytest.mark.asyncio
    async def test_empty_make_is_invalid(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get(
            "/v1/vehicles/lookup",
            params={"year": 2024, "make": "", "model": "Camry"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_params"


# ============================================================================
# VIN
# ============================================================================


class TestVinEndpoints:

    @pytest.mark.asyncio
    async def test_vin_lookup_with_local_data(
        self, authenticated_client: AsyncClient, camry, decoded_camry
    ):
        with patch(DECODE_TARGET, new=AsyncMock(return_value=decoded_camry)):
            response = await authenticated_client.get(
                "/v1/vehicles/vin/4t1k61ak5ru000001"
            )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["local_data_found"] is True
        assert data["vin_info"]["vin"] == "4T1K61AK5RU000001"
        assert data["specs"]["id"] == str(camry.id)

    @pytest.mark.asyncio
    async def test_vin_lookup_without_local_data(
        self, authenticated_client: AsyncClient, decoded_camry
    ):
        with patch(DECODE_TARGET, new=AsyncMock(return_value=decoded_camry)):
            response = await authenticated_client.get(
                "/v1/vehicles/vin/4T1K61AK5RU000001"
            )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["local_data_found"] is False
        assert data["specs"] is None
        assert data["market_values"] == {}
        assert data["vin_info"]["make"] == "TOYOTA"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "vin,message",
        [
            ("SHORTVIN", "VIN must be exactly 17 characters"),
            ("4T1K61AK5RU00000O", "VIN contains invalid characters"),
        ],
    )
    async def test_invalid_vin(self, authenticated_client: AsyncClient, vin, message):
        with patch(DECODE_TARGET, new=AsyncMock()) as mock_decode:
            response = await authenticated_client.get(f"/v1/vehicles/vin/{vin}")

        assert response.status_code == 400
        assert response.json() == {"error": {"code": "invalid_vin", "message": message}}
        mock_decode.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_decode_failed(self, authenticated_client: AsyncClient, decoded_camry):
        decoded = decoded_camry.model_copy(update={"model": None})
        with patch(DECODE_TARGET, new=AsyncMock(return_value=decoded)):
            response = await authenticated_client.get(
                "/v1/vehicles/vin/4T1K61AK5RU000001"
            )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "decode_failed"

    @pytest.mark.asyncio
    async def test_registry_unavailable(self, authenticated_client: AsyncClient):
        from carintel.core.exceptions.types import UpstreamServiceException

        with patch(
            DECODE_TARGET,
            new=AsyncMock(
                side_effect=UpstreamServiceException("VIN decoding service timed out")
            ),
        ):
            response = await authenticated_client.get(
                "/v1/vehicles/vin/4T1K61AK5RU000001"
            )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_error"

    @pytest.mark.asyncio
    async def test_decode_only(self, authenticated_client: AsyncClient, decoded_camry):
        with patch(DECODE_TARGET, new=AsyncMock(return_value=decoded_camry)):
            response = await authenticated_client.get(
                "/v1/vehicles/decode/4T1K61AK5RU000001"
            )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["year"] == 2024
        assert data["body_type"] == "Sedan/Saloon"
        assert data["warning"] is None

    @pytest.mark.asyncio
    async def test_decode_partial_carries_warning(
        self, authenticated_client: AsyncClient, decoded_camry
    ):
        decoded = decoded_camry.model_copy(
            update={"error_code": "8", "error_text": "8 - No detailed data available"}
        )
        with patch(DECODE_TARGET, new=AsyncMock(return_value=decoded)):
            response = await authenticated_client.get(
                "/v1/vehicles/decode/4T1K61AK5RU000001"
            )

        assert response.json()["data"]["warning"] == "8 - No detailed data available"


# ============================================================================
# Specifications and by-id resources
# ============================================================================


class TestSpecsEndpoints:

    @pytest.mark.asyncio
    async def test_search(self, authenticated_client: AsyncClient, make_spec):
        await make_spec(year=2023, trim="LE")
        await make_spec(year=2024, trim="LE")
        await make_spec(year=2024, make="Honda", model="Civic")

        response = await authenticated_client.get(
            "/v1/vehicles/specs", params={"make": "toyota"}
        )

        data = response.json()["data"]
        assert response.status_code == 200
        assert [(s["year"], s["make"]) for s in data] == [
            (2024, "Toyota"),
            (2023, "Toyota"),
        ]

    @pytest.mark.asyncio
    async def test_search_limit(self, authenticated_client: AsyncClient, make_spec):
        for trim in ("L", "LE", "SE"):
            await make_spec(trim=trim)

        response = await authenticated_client.get(
            "/v1/vehicles/specs", params={"limit": 2}
        )

        assert len(response.json()["data"]) == 2

    @pytest.mark.asyncio
    async def test_specs_by_id(self, authenticated_client: AsyncClient, camry):
        response = await authenticated_client.get(f"/v1/vehicles/{camry.id}/specs")

        assert response.status_code == 200
        assert response.json()["data"]["id"] == str(camry.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "resource", ["specs", "warranty", "market-value", "maintenance"]
    )
    async def test_invalid_vehicle_id(
        self, authenticated_client: AsyncClient, resource
    ):
        response = await authenticated_client.get(f"/v1/vehicles/not-a-uuid/{resource}")

        assert response.status_code == 400
        assert response.json() == {
            "error": {
                "code": "invalid_params",
                "message": "Vehicle ID must be a valid UUID",
            }
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("resource", ["specs", "market-value", "maintenance"])
    async def test_unknown_vehicle_id(
        self, authenticated_client: AsyncClient, resource
    ):
        response = await authenticated_client.get(f"/v1/vehicles/{uuid4()}/{resource}")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Vehicle not found"

    @pytest.mark.asyncio
    async def test_warranty(self, authenticated_client: AsyncClient, camry):
        response = await authenticated_client.get(f"/v1/vehicles/{camry.id}/warranty")

        data = response.json()["data"]
        assert response.status_code == 200
        assert [w["coverage_type"] for w in data] == ["basic", "powertrain"]
        assert data[1]["months"] == 60

    @pytest.mark.asyncio
    async def test_warranty_missing(self, authenticated_client: AsyncClient, make_spec):
        spec = await make_spec(trim="LE")

        response = await authenticated_client.get(f"/v1/vehicles/{spec.id}/warranty")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == (
            "No warranty information found for this vehicle"
        )

    @pytest.mark.asyncio
    async def test_market_value(self, authenticated_client: AsyncClient, camry):
        response = await authenticated_client.get(
            f"/v1/vehicles/{camry.id}/market-value"
        )

        data = response.json()["data"]
        assert set(data) == {"Clean", "Rough"}
        assert data["Clean"]["private_party_cents"] == 2_300_000

    @pytest.mark.asyncio
    async def test_market_value_condition(self, authenticated_client: AsyncClient, camry):
        response = await authenticated_client.get(
            f"/v1/vehicles/{camry.id}/market-value", params={"condition": "Clean"}
        )

        assert set(response.json()["data"]) == {"Clean"}

    @pytest.mark.asyncio
    async def test_market_value_unknown_condition(
        self, authenticated_client: AsyncClient, camry
    ):
        response = await authenticated_client.get(
            f"/v1/vehicles/{camry.id}/market-value", params={"condition": "Mint"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_params"

    @pytest.mark.asyncio
    async def test_market_value_mileage_adjustment(
        self, authenticated_client: AsyncClient, camry
    ):
        from carintel.apps.vehicles.services import mileage_adjustment_cents

        adjustment = mileage_adjustment_cents(camry.year, 40000)

        response = await authenticated_client.get(
            f"/v1/vehicles/{camry.id}/market-value", params={"mileage": 40000}
        )

        data = response.json()["data"]
        assert data["Clean"]["trade_in_cents"] == 2_000_000 + adjustment
        assert data["Clean"]["dealer_retail_cents"] == 2_600_000 + adjustment
        assert data["Rough"]["dealer_retail_cents"] is None

    @pytest.mark.asyncio
    async def test_maintenance(self, authenticated_client: AsyncClient, camry):
        response = await authenticated_client.get(
            f"/v1/vehicles/{camry.id}/maintenance"
        )

        data = response.json()["data"]
        assert [m["mileage"] for m in data] == [5000, 10000]
        assert data[0]["service_items"] == ["Tire rotation"]

    @pytest.mark.asyncio
    async def test_maintenance_upcoming(self, authenticated_client: AsyncClient, camry):
        response = await authenticated_client.get(
            f"/v1/vehicles/{camry.id}/maintenance", params={"current_mileage": 5001}
        )

        assert [m["mileage"] for m in response.json()["data"]] == [10000]


# ============================================================================
# Catalog
# ============================================================================


class TestCatalogEndpoints:

    @pytest.fixture
    async def catalog(self, make_spec):
        await make_spec(year=2023, make="Toyota", model="Camry", trim="LE")
        await make_spec(year=2024, make="Toyota", model="Camry", trim="LE")
        await make_spec(year=2024, make="Toyota", model="Camry", trim="XSE")
        await make_spec(year=2024, make="Toyota", model="RAV4", trim=None)
        await make_spec(year=2022, make="Honda", model="Civic", trim="Sport")

    @pytest.mark.asyncio
    async def test_makes(self, authenticated_client: AsyncClient, catalog):
        response = await authenticated_client.get("/v1/vehicles/makes")

        assert response.json()["data"] == ["Honda", "Toyota"]

    @pytest.mark.asyncio
    async def test_makes_by_year(self, authenticated_client: AsyncClient, catalog):
        response = await authenticated_client.get(
            "/v1/vehicles/makes", params={"year": 2022}
        )

        assert response.json()["data"] == ["Honda"]

    @pytest.mark.asyncio
    async def test_models(self, authenticated_client: AsyncClient, catalog):
        response = await authenticated_client.get("/v1/vehicles/makes/toyota/models")

        assert response.json()["data"] == ["Camry", "RAV4"]

    @pytest.mark.asyncio
    async def test_trims_skip_null(self, authenticated_client: AsyncClient, catalog):
        camry = await authenticated_client.get(
            "/v1/vehicles/makes/Toyota/models/Camry/trims"
        )
        rav4 = await authenticated_client.get(
            "/v1/vehicles/makes/Toyota/models/RAV4/trims"
        )

        assert camry.json()["data"] == ["LE", "XSE"]
        assert rav4.json()["data"] == []

    @pytest.mark.asyncio
    async def test_trims_by_year(self, authenticated_client: AsyncClient, catalog):
        response = await authenticated_client.get(
            "/v1/vehicles/makes/Toyota/models/Camry/trims", params={"year": 2023}
        )

        assert response.json()["data"] == ["LE"]

    @pytest.mark.asyncio
    async def test_years(self, authenticated_client: AsyncClient, catalog):
        response = await authenticated_client.get(
            "/v1/vehicles/years", params={"make": "Toyota", "model": "Camry"}
        )

        assert response.json()["data"] == [2024, 2023]

    @pytest.mark.asyncio
    async def test_years_requires_make(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get("/v1/vehicles/years")

        assert response.status_code == 400
        assert response.json()["error"] == {
            "code": "missing_params",
            "message": "Missing required parameters: make",
        }


class TestManualsEndpoint:

    @pytest.mark.asyncio
    async def test_only_uploaded_manuals(
        self, authenticated_client: AsyncClient, make_manual
    ):
        await make_manual(year=2024, model="Camry", status="uploaded")
        await make_manual(year=2023, model="Camry", status="failed")
        await make_manual(year=2022, model="Corolla", status="uploaded")

        response = await authenticated_client.get(
            "/v1/vehicles/manuals", params={"make": "toyota"}
        )

        data = response.json()["data"]
        assert response.status_code == 200
        assert [(m["year"], m["model"]) for m in data] == [
            (2024, "Camry"),
            (2022, "Corolla"),
        ]
        assert data[0]["pdf_url"] == "https://example.com/2024-Camry.pdf"

    @pytest.mark.asyncio
    async def test_filter_by_model(self, authenticated_client: AsyncClient, make_manual):
        await make_manual(year=2024, model="Camry")
        await make_manual(year=2024, model="Corolla")

        response = await authenticated_client.get(
            "/v1/vehicles/manuals", params={"model": "corolla"}
        )

        assert [m["model"] for m in response.json()["data"]] == ["Corolla"]
