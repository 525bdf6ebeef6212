"""
Client for the NHTSA vPIC VIN decoding registry.

``GET {base}/vehicles/decodevin/{vin}?format=json`` returns a flat list of
``{"Variable": ..., "Value": ...}`` pairs; this module maps the ones the
gateway exposes onto ``DecodedVin``.
"""

from typing import Any

import httpx

from carintel.apps.vehicles.schemas.vin import DecodedVin, EngineInfo
from carintel.core.config import settings, vin_logger
from carintel.core.exceptions.types import UpstreamServiceException
from carintel.core.services.base import SingletonService


def _text(values: dict[str, str | None], variable: str) -> str | None:
    value = values.get(variable)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _number(values: dict[str, str | None], variable: str) -> int | None:
    # Registry values such as "4.0" or "2 " still yield their leading integer
    value = _text(values, variable)
    if value is None:
        return None
    digits = ""
    for char in value:
        if not char.isdigit():
            break
        digits += char
    return int(digits) if digits else None


def parse_decode_response(vin: str, payload: dict[str, Any]) -> DecodedVin:
    """
    Map a vPIC ``decodevin`` payload to ``DecodedVin``.

    Args:
        vin: The VIN that was decoded (already normalised).
        payload: The parsed JSON body.

    Returns:
        DecodedVin with every known attribute, None where absent.
    """
    values = {
        item.get("Variable"): item.get("Value")
        for item in payload.get("Results") or []
        if item.get("Variable")
    }
    return DecodedVin(
        vin=vin,
        year=_number(values, "Model Year"),
        make=_text(values, "Make"),
        model=_text(values, "Model"),
        trim=_text(values, "Trim"),
        body_type=_text(values, "Body Class"),
        vehicle_type=_text(values, "Vehicle Type"),
        doors=_number(values, "Doors"),
        engine=EngineInfo(
            cylinders=_number(values, "Engine Number of Cylinders"),
            displacement=_text(values, "Displacement (L)"),
            horsepower=_number(values, "Engine Brake (hp) From"),
            fuel_type=_text(values, "Fuel Type - Primary"),
        ),
        drivetrain=_text(values, "Drive Type"),
        transmission=_text(values, "Transmission Style"),
        manufacturer=_text(values, "Manufacturer Name"),
        plant_country=_text(values, "Plant Country"),
        plant_city=_text(values, "Plant City"),
        error_code=_text(values, "Error Code"),
        error_text=_text(values, "Error Text"),
    )


class VinDecoderService(SingletonService):
    _base_url: str = settings.VIN_DECODER_BASE_URL
    _timeout: float = settings.VIN_DECODER_TIMEOUT_SECONDS
    _client: httpx.AsyncClient | None = None

    @classmethod
    def _init_client(cls) -> None:
        """
        Initializes the HTTP client if it has not already been initialized.

        Returns:
            None
        """
        if cls._client is None:
            cls._client = httpx.AsyncClient(
                base_url=cls._base_url,
                timeout=httpx.Timeout(cls._timeout),
            )
            vin_logger.info("VIN decoder HTTP client initialized")

    @classmethod
    async def init(
        cls, base_url: str | None = None, timeout: float | None = None
    ) -> None:
        """
        Initializes the VIN decoder with the provided configuration.

        Any existing client is closed before a new one is created.

        Args:
            base_url (str | None): Registry base URL. Defaults to settings.
            timeout (float | None): Request timeout in seconds. Defaults to settings.
        """
        if base_url is not None:
            cls._base_url = base_url
        if timeout is not None:
            cls._timeout = timeout
        await cls.aclose()
        cls._init_client()
        cls._initialized = True

    @classmethod
    async def aclose(cls) -> None:
        """
        Asynchronously closes the HTTP client if it is initialized.
        """
        if cls._client is not None:
            try:
                await cls._client.aclose()
            finally:
                cls._client = None
                cls._initialized = False
                vin_logger.info("VIN decoder HTTP client closed")

    @classmethod
    async def decode(cls, vin: str) -> DecodedVin:
        """
        Decode a VIN through the registry.

        Args:
            vin (str): A normalised, validated 17-character VIN.

        Returns:
            DecodedVin: The decoded attributes.

        Raises:
            UpstreamServiceException: On timeout, transport error, non-2xx
                status, or an unparseable body.
        """
        cls._init_client()
        assert cls._client is not None

        try:
            response = await cls._client.get(
                f"/vehicles/decodevin/{vin}", params={"format": "json"}
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            vin_logger.error(f"VIN registry timed out for {vin}: {str(e)}")
            raise UpstreamServiceException("VIN decoding service timed out") from e
        except httpx.HTTPStatusError as e:
            vin_logger.error(
                f"VIN registry returned {e.response.status_code} for {vin}"
            )
            raise UpstreamServiceException("VIN decoding service error") from e
        except (httpx.HTTPError, ValueError) as e:
            vin_logger.error(f"VIN registry request failed for {vin}: {str(e)}")
            raise UpstreamServiceException("VIN decoding service error") from e

        decoded = parse_decode_response(vin, payload)
        vin_logger.info(
            f"Decoded VIN {vin}: {decoded.year} {decoded.make} {decoded.model}"
        )
        return decoded


__all__ = ["VinDecoderService", "parse_decode_response"]
