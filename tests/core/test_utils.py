"""
Tests for utility functions: API key generation, hashing and parsing, VIN
checks and client IP resolution.
"""

from datetime import date
from unittest.mock import MagicMock

import pytest


class TestGenerateAPIKey:

    def test_live_key_shape(self):
        from carintel.core.enums import KeyEnvironment
        from carintel.core.utils import generate_api_key, hash_api_key

        raw_key, key_hash, key_prefix = generate_api_key(KeyEnvironment.LIVE)

        assert raw_key.startswith("ci_live_")
        assert len(raw_key) == len("ci_live_") + 32
        assert key_hash == hash_api_key(raw_key)
        assert key_prefix == raw_key[: len("ci_live_") + 5]

    def test_test_key_shape(self):
        from carintel.core.enums import KeyEnvironment
        from carintel.core.utils import generate_api_key

        raw_key, _, key_prefix = generate_api_key(KeyEnvironment.TEST)

        assert raw_key.startswith("ci_test_")
        assert key_prefix.startswith("ci_test_")

    def test_custom_prefix(self):
        from carintel.core.enums import KeyEnvironment
        from carintel.core.utils import generate_api_key

        raw_key, _, _ = generate_api_key(KeyEnvironment.LIVE, prefix="ac")

        assert raw_key.startswith("ac_live_")

    def test_keys_are_unique(self):
        from carintel.core.utils import generate_api_key

        keys = {generate_api_key()[0] for _ in range(50)}

        assert len(keys) == 50

    def test_generated_key_parses(self):
        from carintel.core.utils import generate_api_key, parse_bearer_key

        raw_key, _, _ = generate_api_key()

        assert parse_bearer_key(f"Bearer {raw_key}") == raw_key


class TestHashAPIKey:

    def test_deterministic_sha256(self):
        from carintel.core.utils import hash_api_key

        digest = hash_api_key("ci_live_abc")

        assert digest == hash_api_key("ci_live_abc")
        assert len(digest) == 64
        assert digest != hash_api_key("ci_live_abd")

    def test_empty_key_rejected(self):
        from carintel.core.utils import hash_api_key

        with pytest.raises(ValueError):
            hash_api_key("")


class TestParseBearerKey:

    @pytest.mark.parametrize(
        "header,expected",
        [
            ("Bearer ci_live_abc123", "ci_live_abc123"),
            ("Bearer   ci_test_XYZ789", "ci_test_XYZ789"),
            ("  Bearer ci_live_abc123  ", "ci_live_abc123"),
            ("bearer ci_live_abc123", None),
            ("Bearer ci_live_abc 123", None),
            ("Token ci_live_abc123", None),
            ("Bearer ci_staging_abc123", None),
            ("Bearer", None),
        ],
    )
    def test_parse(self, header, expected):
        from carintel.core.utils import parse_bearer_key

        assert parse_bearer_key(header) == expected


class TestMaskAPIKey:

    def test_mask(self):
        from carintel.core.utils import mask_api_key

        assert mask_api_key("ci_live_abcdef123") == "ci_live_****"
        assert mask_api_key("nounderscores") == "****"


class TestVin:

    def test_normalize(self):
        from carintel.core.utils import normalize_vin

        assert normalize_vin("  1hgcm82633a004352 ") == "1HGCM82633A004352"

    @pytest.mark.parametrize(
        "vin,valid",
        [
            ("1HGCM82633A004352", True),
            ("1HGCM82633A00435", False),
            ("1HGCM82633A0043521", False),
            ("1HGCM82633A00435I", False),
            ("1HGCM82633A00435O", False),
            ("1HGCM82633A00435Q", False),
            ("1HGCM82633A00435-", False),
        ],
    )
    def test_is_valid_vin(self, vin, valid):
        from carintel.core.utils import is_valid_vin

        assert is_valid_vin(vin) is valid


class TestGetClientIP:

    def _request(self, headers: dict, host: str | None = "10.0.0.1"):
        request = MagicMock()
        request.headers = headers
        request.client = MagicMock(host=host) if host else None
        return request

    def test_prefers_cloudflare_header(self):
        from carintel.core.utils import get_client_ip

        request = self._request(
            {"cf-connecting-ip": "1.1.1.1", "x-forwarded-for": "2.2.2.2"}
        )

        assert get_client_ip(request) == "1.1.1.1"

    def test_first_forwarded_hop(self):
        from carintel.core.utils import get_client_ip

        request = self._request({"x-forwarded-for": "2.2.2.2, 3.3.3.3"})

        assert get_client_ip(request) == "2.2.2.2"

    def test_socket_peer(self):
        from carintel.core.utils import get_client_ip

        assert get_client_ip(self._request({})) == "10.0.0.1"

    def test_no_client(self):
        from carintel.core.utils import get_client_ip

        assert get_client_ip(self._request({}, host=None)) is None


class TestMonthStart:

    def test_month_start(self):
        from carintel.core.utils import month_start

        assert month_start(date(2024, 2, 29)) == date(2024, 2, 1)
        assert month_start(date(2024, 3, 1)) == date(2024, 3, 1)
