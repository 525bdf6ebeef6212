"""
Utility functions for the application.

- Deterministic SHA-256 hashing of API keys for queryable storage
- API key generation and bearer header parsing
- VIN normalisation and validation
- Client IP extraction from proxy headers
"""

from datetime import date, datetime, timezone
import hashlib
import re
import secrets
import string

from fastapi import Request

from carintel.core.config import settings
from carintel.core.enums import KeyEnvironment

VIN_LENGTH = 17
VIN_PATTERN = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")

_KEY_ALPHABET = string.ascii_letters + string.digits
_KEY_TOKEN_LENGTH = 32
_KEY_DISPLAY_CHARS = 5


def api_key_pattern(prefix: str | None = None) -> re.Pattern[str]:
    """
    Compile the bearer header pattern for a product prefix.

    Args:
        prefix: Product prefix, defaults to ``settings.API_KEY_PREFIX``.

    Returns:
        A pattern whose first group is the raw key, e.g. ``ci_live_abc123``.
    """
    prefix = re.escape(prefix or settings.API_KEY_PREFIX)
    return re.compile(rf"^Bearer\s+({prefix}_(?:live|test)_[a-zA-Z0-9]+)$")


def parse_bearer_key(authorization: str, prefix: str | None = None) -> str | None:
    """Return the raw API key from an Authorization header, or None if malformed."""
    match = api_key_pattern(prefix).match(authorization.strip())
    return match.group(1) if match else None


def hash_api_key(raw_key: str) -> str:
    """
    Hash an API key for storage and lookup.

    SHA-256 is deterministic, so the hash doubles as the unique lookup key.

    Args:
        raw_key: The full API key, including its prefix.

    Returns:
        str: The 64-character hexadecimal digest.

    Raises:
        ValueError: If raw_key is empty.
    """
    if not raw_key:
        raise ValueError("API key cannot be None or empty")
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def generate_api_key(
    environment: KeyEnvironment = KeyEnvironment.LIVE,
    prefix: str | None = None,
) -> tuple[str, str, str]:
    """
    Generate a new API key with its hash and display prefix.

    Args:
        environment: ``live`` or ``test``.
        prefix: Product prefix, defaults to ``settings.API_KEY_PREFIX``.

    Returns:
        Tuple of (raw_key, key_hash, key_prefix).
        - raw_key: Full API key to give to the user (ci_live_xxx...)
        - key_hash: SHA-256 hash for storage and lookup
        - key_prefix: Display prefix (prefix + first 5 chars of token)
    """
    key_start = f"{prefix or settings.API_KEY_PREFIX}_{environment.value}_"
    token = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(_KEY_TOKEN_LENGTH))
    raw_key = f"{key_start}{token}"
    return raw_key, hash_api_key(raw_key), f"{key_start}{token[:_KEY_DISPLAY_CHARS]}"


def mask_api_key(raw_key: str) -> str:
    """
    Mask an API key for logging, keeping only the environment prefix.

    Examples:
        >>> mask_api_key("ci_live_abcdef123")
        'ci_live_****'
    """
    head, sep, _ = raw_key.rpartition("_")
    return f"{head}{sep}****" if sep else "****"


def normalize_vin(vin: str) -> str:
    return vin.strip().upper()


def is_valid_vin(vin: str) -> bool:
    """
    Check a normalised VIN: 17 characters, letters I, O and Q excluded.

    Examples:
        >>> is_valid_vin("1HGCM82633A004352")
        True
        >>> is_valid_vin("1HGCM82633A00435O")
        False
    """
    return len(vin) == VIN_LENGTH and bool(VIN_PATTERN.match(vin))


def get_client_ip(request: Request) -> str | None:
    """
    Resolve the caller's IP address.

    Prefers ``CF-Connecting-IP``, then the first ``X-Forwarded-For`` hop,
    then the socket peer.
    """
    cf_ip = request.headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip.strip()
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def month_start(day: date) -> date:
    """First day of the month containing ``day``."""
    return day.replace(day=1)


__all__ = [
    "VIN_LENGTH",
    "VIN_PATTERN",
    "api_key_pattern",
    "parse_bearer_key",
    "hash_api_key",
    "generate_api_key",
    "mask_api_key",
    "normalize_vin",
    "is_valid_vin",
    "get_client_ip",
    "utc_now",
    "month_start",
]
