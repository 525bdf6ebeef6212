from fastapi import status


class AppException(Exception):
    """Base application exception.

    ``code`` is the stable, machine-readable error string returned to
    clients; ``message`` is the human-readable supplement.
    """

    default_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        details: dict | None = None,
    ):
        self.message = message
        self.status_code = status_code or status.HTTP_500_INTERNAL_SERVER_ERROR
        self.code = code or self.default_code
        self.details = details
        super().__init__(message)


class DatabaseException(AppException):
    """Exception raised for database-related errors."""

    def __init__(self, message: str = "A database error occurred."):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class UpstreamServiceException(AppException):
    """Exception raised when a third-party dependency fails or times out."""

    def __init__(self, message: str = "An upstream service is unavailable."):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class AuthenticationException(AppException):
    """Exception raised when a bearer credential is rejected."""

    default_code = "unauthorized"

    def __init__(self, message: str = "Authentication failed.", code: str | None = None):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED, code=code)


class RateLimitExceededException(AppException):
    """Exception raised when rate limit is exceeded."""

    default_code = "rate_limit_exceeded"

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again later.",
        retry_after: int | None = None,
    ):
        super().__init__(message, status.HTTP_429_TOO_MANY_REQUESTS)
        self.retry_after = retry_after


class BadRequestException(AppException):
    """Exception raised for malformed client input."""

    default_code = "invalid_params"

    def __init__(self, message: str = "Bad request.", code: str | None = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, code=code)


class InvalidVINException(BadRequestException):
    """Raised when a VIN fails length or character validation."""

    def __init__(self, message: str = "VIN must be exactly 17 characters"):
        super().__init__(message, code="invalid_vin")


class VINDecodeFailedException(BadRequestException):
    """Raised when the registry cannot resolve year, make and model."""

    def __init__(
        self, message: str = "Could not decode vehicle information from VIN"
    ):
        super().__init__(message, code="decode_failed")


class NotFoundException(AppException):
    """Exception raised when a resource is not found."""

    default_code = "not_found"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class MethodNotAllowedException(AppException):
    """Exception raised for non-GET requests to the read-only gateway."""

    default_code = "method_not_allowed"

    def __init__(self, message: str = "Only GET requests are supported"):
        super().__init__(message, status.HTTP_405_METHOD_NOT_ALLOWED)


__all__ = [
    "AppException",
    "DatabaseException",
    "UpstreamServiceException",
    "AuthenticationException",
    "RateLimitExceededException",
    "BadRequestException",
    "InvalidVINException",
    "VINDecodeFailedException",
    "NotFoundException",
    "MethodNotAllowedException",
]
