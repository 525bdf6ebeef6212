from http import HTTPStatus

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from carintel.core.config import request_logger
from carintel.core.exceptions.types import (
    AppException,
    AuthenticationException,
    DatabaseException,
    RateLimitExceededException,
    UpstreamServiceException,
)


def error_body(code: str, message: str, retry_after: int | None = None) -> dict:
    """Build the error envelope returned by every gateway failure."""
    error: dict = {"code": code, "message": message}
    if retry_after is not None:
        error["retry_after"] = retry_after
    return {"error": error}


async def general_exception_handler(request: Request, exc: AppException):
    """
    Handles application exceptions by rendering the error envelope.

    Client errors are logged at WARNING, server errors at ERROR.

    Args:
        request: The request object.
        exc (AppException): The exception instance.

    Returns:
        JSONResponse: The error envelope with the exception's status code.
    """
    if exc.status_code >= 500:
        request_logger.error(f"{type(exc).__name__}: {exc}")
    else:
        request_logger.warning(f"{type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message),
    )


async def database_exception_handler(request: Request, exc: DatabaseException):
    """
    Handles database exceptions without leaking driver details to clients.

    Args:
        request: The request object.
        exc (DatabaseException): The database exception instance.

    Returns:
        JSONResponse: A 500 ``internal_error`` envelope.
    """
    request_logger.error(f"DatabaseException: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, "An internal error occurred"),
    )


async def upstream_exception_handler(
    request: Request, exc: UpstreamServiceException
):
    request_logger.error(f"UpstreamServiceException: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message),
    )


async def authentication_exception_handler(
    request: Request, exc: AuthenticationException
):
    """
    Handles authentication exceptions by returning a JSON response.

    Args:
        request: The request object.
        exc (AuthenticationException): The authentication exception instance.

    Returns:
        JSONResponse: The error envelope with status code 401.
    """
    request_logger.warning(f"AuthenticationException[{exc.code}]: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message),
        headers={"WWW-Authenticate": "Bearer"},
    )


async def rate_limit_exception_handler(
    request: Request, exc: RateLimitExceededException
):
    """
    Handles rate limit exceeded exceptions by returning a JSON response.

    Args:
        request: The request object.
        exc (RateLimitExceededException): The rate limit exception instance.

    Returns:
        JSONResponse: A response with status code 429 and optional Retry-After header.
    """
    request_logger.warning(f"RateLimitExceededException: {exc}")
    headers = {}
    if exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, exc.retry_after),
        headers=headers,
    )


# Routing-level errors raised by Starlette before any gateway code runs
_HTTP_ERROR_CODES = {
    status.HTTP_404_NOT_FOUND: ("not_found", "Unknown endpoint"),
    status.HTTP_405_METHOD_NOT_ALLOWED: (
        "method_not_allowed",
        "Only GET requests are supported",
    ),
}


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Renders Starlette routing errors (unknown path, unsupported method) in
    the error envelope instead of the framework's ``{"detail": ...}`` body.

    Args:
        request: The request object.
        exc (StarletteHTTPException): The HTTP exception instance.

    Returns:
        JSONResponse: The error envelope with the exception's status code.
    """
    if exc.status_code in _HTTP_ERROR_CODES:
        code, message = _HTTP_ERROR_CODES[exc.status_code]
    else:
        try:
            code = "_".join(HTTPStatus(exc.status_code).phrase.lower().split())
        except ValueError:
            code = "http_error"
        message = str(exc.detail)
    request_logger.warning(
        f"HTTPException[{exc.status_code}] {request.method} {request.url.path}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, message),
        headers=exc.headers,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    """
    Maps FastAPI request validation errors onto the gateway's 400 codes.

    A missing required parameter yields ``missing_params``; anything else
    (non-numeric year, unknown condition) yields ``invalid_params``.
    """
    errors = exc.errors()
    missing = [
        str(err["loc"][-1]) for err in errors if err.get("type") == "missing"
    ]
    if missing:
        code = "missing_params"
        message = f"Missing required parameters: {', '.join(missing)}"
    else:
        code = "invalid_params"
        message = "; ".join(
            f"{err['loc'][-1]}: {err.get('msg', 'invalid value')}" for err in errors
        )
    request_logger.warning(f"RequestValidationError[{code}]: {message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(code, message),
    )


def _example(code: str, message: str, **extra) -> dict:
    return {
        "content": {
            "application/json": {
                "example": {"error": {"code": code, "message": message, **extra}},
            }
        },
    }


exception_schema = {
    status.HTTP_400_BAD_REQUEST: {
        "description": "Validation Error",
        **_example("missing_params", "Missing required parameters: year"),
    },
    status.HTTP_401_UNAUTHORIZED: {
        "description": "Authentication Error",
        **_example("invalid_key", "Invalid API key"),
    },
    status.HTTP_404_NOT_FOUND: {
        "description": "Not Found",
        **_example("not_found", "Vehicle not found"),
    },
    status.HTTP_429_TOO_MANY_REQUESTS: {
        "description": "Rate Limit Exceeded",
        **_example(
            "rate_limit_exceeded",
            "Rate limit exceeded. Please try again later.",
            retry_after=42,
        ),
    },
    status.HTTP_500_INTERNAL_SERVER_ERROR: {
        "description": "Internal Server Error",
        **_example("internal_error", "An internal error occurred"),
    },
}


__all__ = [
    "error_body",
    "general_exception_handler",
    "database_exception_handler",
    "upstream_exception_handler",
    "authentication_exception_handler",
    "rate_limit_exception_handler",
    "validation_exception_handler",
    "http_exception_handler",
    "exception_schema",
]
