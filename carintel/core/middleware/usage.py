"""
Request middleware: request ids, timing, last-resort error handling and
usage recording.
"""

import time
from typing import Callable
import uuid

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from carintel.core.config import request_logger, usage_logger
from carintel.core.exceptions.handlers import error_body
from carintel.core.services.usage import UsageEvent
from carintel.core.utils import get_client_ip

REQUEST_ID_HEADER = "X-Request-ID"


def get_request_id(request: Request) -> str:
    """The id assigned to the request by ``UsageRecordingMiddleware``."""
    request_id = getattr(request.state, "request_id", None)
    if request_id is None:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
    return request_id


class UsageRecordingMiddleware(BaseHTTPMiddleware):
    """
    Outermost application middleware.

    Assigns ``X-Request-ID``, turns unhandled exceptions into a 500
    envelope, and, for requests admitted by the gateway dependency,
    hands a ``UsageEvent`` to the usage recorder after the response is
    produced. Recording never changes the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            request_logger.exception(
                f"[{request_id}] Unhandled exception on "
                f"{request.method} {request.url.path}: {e}"
            )
            response = JSONResponse(
                status_code=500,
                content=error_body("internal_error", "An internal error occurred"),
            )

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        response.headers[REQUEST_ID_HEADER] = request_id
        request_logger.info(
            f"[{request_id}] {request.method} {request.url.path} "
            f"- Status: {response.status_code} - Duration: {duration_ms}ms"
        )

        self._record_usage(request, response.status_code, duration_ms)
        return response

    @staticmethod
    def _record_usage(request: Request, status_code: int, duration_ms: int) -> None:
        gateway = getattr(request.state, "gateway", None)
        if gateway is None:
            # Rejected before admission (401/429) or not a gateway route
            return

        recorder = getattr(request.app.state, "usage_recorder", None)
        if recorder is None:
            usage_logger.warning(
                f"No usage recorder configured; {gateway.endpoint} not recorded"
            )
            return

        try:
            recorder.record(
                UsageEvent(
                    api_key_id=gateway.api_key_id,
                    organization_id=gateway.organization_id,
                    endpoint=gateway.endpoint,
                    method=request.method,
                    source=gateway.source,
                    status_code=status_code,
                    response_time_ms=duration_ms,
                    request_params=dict(request.query_params) or None,
                    ip_address=get_client_ip(request),
                    user_agent=request.headers.get("user-agent"),
                    tokens_used=gateway.tokens_used,
                )
            )
        except Exception as e:
            usage_logger.error(f"Failed to enqueue usage for {gateway.endpoint}: {e}")


def add_middleware(app: FastAPI) -> None:
    """Add the custom middleware to the application."""
    app.add_middleware(UsageRecordingMiddleware)


__all__ = [
    "REQUEST_ID_HEADER",
    "UsageRecordingMiddleware",
    "add_middleware",
    "get_request_id",
]
