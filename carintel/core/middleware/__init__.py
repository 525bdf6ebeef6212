from carintel.core.middleware.usage import (
    REQUEST_ID_HEADER,
    UsageRecordingMiddleware,
    add_middleware,
    get_request_id,
)

__all__ = [
    "REQUEST_ID_HEADER",
    "UsageRecordingMiddleware",
    "add_middleware",
    "get_request_id",
]
