"""
Response envelopes shared by every gateway route.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ResponseMeta(BaseModel):
    """Metadata attached to every successful response."""

    request_id: str = Field(description="Same value as the X-Request-ID header")
    tokens_used: int = Field(default=1, description="Tokens charged for this request")
    tokens_remaining: int | None = Field(
        default=None,
        description="Tokens left this month; omitted for unlimited tiers",
    )


class SuccessResponse(BaseModel, Generic[T]):
    """Success envelope: ``{"data": ..., "meta": {...}}``."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "data": {},
                "meta": {
                    "request_id": "2f0c6a9e-6c1f-4c61-9d43-0d7f2f8f7c11",
                    "tokens_used": 1,
                    "tokens_remaining": 9876,
                },
            }
        }
    )

    data: T
    meta: ResponseMeta


class ErrorDetail(BaseModel):
    code: str
    message: str
    retry_after: int | None = None


class ErrorResponse(BaseModel):
    """Error envelope: ``{"error": {"code", "message", "retry_after"?}}``."""

    error: ErrorDetail


__all__ = ["ResponseMeta", "SuccessResponse", "ErrorDetail", "ErrorResponse"]
