from carintel.core.schemas.response import (
    ErrorDetail,
    ErrorResponse,
    ResponseMeta,
    SuccessResponse,
)

__all__ = ["ErrorDetail", "ErrorResponse", "ResponseMeta", "SuccessResponse"]
