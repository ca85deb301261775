"""Response envelope models.

Consistent response format for all API endpoints.

WHY RESPONSE ENVELOPES:
- Consistent structure across all endpoints
- Easy to distinguish success from error responses
- Type-safe response building in endpoints
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    """Standard response envelope for single resources.

    All success responses use {"data": ...} envelope.

    Usage:
        @router.get("/auth/session")
        async def get_session(...) -> DataResponse[dict]:
            return DataResponse(data=claims.model_dump(by_alias=True))
    """

    data: T


class ErrorDetail(BaseModel):
    """Error information inside the error envelope.

    Attributes:
        code: Machine-readable error code (e.g., "VALIDATION_ERROR").
        message: Human-readable description.
        details: Optional field-level details.
    """

    code: str
    message: str
    details: list[dict[str, Any]] | None = None


class ErrorResponse(BaseModel):
    """Standard error envelope: {"error": {...}}."""

    error: ErrorDetail
