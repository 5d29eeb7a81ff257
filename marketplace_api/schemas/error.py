"""Error response schemas for consistent error handling."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorType(str, Enum):
    """Types of errors that can occur."""

    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    DATABASE_ERROR = "database_error"
    INTERNAL_ERROR = "internal_error"
    TIMEOUT_ERROR = "timeout_error"
    AUTHENTICATION_ERROR = "authentication_error"


class ErrorResponse(BaseModel):
    """Standardized error response model."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error_type": "database_error",
                "message": "Favorite store is unavailable",
                "detail": "The favorite could not be saved. Please try again.",
                "status_code": 503,
                "timestamp": "2026-10-19T10:30:00Z",
                "request_id": "3f0f6c4e-1c1d-4d55-9a55-1b8f0f1f9a10",
                "path": "/products/5f1c0e0a9d3b4c6f8e2a7b1c9d0e1f2a/favorite",
                "retry_after": 5,
            }
        }
    )

    error_type: ErrorType = Field(..., description="Category of error")
    message: str = Field(..., description="Human-readable error message")
    detail: str | None = Field(None, description="Additional error details or context")
    status_code: int = Field(..., description="HTTP status code")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="When error occurred"
    )
    request_id: str | None = Field(None, description="Unique request identifier for tracking")
    path: str | None = Field(None, description="Request path that caused the error")
    retry_after: int | None = Field(
        None, description="Seconds to wait before retrying (for unavailable/timeout errors)"
    )


class ValidationErrorDetail(BaseModel):
    """Details for validation errors."""

    field: str = Field(..., description="Field that failed validation")
    message: str = Field(..., description="Validation error message")
    value: Any = Field(None, description="Value that failed validation")


class ValidationErrorResponse(ErrorResponse):
    """Extended error response for validation errors."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error_type": "validation_error",
                "message": "Request validation failed",
                "detail": "1 validation error(s)",
                "status_code": 422,
                "timestamp": "2026-10-19T10:30:00Z",
                "request_id": "3f0f6c4e-1c1d-4d55-9a55-1b8f0f1f9a10",
                "path": "/products",
                "errors": [
                    {"field": "query.limit", "message": "Input should be a valid integer", "value": "ten"},
                ],
            }
        }
    )

    error_type: ErrorType = Field(default=ErrorType.VALIDATION_ERROR)
    errors: list[ValidationErrorDetail] = Field(
        default_factory=list, description="List of validation errors"
    )
