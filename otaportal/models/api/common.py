"""
Common API models shared across routers.

Error payloads from every endpoint use ``ErrorResponse`` so clients can
rely on one shape.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
  """Standard error response format used across all API endpoints."""

  model_config = ConfigDict(
    json_schema_extra={
      "example": {
        "detail": "Space not found",
        "code": "SPACE_NOT_FOUND",
        "request_id": "4f1c2d8e-1d5b-4a50-9c39-5b8f7a2e0c11",
        "timestamp": "2024-01-01T00:00:00Z",
      }
    }
  )

  detail: str = Field(
    ...,
    description="Human-readable error message explaining what went wrong",
    examples=["You don't have access to this space"],
  )
  code: str | None = Field(
    None,
    description="Machine-readable error code for programmatic handling",
    examples=["FORBIDDEN"],
  )
  details: dict[str, Any] | None = Field(
    None, description="Field-level or contextual error information"
  )
  request_id: str | None = Field(
    None, description="Unique request ID for tracking and debugging"
  )
  timestamp: datetime | None = Field(
    None, description="Timestamp when the error occurred"
  )


class HealthResponse(BaseModel):
  status: str = Field(..., examples=["healthy"])
  environment: str | None = None


def error_responses(*status_codes: int) -> dict[int, dict[str, Any]]:
  """OpenAPI ``responses`` entries for the given error statuses."""
  descriptions = {
    400: "Invalid request",
    401: "Not authenticated",
    403: "Access denied",
    404: "Resource not found",
    409: "Conflict with existing state",
    500: "Internal server error",
  }
  return {
    code: {"description": descriptions.get(code, "Error"), "model": ErrorResponse}
    for code in status_codes
  }
