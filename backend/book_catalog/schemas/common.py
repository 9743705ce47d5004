"""
Book Catalogue Backend — Shared Schemas
========================================

What:  The camelCase base model, the identifier schema, and the response
       envelopes shared by every endpoint.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

OBJECT_ID_PATTERN = r"^[0-9a-fA-F]{24}$"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive values for DateTime(timezone=True) columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Timestamps always leave the API as UTC with a `Z` suffix
UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class CamelModel(BaseModel):
    """
    Base for API schemas.

    JSON uses camelCase (`publicationYear`), Python uses snake_case
    (`publication_year`); both spellings are accepted on input. Strings are
    trimmed and unknown keys are dropped.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class ResponseModel(CamelModel):
    """Outbound schemas, built straight from ORM rows."""

    model_config = ConfigDict(from_attributes=True)


class IdentifierParam(CamelModel):
    id: str = Field(pattern=OBJECT_ID_PATTERN)


class SuccessResponse(BaseModel):
    """`{success: true, message?, data?}`."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[Any] = None


class ErrorResponse(ResponseModel):
    """
    Normalized failure payload.

    Example:
        {
            "success": false,
            "message": "Book not found",
            "errorType": "NOT_FOUND_ERROR",
            "details": {"resource": "book", "id": "66f1c0de0000000000000001"},
            "requestId": "a1b2c3d4",
            "timestamp": "2024-09-06T10:00:00+00:00",
            "path": "/api/books/66f1c0de0000000000000001",
            "method": "GET"
        }
    """

    success: bool = False
    message: str
    error_type: str = Field(description="Stable error tag for client-side branching")
    details: Optional[dict] = None
    request_id: Optional[str] = None
    timestamp: Optional[str] = None
    path: Optional[str] = None
    method: Optional[str] = None
    debug: Optional[dict] = Field(default=None, description="Only outside production")


class HealthResponse(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    uptime_seconds: float
