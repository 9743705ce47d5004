"""
Book Catalogue Backend — Error Taxonomy
========================================

What:  The fixed set of error kinds, the `ServiceError` value that services
       return inside `Err`, and the classifier that turns raw persistence faults
       into that taxonomy.
How:   Services never let a SQLAlchemy/driver exception escape. They call
       `classify_persistence_error()` and return the result, so the response
       translator only ever sees already-classified errors.

Error kinds:
    ErrorKind
    ├── VALIDATION       → 400  VALIDATION_ERROR
    ├── AUTHENTICATION   → 401  AUTHENTICATION_ERROR
    ├── AUTHORIZATION    → 403  AUTHORIZATION_ERROR
    ├── NOT_FOUND        → 404  NOT_FOUND_ERROR
    ├── ALREADY_EXISTS   → 409  DUPLICATE_ERROR
    └── INTERNAL         → 500  INTERNAL_SERVER_ERROR

`CatalogError` is the one exception class. It only exists for the places
FastAPI forces us to raise (dependencies); a global handler unwraps it.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import (
    DataError,
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
)

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    """Error kinds; the value is the `errorType` tag sent to clients."""

    VALIDATION = "VALIDATION_ERROR"
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    AUTHORIZATION = "AUTHORIZATION_ERROR"
    NOT_FOUND = "NOT_FOUND_ERROR"
    ALREADY_EXISTS = "DUPLICATE_ERROR"
    INTERNAL = "INTERNAL_SERVER_ERROR"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.INTERNAL: 500,
}


class Reason:
    """Finer-grained tags carried in `details.reason`."""

    INVALID_IDENTIFIER = "INVALID_IDENTIFIER"
    INVALID_STATE = "INVALID_STATE"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    MISSING_TOKEN = "MISSING_TOKEN"
    DATABASE_UNAVAILABLE = "DATABASE_UNAVAILABLE"


@dataclass(frozen=True)
class FieldViolation:
    field: Optional[str]
    message: str

    def as_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "message": self.message}


@dataclass(frozen=True)
class ServiceError:
    """
    A classified failure.

    Attributes:
        kind:    One of the six error kinds.
        message: Client-safe, human-readable text.
        details: Optional structured detail (field, value, validationErrors).
        reason:  Optional finer tag, see `Reason`.
        cause:   The underlying exception, if any. Logged and shown in the
                 non-production `debug` block; never put into `message`.
    """

    kind: ErrorKind
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def public_details(self) -> Optional[Dict[str, Any]]:
        """Details as sent to the client, with `reason` folded in."""
        details = dict(self.details)
        if self.reason:
            details["reason"] = self.reason
        return details or None


class CatalogError(Exception):
    """Raised only where a `ServiceError` cannot be returned (FastAPI dependencies)."""

    def __init__(self, error: ServiceError):
        self.error = error
        super().__init__(error.message)


# ── Constructors ──────────────────────────────────────────────────────────

def validation_failed(
    violations: Iterable[FieldViolation],
    message: str = "Invalid data",
) -> ServiceError:
    return ServiceError(
        kind=ErrorKind.VALIDATION,
        message=message,
        details={"validationErrors": [v.as_dict() for v in violations]},
    )


def invalid_identifier(value: Any, field_name: str = "id") -> ServiceError:
    return ServiceError(
        kind=ErrorKind.VALIDATION,
        message="Invalid resource ID",
        details={"field": field_name, "value": value},
        reason=Reason.INVALID_IDENTIFIER,
    )


def not_found(resource: str, resource_id: Optional[str] = None) -> ServiceError:
    message = f"{resource.capitalize()} not found"
    details: Dict[str, Any] = {"resource": resource}
    if resource_id is not None:
        details["id"] = resource_id
    return ServiceError(kind=ErrorKind.NOT_FOUND, message=message, details=details)


def already_exists(field_name: str, value: Any = None) -> ServiceError:
    details: Dict[str, Any] = {"field": field_name}
    if value is not None:
        details["value"] = value
    return ServiceError(
        kind=ErrorKind.ALREADY_EXISTS,
        message=f"The {field_name} is already in use",
        details=details,
    )


def authentication_failed(message: str, reason: str) -> ServiceError:
    return ServiceError(kind=ErrorKind.AUTHENTICATION, message=message, reason=reason)


def internal_error(message: str, cause: Optional[BaseException] = None) -> ServiceError:
    return ServiceError(kind=ErrorKind.INTERNAL, message=message, cause=cause)


# ── Persistence Fault Classification ──────────────────────────────────────

_UNIQUE_MARKERS = ("unique constraint", "duplicate key", "unique violation")
_CHECK_MARKERS = ("check constraint", "not null constraint", "violates not-null", "null value in column")


def _fault_text(exc: BaseException) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig if orig is not None else exc).lower()


def _colliding_field(text: str, unique_fields: Iterable[str]) -> Optional[str]:
    """
    Find which unique column a duplicate-key message refers to.

    PostgreSQL reports the constraint name (`uq_users_email`) and `Key (email)=`;
    SQLite reports `users.email`. Either way the column name appears in the text.
    """
    for name in unique_fields:
        lowered = name.lower()
        if f"_{lowered}" in text or f".{lowered}" in text or f"({lowered})" in text:
            return name
    return None


def classify_persistence_error(
    exc: BaseException,
    unique_fields: Iterable[str] = (),
    message: str = "A database error occurred. Please try again later.",
) -> ServiceError:
    """
    Re-classify a raw persistence fault into the error taxonomy.

    Args:
        exc:           The exception raised by SQLAlchemy or the driver.
        unique_fields: Column names with UNIQUE constraints on the table touched.
        message:       Client message for faults that end up as INTERNAL.

    Returns:
        A `ServiceError` with `cause` set to `exc`.
    """
    text = _fault_text(exc)
    unique_fields = tuple(unique_fields)

    if isinstance(exc, IntegrityError):
        if any(marker in text for marker in _UNIQUE_MARKERS):
            field_name = _colliding_field(text, unique_fields) or "unknown"
            error = already_exists(field_name)
            return ServiceError(
                kind=error.kind, message=error.message, details=error.details, cause=exc
            )
        if any(marker in text for marker in _CHECK_MARKERS):
            return ServiceError(
                kind=ErrorKind.VALIDATION,
                message="Data rejected by storage constraints",
                cause=exc,
            )

    if isinstance(exc, DataError):
        return ServiceError(
            kind=ErrorKind.VALIDATION,
            message="Data has an invalid format for storage",
            cause=exc,
        )

    connection_lost = (
        isinstance(exc, (OperationalError, InterfaceError, OSError, TimeoutError))
        or (isinstance(exc, DBAPIError) and exc.connection_invalidated)
    )
    if connection_lost:
        logger.error("Database unavailable: %s", type(exc).__name__)
        return ServiceError(
            kind=ErrorKind.INTERNAL,
            message="Database connection error. Please try again later.",
            reason=Reason.DATABASE_UNAVAILABLE,
            cause=exc,
        )

    logger.error("Unclassified persistence error: %s: %s", type(exc).__name__, exc)
    return internal_error(message, cause=exc)


def violations_from(error: ServiceError) -> List[Dict[str, Any]]:
    """The `validationErrors` list of a validation error, or an empty list."""
    return list(error.details.get("validationErrors", []))
