"""
Book Catalogue Backend — Validation Layer
==========================================

What:  Checks an untyped payload against a declarative schema and returns
       either the normalized model or every violated rule at once.
How:   Schemas are pydantic models (see `book_catalog/schemas/`). pydantic
       already collects all field errors in one pass; this module converts
       them into `FieldViolation`s with readable messages and wraps the
       outcome in `Ok` / `Err`.
Who:   Route handlers (before calling a service) and the book service itself
       (which accepts raw mappings as well as validated models).

Pure: no I/O, no logging.

Message table:
    Messages are looked up by (field, rule) first, then by rule alone, and
    fall back to pydantic's own text.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from book_catalog.exceptions import (
    FieldViolation,
    ServiceError,
    invalid_identifier,
    validation_failed,
)
from book_catalog.result import Err, Ok, Result
from book_catalog.schemas.common import IdentifierParam

M = TypeVar("M", bound=BaseModel)

_INTEGER_RULES = ("int_parsing", "int_from_float", "int_type")
_STRING_RULES = ("string_type",)

_FIELD_MESSAGES: Dict[Tuple[str, str], str] = {
    ("title", "missing"): "Title is required",
    ("title", "string_too_short"): "Title cannot be empty",
    ("title", "string_too_long"): "Title cannot exceed 200 characters",
    ("author", "missing"): "Author is required",
    ("author", "string_too_short"): "Author cannot be empty",
    ("author", "string_too_long"): "Author cannot exceed 100 characters",
    ("publicationYear", "missing"): "Publication year is required",
    ("publicationYear", "greater_than_equal"): "Publication year must be 1000 or later",
    ("state", "enum"): "State must be AVAILABLE or RESERVED",
    ("state", "missing"): "State is required",
    ("search", "string_too_short"): "Search term cannot be empty",
    ("username", "missing"): "Username is required",
    ("username", "string_too_short"): "Username must be at least 3 characters",
    ("username", "string_too_long"): "Username cannot exceed 30 characters",
    ("email", "missing"): "Email is required",
    ("email", "value_error"): "Must be a valid email address",
    ("password", "missing"): "Password is required",
    ("password", "string_too_short"): "Password must be at least 6 characters",
    ("id", "string_pattern_mismatch"): "Invalid ID",
    ("limit", "greater_than_equal"): "Limit must be at least 1",
    ("limit", "less_than_equal"): "Limit cannot exceed 100",
}
_FIELD_MESSAGES.update(
    {("publicationYear", rule): "Publication year must be an integer" for rule in _INTEGER_RULES}
)
_FIELD_MESSAGES.update(
    {(name, rule): f"{name.capitalize()} must be a string"
     for name in ("title", "author", "username", "password")
     for rule in _STRING_RULES}
)

_RULE_MESSAGES: Dict[str, str] = {
    "missing": "Field is required",
    "not_null": "Value cannot be null",
    "model_type": "Request body must be a JSON object",
    "model_attributes_type": "Request body must be a JSON object",
    "dict_type": "Request body must be a JSON object",
}


# FastAPI prefixes request errors with where the value came from
_REQUEST_LOCATIONS = ("body", "query", "path", "header", "cookie")


def _field_name(loc: Tuple[Any, ...]) -> Optional[str]:
    if loc and loc[0] in _REQUEST_LOCATIONS:
        loc = loc[1:]
    if not loc:
        return None
    return ".".join(str(part) for part in loc)


def _message_for(field_name: Optional[str], error: Dict[str, Any]) -> str:
    rule = error.get("type", "")
    if field_name is not None and (field_name, rule) in _FIELD_MESSAGES:
        return _FIELD_MESSAGES[(field_name, rule)]
    if rule in _RULE_MESSAGES:
        return _RULE_MESSAGES[rule]
    return error.get("msg", "Invalid value")


def violations_from_pydantic_errors(errors: Sequence[Dict[str, Any]]) -> List[FieldViolation]:
    """Field/message pairs for a list of pydantic error dicts, in the order given."""
    violations = []
    for error in errors:
        field_name = _field_name(tuple(error.get("loc", ())))
        violations.append(FieldViolation(field=field_name, message=_message_for(field_name, error)))
    return violations


def violations_from_pydantic(exc: PydanticValidationError) -> List[FieldViolation]:
    """Every error pydantic found, as field/message pairs, in pydantic's order."""
    return violations_from_pydantic_errors(exc.errors())


def validate(schema: Type[M], payload: Any) -> Result[M, ServiceError]:
    """
    Validate `payload` against `schema`.

    Returns:
        Ok(model) with trimmed strings, coerced numbers, defaults applied and
        unknown keys dropped; or Err(ServiceError) of kind VALIDATION whose
        `details.validationErrors` lists every violation.

    A payload that is already an instance of `schema` passes through untouched.
    """
    if isinstance(payload, schema):
        return Ok(payload)
    try:
        return Ok(schema.model_validate(payload))
    except PydanticValidationError as exc:
        return Err(validation_failed(violations_from_pydantic(exc)))


def is_valid_identifier(value: Any) -> bool:
    return validate(IdentifierParam, {"id": value}).is_ok()


def check_identifier(value: Any, field_name: str = "id") -> Result[str, ServiceError]:
    """
    Ok(normalized id) for a 24-hex identifier, otherwise an INVALID_IDENTIFIER error.

    Identifiers are stored lower-case, so the normalized form is lower-cased.
    """
    outcome = validate(IdentifierParam, {"id": value})
    if outcome.is_err():
        return Err(invalid_identifier(value, field_name))
    return Ok(outcome.value.id.lower())
