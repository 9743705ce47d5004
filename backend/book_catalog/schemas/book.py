"""
Book Catalogue Backend — Book Schemas
======================================

What:  Declarative rules for book payloads and the shapes returned to clients.

Rules per field:
    title            required, 1-200 chars after trimming
    author           required, 1-100 chars after trimming
    publicationYear  required, integer, 1000 ≤ year ≤ current year
    state            AVAILABLE | RESERVED, defaults to AVAILABLE

`BookUpdate` takes the same rules with every field optional, rejects explicit
nulls and requires at least one field.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_core import PydanticCustomError

from book_catalog.models.book import (
    AUTHOR_MAX_LENGTH,
    MIN_PUBLICATION_YEAR,
    TITLE_MAX_LENGTH,
    BookState,
)
from book_catalog.schemas.common import CamelModel, ResponseModel, UtcDatetime


def _not_in_future(year: Optional[int]) -> Optional[int]:
    if year is None:
        return year
    current_year = date.today().year
    if year > current_year:
        raise PydanticCustomError(
            "year_in_future",
            "Publication year cannot be later than {max_year}",
            {"max_year": current_year},
        )
    return year


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class BookCreate(CamelModel):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    author: str = Field(min_length=1, max_length=AUTHOR_MAX_LENGTH)
    publication_year: int = Field(ge=MIN_PUBLICATION_YEAR)
    state: BookState = BookState.AVAILABLE

    @field_validator("publication_year")
    @classmethod
    def check_year(cls, v: int) -> int:
        return _not_in_future(v)


class BookUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    author: Optional[str] = Field(default=None, min_length=1, max_length=AUTHOR_MAX_LENGTH)
    publication_year: Optional[int] = Field(default=None, ge=MIN_PUBLICATION_YEAR)
    state: Optional[BookState] = None

    @field_validator("title", "author", "publication_year", "state")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        # Validators only run on supplied values, so None here was sent explicitly
        if v is None:
            raise PydanticCustomError("not_null", "Value cannot be null")
        return v

    @field_validator("publication_year")
    @classmethod
    def check_year(cls, v: Optional[int]) -> Optional[int]:
        return _not_in_future(v)

    @model_validator(mode="after")
    def require_one_field(self) -> "BookUpdate":
        if not self.model_fields_set:
            raise PydanticCustomError(
                "at_least_one_field",
                "At least one field must be provided for update",
            )
        return self

    def changes(self) -> Dict[str, Any]:
        """Supplied fields only, keyed by ORM attribute name, enums as plain strings."""
        return self.model_dump(exclude_unset=True, mode="json")


class BookStateChange(CamelModel):
    state: BookState


class BookQuery(CamelModel):
    """Optional filters for GET /api/books."""

    state: Optional[BookState] = None
    author: Optional[str] = Field(default=None, max_length=AUTHOR_MAX_LENGTH)
    search: Optional[str] = Field(default=None, min_length=1, max_length=100)


class AuthorParam(CamelModel):
    author: str = Field(min_length=1, max_length=AUTHOR_MAX_LENGTH)


class RecentQuery(CamelModel):
    limit: int = Field(default=10, ge=1, le=100)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class BookResponse(ResponseModel):
    id: str
    title: str
    author: str
    publication_year: int
    state: BookState
    created_at: UtcDatetime
    updated_at: UtcDatetime


class BookSummary(ResponseModel):
    """Reduced projection used by the recent-books listing."""

    id: str
    title: str
    author: str
    publication_year: int
    state: BookState
    created_at: UtcDatetime


class RecentBooks(ResponseModel):
    books: List[BookSummary]
    total: int


class DeletedBook(ResponseModel):
    deleted_book: BookResponse
