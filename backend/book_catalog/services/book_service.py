"""
Book Catalogue Backend — Book Service
======================================

What:  Every catalogue read and write.
How:   Module-level async functions taking the request's `AsyncSession` and
       returning `Ok(...)` or `Err(ServiceError)`. Each write touches exactly
       one row and commits it before returning `Ok`; on a persistence fault
       the session is rolled back and the fault is classified before it is
       returned.

Operations:
    list_books()                    newest first
    find_books(state, author, search)
    list_by_state(state)
    list_by_author(author)          case-insensitive substring
    list_recent(limit)              newest first, reduced projection
    get_by_id(id)
    create(data)
    update(id, partial)             at least one field, last write wins
    delete(id)                      returns the deleted snapshot
    change_state(id, new_state)     AVAILABLE ⇄ RESERVED, never blocked

Ordering:
    created_at DESC, then id DESC so rows created in the same instant still
    come back in a stable order.
"""

import logging
from typing import Any, List, Mapping, Optional, Union

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from book_catalog.database import utcnow
from book_catalog.exceptions import (
    Reason,
    ServiceError,
    ErrorKind,
    classify_persistence_error,
    not_found,
)
from book_catalog.models.book import Book, BookState
from book_catalog.result import Err, Ok, Result
from book_catalog.schemas.book import (
    BookCreate,
    BookResponse,
    BookSummary,
    BookUpdate,
)
from book_catalog.validation import check_identifier, validate

logger = logging.getLogger(__name__)

_NEWEST_FIRST = (Book.created_at.desc(), Book.id.desc())


def _escape_like(term: str) -> str:
    # Backslash first, or the escapes added for % and _ get doubled
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _contains(column, term: str):
    """Case-insensitive substring match with LIKE wildcards in `term` taken literally."""
    return func.lower(column).like(f"%{_escape_like(term.lower())}%", escape="\\")


async def _fail(db: AsyncSession, exc: SQLAlchemyError, message: str) -> Err:
    """
    Roll back and classify a persistence fault.

    What:    Turns a SQLAlchemy exception into the matching `ServiceError`
             (UNIQUE → ALREADY_EXISTS, CHECK/NOT NULL → VALIDATION, anything
             else → INTERNAL with `message` and no driver text).
    Who:     Every `except SQLAlchemyError` branch in this module.
    """
    await db.rollback()
    return Err(classify_persistence_error(exc, message=message))


async def _load(db: AsyncSession, book_id: str) -> Result[Book, ServiceError]:
    """
    Resolve an id to a row.

    What:    Checks the 24-hex identifier shape, then looks the row up by
             primary key (identity map first, then SELECT).
    Who:     get_by_id, update, delete (and change_state through update).

    Returns:
        Ok(Book), Err(INVALID_IDENTIFIER) or Err(NOT_FOUND).
    """
    checked = check_identifier(book_id)
    if checked.is_err():
        return checked
    book = await db.get(Book, checked.value)
    if book is None:
        return Err(not_found("book", checked.value))
    return Ok(book)


# ══════════════════════════════════════════════════════════════════════════
# Reads
# ══════════════════════════════════════════════════════════════════════════


async def find_books(
    db: AsyncSession,
    state: Optional[Union[BookState, str]] = None,
    author: Optional[str] = None,
    search: Optional[str] = None,
) -> Result[List[BookResponse], ServiceError]:
    """
    Books matching every supplied filter, newest first.

    Args:
        state:  exact state; values outside the enum are ignored
        author: case-insensitive substring of the author
        search: case-insensitive substring of the title or the author
    """
    query = select(Book)
    if state is not None:
        value = state.value if isinstance(state, BookState) else state
        if value in BookState.values():
            query = query.where(Book.state == value)
    if author:
        query = query.where(_contains(Book.author, author))
    if search:
        query = query.where(or_(_contains(Book.title, search), _contains(Book.author, search)))
    query = query.order_by(*_NEWEST_FIRST)

    try:
        result = await db.execute(query)
        books = result.scalars().all()
    except SQLAlchemyError as exc:
        logger.error("Error listing books: %s", exc)
        return await _fail(db, exc, "Could not retrieve books. Please try again.")

    return Ok([BookResponse.model_validate(book) for book in books])


async def list_books(db: AsyncSession) -> Result[List[BookResponse], ServiceError]:
    return await find_books(db)


async def list_by_state(
    db: AsyncSession, state: Union[BookState, str]
) -> Result[List[BookResponse], ServiceError]:
    """Every book in `state` (AVAILABLE or RESERVED), newest first."""
    return await find_books(db, state=state)


async def list_by_author(db: AsyncSession, author: str) -> Result[List[BookResponse], ServiceError]:
    return await find_books(db, author=author)


async def list_recent(db: AsyncSession, limit: int = 10) -> Result[List[BookSummary], ServiceError]:
    """The `limit` newest books, without `updatedAt`."""
    query = (
        select(
            Book.id,
            Book.title,
            Book.author,
            Book.publication_year,
            Book.state,
            Book.created_at,
        )
        .order_by(*_NEWEST_FIRST)
        .limit(limit)
    )
    try:
        result = await db.execute(query)
        rows = result.mappings().all()
    except SQLAlchemyError as exc:
        logger.error("Error listing recent books: %s", exc)
        return await _fail(db, exc, "Could not retrieve recent books. Please try again.")

    return Ok([BookSummary.model_validate(dict(row)) for row in rows])


async def get_by_id(db: AsyncSession, book_id: str) -> Result[BookResponse, ServiceError]:
    """One book by id: INVALID_IDENTIFIER for a malformed id, NOT_FOUND when absent."""
    try:
        loaded = await _load(db, book_id)
    except SQLAlchemyError as exc:
        logger.error("Error fetching book %s: %s", book_id, exc)
        return await _fail(db, exc, "Could not retrieve the book. Please try again.")
    return loaded.map(BookResponse.model_validate)


# ══════════════════════════════════════════════════════════════════════════
# Writes
# ══════════════════════════════════════════════════════════════════════════


async def create(
    db: AsyncSession, data: Union[BookCreate, Mapping[str, Any]]
) -> Result[BookResponse, ServiceError]:
    """
    Validate and insert a book.

    What:    Inserts one row; `state` defaults to AVAILABLE and the id,
             `created_at` and `updated_at` are assigned here.
    Who:     POST /api/books, and the seed script.
    When:    The row is committed before `Ok` is returned, so a commit
             failure comes back as an `Err` and not as a lost write.

    Returns:
        Ok(BookResponse) or Err(VALIDATION / ALREADY_EXISTS / INTERNAL).
    """
    validated = validate(BookCreate, data)
    if validated.is_err():
        return validated
    payload = validated.value

    book = Book(
        title=payload.title,
        author=payload.author,
        publication_year=payload.publication_year,
        state=payload.state.value,
    )
    try:
        db.add(book)
        await db.commit()
    except SQLAlchemyError as exc:
        logger.error("Error creating book: %s", exc)
        return await _fail(db, exc, "Could not create the book. Please try again.")

    logger.info("Created book %s", book.id)
    return Ok(BookResponse.model_validate(book))


async def update(
    db: AsyncSession, book_id: str, data: Union[BookUpdate, Mapping[str, Any]]
) -> Result[BookResponse, ServiceError]:
    """
    Apply the supplied fields to one book and return the updated record.

    What:    Partial update; omitted fields keep their values, `updated_at`
             is refreshed, concurrent updates resolve last-write-wins.
    Who:     PUT /api/books/{id}, and change_state.
    When:    Committed before `Ok` is returned.

    Returns:
        Ok(BookResponse), or Err(VALIDATION) for an empty/invalid payload,
        Err(INVALID_IDENTIFIER / NOT_FOUND) for a bad id, Err(INTERNAL) on
        a persistence fault.
    """
    validated = validate(BookUpdate, data)
    if validated.is_err():
        return validated
    changes = validated.value.changes()

    try:
        loaded = await _load(db, book_id)
        if loaded.is_err():
            return loaded
        book = loaded.value
        for attribute, value in changes.items():
            setattr(book, attribute, value)
        book.updated_at = utcnow()
        await db.commit()
    except SQLAlchemyError as exc:
        logger.error("Error updating book %s: %s", book_id, exc)
        return await _fail(db, exc, "Could not update the book. Please try again.")

    logger.info("Updated book %s: %s", book.id, sorted(changes))
    return Ok(BookResponse.model_validate(book))


async def delete(db: AsyncSession, book_id: str) -> Result[BookResponse, ServiceError]:
    """
    Hard-delete one book and return what it looked like.

    Who:     DELETE /api/books/{id}.
    When:    The snapshot is taken before the DELETE; the removal is
             committed before `Ok` is returned.
    """
    try:
        loaded = await _load(db, book_id)
        if loaded.is_err():
            return loaded
        book = loaded.value
        snapshot = BookResponse.model_validate(book)
        await db.delete(book)
        await db.commit()
    except SQLAlchemyError as exc:
        logger.error("Error deleting book %s: %s", book_id, exc)
        return await _fail(db, exc, "Could not delete the book. Please try again.")

    logger.info("Deleted book %s", snapshot.id)
    return Ok(snapshot)


async def change_state(
    db: AsyncSession, book_id: str, new_state: Union[BookState, str]
) -> Result[BookResponse, ServiceError]:
    """Move a book to `new_state`; any state may move to any state."""
    value = new_state.value if isinstance(new_state, BookState) else new_state
    if value not in BookState.values():
        return Err(ServiceError(
            kind=ErrorKind.VALIDATION,
            message="Invalid book state",
            details={"field": "state", "value": value, "allowed": BookState.values()},
            reason=Reason.INVALID_STATE,
        ))
    return await update(db, book_id, {"state": value})
