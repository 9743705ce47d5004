"""
Book Catalogue Backend — Book Route Handlers
=============================================

What:  The `/api/books` surface. Reads are public; create, update, delete and
       state changes need a bearer token.
How:   Each handler validates its input (path id, query, body), calls one
       book-service function and forwards the `Ok` / `Err` to `respond()`.
       No handler catches exceptions.

Route order matters: the fixed paths (`/available`, `/reserved`, `/recent`,
`/author/...`) are declared before `/{book_id}` so they are not read as ids.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from book_catalog.database import get_db_session
from book_catalog.dependencies import require_auth
from book_catalog.models.book import BookState
from book_catalog.models.user import User
from book_catalog.responses import error_response, respond
from book_catalog.schemas.book import (
    AuthorParam,
    BookCreate,
    BookQuery,
    BookStateChange,
    BookUpdate,
    DeletedBook,
    RecentBooks,
    RecentQuery,
)
from book_catalog.schemas.common import ErrorResponse
from book_catalog.services import book_service
from book_catalog.validation import check_identifier, validate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/books", tags=["Books"])

_ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}
_AUTH_ERRORS = {
    **_ERRORS,
    401: {"description": "Missing, invalid or expired token", "model": ErrorResponse},
    404: {"description": "Book not found", "model": ErrorResponse},
}

JsonBody = Optional[Dict[str, Any]]


# ── Reads ─────────────────────────────────────────────────────────────────

@router.get(
    "",
    responses=_ERRORS,
    summary="List books",
    description="All books, newest first. Optional `state`, `author` and `search` filters.",
)
async def list_books(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    """
    List books, optionally filtered.

    What:    Every book, newest first, narrowed by any of `state`, `author`
             (substring) and `search` (substring of title or author).
    Who:     The catalogue view's main table, on load and on filter change.

    Example:
        GET /api/books?state=AVAILABLE&search=borges
    """
    query = validate(BookQuery, dict(request.query_params))
    if query.is_err():
        return error_response(query.error, request)
    filters = query.value

    result = await book_service.find_books(
        db, state=filters.state, author=filters.author, search=filters.search
    )
    return respond(result, request, message="Books retrieved successfully")


@router.get("/available", responses=_ERRORS, summary="List available books")
async def list_available(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await book_service.list_by_state(db, BookState.AVAILABLE)
    return respond(result, request, message="Available books retrieved successfully")


@router.get("/reserved", responses=_ERRORS, summary="List reserved books")
async def list_reserved(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await book_service.list_by_state(db, BookState.RESERVED)
    return respond(result, request, message="Reserved books retrieved successfully")


@router.get(
    "/recent",
    responses=_ERRORS,
    summary="Most recently added books",
    description="Newest first, `limit` between 1 and 100 (default 10). `updatedAt` is omitted.",
)
async def list_recent(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    query = validate(RecentQuery, dict(request.query_params))
    if query.is_err():
        return error_response(query.error, request)

    result = await book_service.list_recent(db, limit=query.value.limit)
    return respond(
        result,
        request,
        message="Recent books retrieved successfully",
        wrap=lambda books: RecentBooks(books=books, total=len(books)),
    )


@router.get(
    "/author/{author}",
    responses=_ERRORS,
    summary="Books by author",
    description="Case-insensitive substring match on the author name.",
)
async def list_by_author(
    author: str,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    param = validate(AuthorParam, {"author": author})
    if param.is_err():
        return error_response(param.error, request)

    result = await book_service.list_by_author(db, param.value.author)
    return respond(result, request, message=f"Books by author: {param.value.author}")


@router.get(
    "/{book_id}",
    responses={**_ERRORS, 404: {"description": "Book not found", "model": ErrorResponse}},
    summary="Get one book",
)
async def get_book(
    book_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    checked = check_identifier(book_id)
    if checked.is_err():
        return error_response(checked.error, request)

    result = await book_service.get_by_id(db, checked.value)
    return respond(result, request)


# ── Writes (bearer token required) ────────────────────────────────────────

@router.post(
    "",
    status_code=201,
    responses=_AUTH_ERRORS,
    summary="Create a book",
    openapi_extra={"requestBody": {"content": {"application/json": {
        "schema": BookCreate.model_json_schema(by_alias=True)
    }}}},
)
async def create_book(
    request: Request,
    payload: JsonBody = Body(default=None),
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    """
    Create a book.

    What:    Validates the body, inserts the row and returns it with 201.
    Who:     The "new book" form; needs a bearer token.

    Order of checks:
        token (401) → body (400, every invalid field reported) → insert
    """
    data = validate(BookCreate, payload)
    if data.is_err():
        return error_response(data.error, request)

    result = await book_service.create(db, data.value)
    if result.is_ok():
        logger.info("Book %s created by user %s", result.value.id, user.id)
    return respond(result, request, message="Book created successfully", status_code=201)


@router.put(
    "/{book_id}",
    responses=_AUTH_ERRORS,
    summary="Update a book",
    description="Any subset of title, author, publicationYear and state; at least one.",
    openapi_extra={"requestBody": {"content": {"application/json": {
        "schema": BookUpdate.model_json_schema(by_alias=True)
    }}}},
)
async def update_book(
    book_id: str,
    request: Request,
    payload: JsonBody = Body(default=None),
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    checked = check_identifier(book_id)
    if checked.is_err():
        return error_response(checked.error, request)
    data = validate(BookUpdate, payload)
    if data.is_err():
        return error_response(data.error, request)

    result = await book_service.update(db, checked.value, data.value)
    return respond(result, request, message="Book updated successfully")


@router.delete("/{book_id}", responses=_AUTH_ERRORS, summary="Delete a book")
async def delete_book(
    book_id: str,
    request: Request,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    checked = check_identifier(book_id)
    if checked.is_err():
        return error_response(checked.error, request)

    result = await book_service.delete(db, checked.value)
    return respond(
        result,
        request,
        message="Book deleted successfully",
        wrap=lambda book: DeletedBook(deleted_book=book),
    )


@router.patch(
    "/{book_id}/state",
    responses=_AUTH_ERRORS,
    summary="Change a book's state",
    description="AVAILABLE ⇄ RESERVED; either state can move to the other at any time.",
    openapi_extra={"requestBody": {"content": {"application/json": {
        "schema": BookStateChange.model_json_schema(by_alias=True)
    }}}},
)
async def change_book_state(
    book_id: str,
    request: Request,
    payload: JsonBody = Body(default=None),
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    """
    Move a book between AVAILABLE and RESERVED.

    What:    Sets `state` and refreshes `updatedAt`; re-applying the current
             state is allowed and still succeeds.
    Who:     The reserve / release toggle on each book row.
    """
    checked = check_identifier(book_id)
    if checked.is_err():
        return error_response(checked.error, request)
    data = validate(BookStateChange, payload)
    if data.is_err():
        return error_response(data.error, request)

    new_state = data.value.state
    result = await book_service.change_state(db, checked.value, new_state)
    return respond(result, request, message=f"Book state changed to {new_state.value}")
