"""
Book Catalogue Client — HTTP API
=================================

What:  One async method per API endpoint.
How:   httpx.AsyncClient underneath. Every method returns `Ok(model)` on a
       `success: true` response and `Err(ApiFailure)` otherwise, including
       transport failures and bodies that are not the expected envelope.
       Nothing raises for an API-level failure.

The client keeps no session: methods that need authentication take the
token explicitly, usually `state.token` from `book_catalog.client.state`.

Usage:
    async with CatalogClient("http://localhost:5000") as api:
        auth = await api.login("admin@libros.com", "admin1234")
        if auth.is_ok():
            books = await api.list_books(search="borges")
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from book_catalog.models.book import BookState
from book_catalog.result import Err, Ok, Result
from book_catalog.schemas.auth import AuthResult, UserResponse
from book_catalog.schemas.book import BookResponse, DeletedBook, RecentBooks

logger = logging.getLogger(__name__)

NETWORK_ERROR = "NETWORK_ERROR"
INVALID_RESPONSE = "INVALID_RESPONSE"
DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class ApiFailure:
    """A failed call: HTTP status (0 if no response), `errorType`, message, details."""

    status: int
    error_type: str
    message: str
    details: Optional[Dict[str, Any]] = None

    @property
    def validation_errors(self) -> List[Dict[str, Any]]:
        return list((self.details or {}).get("validationErrors", []))


def _book_list(data: Any) -> List[BookResponse]:
    if not isinstance(data, list):
        raise TypeError("expected a list of books")
    return [BookResponse.model_validate(item) for item in data]


class CatalogClient:
    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ── Transport ─────────────────────────────────────────────────────────

    async def _call(
        self,
        method: str,
        path: str,
        parse: Callable[[Any], Any],
        token: Optional[str] = None,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Result[Any, ApiFailure]:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            response = await self._http.request(
                method, path, json=json, params=params, headers=headers
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            return Err(ApiFailure(0, NETWORK_ERROR, f"Could not reach the server: {exc}"))

        try:
            body = response.json()
        except ValueError:
            return Err(ApiFailure(
                response.status_code, INVALID_RESPONSE, "Server returned a non-JSON response"
            ))
        if not isinstance(body, dict):
            return Err(ApiFailure(
                response.status_code, INVALID_RESPONSE, "Server returned an unexpected body"
            ))

        if response.is_error or not body.get("success", False):
            return Err(ApiFailure(
                status=response.status_code,
                error_type=body.get("errorType", INVALID_RESPONSE),
                message=body.get("message") or f"HTTP error {response.status_code}",
                details=body.get("details"),
            ))

        try:
            return Ok(parse(body.get("data")))
        except (PydanticValidationError, TypeError) as exc:
            logger.warning("%s %s returned malformed data: %s", method, path, exc)
            return Err(ApiFailure(
                response.status_code, INVALID_RESPONSE, "Server returned malformed data"
            ))

    # ── Auth ──────────────────────────────────────────────────────────────

    async def register(self, username: str, email: str, password: str) -> Result[AuthResult, ApiFailure]:
        return await self._call(
            "POST", "/api/auth/register", AuthResult.model_validate,
            json={"username": username, "email": email, "password": password},
        )

    async def login(self, email: str, password: str) -> Result[AuthResult, ApiFailure]:
        return await self._call(
            "POST", "/api/auth/login", AuthResult.model_validate,
            json={"email": email, "password": password},
        )

    async def me(self, token: str) -> Result[UserResponse, ApiFailure]:
        return await self._call("GET", "/api/auth/me", UserResponse.model_validate, token=token)

    # ── Books: reads ──────────────────────────────────────────────────────

    async def list_books(
        self,
        state: Optional[Union[BookState, str]] = None,
        author: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Result[List[BookResponse], ApiFailure]:
        params = {
            key: (value.value if isinstance(value, BookState) else value)
            for key, value in (("state", state), ("author", author), ("search", search))
            if value
        }
        return await self._call("GET", "/api/books", _book_list, params=params or None)

    async def list_available(self) -> Result[List[BookResponse], ApiFailure]:
        return await self._call("GET", "/api/books/available", _book_list)

    async def list_reserved(self) -> Result[List[BookResponse], ApiFailure]:
        return await self._call("GET", "/api/books/reserved", _book_list)

    async def list_recent(self, limit: int = 10) -> Result[RecentBooks, ApiFailure]:
        return await self._call(
            "GET", "/api/books/recent", RecentBooks.model_validate, params={"limit": limit}
        )

    async def list_by_author(self, author: str) -> Result[List[BookResponse], ApiFailure]:
        return await self._call("GET", f"/api/books/author/{author}", _book_list)

    async def get_book(self, book_id: str) -> Result[BookResponse, ApiFailure]:
        return await self._call("GET", f"/api/books/{book_id}", BookResponse.model_validate)

    # ── Books: writes ─────────────────────────────────────────────────────

    async def create_book(self, token: str, data: Dict[str, Any]) -> Result[BookResponse, ApiFailure]:
        return await self._call(
            "POST", "/api/books", BookResponse.model_validate, token=token, json=data
        )

    async def update_book(
        self, token: str, book_id: str, changes: Dict[str, Any]
    ) -> Result[BookResponse, ApiFailure]:
        return await self._call(
            "PUT", f"/api/books/{book_id}", BookResponse.model_validate, token=token, json=changes
        )

    async def delete_book(self, token: str, book_id: str) -> Result[BookResponse, ApiFailure]:
        return await self._call(
            "DELETE", f"/api/books/{book_id}",
            lambda data: DeletedBook.model_validate(data).deleted_book,
            token=token,
        )

    async def change_state(
        self, token: str, book_id: str, new_state: Union[BookState, str]
    ) -> Result[BookResponse, ApiFailure]:
        value = new_state.value if isinstance(new_state, BookState) else new_state
        return await self._call(
            "PATCH", f"/api/books/{book_id}/state", BookResponse.model_validate,
            token=token, json={"state": value},
        )
