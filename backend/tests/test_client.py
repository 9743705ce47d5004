"""
Book Catalogue Backend — Client Tests
======================================

What:  `CatalogClient` against canned responses (httpx.MockTransport) and
       against the real app (ASGITransport), plus the pure state functions.
"""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from httpx import ASGITransport

from book_catalog.client import (
    AppState,
    CatalogClient,
    View,
    book_removed,
    book_saved,
    books_loaded,
    catalogue_stats,
    filters_changed,
    filters_cleared,
    signed_in,
    signed_out,
    visible_books,
)
from book_catalog.client.api import INVALID_RESPONSE, NETWORK_ERROR
from book_catalog.models.book import BookState
from book_catalog.schemas.auth import AuthResult, UserResponse
from book_catalog.schemas.book import BookResponse

NOW = datetime(2024, 9, 6, 12, 0, tzinfo=timezone.utc)


def _book(id_suffix, title, author, state="AVAILABLE", days_old=1):
    created = NOW - timedelta(days=days_old)
    return BookResponse(
        id=f"66f1c0de00000000000000{id_suffix:02d}",
        title=title,
        author=author,
        publication_year=1944,
        state=state,
        created_at=created,
        updated_at=created,
    )


def _book_json(book: BookResponse) -> dict:
    return book.model_dump(mode="json", by_alias=True)


def _client(handler) -> CatalogClient:
    return CatalogClient("http://catalog.test", transport=httpx.MockTransport(handler))


# ══════════════════════════════════════════════════════════════════════════
# CatalogClient (canned responses)
# ══════════════════════════════════════════════════════════════════════════

class TestCatalogClient:

    @pytest.mark.asyncio
    async def test_list_books_sends_filters(self):
        seen = {}
        book = _book(1, "Ficciones", "Jorge Luis Borges")

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            return httpx.Response(200, json={"success": True, "data": [_book_json(book)]})

        async with _client(handler) as api:
            result = await api.list_books(state=BookState.AVAILABLE, search="borges")

        assert result.is_ok()
        assert result.value == [book]
        assert seen["url"].path == "/api/books"
        assert seen["url"].params["state"] == "AVAILABLE"
        assert seen["url"].params["search"] == "borges"

    @pytest.mark.asyncio
    async def test_writes_send_bearer_token(self):
        seen = {}
        book = _book(1, "Ficciones", "Jorge Luis Borges", state="RESERVED")

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "data": _book_json(book)})

        async with _client(handler) as api:
            result = await api.change_state("tok", book.id, BookState.RESERVED)

        assert result.value.state is BookState.RESERVED
        assert seen["auth"] == "Bearer tok"
        assert seen["body"] == {"state": "RESERVED"}

    @pytest.mark.asyncio
    async def test_error_payload_becomes_api_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={
                "success": False,
                "message": "Invalid data",
                "errorType": "VALIDATION_ERROR",
                "details": {"validationErrors": [{"field": "title", "message": "Title is required"}]},
            })

        async with _client(handler) as api:
            result = await api.create_book("tok", {})

        assert result.is_err()
        failure = result.error
        assert failure.status == 400
        assert failure.error_type == "VALIDATION_ERROR"
        assert failure.validation_errors[0]["field"] == "title"

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as api:
            result = await api.list_available()

        assert result.error.status == 0
        assert result.error.error_type == NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_non_json_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        async with _client(handler) as api:
            result = await api.list_reserved()

        assert result.error.status == 502
        assert result.error.error_type == INVALID_RESPONSE

    @pytest.mark.asyncio
    async def test_malformed_data(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True, "data": {"books": "nope"}})

        async with _client(handler) as api:
            result = await api.list_books()

        assert result.error.error_type == INVALID_RESPONSE


# ══════════════════════════════════════════════════════════════════════════
# CatalogClient (against the app)
# ══════════════════════════════════════════════════════════════════════════

class TestCatalogClientAgainstApp:

    @pytest.mark.asyncio
    async def test_full_flow(self, test_client, sample_account):
        from book_catalog.main import app

        api = CatalogClient("http://test", transport=ASGITransport(app=app))
        try:
            registered = await api.register(**sample_account)
            assert registered.is_ok()
            token = registered.value.token

            created = await api.create_book(
                token, {"title": "Ficciones", "author": "Jorge Luis Borges", "publicationYear": 1944}
            )
            assert created.value.state is BookState.AVAILABLE

            recent = await api.list_recent(limit=5)
            assert recent.value.total == 1

            deleted = await api.delete_book(token, created.value.id)
            assert deleted.value.id == created.value.id

            missing = await api.get_book(created.value.id)
            assert missing.error.status == 404
            assert missing.error.error_type == "NOT_FOUND_ERROR"
        finally:
            await api.aclose()


# ══════════════════════════════════════════════════════════════════════════
# Application state
# ══════════════════════════════════════════════════════════════════════════

class TestAppState:

    def setup_method(self):
        self.books = [
            _book(1, "Ficciones", "Jorge Luis Borges", days_old=2),
            _book(2, "Don Quijote de la Mancha", "Miguel de Cervantes", "RESERVED", days_old=40),
            _book(3, "El Aleph", "Jorge Luis Borges", "RESERVED", days_old=10),
        ]
        self.state = books_loaded(AppState(), self.books)

    def test_sign_in_and_out(self):
        user = UserResponse(id="66f1c0de0000000000000009", username="lector",
                            email="lector@example.com", created_at=NOW)
        state = signed_in(self.state, AuthResult(user=user, token="tok"))

        assert state.is_authenticated
        assert state.view is View.DASHBOARD
        assert signed_out(state) == AppState()
        assert not self.state.is_authenticated

    def test_updates_do_not_mutate(self):
        before = self.state
        filters_changed(before, search="borges")
        book_removed(before, self.books[0].id)

        assert before.filters.search == ""
        assert len(before.books) == 3

    def test_book_saved_replaces_or_prepends(self):
        edited = self.books[0].model_copy(update={"title": "Ficciones (1944)"})
        new = _book(4, "Rayuela", "Julio Cortazar")

        state = book_saved(book_saved(self.state, edited), new)

        assert [b.title for b in state.books] == [
            "Rayuela", "Ficciones (1944)", "Don Quijote de la Mancha", "El Aleph",
        ]

    def test_visible_books(self):
        state = filters_changed(self.state, search="BORGES", book_state="RESERVED")
        assert [b.title for b in visible_books(state)] == ["El Aleph"]

        state = filters_changed(state, book_state="")
        assert len(visible_books(state)) == 2

        state = filters_changed(filters_cleared(state), author="cervantes")
        assert [b.title for b in visible_books(state)] == ["Don Quijote de la Mancha"]

        assert len(visible_books(filters_cleared(state))) == 3

    def test_catalogue_stats(self):
        stats = catalogue_stats(self.books, now=NOW)

        assert stats.total == 3
        assert stats.available == 1
        assert stats.reserved == 2
        assert stats.recent == 2
