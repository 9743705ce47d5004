"""
Book Catalogue Backend — Book Service Tests
============================================

What:  The book service against a real (in-memory SQLite) database.

What we test:
    ✅ create defaults state to AVAILABLE, round-trips through get_by_id
    ✅ Listing order, filters, recent projection and limit
    ✅ update / delete / change_state including NotFound and InvalidIdentifier
    ✅ Persistence faults come back classified and the session is rolled back
    ✅ The Ficciones scenario end to end
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from book_catalog.exceptions import ErrorKind, Reason, violations_from
from book_catalog.models.book import Book, BookState
from book_catalog.services import book_service

MISSING_ID = "66f1c0de0000000000000001"


class TestCreateAndGet:

    @pytest.mark.asyncio
    async def test_create_defaults_to_available(self, db_session, sample_book):
        result = await book_service.create(db_session, sample_book)

        assert result.is_ok()
        book = result.value
        assert book.state is BookState.AVAILABLE
        assert len(book.id) == 24
        assert book.created_at is not None

    @pytest.mark.asyncio
    async def test_round_trip(self, db_session):
        payload = {
            "title": "Don Quijote de la Mancha",
            "author": "Miguel de Cervantes",
            "publicationYear": 1605,
            "state": "RESERVED",
        }
        created = await book_service.create(db_session, payload)
        fetched = await book_service.get_by_id(db_session, created.value.id)

        assert fetched.is_ok()
        assert fetched.value.title == payload["title"]
        assert fetched.value.author == payload["author"]
        assert fetched.value.publication_year == 1605
        assert fetched.value.state is BookState.RESERVED

    @pytest.mark.asyncio
    async def test_invalid_payload_reports_all_fields(self, db_session):
        result = await book_service.create(
            db_session, {"title": "", "author": "", "publicationYear": 3000}
        )

        assert result.is_err()
        assert result.error.kind is ErrorKind.VALIDATION
        fields = {v["field"] for v in violations_from(result.error)}
        assert fields == {"title", "author", "publicationYear"}

    @pytest.mark.asyncio
    async def test_get_unknown_id(self, db_session):
        result = await book_service.get_by_id(db_session, MISSING_ID)

        assert result.is_err()
        assert result.error.kind is ErrorKind.NOT_FOUND
        assert result.error.details == {"resource": "book", "id": MISSING_ID}

    @pytest.mark.asyncio
    async def test_get_malformed_id(self, db_session):
        result = await book_service.get_by_id(db_session, "12345")

        assert result.is_err()
        assert result.error.kind is ErrorKind.VALIDATION
        assert result.error.reason == Reason.INVALID_IDENTIFIER


class TestListing:

    @pytest.mark.asyncio
    async def test_newest_first_and_idempotent(self, db_session, make_book, minutes_ago):
        await make_book(title="Oldest", created_at=minutes_ago(30))
        await make_book(title="Newest", created_at=minutes_ago(1))
        await make_book(title="Middle", created_at=minutes_ago(10))

        first = await book_service.list_books(db_session)
        second = await book_service.list_books(db_session)

        assert [b.title for b in first.value] == ["Newest", "Middle", "Oldest"]
        assert first.value == second.value

    @pytest.mark.asyncio
    async def test_list_by_state(self, db_session, make_book):
        await make_book(title="A", state="AVAILABLE")
        await make_book(title="R", state="RESERVED")

        reserved = await book_service.list_by_state(db_session, BookState.RESERVED)
        available = await book_service.list_by_state(db_session, "AVAILABLE")

        assert [b.title for b in reserved.value] == ["R"]
        assert [b.title for b in available.value] == ["A"]

    @pytest.mark.asyncio
    async def test_list_by_author_is_case_insensitive_substring(self, db_session, make_book):
        await make_book(title="Ficciones", author="Jorge Luis Borges")
        await make_book(title="El Aleph", author="Jorge Luis Borges")
        await make_book(title="Rayuela", author="Julio Cortazar")

        result = await book_service.list_by_author(db_session, "BORGES")

        assert sorted(b.title for b in result.value) == ["El Aleph", "Ficciones"]

    @pytest.mark.asyncio
    async def test_like_wildcards_are_literal(self, db_session, make_book):
        await make_book(author="Jorge Luis Borges")

        result = await book_service.list_by_author(db_session, "%")

        assert result.value == []

    @pytest.mark.asyncio
    async def test_find_books_combines_filters(self, db_session, make_book):
        await make_book(title="Ficciones", author="Jorge Luis Borges", state="AVAILABLE")
        await make_book(title="El Aleph", author="Jorge Luis Borges", state="RESERVED")
        await make_book(title="Rayuela", author="Julio Cortazar", state="AVAILABLE")

        result = await book_service.find_books(
            db_session, state=BookState.AVAILABLE, search="borges"
        )
        assert [b.title for b in result.value] == ["Ficciones"]

        by_title = await book_service.find_books(db_session, search="rayu")
        assert [b.title for b in by_title.value] == ["Rayuela"]

    @pytest.mark.asyncio
    async def test_recent_is_limited_and_projected(self, db_session, make_book, minutes_ago):
        for i in range(5):
            await make_book(title=f"Book {i}", created_at=minutes_ago(10 - i))

        result = await book_service.list_recent(db_session, limit=3)

        assert result.is_ok()
        assert [b.title for b in result.value] == ["Book 4", "Book 3", "Book 2"]
        assert "updated_at" not in result.value[0].model_dump()


class TestMutations:

    @pytest.mark.asyncio
    async def test_update_changes_only_given_fields(self, db_session, sample_book):
        created = (await book_service.create(db_session, sample_book)).value

        result = await book_service.update(db_session, created.id, {"title": "Ficciones (1944)"})

        assert result.is_ok()
        assert result.value.title == "Ficciones (1944)"
        assert result.value.author == created.author
        assert result.value.updated_at >= created.updated_at

    @pytest.mark.asyncio
    async def test_update_requires_a_field(self, db_session, sample_book):
        created = (await book_service.create(db_session, sample_book)).value

        result = await book_service.update(db_session, created.id, {})

        assert result.is_err()
        assert result.error.kind is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, db_session):
        result = await book_service.update(db_session, MISSING_ID, {"title": "X"})

        assert result.error.kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_returns_snapshot(self, db_session, sample_book):
        created = (await book_service.create(db_session, sample_book)).value

        deleted = await book_service.delete(db_session, created.id)
        again = await book_service.delete(db_session, created.id)

        assert deleted.value == created
        assert again.error.kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_change_state_toggles_from_either_state(self, db_session, sample_book):
        created = (await book_service.create(db_session, sample_book)).value

        for target in ("RESERVED", "AVAILABLE", "AVAILABLE", "RESERVED"):
            result = await book_service.change_state(db_session, created.id, target)
            assert result.is_ok()
            assert result.value.state.value == target

    @pytest.mark.asyncio
    async def test_change_state_rejects_unknown_state(self, db_session, sample_book):
        created = (await book_service.create(db_session, sample_book)).value

        result = await book_service.change_state(db_session, created.id, "LOST")

        assert result.is_err()
        assert result.error.kind is ErrorKind.VALIDATION
        assert result.error.reason == Reason.INVALID_STATE


class TestPersistenceFaults:

    @pytest.mark.asyncio
    async def test_connection_loss_is_internal_and_rolled_back(self, sample_book):
        session = AsyncMock()
        session.add = MagicMock()
        session.commit = AsyncMock(
            side_effect=OperationalError("INSERT", {}, ConnectionRefusedError("refused"))
        )

        result = await book_service.create(session, sample_book)

        assert result.is_err()
        assert result.error.kind is ErrorKind.INTERNAL
        assert result.error.reason == Reason.DATABASE_UNAVAILABLE
        assert "refused" not in result.error.message
        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_check_violation_is_validation(self, sample_book):
        session = AsyncMock()
        session.add = MagicMock()
        session.commit = AsyncMock(side_effect=IntegrityError(
            "INSERT", {}, Exception("CHECK constraint failed: ck_books_publication_year")
        ))

        result = await book_service.create(session, sample_book)

        assert result.error.kind is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_commit_failure_on_update_is_reported(self):
        session = AsyncMock()
        session.get = AsyncMock(return_value=Book(
            title="Ficciones", author="Jorge Luis Borges", publication_year=1944, state="AVAILABLE",
        ))
        session.commit = AsyncMock(
            side_effect=OperationalError("COMMIT", {}, ConnectionResetError("reset by peer"))
        )

        result = await book_service.update(session, MISSING_ID, {"state": "RESERVED"})

        assert result.is_err()
        assert result.error.kind is ErrorKind.INTERNAL
        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_read_failure_is_internal(self):
        session = AsyncMock()
        session.execute = AsyncMock(
            side_effect=OperationalError("SELECT", {}, TimeoutError("timed out"))
        )

        result = await book_service.list_books(session)

        assert result.error.kind is ErrorKind.INTERNAL
        session.rollback.assert_awaited_once()


class TestFiccionesScenario:

    @pytest.mark.asyncio
    async def test_create_reserve_delete(self, db_session):
        created = await book_service.create(db_session, {
            "title": "Ficciones", "author": "Jorge Luis Borges", "publicationYear": 1944,
        })
        assert created.value.state is BookState.AVAILABLE

        reserved = await book_service.change_state(db_session, created.value.id, "RESERVED")
        assert reserved.value.state is BookState.RESERVED

        deleted = await book_service.delete(db_session, created.value.id)
        assert deleted.is_ok()

        gone = await book_service.get_by_id(db_session, created.value.id)
        assert gone.error.kind is ErrorKind.NOT_FOUND
