"""
Book Catalogue Backend — Error Taxonomy Tests
==============================================

What:  Status mapping, detail folding and persistence-fault classification.
"""

from sqlalchemy.exc import DataError, IntegrityError, InterfaceError, OperationalError

from book_catalog.exceptions import (
    ErrorKind,
    Reason,
    ServiceError,
    already_exists,
    classify_persistence_error,
    not_found,
)
from book_catalog.result import Err, Ok


def _integrity(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO users ...", {}, Exception(message))


class TestErrorKinds:

    def test_status_codes(self):
        assert ErrorKind.VALIDATION.status_code == 400
        assert ErrorKind.AUTHENTICATION.status_code == 401
        assert ErrorKind.AUTHORIZATION.status_code == 403
        assert ErrorKind.NOT_FOUND.status_code == 404
        assert ErrorKind.ALREADY_EXISTS.status_code == 409
        assert ErrorKind.INTERNAL.status_code == 500

    def test_reason_is_folded_into_details(self):
        error = ServiceError(ErrorKind.AUTHENTICATION, "Token expired", reason=Reason.TOKEN_EXPIRED)
        assert error.public_details() == {"reason": "TOKEN_EXPIRED"}

    def test_no_details_is_none(self):
        assert ServiceError(ErrorKind.INTERNAL, "boom").public_details() is None

    def test_constructors(self):
        assert not_found("book", "abc").message == "Book not found"
        assert already_exists("email").details == {"field": "email"}


class TestClassification:

    def test_sqlite_unique_violation(self):
        error = classify_persistence_error(
            _integrity("UNIQUE constraint failed: users.email"), ("username", "email")
        )

        assert error.kind is ErrorKind.ALREADY_EXISTS
        assert error.details["field"] == "email"
        assert error.cause is not None

    def test_postgres_unique_violation(self):
        error = classify_persistence_error(
            _integrity(
                'duplicate key value violates unique constraint "uq_users_username"\n'
                "DETAIL:  Key (username)=(lector) already exists."
            ),
            ("username", "email"),
        )

        assert error.kind is ErrorKind.ALREADY_EXISTS
        assert error.details["field"] == "username"

    def test_not_null_violation(self):
        error = classify_persistence_error(_integrity("NOT NULL constraint failed: books.title"))
        assert error.kind is ErrorKind.VALIDATION

    def test_data_error(self):
        error = classify_persistence_error(DataError("INSERT", {}, Exception("value too long")))
        assert error.kind is ErrorKind.VALIDATION

    def test_connectivity(self):
        for exc in (
            OperationalError("SELECT 1", {}, Exception("could not connect to server")),
            InterfaceError("SELECT 1", {}, Exception("connection closed")),
            ConnectionResetError("reset by peer"),
        ):
            error = classify_persistence_error(exc)
            assert error.kind is ErrorKind.INTERNAL
            assert error.reason == Reason.DATABASE_UNAVAILABLE

    def test_unknown_fault_does_not_leak_driver_text(self):
        error = classify_persistence_error(RuntimeError("secret table layout"))

        assert error.kind is ErrorKind.INTERNAL
        assert "secret" not in error.message


class TestResult:

    def test_ok_and_err(self):
        assert Ok(2).map(lambda v: v * 2) == Ok(4)
        assert Err("e").map(lambda v: v * 2) == Err("e")
        assert Ok(1).bind(lambda v: Err("no")) == Err("no")
        assert Err("e").unwrap_or(0) == 0
