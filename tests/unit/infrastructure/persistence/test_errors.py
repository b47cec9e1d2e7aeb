"""Unit tests for storage error classification."""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from entitystore.core.exceptions import (
    ConflictError,
    ConnectionFailureError,
    ConstraintViolationError,
    DuplicateNameError,
    NotFoundError,
    ReferentialViolationError,
    UnexpectedError,
)
from entitystore.infrastructure.persistence.errors import (
    classify_database_error,
    get_sqlstate,
)


class FakeDriverError(Exception):
    """Driver exception carrying an optional SQLSTATE, like asyncpg's."""

    def __init__(self, message: str, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


def _integrity(message: str, sqlstate: str | None = None) -> IntegrityError:
    return IntegrityError("INSERT INTO entities ...", {}, FakeDriverError(message, sqlstate))


def _operational(message: str, sqlstate: str | None = None, **kwargs) -> OperationalError:
    return OperationalError("UPDATE records ...", {}, FakeDriverError(message, sqlstate), **kwargs)


class TestSqlstateClassification:
    @pytest.mark.parametrize(
        "sqlstate, expected",
        [
            ("08006", ConnectionFailureError),
            ("08001", ConnectionFailureError),
            ("40001", ConflictError),
            ("40P01", ConflictError),
            ("23503", ReferentialViolationError),
            ("23502", ConstraintViolationError),
            ("23514", ConstraintViolationError),
        ],
    )
    def test_by_sqlstate(self, sqlstate, expected):
        error = classify_database_error(_operational("driver failure", sqlstate), "op")
        assert isinstance(error, expected)

    def test_unique_violation_uses_factory(self):
        error = classify_database_error(
            _integrity("duplicate key value", "23505"),
            "create_entity",
            on_unique=DuplicateNameError,
        )
        assert isinstance(error, DuplicateNameError)

    def test_unique_violation_defaults_to_constraint(self):
        error = classify_database_error(_integrity("duplicate key value", "23505"), "op")
        assert isinstance(error, ConstraintViolationError)

    def test_get_sqlstate(self):
        assert get_sqlstate(_integrity("x", "23505")) == "23505"
        assert get_sqlstate(_integrity("x")) is None


class TestMessageClassification:
    def test_sqlite_unique(self):
        error = classify_database_error(
            _integrity("UNIQUE constraint failed: entities.name"),
            "create_entity",
            on_unique=DuplicateNameError,
        )
        assert isinstance(error, DuplicateNameError)

    def test_sqlite_foreign_key(self):
        error = classify_database_error(_integrity("FOREIGN KEY constraint failed"), "op")
        assert isinstance(error, ReferentialViolationError)

    def test_sqlite_not_null(self):
        error = classify_database_error(
            _integrity("NOT NULL constraint failed: records.field_values"), "op"
        )
        assert isinstance(error, ConstraintViolationError)

    def test_sqlite_locked(self):
        error = classify_database_error(_operational("database is locked"), "op")
        assert isinstance(error, ConflictError)
        assert error.retryable

    def test_unknown_driver_error(self):
        error = classify_database_error(_operational("something odd"), "op")
        assert isinstance(error, UnexpectedError)
        assert not error.retryable


class TestOtherErrors:
    def test_stale_data_is_conflict(self):
        error = classify_database_error(StaleDataError("0 rows matched"), "update_entity")
        assert isinstance(error, ConflictError)
        assert error.retryable

    def test_invalidated_connection(self):
        error = classify_database_error(
            _operational("server closed the connection", connection_invalidated=True),
            "op",
        )
        assert isinstance(error, ConnectionFailureError)
        assert error.retryable

    def test_os_level_connection_error(self):
        error = classify_database_error(ConnectionRefusedError("refused"), "op")
        assert isinstance(error, ConnectionFailureError)

    def test_engine_errors_pass_through(self):
        original = NotFoundError("Record not found")
        assert classify_database_error(original, "op") is original

    def test_raw_details_are_not_exposed(self):
        error = classify_database_error(
            _integrity("UNIQUE constraint failed: entities.name secret-detail"), "op"
        )
        assert "secret-detail" not in error.message
        assert "entities" not in error.message
