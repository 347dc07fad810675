"""Tests for bulk table operations and error classification."""
import pytest
from sqlalchemy import event, exc as sa_exc

from querybench.core.exceptions import (
    BackendCapacityError,
    BackendConnectionError,
    ConstraintViolationError,
    SeedError,
    classify_database_error,
)
from querybench.db.operations import (
    DEFAULT_MAX_BIND_PARAMETERS,
    batch_insert,
    clear_tables,
    count_rows,
    max_rows_per_statement,
)
from querybench.models import User, UserSettings


class TestBatchInsert:
    def test_inserts_in_chunks(self, backend):
        rows = [{"id": i, "name": f"User_{i}", "email": f"{i}@example.com"} for i in range(1, 11)]
        statements = []

        def count_statements(*_args):
            statements.append(1)

        event.listen(backend.engine, "before_cursor_execute", count_statements)
        try:
            with backend.session() as db:
                written = batch_insert(db, User.__table__, rows, chunk_size=4)
                insert_statements = len(statements)
                db.commit()
                total = count_rows(db, User.__table__)
        finally:
            event.remove(backend.engine, "before_cursor_execute", count_statements)

        assert written == 10
        assert total == 10
        assert insert_statements == 3

    def test_empty_rows(self, backend):
        with backend.session() as db:
            assert batch_insert(db, User.__table__, [], chunk_size=5) == 0

    def test_rejects_bad_chunk_size(self, backend):
        with backend.session() as db:
            with pytest.raises(ValueError):
                batch_insert(db, User.__table__, [{"id": 1, "name": "a", "email": "a"}], chunk_size=0)


class TestClearTables:
    def test_reports_deleted_counts(self, seeded_backend):
        with seeded_backend.session() as db:
            deleted = clear_tables(db, [UserSettings.__table__])
            db.commit()
            remaining = count_rows(db, UserSettings.__table__)

        assert deleted == {"user_settings": 20}
        assert remaining == 0


class TestLimits:
    def test_known_dialects(self):
        assert max_rows_per_statement("sqlite", 7) == 32766 // 7
        assert max_rows_per_statement("postgresql", 3) == 65535 // 3

    def test_unknown_dialect_is_conservative(self):
        assert max_rows_per_statement("mssql", 3) == DEFAULT_MAX_BIND_PARAMETERS // 3

    def test_column_count_must_be_positive(self):
        with pytest.raises(ValueError):
            max_rows_per_statement("sqlite", 0)


class TestClassifyDatabaseError:
    def test_integrity_error(self):
        error = sa_exc.IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: users.email"))
        result = classify_database_error(error, {"batch": 3})

        assert isinstance(result, ConstraintViolationError)
        assert result.context == {"batch": 3}
        assert result.original_error is error
        assert "batch=3" in str(result)

    def test_too_many_variables(self):
        error = sa_exc.OperationalError("INSERT", {}, Exception("too many SQL variables"))
        assert isinstance(classify_database_error(error), BackendCapacityError)

    def test_connection_error(self):
        error = sa_exc.OperationalError("SELECT 1", {}, Exception("could not connect to server"))
        assert isinstance(classify_database_error(error), BackendConnectionError)

    def test_other_errors(self):
        error = sa_exc.ProgrammingError("SELECT", {}, Exception("syntax error"))
        result = classify_database_error(error)

        assert type(result) is SeedError
