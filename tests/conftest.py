"""Test fixtures and utilities."""

import re
from contextlib import contextmanager
from pathlib import Path

import pytest

from dbmigrator import TransformationProvider, get_dialect
from dbmigrator.database import SqliteDatabase
from dbmigrator.exceptions import DatabaseError

_LITERAL = re.compile(r"= '([^']*)'")


class RecordingDatabase:
    """Fake database that records statements instead of executing them.

    Reads are answered by ``responder(sql)``. Statements containing
    ``fail_on`` raise DatabaseError.
    """

    dialect_name = "fake"

    def __init__(self, responder=None, fail_on=None):
        self.responder = responder or (lambda sql: None)
        self.fail_on = fail_on
        self.statements: list[str] = []
        self.params: list[tuple] = []
        self.queries: list[str] = []
        self.transactions = 0

    def execute_non_query(self, sql, params=()):
        if self.fail_on and self.fail_on in sql:
            raise DatabaseError(sql, params, RuntimeError("ORA-00955: name is already used"))
        self.statements.append(sql)
        self.params.append(tuple(params))
        return 1

    def execute_scalar(self, sql, params=()):
        self.queries.append(sql)
        return self.responder(sql)

    def execute_query(self, sql, params=()):
        self.queries.append(sql)
        result = self.responder(sql)
        return result if isinstance(result, list) else []

    @contextmanager
    def transaction(self):
        self.transactions += 1
        yield self

    def close(self):
        pass


class OracleCatalog:
    """Answers Oracle catalog queries from in-memory sets of names."""

    def __init__(self, tables=(), columns=(), sequences=(), constraints=(), indexes=(), column_rows=None):
        self.tables = {t.lower() for t in tables}
        self.columns = {(t.lower(), c.lower()) for t, c in columns}
        self.sequences = {s.lower() for s in sequences}
        self.constraints = {(t.lower(), n.lower()) for t, n in constraints}
        self.indexes = {(t.lower(), n.lower()) for t, n in indexes}
        # table -> [(column_name, data_type, data_length, data_precision, data_scale, nullable)]
        self.column_rows = {k.lower(): v for k, v in (column_rows or {}).items()}

    def __call__(self, sql):
        values = _LITERAL.findall(sql)
        if "_tab_columns" in sql and "COUNT" in sql:
            return int((values[0], values[1]) in self.columns)
        if "_tab_columns" in sql:
            return list(self.column_rows.get(values[0], []))
        if "_tables" in sql:
            return int(values[0] in self.tables)
        if "_sequences" in sql:
            return int(values[0] in self.sequences)
        if "_constraints" in sql:
            return int((values[1], values[0]) in self.constraints)
        if "_indexes" in sql:
            return int((values[1], values[0]) in self.indexes)
        return None


@pytest.fixture
def temp_db(tmp_path) -> Path:
    """Temporary database path for testing."""
    return tmp_path / "test_migrations.db"


@pytest.fixture
def sqlite_db(temp_db):
    """Open SQLite database, closed after the test."""
    database = SqliteDatabase(temp_db)
    yield database
    database.close()


@pytest.fixture
def provider(sqlite_db) -> TransformationProvider:
    """Transformation provider over a real SQLite database."""
    return TransformationProvider(sqlite_db, get_dialect("sqlite"))


@pytest.fixture
def recording_oracle():
    """Factory for an Oracle provider over a RecordingDatabase."""

    def make(catalog=None, fail_on=None, **kwargs):
        database = RecordingDatabase(catalog or OracleCatalog(), fail_on=fail_on)
        return TransformationProvider(database, get_dialect("oracle"), **kwargs), database

    return make
