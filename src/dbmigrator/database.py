"""
Database connectivity.

A thin wrapper around a DB-API 2.0 connection exposing the three primitives
the migration core consumes (non-query, scalar, rows) plus a re-entrant
transaction boundary. Driver errors are re-raised as ``DatabaseError`` with
the failing statement attached.
"""

from __future__ import annotations

import importlib
import logging
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .dialects import resolve_dialect_name
from .exceptions import ConfigValidationError, DatabaseError

if TYPE_CHECKING:
    from .config import DatabaseConfig

logger = logging.getLogger(__name__)


class Database:
    """DB-API 2.0 connection wrapper."""

    def __init__(
        self,
        connection: Any,
        error_class: type[BaseException] = Exception,
        dialect_name: str = "generic",
    ) -> None:
        """
        Initialize the wrapper.

        Args:
            connection: Open DB-API connection
            error_class: The driver's base ``Error`` class
            dialect_name: Name of the dialect the connection speaks
        """
        self.connection = connection
        self.error_class = error_class
        self.dialect_name = dialect_name
        self._transaction_depth = 0

    @contextmanager
    def _cursor(self, sql: str, params: Sequence[Any]) -> Iterator[Any]:
        cursor = self.connection.cursor()
        try:
            try:
                if params:
                    cursor.execute(sql, tuple(params))
                else:
                    cursor.execute(sql)
            except self.error_class as e:
                raise DatabaseError(sql, params, e) from e
            yield cursor
        finally:
            cursor.close()

    def execute_non_query(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Execute a statement, returning the affected row count."""
        with self._cursor(sql, params) as cursor:
            return cursor.rowcount

    def execute_scalar(self, sql: str, params: Sequence[Any] = ()) -> Any:
        """Execute a query, returning the first column of the first row (or None)."""
        with self._cursor(sql, params) as cursor:
            row = cursor.fetchone()
            return row[0] if row else None

    def execute_query(self, sql: str, params: Sequence[Any] = ()) -> list[tuple]:
        """Execute a query, returning all rows as tuples."""
        with self._cursor(sql, params) as cursor:
            return [tuple(row) for row in cursor.fetchall()]

    @property
    def in_transaction(self) -> bool:
        return self._transaction_depth > 0

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        """Context manager for a unit of work.

        Commits on success and rolls back on exception. Nested blocks join
        the outermost one.
        """
        if self._transaction_depth:
            self._transaction_depth += 1
            try:
                yield self
            finally:
                self._transaction_depth -= 1
            return

        self._begin()
        self._transaction_depth = 1
        try:
            yield self
        except BaseException:
            self._transaction_depth = 0
            self._rollback()
            raise
        self._transaction_depth = 0
        self._commit()

    def _begin(self) -> None:
        pass

    def _commit(self) -> None:
        try:
            self.connection.commit()
        except self.error_class as e:
            raise DatabaseError("COMMIT", (), e) from e

    def _rollback(self) -> None:
        try:
            self.connection.rollback()
        except self.error_class:
            logger.exception("Rollback failed")

    def close(self) -> None:
        self.connection.close()


class SqliteDatabase(Database):
    """SQLite connection in autocommit mode with explicit transactions.

    The sqlite3 module's implicit transaction handling would otherwise commit
    DDL outside the migration's unit of work.
    """

    def __init__(self, path: Path | str) -> None:
        if str(path) != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        connection = sqlite3.connect(str(path), isolation_level=None)
        connection.execute("PRAGMA foreign_keys = ON")
        super().__init__(connection, sqlite3.Error, "sqlite")

    def _begin(self) -> None:
        self.execute_non_query("BEGIN")

    def _commit(self) -> None:
        self.execute_non_query("COMMIT")

    def _rollback(self) -> None:
        try:
            self.execute_non_query("ROLLBACK")
        except DatabaseError:
            logger.exception("Rollback failed")


def connect(config: DatabaseConfig) -> Database:
    """
    Open a database connection from configuration.

    SQLite uses the standard library driver. Every other dialect names a
    DB-API module (e.g. ``oracledb``, ``psycopg``, ``pymysql``) whose
    ``connect()`` receives ``connect_args``.

    Raises:
        ConfigValidationError: If the connection cannot be configured
    """
    dialect = resolve_dialect_name(config.dialect)
    if dialect == "sqlite":
        if not config.path:
            raise ConfigValidationError("database.path is required for sqlite")
        return SqliteDatabase(config.path)

    if not config.driver:
        raise ConfigValidationError(
            f"database.driver is required for dialect {dialect!r}"
        )
    try:
        driver = importlib.import_module(config.driver)
    except ImportError as e:
        raise ConfigValidationError(f"Database driver {config.driver!r} is not installed") from e

    logger.info(f"Connecting with driver {config.driver}")
    try:
        connection = driver.connect(**config.connect_args)
    except driver.Error as e:
        raise DatabaseError(f"connect via {config.driver}", (), e) from e
    return Database(connection, driver.Error, dialect)
