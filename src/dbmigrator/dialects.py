"""
Dialect quoting and naming rules.

Pure, per-engine rules: identifier quoting, maximum identifier length,
reserved words, native type names, bind placeholders and the capability
flags the provider switches on. No I/O happens here.
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .exceptions import ConfigValidationError
from .schema import ColumnType

_PLAIN_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_$#]*$")

DEFAULT_STRING_SIZE = 255
DEFAULT_DECIMAL_PRECISION = 19
DEFAULT_DECIMAL_SCALE = 5

SQL_RESERVED_WORDS = frozenset(
    """
    ADD ALL ALTER AND ANY AS ASC BETWEEN BY CASE CHECK COLUMN CONSTRAINT CREATE
    CROSS CURRENT DEFAULT DELETE DESC DISTINCT DROP ELSE END EXISTS FOREIGN FROM
    FULL GRANT GROUP HAVING IN INDEX INNER INSERT INTERSECT INTO IS JOIN KEY LEFT
    LIKE NOT NULL ON OR ORDER OUTER PRIMARY REFERENCES RIGHT SELECT SET TABLE
    THEN TO UNION UNIQUE UPDATE USER VALUES VIEW WHEN WHERE WITH
    """.split()
)

ORACLE_RESERVED_WORDS = SQL_RESERVED_WORDS | frozenset(
    """
    ACCESS AUDIT CLUSTER COMMENT COMPRESS CONNECT DATE DECIMAL EXCLUSIVE FILE
    FLOAT IDENTIFIED IMMEDIATE INCREMENT INITIAL INTEGER LEVEL LOCK LONG
    MAXEXTENTS MINUS MLSLABEL MODE MODIFY NOAUDIT NOCOMPRESS NOWAIT NUMBER OF
    OFFLINE ONLINE OPTION PCTFREE PRIOR PRIVILEGES PUBLIC RAW RENAME RESOURCE
    REVOKE ROW ROWID ROWNUM ROWS SESSION SHARE SIZE SMALLINT START SUCCESSFUL
    SYNONYM SYSDATE TRIGGER UID VALIDATE VARCHAR VARCHAR2 WHENEVER
    """.split()
)

POSTGRESQL_RESERVED_WORDS = SQL_RESERVED_WORDS | frozenset(
    """
    ANALYSE ANALYZE ARRAY ASYMMETRIC BOTH CAST COLLATE CURRENT_DATE CURRENT_USER
    DEFERRABLE DO FALSE FETCH FOR INITIALLY LATERAL LEADING LIMIT LOCALTIME
    OFFSET ONLY PLACING RETURNING SESSION_USER SOME SYMMETRIC TRAILING TRUE
    USING VARIADIC WINDOW
    """.split()
)

MYSQL_RESERVED_WORDS = SQL_RESERVED_WORDS | frozenset(
    """
    ACCESSIBLE CHANGE DATABASE DATABASES DUAL EXPLAIN FULLTEXT INTERVAL KEYS
    KILL LIMIT LOCK LONG MATCH MOD OPTIMIZE RANGE READ REGEXP RENAME REPLACE
    REQUIRE SCHEMA SHOW SPATIAL STRAIGHT_JOIN TRIGGER UNLOCK UNSIGNED USAGE USE
    ZEROFILL
    """.split()
)

SQLITE_RESERVED_WORDS = SQL_RESERVED_WORDS | frozenset(
    """
    ABORT ACTION AUTOINCREMENT CONFLICT GLOB IF INDEXED ISNULL NOTNULL OFFSET
    PRAGMA RAISE REGEXP REINDEX RENAME REPLACE ROW TEMP VACUUM VIRTUAL
    """.split()
)


@dataclass(frozen=True)
class Dialect:
    """Naming rules, type names and capabilities of one database engine."""

    name: str
    max_identifier_length: int
    type_names: Mapping[ColumnType, str]
    reserved_words: frozenset[str] = SQL_RESERVED_WORDS
    quote_open: str = '"'
    quote_close: str = '"'
    paramstyle: str = "qmark"
    # Inline identity clause, replaces "PRIMARY KEY" for identity columns
    identity_clause: str | None = None
    transactional_ddl: bool = False
    # Whether a string column's type can be altered in place with its data and
    # nullability intact
    in_place_string_alter: bool = True
    # Whether re-asserting an unchanged NULL/NOT NULL clause is an error
    rejects_redundant_nullability: bool = False
    native_boolean: bool = True
    native_uuid: bool = False
    supports_sequences: bool = False
    current_schema_sql: str | None = None
    aliases: tuple[str, ...] = field(default=(), compare=False)

    @property
    def native_identity(self) -> bool:
        return self.identity_clause is not None

    def requires_quoting(self, name: str) -> bool:
        """Check if a bare identifier must be quoted (reserved, mixed case or irregular)."""
        if name.upper() in self.reserved_words:
            return True
        if not _PLAIN_IDENTIFIER.match(name):
            return True
        return name != name.lower() and name != name.upper()

    def quote_identifier(self, name: str) -> str:
        """Quote an identifier only when required."""
        if not name:
            raise ValueError("Identifier must not be empty")
        if name.startswith(self.quote_open) and name.endswith(self.quote_close) and len(name) > 1:
            return name
        if not self.requires_quoting(name):
            return name
        escaped = name.replace(self.quote_close, self.quote_close * 2)
        return f"{self.quote_open}{escaped}{self.quote_close}"

    def quote_table_name(self, name: str) -> str:
        """Quote a possibly schema-qualified table name part by part."""
        if not name:
            raise ValueError("Table name must not be empty")
        return ".".join(self.quote_identifier(part) for part in name.split("."))

    def string_literal(self, value: Any) -> str:
        """Render a single-quoted SQL string literal."""
        return "'" + str(value).replace("'", "''") + "'"

    def placeholder(self, index: int) -> str:
        """Bind placeholder for the zero-based parameter index."""
        if self.paramstyle == "qmark":
            return "?"
        if self.paramstyle in ("format", "pyformat"):
            return "%s"
        if self.paramstyle == "named":
            return f":p{index}"
        if self.paramstyle == "numeric":
            return f":{index + 1}"
        raise ValueError(f"Unsupported paramstyle: {self.paramstyle}")

    def type_sql(
        self,
        column_type: ColumnType,
        size: int | None = None,
        precision: int | None = None,
        scale: int | None = None,
    ) -> str:
        """Render the native type name for a semantic type."""
        try:
            template = self.type_names[column_type]
        except KeyError:
            raise ValueError(f"Dialect {self.name} has no type for {column_type.value}") from None
        return template.format(
            size=size or DEFAULT_STRING_SIZE,
            precision=precision or DEFAULT_DECIMAL_PRECISION,
            scale=DEFAULT_DECIMAL_SCALE if scale is None else scale,
        )


GENERIC = Dialect(
    name="generic",
    max_identifier_length=128,
    type_names={
        ColumnType.ANSI_STRING: "VARCHAR({size})",
        ColumnType.STRING: "NVARCHAR({size})",
        ColumnType.TEXT: "TEXT",
        ColumnType.INT16: "SMALLINT",
        ColumnType.INT32: "INTEGER",
        ColumnType.INT64: "BIGINT",
        ColumnType.DECIMAL: "DECIMAL({precision},{scale})",
        ColumnType.DOUBLE: "DOUBLE PRECISION",
        ColumnType.BOOLEAN: "BOOLEAN",
        ColumnType.DATE: "DATE",
        ColumnType.DATETIME: "TIMESTAMP",
        ColumnType.GUID: "CHAR(36)",
        ColumnType.BINARY: "BLOB",
    },
    identity_clause="GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY",
)

SQLITE = Dialect(
    name="sqlite",
    aliases=("sqlite3",),
    max_identifier_length=1024,
    reserved_words=SQLITE_RESERVED_WORDS,
    type_names={
        ColumnType.ANSI_STRING: "VARCHAR({size})",
        ColumnType.STRING: "VARCHAR({size})",
        ColumnType.TEXT: "TEXT",
        ColumnType.INT16: "INTEGER",
        ColumnType.INT32: "INTEGER",
        ColumnType.INT64: "INTEGER",
        ColumnType.DECIMAL: "NUMERIC({precision},{scale})",
        ColumnType.DOUBLE: "REAL",
        ColumnType.BOOLEAN: "BOOLEAN",
        ColumnType.DATE: "DATE",
        ColumnType.DATETIME: "DATETIME",
        ColumnType.GUID: "BLOB",
        ColumnType.BINARY: "BLOB",
    },
    identity_clause="PRIMARY KEY AUTOINCREMENT",
    transactional_ddl=True,
    native_boolean=False,
)

POSTGRESQL = Dialect(
    name="postgresql",
    aliases=("postgres", "pg"),
    max_identifier_length=63,
    reserved_words=POSTGRESQL_RESERVED_WORDS,
    paramstyle="format",
    type_names={
        ColumnType.ANSI_STRING: "VARCHAR({size})",
        ColumnType.STRING: "VARCHAR({size})",
        ColumnType.TEXT: "TEXT",
        ColumnType.INT16: "SMALLINT",
        ColumnType.INT32: "INTEGER",
        ColumnType.INT64: "BIGINT",
        ColumnType.DECIMAL: "NUMERIC({precision},{scale})",
        ColumnType.DOUBLE: "DOUBLE PRECISION",
        ColumnType.BOOLEAN: "BOOLEAN",
        ColumnType.DATE: "DATE",
        ColumnType.DATETIME: "TIMESTAMP",
        ColumnType.GUID: "UUID",
        ColumnType.BINARY: "BYTEA",
    },
    identity_clause="GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY",
    transactional_ddl=True,
    native_uuid=True,
    supports_sequences=True,
    current_schema_sql="current_schema()",
)

MYSQL = Dialect(
    name="mysql",
    aliases=("mariadb",),
    max_identifier_length=64,
    reserved_words=MYSQL_RESERVED_WORDS,
    quote_open="`",
    quote_close="`",
    paramstyle="format",
    type_names={
        ColumnType.ANSI_STRING: "VARCHAR({size})",
        ColumnType.STRING: "VARCHAR({size})",
        ColumnType.TEXT: "LONGTEXT",
        ColumnType.INT16: "SMALLINT",
        ColumnType.INT32: "INT",
        ColumnType.INT64: "BIGINT",
        ColumnType.DECIMAL: "DECIMAL({precision},{scale})",
        ColumnType.DOUBLE: "DOUBLE",
        ColumnType.BOOLEAN: "TINYINT(1)",
        ColumnType.DATE: "DATE",
        ColumnType.DATETIME: "DATETIME",
        ColumnType.GUID: "BINARY(16)",
        ColumnType.BINARY: "LONGBLOB",
    },
    identity_clause="AUTO_INCREMENT PRIMARY KEY",
    native_boolean=False,
    current_schema_sql="database()",
)

ORACLE = Dialect(
    name="oracle",
    max_identifier_length=30,
    reserved_words=ORACLE_RESERVED_WORDS,
    paramstyle="named",
    type_names={
        ColumnType.ANSI_STRING: "VARCHAR2({size})",
        ColumnType.STRING: "NVARCHAR2({size})",
        ColumnType.TEXT: "NCLOB",
        ColumnType.INT16: "NUMBER(5,0)",
        ColumnType.INT32: "NUMBER(10,0)",
        ColumnType.INT64: "NUMBER(19,0)",
        ColumnType.DECIMAL: "NUMBER({precision},{scale})",
        ColumnType.DOUBLE: "BINARY_DOUBLE",
        ColumnType.BOOLEAN: "NUMBER(1,0)",
        ColumnType.DATE: "DATE",
        ColumnType.DATETIME: "TIMESTAMP(4)",
        ColumnType.GUID: "RAW(16)",
        ColumnType.BINARY: "BLOB",
    },
    in_place_string_alter=False,
    rejects_redundant_nullability=True,
    native_boolean=False,
    supports_sequences=True,
)

DIALECTS: dict[str, Dialect] = {d.name: d for d in (GENERIC, SQLITE, POSTGRESQL, MYSQL, ORACLE)}


def resolve_dialect_name(name: str | None) -> str:
    """Normalize a dialect name or alias ("postgres" -> "postgresql")."""
    key = (name or "").strip().lower()
    if key in DIALECTS:
        return key
    return next((d.name for d in DIALECTS.values() if key in d.aliases), key)


def get_dialect(name: str, max_identifier_length: int | None = None) -> Dialect:
    """Look up a dialect by name or alias.

    Args:
        name: Dialect name, e.g. "oracle" or "postgres"
        max_identifier_length: Optional override of the dialect's identifier limit

    Raises:
        ConfigValidationError: If the dialect is unknown
    """
    dialect = DIALECTS.get(resolve_dialect_name(name))
    if dialect is None:
        raise ConfigValidationError(
            f"Unknown dialect {name!r} (known: {', '.join(sorted(DIALECTS))})"
        )
    if max_identifier_length is not None:
        dialect = dataclasses.replace(dialect, max_identifier_length=max_identifier_length)
    return dialect
