"""
Schema introspection.

Read-only catalog queries answering "does X exist" and "what columns does
table X have". The generic implementation uses ``information_schema``;
dialects with their own catalogs override individual operations (see
``dbmigrator.overrides``). Nothing is cached: every call re-queries.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from .registry import dialect_specific
from .schema import Column, ColumnProperty, ColumnType

if TYPE_CHECKING:
    from .database import Database
    from .dialects import Dialect


_INTEGRAL_TYPES = {"integer", "int", "bigint", "smallint", "tinyint", "mediumint"}
_EXACT_NUMERIC_TYPES = {"number", "numeric", "decimal"}
_FLOAT_TYPES = {"float", "real", "double", "double precision", "binary_double", "binary_float"}
_NATIVE_TYPE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_ ]*?)\s*(?:\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\))?\s*$")


def parse_boolean(value: Any) -> bool:
    """Parse an engine-specific boolean encoding (Y/N, YES/NO, 0/1)."""
    if isinstance(value, str):
        normalized = value.strip().upper()
        if normalized in ("Y", "YES", "TRUE", "1"):
            return True
        if normalized in ("N", "NO", "FALSE", "0", ""):
            return False
        raise ValueError(f"Cannot interpret {value!r} as a boolean")
    return bool(value)


def _to_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def map_native_type(data_type: str, precision: Any = None, scale: Any = None) -> ColumnType:
    """
    Map an engine-native type to a semantic column type.

    Integral numerics (no fractional scale) become INT16 when precision <= 10,
    INT64 otherwise; numerics with a nonzero scale become DECIMAL; temporal
    types become DATETIME; anything unrecognized is a STRING.
    """
    base = data_type.strip().lower()
    precision = _to_int(precision)
    scale = _to_int(scale)

    if base in _INTEGRAL_TYPES or base in _EXACT_NUMERIC_TYPES:
        if scale:
            return ColumnType.DECIMAL
        if base in _EXACT_NUMERIC_TYPES and precision is None and scale is None:
            return ColumnType.DECIMAL
        return ColumnType.INT16 if precision is not None and precision <= 10 else ColumnType.INT64
    if base in _FLOAT_TYPES:
        return ColumnType.DOUBLE
    if base in ("date", "time") or base.startswith(("timestamp", "datetime")):
        return ColumnType.DATETIME
    return ColumnType.STRING


def split_native_type(declared: str) -> tuple[str, int | None, int | None]:
    """Split a declared type like ``NUMERIC(10,2)`` into (name, precision, scale)."""
    match = _NATIVE_TYPE.match(declared or "")
    if not match:
        return (declared or "").strip(), None, None
    name, first, second = match.groups()
    return name, _to_int(first), _to_int(second)


def build_column(
    name: str,
    data_type: str,
    length: Any,
    precision: Any,
    scale: Any,
    nullable: Any,
) -> Column:
    """Build a Column descriptor from one catalog row."""
    column_type = map_native_type(data_type, precision, scale)
    properties = ColumnProperty.NULL if parse_boolean(nullable) else ColumnProperty.NOT_NULL
    return Column(
        name=name,
        type=column_type,
        size=_to_int(length) if column_type == ColumnType.STRING else None,
        precision=_to_int(precision) if column_type == ColumnType.DECIMAL else None,
        scale=_to_int(scale) if column_type == ColumnType.DECIMAL else None,
        properties=properties,
    )


class SchemaIntrospector:
    """
    Catalog queries for one database.

    Args:
        database: Connectivity collaborator
        dialect: Dialect rules (used for literals and dispatch)
        default_schema: Optional schema all lookups are scoped to
        logger: Logging sink; defaults to this module's logger
    """

    def __init__(
        self,
        database: Database,
        dialect: Dialect,
        default_schema: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.database = database
        self.dialect = dialect
        self.default_schema = default_schema
        self.logger = logger or logging.getLogger(__name__)

    def literal(self, value: str) -> str:
        """Lower-cased, quoted string literal for catalog comparisons."""
        return self.dialect.string_literal(value.lower())

    def count(self, sql: str) -> int:
        """Run a COUNT query, logging it first."""
        self.logger.debug(sql)
        return int(self.database.execute_scalar(sql) or 0)

    def query(self, sql: str) -> list[tuple]:
        self.logger.debug(sql)
        return self.database.execute_query(sql)

    def split_name(self, table: str) -> tuple[str | None, str]:
        """Split ``schema.table`` into (schema or None, table)."""
        schema, _, bare = table.rpartition(".")
        return schema or None, bare

    def schema_filter(self, column: str = "table_schema", schema: str | None = None) -> str:
        """SQL predicate scoping a catalog query to the given, default or current schema."""
        schema = schema or self.default_schema
        if schema:
            return f" AND lower({column}) = {self.literal(schema)}"
        if self.dialect.current_schema_sql:
            return f" AND {column} = {self.dialect.current_schema_sql}"
        return ""

    @dialect_specific
    def table_exists(self, table: str) -> bool:
        schema, table = self.split_name(table)
        sql = (
            "SELECT COUNT(*) FROM information_schema.tables "
            f"WHERE lower(table_name) = {self.literal(table)}{self.schema_filter(schema=schema)}"
        )
        return self.count(sql) > 0

    @dialect_specific
    def column_exists(self, table: str, column: str) -> bool:
        if not self.table_exists(table):
            return False
        schema, table = self.split_name(table)
        sql = (
            "SELECT COUNT(*) FROM information_schema.columns "
            f"WHERE lower(table_name) = {self.literal(table)} "
            f"AND lower(column_name) = {self.literal(column)}{self.schema_filter(schema=schema)}"
        )
        return self.count(sql) > 0

    @dialect_specific
    def constraint_exists(self, table: str, name: str) -> bool:
        if not self.table_exists(table):
            return False
        schema, table = self.split_name(table)
        sql = (
            "SELECT COUNT(*) FROM information_schema.table_constraints "
            f"WHERE lower(table_name) = {self.literal(table)} "
            f"AND lower(constraint_name) = {self.literal(name)}"
            f"{self.schema_filter('constraint_schema', schema)}"
        )
        return self.count(sql) > 0

    @dialect_specific
    def index_exists(self, table: str, name: str) -> bool:
        if not self.table_exists(table):
            return False
        schema, table = self.split_name(table)
        sql = (
            "SELECT COUNT(*) FROM information_schema.statistics "
            f"WHERE lower(table_name) = {self.literal(table)} "
            f"AND lower(index_name) = {self.literal(name)}{self.schema_filter(schema=schema)}"
        )
        return self.count(sql) > 0

    @dialect_specific
    def sequence_exists(self, name: str) -> bool:
        if not self.dialect.supports_sequences:
            return False
        schema, name = self.split_name(name)
        sql = (
            "SELECT COUNT(*) FROM information_schema.sequences "
            f"WHERE lower(sequence_name) = {self.literal(name)}"
            f"{self.schema_filter('sequence_schema', schema)}"
        )
        return self.count(sql) > 0

    @dialect_specific
    def get_tables(self) -> list[str]:
        sql = (
            "SELECT table_name FROM information_schema.tables "
            f"WHERE table_type = 'BASE TABLE'{self.schema_filter()} ORDER BY table_name"
        )
        return [row[0] for row in self.query(sql)]

    @dialect_specific
    def get_columns(self, table: str) -> list[Column]:
        schema, table = self.split_name(table)
        sql = (
            "SELECT column_name, data_type, character_maximum_length, numeric_precision, "
            "numeric_scale, is_nullable FROM information_schema.columns "
            f"WHERE lower(table_name) = {self.literal(table)}{self.schema_filter(schema=schema)} "
            "ORDER BY ordinal_position"
        )
        return [build_column(*row) for row in self.query(sql)]

    def get_column(self, table: str, name: str) -> Column | None:
        """Find a column of ``table`` by case-insensitive name."""
        wanted = name.lower()
        return next((c for c in self.get_columns(table) if c.name.lower() == wanted), None)
