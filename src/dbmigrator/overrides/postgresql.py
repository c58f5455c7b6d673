"""PostgreSQL overrides."""

from __future__ import annotations

from ..introspection import SchemaIntrospector
from ..provider import TransformationProvider
from ..registry import dialect_override
from ..schema import Column, ColumnProperty

POSTGRESQL = "postgresql"


@dialect_override(POSTGRESQL, SchemaIntrospector.index_exists)
def index_exists(introspector: SchemaIntrospector, table: str, name: str) -> bool:
    schema, table = introspector.split_name(table)
    sql = (
        "SELECT COUNT(*) FROM pg_indexes "
        f"WHERE lower(tablename) = {introspector.literal(table)} "
        f"AND lower(indexname) = {introspector.literal(name)}"
        f"{introspector.schema_filter('schemaname', schema)}"
    )
    return introspector.count(sql) > 0


@dialect_override(POSTGRESQL, TransformationProvider.change_column)
def change_column(provider: TransformationProvider, table: str, column: Column) -> None:
    """Change type, nullability and default with separate ALTER COLUMN clauses."""
    provider.guard_identifiers("When changing a column", table, column.name)
    if not provider.column_exists(table, column.name):
        provider.logger.warning(f"Column {table}.{column.name} does not exist")
        return

    prefix = f"ALTER TABLE {provider.quote_table(table)} ALTER COLUMN {provider.quote_column(column.name)}"
    type_sql = provider.dialect.type_sql(column.type, column.size, column.precision, column.scale)
    provider.execute_non_query(
        f"{prefix} TYPE {type_sql} USING {provider.quote_column(column.name)}::{type_sql}"
    )
    if column.is_not_null:
        provider.execute_non_query(f"{prefix} SET NOT NULL")
    elif ColumnProperty.NULL in column.properties:
        provider.execute_non_query(f"{prefix} DROP NOT NULL")
    if column.default is not None:
        provider.execute_non_query(f"{prefix} SET DEFAULT {provider.default_sql(column.default)}")
