"""
Oracle overrides.

Catalog lookups go through the ``user_*`` views (``all_*`` when a default
schema is configured), identity columns are emulated with a sequence and a
BEFORE INSERT trigger, and column changes use ``MODIFY``.
"""

from __future__ import annotations

import uuid

from ..introspection import SchemaIntrospector, build_column
from ..provider import TransformationProvider
from ..registry import dialect_override
from ..schema import Column, ForeignKeyConstraintType

ORACLE = "oracle"


def _owner_filter(introspector: SchemaIntrospector, schema: str | None) -> tuple[str, str]:
    """(view prefix, owner predicate) for a lookup."""
    schema = schema or introspector.default_schema
    if schema:
        return "all", f" AND lower(owner) = {introspector.literal(schema)}"
    return "user", ""


@dialect_override(ORACLE, SchemaIntrospector.table_exists)
def table_exists(introspector: SchemaIntrospector, table: str) -> bool:
    schema, table = introspector.split_name(table)
    prefix, owner = _owner_filter(introspector, schema)
    sql = (
        f"SELECT COUNT(table_name) FROM {prefix}_tables "
        f"WHERE lower(table_name) = {introspector.literal(table)}{owner}"
    )
    return introspector.count(sql) > 0


@dialect_override(ORACLE, SchemaIntrospector.column_exists)
def column_exists(introspector: SchemaIntrospector, table: str, column: str) -> bool:
    if not introspector.table_exists(table):
        return False
    schema, table = introspector.split_name(table)
    prefix, owner = _owner_filter(introspector, schema)
    sql = (
        f"SELECT COUNT(column_name) FROM {prefix}_tab_columns "
        f"WHERE lower(table_name) = {introspector.literal(table)} "
        f"AND lower(column_name) = {introspector.literal(column)}{owner}"
    )
    return introspector.count(sql) > 0


@dialect_override(ORACLE, SchemaIntrospector.constraint_exists)
def constraint_exists(introspector: SchemaIntrospector, table: str, name: str) -> bool:
    schema, table = introspector.split_name(table)
    prefix, owner = _owner_filter(introspector, schema)
    sql = (
        f"SELECT COUNT(constraint_name) FROM {prefix}_constraints "
        f"WHERE lower(constraint_name) = {introspector.literal(name)} "
        f"AND lower(table_name) = {introspector.literal(table)}{owner}"
    )
    return introspector.count(sql) > 0


@dialect_override(ORACLE, SchemaIntrospector.index_exists)
def index_exists(introspector: SchemaIntrospector, table: str, name: str) -> bool:
    schema, table = introspector.split_name(table)
    prefix, owner = _owner_filter(introspector, schema)
    sql = (
        f"SELECT COUNT(index_name) FROM {prefix}_indexes "
        f"WHERE lower(index_name) = {introspector.literal(name)} "
        f"AND lower(table_name) = {introspector.literal(table)}{owner}"
    )
    return introspector.count(sql) > 0


@dialect_override(ORACLE, SchemaIntrospector.sequence_exists)
def sequence_exists(introspector: SchemaIntrospector, name: str) -> bool:
    schema, name = introspector.split_name(name)
    schema = schema or introspector.default_schema
    if schema:
        sql = (
            "SELECT COUNT(sequence_name) FROM all_sequences "
            f"WHERE lower(sequence_name) = {introspector.literal(name)} "
            f"AND lower(sequence_owner) = {introspector.literal(schema)}"
        )
    else:
        sql = (
            "SELECT COUNT(sequence_name) FROM user_sequences "
            f"WHERE lower(sequence_name) = {introspector.literal(name)}"
        )
    return introspector.count(sql) > 0


@dialect_override(ORACLE, SchemaIntrospector.get_tables)
def get_tables(introspector: SchemaIntrospector) -> list[str]:
    if introspector.default_schema:
        sql = (
            "SELECT table_name FROM all_tables "
            f"WHERE lower(owner) = {introspector.literal(introspector.default_schema)} "
            "ORDER BY table_name"
        )
    else:
        sql = "SELECT table_name FROM user_tables ORDER BY table_name"
    return [row[0] for row in introspector.query(sql)]


@dialect_override(ORACLE, SchemaIntrospector.get_columns)
def get_columns(introspector: SchemaIntrospector, table: str) -> list[Column]:
    schema, table = introspector.split_name(table)
    prefix, owner = _owner_filter(introspector, schema)
    sql = (
        "SELECT column_name, data_type, data_length, data_precision, data_scale, nullable "
        f"FROM {prefix}_tab_columns WHERE lower(table_name) = {introspector.literal(table)}"
        f"{owner} ORDER BY column_id"
    )
    return [build_column(*row) for row in introspector.query(sql)]


@dialect_override(ORACLE, TransformationProvider.emulate_identity)
def emulate_identity(provider: TransformationProvider, table: str, column: Column) -> None:
    sequence = provider.sequence_name_for(table)
    trigger = provider.trigger_name_for(table)
    provider.execute_non_query(f"CREATE SEQUENCE {sequence}")
    # The trigger body must stay on one line for the driver
    provider.execute_non_query(
        f"CREATE OR REPLACE TRIGGER {trigger} BEFORE INSERT ON {provider.quote_table(table)} "
        f"FOR EACH ROW BEGIN SELECT {sequence}.NEXTVAL INTO "
        f":NEW.{provider.quote_column(column.name)} FROM DUAL; END;"
    )


@dialect_override(ORACLE, TransformationProvider.primary_key_name)
def primary_key_name(provider: TransformationProvider, table: str) -> str:
    return f"PK_{table.rpartition('.')[2][:27]}"


@dialect_override(ORACLE, TransformationProvider.referential_actions)
def referential_actions(
    provider: TransformationProvider,
    on_delete: ForeignKeyConstraintType,
    on_update: ForeignKeyConstraintType,
) -> str:
    # Oracle has no ON UPDATE clause and only two ON DELETE actions
    if on_delete in (ForeignKeyConstraintType.CASCADE, ForeignKeyConstraintType.SET_NULL):
        return f" ON DELETE {on_delete.value}"
    return ""


@dialect_override(ORACLE, TransformationProvider.modify_column)
def modify_column(provider: TransformationProvider, table: str, column_sql: str) -> None:
    if not table:
        raise ValueError("table is required")
    if not column_sql:
        raise ValueError("column_sql is required")
    provider.execute_non_query(f"ALTER TABLE {provider.quote_table(table)} MODIFY {column_sql}")


@dialect_override(ORACLE, TransformationProvider.set_not_null)
def set_not_null(provider: TransformationProvider, table: str, column: str) -> None:
    provider.guard_identifiers("When setting NOT NULL", table, column)
    provider.execute_non_query(
        f"ALTER TABLE {provider.quote_table(table)} MODIFY ({provider.quote_column(column)} NOT NULL)"
    )


@dialect_override(ORACLE, TransformationProvider.remove_column_default_value)
def remove_column_default_value(provider: TransformationProvider, table: str, column: str) -> None:
    provider.guard_identifiers("When removing a column default", table, column)
    provider.execute_non_query(
        f"ALTER TABLE {provider.quote_table(table)} MODIFY {provider.quote_column(column)} DEFAULT NULL"
    )


@dialect_override(ORACLE, TransformationProvider.encode)
def encode(provider: TransformationProvider, value: uuid.UUID) -> str:
    # Same byte order as bound GUID parameters
    return value.bytes_le.hex().upper()
