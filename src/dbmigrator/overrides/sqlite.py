"""
SQLite overrides.

Catalog lookups use ``sqlite_master`` and ``PRAGMA table_info``. SQLite cannot
alter a column in place, add constraints to an existing table or drop a
column default, so ``change_column`` rebuilds the table and the constraint
operations either emulate (unique via index) or refuse.
"""

from __future__ import annotations

from ..exceptions import NameConflictError, UnsupportedOperationError
from ..introspection import SchemaIntrospector, build_column, split_native_type
from ..provider import TransformationProvider
from ..registry import dialect_override
from ..schema import Column

SQLITE = "sqlite"


def _master_count(introspector: SchemaIntrospector, kind: str, name: str, table: str | None = None) -> int:
    sql = (
        "SELECT COUNT(*) FROM sqlite_master "
        f"WHERE type = '{kind}' AND lower(name) = {introspector.literal(name)}"
    )
    if table is not None:
        sql += f" AND lower(tbl_name) = {introspector.literal(table)}"
    return introspector.count(sql)


def _table_info(introspector: SchemaIntrospector, table: str) -> list[tuple]:
    # (cid, name, type, notnull, dflt_value, pk)
    return introspector.query(f"PRAGMA table_info({introspector.dialect.quote_table_name(table)})")


@dialect_override(SQLITE, SchemaIntrospector.table_exists)
def table_exists(introspector: SchemaIntrospector, table: str) -> bool:
    return _master_count(introspector, "table", introspector.split_name(table)[1]) > 0


@dialect_override(SQLITE, SchemaIntrospector.column_exists)
def column_exists(introspector: SchemaIntrospector, table: str, column: str) -> bool:
    if not introspector.table_exists(table):
        return False
    wanted = column.lower()
    return any(row[1].lower() == wanted for row in _table_info(introspector, table))


@dialect_override(SQLITE, SchemaIntrospector.constraint_exists)
def constraint_exists(introspector: SchemaIntrospector, table: str, name: str) -> bool:
    # Unique constraints added after creation are unique indexes
    return introspector.index_exists(table, name)


@dialect_override(SQLITE, SchemaIntrospector.index_exists)
def index_exists(introspector: SchemaIntrospector, table: str, name: str) -> bool:
    return _master_count(introspector, "index", name, introspector.split_name(table)[1]) > 0


@dialect_override(SQLITE, SchemaIntrospector.get_tables)
def get_tables(introspector: SchemaIntrospector) -> list[str]:
    rows = introspector.query(
        "SELECT name FROM sqlite_master WHERE type = 'table' "
        "AND name NOT LIKE 'sqlite_%' ORDER BY name"
    )
    return [row[0] for row in rows]


@dialect_override(SQLITE, SchemaIntrospector.get_columns)
def get_columns(introspector: SchemaIntrospector, table: str) -> list[Column]:
    columns = []
    for _cid, name, declared, notnull, _default, _pk in _table_info(introspector, table):
        type_name, precision, scale = split_native_type(declared)
        columns.append(
            build_column(name, type_name, precision, precision, scale, "N" if notnull else "Y")
        )
    return columns


@dialect_override(SQLITE, TransformationProvider.change_column)
def change_column(provider: TransformationProvider, table: str, column: Column) -> None:
    """Rebuild ``table`` with the changed column definition swapped in."""
    provider.guard_identifiers("When changing a column", table, f"{table}_rebuild", column.name)
    if not provider.column_exists(table, column.name):
        provider.logger.warning(f"Column {table}.{column.name} does not exist")
        return

    rebuild = f"{table}_rebuild"
    if provider.table_exists(rebuild):
        raise NameConflictError(
            f'Can not change column "{column.name}": the table "{rebuild}" already exists'
        )

    rows = provider.execute_query(f"PRAGMA table_info({provider.quote_table(table)})")
    wanted = column.name.lower()
    definitions = []
    for _cid, name, declared, notnull, default, _pk in rows:
        if name.lower() == wanted:
            definitions.append(provider.column_sql(column, inline_primary_key=False))
            continue
        parts = [provider.quote_column(name)]
        if declared:
            parts.append(declared)
        if default is not None:
            parts.append(f"DEFAULT {default}")
        if notnull:
            parts.append("NOT NULL")
        definitions.append(" ".join(parts))

    primary_keys = [row[1] for row in sorted(rows, key=lambda row: row[5]) if row[5]]
    if primary_keys:
        definitions.append(f"PRIMARY KEY ({provider.quote_columns(primary_keys)})")

    names = provider.quote_columns([row[1] for row in rows])
    quoted_table = provider.quote_table(table)
    quoted_rebuild = provider.quote_table(rebuild)
    provider.execute_non_query(f"CREATE TABLE {quoted_rebuild} ({', '.join(definitions)})")
    provider.execute_non_query(
        f"INSERT INTO {quoted_rebuild} ({names}) SELECT {names} FROM {quoted_table}"
    )
    provider.execute_non_query(f"DROP TABLE {quoted_table}")
    provider.execute_non_query(
        f"ALTER TABLE {quoted_rebuild} RENAME TO {provider.quote_column(table.rpartition('.')[2])}"
    )


@dialect_override(SQLITE, TransformationProvider.modify_column)
def modify_column(provider: TransformationProvider, table: str, column_sql: str) -> None:
    raise UnsupportedOperationError("SQLite cannot redefine a column in place; use change_column")


@dialect_override(SQLITE, TransformationProvider.set_not_null)
def set_not_null(provider: TransformationProvider, table: str, column: str) -> None:
    raise UnsupportedOperationError("SQLite cannot add NOT NULL to an existing column")


@dialect_override(SQLITE, TransformationProvider.remove_column_default_value)
def remove_column_default_value(provider: TransformationProvider, table: str, column: str) -> None:
    raise UnsupportedOperationError("SQLite cannot drop a column default")


@dialect_override(SQLITE, TransformationProvider.add_foreign_key)
def add_foreign_key(provider: TransformationProvider, name: str, *args, **kwargs) -> None:
    raise UnsupportedOperationError(
        f"SQLite cannot add foreign key {name} to an existing table; declare it in add_table"
    )


@dialect_override(SQLITE, TransformationProvider.add_primary_key)
def add_primary_key(provider: TransformationProvider, name: str, table: str, *columns: str) -> None:
    raise UnsupportedOperationError(
        f"SQLite cannot add primary key {name} to an existing table; declare it in add_table"
    )


@dialect_override(SQLITE, TransformationProvider.add_unique_constraint)
def add_unique_constraint(provider: TransformationProvider, name: str, table: str, *columns: str) -> None:
    provider.add_index(name, table, *columns, unique=True)


@dialect_override(SQLITE, TransformationProvider.remove_constraint)
def remove_constraint(provider: TransformationProvider, table: str, name: str) -> None:
    provider.guard_identifiers("When removing a constraint", table, name)
    if provider.index_exists(table, name):
        provider.remove_index(table, name)
        return
    provider.logger.warning(f"Constraint {name} does not exist on table {table}")
