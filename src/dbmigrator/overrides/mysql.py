"""MySQL / MariaDB overrides."""

from __future__ import annotations

from ..provider import TransformationProvider
from ..registry import dialect_override

MYSQL = "mysql"


@dialect_override(MYSQL, TransformationProvider.modify_column)
def modify_column(provider: TransformationProvider, table: str, column_sql: str) -> None:
    if not table:
        raise ValueError("table is required")
    if not column_sql:
        raise ValueError("column_sql is required")
    provider.execute_non_query(f"ALTER TABLE {provider.quote_table(table)} MODIFY COLUMN {column_sql}")


@dialect_override(MYSQL, TransformationProvider.set_not_null)
def set_not_null(provider: TransformationProvider, table: str, column: str) -> None:
    provider.guard_identifiers("When setting NOT NULL", table, column)
    existing = provider.get_column(table, column)
    if existing is None:
        provider.logger.warning(f"Column {table}.{column} does not exist")
        return
    type_sql = provider.dialect.type_sql(existing.type, existing.size, existing.precision, existing.scale)
    provider.modify_column(table, f"{provider.quote_column(column)} {type_sql} NOT NULL")


@dialect_override(MYSQL, TransformationProvider.remove_constraint)
def remove_constraint(provider: TransformationProvider, table: str, name: str) -> None:
    provider.guard_identifiers("When removing a constraint", table, name)
    rows = provider.execute_query(
        "SELECT constraint_type FROM information_schema.table_constraints "
        "WHERE lower(table_name) = %s AND lower(constraint_name) = %s "
        "AND table_schema = database()",
        [table.rpartition(".")[2].lower(), name.lower()],
    )
    if not rows:
        provider.logger.warning(f"Constraint {name} does not exist on table {table}")
        return
    quoted_table = provider.quote_table(table)
    kind = rows[0][0]
    if kind == "FOREIGN KEY":
        provider.execute_non_query(f"ALTER TABLE {quoted_table} DROP FOREIGN KEY {provider.quote_column(name)}")
    elif kind == "PRIMARY KEY":
        provider.execute_non_query(f"ALTER TABLE {quoted_table} DROP PRIMARY KEY")
    else:
        provider.execute_non_query(f"ALTER TABLE {quoted_table} DROP INDEX {provider.quote_column(name)}")


@dialect_override(MYSQL, TransformationProvider.remove_index)
def remove_index(provider: TransformationProvider, table: str, name: str) -> None:
    provider.guard_identifiers("When removing an index", table, name)
    if not provider.index_exists(table, name):
        provider.logger.warning(f"Index {name} does not exist on table {table}")
        return
    provider.execute_non_query(f"DROP INDEX {provider.quote_column(name)} ON {provider.quote_table(table)}")
