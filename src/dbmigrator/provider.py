"""
Transformation provider.

The uniform schema-operation API migrations are written against. Every
public operation has a generic implementation here; dialects replace the
operations whose generic SQL is invalid or semantically wrong for their
engine (see ``dbmigrator.overrides``), and feature gaps are bridged by the
capability flags on ``Dialect``.

Every identifier-accepting operation checks identifier lengths, and every
renaming or adding operation checks for conflicts, before any SQL is emitted,
so failures name the offending identifier independent of the engine's own
error wording.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any

from .exceptions import (
    DatabaseError,
    IdentifierTooLongError,
    NameConflictError,
    UnsupportedOperationError,
)
from .introspection import SchemaIntrospector
from .registry import dialect_specific
from .schema import (
    Column,
    ColumnProperty,
    Constraint,
    ConstraintKind,
    ForeignKeyConstraintType,
    Table,
    TableField,
)

if TYPE_CHECKING:
    from .database import Database
    from .dialects import Dialect

TEMPORARY_COLUMN_NAME = "TEMPCOL"

# Either flag renders NOT NULL
_NOT_NULL_FLAGS = ColumnProperty.NOT_NULL | ColumnProperty.PRIMARY_KEY


class CleanupResult(str, Enum):
    """Outcome of a best-effort cleanup operation."""

    DROPPED = "DROPPED"
    NOT_FOUND = "NOT_FOUND"
    FAILED = "FAILED"


@dataclass(frozen=True)
class BoundParameter:
    """A bind placeholder and the driver-ready value for it."""

    placeholder: str
    value: Any


def _bare_name(name: str) -> str:
    return name.rpartition(".")[2]


class TransformationProvider:
    """
    Schema operations for one database connection.

    Args:
        database: Connectivity collaborator (``dbmigrator.database.Database``)
        dialect: Dialect rules
        default_schema: Optional schema catalog lookups are scoped to
        dry_run: Log schema-changing statements instead of executing them
        logger: Logging sink; defaults to this module's logger

    Reads (introspection, ``select``) always hit the database, including in
    dry-run mode.
    """

    def __init__(
        self,
        database: Database,
        dialect: Dialect,
        default_schema: str | None = None,
        dry_run: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        self.database = database
        self.dialect = dialect
        self.default_schema = default_schema
        self.dry_run = dry_run
        self.logger = logger or logging.getLogger(__name__)
        self.introspector = SchemaIntrospector(database, dialect, default_schema, self.logger)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute_non_query(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Execute a schema- or data-changing statement (suppressed in dry run)."""
        if self.dry_run:
            self.logger.info(f"[dry run] {sql}")
            return 0
        self.logger.info(sql)
        return self.database.execute_non_query(sql, params)

    def execute_scalar(self, sql: str, params: Sequence[Any] = ()) -> Any:
        self.logger.debug(sql)
        return self.database.execute_scalar(sql, params)

    def execute_query(self, sql: str, params: Sequence[Any] = ()) -> list[tuple]:
        self.logger.debug(sql)
        return self.database.execute_query(sql, params)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def table_exists(self, table: str) -> bool:
        return self.introspector.table_exists(table)

    def column_exists(self, table: str, column: str) -> bool:
        return self.introspector.column_exists(table, column)

    def constraint_exists(self, table: str, name: str) -> bool:
        return self.introspector.constraint_exists(table, name)

    def index_exists(self, table: str, name: str) -> bool:
        return self.introspector.index_exists(table, name)

    def sequence_exists(self, name: str) -> bool:
        return self.introspector.sequence_exists(name)

    def get_tables(self) -> list[str]:
        return self.introspector.get_tables()

    def get_columns(self, table: str) -> list[Column]:
        return self.introspector.get_columns(table)

    def get_column(self, table: str, name: str) -> Column | None:
        return self.introspector.get_column(table, name)

    # ------------------------------------------------------------------
    # Naming
    # ------------------------------------------------------------------

    def quote_table(self, name: str) -> str:
        return self.dialect.quote_table_name(name)

    def quote_column(self, name: str) -> str:
        return self.dialect.quote_identifier(name)

    def quote_columns(self, names: Sequence[str]) -> str:
        return ", ".join(self.quote_column(name) for name in names)

    def guard_identifier(self, name: str, context: str | None = None) -> None:
        """Raise IdentifierTooLongError if any dotted part of ``name`` is too long."""
        if not name:
            raise ValueError("Identifier must not be empty")
        limit = self.dialect.max_identifier_length
        for part in name.split("."):
            if len(part) > limit:
                raise IdentifierTooLongError(part, limit, context)

    def guard_identifiers(self, context: str, *names: str) -> None:
        """Check several identifiers; the first too-long one raises."""
        for name in names:
            self.guard_identifier(name, context)

    @dialect_specific
    def primary_key_name(self, table: str) -> str:
        return f"PK_{_bare_name(table)}"

    @dialect_specific
    def sequence_name_for(self, table: str) -> str:
        """Name of the sequence emulating an identity column of ``table``."""
        return f"{self._identity_object_base(table)}_SEQUENCE"

    def trigger_name_for(self, table: str) -> str:
        return f"{self._identity_object_base(table)}_TRIGGER"

    def _identity_object_base(self, table: str) -> str:
        limit = self.dialect.max_identifier_length - len("_SEQUENCE")
        return _bare_name(table)[:limit].rstrip("_").upper()

    # ------------------------------------------------------------------
    # SQL rendering
    # ------------------------------------------------------------------

    def default_sql(self, value: Any) -> str:
        if isinstance(value, bool):
            if self.dialect.native_boolean:
                return "TRUE" if value else "FALSE"
            return "1" if value else "0"
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        return self.dialect.string_literal(value)

    @dialect_specific
    def column_sql(self, column: Column, inline_primary_key: bool = True) -> str:
        """Render a column definition.

        ``<name> <type> [DEFAULT x] [NOT NULL|NULL] [identity | PRIMARY KEY] [UNIQUE]``
        """
        parts = [
            self.quote_column(column.name),
            self.dialect.type_sql(column.type, column.size, column.precision, column.scale),
        ]
        if column.default is not None:
            parts.append(f"DEFAULT {self.default_sql(column.default)}")
        if column.is_not_null:
            parts.append("NOT NULL")
        elif ColumnProperty.NULL in column.properties:
            parts.append("NULL")
        if column.is_primary_key and inline_primary_key:
            if column.is_identity and self.dialect.native_identity:
                parts.append(self.dialect.identity_clause)
            else:
                parts.append("PRIMARY KEY")
        elif ColumnProperty.UNIQUE in column.properties:
            parts.append("UNIQUE")
        return " ".join(parts)

    @dialect_specific
    def referential_actions(
        self,
        on_delete: ForeignKeyConstraintType,
        on_update: ForeignKeyConstraintType,
    ) -> str:
        sql = ""
        if on_delete != ForeignKeyConstraintType.NO_ACTION:
            sql += f" ON DELETE {on_delete.value}"
        if on_update != ForeignKeyConstraintType.NO_ACTION:
            sql += f" ON UPDATE {on_update.value}"
        return sql

    def constraint_sql(self, constraint: Constraint) -> str:
        name = self.quote_column(constraint.name)
        columns = self.quote_columns(constraint.columns)
        if constraint.kind == ConstraintKind.FOREIGN_KEY:
            return (
                f"CONSTRAINT {name} FOREIGN KEY ({columns}) "
                f"REFERENCES {self.quote_table(constraint.ref_table)} "
                f"({self.quote_columns(constraint.ref_columns)})"
                f"{self.referential_actions(constraint.on_delete, constraint.on_update)}"
            )
        if constraint.kind == ConstraintKind.UNIQUE:
            return f"CONSTRAINT {name} UNIQUE ({columns})"
        return f"CONSTRAINT {name} PRIMARY KEY ({columns})"

    def create_table_sql(
        self, name: str, columns: Sequence[Column], constraints: Sequence[Constraint] = ()
    ) -> str:
        primary_keys = [c for c in columns if c.is_primary_key]
        inline = len(primary_keys) == 1
        definitions = [self.column_sql(c, inline_primary_key=inline) for c in columns]
        if len(primary_keys) > 1:
            definitions.append(
                f"CONSTRAINT {self.quote_column(self.primary_key_name(name))} "
                f"PRIMARY KEY ({self.quote_columns([c.name for c in primary_keys])})"
            )
        definitions.extend(self.constraint_sql(c) for c in constraints)
        return f"CREATE TABLE {self.quote_table(name)} ({', '.join(definitions)})"

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    @dialect_specific
    def add_table(self, name: str, *fields: TableField) -> None:
        """
        Create a table from column and constraint descriptors.

        All identifiers are checked before any SQL is issued. An identity
        primary key on a dialect without native auto-increment is emulated
        through ``emulate_identity``; if the emulation fails the table is
        dropped again.

        Raises:
            IdentifierTooLongError: If the table, a column or a constraint name is too long
            NameConflictError: If the table already exists
        """
        columns = [f for f in fields if isinstance(f, Column)]
        constraints = [f for f in fields if isinstance(f, Constraint)]

        self.guard_identifier(name, "When adding table")
        for column in columns:
            self.guard_identifier(column.name, f'When adding table "{name}", the column')
        for constraint in constraints:
            self.guard_identifiers(
                f'When adding table "{name}", the constraint',
                constraint.name,
                *constraint.columns,
                *([constraint.ref_table] if constraint.ref_table else []),
                *constraint.ref_columns,
            )
        if not columns:
            raise ValueError(f"Table {name} needs at least one column")

        if self.table_exists(name):
            raise NameConflictError(
                f'Can not add table "{name}", a table with that name already exists'
            )

        self.execute_non_query(self.create_table_sql(name, columns, constraints))

        identity = next((c for c in columns if c.is_identity), None)
        if identity is None or self.dialect.native_identity:
            return
        try:
            self.emulate_identity(name, identity)
        except DatabaseError:
            self.logger.error(f"Identity emulation for {name}.{identity.name} failed, dropping {name}")
            self.drop_sequence(self.sequence_name_for(name))
            self.execute_non_query(f"DROP TABLE {self.quote_table(name)}")
            raise

    def add_table_from(self, table: Table) -> None:
        """Create a table from a ``Table`` descriptor."""
        self.add_table(table.name, *table.fields)

    @dialect_specific
    def emulate_identity(self, table: str, column: Column) -> None:
        """Provision an auto-increment emulation for ``table.column``."""
        raise UnsupportedOperationError(
            f"Dialect {self.dialect.name} cannot emulate an identity column"
        )

    @dialect_specific
    def remove_table(self, name: str) -> None:
        """Drop a table, then best-effort drop any identity emulation sequence."""
        self.guard_identifier(name, "When removing table")
        if not self.table_exists(name):
            self.logger.warning(f"Table {name} does not exist")
            return
        self.execute_non_query(f"DROP TABLE {self.quote_table(name)}")

        if self.dialect.native_identity:
            return
        result = self.drop_sequence(self.sequence_name_for(name))
        if result == CleanupResult.FAILED:
            self.logger.warning(f"Could not drop identity sequence of table {name}")

    def drop_sequence(self, name: str) -> CleanupResult:
        """Drop a sequence; never raises for a missing sequence or a failed drop."""
        if not self.sequence_exists(name):
            return CleanupResult.NOT_FOUND
        try:
            self.execute_non_query(f"DROP SEQUENCE {self.quote_table(name)}")
        except DatabaseError as e:
            self.logger.warning(f"Failed to drop sequence {name}: {e.cause}")
            return CleanupResult.FAILED
        return CleanupResult.DROPPED

    @dialect_specific
    def rename_table(self, old_name: str, new_name: str) -> None:
        self.guard_identifiers("When renaming table", old_name, new_name)
        if self.table_exists(new_name):
            raise NameConflictError(
                f'Can not rename table "{old_name}" to "{new_name}", '
                f"a table with that name already exists"
            )
        self.execute_non_query(
            f"ALTER TABLE {self.quote_table(old_name)} "
            f"RENAME TO {self.quote_column(_bare_name(new_name))}"
        )

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    @dialect_specific
    def add_column(self, table: str, column: Column | str) -> None:
        """Add a column given as a descriptor or as raw column SQL."""
        self.guard_identifier(table, "When adding a column")
        if isinstance(column, Column):
            self.guard_identifier(column.name, f'When adding a column to table "{table}"')
            if self.column_exists(table, column.name):
                raise NameConflictError(
                    f'A column with the name "{column.name}" already exists in the table "{table}"'
                )
            column = self.column_sql(column)
        self.execute_non_query(f"ALTER TABLE {self.quote_table(table)} ADD {column}")

    @dialect_specific
    def remove_column(self, table: str, column: str) -> None:
        self.guard_identifiers("When removing a column", table, column)
        if not self.column_exists(table, column):
            self.logger.warning(f"Column {table}.{column} does not exist")
            return
        self.execute_non_query(
            f"ALTER TABLE {self.quote_table(table)} DROP COLUMN {self.quote_column(column)}"
        )

    @dialect_specific
    def rename_column(self, table: str, old_name: str, new_name: str) -> None:
        self.guard_identifiers("When renaming a column", table, old_name, new_name)
        if self.column_exists(table, new_name):
            raise NameConflictError(
                f'Can not rename column "{old_name}" to "{new_name}": a column with the name '
                f'"{new_name}" already exists in the table "{table}"'
            )
        self.execute_non_query(
            f"ALTER TABLE {self.quote_table(table)} RENAME COLUMN "
            f"{self.quote_column(old_name)} TO {self.quote_column(new_name)}"
        )

    @dialect_specific
    def change_column(self, table: str, column: Column) -> None:
        """
        Change a column's definition.

        A column that does not exist is logged and left alone. String columns
        on dialects that cannot alter them in place are rebuilt through a
        temporary column: rename, add the new column nullable, copy the data,
        drop the temporary column, and only then apply NOT NULL.
        """
        self.guard_identifiers("When changing a column", table, column.name)
        if not self.column_exists(table, column.name):
            self.logger.warning(f"Column {table}.{column.name} does not exist")
            return

        if column.type.is_string and not self.dialect.in_place_string_alter:
            self._change_column_via_temporary_column(table, column)
            return

        if self.dialect.rejects_redundant_nullability:
            column = self._without_redundant_nullability(table, column)
        self.modify_column(table, self.column_sql(column, inline_primary_key=False))

    def _change_column_via_temporary_column(self, table: str, column: Column) -> None:
        if self.column_exists(table, TEMPORARY_COLUMN_NAME):
            raise NameConflictError(
                f'Can not change column "{column.name}": the temporary column '
                f'"{TEMPORARY_COLUMN_NAME}" already exists in the table "{table}"'
            )
        quoted_table = self.quote_table(table)
        name = self.quote_column(column.name)
        temporary = self.quote_column(TEMPORARY_COLUMN_NAME)
        nullable = dataclasses.replace(column, properties=column.properties & ~_NOT_NULL_FLAGS)

        self.execute_non_query(f"ALTER TABLE {quoted_table} RENAME COLUMN {name} TO {temporary}")
        self.execute_non_query(
            f"ALTER TABLE {quoted_table} ADD {self.column_sql(nullable, inline_primary_key=False)}"
        )
        self.execute_non_query(f"UPDATE {quoted_table} SET {name} = {temporary}")
        self.execute_non_query(f"ALTER TABLE {quoted_table} DROP COLUMN {temporary}")
        # NOT NULL only once the data is in place
        if column.is_not_null:
            self.set_not_null(table, column.name)

    def _without_redundant_nullability(self, table: str, column: Column) -> Column:
        existing = self.get_column(table, column.name)
        if existing is None:
            return column
        properties = column.properties
        if existing.is_not_null and column.is_not_null:
            properties &= ~_NOT_NULL_FLAGS
        elif existing.is_nullable and ColumnProperty.NULL in properties:
            properties &= ~ColumnProperty.NULL
        return dataclasses.replace(column, properties=properties)

    @dialect_specific
    def modify_column(self, table: str, column_sql: str) -> None:
        """Redefine a column in place from raw column SQL."""
        if not table:
            raise ValueError("table is required")
        if not column_sql:
            raise ValueError("column_sql is required")
        self.execute_non_query(f"ALTER TABLE {self.quote_table(table)} ALTER COLUMN {column_sql}")

    @dialect_specific
    def set_not_null(self, table: str, column: str) -> None:
        self.guard_identifiers("When setting NOT NULL", table, column)
        self.execute_non_query(
            f"ALTER TABLE {self.quote_table(table)} ALTER COLUMN "
            f"{self.quote_column(column)} SET NOT NULL"
        )

    @dialect_specific
    def remove_column_default_value(self, table: str, column: str) -> None:
        self.guard_identifiers("When removing a column default", table, column)
        self.execute_non_query(
            f"ALTER TABLE {self.quote_table(table)} ALTER COLUMN "
            f"{self.quote_column(column)} DROP DEFAULT"
        )

    # ------------------------------------------------------------------
    # Constraints and indexes
    # ------------------------------------------------------------------

    @dialect_specific
    def add_foreign_key(
        self,
        name: str,
        primary_table: str,
        primary_columns: Sequence[str],
        ref_table: str,
        ref_columns: Sequence[str],
        on_delete: ForeignKeyConstraintType = ForeignKeyConstraintType.NO_ACTION,
        on_update: ForeignKeyConstraintType = ForeignKeyConstraintType.NO_ACTION,
    ) -> None:
        """Add a foreign key; a constraint that already exists is left alone."""
        self.guard_identifiers(
            "When adding a foreign key", name, primary_table, ref_table, *primary_columns, *ref_columns
        )
        if self.constraint_exists(primary_table, name):
            self.logger.warning(f"Constraint {name} already exists")
            return
        constraint = Constraint(
            name=name,
            kind=ConstraintKind.FOREIGN_KEY,
            columns=list(primary_columns),
            ref_table=ref_table,
            ref_columns=list(ref_columns),
            on_delete=on_delete,
            on_update=on_update,
        )
        self.execute_non_query(
            f"ALTER TABLE {self.quote_table(primary_table)} ADD {self.constraint_sql(constraint)}"
        )

    def _add_table_constraint(self, constraint: Constraint, table: str) -> None:
        self.guard_identifiers("When adding a constraint", constraint.name, table, *constraint.columns)
        if self.constraint_exists(table, constraint.name):
            self.logger.warning(f"Constraint {constraint.name} already exists")
            return
        self.execute_non_query(
            f"ALTER TABLE {self.quote_table(table)} ADD {self.constraint_sql(constraint)}"
        )

    @dialect_specific
    def add_unique_constraint(self, name: str, table: str, *columns: str) -> None:
        self._add_table_constraint(Constraint.unique(name, *columns), table)

    @dialect_specific
    def add_primary_key(self, name: str, table: str, *columns: str) -> None:
        self._add_table_constraint(Constraint.primary_key(name, *columns), table)

    @dialect_specific
    def remove_constraint(self, table: str, name: str) -> None:
        self.guard_identifiers("When removing a constraint", table, name)
        if not self.constraint_exists(table, name):
            self.logger.warning(f"Constraint {name} does not exist on table {table}")
            return
        self.execute_non_query(
            f"ALTER TABLE {self.quote_table(table)} DROP CONSTRAINT {self.quote_column(name)}"
        )

    @dialect_specific
    def add_index(self, name: str, table: str, *columns: str, unique: bool = False) -> None:
        self.guard_identifiers("When adding an index", name, table, *columns)
        if not columns:
            raise ValueError(f"Index {name} needs at least one column")
        if self.index_exists(table, name):
            self.logger.warning(f"Index {name} already exists")
            return
        self.execute_non_query(
            f"CREATE {'UNIQUE ' if unique else ''}INDEX {self.quote_column(name)} "
            f"ON {self.quote_table(table)} ({self.quote_columns(columns)})"
        )

    @dialect_specific
    def remove_index(self, table: str, name: str) -> None:
        self.guard_identifiers("When removing an index", table, name)
        if not self.index_exists(table, name):
            self.logger.warning(f"Index {name} does not exist on table {table}")
            return
        self.execute_non_query(f"DROP INDEX {self.quote_column(name)}")

    # ------------------------------------------------------------------
    # Values and DML
    # ------------------------------------------------------------------

    @dialect_specific
    def encode(self, value: uuid.UUID) -> str:
        """Render a UUID for use in SQL text."""
        return str(value)

    @dialect_specific
    def bind_parameter(self, index: int, value: Any) -> BoundParameter:
        """Map a value to a driver-ready bind parameter."""
        if isinstance(value, uuid.UUID) and not self.dialect.native_uuid:
            # GUID byte order with the first three fields little-endian
            value = value.bytes_le
        elif isinstance(value, bool) and not self.dialect.native_boolean:
            value = 1 if value else 0
        return BoundParameter(self.dialect.placeholder(index), value)

    def _bind_all(self, values: Sequence[Any], start: int = 0) -> list[BoundParameter]:
        return [self.bind_parameter(start + i, value) for i, value in enumerate(values)]

    def insert(self, table: str, columns: Sequence[str], values: Sequence[Any]) -> int:
        if len(columns) != len(values):
            raise ValueError("columns and values must have the same length")
        bound = self._bind_all(values)
        sql = (
            f"INSERT INTO {self.quote_table(table)} ({self.quote_columns(columns)}) "
            f"VALUES ({', '.join(b.placeholder for b in bound)})"
        )
        return self.execute_non_query(sql, [b.value for b in bound])

    def delete(self, table: str, column: str, value: Any) -> int:
        bound = self.bind_parameter(0, value)
        sql = (
            f"DELETE FROM {self.quote_table(table)} "
            f"WHERE {self.quote_column(column)} = {bound.placeholder}"
        )
        return self.execute_non_query(sql, [bound.value])

    def select(
        self, table: str, columns: Sequence[str], where: dict[str, Any] | None = None
    ) -> list[tuple]:
        sql = f"SELECT {self.quote_columns(columns)} FROM {self.quote_table(table)}"
        params: list[Any] = []
        if where:
            bound = self._bind_all(list(where.values()))
            conditions = [
                f"{self.quote_column(column)} = {b.placeholder}"
                for column, b in zip(where, bound)
            ]
            sql += " WHERE " + " AND ".join(conditions)
            params = [b.value for b in bound]
        return self.execute_query(sql, params)
