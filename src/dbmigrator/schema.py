"""
Schema descriptors.

Request objects describing desired schema state. They are built by migration
authors, consumed immediately by the transformation provider, and never
persisted or cached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, Flag
from typing import Any


class ColumnType(str, Enum):
    """Semantic column type, translated to a native type per dialect."""

    ANSI_STRING = "ANSI_STRING"
    STRING = "STRING"
    TEXT = "TEXT"
    INT16 = "INT16"
    INT32 = "INT32"
    INT64 = "INT64"
    DECIMAL = "DECIMAL"
    DOUBLE = "DOUBLE"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    DATETIME = "DATETIME"
    GUID = "GUID"
    BINARY = "BINARY"

    @property
    def is_string(self) -> bool:
        return self in (ColumnType.ANSI_STRING, ColumnType.STRING, ColumnType.TEXT)


class ColumnProperty(Flag):
    """Column property flags."""

    NONE = 0
    NULL = 1
    NOT_NULL = 2
    PRIMARY_KEY = 4
    IDENTITY = 8
    UNIQUE = 16
    PRIMARY_KEY_WITH_IDENTITY = 4 | 8


class ForeignKeyConstraintType(str, Enum):
    """Referential action for ON DELETE / ON UPDATE."""

    NO_ACTION = "NO ACTION"
    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    RESTRICT = "RESTRICT"


class ConstraintKind(str, Enum):
    FOREIGN_KEY = "FOREIGN_KEY"
    UNIQUE = "UNIQUE"
    PRIMARY_KEY = "PRIMARY_KEY"


@dataclass
class Column:
    """A column definition.

    Absence of both NULL and NOT_NULL means nullable. PRIMARY_KEY implies
    NOT NULL.
    """

    name: str
    type: ColumnType
    size: int | None = None
    precision: int | None = None
    scale: int | None = None
    properties: ColumnProperty = ColumnProperty.NONE
    default: Any = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Column name must not be empty")
        if ColumnProperty.NULL in self.properties and (
            ColumnProperty.NOT_NULL in self.properties
            or ColumnProperty.PRIMARY_KEY in self.properties
        ):
            raise ValueError(
                f"Column {self.name!r} cannot be both nullable and NOT NULL/PRIMARY KEY"
            )

    @property
    def is_primary_key(self) -> bool:
        return ColumnProperty.PRIMARY_KEY in self.properties

    @property
    def is_identity(self) -> bool:
        return ColumnProperty.IDENTITY in self.properties

    @property
    def is_not_null(self) -> bool:
        return ColumnProperty.NOT_NULL in self.properties or self.is_primary_key

    @property
    def is_nullable(self) -> bool:
        return not self.is_not_null


@dataclass
class Constraint:
    """A named table constraint (foreign key, unique or primary key)."""

    name: str
    kind: ConstraintKind
    columns: list[str]
    ref_table: str | None = None
    ref_columns: list[str] = field(default_factory=list)
    on_delete: ForeignKeyConstraintType = ForeignKeyConstraintType.NO_ACTION
    on_update: ForeignKeyConstraintType = ForeignKeyConstraintType.NO_ACTION

    def __post_init__(self) -> None:
        if not self.columns:
            raise ValueError(f"Constraint {self.name!r} needs at least one column")
        if self.kind == ConstraintKind.FOREIGN_KEY:
            if not self.ref_table or len(self.ref_columns) != len(self.columns):
                raise ValueError(
                    f"Foreign key {self.name!r} needs a referenced table and one "
                    f"referenced column per column"
                )

    @classmethod
    def foreign_key(
        cls,
        name: str,
        columns: list[str],
        ref_table: str,
        ref_columns: list[str],
        on_delete: ForeignKeyConstraintType = ForeignKeyConstraintType.NO_ACTION,
    ) -> Constraint:
        return cls(
            name=name,
            kind=ConstraintKind.FOREIGN_KEY,
            columns=list(columns),
            ref_table=ref_table,
            ref_columns=list(ref_columns),
            on_delete=on_delete,
        )

    @classmethod
    def unique(cls, name: str, *columns: str) -> Constraint:
        return cls(name=name, kind=ConstraintKind.UNIQUE, columns=list(columns))

    @classmethod
    def primary_key(cls, name: str, *columns: str) -> Constraint:
        return cls(name=name, kind=ConstraintKind.PRIMARY_KEY, columns=list(columns))


TableField = Column | Constraint


@dataclass
class Table:
    """A table definition: name plus ordered columns and constraints."""

    name: str
    fields: list[TableField] = field(default_factory=list)

    @property
    def columns(self) -> list[Column]:
        return [f for f in self.fields if isinstance(f, Column)]

    @property
    def constraints(self) -> list[Constraint]:
        return [f for f in self.fields if isinstance(f, Constraint)]
