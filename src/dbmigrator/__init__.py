"""
Cross-dialect database schema migrations.

Applies an ordered sequence of versioned, reversible schema changes against a
relational database, records which versions are applied in a ledger table, and
moves the schema forward or backward between versions. Schema operations are
expressed once against a uniform provider API and translated per dialect.
"""

from .dialects import Dialect, get_dialect
from .exceptions import (
    DatabaseError,
    IdentifierTooLongError,
    MigrationError,
    MigrationFailedError,
    MigrationPlanError,
    NameConflictError,
    UnsupportedOperationError,
)
from .provider import CleanupResult, TransformationProvider
from .schema import (
    Column,
    ColumnProperty,
    ColumnType,
    Constraint,
    ConstraintKind,
    ForeignKeyConstraintType,
    Table,
)

# Registers the per-dialect operation overrides.
from . import overrides  # noqa: E402,F401  isort:skip

__version__ = "0.1.0"

__all__ = [
    "CleanupResult",
    "Column",
    "ColumnProperty",
    "ColumnType",
    "Constraint",
    "ConstraintKind",
    "DatabaseError",
    "Dialect",
    "ForeignKeyConstraintType",
    "IdentifierTooLongError",
    "MigrationError",
    "MigrationFailedError",
    "MigrationPlanError",
    "NameConflictError",
    "Table",
    "TransformationProvider",
    "UnsupportedOperationError",
    "get_dialect",
]
