"""
Version ledger.

The ledger table holds exactly one row per applied migration version. Only the
migration runner writes to it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .schema import Column, ColumnProperty, ColumnType

if TYPE_CHECKING:
    from .provider import TransformationProvider

DEFAULT_LEDGER_TABLE = "schema_info"


class VersionLedger:
    """Applied-version bookkeeping on top of a provider."""

    def __init__(
        self,
        provider: TransformationProvider,
        table_name: str = DEFAULT_LEDGER_TABLE,
        schema: str | None = None,
    ) -> None:
        self.provider = provider
        self.table_name = f"{schema}.{table_name}" if schema else table_name
        self.logger = provider.logger

    def exists(self) -> bool:
        return self.provider.table_exists(self.table_name)

    def ensure_table(self) -> None:
        """Create the ledger table if it doesn't exist."""
        if self.exists():
            return
        self.logger.info(f"Creating version ledger table {self.table_name}")
        self.provider.add_table(
            self.table_name,
            Column("version", ColumnType.INT64, properties=ColumnProperty.PRIMARY_KEY),
        )

    def applied_versions(self) -> list[int]:
        """Sorted applied versions; empty when the ledger table is absent."""
        if not self.exists():
            return []
        rows = self.provider.select(self.table_name, ["version"])
        return sorted(int(row[0]) for row in rows)

    def current_version(self) -> int:
        """Get the highest applied version (0 when none)."""
        return max(self.applied_versions(), default=0)

    def record(self, version: int) -> None:
        self.provider.insert(self.table_name, ["version"], [version])

    def remove(self, version: int) -> None:
        self.provider.delete(self.table_name, "version", version)
