"""
Configuration management.

All configuration keys are defined here: the database connection, where
migrations live, and run options. Values come from a YAML file and can be
overridden by environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .dialects import DIALECTS, resolve_dialect_name
from .exceptions import ConfigValidationError
from .ledger import DEFAULT_LEDGER_TABLE

__all__ = [
    "Config",
    "ConfigValidationError",
    "DatabaseConfig",
    "MigrationsConfig",
    "create_default_config",
    "load_config",
]

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


@dataclass
class DatabaseConfig:
    """Database connection settings.

    SQLite connects to ``path`` with the standard library driver. Every other
    dialect names a DB-API module in ``driver`` whose ``connect()`` receives
    ``connect_args``.
    """

    dialect: str = "sqlite"
    path: Path | None = field(default_factory=lambda: Path("data/app.db"))
    driver: str | None = None
    connect_args: dict[str, Any] = field(default_factory=dict)
    # Schema catalog lookups are scoped to (owner on Oracle)
    default_schema: str | None = None
    # Overrides the dialect's identifier length limit
    max_identifier_length: int | None = None


@dataclass
class MigrationsConfig:
    """Migration discovery and bookkeeping."""

    # Dotted name of the package holding NNN_name.py modules
    package: str = "migrations"
    ledger_table: str = DEFAULT_LEDGER_TABLE
    # Apply pending versions older than the current version
    allow_out_of_order: bool = False


@dataclass
class Config:
    """Application configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    migrations: MigrationsConfig = field(default_factory=MigrationsConfig)
    dry_run: bool = False

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        dialect = resolve_dialect_name(self.database.dialect)
        if dialect not in DIALECTS:
            errors.append(
                f"database.dialect {self.database.dialect!r} is not one of "
                f"{', '.join(sorted(DIALECTS))}"
            )
        elif dialect == "sqlite":
            if not self.database.path:
                errors.append("database.path is required for sqlite")
        elif not self.database.driver:
            errors.append(f"database.driver is required for dialect {dialect}")

        limit = self.database.max_identifier_length
        if limit is not None and limit <= 0:
            errors.append("database.max_identifier_length must be positive")

        if not self.migrations.package:
            errors.append("migrations.package is required")
        if not self.migrations.ledger_table:
            errors.append("migrations.ledger_table is required")

        return errors


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name, "").strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    return default


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    A missing file yields the defaults. Environment variables can override
    config values:
    - DBMIGRATOR_DIALECT
    - DBMIGRATOR_DATABASE_PATH
    - DBMIGRATOR_DEFAULT_SCHEMA
    - DBMIGRATOR_MIGRATIONS_PACKAGE
    - DBMIGRATOR_DRY_RUN (true/false)

    Raises:
        ConfigValidationError: If the file is not a YAML mapping
    """
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}
    if not isinstance(data, dict):
        raise ConfigValidationError(f"{config_path} must contain a YAML mapping")

    # Database config
    db_data = data.get("database") or {}
    path = os.environ.get("DBMIGRATOR_DATABASE_PATH", db_data.get("path", "data/app.db"))
    max_length = db_data.get("max_identifier_length")
    database = DatabaseConfig(
        dialect=os.environ.get("DBMIGRATOR_DIALECT", db_data.get("dialect", "sqlite")),
        path=Path(path) if path else None,
        driver=db_data.get("driver"),
        connect_args=dict(db_data.get("connect_args") or {}),
        default_schema=os.environ.get("DBMIGRATOR_DEFAULT_SCHEMA", db_data.get("default_schema")),
        max_identifier_length=int(max_length) if max_length is not None else None,
    )

    # Migrations config
    mig_data = data.get("migrations") or {}
    migrations = MigrationsConfig(
        package=os.environ.get("DBMIGRATOR_MIGRATIONS_PACKAGE", mig_data.get("package", "migrations")),
        ledger_table=mig_data.get("ledger_table", DEFAULT_LEDGER_TABLE),
        allow_out_of_order=bool(mig_data.get("allow_out_of_order", False)),
    )

    return Config(
        database=database,
        migrations=migrations,
        dry_run=_env_bool("DBMIGRATOR_DRY_RUN", bool(data.get("dry_run", False))),
    )


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# dbmigrator configuration
#
# Environment variables override these values:
#   DBMIGRATOR_DIALECT, DBMIGRATOR_DATABASE_PATH, DBMIGRATOR_DEFAULT_SCHEMA,
#   DBMIGRATOR_MIGRATIONS_PACKAGE, DBMIGRATOR_DRY_RUN

database:
  dialect: sqlite               # sqlite, postgresql, mysql, oracle, generic
  path: "data/app.db"           # SQLite database file
  driver: null                  # DB-API module for other dialects (oracledb, psycopg, pymysql)
  connect_args: {}              # Keyword arguments for driver.connect()
  default_schema: null          # Scope catalog lookups to this schema
  max_identifier_length: null   # Override the dialect's identifier length limit

migrations:
  package: "migrations"         # Package holding NNN_name.py migration modules
  ledger_table: "schema_info"   # Table recording applied versions
  allow_out_of_order: false     # Apply pending versions older than the current one

# Log statements instead of executing them
dry_run: false
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
