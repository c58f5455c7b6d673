"""
Migration definitions and discovery.

Migrations are modules named ``{version}_{name}.py`` inside a package, e.g.
``001_create_users.py``, ``002_add_email_index.py``.

Each migration must define:
- VERSION: int
- NAME: str
- upgrade(provider: TransformationProvider) -> None
- downgrade(provider: TransformationProvider) -> None  # optional
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .exceptions import MigrationLoadError

if TYPE_CHECKING:
    from .provider import TransformationProvider

logger = logging.getLogger(__name__)

MIGRATION_GLOB = "[0-9]*_*.py"


@dataclass
class Migration:
    """Represents a database migration."""

    version: int
    name: str
    upgrade: Callable[[TransformationProvider], None]
    downgrade: Callable[[TransformationProvider], None] | None = None

    @property
    def human_name(self) -> str:
        """``create_users_table`` -> ``Create users table``."""
        return self.name.replace("_", " ").strip().capitalize()


def load_migrations(package: str) -> list[Migration]:
    """
    Load all migrations from a package.

    Args:
        package: Dotted name of the package holding the migration modules

    Returns:
        Migrations sorted by version

    Raises:
        MigrationLoadError: If the package or a module cannot be imported, a
            module lacks VERSION/NAME/upgrade, or two modules share a version
    """
    try:
        root = importlib.import_module(package)
    except ImportError as e:
        raise MigrationLoadError(f"Cannot import migrations package {package!r}: {e}") from e

    directories = [Path(p) for p in getattr(root, "__path__", [])]
    if not directories:
        raise MigrationLoadError(f"{package!r} is a module, not a package")

    migrations: dict[int, Migration] = {}
    for directory in directories:
        for py_file in sorted(directory.glob(MIGRATION_GLOB)):
            module_name = f"{package}.{py_file.stem}"
            try:
                module = importlib.import_module(module_name)
                migration = Migration(
                    version=int(module.VERSION),
                    name=module.NAME,
                    upgrade=module.upgrade,
                    downgrade=getattr(module, "downgrade", None),
                )
            except (ImportError, AttributeError, TypeError, ValueError) as e:
                logger.error(f"Failed to load migration {module_name}: {e}")
                raise MigrationLoadError(f"Failed to load migration {module_name}: {e}") from e

            if migration.version in migrations:
                raise MigrationLoadError(
                    f"Duplicate migration version {migration.version}: "
                    f"{migrations[migration.version].name} and {migration.name}"
                )
            migrations[migration.version] = migration
            logger.debug(f"Loaded migration {migration.version}: {migration.name}")

    return sorted(migrations.values(), key=lambda m: m.version)
