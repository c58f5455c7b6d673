"""
CLI main entry point.
"""

import argparse
import logging
import sys
from pathlib import Path

import yaml

from ..config import Config, ConfigValidationError, create_default_config, load_config
from ..database import connect
from ..dialects import get_dialect
from ..exceptions import MigrationError, MigrationFailedError
from ..ledger import VersionLedger
from ..migration import Migration, load_migrations
from ..provider import TransformationProvider
from ..runner import MigrationRunner

logger = logging.getLogger(__name__)

DRY_RUN_BANNER = "********** Dry run! Not actually applying changes. **********"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="dbmigrator",
        description="Apply versioned schema migrations across database dialects",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (shows catalog queries)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # migrate command
    migrate_parser = subparsers.add_parser("migrate", help="Migrate the database schema")
    migrate_parser.add_argument(
        "--to",
        type=int,
        default=None,
        metavar="VERSION",
        help="Target version (default: latest, 0 rolls back everything)",
    )
    migrate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log statements without executing them",
    )

    # list command
    subparsers.add_parser("list", help="List migrations and mark applied ones")

    # init command
    subparsers.add_parser("init", help="Write a default config file")

    return parser


def build_runner(
    config: Config, migrations: list[Migration], dry_run: bool = False
) -> MigrationRunner:
    """Wire the database, provider, ledger and runner for a configuration."""
    dialect = get_dialect(config.database.dialect, config.database.max_identifier_length)
    database = connect(config.database)
    provider = TransformationProvider(
        database,
        dialect,
        default_schema=config.database.default_schema,
        dry_run=dry_run or config.dry_run,
    )
    ledger = VersionLedger(
        provider,
        table_name=config.migrations.ledger_table,
        schema=config.database.default_schema,
    )
    return MigrationRunner(
        provider,
        migrations,
        ledger=ledger,
        allow_out_of_order=config.migrations.allow_out_of_order,
    )


def _load_migrations(config: Config) -> list[Migration]:
    # Migration packages usually live in the project directory
    cwd = str(Path.cwd())
    if cwd not in sys.path:
        sys.path.insert(0, cwd)
    return load_migrations(config.migrations.package)


def cmd_migrate(config: Config, target: int | None, dry_run: bool) -> int:
    """Migrate to a version (or the latest one)."""
    migrations = _load_migrations(config)
    runner = build_runner(config, migrations, dry_run)

    if runner.dry_run:
        print(DRY_RUN_BANNER)
    print(f"🔄 Migrating to {'latest' if target is None else f'version {target}'}...")

    try:
        result = runner.migrate_to(target)
    except MigrationFailedError as e:
        print(f"❌ Migration {e.version} failed: {e.cause}")
        if e.executed:
            print(f"   Completed before the failure: {e.executed}")
        return 1
    finally:
        runner.provider.database.close()

    if result.executed:
        print(f"\n✓ Migrated {result.direction.value}: {result.executed}")
    else:
        print("\n✓ Database is up to date")
    return 0


def cmd_list(config: Config) -> int:
    """List available migrations, marking applied ones with =>."""
    migrations = _load_migrations(config)
    runner = build_runner(config, migrations)
    names = {m.version: m.human_name for m in migrations}
    try:
        rows = runner.status()
    finally:
        runner.provider.database.close()

    print("Available migrations:")
    for row in rows:
        marker = "=>" if row.applied else "  "
        name = names.get(row.version, "(no migration definition)")
        print(f"{marker} {str(row.version).rjust(3)} {name}")
    return 0


def cmd_init(config_path: Path) -> int:
    """Write a default config file."""
    if config_path.exists():
        print(f"❌ {config_path} already exists")
        return 1
    create_default_config(config_path)
    print(f"✓ Wrote {config_path}")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init":
        return cmd_init(parsed.config)

    # Load config
    try:
        config = load_config(parsed.config)
    except (ConfigValidationError, yaml.YAMLError, OSError) as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    errors = config.validate()
    if errors:
        for error in errors:
            print(f"❌ {error}")
        return 1

    # Route to command
    try:
        if parsed.command == "migrate":
            return cmd_migrate(config, parsed.to, parsed.dry_run)
        elif parsed.command == "list":
            return cmd_list(config)
        else:
            parser.print_help()
            return 1
    except MigrationError as e:
        logger.error(str(e))
        print(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
