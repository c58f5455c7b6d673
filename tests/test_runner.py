"""Tests for migration planning, running and discovery."""

import uuid

import pytest

from dbmigrator import Column, ColumnProperty, ColumnType, TransformationProvider, get_dialect
from dbmigrator.exceptions import (
    DatabaseError,
    MigrationFailedError,
    MigrationLoadError,
    MigrationPlanError,
)
from dbmigrator.ledger import VersionLedger
from dbmigrator.migration import Migration, load_migrations
from dbmigrator.runner import Direction, MigrationRunner, RunState, plan_migrations

from conftest import RecordingDatabase


def create_users(provider):
    provider.add_table(
        "users",
        Column("id", ColumnType.INT64, properties=ColumnProperty.PRIMARY_KEY_WITH_IDENTITY),
        Column("name", ColumnType.STRING, 50, properties=ColumnProperty.NOT_NULL),
    )


def drop_users(provider):
    provider.remove_table("users")


def add_email(provider):
    provider.add_column("users", Column("email", ColumnType.STRING, 120))
    provider.add_index("ix_users_email", "users", "email", unique=True)


def remove_email(provider):
    provider.remove_index("users", "ix_users_email")
    provider.remove_column("users", "email")


def create_orders(provider):
    provider.add_table(
        "orders",
        Column("id", ColumnType.INT64, properties=ColumnProperty.PRIMARY_KEY_WITH_IDENTITY),
        Column("total", ColumnType.DECIMAL, precision=10, scale=2),
    )


def drop_orders(provider):
    provider.remove_table("orders")


MIGRATIONS = [
    Migration(1, "create_users", create_users, drop_users),
    Migration(2, "add_email", add_email, remove_email),
    Migration(3, "create_orders", create_orders, drop_orders),
]


def snapshot(provider):
    """Tables and column definitions, excluding the ledger."""
    return {
        table: provider.get_columns(table)
        for table in provider.get_tables()
        if table != "schema_info"
    }


class TestPlanMigrations:
    """Tests for the pure planning function."""

    def test_forward_from_partial(self):
        plan = plan_migrations({1, 2}, {1, 2, 3, 4}, 4)
        assert plan.direction == Direction.FORWARD
        assert plan.versions == (3, 4)

    def test_backward_descending(self):
        plan = plan_migrations({1, 2, 3, 4}, {1, 2, 3, 4}, 1)
        assert plan.direction == Direction.BACKWARD
        assert plan.versions == (4, 3, 2)

    def test_latest_by_default(self):
        assert plan_migrations([], [3, 1, 2]).versions == (1, 2, 3)

    def test_zero_rolls_back_everything(self):
        assert plan_migrations([1, 2], [1, 2], 0).versions == (2, 1)

    def test_up_to_date_is_empty(self):
        plan = plan_migrations([1, 2], [1, 2])
        assert plan.versions == ()

    def test_unknown_target(self):
        with pytest.raises(MigrationPlanError, match="Target version 7"):
            plan_migrations([1], [1, 2], 7)

    def test_out_of_order_rejected(self):
        with pytest.raises(MigrationPlanError, match=r"\[2\]"):
            plan_migrations([1, 3], [1, 2, 3])

    def test_out_of_order_allowed(self):
        plan = plan_migrations([1, 3], [1, 2, 3], allow_out_of_order=True)
        assert plan.versions == (2,)

    def test_latest_never_rolls_back_unknown_versions(self):
        """Applied versions newer than every definition are not undone by 'latest'."""
        plan = plan_migrations([1, 2, 5], [1, 2])
        assert plan.direction == Direction.FORWARD
        assert plan.versions == ()


class TestMigrationRunner:
    """Runner behaviour against a real SQLite database."""

    @pytest.fixture
    def runner(self, provider):
        return MigrationRunner(provider, MIGRATIONS)

    def test_migrate_to_latest(self, runner, provider):
        result = runner.migrate_to_latest()
        assert result.executed == [1, 2, 3]
        assert result.direction == Direction.FORWARD
        assert result.state == RunState.COMPLETE
        assert runner.ledger.applied_versions() == [1, 2, 3]
        assert provider.get_tables() == ["orders", "schema_info", "users"]

    def test_migrate_down(self, runner):
        runner.migrate_to_latest()
        result = runner.migrate_to(1)
        assert result.executed == [3, 2]
        assert result.direction == Direction.BACKWARD
        assert runner.ledger.applied_versions() == [1]

    def test_round_trip_restores_schema(self, runner, provider):
        runner.migrate_to(1)
        before = snapshot(provider)

        runner.migrate_to(3)
        assert snapshot(provider) != before
        runner.migrate_to(1)

        assert snapshot(provider) == before

    def test_rollback_everything(self, runner, provider):
        runner.migrate_to_latest()
        runner.migrate_to(0)
        assert snapshot(provider) == {}
        assert runner.ledger.current_version() == 0

    def test_failure_halts_and_rolls_back_step(self, provider):
        def broken(p):
            p.add_table("audit", Column("id", ColumnType.INT32))
            raise RuntimeError("boom")

        runner = MigrationRunner(provider, MIGRATIONS + [Migration(4, "broken", broken)])
        with pytest.raises(MigrationFailedError) as exc_info:
            runner.migrate_to_latest()

        error = exc_info.value
        assert error.version == 4
        assert error.direction == "up"
        assert error.executed == [1, 2, 3]
        assert isinstance(error.__cause__, RuntimeError)
        assert runner.state == RunState.FAILED
        assert not provider.table_exists("audit")
        assert runner.ledger.applied_versions() == [1, 2, 3]

    def test_failure_stops_later_steps(self, provider):
        def broken(p):
            raise RuntimeError("boom")

        migrations = [MIGRATIONS[0], Migration(2, "broken", broken), MIGRATIONS[2]]
        runner = MigrationRunner(provider, migrations)
        with pytest.raises(MigrationFailedError):
            runner.migrate_to_latest()
        assert not provider.table_exists("orders")
        assert runner.ledger.applied_versions() == [1]

    def test_missing_downgrade_checked_before_running(self, provider):
        migrations = [MIGRATIONS[0], Migration(2, "add_email", add_email), MIGRATIONS[2]]
        runner = MigrationRunner(provider, migrations)
        runner.migrate_to_latest()

        with pytest.raises(MigrationPlanError, match="does not support rollback"):
            runner.migrate_to(1)
        assert runner.state == RunState.FAILED
        assert provider.table_exists("orders")
        assert runner.ledger.applied_versions() == [1, 2, 3]

    def test_unknown_applied_version_cannot_roll_back(self, runner):
        runner.migrate_to_latest()
        runner.migrations.pop(3)
        with pytest.raises(MigrationPlanError, match="no migration definition"):
            runner.migrate_to(1)

    def test_ledger_creation_failure_marks_run_failed(self):
        database = RecordingDatabase(fail_on="CREATE TABLE")
        provider = TransformationProvider(database, get_dialect("generic"))
        runner = MigrationRunner(provider, [MIGRATIONS[0]])
        with pytest.raises(DatabaseError):
            runner.migrate_to_latest()
        assert runner.state == RunState.FAILED

    def test_duplicate_versions_rejected(self, provider):
        with pytest.raises(MigrationLoadError):
            MigrationRunner(provider, [MIGRATIONS[0], MIGRATIONS[0]])

    def test_status(self, runner):
        runner.migrate_to(2)
        runner.ledger.record(9)
        status = runner.status()
        assert [(s.version, s.name, s.applied) for s in status] == [
            (1, "create_users", True),
            (2, "add_email", True),
            (3, "create_orders", False),
            (9, None, True),
        ]

    def test_custom_ledger_table(self, provider):
        ledger = VersionLedger(provider, table_name="applied_versions")
        runner = MigrationRunner(provider, MIGRATIONS, ledger=ledger)
        runner.migrate_to(1)
        assert provider.table_exists("applied_versions")
        assert not provider.table_exists("schema_info")


class TestDryRun:
    """Dry run leaves schema and ledger untouched."""

    def test_dry_run_from_scratch(self, sqlite_db):
        provider = TransformationProvider(sqlite_db, get_dialect("sqlite"), dry_run=True)
        runner = MigrationRunner(provider, MIGRATIONS)

        result = runner.migrate_to_latest()

        assert result.dry_run
        assert result.executed == [1, 2, 3]
        assert provider.get_tables() == []

    def test_dry_run_after_partial_migration(self, sqlite_db):
        real = TransformationProvider(sqlite_db, get_dialect("sqlite"))
        MigrationRunner(real, MIGRATIONS).migrate_to(1)
        before = snapshot(real)
        ledger_before = VersionLedger(real).applied_versions()

        dry = TransformationProvider(sqlite_db, get_dialect("sqlite"), dry_run=True)
        result = MigrationRunner(dry, MIGRATIONS).migrate_to_latest()

        assert result.executed == [2, 3]
        assert snapshot(real) == before
        assert VersionLedger(real).applied_versions() == ledger_before == [1]


class TestLedger:
    """Tests for the version ledger."""

    def test_read_does_not_create_table(self, provider):
        ledger = VersionLedger(provider)
        assert ledger.applied_versions() == []
        assert not provider.table_exists("schema_info")

    def test_record_and_remove(self, provider):
        ledger = VersionLedger(provider)
        ledger.ensure_table()
        ledger.ensure_table()
        ledger.record(3)
        ledger.record(1)
        assert ledger.applied_versions() == [1, 3]
        assert ledger.current_version() == 3
        ledger.remove(3)
        assert ledger.applied_versions() == [1]

    def test_schema_prefix(self, provider):
        ledger = VersionLedger(provider, schema="main")
        assert ledger.table_name == "main.schema_info"


class TestLoadMigrations:
    """Discovery of migration modules from a package."""

    @pytest.fixture
    def package(self, tmp_path, monkeypatch):
        name = f"migrations_{uuid.uuid4().hex[:8]}"
        root = tmp_path / name
        root.mkdir()
        (root / "__init__.py").write_text("")
        (root / "helpers.py").write_text("VALUE = 1\n")
        monkeypatch.syspath_prepend(str(tmp_path))
        return name, root

    def write(self, root, filename, version, name, downgrade=True):
        body = [
            f"VERSION = {version}",
            f"NAME = {name!r}",
            "",
            "def upgrade(provider):",
            "    pass",
        ]
        if downgrade:
            body += ["", "def downgrade(provider):", "    pass"]
        (root / filename).write_text("\n".join(body) + "\n")

    def test_loads_sorted_by_version(self, package):
        name, root = package
        self.write(root, "002_add_email.py", 2, "add_email", downgrade=False)
        self.write(root, "001_create_users.py", 1, "create_users")

        migrations = load_migrations(name)

        assert [m.version for m in migrations] == [1, 2]
        assert migrations[0].downgrade is not None
        assert migrations[1].downgrade is None
        assert migrations[0].human_name == "Create users"

    def test_duplicate_version(self, package):
        name, root = package
        self.write(root, "001_a.py", 1, "a")
        self.write(root, "001_b.py", 1, "b")
        with pytest.raises(MigrationLoadError, match="Duplicate migration version 1"):
            load_migrations(name)

    def test_missing_attribute(self, package):
        name, root = package
        (root / "001_incomplete.py").write_text("VERSION = 1\n")
        with pytest.raises(MigrationLoadError, match="001_incomplete"):
            load_migrations(name)

    def test_non_numeric_version(self, package):
        name, root = package
        self.write(root, "001_bad_version.py", "'one'", "bad_version")
        with pytest.raises(MigrationLoadError, match="001_bad_version"):
            load_migrations(name)

    def test_missing_package(self):
        with pytest.raises(MigrationLoadError):
            load_migrations("no_such_migrations_package")
