"""
Migration runner.

Computes a plan from the ledger and the available migrations, then applies
(or rolls back) one migration at a time in strict version order. Each step's
schema changes and its ledger update are one unit of work.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .exceptions import MigrationFailedError, MigrationLoadError, MigrationPlanError
from .ledger import VersionLedger

if TYPE_CHECKING:
    from .migration import Migration
    from .provider import TransformationProvider


class Direction(str, Enum):
    FORWARD = "up"
    BACKWARD = "down"


class RunState(str, Enum):
    PENDING = "PENDING"
    PLANNING = "PLANNING"
    APPLYING = "APPLYING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


@dataclass(frozen=True)
class MigrationPlan:
    """Ordered versions to run in one direction."""

    direction: Direction
    versions: tuple[int, ...] = ()


@dataclass
class RunResult:
    """Outcome of a completed run."""

    direction: Direction
    executed: list[int] = field(default_factory=list)
    dry_run: bool = False
    state: RunState = RunState.COMPLETE


@dataclass(frozen=True)
class MigrationStatus:
    """One line of ``MigrationRunner.status()``; ``name`` is None for unknown versions."""

    version: int
    name: str | None
    applied: bool


def plan_migrations(
    applied: Iterable[int],
    available: Iterable[int],
    target: int | None = None,
    allow_out_of_order: bool = False,
) -> MigrationPlan:
    """
    Compute the migrations needed to reach ``target``.

    Args:
        applied: Versions recorded in the ledger
        available: Versions with a migration definition
        target: Version to reach; None means latest, 0 means roll back everything
        allow_out_of_order: Apply pending versions older than the current version

    Returns:
        Forward plans are ascending, backward plans descending

    Raises:
        MigrationPlanError: If the target is unknown, or pending versions are
            older than the current version and ``allow_out_of_order`` is off
    """
    applied = sorted(set(applied))
    available = sorted(set(available))
    current = applied[-1] if applied else 0

    if target is None:
        target = max(available[-1] if available else 0, current)
    elif target != 0 and target not in available:
        raise MigrationPlanError(f"Target version {target} is not an available migration")

    if target < current:
        return MigrationPlan(Direction.BACKWARD, tuple(v for v in reversed(applied) if v > target))

    applied_set = set(applied)
    pending = [v for v in available if v not in applied_set]
    stale = [v for v in pending if v < current]
    if stale and not allow_out_of_order:
        raise MigrationPlanError(
            f"Pending migrations {stale} are older than the current version {current}; "
            "enable allow_out_of_order to apply them"
        )
    return MigrationPlan(Direction.FORWARD, tuple(v for v in pending if v <= target))


class MigrationRunner:
    """
    Runs database migrations in order.

    Tracks applied migrations in a ``VersionLedger``. In dry-run mode (taken
    from the provider) the same steps run with execution suppressed and the
    ledger is never created or updated.
    """

    def __init__(
        self,
        provider: TransformationProvider,
        migrations: Sequence[Migration],
        ledger: VersionLedger | None = None,
        logger: logging.Logger | None = None,
        allow_out_of_order: bool = False,
    ) -> None:
        self.provider = provider
        self.migrations: dict[int, Migration] = {}
        for migration in migrations:
            if migration.version in self.migrations:
                raise MigrationLoadError(f"Duplicate migration version {migration.version}")
            self.migrations[migration.version] = migration
        self.ledger = ledger or VersionLedger(provider)
        self.logger = logger or logging.getLogger(__name__)
        self.allow_out_of_order = allow_out_of_order
        self.state = RunState.PENDING

    @property
    def dry_run(self) -> bool:
        return self.provider.dry_run

    def plan(self, target: int | None = None) -> MigrationPlan:
        """Plan a run and check every backward step can be reversed."""
        self.state = RunState.PLANNING
        plan = plan_migrations(
            self.ledger.applied_versions(), self.migrations, target, self.allow_out_of_order
        )
        if plan.direction == Direction.BACKWARD:
            for version in plan.versions:
                migration = self.migrations.get(version)
                if migration is None:
                    raise MigrationPlanError(
                        f"Applied version {version} has no migration definition"
                    )
                if migration.downgrade is None:
                    raise MigrationPlanError(
                        f"Migration {version} ({migration.name}) does not support rollback"
                    )
        return plan

    def migrate_to_latest(self) -> RunResult:
        return self.migrate_to(None)

    def migrate_to(self, target: int | None) -> RunResult:
        """
        Migrate to a specific version (up or down).

        Args:
            target: Target schema version; None for latest, 0 to roll back everything

        Raises:
            MigrationPlanError: If no valid plan exists (nothing has run)
            MigrationFailedError: If a step failed; earlier steps stay applied
        """
        try:
            plan = self.plan(target)
        except MigrationPlanError:
            self.state = RunState.FAILED
            raise

        if self.dry_run:
            self.logger.info("Dry run: statements are logged, not executed")
        elif plan.versions:
            try:
                self.ledger.ensure_table()
            except Exception:
                self.state = RunState.FAILED
                raise

        self.state = RunState.APPLYING
        executed: list[int] = []
        for version in plan.versions:
            migration = self.migrations[version]
            try:
                self._run_step(migration, plan.direction)
            except Exception as e:
                self.state = RunState.FAILED
                self.logger.error(f"Migration {version} failed: {e}")
                if not self.dry_run and not self.provider.dialect.transactional_ddl:
                    self.logger.error(
                        f"{self.provider.dialect.name} does not roll back DDL; "
                        f"the schema may need manual correction at version {version}"
                    )
                raise MigrationFailedError(version, plan.direction.value, executed, e) from e
            executed.append(version)

        self.state = RunState.COMPLETE
        if executed:
            self.logger.info(f"Migrated {plan.direction.value} through {len(executed)} migrations: {executed}")
        else:
            self.logger.info("No pending migrations")
        return RunResult(plan.direction, executed, self.dry_run, self.state)

    def _run_step(self, migration: Migration, direction: Direction) -> None:
        forward = direction == Direction.FORWARD
        action = migration.upgrade if forward else migration.downgrade
        verb = "Applying" if forward else "Rolling back"
        self.logger.info(f"{verb} migration {migration.version}: {migration.name}")

        if self.dry_run:
            action(self.provider)
            return

        with self.provider.database.transaction():
            action(self.provider)
            if forward:
                self.ledger.record(migration.version)
            else:
                self.ledger.remove(migration.version)
        self.logger.info(
            f"Migration {migration.version} {'applied' if forward else 'rolled back'} successfully"
        )

    def status(self) -> list[MigrationStatus]:
        """Available migrations with applied flags, plus applied versions with no definition."""
        applied = set(self.ledger.applied_versions())
        rows = [
            MigrationStatus(version, migration.name, version in applied)
            for version, migration in self.migrations.items()
        ]
        rows.extend(
            MigrationStatus(version, None, True) for version in applied - set(self.migrations)
        )
        return sorted(rows, key=lambda row: row.version)
