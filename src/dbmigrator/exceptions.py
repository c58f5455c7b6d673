"""Migration error hierarchy."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class MigrationError(Exception):
    """Base class for all migration errors."""

    pass


class ConfigValidationError(MigrationError):
    """Raised when configuration validation fails."""

    pass


class IdentifierTooLongError(MigrationError, ValueError):
    """An identifier exceeds the dialect's maximum identifier length."""

    def __init__(self, identifier: str, max_length: int, context: str | None = None):
        self.identifier = identifier
        self.length = len(identifier)
        self.max_length = max_length
        self.context = context
        message = (
            f'The name "{identifier}" is {self.length} characters in length, '
            f"but the maximum identifier length is {max_length} characters"
        )
        if context:
            message = f"{context}: {message}"
        super().__init__(message)


class NameConflictError(MigrationError):
    """The target name of a rename/add operation already exists."""

    pass


class UnsupportedOperationError(MigrationError):
    """The dialect cannot perform the requested schema operation."""

    pass


class DatabaseError(MigrationError):
    """The database rejected a statement.

    Wraps the driver error together with the failing statement.
    """

    def __init__(self, statement: str, params: Sequence[Any] = (), cause: BaseException | None = None):
        self.statement = statement
        self.params = tuple(params)
        self.cause = cause
        super().__init__(f"{cause}\nStatement: {statement}")


class MigrationPlanError(MigrationError):
    """No valid plan exists for the requested target."""

    pass


class MigrationLoadError(MigrationError):
    """Migration definitions could not be discovered or loaded."""

    pass


class MigrationFailedError(MigrationError):
    """A migration step failed; the run halted at that version."""

    def __init__(self, version: int, direction: str, executed: list[int], cause: BaseException):
        self.version = version
        self.direction = direction
        self.executed = list(executed)
        self.cause = cause
        super().__init__(f"Migration {version} failed while migrating {direction}: {cause}")
