"""
Per-dialect operation overrides.

Introspection and provider operations are written once, generically, and
wrapped with ``dialect_specific``. A dialect module replaces exactly the
operations whose generic SQL is invalid or wrong for its engine:

    @dialect_override("oracle", TransformationProvider.modify_column)
    def modify_column(provider, table, column_sql):
        ...

Dispatch is keyed by ``(dialect name, operation qualname)``. An override can
fall back to the generic behaviour with ``generic(Class.operation)``.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

_OVERRIDES: dict[tuple[str, str], Callable[..., Any]] = {}


def dialect_specific(method: F) -> F:
    """Mark a method as overridable per dialect (``self.dialect.name``)."""
    key = method.__qualname__

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        override = _OVERRIDES.get((self.dialect.name, key))
        if override is not None:
            return override(self, *args, **kwargs)
        return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def dialect_override(dialect: str, operation: Callable[..., Any]) -> Callable[[F], F]:
    """Register ``fn`` as the ``dialect`` implementation of ``operation``."""
    if not hasattr(operation, "__wrapped__"):
        raise TypeError(f"{operation.__qualname__} is not a dialect-specific operation")
    key = (dialect, operation.__qualname__)

    def decorator(fn: F) -> F:
        _OVERRIDES[key] = fn
        return fn

    return decorator


def generic(operation: Callable[..., Any]) -> Callable[..., Any]:
    """Return the generic (non-overridden) implementation of an operation."""
    return operation.__wrapped__  # type: ignore[attr-defined]


def overridden_operations(dialect: str) -> list[str]:
    """List the operation names a dialect overrides."""
    return sorted(op for name, op in _OVERRIDES if name == dialect)
