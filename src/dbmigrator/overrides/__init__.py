"""
Dialect overrides.

Importing this package registers every dialect's replacement operations with
``dbmigrator.registry``.
"""

from . import mysql, oracle, postgresql, sqlite  # noqa: F401
