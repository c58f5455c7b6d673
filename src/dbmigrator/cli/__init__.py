"""
CLI module.

Provides commands:
- migrate: Move the schema to a version (default: latest)
- list: Show available migrations and which are applied
- init: Write a default configuration file
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
