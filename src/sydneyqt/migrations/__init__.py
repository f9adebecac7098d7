"""Config migrations for sydneyqt.

Importing this package registers the built-in migrations.
"""

from sydneyqt.migrations import builtin  # noqa: F401
from sydneyqt.migrations.base import ConfigMigration
from sydneyqt.migrations.engine import MigrationEngine
from sydneyqt.migrations.registry import MigrationRegistry

__all__ = [
    "ConfigMigration",
    "MigrationEngine",
    "MigrationRegistry",
]
