"""Base config migration for sydneyqt.

This module defines the abstract base class for structural migrations
of the persisted config document.
"""

from abc import ABC, abstractmethod
from typing import Any

__all__ = [
    "ConfigMigration",
]


class ConfigMigration(ABC):
    """Abstract base class for config migrations.

    A migration rewrites the raw JSON document (before it is validated
    into Config) so data written by older versions becomes valid under
    the current schema.

    Important: migrations must be idempotent. Running one twice on the
    same document must give the same result as running it once. A
    migration may assume every migration with an earlier date has
    already run.

    Example:
        @MigrationRegistry.register
        class MyMigration(ConfigMigration):
            @property
            def migration_id(self) -> str:
                return "my_change_20240501"

            def apply(self, document: dict) -> None:
                document.setdefault("my_flag", False)
    """

    @property
    @abstractmethod
    def migration_id(self) -> str:
        """Return the fixed, never-reused identifier of this migration.

        The identifier ends with the date it was introduced as
        ``_YYYYMMDD``; that date fixes its position in the run order.

        Returns:
            Migration identifier (e.g., "theme_color_20240304")
        """
        ...

    @abstractmethod
    def apply(self, document: dict[str, Any]) -> None:
        """Transform the document in place.

        The engine passes a private copy; on failure the copy is
        discarded, so a migration never needs to roll back.

        Args:
            document: Raw config document

        Raises:
            MigrationError: If the legacy data is malformed
        """
        ...
