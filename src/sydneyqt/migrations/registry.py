"""Migration registry for sydneyqt.

This module provides the static registry of known config migrations.
"""

import re

from sydneyqt.migrations.base import ConfigMigration

__all__ = [
    "MigrationRegistry",
]

_ID_PATTERN = re.compile(r"^[a-z0-9_]+_(\d{8})$")


class MigrationRegistry:
    """Registry for config migrations.

    Migrations register once at import time and are returned in their
    fixed chronological order (by the date suffix of their id, then by
    registration order for the same date).

    Example:
        # Register a migration (as decorator)
        @MigrationRegistry.register
        class MyMigration(ConfigMigration):
            ...

        # Get instances in run order
        migrations = MigrationRegistry.ordered()
    """

    _migrations: dict[str, type[ConfigMigration]] = {}  # noqa: RUF012

    @classmethod
    def register(
        cls,
        migration_cls: type[ConfigMigration],
    ) -> type[ConfigMigration]:
        """Register a migration class.

        Can be used as a decorator or called directly.

        Args:
            migration_cls: Migration class to register

        Returns:
            The migration class (for use as decorator)

        Raises:
            ValueError: If the id is malformed or already registered
        """
        migration_id = migration_cls().migration_id

        if not _ID_PATTERN.match(migration_id):
            raise ValueError(f"Migration id must end with _YYYYMMDD: {migration_id}")
        if migration_id in cls._migrations:
            raise ValueError(f"Migration already registered: {migration_id}")

        cls._migrations[migration_id] = migration_cls
        return migration_cls

    @classmethod
    def get(cls, migration_id: str) -> type[ConfigMigration]:
        """Get migration class by id.

        Raises:
            KeyError: If no migration is registered with that id
        """
        if migration_id not in cls._migrations:
            available = ", ".join(cls._migrations.keys()) or "none"
            raise KeyError(f"No migration registered: {migration_id}. Available: {available}")
        return cls._migrations[migration_id]

    @classmethod
    def ordered(cls) -> list[ConfigMigration]:
        """Create one instance of every migration, in run order."""
        # sorted() is stable, so same-date ids keep registration order
        ids = sorted(cls._migrations, key=_date_of)
        return [cls._migrations[mid]() for mid in ids]

    @classmethod
    def list_ids(cls) -> list[str]:
        """List all registered ids in run order."""
        return [m.migration_id for m in cls.ordered()]

    @classmethod
    def is_registered(cls, migration_id: str) -> bool:
        return migration_id in cls._migrations


def _date_of(migration_id: str) -> str:
    match = _ID_PATTERN.match(migration_id)
    assert match is not None
    return match.group(1)
