"""Migration engine for sydneyqt.

This module runs the registered migrations over a raw config document
and validates the result into Config.
"""

import copy
from typing import Any

from pydantic import ValidationError

from sydneyqt.errors import MigrationError
from sydneyqt.logging import get_logger
from sydneyqt.migrations.base import ConfigMigration
from sydneyqt.migrations.registry import MigrationRegistry
from sydneyqt.models.config import Config

__all__ = [
    "MigrationEngine",
]

logger = get_logger(__name__)


class MigrationEngine:
    """Applies pending migrations to a config document.

    The engine never mutates the document it is given. Either every
    pending migration succeeds and a validated Config is returned, or a
    MigrationError is raised and nothing is recorded.

    Example:
        engine = MigrationEngine()
        config = engine.apply(store.load_document() or {})
    """

    def __init__(self, migrations: list[ConfigMigration] | None = None) -> None:
        """Initialize the engine.

        Args:
            migrations: Migrations in run order (default: all registered)
        """
        self._migrations = migrations if migrations is not None else MigrationRegistry.ordered()

    @property
    def known_ids(self) -> list[str]:
        return [m.migration_id for m in self._migrations]

    def pending(self, document: dict[str, Any]) -> list[str]:
        """List migration ids that would run on this document, in order."""
        applied = self._read_applied(document)
        return [mid for mid in self.known_ids if mid not in applied]

    def apply(self, document: dict[str, Any]) -> Config:
        """Migrate a raw document and validate it.

        Args:
            document: Raw config document as loaded from storage

        Returns:
            Validated Config with every known migration recorded

        Raises:
            MigrationError: If a migration or the final validation fails
        """
        working = copy.deepcopy(document)
        applied = self._read_applied(working)
        ran: list[str] = []

        for migration in self._migrations:
            migration_id = migration.migration_id
            if migration_id in applied:
                continue
            try:
                migration.apply(working)
            except MigrationError:
                raise
            except (KeyError, TypeError, ValueError) as e:
                raise MigrationError(migration_id, str(e)) from e
            ran.append(migration_id)
            logger.info("migration_applied", migration_id=migration_id)

        working["migration"] = {"applied": [*applied, *ran]}

        try:
            config = Config.model_validate(working)
        except ValidationError as e:
            raise MigrationError("validation", str(e)) from e

        unknown = [mid for mid in applied if mid not in self.known_ids]
        if unknown:
            logger.warning("unknown_migration_ids_preserved", ids=unknown)
        if ran:
            logger.info("migrations_completed", applied=ran)
        return config

    def _read_applied(self, document: dict[str, Any]) -> list[str]:
        """Read the applied-id list, converting a legacy boolean record.

        Legacy true flags become ids: known ids in run order first, then
        unknown ids in document order.
        """
        record = document.get("migration")
        if record is None:
            return []
        if not isinstance(record, dict):
            raise MigrationError("migration", "migration record is not an object")

        if "applied" in record:
            applied = record["applied"]
            if not isinstance(applied, list) or not all(isinstance(i, str) for i in applied):
                raise MigrationError("migration", "applied must be a list of ids")
            return list(dict.fromkeys(applied))

        flagged = [key for key, value in record.items() if value is True]
        known = [mid for mid in self.known_ids if mid in flagged]
        return known + [mid for mid in flagged if mid not in known]
