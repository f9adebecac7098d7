"""Config session for sydneyqt.

This module provides the process-scoped owner of the single Config
instance: load, migrate, mutate and save.
"""

import threading
from collections.abc import Callable
from typing import Any, Self, TypeVar

from sydneyqt.interfaces.persistence import ConfigDocumentStore
from sydneyqt.logging import get_logger
from sydneyqt.migrations import MigrationEngine
from sydneyqt.models.config import Config

T = TypeVar("T")

__all__ = [
    "ConfigSession",
]

logger = get_logger(__name__)


class ConfigSession:
    """Owner of the loaded Config.

    A session only exists once migrations have completed, so no
    workspace mutation can interleave with the load-time rewrite. All
    writes go through ``mutate`` under one re-entrant lock and are
    persisted before the lock is released.

    Example:
        session = ConfigSession.load(JsonConfigStore(path))
        session.mutate(lambda c: setattr(c, "dark_mode", True))
    """

    def __init__(self, config: Config, store: ConfigDocumentStore) -> None:
        self._config = config
        self._store = store
        self._lock = threading.RLock()

    @classmethod
    def load(
        cls,
        store: ConfigDocumentStore,
        engine: MigrationEngine | None = None,
    ) -> Self:
        """Load, migrate and (if anything changed) save the config.

        Raises:
            ConfigLoadError: If the document is unreadable
            MigrationError: If a migration fails; nothing is saved
        """
        engine = engine or MigrationEngine()
        document = store.load_document()
        config = engine.apply(document or {})

        session = cls(config, store)
        if document is None or session.dump() != document:
            session.save()
            logger.info("config_migrated_and_saved", fresh=document is None)
        return session

    @property
    def config(self) -> Config:
        """The live config. Read it; write through ``mutate``."""
        return self._config

    @property
    def lock(self):
        return self._lock

    def mutate(self, fn: Callable[[Config], T]) -> T:
        """Apply a change to the config under the lock and persist it.

        The change is made on a draft copy, which replaces the live
        config only once the store has accepted it. A failed save leaves
        the live config as it was on disk.
        """
        with self._lock:
            draft = self._config.model_copy(deep=True)
            result = fn(draft)
            self._store.save_document(draft.model_dump(mode="json"))
            self._config = draft
            return result

    def dump(self) -> dict[str, Any]:
        with self._lock:
            return self._config.model_dump(mode="json")

    def save(self) -> None:
        with self._lock:
            self._store.save_document(self.dump())
