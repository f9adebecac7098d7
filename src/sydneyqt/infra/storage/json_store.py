"""JSON file config store for sydneyqt.

This module provides the file-backed implementation of
ConfigDocumentStore. Writes are atomic: the document is written to a
temporary file in the same directory and moved over the old one.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from sydneyqt.errors import ConfigLoadError
from sydneyqt.interfaces.persistence import ConfigDocumentStore
from sydneyqt.logging import get_logger

__all__ = [
    "JsonConfigStore",
]

logger = get_logger(__name__)


class JsonConfigStore(ConfigDocumentStore):
    """Config document stored as one JSON file.

    Example:
        store = JsonConfigStore(Path("config.json"))
        document = store.load_document()
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load_document(self) -> dict[str, Any] | None:
        """Read the document.

        Returns:
            The parsed document, or None if the file does not exist yet

        Raises:
            ConfigLoadError: If the file is not a JSON object
        """
        with self._lock:
            if not self._path.exists():
                logger.info("config_file_missing", path=str(self._path))
                return None
            try:
                with self._path.open("r", encoding="utf-8") as f:
                    document = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigLoadError(f"Invalid JSON in {self._path}: {e}") from e
            except OSError as e:
                raise ConfigLoadError(f"Cannot read {self._path}: {e}") from e

        if not isinstance(document, dict):
            raise ConfigLoadError(f"Config root must be an object: {self._path}")
        return document

    def save_document(self, document: dict[str, Any]) -> None:
        """Atomically replace the file with the given document."""
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, ensure_ascii=False, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        logger.debug("config_saved", path=str(self._path))
