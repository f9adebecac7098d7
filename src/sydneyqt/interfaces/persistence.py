"""Persistence interface for sydneyqt.

The config document is treated as one atomic JSON document.
"""

from typing import Any, Protocol, runtime_checkable

__all__ = [
    "ConfigDocumentStore",
]


@runtime_checkable
class ConfigDocumentStore(Protocol):
    """Contract for loading and saving the raw config document."""

    def load_document(self) -> dict[str, Any] | None:
        """Load the raw document.

        Returns:
            The decoded JSON object, or None if nothing was saved yet

        Raises:
            ConfigLoadError: If the stored document cannot be decoded
        """
        ...

    def save_document(self, document: dict[str, Any]) -> None:
        """Replace the stored document atomically."""
        ...
