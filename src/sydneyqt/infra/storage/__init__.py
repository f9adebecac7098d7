"""Config storage implementations for sydneyqt."""

from sydneyqt.infra.storage.json_store import JsonConfigStore

__all__ = [
    "JsonConfigStore",
]
