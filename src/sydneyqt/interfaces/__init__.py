"""Interface definitions for sydneyqt.

This module exports the Protocols implemented by backend clients,
config stores and file pickers.
"""

from sydneyqt.interfaces.backend import (
    BackendClient,
    BackendHandle,
    ChunkCallback,
    OpenAIHandle,
    SydneyHandle,
)
from sydneyqt.interfaces.persistence import ConfigDocumentStore
from sydneyqt.interfaces.picker import FilePicker

__all__ = [
    "BackendClient",
    "BackendHandle",
    "ChunkCallback",
    "ConfigDocumentStore",
    "FilePicker",
    "OpenAIHandle",
    "SydneyHandle",
]
