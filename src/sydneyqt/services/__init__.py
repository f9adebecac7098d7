"""Service layer for sydneyqt.

This module exports the main service entry points.
"""

from sydneyqt.services.backend_registry import BackendRegistry
from sydneyqt.services.config_session import ConfigSession
from sydneyqt.services.content_store import ContentReferenceStore, VideoSelection
from sydneyqt.services.workspace_manager import StateListener, WorkspaceManager

__all__ = [
    "BackendRegistry",
    "ConfigSession",
    "ContentReferenceStore",
    "StateListener",
    "VideoSelection",
    "WorkspaceManager",
]
