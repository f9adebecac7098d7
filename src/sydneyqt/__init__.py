"""sydneyqt - Workspace, backend and reference core of a desktop chat client.

This package provides tools for:
- Loading and migrating the persisted user config
- Managing chat workspaces and their ask state
- Routing asks to the Sydney web API or OpenAI-compatible backends
- Attaching documents, images, YouTube transcripts and web pages

Example usage:
    from sydneyqt import AskOptions, SydneyApp

    async with SydneyApp() as app:
        ws = app.workspaces.current() or app.workspaces.create()
        result = await app.ask(ws.id, AskOptions(prompt="Hello"))
        if not result.success:
            print(result.err_type, result.err_msg)
"""

__version__ = "0.1.0"

from sydneyqt.app import SydneyApp
from sydneyqt.errors import (
    BackendFault,
    BackendNotFoundError,
    ConfigLoadError,
    IngestError,
    MigrationError,
    SydneyQtError,
    WorkspaceBusyError,
    WorkspaceNotFoundError,
)
from sydneyqt.infra.backends import OpenAIBackendClient, SydneyBackendClient
from sydneyqt.infra.storage import JsonConfigStore
from sydneyqt.models import (
    AskOptions,
    AskType,
    ChatFinishResult,
    Config,
    ErrorType,
    ReferenceKind,
    Workspace,
    WorkspaceState,
)
from sydneyqt.orchestrator import AskOrchestrator

__all__ = [  # noqa: RUF022
    # Facade
    "SydneyApp",
    "AskOrchestrator",
    # Implementations
    "JsonConfigStore",
    "OpenAIBackendClient",
    "SydneyBackendClient",
    # Models
    "AskOptions",
    "AskType",
    "ChatFinishResult",
    "Config",
    "ErrorType",
    "ReferenceKind",
    "Workspace",
    "WorkspaceState",
    # Errors
    "BackendFault",
    "BackendNotFoundError",
    "ConfigLoadError",
    "IngestError",
    "MigrationError",
    "SydneyQtError",
    "WorkspaceBusyError",
    "WorkspaceNotFoundError",
]
