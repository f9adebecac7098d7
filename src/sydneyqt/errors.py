"""Exception types for sydneyqt.

Components raise these; AskOrchestrator and the upload flows reduce
them to typed outcomes at their boundary.
"""

from sydneyqt.models.ask import ErrorType

__all__ = [
    "BackendFault",
    "BackendNotFoundError",
    "ConfigLoadError",
    "IngestError",
    "MigrationError",
    "SydneyQtError",
    "WorkspaceBusyError",
    "WorkspaceNotFoundError",
]


class SydneyQtError(Exception):
    """Base class for all sydneyqt errors."""


class ConfigLoadError(SydneyQtError):
    """The persisted config document could not be read or validated."""


class MigrationError(ConfigLoadError):
    """A migration could not complete. Fatal to config load."""

    def __init__(self, migration_id: str, reason: str) -> None:
        super().__init__(f"migration {migration_id} failed: {reason}")
        self.migration_id = migration_id
        self.reason = reason


class WorkspaceNotFoundError(SydneyQtError, KeyError):
    """No workspace exists with the given id."""

    def __init__(self, workspace_id: int) -> None:
        super().__init__(f"workspace not exist by id: {workspace_id}")
        self.workspace_id = workspace_id

    def __str__(self) -> str:
        return str(self.args[0])


class WorkspaceBusyError(SydneyQtError):
    """The workspace already has an ask in flight."""

    def __init__(self, workspace_id: int) -> None:
        super().__init__(f"workspace {workspace_id} is already asking")
        self.workspace_id = workspace_id


class BackendNotFoundError(SydneyQtError, LookupError):
    """No backend is registered under the given name."""

    def __init__(self, name: str, available: list[str]) -> None:
        listed = ", ".join(available) or "none"
        super().__init__(f"No backend registered with name: {name}. Available: {listed}")
        self.name = name


class IngestError(SydneyQtError):
    """An attachment could not be normalized into a DataReference."""


class BackendFault(SydneyQtError):
    """A backend call failed with a classified category."""

    def __init__(self, category: ErrorType, message: str) -> None:
        super().__init__(message)
        self.category = category
        self.message = message
