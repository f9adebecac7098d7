"""Workspace models for sydneyqt.

A workspace is one persistent chat session with its own backend,
context and attachments.
"""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from sydneyqt.models.reference import DataReference

__all__ = [
    "BUILTIN_BACKEND",
    "DEFAULT_WORKSPACE_TITLE",
    "Workspace",
    "WorkspaceState",
]

BUILTIN_BACKEND = "Sydney"
DEFAULT_WORKSPACE_TITLE = "New Chat"


class WorkspaceState(StrEnum):
    """Ask lifecycle of a workspace. Not persisted."""

    IDLE = "idle"
    ASKING = "asking"
    ERROR = "error"


class Workspace(BaseModel, frozen=True):
    """One conversation session.

    Frozen: WorkspaceManager.update replaces the whole value.

    Attributes:
        id: Workspace identity, unique within the config
        title: Display title
        context: Conversation context in ``[role](#type)`` block format
        input: Pending draft input
        backend: BackendRegistry entry name (``Sydney`` for the built-in one)
        model: Model hint for the workspace
        locale: Conversation locale
        preset: Name of the preset the context was created from
        conversation_style: Sydney conversation style
        no_search: Disable web search on the Sydney backend
        created_at: Creation time
        use_classic: Use the classic Sydney chat mode
        gpt_4_turbo: Request GPT-4 Turbo on the Sydney backend
        persistent_input: Keep the input after a successful ask
        plugins: Enabled Sydney plugin identifiers
        data_references: Attachments, in attach order
    """

    id: int
    title: str = DEFAULT_WORKSPACE_TITLE
    context: str = ""
    input: str = ""
    backend: str = BUILTIN_BACKEND
    model: str = ""
    locale: str = "en-US"
    preset: str = "Sydney"
    conversation_style: str = "Creative"
    no_search: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    use_classic: bool = False
    gpt_4_turbo: bool = False
    persistent_input: bool = False
    plugins: list[str] = Field(default_factory=list)
    data_references: list[DataReference] = Field(default_factory=list)

    def find_reference(self, uuid: str) -> DataReference | None:
        """Get the attached reference with the given uuid."""
        for ref in self.data_references:
            if ref.uuid == uuid:
                return ref
        return None
