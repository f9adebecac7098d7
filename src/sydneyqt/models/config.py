"""Persisted configuration models for sydneyqt.

Config is the root of the persisted user document. It is loaded and
migrated once by ConfigSession and then mutated only through the
services that own its parts.
"""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from sydneyqt.models.workspace import BUILTIN_BACKEND, Workspace

__all__ = [
    "Config",
    "Migration",
    "OpenAIBackend",
    "Preset",
]


class Preset(BaseModel, frozen=True):
    """Named reusable prompt template."""

    name: str
    content: str = ""


class OpenAIBackend(BaseModel, frozen=True):
    """An OpenAI-compatible backend profile.

    Attributes:
        name: Unique profile name, referenced by Workspace.backend
        openai_key: API key
        openai_endpoint: Base URL of the compatible API
        openai_short_model: Model used below the token threshold
        openai_long_model: Model used at or above the token threshold
        openai_threshold: Token count deciding short vs long model
        openai_temperature: Sampling temperature
        frequency_penalty: Frequency penalty
        presence_penalty: Presence penalty
        max_tokens: Completion token limit (0 means provider default)
    """

    name: str
    openai_key: str = ""
    openai_endpoint: str = "https://api.openai.com/v1"
    openai_short_model: str = "gpt-4o-mini"
    openai_long_model: str = "gpt-4o"
    openai_threshold: int = Field(default=3500, ge=0)
    openai_temperature: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    max_tokens: int = Field(default=0, ge=0)


class Migration(BaseModel):
    """Ordered, append-only record of applied migration ids.

    A legacy record of per-migration booleans is accepted and turned
    into the list of ids flagged true.
    """

    applied: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _from_legacy_flags(cls, data: Any) -> Any:
        if isinstance(data, dict) and "applied" not in data:
            return {"applied": [key for key, value in data.items() if value is True]}
        return data

    def is_applied(self, migration_id: str) -> bool:
        return migration_id in self.applied

    def mark_applied(self, migration_id: str) -> None:
        """Record a migration id. Existing ids are never removed."""
        if migration_id not in self.applied:
            self.applied.append(migration_id)


class Config(BaseModel):
    """Process-wide persisted root document."""

    model_config = ConfigDict(extra="ignore")

    debug: bool = False
    presets: list[Preset] = Field(default_factory=list)
    enter_mode: str = "Enter"
    proxy: str = ""
    no_suggestion: bool = False
    font_family: str = ""
    font_size: int = 18
    stretch_factor: int = 2
    revoke_reply_text: str = "Continue from where you stopped."
    revoke_reply_count: int = 0
    workspaces: list[Workspace] = Field(default_factory=list)
    current_workspace_id: int | None = None
    quick: list[str] = Field(default_factory=list)
    disable_direct_quick: bool = False
    open_ai_backends: list[OpenAIBackend] = Field(default_factory=list)
    wss_domain: str = "sydney.bing.com"
    dark_mode: bool = False
    no_image_removal_after_chat: bool = False
    no_file_removal_after_chat: bool = False
    create_conversation_url: str = ""
    theme_color: str = "#FF9800"
    disable_no_search_loader: bool = False
    bypass_server: str = ""
    disable_summary_title_generation: bool = False
    migration: Migration = Field(default_factory=Migration)

    @model_validator(mode="after")
    def _check_invariants(self) -> Self:
        _require_unique("preset", [p.name for p in self.presets])
        _require_unique("backend", [b.name for b in self.open_ai_backends])
        _require_unique("workspace id", [w.id for w in self.workspaces])
        if any(b.name == BUILTIN_BACKEND for b in self.open_ai_backends):
            raise ValueError(f"backend name {BUILTIN_BACKEND!r} is reserved")
        # Dangling pointers are repaired rather than rejected.
        ids = {w.id for w in self.workspaces}
        if self.current_workspace_id not in ids:
            self.current_workspace_id = self.workspaces[0].id if self.workspaces else None
        return self

    def find_workspace(self, workspace_id: int) -> Workspace | None:
        for workspace in self.workspaces:
            if workspace.id == workspace_id:
                return workspace
        return None

    def find_backend(self, name: str) -> OpenAIBackend | None:
        for backend in self.open_ai_backends:
            if backend.name == name:
                return backend
        return None

    def find_preset(self, name: str) -> Preset | None:
        for preset in self.presets:
            if preset.name == name:
                return preset
        return None


def _require_unique(label: str, values: list[Any]) -> None:
    seen: set[Any] = set()
    for value in values:
        if value in seen:
            raise ValueError(f"duplicate {label}: {value!r}")
        seen.add(value)
