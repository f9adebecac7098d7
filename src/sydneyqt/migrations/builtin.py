"""Built-in config migrations for sydneyqt.

Each class rewrites the raw config document for one schema change and
registers itself with MigrationRegistry on import.
"""

from typing import Any

from typing_extensions import override

from sydneyqt.errors import MigrationError
from sydneyqt.logging import get_logger
from sydneyqt.migrations.base import ConfigMigration
from sydneyqt.migrations.registry import MigrationRegistry
from sydneyqt.models.config import OpenAIBackend
from sydneyqt.models.reference import ReferenceKind
from sydneyqt.models.workspace import BUILTIN_BACKEND
from sydneyqt.utils.ids import legacy_reference_uuid

__all__ = [
    "DEFAULT_SYDNEY_PRESET",
    "DEFAULT_THEME_COLOR",
    "DataReferencesMigration",
    "OpenAIBackendsMigration",
    "Quick20240326Migration",
    "Quick20240405Migration",
    "SydneyPresetMigration",
    "ThemeColorMigration",
    "WorkspaceBackendMigration",
]

logger = get_logger(__name__)

DEFAULT_SYDNEY_PRESET = (
    "[system](#additional_instructions)\n"
    "You're an AI assistant named Sydney. Instead of introducing yourself as Bing, "
    "you introduce yourself as Sydney. You write in a casual, friendly tone and "
    "always generate 3 suggestions."
)
DEFAULT_THEME_COLOR = "#FF9800"

LEGACY_BACKEND_NAME = "ChatGPT"

# Legacy top-level key -> OpenAIBackend field
_LEGACY_BACKEND_KEYS = {
    "open_ai_key": "openai_key",
    "open_ai_api_host": "openai_endpoint",
    "open_ai_short_model": "openai_short_model",
    "open_ai_long_model": "openai_long_model",
    "open_ai_threshold": "openai_threshold",
    "open_ai_temperature": "openai_temperature",
    "frequency_penalty": "frequency_penalty",
    "presence_penalty": "presence_penalty",
    "open_ai_max_tokens": "max_tokens",
}

_REFERENCE_TYPE_ALIASES = {
    "file": ReferenceKind.DOCUMENT.value,
    "youtube": ReferenceKind.VIDEO.value,
    "image_url": ReferenceKind.IMAGE.value,
    "url": ReferenceKind.WEBPAGE.value,
}


def _list_field(document: dict[str, Any], key: str, migration_id: str) -> list[Any]:
    value = document.get(key)
    if value is None:
        value = []
        document[key] = value
    if not isinstance(value, list):
        raise MigrationError(migration_id, f"{key} is not a list")
    return value


def _append_quick(document: dict[str, Any], migration_id: str, prompts: list[str]) -> None:
    quick = _list_field(document, "quick", migration_id)
    for prompt in prompts:
        if prompt not in quick:
            quick.append(prompt)


@MigrationRegistry.register
class OpenAIBackendsMigration(ConfigMigration):
    """Move the legacy single OpenAI profile into ``open_ai_backends``."""

    @property
    @override
    def migration_id(self) -> str:
        return "open_ai_backends_20240301"

    @override
    def apply(self, document: dict[str, Any]) -> None:
        legacy = {key: document[key] for key in _LEGACY_BACKEND_KEYS if key in document}
        if not legacy:
            return

        backends = _list_field(document, "open_ai_backends", self.migration_id)
        if not any(isinstance(b, dict) and b.get("name") == LEGACY_BACKEND_NAME for b in backends):
            fields = {_LEGACY_BACKEND_KEYS[key]: value for key, value in legacy.items()}
            backend = OpenAIBackend.model_validate({"name": LEGACY_BACKEND_NAME, **fields})
            backends.insert(0, backend.model_dump(mode="json"))
            logger.debug("legacy_backend_migrated", name=LEGACY_BACKEND_NAME)

        for key in legacy:
            del document[key]


@MigrationRegistry.register
class SydneyPresetMigration(ConfigMigration):
    """Reset the Sydney preset to the current default and put it first."""

    @property
    @override
    def migration_id(self) -> str:
        return "sydney_preset_20240304"

    @override
    def apply(self, document: dict[str, Any]) -> None:
        presets = _list_field(document, "presets", self.migration_id)
        kept = [p for p in presets if not (isinstance(p, dict) and p.get("name") == "Sydney")]
        presets[:] = [{"name": "Sydney", "content": DEFAULT_SYDNEY_PRESET}, *kept]


@MigrationRegistry.register
class ThemeColorMigration(ConfigMigration):
    @property
    @override
    def migration_id(self) -> str:
        return "theme_color_20240304"

    @override
    def apply(self, document: dict[str, Any]) -> None:
        if not document.get("theme_color"):
            document["theme_color"] = DEFAULT_THEME_COLOR


@MigrationRegistry.register
class Quick20240326Migration(ConfigMigration):
    @property
    @override
    def migration_id(self) -> str:
        return "quick_20240326"

    @override
    def apply(self, document: dict[str, Any]) -> None:
        _append_quick(
            document,
            self.migration_id,
            [
                "Continue from where you stopped.",
                "Translate the text above into English.",
                "Explain the content above in simpler terms.",
            ],
        )


@MigrationRegistry.register
class Quick20240405Migration(ConfigMigration):
    @property
    @override
    def migration_id(self) -> str:
        return "quick_20240405"

    @override
    def apply(self, document: dict[str, Any]) -> None:
        _append_quick(
            document,
            self.migration_id,
            [
                "Summarize the conversation so far.",
                "Rewrite the text above to be more concise.",
            ],
        )


@MigrationRegistry.register
class DataReferencesMigration(ConfigMigration):
    """Rename legacy reference types and give every reference a uuid.

    Reference uuids generated here are deterministic (workspace id and
    position), so running the migration twice yields the same document.
    """

    @property
    @override
    def migration_id(self) -> str:
        return "data_references_20240420"

    @override
    def apply(self, document: dict[str, Any]) -> None:
        known = {kind.value for kind in ReferenceKind}

        for workspace in _list_field(document, "workspaces", self.migration_id):
            if not isinstance(workspace, dict):
                raise MigrationError(self.migration_id, "workspace entry is not an object")
            references = _list_field(workspace, "data_references", self.migration_id)

            for index, ref in enumerate(references):
                if not isinstance(ref, dict):
                    raise MigrationError(self.migration_id, "data reference is not an object")

                ref_type = _REFERENCE_TYPE_ALIASES.get(ref.get("type"), ref.get("type"))
                if ref_type not in known:
                    raise MigrationError(
                        self.migration_id,
                        f"unknown data reference type {ref.get('type')!r} "
                        f"in workspace {workspace.get('id')}",
                    )
                ref["type"] = ref_type

                if not ref.get("uuid"):
                    ref["uuid"] = legacy_reference_uuid(workspace["id"], index)


@MigrationRegistry.register
class WorkspaceBackendMigration(ConfigMigration):
    """Rebind workspaces whose backend no longer exists to Sydney."""

    @property
    @override
    def migration_id(self) -> str:
        return "workspace_backend_20240425"

    @override
    def apply(self, document: dict[str, Any]) -> None:
        names = {BUILTIN_BACKEND}
        for backend in _list_field(document, "open_ai_backends", self.migration_id):
            if isinstance(backend, dict) and "name" in backend:
                names.add(backend["name"])

        for workspace in _list_field(document, "workspaces", self.migration_id):
            if not isinstance(workspace, dict):
                raise MigrationError(self.migration_id, "workspace entry is not an object")
            backend = workspace.get("backend") or BUILTIN_BACKEND
            if backend not in names:
                logger.debug(
                    "workspace_backend_rebound",
                    workspace_id=workspace.get("id"),
                    backend=backend,
                )
                backend = BUILTIN_BACKEND
            workspace["backend"] = backend
