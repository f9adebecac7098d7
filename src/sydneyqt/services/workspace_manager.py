"""Workspace management service for sydneyqt.

This module owns the workspace collection, the current workspace
pointer and the per-workspace ask state machine.
"""

import threading
from collections.abc import Callable
from typing import Any

from sydneyqt.errors import BackendNotFoundError, WorkspaceBusyError, WorkspaceNotFoundError
from sydneyqt.logging import get_logger
from sydneyqt.models.ask import ErrorType
from sydneyqt.models.config import Config
from sydneyqt.models.workspace import BUILTIN_BACKEND, Workspace, WorkspaceState
from sydneyqt.services.config_session import ConfigSession
from sydneyqt.utils.chat_format import to_markdown

__all__ = [
    "StateListener",
    "WorkspaceManager",
]

logger = get_logger(__name__)

StateListener = Callable[[int, WorkspaceState, ErrorType | None], None]
WorkspaceMutator = Callable[[Workspace], Workspace]


class WorkspaceManager:
    """Owner of all workspaces and their ask state.

    ``update`` is the only write path for a workspace: the mutator gets
    the current frozen value and returns its replacement, which is
    validated and persisted atomically.

    State machine per workspace::

        Idle -> Asking -> Idle                 (success, cancel)
        Idle -> Asking -> Error -> Idle        (failure)

    A second ``begin_ask`` while Asking raises WorkspaceBusyError.
    Error lasts only while listeners are told about the failure.

    Example:
        manager = WorkspaceManager(session)
        ws = manager.create()
        manager.update(ws.id, lambda w: w.model_copy(update={"title": "Notes"}))
    """

    def __init__(self, session: ConfigSession) -> None:
        self._session = session
        self._states: dict[int, WorkspaceState] = {}
        self._state_locks: dict[int, threading.Lock] = {}
        self._guard = threading.Lock()
        self._listeners: list[StateListener] = []

    # === QUERIES ===

    def list(self) -> list[Workspace]:
        with self._session.lock:
            return list(self._session.config.workspaces)

    def get(self, workspace_id: int) -> Workspace:
        """Get a workspace by id.

        Raises:
            WorkspaceNotFoundError: If no workspace has this id
        """
        with self._session.lock:
            workspace = self._session.config.find_workspace(workspace_id)
        if workspace is None:
            raise WorkspaceNotFoundError(workspace_id)
        return workspace

    def current(self) -> Workspace | None:
        """Get the current workspace, or None when there are no workspaces."""
        with self._session.lock:
            current_id = self._session.config.current_workspace_id
            if current_id is None:
                return None
            return self._session.config.find_workspace(current_id)

    def state(self, workspace_id: int) -> WorkspaceState:
        self.get(workspace_id)
        with self._guard:
            return self._states.get(workspace_id, WorkspaceState.IDLE)

    # === MUTATIONS ===

    def create(self, **overrides: Any) -> Workspace:
        """Create a workspace and make it current.

        The id is one more than the largest existing id. Unless a context
        is given, it is taken from the chosen preset.

        Args:
            **overrides: Workspace field values (``id`` is not allowed)

        Raises:
            ValueError: If ``id`` is given
            BackendNotFoundError: If ``backend`` names no configured backend
        """
        if "id" in overrides:
            raise ValueError("workspace id is assigned by the manager")

        def _create(config: Config) -> Workspace:
            backend = overrides.get("backend", BUILTIN_BACKEND)
            if backend != BUILTIN_BACKEND and config.find_backend(backend) is None:
                available = [BUILTIN_BACKEND, *(b.name for b in config.open_ai_backends)]
                raise BackendNotFoundError(backend, available)

            new_id = max((w.id for w in config.workspaces), default=0) + 1
            fields: dict[str, Any] = dict(overrides)
            if "context" not in fields:
                preset = config.find_preset(fields.get("preset", "Sydney"))
                fields["context"] = preset.content if preset else ""

            workspace = Workspace.model_validate({**fields, "id": new_id})
            config.workspaces.append(workspace)
            config.current_workspace_id = new_id
            return workspace

        workspace = self._session.mutate(_create)
        logger.info("workspace_created", workspace_id=workspace.id, backend=workspace.backend)
        return workspace

    def switch_to(self, workspace_id: int) -> Workspace:
        """Make a workspace current.

        Raises:
            WorkspaceNotFoundError: If no workspace has this id
        """

        def _switch(config: Config) -> Workspace:
            workspace = config.find_workspace(workspace_id)
            if workspace is None:
                raise WorkspaceNotFoundError(workspace_id)
            config.current_workspace_id = workspace_id
            return workspace

        return self._session.mutate(_switch)

    def update(self, workspace_id: int, mutator: WorkspaceMutator) -> Workspace:
        """Replace a workspace with the mutator's result.

        The mutator runs under the config lock and must not block.

        Raises:
            WorkspaceNotFoundError: If no workspace has this id
            ValueError: If the mutator changes the id or returns an
                invalid workspace
        """

        def _update(config: Config) -> Workspace:
            index = _index_of(config, workspace_id)
            replacement = mutator(config.workspaces[index])
            if not isinstance(replacement, Workspace):
                raise TypeError(
                    f"mutator must return a Workspace, got {type(replacement).__name__}"
                )
            if replacement.id != workspace_id:
                raise ValueError("a workspace id cannot change")
            # model_copy(update=...) skips validation
            replacement = Workspace.model_validate(replacement.model_dump())
            config.workspaces[index] = replacement
            return replacement

        return self._session.mutate(_update)

    def delete(self, workspace_id: int) -> None:
        """Delete a workspace.

        If it was current, the previous workspace (or else the next one)
        becomes current in the same write; with none left the pointer is
        cleared.

        Raises:
            WorkspaceNotFoundError: If no workspace has this id
            WorkspaceBusyError: If the workspace has an ask in flight
        """

        def _delete(config: Config) -> None:
            index = _index_of(config, workspace_id)
            del config.workspaces[index]
            if config.current_workspace_id == workspace_id:
                if config.workspaces:
                    neighbour = config.workspaces[max(index - 1, 0)]
                    config.current_workspace_id = neighbour.id
                else:
                    config.current_workspace_id = None

        with self._state_lock(workspace_id):
            if self._states.get(workspace_id, WorkspaceState.IDLE) != WorkspaceState.IDLE:
                raise WorkspaceBusyError(workspace_id)
            self._session.mutate(_delete)
            with self._guard:
                self._states.pop(workspace_id, None)
                self._state_locks.pop(workspace_id, None)

        logger.info(
            "workspace_deleted",
            workspace_id=workspace_id,
            current_workspace_id=self._session.config.current_workspace_id,
        )

    # === ASK STATE ===

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback for state changes."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        self._listeners.remove(listener)

    def begin_ask(self, workspace_id: int) -> None:
        """Move a workspace from Idle to Asking.

        Raises:
            WorkspaceNotFoundError: If no workspace has this id
            WorkspaceBusyError: If the workspace is not Idle
        """
        self.get(workspace_id)
        with self._state_lock(workspace_id):
            if self._states.get(workspace_id, WorkspaceState.IDLE) != WorkspaceState.IDLE:
                raise WorkspaceBusyError(workspace_id)
            self._states[workspace_id] = WorkspaceState.ASKING
        self._notify(workspace_id, WorkspaceState.ASKING, None)

    def end_ask(self, workspace_id: int, error: ErrorType | None = None) -> None:
        """Finish an ask and return the workspace to Idle.

        A real failure passes through Error first; a cancellation does not.
        Error is held while listeners hear about the failure, so ``state()``
        reports it to them; a new ask is refused until Idle.
        """
        failed = error is not None and error != ErrorType.CANCELED

        with self._state_lock(workspace_id):
            if self._states.get(workspace_id) != WorkspaceState.ASKING:
                logger.warning("end_ask_without_begin", workspace_id=workspace_id)
                return
            if failed:
                self._states[workspace_id] = WorkspaceState.ERROR

        if failed:
            self._notify(workspace_id, WorkspaceState.ERROR, error)

        with self._state_lock(workspace_id):
            self._states[workspace_id] = WorkspaceState.IDLE
        self._notify(workspace_id, WorkspaceState.IDLE, error)

    # === EXPORT ===

    def export_markdown(self, workspace_id: int) -> str:
        """Render a workspace conversation, plus pending input, as Markdown."""
        workspace = self.get(workspace_id)
        return to_markdown(workspace.context, workspace.input)

    # === INTERNALS ===

    def _state_lock(self, workspace_id: int) -> threading.Lock:
        with self._guard:
            lock = self._state_locks.get(workspace_id)
            if lock is None:
                lock = threading.Lock()
                self._state_locks[workspace_id] = lock
            return lock

    def _notify(self, workspace_id: int, state: WorkspaceState, error: ErrorType | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(workspace_id, state, error)
            except Exception as e:
                logger.warning(
                    "state_listener_failed",
                    workspace_id=workspace_id,
                    state=state.value,
                    error=str(e),
                )


def _index_of(config: Config, workspace_id: int) -> int:
    for index, workspace in enumerate(config.workspaces):
        if workspace.id == workspace_id:
            return index
    raise WorkspaceNotFoundError(workspace_id)
