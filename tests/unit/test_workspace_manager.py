"""Unit tests for WorkspaceManager."""

from typing import Any

import pytest
from mocks.memory_store import InMemoryConfigStore

from sydneyqt.errors import BackendNotFoundError, WorkspaceBusyError, WorkspaceNotFoundError
from sydneyqt.migrations.builtin import DEFAULT_SYDNEY_PRESET
from sydneyqt.models.ask import ErrorType
from sydneyqt.models.config import OpenAIBackend
from sydneyqt.models.workspace import BUILTIN_BACKEND, Workspace, WorkspaceState
from sydneyqt.services.config_session import ConfigSession
from sydneyqt.services.workspace_manager import WorkspaceManager


class TestWorkspaceCrud:
    """Tests for creating, switching, updating and deleting workspaces."""

    def test_create_defaults(self, workspaces: WorkspaceManager) -> None:
        workspace = workspaces.create()

        assert workspace.id == 1
        assert workspace.backend == BUILTIN_BACKEND
        assert workspace.context == DEFAULT_SYDNEY_PRESET
        assert workspaces.current() == workspace

    def test_create_assigns_increasing_ids(self, workspaces: WorkspaceManager) -> None:
        ids = [workspaces.create().id for _ in range(3)]
        assert ids == [1, 2, 3]

        workspaces.delete(2)
        assert workspaces.create().id == 4

    def test_create_with_overrides(self, workspaces: WorkspaceManager) -> None:
        workspace = workspaces.create(title="Notes", context="", locale="de-DE")
        assert workspace.title == "Notes"
        assert workspace.context == ""
        assert workspace.locale == "de-DE"

    def test_create_rejects_id(self, workspaces: WorkspaceManager) -> None:
        with pytest.raises(ValueError):
            workspaces.create(id=7)

    def test_create_rejects_unknown_backend(self, workspaces: WorkspaceManager) -> None:
        with pytest.raises(BackendNotFoundError):
            workspaces.create(backend="missing")
        assert workspaces.list() == []

    def test_create_with_openai_backend(
        self,
        session: ConfigSession,
        workspaces: WorkspaceManager,
        sample_backend: OpenAIBackend,
    ) -> None:
        session.mutate(lambda c: c.open_ai_backends.append(sample_backend))
        workspace = workspaces.create(backend="gpt")
        assert workspace.backend == "gpt"

    def test_get_unknown(self, workspaces: WorkspaceManager) -> None:
        with pytest.raises(WorkspaceNotFoundError):
            workspaces.get(42)

    def test_switch_to(self, workspaces: WorkspaceManager) -> None:
        first = workspaces.create()
        workspaces.create()

        workspaces.switch_to(first.id)
        assert workspaces.current() == first

        with pytest.raises(WorkspaceNotFoundError):
            workspaces.switch_to(99)

    def test_update(self, workspaces: WorkspaceManager, store: InMemoryConfigStore) -> None:
        workspace = workspaces.create()
        saves = store.saves

        updated = workspaces.update(workspace.id, lambda w: w.model_copy(update={"title": "T"}))

        assert updated.title == "T"
        assert workspaces.get(workspace.id).title == "T"
        assert store.saves == saves + 1
        assert store.document is not None
        assert store.document["workspaces"][0]["title"] == "T"

    def test_update_cannot_change_id(self, workspaces: WorkspaceManager) -> None:
        workspace = workspaces.create()
        with pytest.raises(ValueError):
            workspaces.update(workspace.id, lambda w: w.model_copy(update={"id": 5}))
        assert workspaces.get(workspace.id).id == workspace.id

    def test_update_revalidates(self, workspaces: WorkspaceManager) -> None:
        workspace = workspaces.create()
        # model_copy does not validate, so the manager must
        with pytest.raises(ValueError):
            workspaces.update(workspace.id, lambda w: w.model_copy(update={"title": 123}))
        assert workspaces.get(workspace.id).title == workspace.title

    def test_failed_save_leaves_workspaces_unchanged(
        self, workspaces: WorkspaceManager, store: InMemoryConfigStore
    ) -> None:
        store.save_error = OSError("disk full")

        with pytest.raises(OSError):
            workspaces.create()

        assert workspaces.list() == []
        assert workspaces.current() is None

    def test_failed_save_keeps_previous_value(
        self, workspaces: WorkspaceManager, store: InMemoryConfigStore
    ) -> None:
        workspace = workspaces.create(title="Notes")
        store.save_error = OSError("disk full")

        with pytest.raises(OSError):
            workspaces.update(workspace.id, lambda w: w.model_copy(update={"title": "T"}))
        with pytest.raises(OSError):
            workspaces.delete(workspace.id)

        assert workspaces.list() == [workspace]
        assert store.document is not None
        assert store.document["workspaces"][0]["title"] == "Notes"

        store.save_error = None
        updated = workspaces.update(workspace.id, lambda w: w.model_copy(update={"title": "T"}))
        assert updated.title == "T"

    def test_delete_current_selects_previous(self, workspaces: WorkspaceManager) -> None:
        a, b, c = workspaces.create(), workspaces.create(), workspaces.create()
        workspaces.switch_to(b.id)

        workspaces.delete(b.id)
        assert workspaces.current() == a

        workspaces.switch_to(a.id)
        workspaces.delete(a.id)
        assert workspaces.current() == c

    def test_delete_last_clears_current(
        self, workspaces: WorkspaceManager, session: ConfigSession
    ) -> None:
        workspace = workspaces.create()
        workspaces.delete(workspace.id)

        assert workspaces.current() is None
        assert session.config.current_workspace_id is None

    def test_delete_never_dangles(self, workspaces: WorkspaceManager) -> None:
        created = [workspaces.create() for _ in range(5)]
        workspaces.switch_to(created[2].id)
        for index in (2, 0, 4, 1, 3):
            workspaces.delete(created[index].id)
            current = workspaces.current()
            remaining = {w.id for w in workspaces.list()}
            assert (current is None) == (not remaining)
            if current is not None:
                assert current.id in remaining

    def test_delete_non_current_keeps_current(self, workspaces: WorkspaceManager) -> None:
        a, b = workspaces.create(), workspaces.create()
        workspaces.delete(a.id)
        assert workspaces.current() == b

    def test_delete_unknown(self, workspaces: WorkspaceManager) -> None:
        with pytest.raises(WorkspaceNotFoundError):
            workspaces.delete(3)

    def test_export_markdown(self, workspaces: WorkspaceManager) -> None:
        workspace = workspaces.create(
            context="[user](#message)\nHi\n\n[assistant](#message)\nHello\n",
            input="Pending",
        )
        markdown = workspaces.export_markdown(workspace.id)
        assert markdown == (
            "# \\[user\\](#message)\nHi\n\n"
            "# \\[assistant\\](#message)\nHello\n\n"
            "# \\[user\\](#message)\nPending\n\n"
        )


class TestAskState:
    """Tests for the per-workspace ask state machine."""

    def test_initial_state(self, workspaces: WorkspaceManager) -> None:
        workspace = workspaces.create()
        assert workspaces.state(workspace.id) == WorkspaceState.IDLE

    def test_begin_and_end(self, workspaces: WorkspaceManager) -> None:
        workspace = workspaces.create()

        workspaces.begin_ask(workspace.id)
        assert workspaces.state(workspace.id) == WorkspaceState.ASKING

        workspaces.end_ask(workspace.id)
        assert workspaces.state(workspace.id) == WorkspaceState.IDLE

    def test_second_begin_rejected(self, workspaces: WorkspaceManager) -> None:
        workspace = workspaces.create()
        workspaces.begin_ask(workspace.id)

        with pytest.raises(WorkspaceBusyError):
            workspaces.begin_ask(workspace.id)
        assert workspaces.state(workspace.id) == WorkspaceState.ASKING

    def test_independent_workspaces(self, workspaces: WorkspaceManager) -> None:
        a, b = workspaces.create(), workspaces.create()
        workspaces.begin_ask(a.id)
        workspaces.begin_ask(b.id)
        assert workspaces.state(b.id) == WorkspaceState.ASKING

    def test_begin_unknown(self, workspaces: WorkspaceManager) -> None:
        with pytest.raises(WorkspaceNotFoundError):
            workspaces.begin_ask(10)

    def test_delete_while_asking_rejected(self, workspaces: WorkspaceManager) -> None:
        workspace = workspaces.create()
        workspaces.begin_ask(workspace.id)

        with pytest.raises(WorkspaceBusyError):
            workspaces.delete(workspace.id)
        assert workspaces.get(workspace.id) == workspace

    def test_listener_transitions(self, workspaces: WorkspaceManager) -> None:
        events: list[tuple[Any, ...]] = []
        workspaces.add_listener(lambda wid, state, err: events.append((wid, state, err)))
        workspace = workspaces.create()

        workspaces.begin_ask(workspace.id)
        workspaces.end_ask(workspace.id, ErrorType.TIMEOUT)
        workspaces.begin_ask(workspace.id)
        workspaces.end_ask(workspace.id, ErrorType.CANCELED)

        assert [state for _, state, _ in events] == [
            WorkspaceState.ASKING,
            WorkspaceState.ERROR,
            WorkspaceState.IDLE,
            WorkspaceState.ASKING,
            WorkspaceState.IDLE,
        ]
        assert events[1][2] == ErrorType.TIMEOUT

    def test_error_state_visible_to_listeners(self, workspaces: WorkspaceManager) -> None:
        workspace = workspaces.create()
        observed: list[WorkspaceState] = []
        workspaces.add_listener(lambda wid, state, err: observed.append(workspaces.state(wid)))

        workspaces.begin_ask(workspace.id)
        workspaces.end_ask(workspace.id, ErrorType.RATE_LIMITED)

        assert observed == [WorkspaceState.ASKING, WorkspaceState.ERROR, WorkspaceState.IDLE]
        assert workspaces.state(workspace.id) == WorkspaceState.IDLE

    def test_begin_rejected_while_reporting_error(self, workspaces: WorkspaceManager) -> None:
        workspace = workspaces.create()
        rejected: list[bool] = []

        def retry_on_error(wid: int, state: WorkspaceState, error: ErrorType | None) -> None:
            if state != WorkspaceState.ERROR:
                return
            try:
                workspaces.begin_ask(wid)
            except WorkspaceBusyError:
                rejected.append(True)

        workspaces.add_listener(retry_on_error)
        workspaces.begin_ask(workspace.id)
        workspaces.end_ask(workspace.id, ErrorType.TIMEOUT)

        assert rejected == [True]
        assert workspaces.state(workspace.id) == WorkspaceState.IDLE

    def test_failing_listener_does_not_break_state(self, workspaces: WorkspaceManager) -> None:
        def broken(workspace_id: int, state: WorkspaceState, error: ErrorType | None) -> None:
            raise RuntimeError("listener bug")

        workspaces.add_listener(broken)
        workspace = workspaces.create()

        workspaces.begin_ask(workspace.id)
        workspaces.end_ask(workspace.id)
        assert workspaces.state(workspace.id) == WorkspaceState.IDLE

        workspaces.remove_listener(broken)

    def test_end_without_begin_is_ignored(self, workspaces: WorkspaceManager) -> None:
        workspace = workspaces.create()
        workspaces.end_ask(workspace.id)
        assert workspaces.state(workspace.id) == WorkspaceState.IDLE


def test_workspace_is_frozen_value(workspaces: WorkspaceManager) -> None:
    workspace = workspaces.create()
    assert isinstance(workspace, Workspace)
    assert workspaces.list() == [workspace]
