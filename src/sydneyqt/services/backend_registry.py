"""Backend registry for sydneyqt.

This module resolves backend names to typed handles. The built-in
Sydney backend is always present; OpenAI-compatible backends come from
the live config and are read at resolution time.
"""

from collections.abc import Callable

from sydneyqt.errors import BackendNotFoundError
from sydneyqt.interfaces.backend import BackendClient, BackendHandle, OpenAIHandle, SydneyHandle
from sydneyqt.logging import get_logger
from sydneyqt.models.config import Config, OpenAIBackend
from sydneyqt.models.workspace import BUILTIN_BACKEND, Workspace
from sydneyqt.services.config_session import ConfigSession
from sydneyqt.services.workspace_manager import WorkspaceManager
from sydneyqt.utils.tokens import count_tokens

__all__ = [
    "BackendRegistry",
]

logger = get_logger(__name__)


class BackendRegistry:
    """Name-to-handle resolution for backends.

    Resolution is pure: it reads the config and returns a handle, it
    never talks to the network.

    Example:
        registry = BackendRegistry(session, workspaces, sydney_client, openai_client)
        handle = registry.resolve("gpt-main", text=context + prompt)
    """

    def __init__(
        self,
        session: ConfigSession,
        workspaces: WorkspaceManager,
        sydney_client: BackendClient,
        openai_client: BackendClient,
        token_counter: Callable[[str], int] = count_tokens,
    ) -> None:
        """Initialize registry.

        Args:
            session: Config session holding the backend profiles
            workspaces: Workspace manager, used to rebind removed backends
            sydney_client: Client for the built-in backend
            openai_client: Client for OpenAI-compatible backends
            token_counter: Token estimator used for model routing
        """
        self._session = session
        self._workspaces = workspaces
        self._sydney_client = sydney_client
        self._openai_client = openai_client
        self._count_tokens = token_counter

    def names(self) -> list[str]:
        """List all backend names, the built-in one first."""
        return [BUILTIN_BACKEND, *(b.name for b in self.list_backends())]

    def resolve(
        self,
        name: str,
        *,
        workspace: Workspace | None = None,
        text: str = "",
        model: str = "",
    ) -> BackendHandle:
        """Resolve a backend name to a handle.

        Args:
            name: Backend name (``Sydney`` or an OpenAI backend name)
            workspace: Workspace whose conversation options bind to a
                Sydney handle
            text: Merged context and prompt, used for model routing
            model: Explicit model overriding short/long routing

        Returns:
            SydneyHandle or OpenAIHandle

        Raises:
            BackendNotFoundError: If no backend has this name
        """
        if name == BUILTIN_BACKEND:
            if workspace is None:
                return SydneyHandle(name=name, client=self._sydney_client)
            return SydneyHandle(
                name=name,
                client=self._sydney_client,
                conversation_style=workspace.conversation_style,
                locale=workspace.locale,
                no_search=workspace.no_search,
                use_classic=workspace.use_classic,
                gpt_4_turbo=workspace.gpt_4_turbo,
                plugins=tuple(workspace.plugins),
            )

        with self._session.lock:
            backend = self._session.config.find_backend(name)
        if backend is None:
            raise BackendNotFoundError(name, self.names())

        return OpenAIHandle(
            name=name,
            client=self._openai_client,
            backend=backend,
            model=model or self.route_model(backend, text),
        )

    def route_model(self, backend: OpenAIBackend, text: str) -> str:
        """Pick the short model below the token threshold, else the long one."""
        tokens = self._count_tokens(text)
        if tokens < backend.openai_threshold:
            model = backend.openai_short_model
        else:
            model = backend.openai_long_model
        logger.debug(
            "model_routed",
            backend=backend.name,
            tokens=tokens,
            threshold=backend.openai_threshold,
            model=model,
        )
        return model

    # === BACKEND EDITING ===

    def list_backends(self) -> list[OpenAIBackend]:
        with self._session.lock:
            return list(self._session.config.open_ai_backends)

    def upsert_backend(self, backend: OpenAIBackend) -> None:
        """Add a backend, or replace the one with the same name.

        Raises:
            ValueError: If the name is the reserved built-in name
        """
        if backend.name == BUILTIN_BACKEND:
            raise ValueError(f"backend name {BUILTIN_BACKEND!r} is reserved")

        def _upsert(config: Config) -> None:
            for index, existing in enumerate(config.open_ai_backends):
                if existing.name == backend.name:
                    config.open_ai_backends[index] = backend
                    return
            config.open_ai_backends.append(backend)

        self._session.mutate(_upsert)
        logger.info("backend_saved", backend=backend.name)

    def remove_backend(self, name: str) -> None:
        """Remove a backend; workspaces bound to it are rebound to Sydney.

        Raises:
            BackendNotFoundError: If no OpenAI backend has this name
        """
        with self._session.lock:
            config = self._session.config
            if config.find_backend(name) is None:
                raise BackendNotFoundError(name, self.names())

            bound = [w.id for w in config.workspaces if w.backend == name]
            for workspace_id in bound:
                self._workspaces.update(
                    workspace_id,
                    lambda w: w.model_copy(update={"backend": BUILTIN_BACKEND}),
                )
            self._session.mutate(
                lambda c: setattr(
                    c, "open_ai_backends", [b for b in c.open_ai_backends if b.name != name]
                )
            )

        logger.info("backend_removed", backend=name, rebound_workspaces=bound)
