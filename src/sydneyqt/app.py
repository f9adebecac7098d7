"""SydneyApp facade for sydneyqt.

This module provides the main entry point of the package: it loads and
migrates the config, configures logging and wires the services
together for the lifetime of an ``async with`` block.
"""

from collections.abc import Callable
from typing import Any

import httpx

from sydneyqt.config import AppSettings
from sydneyqt.infra.backends.openai_backend import OpenAIBackendClient
from sydneyqt.infra.backends.sydney_backend import SydneyBackendClient
from sydneyqt.infra.storage.json_store import JsonConfigStore
from sydneyqt.infra.web import WebPageReader
from sydneyqt.infra.youtube import YoutubeClient
from sydneyqt.interfaces.backend import BackendClient
from sydneyqt.interfaces.persistence import ConfigDocumentStore
from sydneyqt.logging import configure_logging, get_logger, monthly_log_path
from sydneyqt.models.ask import AskOptions, ChatFinishResult
from sydneyqt.orchestrator import AskOrchestrator
from sydneyqt.services.backend_registry import BackendRegistry
from sydneyqt.services.config_session import ConfigSession
from sydneyqt.services.content_store import ContentReferenceStore
from sydneyqt.services.workspace_manager import WorkspaceManager
from sydneyqt.utils.tokens import count_tokens

__all__ = ["SydneyApp"]

logger = get_logger(__name__)


class SydneyApp:
    """Main facade over the sydneyqt services.

    Settings are loaded from the environment unless given. Collaborators
    that talk to the outside world can be injected; anything not
    injected is built on connect.

    Example:
        async with SydneyApp() as app:
            ws = app.workspaces.current() or app.workspaces.create()
            result = await app.ask(ws.id, AskOptions(prompt="Hello"))
    """

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        store: ConfigDocumentStore | None = None,
        http_client: httpx.AsyncClient | None = None,
        sydney_client: BackendClient | None = None,
        openai_client: BackendClient | None = None,
        token_counter: Callable[[str], int] = count_tokens,
        setup_logging: bool = True,
    ) -> None:
        """Initialize the app.

        Args:
            settings: Process settings (default: loaded from environment)
            store: Config document store (default: JSON file at
                ``settings.config_path``)
            http_client: Shared HTTP client for Sydney, YouTube and web
                pages (default: created on connect, honoring Config.proxy)
            sydney_client: Client for the built-in backend
            openai_client: Client for OpenAI-compatible backends
            token_counter: Token estimator used for model routing
            setup_logging: Configure structlog on connect
        """
        self._settings = settings or AppSettings()
        self._store = store or JsonConfigStore(self._settings.config_path)
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._sydney_client = sydney_client
        self._openai_client = openai_client
        self._token_counter = token_counter
        self._setup_logging = setup_logging

        # Wired on connect
        self._session: ConfigSession | None = None
        self._workspaces: WorkspaceManager | None = None
        self._registry: BackendRegistry | None = None
        self._content: ContentReferenceStore | None = None
        self._orchestrator: AskOrchestrator | None = None

        self._connected = False

    async def _connect(self) -> None:
        """Load the config and wire services."""
        if self._connected:
            return

        self._session = ConfigSession.load(self._store)
        config = self._session.config
        if self._setup_logging:
            self._configure_logging(config.debug)

        if self._http_client is None:
            self._http_client = httpx.AsyncClient(proxy=config.proxy or None)
        if self._sydney_client is None:
            self._sydney_client = SydneyBackendClient(self._http_client, self._settings.sydney)
        if self._openai_client is None:
            self._openai_client = OpenAIBackendClient(proxy=config.proxy)

        fetch_timeout = self._settings.fetch_timeout_seconds
        self._workspaces = WorkspaceManager(self._session)
        self._registry = BackendRegistry(
            self._session,
            self._workspaces,
            self._sydney_client,
            self._openai_client,
            token_counter=self._token_counter,
        )
        self._content = ContentReferenceStore(
            self._workspaces,
            YoutubeClient(self._http_client, timeout=fetch_timeout),
            WebPageReader(self._http_client, timeout=fetch_timeout),
            image_uploader=(
                self._sydney_client if self._settings.sydney.remote_image_upload else None
            ),
        )
        self._orchestrator = AskOrchestrator(
            self._session,
            self._workspaces,
            self._registry,
            self._content,
            default_timeout=self._settings.ask_timeout_seconds,
            rate_limit_retries=self._settings.rate_limit_retries,
            retry_backoff_seconds=self._settings.retry_backoff_seconds,
        )

        self._connected = True
        logger.info(
            "sydneyqt_connected",
            config_path=str(self._settings.config_path),
            workspaces=len(config.workspaces),
            backends=len(config.open_ai_backends),
        )

    async def _disconnect(self) -> None:
        """Finish background work and close clients."""
        if self._content is not None:
            self._content.cancel_uploads()
        if self._orchestrator is not None:
            await self._orchestrator.drain()
        if self._openai_client is not None and hasattr(self._openai_client, "close"):
            await self._openai_client.close()
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

        self._connected = False
        logger.info("sydneyqt_disconnected")

    async def __aenter__(self) -> "SydneyApp":
        """Async context manager entry - connects automatically."""
        await self._connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit - disconnects automatically."""
        await self._disconnect()

    def _ensure_connected(self) -> None:
        if not self._connected:
            raise RuntimeError("SydneyApp not connected. Use 'async with SydneyApp() as app:'")

    def _configure_logging(self, debug: bool) -> None:
        log_dir = self._settings.log_dir
        configure_logging(
            debug=debug,
            json_output=self._settings.json_logs,
            log_file=monthly_log_path(log_dir) if log_dir is not None else None,
        )

    # === SERVICES ===

    @property
    def session(self) -> ConfigSession:
        self._ensure_connected()
        assert self._session is not None
        return self._session

    @property
    def workspaces(self) -> WorkspaceManager:
        self._ensure_connected()
        assert self._workspaces is not None
        return self._workspaces

    @property
    def backends(self) -> BackendRegistry:
        self._ensure_connected()
        assert self._registry is not None
        return self._registry

    @property
    def content(self) -> ContentReferenceStore:
        self._ensure_connected()
        assert self._content is not None
        return self._content

    @property
    def orchestrator(self) -> AskOrchestrator:
        self._ensure_connected()
        assert self._orchestrator is not None
        return self._orchestrator

    # === SHORTCUTS ===

    async def ask(self, workspace_id: int, options: AskOptions, **kwargs: Any) -> ChatFinishResult:
        """Run an ask; see ``AskOrchestrator.ask``."""
        return await self.orchestrator.ask(workspace_id, options, **kwargs)

    def cancel_ask(self, workspace_id: int) -> bool:
        return self.orchestrator.cancel(workspace_id)

    def set_debug(self, debug: bool) -> None:
        """Persist the debug flag and switch the log level at once."""
        self.session.mutate(lambda c: setattr(c, "debug", debug))
        if self._setup_logging:
            self._configure_logging(debug)
        logger.info("debug_mode_changed", debug=debug)
