"""Ask orchestration for sydneyqt.

This module runs one ask end to end: state transition, reference
merge, backend resolution, dispatch, result reduction and commit.
Every backend fault, timeout and cancellation is reduced to a
ChatFinishResult.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from typing import Any, TypeVar

from pydantic import ValidationError

from sydneyqt.errors import BackendFault, BackendNotFoundError, IngestError, SydneyQtError
from sydneyqt.interfaces.backend import BackendHandle, ChunkCallback
from sydneyqt.logging import get_logger
from sydneyqt.models.ask import (
    AskAttachments,
    AskOptions,
    AskType,
    ChatFinishResult,
    ConciseAnswerReq,
    ErrorType,
    GenerateImageResult,
    GenerateMusicResult,
    RawBackendResult,
)
from sydneyqt.models.reference import (
    DataReference,
    DocumentReference,
    ImageReference,
    ReferenceKind,
    VideoReference,
    WebpageReference,
)
from sydneyqt.models.workspace import DEFAULT_WORKSPACE_TITLE, Workspace
from sydneyqt.services.backend_registry import BackendRegistry
from sydneyqt.services.config_session import ConfigSession
from sydneyqt.services.content_store import ContentReferenceStore
from sydneyqt.services.workspace_manager import WorkspaceManager
from sydneyqt.utils.chat_format import ChatMessage, append_messages
from sydneyqt.utils.retry import retry_async

T = TypeVar("T")

__all__ = [
    "AskOrchestrator",
    "merge_references",
]

logger = get_logger(__name__)

TITLE_PROMPT = (
    "Summarize the conversation above as a title of at most 8 words. "
    "Reply with the title only, without quotes."
)
_MAX_TITLE_LENGTH = 60


def _reference_message(ref: DataReference) -> ChatMessage | None:
    """Render a text-bearing reference as a context block."""
    if isinstance(ref, DocumentReference):
        return ChatMessage("user", "document", f"{ref.data.name}\n{ref.data.text}")
    if isinstance(ref, WebpageReference):
        return ChatMessage("user", "webpage", f"{ref.data.url}\n{ref.data.content}")
    if isinstance(ref, VideoReference):
        lines = [f"{ref.data.details.title} ({ref.data.caption.name})"]
        lines.extend(f"[{t.start:.1f}] {t.value}" for t in ref.data.transcript)
        return ChatMessage("user", "video_transcript", "\n".join(lines))
    return None


def merge_references(context: str, references: list[DataReference]) -> str:
    """Append the text of references to a context, in attach order.

    Image references carry no text and are sent as attachments instead.
    """
    messages = [m for m in (_reference_message(ref) for ref in references) if m is not None]
    if not messages:
        return context
    return append_messages(context, messages)


def _relevant_references(workspace: Workspace, ask_type: AskType) -> list[DataReference]:
    if ask_type == AskType.TEXT:
        return list(workspace.data_references)
    if ask_type == AskType.DOCUMENT_QA:
        return [
            ref
            for ref in workspace.data_references
            if ref.type in (ReferenceKind.DOCUMENT, ReferenceKind.WEBPAGE)
        ]
    return []


def _build_attachments(options: AskOptions, references: list[DataReference]) -> AskAttachments:
    image_urls: list[str] = []
    remote_urls: list[str] = []
    if options.image_url:
        image_urls.append(options.image_url)
        if not options.image_url.startswith("data:"):
            remote_urls.append(options.image_url)
    for ref in references:
        if isinstance(ref, ImageReference):
            image_urls.append(ref.data.base64_url)
            if ref.data.bing_url:
                remote_urls.append(ref.data.bing_url)
    return AskAttachments(image_urls=image_urls, remote_image_urls=remote_urls)


class AskOrchestrator:
    """Runs asks against workspaces.

    Caller contract violations are raised: an unknown workspace raises
    WorkspaceNotFoundError and a second concurrent ask on the same
    workspace raises WorkspaceBusyError. Everything after the
    workspace enters Asking is reduced to a ChatFinishResult.

    Example:
        result = await orchestrator.ask(ws.id, AskOptions(prompt="hi"))
        if not result.success and not result.canceled:
            show_error(result.err_type, result.err_msg)
    """

    def __init__(
        self,
        session: ConfigSession,
        workspaces: WorkspaceManager,
        registry: BackendRegistry,
        content: ContentReferenceStore,
        *,
        default_timeout: float = 120.0,
        rate_limit_retries: int = 2,
        retry_backoff_seconds: float = 1.0,
    ) -> None:
        """Initialize orchestrator.

        Args:
            session: Config session (behavior flags)
            workspaces: Workspace manager (state machine, commits)
            registry: Backend registry
            content: Reference store (document ingestion for DOCUMENT_QA)
            default_timeout: Backend call timeout when the caller gives none
            rate_limit_retries: Retries for RateLimited failures
            retry_backoff_seconds: Delay before the first retry (doubles)
        """
        self._session = session
        self._workspaces = workspaces
        self._registry = registry
        self._content = content
        self._default_timeout = default_timeout
        self._rate_limit_retries = rate_limit_retries
        self._retry_backoff_seconds = retry_backoff_seconds
        self._inflight: dict[int, asyncio.Task[ChatFinishResult]] = {}
        self._background: set[asyncio.Task[Any]] = set()

    # === ASK ===

    async def ask(
        self,
        workspace_id: int,
        options: AskOptions,
        *,
        timeout: float | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> ChatFinishResult:
        """Run one ask and return its terminal result.

        Args:
            workspace_id: Target workspace
            options: Ask request
            timeout: Backend call timeout in seconds
            on_chunk: Called with each streamed text delta

        Returns:
            ChatFinishResult; ``err_type`` is Canceled after ``cancel()``

        Raises:
            WorkspaceNotFoundError: If the workspace does not exist
            WorkspaceBusyError: If the workspace already has an ask in flight
        """
        self._workspaces.begin_ask(workspace_id)
        started = time.monotonic()

        task = asyncio.ensure_future(
            self._run(workspace_id, options, timeout or self._default_timeout, on_chunk)
        )
        self._inflight[workspace_id] = task

        result: ChatFinishResult | None = None
        try:
            try:
                result = await task
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    task.cancel()
                    raise
                result = ChatFinishResult.failure(ErrorType.CANCELED, "The ask was canceled")
            except Exception as e:
                result = ChatFinishResult.failure(*self._classify(e, workspace_id))
        finally:
            self._inflight.pop(workspace_id, None)
            self._workspaces.end_ask(
                workspace_id, result.err_type if result is not None else ErrorType.CANCELED
            )

        if result.success:
            log, event = logger.info, "ask_completed"
        elif result.canceled:
            log, event = logger.info, "ask_canceled"
        else:
            log, event = logger.warning, "ask_failed"
        log(
            event,
            workspace_id=workspace_id,
            ask_type=options.type.name,
            err_type=result.err_type.value if result.err_type else None,
            err_msg=result.err_msg or None,
            duration_seconds=round(time.monotonic() - started, 3),
        )
        return result

    def cancel(self, workspace_id: int) -> bool:
        """Cancel the in-flight ask of a workspace.

        Returns:
            True if an ask was in flight
        """
        task = self._inflight.get(workspace_id)
        if task is None or task.done():
            return False
        task.cancel()
        logger.info("ask_cancel_requested", workspace_id=workspace_id)
        return True

    async def _run(
        self,
        workspace_id: int,
        options: AskOptions,
        timeout: float,
        on_chunk: ChunkCallback | None,
    ) -> ChatFinishResult:
        workspace = self._workspaces.get(workspace_id)
        backend_name = options.openai_backend or workspace.backend
        context = options.chat_context or workspace.context

        if options.type in (AskType.GENERATE_IMAGE, AskType.GENERATE_MUSIC):
            handle = self._registry.resolve(
                backend_name, workspace=workspace, text=options.prompt, model=options.model
            )
            generated = await self._generate(handle, options, timeout)
            assistant = ChatMessage("assistant", _generation_type(options.type), _describe(generated))
            self._commit(workspace_id, context, options, assistant)
            return ChatFinishResult.ok(reply=generated.text, generated=generated)

        references = _relevant_references(workspace, options.type)
        if options.type == AskType.DOCUMENT_QA:
            references.append(
                await self._content.ingest(options.upload_file_path, ReferenceKind.DOCUMENT)
            )

        merged = merge_references(context, references)
        attachments = _build_attachments(options, references)
        handle = self._registry.resolve(
            backend_name,
            workspace=workspace,
            text=merged + options.prompt,
            model=options.model,
        )

        raw = await self._retrying(
            lambda: self._invoke(handle, merged, options.prompt, attachments, timeout, on_chunk)
        )
        if not raw.text.strip():
            raise BackendFault(ErrorType.MALFORMED_RESPONSE, "The backend returned an empty reply")

        committed = self._commit(
            workspace_id,
            context,
            options,
            ChatMessage("assistant", "message", raw.text),
            sent=references,
        )
        self._maybe_generate_title(committed, backend_name)
        return ChatFinishResult.ok(reply=raw.text)

    async def _invoke(
        self,
        handle: BackendHandle,
        merged: str,
        prompt: str,
        attachments: AskAttachments,
        timeout: float,
        on_chunk: ChunkCallback | None,
    ) -> RawBackendResult:
        async with asyncio.timeout(timeout):
            raw = await handle.client.invoke(handle, merged, prompt, attachments, timeout, on_chunk)
        if not raw.ok:
            assert raw.error_category is not None
            raise BackendFault(raw.error_category, raw.error_message or raw.error_category.value)
        return raw

    async def _generate(
        self,
        handle: BackendHandle,
        options: AskOptions,
        timeout: float,
    ) -> GenerateImageResult | GenerateMusicResult:
        async def _call() -> GenerateImageResult | GenerateMusicResult:
            async with asyncio.timeout(timeout):
                if options.type == AskType.GENERATE_IMAGE:
                    return await handle.client.generate_image(handle, options.prompt, timeout)
                return await handle.client.generate_music(handle, options.prompt, timeout)

        return await self._retrying(_call)

    async def _retrying(self, func: Callable[[], Awaitable[T]]) -> T:
        return await retry_async(
            func,
            max_retries=self._rate_limit_retries,
            delay_seconds=self._retry_backoff_seconds,
            retry_if=lambda e: isinstance(e, BackendFault) and e.category == ErrorType.RATE_LIMITED,
        )

    def _commit(
        self,
        workspace_id: int,
        context: str,
        options: AskOptions,
        assistant: ChatMessage,
        *,
        sent: Sequence[DataReference] = (),
    ) -> Workspace:
        """Append the exchange to the workspace and apply post-chat cleanup.

        Only references that went out with this ask are dropped. Anything
        attached while the ask was in flight stays for the next one.
        """
        config = self._session.config
        dropped_kinds: set[ReferenceKind] = set()
        if not config.no_image_removal_after_chat:
            dropped_kinds.add(ReferenceKind.IMAGE)
        if not config.no_file_removal_after_chat:
            dropped_kinds.add(ReferenceKind.DOCUMENT)
        dropped = {ref.uuid for ref in sent if ref.type in dropped_kinds}

        def _apply(workspace: Workspace) -> Workspace:
            kept = [ref for ref in workspace.data_references if ref.uuid not in dropped]
            return workspace.model_copy(
                update={
                    "context": append_messages(
                        context, [ChatMessage("user", "message", options.prompt), assistant]
                    ),
                    "input": workspace.input if workspace.persistent_input else "",
                    "data_references": kept,
                }
            )

        return self._workspaces.update(workspace_id, _apply)

    # === TITLES ===

    async def concise_answer(self, req: ConciseAnswerReq, timeout: float | None = None) -> str:
        """Ask a backend a short helper question outside any workspace.

        Raises:
            BackendNotFoundError: If the backend does not exist
            BackendFault: If the backend call fails
            TimeoutError: If the call exceeds the timeout
        """
        timeout = timeout or self._default_timeout
        handle = self._registry.resolve(req.backend, text=req.context + req.prompt)
        raw = await self._invoke(handle, req.context, req.prompt, AskAttachments(), timeout, None)
        return raw.text.strip()

    def _maybe_generate_title(self, workspace: Workspace, backend_name: str) -> None:
        if self._session.config.disable_summary_title_generation:
            return
        if workspace.title != DEFAULT_WORKSPACE_TITLE:
            return
        self._spawn(self._generate_title(workspace.id, workspace.context, backend_name))

    async def _generate_title(self, workspace_id: int, context: str, backend_name: str) -> None:
        try:
            answer = await self.concise_answer(
                ConciseAnswerReq(prompt=TITLE_PROMPT, context=context, backend=backend_name)
            )
        except (SydneyQtError, TimeoutError) as e:
            logger.warning("title_generation_failed", workspace_id=workspace_id, error=str(e))
            return
        except Exception as e:
            logger.exception("title_generation_failed", workspace_id=workspace_id, error=str(e))
            return

        title = answer.splitlines()[0].strip().strip("\"'") if answer else ""
        if not title:
            return
        title = title[:_MAX_TITLE_LENGTH]
        self._workspaces.update(workspace_id, lambda w: w.model_copy(update={"title": title}))
        logger.debug("title_generated", workspace_id=workspace_id, title=title)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def drain(self) -> None:
        """Wait for background work (title generation) to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # === ERROR REDUCTION ===

    def _classify(self, error: Exception, workspace_id: int) -> tuple[ErrorType, str]:
        """Map an exception raised during an ask to the error taxonomy."""
        if isinstance(error, BackendFault):
            return error.category, error.message
        if isinstance(error, TimeoutError):
            return ErrorType.TIMEOUT, "The backend did not answer in time"
        if isinstance(error, BackendNotFoundError):
            return ErrorType.BACKEND_UNAVAILABLE, str(error)
        if isinstance(error, IngestError):
            return ErrorType.CONTENT_REJECTED, str(error)
        if isinstance(error, (ValidationError, ValueError, KeyError)):
            return ErrorType.MALFORMED_RESPONSE, str(error)

        logger.exception("ask_unexpected_error", workspace_id=workspace_id, error=str(error))
        return ErrorType.BACKEND_UNAVAILABLE, str(error)


def _generation_type(ask_type: AskType) -> str:
    return "generative_image" if ask_type == AskType.GENERATE_IMAGE else "generative_music"


def _describe(generated: GenerateImageResult | GenerateMusicResult) -> str:
    if isinstance(generated, GenerateImageResult):
        return "\n".join([generated.text, *generated.image_urls]).strip()
    parts = [generated.title or generated.text, generated.music_url]
    return "\n".join(p for p in parts if p).strip()
