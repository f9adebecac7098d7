"""Content reference store for sydneyqt.

This module normalizes documents, images, video transcripts and web
pages into typed DataReference records and attaches them to
workspaces.
"""

import asyncio
import base64
import binascii
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sydneyqt.errors import BackendFault, IngestError
from sydneyqt.infra.documents import DOCUMENT_EXTENSIONS, extract_document
from sydneyqt.infra.images import IMAGE_EXTENSIONS, decode_base64_image, to_data_url, to_jpeg
from sydneyqt.infra.web import WebPageReader
from sydneyqt.infra.youtube import YoutubeClient
from sydneyqt.interfaces.backend import BackendClient
from sydneyqt.interfaces.picker import FilePicker
from sydneyqt.logging import get_logger
from sydneyqt.models.reference import (
    DataReference,
    DocumentReference,
    ImageData,
    ImageReference,
    ReferenceKind,
    VideoData,
    VideoReference,
    WebpageReference,
)
from sydneyqt.models.upload import UploadDocumentResult, UploadImageResult
from sydneyqt.models.workspace import Workspace
from sydneyqt.models.youtube import (
    YoutubeVideoDetails,
    YoutubeVideoResult,
    YtCustomCaption,
    YtTranscriptText,
)
from sydneyqt.services.workspace_manager import WorkspaceManager
from sydneyqt.utils.ids import new_reference_uuid

__all__ = [
    "ContentReferenceStore",
    "VideoSelection",
]

logger = get_logger(__name__)

_IMAGE_PATTERNS = ["*.jpg", "*.jpeg", "*.png", "*.gif"]
_DOCUMENT_PATTERNS = [f"*{ext}" for ext in DOCUMENT_EXTENSIONS]
_TEMP_UPLOAD_EXTENSIONS = {ext.lstrip(".") for ext in (*DOCUMENT_EXTENSIONS, *IMAGE_EXTENSIONS)}


@dataclass(frozen=True)
class VideoSelection:
    """A video and the caption track chosen for its transcript."""

    details: YoutubeVideoDetails
    caption: YtCustomCaption


class ContentReferenceStore:
    """Ingestion and attachment of typed references.

    ``ingest`` raises IngestError; the picker flows ``upload_image`` and
    ``upload_document`` never raise for ingestion problems and return a
    typed outcome instead, with cancellation as ``canceled=True``.

    Example:
        store = ContentReferenceStore(workspaces, youtube, web)
        ref = await store.ingest(Path("notes.md"), ReferenceKind.DOCUMENT)
        store.attach(workspace_id, ref)
    """

    def __init__(
        self,
        workspaces: WorkspaceManager,
        youtube: YoutubeClient,
        web: WebPageReader,
        image_uploader: BackendClient | None = None,
        upload_timeout: float = 30.0,
        temp_dir: Path | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            workspaces: Workspace manager used to attach and detach
            youtube: YouTube client for video ingestion
            web: Web page reader
            image_uploader: Backend client that uploads images for a
                remote URL (None disables remote upload)
            upload_timeout: Timeout for the remote image upload
            temp_dir: Directory for pasted uploads (default: system temp)
        """
        self._workspaces = workspaces
        self._youtube = youtube
        self._web = web
        self._image_uploader = image_uploader
        self._upload_timeout = upload_timeout
        self._temp_dir = temp_dir
        self._issued: set[str] = set()
        self._uploads: set[asyncio.Task[Any]] = set()

    # === INGESTION ===

    async def ingest(self, raw: Any, kind: ReferenceKind | str) -> DataReference:
        """Normalize raw input into a reference.

        Args:
            raw: Path for documents; Path, bytes or base64 text for
                images; VideoSelection for videos; URL for web pages
            kind: Reference kind

        Returns:
            A new reference with a fresh uuid (not attached yet)

        Raises:
            IngestError: If the kind is unknown or the input is unusable
        """
        try:
            kind = ReferenceKind(kind)
        except ValueError as e:
            raise IngestError(f"Unknown reference kind: {kind}") from e

        if kind == ReferenceKind.DOCUMENT:
            reference: DataReference = await self._ingest_document(raw)
        elif kind == ReferenceKind.IMAGE:
            reference = await self._ingest_image(raw)
        elif kind == ReferenceKind.VIDEO:
            reference = await self._ingest_video(raw)
        else:
            reference = await self._ingest_webpage(raw)

        logger.info("reference_ingested", kind=kind.value, uuid=reference.uuid)
        return reference

    async def _ingest_document(self, raw: Any) -> DocumentReference:
        if not isinstance(raw, (str, Path)):
            raise IngestError(f"Document input must be a path, got {type(raw).__name__}")
        data = await asyncio.to_thread(extract_document, Path(raw))
        return DocumentReference(uuid=self._new_uuid(), data=data)

    async def _ingest_image(self, raw: Any) -> ImageReference:
        if isinstance(raw, Path):
            source: bytes | Path = raw
        elif isinstance(raw, bytes):
            source = raw
        elif isinstance(raw, str):
            source = decode_base64_image(raw)
        else:
            raise IngestError(
                f"Image input must be a path, bytes or base64, got {type(raw).__name__}"
            )

        jpeg = await asyncio.to_thread(to_jpeg, source)
        bing_url = await self._upload_remote(jpeg)
        return ImageReference(
            uuid=self._new_uuid(),
            data=ImageData(base64_url=to_data_url(jpeg), bing_url=bing_url),
        )

    async def _ingest_video(self, raw: Any) -> VideoReference:
        if not isinstance(raw, VideoSelection):
            raise IngestError(f"Video input must be a VideoSelection, got {type(raw).__name__}")
        transcript = await self._youtube.get_transcript(raw.caption)
        if not transcript:
            raise IngestError(f"Caption track {raw.caption.name!r} has no transcript")
        return VideoReference(
            uuid=self._new_uuid(),
            data=VideoData(details=raw.details, caption=raw.caption, transcript=transcript),
        )

    async def _ingest_webpage(self, raw: Any) -> WebpageReference:
        if not isinstance(raw, str):
            raise IngestError(f"Web page input must be a URL, got {type(raw).__name__}")
        data = await self._web.read(raw)
        return WebpageReference(uuid=self._new_uuid(), data=data)

    async def _upload_remote(self, jpeg: bytes) -> str:
        if self._image_uploader is None:
            return ""
        try:
            return await self._image_uploader.upload_image(jpeg, self._upload_timeout)
        except BackendFault as e:
            raise IngestError(f"Image upload failed: {e.message}") from e

    def _new_uuid(self) -> str:
        uuid = new_reference_uuid()
        while uuid in self._issued:
            uuid = new_reference_uuid()
        self._issued.add(uuid)
        return uuid

    # === ATTACHMENT ===

    def attach(self, workspace_id: int, reference: DataReference) -> Workspace:
        """Append a reference to a workspace, keeping attach order.

        Raises:
            WorkspaceNotFoundError: If no workspace has this id
            ValueError: If the workspace already has a reference with this uuid
        """

        def _attach(workspace: Workspace) -> Workspace:
            if workspace.find_reference(reference.uuid) is not None:
                raise ValueError(f"reference {reference.uuid} is already attached")
            return workspace.model_copy(
                update={"data_references": [*workspace.data_references, reference]}
            )

        updated = self._workspaces.update(workspace_id, _attach)
        logger.debug("reference_attached", workspace_id=workspace_id, uuid=reference.uuid)
        return updated

    def detach(self, workspace_id: int, uuid: str) -> Workspace:
        """Remove a reference from a workspace.

        Raises:
            WorkspaceNotFoundError: If no workspace has this id
            KeyError: If the workspace has no reference with this uuid
        """

        def _detach(workspace: Workspace) -> Workspace:
            if workspace.find_reference(uuid) is None:
                raise KeyError(f"reference not attached: {uuid}")
            kept = [ref for ref in workspace.data_references if ref.uuid != uuid]
            return workspace.model_copy(update={"data_references": kept})

        updated = self._workspaces.update(workspace_id, _detach)
        logger.debug("reference_detached", workspace_id=workspace_id, uuid=uuid)
        return updated

    # === USER-DRIVEN UPLOADS ===

    async def upload_image(
        self,
        picker: FilePicker,
        workspace_id: int | None = None,
    ) -> UploadImageResult:
        """Let the user pick an image, ingest it and optionally attach it."""
        outcome = await self._run_upload(
            self._pick_and_ingest(
                picker, "Open an image to upload", _IMAGE_PATTERNS, ReferenceKind.IMAGE
            )
        )
        if outcome is None:
            return UploadImageResult(canceled=True)
        if isinstance(outcome, str):
            return UploadImageResult(error=outcome)

        assert isinstance(outcome, ImageReference)
        attached = self._attach_if_requested(workspace_id, outcome)
        return UploadImageResult(
            base64_url=outcome.data.base64_url,
            bing_url=outcome.data.bing_url,
            reference_uuid=outcome.uuid if attached else "",
        )

    async def upload_document(
        self,
        picker: FilePicker,
        workspace_id: int | None = None,
    ) -> UploadDocumentResult:
        """Let the user pick a document, ingest it and optionally attach it."""
        outcome = await self._run_upload(
            self._pick_and_ingest(
                picker, "Open a document to upload", _DOCUMENT_PATTERNS, ReferenceKind.DOCUMENT
            )
        )
        if outcome is None:
            return UploadDocumentResult(canceled=True)
        if isinstance(outcome, str):
            return UploadDocumentResult(error=outcome)

        assert isinstance(outcome, DocumentReference)
        attached = self._attach_if_requested(workspace_id, outcome)
        return UploadDocumentResult(
            text=outcome.data.text,
            ext=outcome.data.ext,
            reference_uuid=outcome.uuid if attached else "",
        )

    def cancel_uploads(self) -> int:
        """Cancel every in-flight upload; each resolves as canceled.

        Returns:
            Number of uploads canceled
        """
        pending = [task for task in self._uploads if not task.done()]
        for task in pending:
            task.cancel()
        return len(pending)

    async def _pick_and_ingest(
        self,
        picker: FilePicker,
        title: str,
        patterns: list[str],
        kind: ReferenceKind,
    ) -> DataReference | None:
        path = await picker.pick(title, patterns)
        if path is None:
            return None
        return await self.ingest(path, kind)

    async def _run_upload(self, coro: Any) -> DataReference | str | None:
        """Run an upload as a cancellable task.

        Returns:
            The reference, an error message, or None when canceled
        """
        task = asyncio.ensure_future(coro)
        self._uploads.add(task)
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                task.cancel()
                raise
            logger.info("upload_canceled")
            return None
        except IngestError as e:
            logger.warning("upload_failed", error=str(e))
            return str(e)
        finally:
            self._uploads.discard(task)

    def _attach_if_requested(self, workspace_id: int | None, reference: DataReference) -> bool:
        if workspace_id is None:
            return False
        self.attach(workspace_id, reference)
        return True

    # === YOUTUBE ===

    async def get_youtube_video(self, url: str) -> YoutubeVideoResult:
        """Fetch details and caption tracks of a video.

        Raises:
            IngestError: If the link is invalid or the video cannot be read
        """
        return await self._youtube.get_video(url)

    async def get_youtube_transcript(self, caption: YtCustomCaption) -> list[YtTranscriptText]:
        """Fetch the transcript of a caption track, ordered by start time.

        Raises:
            IngestError: If the transcript cannot be fetched
        """
        return await self._youtube.get_transcript(caption)

    # === PASTED FILES ===

    def save_temp_upload(self, ext: str, raw_base64: str) -> Path:
        """Write pasted base64 content to a temp file for a later upload.

        Args:
            ext: File extension, with or without the dot
            raw_base64: File content as base64

        Raises:
            IngestError: If the extension is not allowed or the content
                is not valid base64
        """
        ext = ext.lower().lstrip(".")
        if ext not in _TEMP_UPLOAD_EXTENSIONS:
            raise IngestError(f"file extension {ext} is not allowed")
        try:
            content = base64.b64decode(raw_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise IngestError(f"Invalid base64 content: {e}") from e

        with tempfile.NamedTemporaryFile(suffix=f".{ext}", dir=self._temp_dir, delete=False) as f:
            f.write(content)
        logger.debug("temp_upload_saved", path=f.name, size=len(content))
        return Path(f.name)
