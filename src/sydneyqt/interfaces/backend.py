"""Backend interface for sydneyqt.

This module defines the Protocol every backend client implements and
the typed handles BackendRegistry resolves backend names to.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from sydneyqt.models.ask import (
    AskAttachments,
    GenerateImageResult,
    GenerateMusicResult,
    RawBackendResult,
)
from sydneyqt.models.config import OpenAIBackend

__all__ = [
    "BackendClient",
    "BackendHandle",
    "ChunkCallback",
    "OpenAIHandle",
    "SydneyHandle",
]

ChunkCallback = Callable[[str], None]


@dataclass(frozen=True)
class SydneyHandle:
    """Resolved built-in conversational backend.

    Carries the workspace conversation options bound at resolution.
    """

    name: str
    client: "BackendClient" = field(repr=False, compare=False)
    conversation_style: str = "Creative"
    locale: str = "en-US"
    no_search: bool = False
    use_classic: bool = False
    gpt_4_turbo: bool = False
    plugins: tuple[str, ...] = ()


@dataclass(frozen=True)
class OpenAIHandle:
    """Resolved OpenAI-compatible backend.

    ``backend`` is a snapshot of the profile taken at resolution time and
    ``model`` is the model picked for this request.
    """

    name: str
    client: "BackendClient" = field(repr=False, compare=False)
    backend: OpenAIBackend = field(default_factory=lambda: OpenAIBackend(name="unnamed"))
    model: str = ""


BackendHandle = SydneyHandle | OpenAIHandle


@runtime_checkable
class BackendClient(Protocol):
    """Contract for talking to one kind of backend.

    Failures are raised as BackendFault with a category, or returned as a
    RawBackendResult carrying ``error_category``.
    """

    async def invoke(
        self,
        handle: BackendHandle,
        merged_context: str,
        prompt: str,
        attachments: AskAttachments,
        timeout: float,
        on_chunk: ChunkCallback | None = None,
    ) -> RawBackendResult:
        """Send one prompt with its context and return the terminal result.

        Args:
            handle: Resolved backend handle
            merged_context: Conversation context with reference blocks merged in
            prompt: User prompt
            attachments: Images to send along with the prompt
            timeout: Network timeout in seconds
            on_chunk: Called with each streamed text delta

        Returns:
            RawBackendResult
        """
        ...

    async def generate_image(
        self,
        handle: BackendHandle,
        prompt: str,
        timeout: float,
    ) -> GenerateImageResult:
        """Generate images for a description."""
        ...

    async def generate_music(
        self,
        handle: BackendHandle,
        prompt: str,
        timeout: float,
    ) -> GenerateMusicResult:
        """Generate a music track for a description."""
        ...

    async def upload_image(self, jpeg: bytes, timeout: float) -> str:
        """Upload a JPEG and return its remote URL."""
        ...
