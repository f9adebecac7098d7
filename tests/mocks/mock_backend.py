"""Mock backend client for testing."""

import asyncio
from typing import Any

from sydneyqt.interfaces.backend import BackendClient, BackendHandle, ChunkCallback
from sydneyqt.models.ask import (
    AskAttachments,
    GenerateImageResult,
    GenerateMusicResult,
    RawBackendResult,
)


class MockBackendClient(BackendClient):
    """Scripted backend client.

    Each ``invoke`` pops the next scripted outcome: a RawBackendResult is
    returned, an exception is raised. With nothing scripted it answers
    ``default_reply``. Setting ``gate`` makes every call wait on it.
    """

    def __init__(
        self,
        outcomes: list[RawBackendResult | Exception] | None = None,
        default_reply: str = "Mock reply",
    ) -> None:
        self.outcomes: list[RawBackendResult | Exception] = list(outcomes or [])
        self.default_reply = default_reply
        self.calls: list[dict[str, Any]] = []
        self.uploads: list[bytes] = []
        self.upload_url = "https://www.bing.com/images/blob?bcid=mock"
        self.upload_error: Exception | None = None
        self.image_result = GenerateImageResult(
            text="a cat", url="https://example.com/req", image_urls=["https://example.com/1.jpg"]
        )
        self.music_result = GenerateMusicResult(
            iframeid="iframe", requestid="req", text="a song", title="Song"
        )
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()
        self.closed = False

    def _next(self) -> RawBackendResult:
        if not self.outcomes:
            return RawBackendResult(text=self.default_reply)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def _wait_gate(self) -> None:
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()

    async def invoke(
        self,
        handle: BackendHandle,
        merged_context: str,
        prompt: str,
        attachments: AskAttachments,
        timeout: float,
        on_chunk: ChunkCallback | None = None,
    ) -> RawBackendResult:
        self.calls.append(
            {
                "handle": handle,
                "merged_context": merged_context,
                "prompt": prompt,
                "attachments": attachments,
                "timeout": timeout,
            }
        )
        await self._wait_gate()
        result = self._next()
        if on_chunk is not None and result.text:
            on_chunk(result.text)
        return result

    async def generate_image(
        self,
        handle: BackendHandle,
        prompt: str,
        timeout: float,
    ) -> GenerateImageResult:
        self.calls.append({"handle": handle, "prompt": prompt, "kind": "image"})
        await self._wait_gate()
        self._next()
        return self.image_result

    async def generate_music(
        self,
        handle: BackendHandle,
        prompt: str,
        timeout: float,
    ) -> GenerateMusicResult:
        self.calls.append({"handle": handle, "prompt": prompt, "kind": "music"})
        await self._wait_gate()
        self._next()
        return self.music_result

    async def upload_image(self, jpeg: bytes, timeout: float) -> str:
        self.uploads.append(jpeg)
        if self.upload_error is not None:
            raise self.upload_error
        return self.upload_url

    async def close(self) -> None:
        self.closed = True
