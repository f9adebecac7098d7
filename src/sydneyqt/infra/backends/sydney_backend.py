"""Sydney web API client for sydneyqt.

This module implements BackendClient against the Sydney web API:
``POST /chat/stream`` answers with server-sent events whose data is a
JSON-encoded string, ``POST /image/upload`` takes a multipart JPEG and
``POST /image/create`` turns a generative image request into URLs.
"""

import json
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import aclosing
from typing import Any

from typing_extensions import override

import httpx

from sydneyqt.config import SydneySettings
from sydneyqt.errors import BackendFault
from sydneyqt.interfaces.backend import BackendClient, BackendHandle, ChunkCallback, SydneyHandle
from sydneyqt.logging import get_logger
from sydneyqt.models.ask import (
    AskAttachments,
    ErrorType,
    GenerateImageResult,
    GenerateMusicResult,
    GenerativeImage,
    GenerativeMusic,
    RawBackendResult,
)

__all__ = [
    "IMAGE_PROMPT_PREFIX",
    "SydneyBackendClient",
    "classify_sydney_error",
    "iter_sse_events",
]

logger = get_logger(__name__)

IMAGE_PROMPT_PREFIX = "Create image for the description: "

# Checked in order; the first category with a matching keyword wins.
_ERROR_KEYWORDS: list[tuple[ErrorType, tuple[str, ...]]] = [
    (ErrorType.AUTH_FAILURE, ("captcha", "cookie", "unauthorized", "forbidden")),
    (ErrorType.RATE_LIMITED, ("throttl", "too many", "rate limit")),
    (ErrorType.CONTENT_REJECTED, ("offensive", "disengaged", "revoke", "invalid request")),
    (ErrorType.TIMEOUT, ("timeout", "timed out")),
]


def classify_sydney_error(message: str) -> ErrorType:
    """Classify an ``error`` event message by keyword."""
    lowered = message.lower()
    for category, keywords in _ERROR_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return ErrorType.BACKEND_UNAVAILABLE


def _status_category(status_code: int) -> ErrorType:
    if status_code in (401, 403):
        return ErrorType.AUTH_FAILURE
    if status_code == 429:
        return ErrorType.RATE_LIMITED
    return ErrorType.BACKEND_UNAVAILABLE


async def iter_sse_events(lines: AsyncIterator[str]) -> AsyncIterator[tuple[str, str]]:
    """Group server-sent event lines into ``(event, data)`` pairs."""
    event = "message"
    data: list[str] = []
    async for line in lines:
        if not line:
            if data:
                yield event, "\n".join(data)
            event, data = "message", []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        value = value.removeprefix(" ")
        if field == "event":
            event = value
        elif field == "data":
            data.append(value)
    if data:
        yield event, "\n".join(data)


class SydneyBackendClient(BackendClient):
    """BackendClient for the Sydney web API.

    Example:
        async with httpx.AsyncClient() as http:
            client = SydneyBackendClient(http, SydneySettings())
            result = await client.invoke(handle, context, "hi", AskAttachments(), 60)
    """

    def __init__(self, client: httpx.AsyncClient, settings: SydneySettings) -> None:
        self._client = client
        self._settings = settings
        self._base_url = settings.base_url.rstrip("/")

    @property
    def _headers(self) -> dict[str, str]:
        if self._settings.auth_token is None:
            return {}
        return {"Authorization": f"Bearer {self._settings.auth_token.get_secret_value()}"}

    @property
    def _cookies(self) -> str:
        return self._settings.cookies.get_secret_value() if self._settings.cookies else ""

    @override
    async def invoke(
        self,
        handle: BackendHandle,
        merged_context: str,
        prompt: str,
        attachments: AskAttachments,
        timeout: float,
        on_chunk: ChunkCallback | None = None,
    ) -> RawBackendResult:
        if not isinstance(handle, SydneyHandle):
            raise BackendFault(
                ErrorType.BACKEND_UNAVAILABLE, f"{handle.name} is not a Sydney backend"
            )

        body = {
            "prompt": prompt,
            "context": merged_context,
            "cookies": self._cookies,
            "imageUrl": attachments.remote_image_urls[0] if attachments.remote_image_urls else "",
            "conversationStyle": handle.conversation_style,
            "locale": handle.locale,
            "noSearch": handle.no_search,
            "useGPT4Turbo": handle.gpt_4_turbo,
            "useClassic": handle.use_classic,
            "plugins": list(handle.plugins),
        }

        parts: list[str] = []
        suggested: list[str] = []
        generative_image: GenerativeImage | None = None
        generative_music: GenerativeMusic | None = None

        events = self._stream_events("/chat/stream", body, timeout)
        async with aclosing(events):
            async for event, payload in events:
                if event == "message":
                    parts.append(payload)
                    if on_chunk is not None:
                        on_chunk(payload)
                elif event == "suggested_responses":
                    suggested = [str(item) for item in json.loads(payload)]
                elif event == "generative_image":
                    generative_image = GenerativeImage.model_validate_json(payload)
                elif event == "generative_music":
                    generative_music = GenerativeMusic.model_validate_json(payload)
                elif event == "error":
                    category = classify_sydney_error(payload)
                    logger.warning("sydney_error_event", category=category.value, error=payload)
                    return RawBackendResult(
                        text="".join(parts),
                        error_category=category,
                        error_message=payload,
                    )
                else:
                    logger.debug("sydney_event_ignored", event=event)

        return RawBackendResult(
            text="".join(parts),
            suggested_responses=suggested,
            generative_image=generative_image,
            generative_music=generative_music,
        )

    @override
    async def generate_image(
        self,
        handle: BackendHandle,
        prompt: str,
        timeout: float,
    ) -> GenerateImageResult:
        """Ask Sydney for an image request, then create the image."""
        result = await self.invoke(
            handle, "", IMAGE_PROMPT_PREFIX + prompt, AskAttachments(), timeout
        )
        if not result.ok:
            assert result.error_category is not None
            raise BackendFault(result.error_category, result.error_message)
        if result.generative_image is None or not result.generative_image.url:
            raise BackendFault(ErrorType.MALFORMED_RESPONSE, "empty generative image")

        response = await self._post(
            "/image/create",
            timeout,
            json={"image": result.generative_image.model_dump(), "cookies": self._cookies},
        )
        return _parse_image_result(response.json(), result.generative_image)

    @override
    async def generate_music(
        self,
        handle: BackendHandle,
        prompt: str,
        timeout: float,
    ) -> GenerateMusicResult:
        """Ask Sydney for a song and return the generation request it emits."""
        result = await self.invoke(handle, "", prompt, AskAttachments(), timeout)
        if not result.ok:
            assert result.error_category is not None
            raise BackendFault(result.error_category, result.error_message)
        if result.generative_music is None:
            raise BackendFault(ErrorType.MALFORMED_RESPONSE, "no generative music in response")

        music = result.generative_music
        return GenerateMusicResult(
            iframeid=music.iframeid, requestid=music.requestid, text=music.text
        )

    @override
    async def upload_image(self, jpeg: bytes, timeout: float) -> str:
        response = await self._post(
            "/image/upload",
            timeout,
            files={"file": ("image.jpg", jpeg, "image/jpeg")},
            data={"cookies": self._cookies},
        )
        url = response.text.strip()
        if not url:
            raise BackendFault(ErrorType.MALFORMED_RESPONSE, "empty image upload response")
        return url

    async def _post(self, path: str, timeout: float, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.post(
                self._base_url + path, headers=self._headers, timeout=timeout, **kwargs
            )
        except httpx.TimeoutException as e:
            raise BackendFault(ErrorType.TIMEOUT, f"{path} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise BackendFault(ErrorType.BACKEND_UNAVAILABLE, f"{path} failed: {e}") from e
        if response.is_error:
            raise BackendFault(
                _status_category(response.status_code),
                f"{path} returned {response.status_code}: {response.text.strip()}",
            )
        return response

    async def _stream_events(
        self,
        path: str,
        body: dict[str, Any],
        timeout: float,
    ) -> AsyncGenerator[tuple[str, str], None]:
        """Post a request and yield its decoded ``(event, text)`` pairs."""
        try:
            async with self._client.stream(
                "POST", self._base_url + path, json=body, headers=self._headers, timeout=timeout
            ) as response:
                if response.is_error:
                    await response.aread()
                    raise BackendFault(
                        _status_category(response.status_code),
                        f"{path} returned {response.status_code}: {response.text.strip()}",
                    )
                async for event, data in iter_sse_events(response.aiter_lines()):
                    try:
                        text = json.loads(data)
                    except json.JSONDecodeError as e:
                        raise BackendFault(
                            ErrorType.MALFORMED_RESPONSE, f"invalid event data: {e}"
                        ) from e
                    yield event, text if isinstance(text, str) else json.dumps(text)
        except httpx.TimeoutException as e:
            raise BackendFault(ErrorType.TIMEOUT, f"{path} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise BackendFault(ErrorType.BACKEND_UNAVAILABLE, f"{path} failed: {e}") from e


def _parse_image_result(data: Any, request: GenerativeImage) -> GenerateImageResult:
    """Build a GenerateImageResult; ``duration`` arrives in nanoseconds."""
    if not isinstance(data, dict):
        raise BackendFault(ErrorType.MALFORMED_RESPONSE, "image result is not an object")
    return GenerateImageResult(
        text=data.get("text") or request.text,
        url=data.get("url") or request.url,
        image_urls=data.get("image_urls") or [],
        duration=float(data.get("duration") or 0) / 1e9,
    )
