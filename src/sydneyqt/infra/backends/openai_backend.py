"""OpenAI-compatible backend client for sydneyqt.

This module implements BackendClient on top of the openai SDK's
streaming chat completions. Endpoint, key and generation parameters are
read from the handle on every call, so edited profiles apply at once.
"""

from typing import Any

from typing_extensions import override

import openai
from openai import AsyncOpenAI

from sydneyqt.errors import BackendFault
from sydneyqt.interfaces.backend import BackendClient, BackendHandle, ChunkCallback, OpenAIHandle
from sydneyqt.logging import get_logger
from sydneyqt.models.ask import (
    AskAttachments,
    ErrorType,
    GenerateImageResult,
    GenerateMusicResult,
    RawBackendResult,
)
from sydneyqt.models.config import OpenAIBackend
from sydneyqt.utils.chat_format import parse_chat_messages

__all__ = [
    "OpenAIBackendClient",
    "build_openai_messages",
    "classify_openai_error",
]

logger = get_logger(__name__)

_CONTENT_POLICY_CODES = ("content_filter", "content_policy_violation")


def classify_openai_error(error: openai.OpenAIError) -> ErrorType:
    """Map an openai SDK exception to the error taxonomy."""
    if isinstance(error, openai.APITimeoutError):
        return ErrorType.TIMEOUT
    if isinstance(error, openai.APIConnectionError):
        return ErrorType.BACKEND_UNAVAILABLE
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ErrorType.AUTH_FAILURE
    if isinstance(error, openai.RateLimitError):
        return ErrorType.RATE_LIMITED
    if isinstance(error, openai.BadRequestError) and _is_content_policy(error):
        return ErrorType.CONTENT_REJECTED
    if isinstance(error, openai.APIResponseValidationError):
        return ErrorType.MALFORMED_RESPONSE
    return ErrorType.BACKEND_UNAVAILABLE


def _is_content_policy(error: openai.BadRequestError) -> bool:
    code = error.code or ""
    return code in _CONTENT_POLICY_CODES or "content management policy" in error.message.lower()


def build_openai_messages(
    merged_context: str,
    prompt: str,
    attachments: AskAttachments,
) -> list[dict[str, Any]]:
    """Convert a block-format context plus prompt into chat messages.

    Images become vision content parts on the final user message.
    """
    messages: list[dict[str, Any]] = [
        {"role": msg.role, "content": msg.content}
        for msg in parse_chat_messages(merged_context)
        if msg.content
    ]

    if attachments.image_urls:
        content: Any = [{"type": "text", "text": prompt}]
        content.extend(
            {"type": "image_url", "image_url": {"url": url}} for url in attachments.image_urls
        )
    else:
        content = prompt
    messages.append({"role": "user", "content": content})
    return messages


class OpenAIBackendClient(BackendClient):
    """BackendClient for OpenAI-compatible chat completion APIs.

    One AsyncOpenAI client is kept per (endpoint, key) pair.
    """

    def __init__(self, proxy: str = "") -> None:
        self._proxy = proxy
        self._clients: dict[tuple[str, str], AsyncOpenAI] = {}

    def _client_for(self, backend: OpenAIBackend) -> AsyncOpenAI:
        key = (backend.openai_endpoint, backend.openai_key)
        client = self._clients.get(key)
        if client is None:
            kwargs: dict[str, Any] = {
                "api_key": backend.openai_key or "unset",
                "base_url": backend.openai_endpoint,
                "max_retries": 0,  # RateLimited retries are done by the orchestrator
            }
            if self._proxy:
                kwargs["http_client"] = openai.DefaultAsyncHttpxClient(proxy=self._proxy)
            client = AsyncOpenAI(**kwargs)
            self._clients[key] = client
        return client

    async def close(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()

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
        if not isinstance(handle, OpenAIHandle):
            raise BackendFault(
                ErrorType.BACKEND_UNAVAILABLE, f"{handle.name} is not an OpenAI backend"
            )

        backend = handle.backend
        params: dict[str, Any] = {
            "model": handle.model,
            "messages": build_openai_messages(merged_context, prompt, attachments),
            "temperature": backend.openai_temperature,
            "frequency_penalty": backend.frequency_penalty,
            "presence_penalty": backend.presence_penalty,
            "stream": True,
            "timeout": timeout,
        }
        if backend.max_tokens > 0:
            params["max_tokens"] = backend.max_tokens

        parts: list[str] = []
        finish_reason: str | None = None
        try:
            stream = await self._client_for(backend).chat.completions.create(**params)
            async for chunk in stream:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                delta = choice.delta.content if choice.delta else None
                if delta:
                    parts.append(delta)
                    if on_chunk is not None:
                        on_chunk(delta)
                if choice.finish_reason:
                    finish_reason = choice.finish_reason
        except openai.OpenAIError as e:
            category = classify_openai_error(e)
            logger.warning(
                "openai_request_failed",
                backend=handle.name,
                model=handle.model,
                category=category.value,
                error=str(e),
            )
            raise BackendFault(category, str(e)) from e

        text = "".join(parts)
        if finish_reason == "content_filter":
            return RawBackendResult(
                text=text,
                error_category=ErrorType.CONTENT_REJECTED,
                error_message="The response was filtered by the provider's content policy",
            )

        logger.debug(
            "openai_request_completed",
            backend=handle.name,
            model=handle.model,
            finish_reason=finish_reason,
            chars=len(text),
        )
        return RawBackendResult(text=text)

    @override
    async def generate_image(
        self,
        handle: BackendHandle,
        prompt: str,
        timeout: float,
    ) -> GenerateImageResult:
        raise BackendFault(
            ErrorType.BACKEND_UNAVAILABLE,
            f"Image generation is not supported by OpenAI backend {handle.name}",
        )

    @override
    async def generate_music(
        self,
        handle: BackendHandle,
        prompt: str,
        timeout: float,
    ) -> GenerateMusicResult:
        raise BackendFault(
            ErrorType.BACKEND_UNAVAILABLE,
            f"Music generation is not supported by OpenAI backend {handle.name}",
        )

    @override
    async def upload_image(self, jpeg: bytes, timeout: float) -> str:
        raise BackendFault(
            ErrorType.BACKEND_UNAVAILABLE,
            "Image upload is not supported by OpenAI backends",
        )
