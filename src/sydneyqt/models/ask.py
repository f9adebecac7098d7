"""Ask request/response models for sydneyqt.

AskOptions is the transient request built by the UI for one ask;
ChatFinishResult is the uniform terminal outcome returned for it.
"""

from enum import IntEnum, StrEnum
from typing import Self

from pydantic import BaseModel, Field, model_validator

__all__ = [
    "AskAttachments",
    "AskOptions",
    "AskType",
    "ChatFinishResult",
    "ConciseAnswerReq",
    "ErrorType",
    "GenerateImageResult",
    "GenerateMusicResult",
    "GenerativeImage",
    "GenerativeMusic",
    "RawBackendResult",
]


class ErrorType(StrEnum):
    """Closed error taxonomy surfaced in ChatFinishResult.err_type."""

    BACKEND_UNAVAILABLE = "BackendUnavailable"
    AUTH_FAILURE = "AuthFailure"
    RATE_LIMITED = "RateLimited"
    CONTENT_REJECTED = "ContentRejected"
    TIMEOUT = "Timeout"
    MALFORMED_RESPONSE = "MalformedResponse"
    CANCELED = "Canceled"


class AskType(IntEnum):
    """Request flavor of an ask."""

    TEXT = 0
    GENERATE_IMAGE = 1
    DOCUMENT_QA = 2
    GENERATE_MUSIC = 3


class AskOptions(BaseModel, frozen=True):
    """One ask request. Never persisted.

    Attributes:
        type: Request flavor
        openai_backend: Backend name overriding the workspace backend
        chat_context: Context overriding the workspace context
        prompt: User prompt text
        image_url: Image URL to send alongside the prompt
        upload_file_path: Document to answer questions about (DOCUMENT_QA)
        model: Explicit model overriding short/long routing
    """

    type: AskType = AskType.TEXT
    openai_backend: str = ""
    chat_context: str = ""
    prompt: str
    image_url: str = ""
    upload_file_path: str = ""
    model: str = ""

    @model_validator(mode="after")
    def _check_request(self) -> Self:
        if not self.prompt.strip():
            raise ValueError("prompt must not be blank")
        if self.type == AskType.DOCUMENT_QA and not self.upload_file_path:
            raise ValueError("DOCUMENT_QA asks require upload_file_path")
        return self


class GenerativeImage(BaseModel, frozen=True):
    """Image generation request emitted by the Sydney backend."""

    text: str
    url: str


class GenerateImageResult(BaseModel, frozen=True):
    """Generated images. ``duration`` is in seconds."""

    text: str = ""
    url: str = ""
    image_urls: list[str] = Field(default_factory=list)
    duration: float = 0.0


class GenerativeMusic(BaseModel, frozen=True):
    """Music generation request emitted by the Sydney backend."""

    iframeid: str
    requestid: str
    text: str = ""


class GenerateMusicResult(BaseModel, frozen=True):
    """Generated music track."""

    iframeid: str = ""
    requestid: str = ""
    text: str = ""
    cover_img_url: str = ""
    music_url: str = ""
    video_url: str = ""
    duration: float = 0.0
    musical_style: str = ""
    title: str = ""
    lyrics: str = ""
    time_elapsed: float = 0.0


class ChatFinishResult(BaseModel, frozen=True):
    """Terminal outcome of an ask.

    ``err_type`` is set exactly when ``success`` is False.
    """

    success: bool
    err_type: ErrorType | None = None
    err_msg: str = ""
    reply: str = ""
    generated: GenerateImageResult | GenerateMusicResult | None = None

    @classmethod
    def ok(
        cls,
        reply: str = "",
        generated: GenerateImageResult | GenerateMusicResult | None = None,
    ) -> Self:
        return cls(success=True, reply=reply, generated=generated)

    @classmethod
    def failure(cls, err_type: ErrorType, err_msg: str) -> Self:
        return cls(success=False, err_type=err_type, err_msg=err_msg)

    @property
    def canceled(self) -> bool:
        """Check if the ask ended by user cancellation."""
        return self.err_type == ErrorType.CANCELED


class ConciseAnswerReq(BaseModel, frozen=True):
    """Short helper ask, e.g. generating a workspace title."""

    prompt: str
    context: str = ""
    backend: str


class AskAttachments(BaseModel, frozen=True):
    """Non-text material sent along with an ask.

    Attributes:
        image_urls: Image URLs (data URLs or remote URLs), in attach order
        remote_image_urls: Remote (Sydney-uploaded) URLs, in attach order
    """

    image_urls: list[str] = Field(default_factory=list)
    remote_image_urls: list[str] = Field(default_factory=list)

    @property
    def has_images(self) -> bool:
        return bool(self.image_urls or self.remote_image_urls)


class RawBackendResult(BaseModel, frozen=True):
    """What a backend call produced before reduction.

    A result carrying ``error_category`` is a failure even if some text
    was streamed before the error arrived.
    """

    text: str = ""
    suggested_responses: list[str] = Field(default_factory=list)
    generative_image: GenerativeImage | None = None
    generative_music: GenerativeMusic | None = None
    error_category: ErrorType | None = None
    error_message: str = ""

    @property
    def ok(self) -> bool:
        return self.error_category is None
