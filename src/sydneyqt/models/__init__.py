"""Public models for sydneyqt.

This module exports all request, result and persisted data models.
"""

from sydneyqt.models.ask import (
    AskAttachments,
    AskOptions,
    AskType,
    ChatFinishResult,
    ConciseAnswerReq,
    ErrorType,
    GenerateImageResult,
    GenerateMusicResult,
    GenerativeImage,
    GenerativeMusic,
    RawBackendResult,
)
from sydneyqt.models.config import Config, Migration, OpenAIBackend, Preset
from sydneyqt.models.reference import (
    DataReference,
    DocumentData,
    DocumentReference,
    ImageData,
    ImageReference,
    ReferenceKind,
    VideoData,
    VideoReference,
    WebpageData,
    WebpageReference,
)
from sydneyqt.models.upload import UploadDocumentResult, UploadImageResult
from sydneyqt.models.workspace import (
    BUILTIN_BACKEND,
    DEFAULT_WORKSPACE_TITLE,
    Workspace,
    WorkspaceState,
)
from sydneyqt.models.youtube import (
    YoutubeVideoDetails,
    YoutubeVideoResult,
    YtCustomCaption,
    YtTranscriptText,
)

__all__ = [
    "BUILTIN_BACKEND",
    "DEFAULT_WORKSPACE_TITLE",
    "AskAttachments",
    "AskOptions",
    "AskType",
    "ChatFinishResult",
    "ConciseAnswerReq",
    "Config",
    "DataReference",
    "DocumentData",
    "DocumentReference",
    "ErrorType",
    "GenerateImageResult",
    "GenerateMusicResult",
    "GenerativeImage",
    "GenerativeMusic",
    "ImageData",
    "ImageReference",
    "Migration",
    "OpenAIBackend",
    "Preset",
    "RawBackendResult",
    "ReferenceKind",
    "UploadDocumentResult",
    "UploadImageResult",
    "VideoData",
    "VideoReference",
    "WebpageData",
    "WebpageReference",
    "Workspace",
    "WorkspaceState",
    "YoutubeVideoDetails",
    "YoutubeVideoResult",
    "YtCustomCaption",
    "YtTranscriptText",
]
