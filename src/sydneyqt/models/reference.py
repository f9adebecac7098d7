"""Data reference models for sydneyqt.

A DataReference is a typed attachment on a workspace. The ``type`` field
discriminates the payload; unknown types are rejected at validation.
"""

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter

from sydneyqt.models.youtube import YoutubeVideoDetails, YtCustomCaption, YtTranscriptText

__all__ = [
    "DataReference",
    "DocumentData",
    "DocumentReference",
    "ImageData",
    "ImageReference",
    "ReferenceKind",
    "VideoData",
    "VideoReference",
    "WebpageData",
    "WebpageReference",
    "parse_reference",
]


class ReferenceKind(StrEnum):
    """Closed set of attachment kinds."""

    DOCUMENT = "document"
    IMAGE = "image"
    VIDEO = "video"
    WEBPAGE = "webpage"


class DocumentData(BaseModel, frozen=True):
    """Extracted document text.

    Attributes:
        name: Original file name
        ext: File extension including the dot (e.g. ".pdf")
        text: Extracted plain text
    """

    name: str
    ext: str
    text: str = Field(min_length=1)


class ImageData(BaseModel, frozen=True):
    """Displayable image forms.

    Attributes:
        base64_url: Local JPEG as a ``data:`` URL
        bing_url: Remote URL returned by the Sydney image upload, if any
    """

    base64_url: str
    bing_url: str = ""


class VideoData(BaseModel, frozen=True):
    """A video transcript for one selected caption track."""

    details: YoutubeVideoDetails
    caption: YtCustomCaption
    transcript: list[YtTranscriptText] = Field(min_length=1)


class WebpageData(BaseModel, frozen=True):
    """Readable text of a fetched web page."""

    url: str
    content: str = Field(min_length=1)


class DocumentReference(BaseModel, frozen=True):
    uuid: str
    type: Literal["document"] = "document"
    data: DocumentData


class ImageReference(BaseModel, frozen=True):
    uuid: str
    type: Literal["image"] = "image"
    data: ImageData


class VideoReference(BaseModel, frozen=True):
    uuid: str
    type: Literal["video"] = "video"
    data: VideoData


class WebpageReference(BaseModel, frozen=True):
    uuid: str
    type: Literal["webpage"] = "webpage"
    data: WebpageData


DataReference = Annotated[
    DocumentReference | ImageReference | VideoReference | WebpageReference,
    Field(discriminator="type"),
]

_reference_adapter: TypeAdapter[DataReference] = TypeAdapter(DataReference)


def parse_reference(raw: dict) -> DataReference:
    """Validate a raw reference dict into its typed variant.

    Raises:
        pydantic.ValidationError: If ``type`` is unknown or the payload
            does not match it
    """
    return _reference_adapter.validate_python(raw)
