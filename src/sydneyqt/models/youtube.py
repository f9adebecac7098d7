"""YouTube video models for sydneyqt.

These models carry the video details and caption tracks shown to the
user before a transcript is attached to a workspace.
"""

from pydantic import BaseModel, Field

__all__ = [
    "YoutubeVideoDetails",
    "YoutubeVideoResult",
    "YtCustomCaption",
    "YtTranscriptText",
]


class YoutubeVideoDetails(BaseModel, frozen=True):
    """Descriptive details of a video.

    Attributes:
        title: Video title
        length_seconds: Duration in seconds, as reported by YouTube (a string)
        description: Short description
        keywords: Video keywords
        pic_url: Largest thumbnail URL
        author: Channel name
    """

    title: str = ""
    length_seconds: str = ""
    description: str = ""
    keywords: list[str] = Field(default_factory=list)
    pic_url: str = ""
    author: str = ""


class YtCustomCaption(BaseModel, frozen=True):
    """One selectable caption track.

    Translated tracks are derived from the first track and carry
    ``is_translated=True``; ``is_asr`` marks auto-generated speech tracks.
    """

    name: str
    language_code: str
    url: str
    is_asr: bool = False
    is_translated: bool = False


class YtTranscriptText(BaseModel, frozen=True):
    """One timed transcript segment (seconds)."""

    start: float
    dur: float = 0.0
    value: str


class YoutubeVideoResult(BaseModel, frozen=True):
    """Video details plus the ordered caption tracks."""

    details: YoutubeVideoDetails
    captions: list[YtCustomCaption] = Field(default_factory=list)
