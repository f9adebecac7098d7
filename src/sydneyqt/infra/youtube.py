"""YouTube client for sydneyqt.

Reads video details and caption tracks from the watch page's embedded
player response, and fetches transcripts for a chosen caption track.
The parsing functions are pure so they can be tested without network.
"""

import html
import json
import re
import xml.etree.ElementTree as ET
from typing import Any

import httpx

from sydneyqt.errors import IngestError
from sydneyqt.logging import get_logger
from sydneyqt.models.youtube import (
    YoutubeVideoDetails,
    YoutubeVideoResult,
    YtCustomCaption,
    YtTranscriptText,
)

__all__ = [
    "YoutubeClient",
    "build_captions",
    "extract_player_response",
    "extract_video_id",
    "parse_transcript_xml",
    "parse_video_details",
]

logger = get_logger(__name__)

_WATCH_URL = "https://www.youtube.com/watch?v="
_VIDEO_ID = re.compile(r"v=([^&]+)")
_PLAYER_RESPONSE = re.compile(r"var ytInitialPlayerResponse = (.*?);var meta =", re.DOTALL)


def extract_video_id(url: str) -> str:
    """Get the video id from a full ``www.youtube.com`` URL.

    Raises:
        IngestError: If the URL is not a YouTube watch URL
    """
    if not url.startswith("https://www.youtube.com"):
        raise IngestError(f"not a valid youtube link: {url}")
    match = _VIDEO_ID.search(url)
    if match is None:
        raise IngestError(f"invalid youtube video url: {url}")
    return match.group(1)


def extract_player_response(page: str) -> dict[str, Any]:
    """Extract the ``ytInitialPlayerResponse`` JSON from a watch page.

    Raises:
        IngestError: If the page carries no parsable player response
    """
    match = _PLAYER_RESPONSE.search(page)
    if match is None:
        raise IngestError("cannot find ytInitialPlayerResponse from html")
    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        raise IngestError(f"cannot parse ytInitialPlayerResponse: {e}") from e
    if not isinstance(data, dict):
        raise IngestError("ytInitialPlayerResponse is not an object")
    return data


def parse_video_details(player: dict[str, Any]) -> YoutubeVideoDetails:
    """Build video details; the largest (last) thumbnail becomes ``pic_url``."""
    details = player.get("videoDetails")
    if not isinstance(details, dict):
        raise IngestError("cannot find videoDetails")

    thumbnails = details.get("thumbnail", {}).get("thumbnails") or []
    return YoutubeVideoDetails(
        title=details.get("title", ""),
        length_seconds=str(details.get("lengthSeconds", "")),
        description=details.get("shortDescription", ""),
        keywords=details.get("keywords") or [],
        pic_url=thumbnails[-1].get("url", "") if thumbnails else "",
        author=details.get("author", ""),
    )


def build_captions(player: dict[str, Any]) -> list[YtCustomCaption]:
    """Build the caption list: every track, then translations of the first.

    Translation variants exist only when the first track is translatable;
    each one reuses the first track URL with a ``tlang`` parameter.

    Raises:
        IngestError: If the video has no caption data
    """
    renderer = player.get("captions", {}).get("playerCaptionsTracklistRenderer")
    if not isinstance(renderer, dict):
        raise IngestError("cannot find youtube captions")

    tracks = renderer.get("captionTracks") or []
    captions = [
        YtCustomCaption(
            name=track.get("name", {}).get("simpleText", ""),
            language_code=track.get("languageCode", ""),
            url=track.get("baseUrl", ""),
            is_asr=track.get("kind") == "asr",
        )
        for track in tracks
    ]
    if not tracks or not tracks[0].get("isTranslatable"):
        return captions

    first_url = captions[0].url
    for lang in renderer.get("translationLanguages") or []:
        code = lang.get("languageCode", "")
        captions.append(
            YtCustomCaption(
                name=lang.get("languageName", {}).get("simpleText", ""),
                language_code=code,
                url=f"{first_url}&tlang={code}",
                is_translated=True,
            )
        )
    return captions


def parse_transcript_xml(document: str | bytes) -> list[YtTranscriptText]:
    """Parse a ``<transcript><text start dur>...</text></transcript>`` document.

    Segments are returned ordered by start time.

    Raises:
        IngestError: If the document is not valid transcript XML
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise IngestError(f"invalid transcript xml: {e}") from e
    if root.tag != "transcript":
        raise IngestError(f"unexpected transcript root element: {root.tag}")

    texts: list[YtTranscriptText] = []
    for node in root.iter("text"):
        try:
            start = float(node.get("start", "0"))
            dur = float(node.get("dur", "0"))
        except ValueError as e:
            raise IngestError(f"invalid transcript timing: {e}") from e
        texts.append(YtTranscriptText(start=start, dur=dur, value=html.unescape(node.text or "")))

    texts.sort(key=lambda t: t.start)
    return texts


class YoutubeClient:
    """Async YouTube page and transcript reader.

    Example:
        async with httpx.AsyncClient() as http:
            yt = YoutubeClient(http)
            video = await yt.get_video("https://youtu.be/LUch7N9Gw28")
            transcript = await yt.get_transcript(video.captions[0])
    """

    def __init__(self, client: httpx.AsyncClient, timeout: float = 15.0) -> None:
        self._client = client
        self._timeout = timeout

    async def resolve_url(self, url: str) -> str:
        """Follow a ``youtu.be`` short link one hop to its watch URL."""
        if not url.startswith("https://youtu.be"):
            return url
        try:
            response = await self._client.head(url, follow_redirects=False, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise IngestError(f"cannot head {url}: {e}") from e
        if response.is_error:
            raise IngestError(f"cannot head {url}, status: {response.status_code}")
        return response.headers.get("location", "")

    async def get_video(self, url: str) -> YoutubeVideoResult:
        """Fetch video details and caption tracks.

        Raises:
            IngestError: If the link is invalid or the page cannot be read
        """
        video_id = extract_video_id(await self.resolve_url(url))
        page = await self._get_text(_WATCH_URL + video_id, "cannot fetch youtube url")
        player = extract_player_response(page)

        result = YoutubeVideoResult(
            details=parse_video_details(player),
            captions=build_captions(player),
        )
        logger.info(
            "youtube_video_fetched",
            video_id=video_id,
            captions=len(result.captions),
        )
        return result

    async def get_transcript(self, caption: YtCustomCaption) -> list[YtTranscriptText]:
        """Fetch the transcript of one caption track.

        Each call issues a new request.

        Raises:
            IngestError: If the request fails or the transcript is invalid
        """
        body = await self._get_text(caption.url, "cannot fetch transcript")
        texts = parse_transcript_xml(body)
        logger.debug(
            "youtube_transcript_fetched",
            language_code=caption.language_code,
            segments=len(texts),
        )
        return texts

    async def _get_text(self, url: str, failure: str) -> str:
        try:
            response = await self._client.get(url, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise IngestError(f"{failure}: {e}") from e
        if response.is_error:
            raise IngestError(f"{failure}: {response.status_code}; url: {url}")
        return response.text
