"""Unit tests for document, image and web page ingestion helpers."""

import io
from pathlib import Path

import httpx
import pytest
from PIL import Image

from sydneyqt.errors import IngestError
from sydneyqt.infra.documents import extract_document, normalize_extracted_text
from sydneyqt.infra.images import decode_base64_image, to_data_url, to_jpeg
from sydneyqt.infra.web import JINA_READER_URL, WebPageReader


class TestDocuments:
    """Tests for document text extraction."""

    def test_plain_text(self, tmp_path: Path) -> None:
        path = tmp_path / "Notes.MD"
        path.write_text("# Title\n\nBody", encoding="utf-8")

        data = extract_document(path)

        assert data.name == "Notes.MD"
        assert data.ext == ".md"
        assert data.text == "# Title\n\nBody"

    def test_unsupported_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "archive.zip"
        path.write_bytes(b"PK")

        with pytest.raises(IngestError, match="Unsupported document type"):
            extract_document(path)

    def test_empty_document(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.txt"
        path.write_text("  \n", encoding="utf-8")

        with pytest.raises(IngestError, match="contains no text"):
            extract_document(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(IngestError, match="Cannot read document"):
            extract_document(tmp_path / "missing.txt")

    def test_normalize_extracted_text(self) -> None:
        assert normalize_extracted_text("a\r\n\r\n\nb\n") == "a\nb"


class TestImages:
    """Tests for image normalization."""

    @pytest.mark.parametrize("mode", ["RGB", "RGBA", "P", "L"])
    def test_to_jpeg(self, mode: str) -> None:
        buffer = io.BytesIO()
        Image.new(mode, (4, 4)).save(buffer, format="PNG")

        jpeg = to_jpeg(buffer.getvalue())

        with Image.open(io.BytesIO(jpeg)) as image:
            assert image.format == "JPEG"
            assert image.mode == "RGB"

    def test_to_jpeg_rejects_garbage(self) -> None:
        with pytest.raises(IngestError, match="Cannot read image"):
            to_jpeg(b"not an image")

    def test_data_url_round_trip(self) -> None:
        url = to_data_url(b"\xff\xd8\xff")
        assert url.startswith("data:image/jpeg;base64,")
        assert decode_base64_image(url) == b"\xff\xd8\xff"

    def test_decode_invalid_base64(self) -> None:
        with pytest.raises(IngestError):
            decode_base64_image("@@@")


class TestWebPageReader:
    """Tests for WebPageReader over a mock transport."""

    @pytest.mark.asyncio
    async def test_read(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="  Example Domain\n")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            data = await WebPageReader(http).read("https://example.com")

        assert data.url == "https://example.com"
        assert data.content == "Example Domain"
        assert seen[0].url.host == "r.jina.ai"
        assert str(seen[0].url).startswith(JINA_READER_URL)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response", [httpx.Response(404), httpx.Response(200, text="   ")]
    )
    async def test_read_failures(self, response: httpx.Response) -> None:
        transport = httpx.MockTransport(lambda request: response)

        async with httpx.AsyncClient(transport=transport) as http:
            with pytest.raises(IngestError):
                await WebPageReader(http).read("https://example.com")

    @pytest.mark.asyncio
    async def test_rejects_non_web_url(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200))

        async with httpx.AsyncClient(transport=transport) as http:
            with pytest.raises(IngestError, match="Not a web URL"):
                await WebPageReader(http).read("file:///etc/passwd")
