"""Web page reader for sydneyqt.

Pages are fetched as readable text through the r.jina.ai reader.
"""

import httpx

from sydneyqt.errors import IngestError
from sydneyqt.logging import get_logger
from sydneyqt.models.reference import WebpageData

__all__ = [
    "JINA_READER_URL",
    "WebPageReader",
]

logger = get_logger(__name__)

JINA_READER_URL = "https://r.jina.ai/"


class WebPageReader:
    """Fetches readable page text.

    Example:
        reader = WebPageReader(httpx.AsyncClient())
        data = await reader.read("https://example.com")
    """

    def __init__(self, client: httpx.AsyncClient, timeout: float = 15.0) -> None:
        self._client = client
        self._timeout = timeout

    async def read(self, url: str) -> WebpageData:
        """Fetch a page.

        Raises:
            IngestError: If the URL is not http(s), the request fails, or
                the page has no text
        """
        if not url.startswith(("http://", "https://")):
            raise IngestError(f"Not a web URL: {url}")

        try:
            response = await self._client.get(
                JINA_READER_URL + url,
                headers={"Accept": "text/plain"},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise IngestError(f"Cannot fetch {url}: {e}") from e

        content = response.text.strip()
        if not content:
            raise IngestError(f"Page has no readable text: {url}")

        logger.debug("webpage_fetched", url=url, chars=len(content))
        return WebpageData(url=url, content=content)
