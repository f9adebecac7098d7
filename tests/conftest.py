"""Shared test fixtures for sydneyqt.

This module provides pytest fixtures used across all tests.
"""

from unittest.mock import AsyncMock

import pytest
from mocks.memory_store import InMemoryConfigStore
from mocks.mock_backend import MockBackendClient
from mocks.mock_tokens import FixedTokenCounter

from sydneyqt.models.config import OpenAIBackend
from sydneyqt.models.reference import (
    DocumentData,
    DocumentReference,
    ImageData,
    ImageReference,
    WebpageData,
    WebpageReference,
)
from sydneyqt.models.youtube import YoutubeVideoDetails, YtCustomCaption, YtTranscriptText
from sydneyqt.orchestrator import AskOrchestrator
from sydneyqt.services.backend_registry import BackendRegistry
from sydneyqt.services.config_session import ConfigSession
from sydneyqt.services.content_store import ContentReferenceStore
from sydneyqt.services.workspace_manager import WorkspaceManager


# Core fixtures
@pytest.fixture
def store() -> InMemoryConfigStore:
    """Create an empty in-memory config store."""
    return InMemoryConfigStore()


@pytest.fixture
def session(store: InMemoryConfigStore) -> ConfigSession:
    """Create a migrated config session over the in-memory store."""
    return ConfigSession.load(store)


@pytest.fixture
def workspaces(session: ConfigSession) -> WorkspaceManager:
    return WorkspaceManager(session)


@pytest.fixture
def sydney_client() -> MockBackendClient:
    return MockBackendClient(default_reply="Hello from Sydney")


@pytest.fixture
def openai_client() -> MockBackendClient:
    return MockBackendClient(default_reply="Hello from OpenAI")


@pytest.fixture
def token_counter() -> FixedTokenCounter:
    return FixedTokenCounter()


@pytest.fixture
def registry(
    session: ConfigSession,
    workspaces: WorkspaceManager,
    sydney_client: MockBackendClient,
    openai_client: MockBackendClient,
    token_counter: FixedTokenCounter,
) -> BackendRegistry:
    return BackendRegistry(
        session, workspaces, sydney_client, openai_client, token_counter=token_counter
    )


@pytest.fixture
def mock_youtube() -> AsyncMock:
    """Create mock YouTube client."""
    youtube = AsyncMock()
    youtube.get_transcript.return_value = [
        YtTranscriptText(start=0.0, dur=2.0, value="Hello"),
        YtTranscriptText(start=2.0, dur=2.0, value="world"),
    ]
    return youtube


@pytest.fixture
def mock_web() -> AsyncMock:
    """Create mock web page reader."""
    web = AsyncMock()
    web.read.return_value = WebpageData(url="https://example.com", content="Example Domain")
    return web


@pytest.fixture
def content(
    workspaces: WorkspaceManager,
    mock_youtube: AsyncMock,
    mock_web: AsyncMock,
    tmp_path,
) -> ContentReferenceStore:
    return ContentReferenceStore(workspaces, mock_youtube, mock_web, temp_dir=tmp_path)


@pytest.fixture
def orchestrator(
    session: ConfigSession,
    workspaces: WorkspaceManager,
    registry: BackendRegistry,
    content: ContentReferenceStore,
) -> AskOrchestrator:
    return AskOrchestrator(
        session,
        workspaces,
        registry,
        content,
        default_timeout=5.0,
        rate_limit_retries=2,
        retry_backoff_seconds=0.0,
    )


# Sample data fixtures
@pytest.fixture
def sample_backend() -> OpenAIBackend:
    """Create sample OpenAI-compatible backend profile."""
    return OpenAIBackend(
        name="gpt",
        openai_key="sk-test",
        openai_endpoint="https://api.example.com/v1",
        openai_short_model="gpt-small",
        openai_long_model="gpt-large",
        openai_threshold=4000,
    )


@pytest.fixture
def sample_document_ref() -> DocumentReference:
    return DocumentReference(
        uuid="doc-1",
        data=DocumentData(name="notes.md", ext=".md", text="Meeting notes"),
    )


@pytest.fixture
def sample_image_ref() -> ImageReference:
    return ImageReference(
        uuid="img-1",
        data=ImageData(
            base64_url="data:image/jpeg;base64,AAAA",
            bing_url="https://www.bing.com/images/blob?bcid=1",
        ),
    )


@pytest.fixture
def sample_webpage_ref() -> WebpageReference:
    return WebpageReference(
        uuid="web-1",
        data=WebpageData(url="https://example.com", content="Example Domain"),
    )


@pytest.fixture
def sample_video_details() -> YoutubeVideoDetails:
    return YoutubeVideoDetails(title="A talk", length_seconds="120", author="Someone")


@pytest.fixture
def sample_caption() -> YtCustomCaption:
    return YtCustomCaption(
        name="English", language_code="en", url="https://www.youtube.com/api/timedtext?v=x"
    )
