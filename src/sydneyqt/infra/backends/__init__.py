"""Backend client implementations for sydneyqt."""

from sydneyqt.infra.backends.openai_backend import OpenAIBackendClient
from sydneyqt.infra.backends.sydney_backend import SydneyBackendClient

__all__ = [
    "OpenAIBackendClient",
    "SydneyBackendClient",
]
