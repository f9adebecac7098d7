"""Utility functions for sydneyqt.

This module contains internal utility functions.
"""

from sydneyqt.utils.chat_format import (
    ChatMessage,
    append_messages,
    format_message,
    parse_chat_messages,
    to_markdown,
)
from sydneyqt.utils.ids import legacy_reference_uuid, new_reference_uuid
from sydneyqt.utils.retry import retry_async

__all__ = [
    "ChatMessage",
    "append_messages",
    "format_message",
    "legacy_reference_uuid",
    "new_reference_uuid",
    "parse_chat_messages",
    "retry_async",
    "to_markdown",
]
