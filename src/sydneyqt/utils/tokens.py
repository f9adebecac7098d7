"""Token estimation using tiktoken.

Uses the cl100k_base encoding (the GPT-4 encoding) for every backend,
so routing decisions are deterministic regardless of provider.
"""

import tiktoken

__all__ = [
    "count_tokens",
]

_encoding: tiktoken.Encoding | None = None


def _get_encoding() -> tiktoken.Encoding:
    """Get or create the cl100k_base encoding."""
    global _encoding
    if _encoding is None:
        _encoding = tiktoken.get_encoding("cl100k_base")
    return _encoding


def count_tokens(text: str) -> int:
    """Count tokens of a text string.

    Args:
        text: Input text

    Returns:
        Token count (0 for empty text)
    """
    if not text:
        return 0
    return len(_get_encoding().encode(text, disallowed_special=()))
