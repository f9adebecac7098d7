"""File picker interface for sydneyqt.

Implemented by the UI layer; a picker returning None means the user
canceled the dialog.
"""

from pathlib import Path
from typing import Protocol, runtime_checkable

__all__ = [
    "FilePicker",
]


@runtime_checkable
class FilePicker(Protocol):
    async def pick(self, title: str, patterns: list[str]) -> Path | None:
        """Ask the user for a file.

        Args:
            title: Dialog title
            patterns: Glob patterns accepted, e.g. ["*.jpg", "*.png"]

        Returns:
            Selected path, or None if the user canceled
        """
        ...
