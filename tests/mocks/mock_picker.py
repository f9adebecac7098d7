"""Mock file picker for testing."""

import asyncio
from pathlib import Path

from sydneyqt.interfaces.picker import FilePicker


class MockFilePicker(FilePicker):
    """Returns a fixed path, or None to simulate a canceled dialog.

    With ``gate`` set, the pick waits on it, so an upload can be
    canceled while the dialog is open.
    """

    def __init__(self, path: Path | None, gate: asyncio.Event | None = None) -> None:
        self.path = path
        self.gate = gate
        self.calls: list[tuple[str, list[str]]] = []
        self.opened = asyncio.Event()

    async def pick(self, title: str, patterns: list[str]) -> Path | None:
        self.calls.append((title, patterns))
        self.opened.set()
        if self.gate is not None:
            await self.gate.wait()
        return self.path
