"""Chat context format helpers.

Workspace context is stored as a sequence of blocks, each introduced by
a ``[role](#type)`` header line::

    [system](#additional_instructions)
    You're an AI assistant named Sydney.

    [user](#message)
    Hello
"""

import re
from dataclasses import dataclass

__all__ = [
    "ChatMessage",
    "append_messages",
    "format_message",
    "parse_chat_messages",
    "to_markdown",
]

_HEADER = re.compile(r"^\[(system|user|assistant)\]\(#([\w-]+)\)[ \t]*$", re.MULTILINE)


@dataclass(frozen=True)
class ChatMessage:
    role: str
    type: str
    content: str


def parse_chat_messages(context: str) -> list[ChatMessage]:
    """Split a context string into its messages.

    Text before the first header is treated as a system instruction.
    """
    messages: list[ChatMessage] = []
    matches = list(_HEADER.finditer(context))

    leading = context[: matches[0].start()] if matches else context
    if leading.strip():
        messages.append(ChatMessage("system", "additional_instructions", leading.strip()))

    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(context)
        content = context[match.end() : end].strip()
        messages.append(ChatMessage(match.group(1), match.group(2), content))

    return messages


def format_message(role: str, type_: str, content: str) -> str:
    """Render one block."""
    return f"[{role}](#{type_})\n{content.strip()}\n\n"


def append_messages(context: str, messages: list[ChatMessage]) -> str:
    """Append blocks to a context, keeping one blank line between blocks."""
    base = context.rstrip()
    rendered = "".join(format_message(m.role, m.type, m.content) for m in messages)
    if not base:
        return rendered
    return f"{base}\n\n{rendered}"


def to_markdown(context: str, pending_input: str = "") -> str:
    """Export a context as Markdown, with any pending input as a last user block."""
    out: list[str] = []
    for msg in parse_chat_messages(context):
        out.append(f"# \\[{msg.role}\\](#{msg.type})\n{msg.content}\n\n")
    pending = pending_input.strip()
    if pending:
        out.append(f"# \\[user\\](#message)\n{pending_input}\n\n")
    return "".join(out)
