"""Chat export helpers for chat_relay."""

from collections.abc import Iterable
from typing import TYPE_CHECKING, Literal

from chat_relay.models.message import MessageRole

if TYPE_CHECKING:
    from chat_relay.domain.message import Message

__all__ = [
    "serialize_chat",
]

_ROLE_LABELS = {
    MessageRole.USER: "User",
    MessageRole.ASSISTANT: "Assistant",
}


def _label(role: MessageRole) -> str:
    return _ROLE_LABELS.get(role, "System")


def serialize_chat(
    messages: Iterable["Message"],
    fmt: Literal["text", "markdown"] = "text",
) -> str:
    """Serialize messages for export.

    Args:
        messages: Messages in chronological order
        fmt: ``text`` for plain text, ``markdown`` for headed sections

    Returns:
        Serialized chat
    """
    if fmt == "markdown":
        return "---\n\n".join(
            f"## {_label(m.role)} ({m.created_at:%H:%M}):\n\n{m.content}\n\n" for m in messages
        )
    return "".join(f"{_label(m.role)} ({m.created_at:%H:%M}):\n{m.content}\n\n" for m in messages)
