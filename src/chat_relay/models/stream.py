"""Streaming models for chat_relay.

TextDelta is the normalized unit every provider adapter emits.
StreamEvent is the caller-facing envelope sent over the HTTP surface.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

__all__ = [
    "StreamEvent",
    "StreamEventType",
    "TextDelta",
]


class TextDelta(BaseModel, frozen=True):
    """One incremental fragment of generated text."""

    text: str


class StreamEventType(StrEnum):
    METADATA = "metadata"
    CHUNK = "chunk"
    USAGE = "usage"
    ERROR = "error"
    DONE = "done"


class StreamEvent(BaseModel, frozen=True):
    """Caller-facing stream event.

    Serialized as ``{"event": ..., "data": {...}}``.
    """

    event: StreamEventType
    data: dict[str, Any] = Field(default_factory=dict)

    def to_sse(self) -> str:
        """Render as a server-sent event frame."""
        return f"data: {self.model_dump_json()}\n\n"
