"""Public DTO models for chat_relay.

This module exports all public data transfer objects.
"""

from chat_relay.models.catalog import ModelInfo, ProviderStatus, SubscriptionTier, TaskCategory
from chat_relay.models.chat import ChatDTO
from chat_relay.models.message import ImageAttachment, MessageDTO, MessageRole, Usage
from chat_relay.models.routing import RouterInput, RouterOutput
from chat_relay.models.stream import StreamEvent, StreamEventType, TextDelta

__all__ = [
    "ChatDTO",
    "ImageAttachment",
    "MessageDTO",
    "MessageRole",
    "ModelInfo",
    "ProviderStatus",
    "RouterInput",
    "RouterOutput",
    "StreamEvent",
    "StreamEventType",
    "SubscriptionTier",
    "TaskCategory",
    "TextDelta",
    "Usage",
]
