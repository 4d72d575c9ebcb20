"""Mutable domain entities for chat_relay."""

from chat_relay.domain.chat import DEFAULT_CHAT_TITLE, Chat, generate_chat_title
from chat_relay.domain.message import Message, new_message_id

__all__ = [
    "DEFAULT_CHAT_TITLE",
    "Chat",
    "Message",
    "generate_chat_title",
    "new_message_id",
]
