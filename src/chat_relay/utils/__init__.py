"""Utility functions for chat_relay.

This module contains internal utility functions.
"""

from chat_relay.utils.export import serialize_chat
from chat_relay.utils.tokens import (
    CHARS_PER_TOKEN,
    estimate_tokens,
    format_token_count,
    total_tokens_used,
)

__all__ = [
    "CHARS_PER_TOKEN",
    "estimate_tokens",
    "format_token_count",
    "serialize_chat",
    "total_tokens_used",
]
