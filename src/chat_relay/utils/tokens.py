"""Token estimation utilities for chat_relay.

Providers that do not report exact usage are accounted with a
character-based estimate of four characters per token.
"""

import math
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chat_relay.domain.message import Message

__all__ = [
    "CHARS_PER_TOKEN",
    "estimate_tokens",
    "format_token_count",
    "total_tokens_used",
]

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Estimate the token count of a text (length / 4, rounded up).

    Args:
        text: Input text

    Returns:
        Estimated token count, 0 for empty text
    """
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def format_token_count(count: int) -> str:
    """Format a token count for display: ``999``, ``1.2K``, ``3.4M``."""
    if count < 1000:
        return str(count)
    if count < 1_000_000:
        return f"{count / 1000:.1f}K"
    return f"{count / 1_000_000:.1f}M"


def total_tokens_used(messages: Iterable["Message"]) -> int:
    """Total tokens used across messages.

    Exact usage is taken where a message carries it; other messages
    fall back to an estimate of their content.
    """
    total = 0
    for message in messages:
        if message.usage is not None:
            total += message.usage.total_tokens
        else:
            total += estimate_tokens(message.content)
    return total
