"""Prompt segmenter for chat_relay.

Splits prompts that exceed a model's budget into ordered chunks along
paragraph and sentence boundaries.
"""

import re

from chat_relay.logging import get_logger
from chat_relay.utils.tokens import estimate_tokens

__all__ = [
    "PARAGRAPH_SEPARATOR",
    "SENTENCE_SEPARATOR",
    "needs_segmentation",
    "segment",
]

logger = get_logger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"
SENTENCE_SEPARATOR = " "

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def needs_segmentation(prompt: str, max_tokens: int) -> bool:
    """True if the prompt's estimate exceeds half of the model budget."""
    return estimate_tokens(prompt) > max_tokens / 2


def _pack(pieces: list[str], separator: str, max_tokens: int) -> list[str]:
    """Greedily join consecutive pieces while the estimate stays in budget."""
    packed: list[str] = []
    current = ""
    for piece in pieces:
        candidate = f"{current}{separator}{piece}" if current else piece
        if not current or estimate_tokens(candidate) <= max_tokens:
            current = candidate
        else:
            packed.append(current)
            current = piece
    if current:
        packed.append(current)
    return packed


def _split_paragraph(paragraph: str, max_tokens: int) -> list[str]:
    sentences = [s for s in _SENTENCE_BOUNDARY.split(paragraph) if s]
    chunks = _pack(sentences, SENTENCE_SEPARATOR, max_tokens)
    for chunk in chunks:
        if estimate_tokens(chunk) > max_tokens:
            logger.warning(
                "segmentation_overflow",
                estimated_tokens=estimate_tokens(chunk),
                max_tokens=max_tokens,
            )
    return chunks


def segment(prompt: str, max_tokens: int) -> list[str]:
    """Split a prompt into ordered segments of at most ``max_tokens``.

    Paragraphs (blank-line separated) are packed greedily. A paragraph
    that alone exceeds the budget is split on sentence boundaries and
    packed the same way. A single sentence that still exceeds the budget
    is returned verbatim and logged as ``segmentation_overflow``.

    Args:
        prompt: Prompt text
        max_tokens: Token budget per segment (estimated as length / 4)

    Returns:
        Ordered segments; empty for an empty prompt

    Raises:
        ValueError: If max_tokens is not positive
    """
    if max_tokens <= 0:
        raise ValueError("max_tokens must be positive")
    if not prompt:
        return []
    if estimate_tokens(prompt) <= max_tokens:
        return [prompt]

    segments: list[str] = []
    current = ""
    for paragraph in prompt.split(PARAGRAPH_SEPARATOR):
        if estimate_tokens(paragraph) > max_tokens:
            if current:
                segments.append(current)
                current = ""
            segments.extend(_split_paragraph(paragraph, max_tokens))
            continue
        candidate = f"{current}{PARAGRAPH_SEPARATOR}{paragraph}" if current else paragraph
        if not current or estimate_tokens(candidate) <= max_tokens:
            current = candidate
        else:
            segments.append(current)
            current = paragraph
    if current:
        segments.append(current)
    return segments
