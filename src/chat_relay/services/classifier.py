"""Task classifier for chat_relay.

Labels a prompt with a task category by case-insensitive substring
matching against fixed keyword sets.
"""

from chat_relay.models.catalog import TaskCategory

__all__ = [
    "TASK_KEYWORDS",
    "classify",
]

# Checked in order; the first category with a matching keyword wins.
TASK_KEYWORDS: tuple[tuple[TaskCategory, tuple[str, ...]], ...] = (
    (
        TaskCategory.CODING,
        ("code", "function", "program", "javascript", "python", "algorithm", "html", "css", "api"),
    ),
    (
        TaskCategory.CREATIVE,
        ("write", "story", "poem", "creative", "fiction", "novel", "essay"),
    ),
    (
        TaskCategory.ANALYSIS,
        ("analyze", "analysis", "research", "study", "examine", "evaluate", "report"),
    ),
    (
        TaskCategory.SUMMARIZATION,
        ("summarize", "summary", "shorten", "brief", "condense", "tldr"),
    ),
)


def classify(prompt: str) -> TaskCategory:
    """Classify a prompt into a task category.

    Matching is substring based, so "decode" counts as coding.

    Args:
        prompt: Prompt text

    Returns:
        First matching category, or general if nothing matches
    """
    text = (prompt or "").lower()
    for category, keywords in TASK_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return TaskCategory.GENERAL
