"""Routing boundary models for chat_relay.

These frozen models define the contract of the model selector.
"""

from pydantic import BaseModel, Field

from chat_relay.models.catalog import ModelInfo, SubscriptionTier, TaskCategory
from chat_relay.models.message import ImageAttachment

__all__ = [
    "RouterInput",
    "RouterOutput",
]


class RouterInput(BaseModel, frozen=True):
    """Everything the selector needs to pick a model.

    Attributes:
        prompt: Prompt text of the current user turn
        tier: Caller's subscription tier (trusted as supplied)
        model_id: Explicit model request, honoured only within eligibility
        provider: Preferred provider, honoured when it narrows to a non-empty set
        task: Precomputed task category; classified from the prompt if absent
        images: Images attached to the prompt
    """

    prompt: str
    tier: SubscriptionTier
    model_id: str | None = None
    provider: str | None = None
    task: TaskCategory | None = None
    images: list[ImageAttachment] = Field(default_factory=list)


class RouterOutput(BaseModel, frozen=True):
    """Result of model selection.

    Attributes:
        model: Selected model
        task: Resolved task category
        segments: Ordered prompt segments, present only when the prompt
            exceeds half of the model's token budget
        is_available: Whether the model's provider was available at selection time
    """

    model: ModelInfo
    task: TaskCategory
    segments: list[str] | None = None
    is_available: bool = True

    @property
    def is_segmented(self) -> bool:
        return bool(self.segments)
