"""Catalog models for chat_relay.

These models describe the backend models a request can be routed to
and the vocabulary used to decide eligibility.
"""

from enum import StrEnum

from pydantic import BaseModel, Field

__all__ = [
    "ModelInfo",
    "ProviderStatus",
    "SubscriptionTier",
    "TaskCategory",
]

_TIER_RANK = {"free": 1, "pro": 2, "enterprise": 3}


class SubscriptionTier(StrEnum):
    """Subscription level governing model eligibility.

    Tiers are totally ordered: free < pro < enterprise. Comparisons use
    that order rather than string order.
    """

    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self.value]

    def allows(self, other: "SubscriptionTier") -> bool:
        """True if a caller on this tier may use a model of tier ``other``."""
        return SubscriptionTier(other).rank <= self.rank

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SubscriptionTier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, SubscriptionTier):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, SubscriptionTier):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, SubscriptionTier):
            return NotImplemented
        return self.rank >= other.rank


class TaskCategory(StrEnum):
    """Heuristic label describing the nature of a prompt.

    Derived per request and never persisted; a routing hint only.
    """

    GENERAL = "general"
    CODING = "coding"
    CREATIVE = "creative"
    ANALYSIS = "analysis"
    SUMMARIZATION = "summarization"


class ModelInfo(BaseModel, frozen=True):
    """A backend model available for routing.

    Attributes:
        id: Globally unique model identifier sent to the provider
        name: Human-readable display name
        provider: Provider key used for adapter lookup and availability
        capabilities: Ordered task categories this model is suited for
        tier: Minimum subscription tier required to use the model
        max_tokens: Context size in tokens
        description: Optional human description
        supports_images: Whether user turns may carry image attachments
    """

    id: str = Field(min_length=1)
    name: str
    provider: str = Field(description="Provider key (openai, anthropic, ...)")
    capabilities: tuple[TaskCategory, ...] = Field(default=(TaskCategory.GENERAL,))
    tier: SubscriptionTier = Field(default=SubscriptionTier.FREE)
    max_tokens: int = Field(default=4000, gt=0)
    description: str | None = None
    supports_images: bool = False

    def has_capability(self, task: TaskCategory) -> bool:
        """Check if the model is tagged for a task category."""
        return task in self.capabilities


class ProviderStatus(BaseModel, frozen=True):
    """Availability report for one provider.

    Attributes:
        name: Provider key
        available: Whether requests can be routed to the provider right now
        key_info: Masked credential or endpoint description, never the secret
    """

    name: str
    available: bool
    key_info: str
