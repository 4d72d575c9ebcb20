"""Model catalog service for chat_relay.

This module provides the read-only registry of backend models
requests can be routed to.
"""

from collections.abc import Iterable

from chat_relay.errors import ModelNotFound
from chat_relay.models.catalog import ModelInfo, SubscriptionTier, TaskCategory

__all__ = [
    "DEFAULT_MODELS",
    "ModelCatalog",
]

_ALL_TASKS = tuple(TaskCategory)

DEFAULT_MODELS: tuple[ModelInfo, ...] = (
    ModelInfo(
        id="gpt-3.5-turbo",
        name="GPT-3.5 Turbo",
        provider="openai",
        capabilities=(TaskCategory.GENERAL, TaskCategory.CODING, TaskCategory.SUMMARIZATION),
        tier=SubscriptionTier.FREE,
        max_tokens=4096,
        description="Fast and efficient for most everyday tasks",
    ),
    ModelInfo(
        id="gpt-4o",
        name="GPT-4o",
        provider="openai",
        capabilities=_ALL_TASKS,
        tier=SubscriptionTier.PRO,
        max_tokens=8192,
        description="Most capable OpenAI model, reads images",
        supports_images=True,
    ),
    ModelInfo(
        id="claude-3-haiku",
        name="Claude 3 Haiku",
        provider="anthropic",
        capabilities=(TaskCategory.GENERAL, TaskCategory.SUMMARIZATION),
        tier=SubscriptionTier.FREE,
        max_tokens=100000,
        description="Fastest Claude model for quick answers",
    ),
    ModelInfo(
        id="claude-3-sonnet",
        name="Claude 3 Sonnet",
        provider="anthropic",
        capabilities=_ALL_TASKS,
        tier=SubscriptionTier.PRO,
        max_tokens=200000,
        description="Balanced Claude model for complex tasks",
        supports_images=True,
    ),
    ModelInfo(
        id="claude-3-opus",
        name="Claude 3 Opus",
        provider="anthropic",
        capabilities=_ALL_TASKS,
        tier=SubscriptionTier.ENTERPRISE,
        max_tokens=200000,
        description="Most powerful Claude model for demanding work",
        supports_images=True,
    ),
    ModelInfo(
        id="gemini-pro",
        name="Gemini Pro",
        provider="google",
        capabilities=_ALL_TASKS,
        tier=SubscriptionTier.PRO,
        max_tokens=30000,
        description="Google's multimodal model",
        supports_images=True,
    ),
    ModelInfo(
        id="mistral-large",
        name="Mistral Large",
        provider="mistral",
        capabilities=(
            TaskCategory.GENERAL,
            TaskCategory.CODING,
            TaskCategory.ANALYSIS,
            TaskCategory.SUMMARIZATION,
        ),
        tier=SubscriptionTier.PRO,
        max_tokens=32000,
        description="Mistral's flagship model",
    ),
    ModelInfo(
        id="llama3",
        name="Llama 3 (local)",
        provider="ollama",
        capabilities=(TaskCategory.GENERAL, TaskCategory.CODING),
        tier=SubscriptionTier.FREE,
        max_tokens=8192,
        description="Locally hosted through Ollama",
    ),
)


class ModelCatalog:
    """Read-only registry of backend models.

    Models keep their insertion order; every query returns models in
    that order so selection tie-breaking stays stable.

    Example:
        catalog = ModelCatalog()
        free_coders = catalog.models_for_task(TaskCategory.CODING, SubscriptionTier.FREE)
    """

    def __init__(self, models: Iterable[ModelInfo] = DEFAULT_MODELS) -> None:
        """Initialize the catalog.

        Args:
            models: Models in catalog order

        Raises:
            ValueError: If two models share an identifier
        """
        self._models: tuple[ModelInfo, ...] = tuple(models)
        self._by_id: dict[str, ModelInfo] = {}
        for model in self._models:
            if model.id in self._by_id:
                raise ValueError(f"Duplicate model id in catalog: {model.id}")
            self._by_id[model.id] = model

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._by_id

    def list_models(self) -> list[ModelInfo]:
        """List all models in insertion order."""
        return list(self._models)

    def get_model(self, model_id: str) -> ModelInfo:
        """Get a model by identifier.

        Raises:
            ModelNotFound: If the identifier is not in the catalog
        """
        try:
            return self._by_id[model_id]
        except KeyError:
            raise ModelNotFound(model_id) from None

    def models_for_tier(self, tier: SubscriptionTier) -> list[ModelInfo]:
        """Models a caller on ``tier`` may use."""
        tier = SubscriptionTier(tier)
        return [m for m in self._models if tier.allows(m.tier)]

    def models_for_task(self, task: TaskCategory, tier: SubscriptionTier) -> list[ModelInfo]:
        """Tier-eligible models tagged for ``task``.

        An empty result is possible; callers must then fall back to
        ``models_for_tier`` in full.
        """
        return [m for m in self.models_for_tier(tier) if m.has_capability(task)]

    def providers(self) -> list[str]:
        """Distinct provider keys in catalog order."""
        return list(dict.fromkeys(m.provider for m in self._models))
