"""Model selector for chat_relay.

Combines the catalog, the task classifier, the caller's tier, explicit
preferences and provider availability into one model choice.
"""

from collections.abc import Collection

from chat_relay.errors import NoEligibleModel
from chat_relay.logging import get_logger
from chat_relay.models.catalog import ModelInfo, SubscriptionTier, TaskCategory
from chat_relay.models.routing import RouterInput, RouterOutput
from chat_relay.services.catalog import ModelCatalog
from chat_relay.services.classifier import classify
from chat_relay.services.segmenter import needs_segmentation, segment

__all__ = [
    "ModelSelector",
]

logger = get_logger(__name__)


def _by_tier_descending(models: list[ModelInfo]) -> list[ModelInfo]:
    # sorted() is stable, so equal tiers keep catalog order
    return sorted(models, key=lambda m: m.tier.rank, reverse=True)


class ModelSelector:
    """Picks one model for a request.

    Selection is synchronous and side-effect free apart from logging.
    Provider availability is passed in per call rather than looked up,
    so the same inputs always produce the same choice.

    Example:
        selector = ModelSelector(ModelCatalog())
        output = selector.select(RouterInput(prompt="hi", tier="free"), {"openai"})
    """

    def __init__(self, catalog: ModelCatalog) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> ModelCatalog:
        return self._catalog

    def candidates(self, task: TaskCategory, tier: SubscriptionTier) -> list[ModelInfo]:
        """Eligible models for a task and tier.

        Falls back to every tier-eligible model when none is tagged
        for the task.
        """
        return self._catalog.models_for_task(task, tier) or self._catalog.models_for_tier(tier)

    def select(
        self,
        router_input: RouterInput,
        available: Collection[str] = frozenset(),
    ) -> RouterOutput:
        """Select a model.

        Args:
            router_input: Request description
            available: Provider keys currently usable

        Returns:
            RouterOutput with the chosen model, the resolved task and
            prompt segments when the prompt exceeds half the model budget

        Raises:
            NoEligibleModel: If the caller's tier allows no model at all
        """
        task = router_input.task or classify(router_input.prompt)
        candidates = self.candidates(task, router_input.tier)
        if not candidates:
            raise NoEligibleModel(router_input.tier, task)

        chosen = self._explicit(router_input, candidates)
        if chosen is None:
            chosen = self._ranked(router_input, candidates, available)

        is_available = chosen.provider in available
        segments = None
        if needs_segmentation(router_input.prompt, chosen.max_tokens):
            segments = segment(router_input.prompt, max(1, chosen.max_tokens // 2))

        logger.info(
            "model_selected",
            model_id=chosen.id,
            provider=chosen.provider,
            task=task.value,
            tier=router_input.tier.value,
            segments=len(segments) if segments else 0,
        )
        return RouterOutput(
            model=chosen,
            task=task,
            segments=segments,
            is_available=is_available,
        )

    @staticmethod
    def _explicit(router_input: RouterInput, candidates: list[ModelInfo]) -> ModelInfo | None:
        # An explicit id outside eligibility is ignored, not an error
        if router_input.model_id is None:
            return None
        return next((m for m in candidates if m.id == router_input.model_id), None)

    @staticmethod
    def _ranked(
        router_input: RouterInput,
        candidates: list[ModelInfo],
        available: Collection[str],
    ) -> ModelInfo:
        if router_input.images:
            candidates = [m for m in candidates if m.supports_images] or candidates

        if router_input.provider:
            candidates = [m for m in candidates if m.provider == router_input.provider] or (
                candidates
            )

        reachable = _by_tier_descending([m for m in candidates if m.provider in available])
        if reachable:
            return reachable[0]

        unreachable = _by_tier_descending([m for m in candidates if m.provider not in available])
        chosen = unreachable[0]
        logger.warning(
            "selected_unavailable_provider",
            model_id=chosen.id,
            provider=chosen.provider,
            available=sorted(available),
        )
        return chosen
