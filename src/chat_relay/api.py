"""HTTP surface for chat_relay.

FastAPI app factory exposing the streaming chat endpoint and model
listings. Caller identity comes from an overridable dependency; the
default trusts the ``X-Caller-Id`` and ``X-Subscription-Tier`` headers
set by the session layer in front of this service.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from chat_relay.logging import configure_logging, get_logger
from chat_relay.models.catalog import ModelInfo, ProviderStatus, SubscriptionTier
from chat_relay.models.message import ImageAttachment
from chat_relay.relay import ChatRelay

__all__ = [
    "Caller",
    "ChatRequest",
    "create_app",
    "get_caller",
    "get_relay",
]

logger = get_logger(__name__)


class Caller(BaseModel, frozen=True):
    """Authenticated caller as supplied by the session collaborator."""

    id: str
    tier: SubscriptionTier


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``."""

    prompt: str = Field(min_length=1)
    chat_id: str | None = None
    model_id: str | None = None
    provider: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    images: list[ImageAttachment] = Field(default_factory=list)


class AvailableProviders(BaseModel):
    providers: list[str]
    status: list[ProviderStatus]


class LocalModelsStatus(BaseModel):
    available: bool
    base_url: str | None
    models: list[str]


def get_caller(
    x_caller_id: Annotated[str, Header()] = "anonymous",
    x_subscription_tier: Annotated[SubscriptionTier, Header()] = SubscriptionTier.FREE,
) -> Caller:
    """Default caller dependency; override it to plug in real auth."""
    return Caller(id=x_caller_id, tier=x_subscription_tier)


def get_relay(request: Request) -> ChatRelay:
    return request.app.state.relay


CallerDep = Annotated[Caller, Depends(get_caller)]
RelayDep = Annotated[ChatRelay, Depends(get_relay)]


def create_app(relay: ChatRelay | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        relay: Relay to serve; one is built from .env settings when omitted.
            The app opens and closes it with its lifespan.

    Returns:
        FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with app.state.relay:
            yield

    relay = relay or ChatRelay()
    configure_logging(relay.config.log_level, json_output=relay.config.log_json)

    app = FastAPI(title="chat-relay", lifespan=lifespan)
    app.state.relay = relay

    @app.post("/api/chat")
    async def chat(body: ChatRequest, caller: CallerDep, relay: RelayDep) -> StreamingResponse:
        if body.chat_id is not None:
            conversation = await relay.get_chat(body.chat_id)
            if conversation is None or conversation.owner_id != caller.id:
                raise HTTPException(status_code=404, detail="Chat not found")
        else:
            conversation = await relay.new_chat(caller.id, model_id=None)

        async def event_stream() -> AsyncIterator[str]:
            async for event in relay.send_message(
                conversation,
                body.prompt,
                caller.tier,
                model_id=body.model_id,
                provider=body.provider,
                temperature=body.temperature,
                images=body.images,
            ):
                yield event.to_sse()

        logger.debug("chat_request", caller_id=caller.id, chat_id=conversation.id)
        return StreamingResponse(
            event_stream(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Chat-Id": conversation.id},
        )

    @app.get("/api/models")
    async def list_models(caller: CallerDep, relay: RelayDep) -> list[ModelInfo]:
        return relay.catalog.models_for_tier(caller.tier)

    @app.get("/api/models/available")
    async def available_providers(relay: RelayDep) -> AvailableProviders:
        status = await relay.oracle.provider_status()
        return AvailableProviders(
            providers=[s.name for s in status if s.available],
            status=status,
        )

    @app.get("/api/local-models/status")
    async def local_models_status(relay: RelayDep) -> LocalModelsStatus:
        models = await relay.oracle.local_models()
        available = bool(models) or await relay.oracle.probe_local()
        return LocalModelsStatus(
            available=available,
            base_url=relay.oracle.local_base_url,
            models=models,
        )

    @app.get("/api/health")
    async def health(relay: RelayDep) -> dict[str, Any]:
        return {"status": "ok", "storage": await relay.storage_status()}

    return app
