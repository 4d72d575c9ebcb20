"""Service layer for chat_relay.

This module exports the routing and streaming services.
"""

from chat_relay.services.aggregator import (
    EMPTY_RESPONSE_NOTICE,
    ResponseStream,
    StreamObserver,
    StreamState,
)
from chat_relay.services.availability import AvailabilityOracle
from chat_relay.services.catalog import DEFAULT_MODELS, ModelCatalog
from chat_relay.services.classifier import classify
from chat_relay.services.persistence import DebouncedChatWriter
from chat_relay.services.segmenter import segment
from chat_relay.services.selector import ModelSelector

__all__ = [
    "DEFAULT_MODELS",
    "EMPTY_RESPONSE_NOTICE",
    "AvailabilityOracle",
    "DebouncedChatWriter",
    "ModelCatalog",
    "ModelSelector",
    "ResponseStream",
    "StreamObserver",
    "StreamState",
    "classify",
    "segment",
]
