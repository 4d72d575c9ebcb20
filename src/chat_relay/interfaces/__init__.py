"""Interface contracts for chat_relay.

This module exports all Protocol-based interfaces for dependency injection.
"""

from chat_relay.interfaces.credentials import CredentialSource
from chat_relay.interfaces.storage import ChatStorageInterface

__all__ = [
    "ChatStorageInterface",
    "CredentialSource",
]
