"""Credential source interface for chat_relay.

This module defines the Protocol through which the availability oracle
and provider adapters obtain provider credentials.
"""

from typing import Protocol, runtime_checkable

__all__ = [
    "CredentialSource",
]


@runtime_checkable
class CredentialSource(Protocol):
    """Contract for looking up provider credentials.

    Credentials may change at runtime, so callers must look them up per
    routing decision and never cache the result.
    """

    def get_credential(self, provider: str) -> str | None:
        """Get the secret for a provider.

        Args:
            provider: Provider key (e.g. "openai")

        Returns:
            The secret, or None/empty string when not configured
        """
        ...
