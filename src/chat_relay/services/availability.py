"""Availability oracle for chat_relay.

This module decides, per routing decision, which providers can be
used: hosted providers need a plausible credential, the local Ollama
provider must answer a short liveness probe.
"""

from collections.abc import Iterable
from typing import Any

import httpx

from chat_relay.interfaces.credentials import CredentialSource
from chat_relay.logging import get_logger, mask_secret
from chat_relay.models.catalog import ProviderStatus

__all__ = [
    "HOSTED_PROVIDERS",
    "LOCAL_PROVIDER",
    "AvailabilityOracle",
]

logger = get_logger(__name__)

HOSTED_PROVIDERS: tuple[str, ...] = ("openai", "anthropic", "google", "mistral")
LOCAL_PROVIDER = "ollama"


class AvailabilityOracle:
    """Determines which providers are usable right now.

    Nothing is cached between calls: credentials are re-read from the
    credential source and the local endpoint is probed each time.
    A failed probe, including a timeout, makes the local provider
    unavailable; it never raises.

    Example:
        oracle = AvailabilityOracle(SettingsCredentialSource())
        available = await oracle.available_providers()
    """

    def __init__(
        self,
        credentials: CredentialSource,
        *,
        hosted_providers: Iterable[str] = HOSTED_PROVIDERS,
        min_credential_length: int = 8,
        local_base_url: str | None = "http://localhost:11434",
        probe_timeout: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the oracle.

        Args:
            credentials: Source of provider credentials
            hosted_providers: Providers whose availability is a credential check
            min_credential_length: Credentials must be longer than this
            local_base_url: Ollama endpoint, or None to disable the local provider
            probe_timeout: Liveness probe timeout in seconds
            transport: Optional httpx transport for the probe
        """
        self._credentials = credentials
        self._hosted = tuple(hosted_providers)
        self._min_length = min_credential_length
        self._local_base_url = local_base_url.rstrip("/") if local_base_url else None
        self._probe_timeout = probe_timeout
        self._transport = transport

    @property
    def local_base_url(self) -> str | None:
        return self._local_base_url

    def has_valid_credential(self, provider: str) -> bool:
        """Check that a hosted provider's credential is present and plausible."""
        secret = self._credentials.get_credential(provider)
        return bool(secret) and len(secret.strip()) > self._min_length

    async def _fetch_tags(self) -> Any:
        if self._local_base_url is None:
            return None
        try:
            async with httpx.AsyncClient(
                timeout=self._probe_timeout, transport=self._transport
            ) as client:
                response = await client.get(f"{self._local_base_url}/api/tags")
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.debug("provider_probe_failed", provider=LOCAL_PROVIDER, error=str(e))
            return None

    async def probe_local(self) -> bool:
        """Liveness probe of the local provider."""
        return await self._fetch_tags() is not None

    async def available_providers(self) -> frozenset[str]:
        """Providers usable for the current routing decision."""
        available = {p for p in self._hosted if self.has_valid_credential(p)}
        if await self.probe_local():
            available.add(LOCAL_PROVIDER)
        return frozenset(available)

    async def provider_status(self) -> list[ProviderStatus]:
        """Per-provider availability with masked key information."""
        statuses = []
        for provider in self._hosted:
            secret = self._credentials.get_credential(provider)
            statuses.append(
                ProviderStatus(
                    name=provider,
                    available=self.has_valid_credential(provider),
                    key_info=mask_secret(secret),
                )
            )
        if self._local_base_url is not None:
            statuses.append(
                ProviderStatus(
                    name=LOCAL_PROVIDER,
                    available=await self.probe_local(),
                    key_info=self._local_base_url,
                )
            )
        return statuses

    async def local_models(self) -> list[str]:
        """Model names reported by the local endpoint, empty if unreachable."""
        tags = await self._fetch_tags()
        if not isinstance(tags, dict):
            return []
        return [m["name"] for m in tags.get("models", []) if isinstance(m, dict) and "name" in m]
